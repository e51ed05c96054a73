"""Locate sats listed in a tab-separated file within a wallet's sat ranges."""

from __future__ import annotations

import string
from typing import Iterable, Sequence

from .primitives import OutPoint

_DIGITS = frozenset(string.digits)
_MAX_SAT = (1 << 64) - 1


def _parse_sat(text: str) -> int:
    digits = text[1:] if text.startswith("+") else text
    if not text:
        raise ValueError("cannot parse integer from empty string")
    if not digits or not _DIGITS.issuperset(digits):
        raise ValueError("invalid digit found in string")
    value = int(digits)
    if value > _MAX_SAT:
        raise ValueError("number too large to fit in target type")
    return value


def _lines(text: str) -> list[str]:
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def sats_from_tsv(
    utxos: Iterable[tuple[OutPoint, Sequence[tuple[int, int]]]],
    tsv: str,
) -> list[tuple[OutPoint, str]]:
    """Find the outputs holding the sats named in the first column of ``tsv``.

    Empty lines and lines starting with ``#`` are ignored. Returns pairs of the
    holding outpoint and the sat exactly as written, in sat order.
    """
    needles: list[tuple[int, str]] = []
    for number, line in enumerate(_lines(tsv), start=1):
        if not line or line.startswith("#"):
            continue
        value = line.split("\t", 1)[0]
        try:
            sat = _parse_sat(value)
        except ValueError as err:
            raise ValueError(
                f'failed to parse sat from string "{value}" on line {number}: {err}'
            ) from None
        needles.append((sat, value))
    needles.sort()

    haystacks = sorted(
        (start, end, outpoint) for outpoint, ranges in utxos for start, end in ranges
    )

    results: list[tuple[OutPoint, str]] = []
    i = j = 0
    while i < len(needles) and j < len(haystacks):
        needle, value = needles[i]
        start, end, outpoint = haystacks[j]

        if start <= needle < end:
            results.append((outpoint, value))

        if needle >= end:
            j += 1
        else:
            i += 1

    return results