"""Angles of the clock hands that show a block height's place in the issuance schedule."""

from __future__ import annotations

from dataclasses import dataclass

SUBSIDY_HALVING_INTERVAL = 210_000
DIFFCHANGE_INTERVAL = 2016
FIRST_POST_SUBSIDY_EPOCH = 33
FIRST_POST_SUBSIDY_HEIGHT = FIRST_POST_SUBSIDY_EPOCH * SUBSIDY_HALVING_INTERVAL


@dataclass(frozen=True)
class ClockHands:
    """Hand angles in degrees: hour for subsidy, minute for epoch, second for period."""

    height: int
    hour: float
    minute: float
    second: float


def clock_hands(height: int) -> ClockHands:
    """Compute the clock hand angles for ``height``."""
    if height < 0:
        raise ValueError(f"height must not be negative: {height}")
    capped = min(height, FIRST_POST_SUBSIDY_HEIGHT)
    hour = (
        (capped % FIRST_POST_SUBSIDY_HEIGHT) / float(FIRST_POST_SUBSIDY_HEIGHT) * 360.0
    )
    minute = (
        (capped % SUBSIDY_HALVING_INTERVAL) / float(SUBSIDY_HALVING_INTERVAL) * 360.0
    )
    second = (height % DIFFCHANGE_INTERVAL) / float(DIFFCHANGE_INTERVAL) * 360.0
    return ClockHands(height=height, hour=hour, minute=minute, second=second)