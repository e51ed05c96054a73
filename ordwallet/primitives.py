"""Bitcoin primitives: addresses, outpoints, transactions and fee rates."""

from __future__ import annotations

import enum
import hashlib
import math
import string
from dataclasses import dataclass
from functools import total_ordering
from typing import Iterable

SEQUENCE_MAX = 0xFFFFFFFF
SEQUENCE_ENABLE_RBF_NO_LOCKTIME = 0xFFFFFFFD
WITNESS_SCALE_FACTOR = 4
DUST_RELAY_TX_FEE = 3000
COIN_VALUE = 100_000_000

_OP_0 = 0x00
_OP_PUSHDATA1 = 0x4C
_OP_PUSHDATA2 = 0x4D
_OP_PUSHDATA4 = 0x4E
_OP_1NEGATE = 0x4F
_OP_PUSHNUM_1 = 0x51
_OP_PUSHNUM_16 = 0x60
_OP_RETURN = 0x6A
_OP_DUP = 0x76
_OP_EQUAL = 0x87
_OP_EQUALVERIFY = 0x88
_OP_HASH160 = 0xA9
_OP_CHECKSIG = 0xAC

_HEX_DIGITS = frozenset(string.hexdigits)
_DECIMAL_DIGITS = frozenset(string.digits)


def _sha256d(data: bytes) -> bytes:
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()


class Network(enum.Enum):
    """A Bitcoin network."""

    BITCOIN = "bitcoin"
    TESTNET = "testnet"
    SIGNET = "signet"
    REGTEST = "regtest"

    def __str__(self) -> str:
        return self.value


_HRP_NETWORKS = {
    "bc": Network.BITCOIN,
    "tb": Network.TESTNET,
    "bcrt": Network.REGTEST,
}


def compact_size(n: int) -> bytes:
    """Encode ``n`` as a Bitcoin variable-length integer."""
    if n < 0:
        raise ValueError(f"compact size must not be negative: {n}")
    if n < 0xFD:
        return bytes([n])
    if n <= 0xFFFF:
        return b"\xfd" + n.to_bytes(2, "little")
    if n <= 0xFFFFFFFF:
        return b"\xfe" + n.to_bytes(4, "little")
    if n <= 0xFFFFFFFFFFFFFFFF:
        return b"\xff" + n.to_bytes(8, "little")
    raise ValueError(f"compact size too large: {n}")


def _push_slice(data: bytes) -> bytes:
    length = len(data)
    if length < _OP_PUSHDATA1:
        return bytes([length]) + data
    if length <= 0xFF:
        return bytes([_OP_PUSHDATA1, length]) + data
    if length <= 0xFFFF:
        return bytes([_OP_PUSHDATA2]) + length.to_bytes(2, "little") + data
    if length <= 0xFFFFFFFF:
        return bytes([_OP_PUSHDATA4]) + length.to_bytes(4, "little") + data
    raise ValueError("push data too large")


def _script_num(n: int) -> bytes:
    negative = n < 0
    magnitude = abs(n)
    encoded = bytearray()
    while magnitude:
        encoded.append(magnitude & 0xFF)
        magnitude >>= 8
    if encoded[-1] & 0x80:
        encoded.append(0x80 if negative else 0x00)
    elif negative:
        encoded[-1] |= 0x80
    return bytes(encoded)


def script_push_int(n: int) -> bytes:
    """Return the script fragment that pushes the integer ``n``."""
    if n == -1:
        return bytes([_OP_1NEGATE])
    if n == 0:
        return bytes([_OP_0])
    if 1 <= n <= 16:
        return bytes([_OP_PUSHNUM_1 + n - 1])
    return _push_slice(_script_num(n))


def _is_witness_program(script: bytes) -> bool:
    if not 4 <= len(script) <= 42:
        return False
    version = script[0]
    push = script[1]
    return (
        (version == _OP_0 or _OP_PUSHNUM_1 <= version <= _OP_PUSHNUM_16)
        and 2 <= push <= 40
        and len(script) - 2 == push
    )


def dust_value(script_pubkey: bytes) -> int:
    """Return the minimum non-dust value in sats of an output paying to ``script_pubkey``."""
    if script_pubkey[:1] == bytes([_OP_RETURN]):
        return 0
    encoded_len = len(compact_size(len(script_pubkey))) + len(script_pubkey)
    if _is_witness_program(script_pubkey):
        spend_cost = 32 + 4 + 1 + 107 // 4 + 4
    else:
        spend_cost = 32 + 4 + 1 + 107 + 4
    return DUST_RELAY_TX_FEE // 1000 * (spend_cost + 8 + encoded_len)


# Segwit address encoding.

_BECH32_CHARSET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"
_BECH32_CONST = 1
_BECH32M_CONST = 0x2BC830A3
_BECH32_GENERATOR = (0x3B6A57B2, 0x26508E6D, 0x1EA119FA, 0x3D4233DD, 0x2A1462B3)


def _bech32_polymod(values: Iterable[int]) -> int:
    checksum = 1
    for value in values:
        top = checksum >> 25
        checksum = ((checksum & 0x1FFFFFF) << 5) ^ value
        for bit, generator in enumerate(_BECH32_GENERATOR):
            if (top >> bit) & 1:
                checksum ^= generator
    return checksum


def _hrp_expand(hrp: str) -> list[int]:
    return [ord(c) >> 5 for c in hrp] + [0] + [ord(c) & 31 for c in hrp]


def _convert_bits(data: Iterable[int], from_bits: int, to_bits: int) -> bytes:
    accumulator = 0
    bits = 0
    maximum = (1 << to_bits) - 1
    out = bytearray()
    for value in data:
        accumulator = (accumulator << from_bits) | value
        bits += from_bits
        while bits >= to_bits:
            bits -= to_bits
            out.append((accumulator >> bits) & maximum)
    if bits >= from_bits or (accumulator << (to_bits - bits)) & maximum:
        raise ValueError("invalid bech32 padding")
    return bytes(out)


def _decode_segwit(text: str) -> tuple[str, int, bytes]:
    if text.lower() != text and text.upper() != text:
        raise ValueError(f"mixed case in address: {text}")
    lowered = text.lower()
    separator = lowered.rfind("1")
    if separator < 1 or separator + 7 > len(lowered) or len(lowered) > 90:
        raise ValueError(f"invalid bech32 address: {text}")
    hrp = lowered[:separator]
    if any(not 33 <= ord(c) <= 126 for c in hrp):
        raise ValueError(f"invalid human-readable part: {text}")
    values = [_BECH32_CHARSET.find(c) for c in lowered[separator + 1 :]]
    if -1 in values:
        raise ValueError(f"invalid bech32 character in address: {text}")
    constant = _bech32_polymod(_hrp_expand(hrp) + values)
    if constant not in (_BECH32_CONST, _BECH32M_CONST):
        raise ValueError(f"invalid bech32 checksum: {text}")
    data = values[:-6]
    if not data:
        raise ValueError(f"missing witness version: {text}")
    version = data[0]
    if version > 16:
        raise ValueError(f"invalid witness version {version}")
    program = _convert_bits(data[1:], 5, 8)
    if version == 0 and constant != _BECH32_CONST:
        raise ValueError("witness version 0 requires bech32 encoding")
    if version != 0 and constant != _BECH32M_CONST:
        raise ValueError(f"witness version {version} requires bech32m encoding")
    if not 2 <= len(program) <= 40:
        raise ValueError(f"invalid witness program length {len(program)}")
    if version == 0 and len(program) not in (20, 32):
        raise ValueError(f"invalid segwit v0 program length {len(program)}")
    return hrp, version, program


# Legacy address encoding.

_BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"


def _base58check_decode(text: str) -> bytes:
    number = 0
    for char in text:
        digit = _BASE58_ALPHABET.find(char)
        if digit < 0:
            raise ValueError(f"invalid base58 character {char!r}")
        number = number * 58 + digit
    leading_zeros = len(text) - len(text.lstrip("1"))
    raw = bytes(leading_zeros) + number.to_bytes((number.bit_length() + 7) // 8, "big")
    if len(raw) < 4:
        raise ValueError(f"base58 data too short: {text}")
    payload, checksum = raw[:-4], raw[-4:]
    if _sha256d(payload)[:4] != checksum:
        raise ValueError(f"invalid base58 checksum: {text}")
    return payload


def _p2pkh_script(pubkey_hash: bytes) -> bytes:
    return (
        bytes([_OP_DUP, _OP_HASH160])
        + _push_slice(pubkey_hash)
        + bytes([_OP_EQUALVERIFY, _OP_CHECKSIG])
    )


def _p2sh_script(script_hash: bytes) -> bytes:
    return bytes([_OP_HASH160]) + _push_slice(script_hash) + bytes([_OP_EQUAL])


_BASE58_VERSIONS = {
    0x00: (Network.BITCOIN, _p2pkh_script),
    0x05: (Network.BITCOIN, _p2sh_script),
    0x6F: (Network.TESTNET, _p2pkh_script),
    0xC4: (Network.TESTNET, _p2sh_script),
}


def _witness_script(version: int, program: bytes) -> bytes:
    opcode = _OP_0 if version == 0 else _OP_PUSHNUM_1 + version - 1
    return bytes([opcode]) + _push_slice(program)


@total_ordering
class Address:
    """A Bitcoin address together with the network it belongs to."""

    __slots__ = ("_text", "_network", "_script")

    def __init__(self, text: str, network: Network, script: bytes) -> None:
        self._text = text
        self._network = network
        self._script = bytes(script)

    @classmethod
    def parse(cls, text: str) -> Address:
        """Parse a segwit or legacy address, raising ``ValueError`` if invalid."""
        separator = text.rfind("1")
        if separator > 0 and text[:separator].lower() in _HRP_NETWORKS:
            hrp, version, program = _decode_segwit(text)
            return cls(text.lower(), _HRP_NETWORKS[hrp], _witness_script(version, program))
        payload = _base58check_decode(text)
        if len(payload) != 21 or payload[0] not in _BASE58_VERSIONS:
            raise ValueError(f"unrecognised address: {text}")
        network, script_for = _BASE58_VERSIONS[payload[0]]
        return cls(text, network, script_for(payload[1:]))

    @property
    def text(self) -> str:
        return self._text

    @property
    def network(self) -> Network:
        return self._network

    def script_pubkey(self) -> bytes:
        """Return the output script that pays to this address."""
        return self._script

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Address):
            return NotImplemented
        return self._text == other._text

    def __lt__(self, other: Address) -> bool:
        if not isinstance(other, Address):
            return NotImplemented
        return self._text < other._text

    def __hash__(self) -> int:
        return hash(self._text)

    def __str__(self) -> str:
        return self._text

    def __repr__(self) -> str:
        return f"Address({self._text!r})"


def _validate_txid(text: str) -> str:
    if len(text) != 64 or not _HEX_DIGITS.issuperset(text):
        raise ValueError(f"invalid txid: {text!r}")
    return text.lower()


def _txid_key(txid: str) -> bytes:
    return bytes.fromhex(txid)[::-1]


def _parse_uint(text: str, bits: int, what: str, *, strict: bool = False) -> int:
    digits = text
    if not strict and digits.startswith("+"):
        digits = digits[1:]
    if not digits or not _DECIMAL_DIGITS.issuperset(digits):
        raise ValueError(f"invalid {what}: {text!r}")
    if strict and len(digits) > 1 and digits.startswith("0"):
        raise ValueError(f"{what} should not have leading zeroes: {text!r}")
    value = int(digits)
    if value >= 1 << bits:
        raise ValueError(f"{what} out of range: {text!r}")
    return value


@total_ordering
@dataclass(frozen=True)
class OutPoint:
    """A reference to a transaction output."""

    txid: str
    vout: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "txid", _validate_txid(self.txid))
        if not 0 <= self.vout <= 0xFFFFFFFF:
            raise ValueError(f"vout out of range: {self.vout}")

    @classmethod
    def parse(cls, text: str) -> OutPoint:
        txid, separator, vout = text.partition(":")
        if not separator:
            raise ValueError(f"outpoint missing colon: {text!r}")
        if ":" in vout:
            raise ValueError(f"outpoint has too many colons: {text!r}")
        return cls(_validate_txid(txid), _parse_uint(vout, 32, "vout", strict=True))

    @classmethod
    def null(cls) -> OutPoint:
        return cls("0" * 64, 0xFFFFFFFF)

    def is_null(self) -> bool:
        return self == OutPoint.null()

    def _key(self) -> tuple[bytes, int]:
        return _txid_key(self.txid), self.vout

    def __lt__(self, other: OutPoint) -> bool:
        if not isinstance(other, OutPoint):
            return NotImplemented
        return self._key() < other._key()

    def __str__(self) -> str:
        return f"{self.txid}:{self.vout}"


@dataclass(frozen=True, order=True)
class SatPoint:
    """The position of a sat within a transaction output."""

    outpoint: OutPoint
    offset: int

    @classmethod
    def parse(cls, text: str) -> SatPoint:
        outpoint, separator, offset = text.rpartition(":")
        if not separator:
            raise ValueError(f"satpoint missing offset: {text!r}")
        return cls(OutPoint.parse(outpoint), _parse_uint(offset, 64, "offset"))

    def __str__(self) -> str:
        return f"{self.outpoint}:{self.offset}"


@total_ordering
@dataclass(frozen=True)
class InscriptionId:
    """An inscription identifier: reveal txid and inscription index."""

    txid: str
    index: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "txid", _validate_txid(self.txid))
        if not 0 <= self.index <= 0xFFFFFFFF:
            raise ValueError(f"inscription index out of range: {self.index}")

    @classmethod
    def parse(cls, text: str) -> InscriptionId:
        if len(text) < 66:
            raise ValueError(f"inscription id too short: {text!r}")
        if text[64] != "i":
            raise ValueError(f"inscription id missing separator: {text!r}")
        return cls(_validate_txid(text[:64]), _parse_uint(text[65:], 32, "index"))

    def _key(self) -> tuple[bytes, int]:
        return _txid_key(self.txid), self.index

    def __lt__(self, other: InscriptionId) -> bool:
        if not isinstance(other, InscriptionId):
            return NotImplemented
        return self._key() < other._key()

    def __str__(self) -> str:
        return f"{self.txid}i{self.index}"


@dataclass(frozen=True)
class TxIn:
    """A transaction input."""

    previous_output: OutPoint
    script_sig: bytes = b""
    sequence: int = SEQUENCE_MAX
    witness: tuple[bytes, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "script_sig", bytes(self.script_sig))
        object.__setattr__(self, "witness", tuple(bytes(item) for item in self.witness))


@dataclass(frozen=True)
class TxOut:
    """A transaction output."""

    value: int
    script_pubkey: bytes = b""

    def __post_init__(self) -> None:
        object.__setattr__(self, "script_pubkey", bytes(self.script_pubkey))


def _encode_bytes(data: bytes) -> bytes:
    return compact_size(len(data)) + data


def _witness_len(witness: tuple[bytes, ...]) -> int:
    return len(compact_size(len(witness))) + sum(
        len(compact_size(len(item))) + len(item) for item in witness
    )


@dataclass(frozen=True)
class Transaction:
    """A Bitcoin transaction."""

    version: int = 1
    lock_time: int = 0
    inputs: tuple[TxIn, ...] = ()
    outputs: tuple[TxOut, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "inputs", tuple(self.inputs))
        object.__setattr__(self, "outputs", tuple(self.outputs))

    def serialize(self, include_witness: bool = True) -> bytes:
        """Consensus-encode the transaction, in segwit form when it has witness data."""
        segwit = include_witness and (
            not self.inputs or any(txin.witness for txin in self.inputs)
        )
        parts = [self.version.to_bytes(4, "little", signed=True)]
        if segwit:
            parts.append(b"\x00\x01")
        parts.append(compact_size(len(self.inputs)))
        for txin in self.inputs:
            parts.append(_txid_key(txin.previous_output.txid))
            parts.append(txin.previous_output.vout.to_bytes(4, "little"))
            parts.append(_encode_bytes(txin.script_sig))
            parts.append(txin.sequence.to_bytes(4, "little"))
        parts.append(compact_size(len(self.outputs)))
        for txout in self.outputs:
            parts.append(txout.value.to_bytes(8, "little"))
            parts.append(_encode_bytes(txout.script_pubkey))
        if segwit:
            for txin in self.inputs:
                parts.append(compact_size(len(txin.witness)))
                parts.extend(_encode_bytes(item) for item in txin.witness)
        parts.append(self.lock_time.to_bytes(4, "little"))
        return b"".join(parts)

    def txid(self) -> str:
        """Return the transaction id as displayed hex."""
        return _sha256d(self.serialize(include_witness=False))[::-1].hex()

    def _scaled_size(self, scale: int) -> int:
        input_weight = 0
        inputs_with_witness = 0
        for txin in self.inputs:
            input_weight += scale * (
                32 + 4 + 4 + len(compact_size(len(txin.script_sig))) + len(txin.script_sig)
            )
            if txin.witness:
                inputs_with_witness += 1
                input_weight += _witness_len(txin.witness)
        output_size = sum(
            8 + len(compact_size(len(txout.script_pubkey))) + len(txout.script_pubkey)
            for txout in self.outputs
        )
        non_input_size = (
            4
            + len(compact_size(len(self.inputs)))
            + len(compact_size(len(self.outputs)))
            + output_size
            + 4
        )
        total = non_input_size * scale + input_weight
        if inputs_with_witness:
            total += len(self.inputs) - inputs_with_witness + 2
        return total

    def weight(self) -> int:
        return self._scaled_size(WITNESS_SCALE_FACTOR)

    def vsize(self) -> int:
        return (self.weight() + WITNESS_SCALE_FACTOR - 1) // WITNESS_SCALE_FACTOR

    def size(self) -> int:
        return self._scaled_size(1)

    def is_explicitly_rbf(self) -> bool:
        """Whether any input signals replace-by-fee."""
        return any(txin.sequence < 0xFFFFFFFE for txin in self.inputs)


@dataclass(frozen=True)
class FeeRate:
    """A fee rate in sats per virtual byte."""

    rate: float

    def __post_init__(self) -> None:
        rate = float(self.rate)
        if math.isnan(rate) or math.isinf(rate) or math.copysign(1.0, rate) < 0:
            raise ValueError(f"invalid fee rate: {self.rate}")
        object.__setattr__(self, "rate", rate)

    def fee(self, vsize: int) -> int:
        """Return the fee in sats for a transaction of ``vsize`` virtual bytes."""
        return int(math.ceil(self.rate * vsize))

    def __str__(self) -> str:
        return f"{self.rate}"