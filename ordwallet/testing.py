"""Fixed values for building test scenarios."""

from __future__ import annotations

from .primitives import (
    SEQUENCE_ENABLE_RBF_NO_LOCKTIME,
    Address,
    InscriptionId,
    OutPoint,
    SatPoint,
    TxIn,
    TxOut,
)

_CHANGE_ADDRESSES = {
    0: "tb1qjsv26lap3ffssj6hfy8mzn0lg5vte6a42j75ww",
    1: "tb1qakxxzv9n7706kc3xdcycrtfv8cqv62hnwexc0l",
    2: "tb1qxz9yk0td0yye009gt6ayn7jthz5p07a75luryg",
}


def _repeated_hex(n: int) -> str:
    if not 0 <= n <= 15:
        raise ValueError(f"value must be a single hex digit: {n}")
    return format(n, "x") * 64


def blockhash(n: int) -> str:
    """A block hash made of the hex digit ``n`` repeated."""
    return _repeated_hex(n)


def txid(n: int) -> str:
    """A txid made of the hex digit ``n`` repeated."""
    return _repeated_hex(n)


def outpoint(n: int) -> OutPoint:
    return OutPoint(txid(n), n)


def satpoint(n: int, offset: int) -> SatPoint:
    return SatPoint(outpoint(n), offset)


def address() -> Address:
    return Address.parse("bc1qw508d6qejxtdg4y5r3zarvary0c5xw7kv8f3t4")


def recipient() -> Address:
    return Address.parse("tb1q6en7qjxgw4ev8xwx94pzdry6a6ky7wlfeqzunz")


def change(n: int) -> Address:
    try:
        return Address.parse(_CHANGE_ADDRESSES[n])
    except KeyError:
        raise ValueError(f"no change address {n}") from None


def tx_in(previous_output: OutPoint) -> TxIn:
    return TxIn(previous_output, b"", SEQUENCE_ENABLE_RBF_NO_LOCKTIME, ())


def tx_out(value: int, address: Address) -> TxOut:
    return TxOut(value, address.script_pubkey())


def inscription_id(n: int) -> InscriptionId:
    return InscriptionId.parse(f"{_repeated_hex(n)}i{n}")