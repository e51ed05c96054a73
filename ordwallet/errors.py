"""Errors raised while building ordinal-aware transactions."""

from __future__ import annotations

from typing import Any

from .primitives import COIN_VALUE, Address, InscriptionId, SatPoint


def _format_btc(sats: int) -> str:
    sign = "-" if sats < 0 else ""
    whole, fraction = divmod(abs(sats), COIN_VALUE)
    return f"{sign}{whole}.{fraction:08d} BTC"


class BuildError(Exception):
    """Base class for transaction construction failures."""

    def _fields(self) -> tuple[Any, ...]:
        return ()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BuildError):
            return NotImplemented
        return type(self) is type(other) and self._fields() == other._fields()

    def __hash__(self) -> int:
        return hash((type(self), self._fields()))

    def __repr__(self) -> str:
        arguments = ", ".join(repr(field) for field in self._fields())
        return f"{type(self).__name__}({arguments})"


class DuplicateAddress(BuildError):
    """An address was given both as recipient and change, or twice as change."""

    def __init__(self, address: Address) -> None:
        self.address = address
        super().__init__(f"duplicate input address: {address}")

    def _fields(self) -> tuple[Any, ...]:
        return (self.address,)


class Dust(BuildError):
    """The requested output value is below the recipient's dust limit."""

    def __init__(self, output_value: int, dust_value: int) -> None:
        self.output_value = output_value
        self.dust_value = dust_value
        super().__init__(
            "output value is below dust value: "
            f"{_format_btc(output_value)} < {_format_btc(dust_value)}"
        )

    def _fields(self) -> tuple[Any, ...]:
        return (self.output_value, self.dust_value)


class NotEnoughCardinalUtxos(BuildError):
    """No uninscribed output is large enough to cover what is needed."""

    def __init__(self) -> None:
        super().__init__(
            "wallet does not contain enough cardinal UTXOs, "
            "please add additional funds to wallet."
        )


class NotInWallet(BuildError):
    """The outgoing satpoint lies in an output the wallet does not hold."""

    def __init__(self, satpoint: SatPoint) -> None:
        self.satpoint = satpoint
        super().__init__(f"outgoing satpoint {satpoint} not in wallet")

    def _fields(self) -> tuple[Any, ...]:
        return (self.satpoint,)


class OutOfRange(BuildError):
    """The outgoing satpoint's offset lies beyond the end of its output."""

    def __init__(self, satpoint: SatPoint, maximum: int) -> None:
        self.satpoint = satpoint
        self.maximum = maximum
        super().__init__(
            f"outgoing satpoint {satpoint} offset higher than maximum {maximum}"
        )

    def _fields(self) -> tuple[Any, ...]:
        return (self.satpoint, self.maximum)


class UtxoContainsAdditionalInscription(BuildError):
    """Sending the outgoing sat would also send another inscription."""

    def __init__(
        self,
        outgoing_satpoint: SatPoint,
        inscribed_satpoint: SatPoint,
        inscription_id: InscriptionId,
    ) -> None:
        self.outgoing_satpoint = outgoing_satpoint
        self.inscribed_satpoint = inscribed_satpoint
        self.inscription_id = inscription_id
        super().__init__(
            f"cannot send {outgoing_satpoint} without also sending "
            f"inscription {inscription_id} at {inscribed_satpoint}"
        )

    def _fields(self) -> tuple[Any, ...]:
        return (self.outgoing_satpoint, self.inscribed_satpoint, self.inscription_id)


class ValueOverflow(BuildError):
    """An amount calculation overflowed."""

    def __init__(self) -> None:
        super().__init__("arithmetic overflow calculating value")


class InvariantError(AssertionError):
    """A built transaction violated one of the builder's invariants."""