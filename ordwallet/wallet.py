"""Wallet views: cardinal balance, cardinal outputs, outputs and owned inscriptions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from .primitives import InscriptionId, Network, OutPoint, SatPoint

_EXPLORERS = {
    Network.BITCOIN: "https://ordinals.com/inscription/",
    Network.REGTEST: "http://localhost/inscription/",
    Network.SIGNET: "https://signet.ordinals.com/inscription/",
    Network.TESTNET: "https://testnet.ordinals.com/inscription/",
}


@dataclass(frozen=True)
class Cardinal:
    """An unspent output that holds no inscription."""

    output: OutPoint
    amount: int

    def as_json(self) -> dict[str, Any]:
        return {"output": str(self.output), "amount": self.amount}


@dataclass(frozen=True)
class WalletInscription:
    """An inscription held in one of the wallet's unspent outputs."""

    inscription: InscriptionId
    location: SatPoint
    explorer: str

    def as_json(self) -> dict[str, Any]:
        return {
            "inscription": str(self.inscription),
            "location": str(self.location),
            "explorer": self.explorer,
        }


def _inscribed_outpoints(inscriptions: Iterable[SatPoint]) -> set[OutPoint]:
    return {satpoint.outpoint for satpoint in inscriptions}


def cardinal_balance(
    unspent_outputs: Mapping[OutPoint, int],
    inscriptions: Mapping[SatPoint, InscriptionId],
) -> int:
    """Total sats in unspent outputs that hold no inscription."""
    inscribed = _inscribed_outpoints(inscriptions)
    return sum(
        amount for outpoint, amount in unspent_outputs.items() if outpoint not in inscribed
    )


def cardinal_utxos(
    unspent_outputs: Mapping[OutPoint, int],
    inscriptions: Mapping[SatPoint, InscriptionId],
) -> list[Cardinal]:
    """Unspent outputs holding no inscription, in outpoint order."""
    inscribed = _inscribed_outpoints(inscriptions)
    return [
        Cardinal(outpoint, amount)
        for outpoint, amount in sorted(unspent_outputs.items())
        if outpoint not in inscribed
    ]


def list_outputs(unspent_outputs: Mapping[OutPoint, int]) -> list[tuple[OutPoint, int]]:
    """All unspent outputs with their values, in outpoint order."""
    return sorted(unspent_outputs.items())


def explorer_url(network: Network) -> str:
    """Base URL of the inscription explorer for ``network``."""
    return _EXPLORERS[network]


def wallet_inscriptions(
    inscriptions: Mapping[SatPoint, InscriptionId],
    unspent_outputs: Mapping[OutPoint, int],
    network: Network,
) -> list[WalletInscription]:
    """Inscriptions located in the wallet's unspent outputs, in satpoint order."""
    explorer = explorer_url(network)
    return [
        WalletInscription(inscription, location, f"{explorer}{inscription}")
        for location, inscription in sorted(inscriptions.items())
        if location.outpoint in unspent_outputs
    ]