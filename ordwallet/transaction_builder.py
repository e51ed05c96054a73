"""Ordinal-aware transaction construction.

Sending a particular sat adds constraints that ordinary coin selection does
not have: the sat must land at the start of the recipient's output, no other
inscription may be sent with it, and the recipient should not receive far more
value than asked for. ``TransactionBuilder`` applies a fixed series of
transformations, each for one concern, and then checks every invariant of the
finished transaction.

``build_transaction_with_postage`` keeps the outgoing value at or below
20,000 sats, cutting it back to 10,000 sats when coin selection adds excess.
``build_transaction_with_value`` makes the outgoing value the requested amount.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Sequence

from .errors import (
    DuplicateAddress,
    Dust,
    InvariantError,
    NotEnoughCardinalUtxos,
    NotInWallet,
    OutOfRange,
    UtxoContainsAdditionalInscription,
    ValueOverflow,
)
from .primitives import (
    SEQUENCE_ENABLE_RBF_NO_LOCKTIME,
    Address,
    FeeRate,
    InscriptionId,
    OutPoint,
    SatPoint,
    Transaction,
    TxIn,
    TxOut,
    dust_value,
)

_log = logging.getLogger(__name__)

_MAX_AMOUNT = (1 << 64) - 1


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise InvariantError(message)


@dataclass(frozen=True)
class Target:
    """What the recipient output should hold: postage, or an exact value in sats."""

    value: int | None = None

    @classmethod
    def postage(cls) -> Target:
        return cls()

    @classmethod
    def exact(cls, value: int) -> Target:
        return cls(value)

    @property
    def is_postage(self) -> bool:
        return self.value is None


class TransactionBuilder:
    """Builds a transaction that sends one sat to a recipient."""

    ADDITIONAL_INPUT_VBYTES = 58
    ADDITIONAL_OUTPUT_VBYTES = 43
    MAX_POSTAGE = 2 * 10_000
    SCHNORR_SIGNATURE_SIZE = 64
    TARGET_POSTAGE = 10_000

    def __init__(
        self,
        outgoing: SatPoint,
        inscriptions: Mapping[SatPoint, InscriptionId],
        amounts: Mapping[OutPoint, int],
        recipient: Address,
        change: Sequence[Address],
        fee_rate: FeeRate,
        target: Target,
    ) -> None:
        change = list(change)
        if len(change) != 2:
            raise ValueError(f"exactly two change addresses are required, got {len(change)}")
        if recipient in change:
            raise DuplicateAddress(recipient)
        if change[0] == change[1]:
            raise DuplicateAddress(change[0])

        self.outgoing = outgoing
        self.inscriptions: dict[SatPoint, InscriptionId] = dict(inscriptions)
        self.amounts: dict[OutPoint, int] = dict(amounts)
        self.recipient = recipient
        self.change_addresses: set[Address] = set(change)
        self.unused_change_addresses: list[Address] = list(change)
        self.fee_rate = fee_rate
        self.target = target
        self.utxos: set[OutPoint] = set(self.amounts)
        self.inputs: list[OutPoint] = []
        self.outputs: list[tuple[Address, int]] = []

    def build_transaction(self) -> Transaction:
        """Run every construction step and return the checked transaction."""
        return (
            self.select_outgoing()
            .align_outgoing()
            .pad_alignment_output()
            .add_value()
            .strip_value()
            .deduct_fee()
            .build()
        )

    def _set_last_amount(self, amount: int) -> None:
        _require(bool(self.outputs), "no outputs found")
        address, _ = self.outputs[-1]
        self.outputs[-1] = (address, amount)

    def _next_change(self) -> Address:
        _require(bool(self.unused_change_addresses), "not enough change addresses")
        return self.unused_change_addresses[-1]

    def _pop_change(self) -> Address:
        _require(bool(self.unused_change_addresses), "not enough change addresses")
        return self.unused_change_addresses.pop()

    def select_outgoing(self) -> TransactionBuilder:
        """Spend the output holding the outgoing sat and send it all to the recipient."""
        for inscribed_satpoint, inscription_id in sorted(self.inscriptions.items()):
            if (
                self.outgoing.outpoint == inscribed_satpoint.outpoint
                and self.outgoing.offset != inscribed_satpoint.offset
            ):
                raise UtxoContainsAdditionalInscription(
                    self.outgoing, inscribed_satpoint, inscription_id
                )

        amount = self.amounts.get(self.outgoing.outpoint)
        if amount is None:
            raise NotInWallet(self.outgoing)

        if self.outgoing.offset >= amount:
            raise OutOfRange(self.outgoing, amount - 1)

        self.utxos.discard(self.outgoing.outpoint)
        self.inputs.append(self.outgoing.outpoint)
        self.outputs.append((self.recipient, amount))

        _log.debug(
            "selected outgoing outpoint %s with value %d", self.outgoing.outpoint, amount
        )
        return self

    def align_outgoing(self) -> TransactionBuilder:
        """Split off the sats before the outgoing sat into a change output."""
        _require(len(self.outputs) == 1, "invariant: only one output")
        _require(
            self.outputs[0][0] == self.recipient, "invariant: first output is recipient"
        )

        sat_offset = self._calculate_sat_offset()
        if sat_offset == 0:
            _log.debug("outgoing is aligned")
        else:
            _log.debug("aligned outgoing with %d sat padding output", sat_offset)
            self.outputs.insert(0, (self._pop_change(), sat_offset))
            self._set_last_amount(self.outputs[-1][1] - sat_offset)
        return self

    def pad_alignment_output(self) -> TransactionBuilder:
        """Raise an alignment output below the dust limit with a cardinal input."""
        if self.outputs[0][0] == self.recipient:
            _log.debug("no alignment output")
            return self

        dust_limit = dust_value(self.recipient.script_pubkey())
        address, amount = self.outputs[0]
        if amount >= dust_limit:
            _log.debug("no padding needed")
            return self

        utxo, size = self._select_cardinal_utxo(dust_limit - amount)
        self.inputs.insert(0, utxo)
        self.outputs[0] = (address, amount + size)
        _log.debug(
            "padded alignment output to %d with additional %d sat input",
            self.outputs[0][1],
            size,
        )
        return self

    def add_value(self) -> TransactionBuilder:
        """Add a cardinal input if the last output cannot cover its target and the fee."""
        estimated_fee = self._estimate_fee()

        if self.target.is_postage:
            min_value = dust_value(self.outputs[-1][0].script_pubkey())
        else:
            min_value = self.target.value

        total = min_value + estimated_fee
        if total > _MAX_AMOUNT:
            raise ValueOverflow()

        deficit = total - self.outputs[-1][1]
        if deficit > 0:
            needed = deficit + self.fee_rate.fee(self.ADDITIONAL_INPUT_VBYTES)
            if needed > _MAX_AMOUNT:
                raise ValueOverflow()
            utxo, value = self._select_cardinal_utxo(needed)
            self.inputs.append(utxo)
            self._set_last_amount(self.outputs[-1][1] + value)
            _log.debug("added %d sat input to cover %d sat deficit", value, deficit)
        return self

    def strip_value(self) -> TransactionBuilder:
        """Move excess value out of the recipient output into a change output."""
        sat_offset = self._calculate_sat_offset()
        total_output_amount = sum(amount for _, amount in self.outputs)

        _require(
            any(address == self.recipient for address, _ in self.outputs),
            "couldn't find output that contains the index",
        )

        value = total_output_amount - sat_offset
        excess = value - self.fee_rate.fee(self._estimate_vbytes())
        if excess < 0:
            return self

        if self.target.is_postage:
            maximum, target = self.MAX_POSTAGE, self.TARGET_POSTAGE
        else:
            maximum = target = self.target.value

        if excess > maximum and value - target > dust_value(
            self._next_change().script_pubkey()
        ) + self.fee_rate.fee(self._estimate_vbytes() + self.ADDITIONAL_OUTPUT_VBYTES):
            _log.debug("stripped %d sats", value - target)
            self._set_last_amount(target)
            self.outputs.append((self._pop_change(), value - target))
        return self

    def deduct_fee(self) -> TransactionBuilder:
        """Pay the estimated fee out of the last output."""
        sat_offset = self._calculate_sat_offset()
        fee = self._estimate_fee()
        total_output_amount = sum(amount for _, amount in self.outputs)

        _require(bool(self.outputs), "No output to deduct fee from")
        last_output_amount = self.outputs[-1][1]

        _require(
            total_output_amount - fee > sat_offset,
            "invariant: deducting fee does not consume sat",
        )
        _require(
            last_output_amount >= fee,
            f"invariant: last output can pay fee: {last_output_amount} {fee}",
        )

        self._set_last_amount(last_output_amount - fee)
        return self

    @staticmethod
    def estimate_vbytes_with(inputs: int, outputs: Sequence[Address]) -> int:
        """Virtual size of a transaction of taproot key-path inputs paying ``outputs``."""
        signature = bytes(TransactionBuilder.SCHNORR_SIGNATURE_SIZE)
        return Transaction(
            version=1,
            lock_time=0,
            inputs=[
                TxIn(OutPoint.null(), b"", SEQUENCE_ENABLE_RBF_NO_LOCKTIME, (signature,))
                for _ in range(inputs)
            ],
            outputs=[TxOut(0, address.script_pubkey()) for address in outputs],
        ).vsize()

    def _estimate_vbytes(self) -> int:
        return self.estimate_vbytes_with(
            len(self.inputs), [address for address, _ in self.outputs]
        )

    def _estimate_fee(self) -> int:
        return self.fee_rate.fee(self._estimate_vbytes())

    def build(self) -> Transaction:
        """Assemble the transaction and check every invariant on it."""
        recipient_script = self.recipient.script_pubkey()
        transaction = Transaction(
            version=1,
            lock_time=0,
            inputs=[
                TxIn(outpoint, b"", SEQUENCE_ENABLE_RBF_NO_LOCKTIME, ())
                for outpoint in self.inputs
            ],
            outputs=[
                TxOut(amount, address.script_pubkey()) for address, amount in self.outputs
            ],
        )

        _require(
            sum(
                1
                for outpoint, amount in self.amounts.items()
                if outpoint == self.outgoing.outpoint and self.outgoing.offset < amount
            )
            == 1,
            "invariant: outgoing sat is contained in utxos",
        )

        _require(
            sum(
                1
                for txin in transaction.inputs
                if txin.previous_output == self.outgoing.outpoint
            )
            == 1,
            "invariant: inputs spend outgoing sat",
        )

        sat_offset = 0
        found = False
        for txin in transaction.inputs:
            if txin.previous_output == self.outgoing.outpoint:
                sat_offset += self.outgoing.offset
                found = True
                break
            sat_offset += self.amounts[txin.previous_output]
        _require(found, "invariant: outgoing sat is found in inputs")

        output_end = 0
        found = False
        for txout in transaction.outputs:
            output_end += txout.value
            if output_end > sat_offset:
                _require(
                    txout.script_pubkey == recipient_script,
                    "invariant: outgoing sat is sent to recipient",
                )
                found = True
                break
        _require(found, "invariant: outgoing sat is found in outputs")

        _require(
            sum(1 for txout in transaction.outputs if txout.script_pubkey == recipient_script)
            == 1,
            "invariant: recipient address appears exactly once in outputs",
        )

        _require(
            all(
                sum(
                    1
                    for txout in transaction.outputs
                    if txout.script_pubkey == change_address.script_pubkey()
                )
                <= 1
                for change_address in self.change_addresses
            ),
            "invariant: change addresses appear at most once in outputs",
        )

        offset = 0
        for txout in transaction.outputs:
            if txout.script_pubkey == recipient_script:
                slop = self.fee_rate.fee(self.ADDITIONAL_OUTPUT_VBYTES)
                if self.target.is_postage:
                    _require(
                        txout.value <= self.MAX_POSTAGE + slop,
                        "invariant: excess postage is stripped",
                    )
                else:
                    over = txout.value - self.target.value
                    limit = (
                        max(
                            (
                                dust_value(address.script_pubkey())
                                for address in self.change_addresses
                            ),
                            default=0,
                        )
                        + slop
                    )
                    _require(
                        0 <= over <= limit, "invariant: output equals target value"
                    )
                _require(
                    offset == sat_offset,
                    "invariant: sat is at first position in recipient output",
                )
            else:
                _require(
                    any(
                        address.script_pubkey() == txout.script_pubkey
                        for address in self.change_addresses
                    ),
                    "invariant: all outputs are either change or recipient: "
                    f"unrecognized output {txout.script_pubkey.hex()}",
                )
            offset += txout.value

        actual_fee = sum(self.amounts[txin.previous_output] for txin in transaction.inputs)
        actual_fee -= sum(txout.value for txout in transaction.outputs)

        signed = Transaction(
            version=transaction.version,
            lock_time=transaction.lock_time,
            inputs=[
                TxIn(txin.previous_output, txin.script_sig, txin.sequence, (bytes(64),))
                for txin in transaction.inputs
            ],
            outputs=transaction.outputs,
        )
        expected_fee = self.fee_rate.fee(signed.vsize())
        _require(actual_fee == expected_fee, "invariant: fee estimation is correct")

        for txout in transaction.outputs:
            _require(
                txout.value >= dust_value(txout.script_pubkey),
                "invariant: all outputs are above dust limit",
            )

        return transaction

    def _calculate_sat_offset(self) -> int:
        sat_offset = 0
        for outpoint in self.inputs:
            if outpoint == self.outgoing.outpoint:
                return sat_offset + self.outgoing.offset
            sat_offset += self.amounts[outpoint]
        raise InvariantError("Could not find outgoing sat in inputs")

    def _select_cardinal_utxo(self, minimum_value: int) -> tuple[OutPoint, int]:
        inscribed_utxos = {satpoint.outpoint for satpoint in self.inscriptions}
        for utxo in sorted(self.utxos):
            if utxo in inscribed_utxos:
                continue
            value = self.amounts[utxo]
            if value >= minimum_value:
                self.utxos.remove(utxo)
                return utxo, value
        raise NotEnoughCardinalUtxos()


def build_transaction_with_postage(
    outgoing: SatPoint,
    inscriptions: Mapping[SatPoint, InscriptionId],
    amounts: Mapping[OutPoint, int],
    recipient: Address,
    change: Sequence[Address],
    fee_rate: FeeRate,
) -> Transaction:
    """Send the outgoing sat with at most 20,000 sats of postage."""
    return TransactionBuilder(
        outgoing, inscriptions, amounts, recipient, change, fee_rate, Target.postage()
    ).build_transaction()


def build_transaction_with_value(
    outgoing: SatPoint,
    inscriptions: Mapping[SatPoint, InscriptionId],
    amounts: Mapping[OutPoint, int],
    recipient: Address,
    change: Sequence[Address],
    fee_rate: FeeRate,
    output_value: int,
) -> Transaction:
    """Send the outgoing sat in an output worth ``output_value`` sats."""
    dust_limit = dust_value(recipient.script_pubkey())
    if output_value < dust_limit:
        raise Dust(output_value, dust_limit)
    return TransactionBuilder(
        outgoing,
        inscriptions,
        amounts,
        recipient,
        change,
        fee_rate,
        Target.exact(output_value),
    ).build_transaction()