"""An in-memory chain: blocks, mempool, transactions and unspent outputs."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field

from .primitives import (
    COIN_VALUE,
    SEQUENCE_MAX,
    Address,
    Network,
    OutPoint,
    Transaction,
    TxIn,
    TxOut,
    compact_size,
    script_push_int,
)

_ZERO_HASH = "0" * 64


def _sha256d(data: bytes) -> bytes:
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()


def _hash_bytes(display_hex: str) -> bytes:
    return bytes.fromhex(display_hex)[::-1]


@dataclass(frozen=True)
class TransactionTemplate:
    """Describes a transaction to broadcast from outputs already in blocks.

    ``inputs`` holds ``(height, transaction index, vout)`` triples.
    """

    fee: int = 0
    inputs: tuple[tuple[int, int, int], ...] = ()
    output_values: tuple[int, ...] = ()
    outputs: int = 1
    witness: tuple[bytes, ...] = ()


@dataclass(frozen=True)
class Sent:
    """A record of a send-to-address request."""

    amount: float
    address: Address
    locked: list[OutPoint]


@dataclass(frozen=True)
class BlockHeader:
    """A block header; hashes are in displayed hex."""

    version: int
    prev_blockhash: str
    merkle_root: str
    time: int
    bits: int
    nonce: int

    def serialize(self) -> bytes:
        return b"".join(
            [
                self.version.to_bytes(4, "little", signed=True),
                _hash_bytes(self.prev_blockhash),
                _hash_bytes(self.merkle_root),
                self.time.to_bytes(4, "little"),
                self.bits.to_bytes(4, "little"),
                self.nonce.to_bytes(4, "little"),
            ]
        )

    def block_hash(self) -> str:
        return _sha256d(self.serialize())[::-1].hex()


@dataclass(frozen=True)
class Block:
    """A block header and its transactions."""

    header: BlockHeader
    txdata: tuple[Transaction, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "txdata", tuple(self.txdata))

    def serialize(self) -> bytes:
        return (
            self.header.serialize()
            + compact_size(len(self.txdata))
            + b"".join(tx.serialize() for tx in self.txdata)
        )

    def block_hash(self) -> str:
        return self.header.block_hash()


_GENESIS_SCRIPT_SIG = bytes.fromhex(
    "04ffff001d0104455468652054696d65732030332f4a616e2f32303039204368616e63656c6c6f72"
    "206f6e206272696e6b206f66207365636f6e64206261696c6f757420666f722062616e6b73"
)
_GENESIS_SCRIPT_PUBKEY = bytes.fromhex(
    "4104678afdb0fe5548271967f1a67130b7105cd6a828e03909a67962e0ea1f61deb649f6bc3f4cef"
    "38c4f35504e51ec112de5c384df7ba0b8d578a4c702b6bf11d5fac"
)

_GENESIS_PARAMETERS = {
    Network.BITCOIN: (1231006505, 0x1D00FFFF, 2083236893),
    Network.TESTNET: (1296688602, 0x1D00FFFF, 414098458),
    Network.SIGNET: (1598918400, 0x1E0377AE, 52613770),
    Network.REGTEST: (1296688602, 0x207FFFFF, 2),
}


def genesis_block(network: Network) -> Block:
    """The genesis block of ``network``."""
    coinbase = Transaction(
        version=1,
        lock_time=0,
        inputs=[TxIn(OutPoint.null(), _GENESIS_SCRIPT_SIG, SEQUENCE_MAX, ())],
        outputs=[TxOut(50 * COIN_VALUE, _GENESIS_SCRIPT_PUBKEY)],
    )
    time, bits, nonce = _GENESIS_PARAMETERS[network]
    header = BlockHeader(
        version=1,
        prev_blockhash=_ZERO_HASH,
        merkle_root=coinbase.txid(),
        time=time,
        bits=bits,
        nonce=nonce,
    )
    return Block(header, (coinbase,))


@dataclass
class ChainState:
    """Chain and wallet state of a simulated node."""

    network: Network = Network.BITCOIN
    version: int = 240000
    fail_lock_unspent: bool = False
    blocks: dict[str, Block] = field(default_factory=dict)
    hashes: list[str] = field(default_factory=list)
    descriptors: list[str] = field(default_factory=list)
    loaded_wallets: set[str] = field(default_factory=set)
    locked: set[OutPoint] = field(default_factory=set)
    mempool: list[Transaction] = field(default_factory=list)
    nonce: int = 0
    sent: list[Sent] = field(default_factory=list)
    transactions: dict[str, Transaction] = field(default_factory=dict)
    utxos: dict[OutPoint, int] = field(default_factory=dict)
    wallets: set[str] = field(default_factory=set)

    def __post_init__(self) -> None:
        if not self.hashes:
            genesis = genesis_block(self.network)
            genesis_hash = genesis.block_hash()
            self.hashes.append(genesis_hash)
            self.blocks[genesis_hash] = genesis

    def push_block(self, subsidy: int) -> Block:
        """Mine the mempool into a new block whose coinbase pays subsidy plus fees."""
        fees = 0
        for tx in self.mempool:
            input_value = sum(
                self.transactions[txin.previous_output.txid]
                .outputs[txin.previous_output.vout]
                .value
                for txin in tx.inputs
            )
            output_value = sum(txout.value for txout in tx.outputs)
            if output_value > input_value:
                raise ValueError(f"transaction {tx.txid()} spends more than its inputs")
            fees += input_value - output_value
            self.transactions[tx.txid()] = tx

        coinbase = Transaction(
            version=0,
            lock_time=0,
            inputs=[
                TxIn(OutPoint.null(), script_push_int(len(self.blocks)), SEQUENCE_MAX, ())
            ],
            outputs=[TxOut(subsidy + fees, b"")],
        )
        self.transactions[coinbase.txid()] = coinbase

        block = Block(
            BlockHeader(
                version=0,
                prev_blockhash=self.hashes[-1],
                merkle_root=_ZERO_HASH,
                time=len(self.blocks),
                bits=0,
                nonce=self.nonce,
            ),
            (coinbase, *self.mempool),
        )
        self.mempool.clear()

        for tx in block.txdata:
            for txin in tx.inputs:
                self.utxos.pop(txin.previous_output, None)
            txid = tx.txid()
            for vout, txout in enumerate(tx.outputs):
                self.utxos[OutPoint(txid, vout)] = txout.value

        block_hash = block.block_hash()
        self.blocks[block_hash] = block
        self.hashes.append(block_hash)
        self.nonce += 1
        return block

    def pop_block(self) -> str:
        """Remove the tip block and return its hash."""
        block_hash = self.hashes.pop()
        self.blocks.pop(block_hash, None)
        return block_hash

    def broadcast_tx(self, template: TransactionTemplate) -> str:
        """Build a transaction from ``template``, add it to the mempool and return its txid."""
        total_value = 0
        inputs = []
        for i, (height, tx_index, vout) in enumerate(template.inputs):
            tx = self.blocks[self.hashes[height]].txdata[tx_index]
            total_value += tx.outputs[vout].value
            inputs.append(
                TxIn(
                    OutPoint(tx.txid(), vout),
                    b"",
                    SEQUENCE_MAX,
                    template.witness if i == 0 else (),
                )
            )

        if template.fee > total_value:
            raise ValueError("fee exceeds total input value")
        value_per_output = (total_value - template.fee) // template.outputs
        if value_per_output * template.outputs + template.fee != total_value:
            raise ValueError("input value does not divide evenly between outputs")

        outputs = [
            TxOut(
                template.output_values[i] if i < len(template.output_values) else value_per_output,
                b"",
            )
            for i in range(template.outputs)
        ]
        tx = Transaction(version=0, lock_time=0, inputs=inputs, outputs=outputs)
        self.mempool.append(tx)
        return tx.txid()

    def get_confirmations(self, tx: Transaction) -> int:
        """Number of blocks from the one holding ``tx`` to the tip, or 0 if unmined."""
        for depth, block_hash in enumerate(reversed(self.hashes)):
            if tx in self.blocks[block_hash].txdata:
                return depth + 1
        return 0