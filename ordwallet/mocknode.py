"""A simulated node exposing wallet and chain calls over an in-memory chain."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterable, Iterator

from .mockchain import Block, ChainState, Sent, TransactionTemplate
from .primitives import COIN_VALUE, Address, Network, OutPoint, Transaction

_DEFAULT_LIST_COUNT = 0xFFFF
_SENT_TXID = "0" * 64


def _txid_key(txid: str) -> bytes:
    return bytes.fromhex(txid)[::-1]


class NotFoundError(LookupError):
    """The requested block, transaction or wallet does not exist."""

    code = -8


class MockNode:
    """A node whose chain is mined on demand and whose wallet is held in memory."""

    def __init__(
        self,
        network: Network = Network.BITCOIN,
        version: int = 240000,
        fail_lock_unspent: bool = False,
    ) -> None:
        self._state = ChainState(
            network=network, version=version, fail_lock_unspent=fail_lock_unspent
        )
        self._lock = threading.Lock()

    @contextmanager
    def _locked(self) -> Iterator[ChainState]:
        with self._lock:
            yield self._state

    @property
    def network(self) -> Network:
        return self._state.network

    @property
    def version(self) -> int:
        return self._state.version

    @property
    def wallets(self) -> list[str]:
        """Names of all created wallets, sorted."""
        with self._locked() as state:
            return sorted(state.wallets)

    @property
    def sent(self) -> list[Sent]:
        """Send-to-address requests received so far."""
        with self._locked() as state:
            return list(state.sent)

    # Test controls.

    def mine_blocks(self, n: int) -> list[Block]:
        """Mine ``n`` blocks with the standard 50 BTC subsidy."""
        return self.mine_blocks_with_subsidy(n, 50 * COIN_VALUE)

    def mine_blocks_with_subsidy(self, n: int, subsidy: int) -> list[Block]:
        with self._locked() as state:
            return [state.push_block(subsidy) for _ in range(n)]

    def broadcast_tx(self, template: TransactionTemplate) -> str:
        with self._locked() as state:
            return state.broadcast_tx(template)

    def invalidate_tip(self) -> str:
        with self._locked() as state:
            return state.pop_block()

    def get_utxo_amount(self, outpoint: OutPoint) -> int | None:
        with self._locked() as state:
            return state.utxos.get(outpoint)

    def tx(self, bi: int, ti: int) -> Transaction:
        """Transaction ``ti`` of the block at height ``bi``."""
        with self._locked() as state:
            return state.blocks[state.hashes[bi]].txdata[ti]

    def mempool(self) -> list[Transaction]:
        with self._locked() as state:
            return list(state.mempool)

    def import_descriptor(self, desc: str) -> None:
        with self._locked() as state:
            state.descriptors.append(desc)

    def lock(self, output: OutPoint) -> None:
        with self._locked() as state:
            state.locked.add(output)

    def network_name(self) -> str:
        """Network name as used on the command line: ``mainnet`` for bitcoin."""
        if self._state.network is Network.BITCOIN:
            return "mainnet"
        return str(self._state.network)

    # Node calls.

    def get_block_hash(self, height: int) -> str:
        with self._locked() as state:
            if 0 <= height < len(state.hashes):
                return state.hashes[height]
        raise NotFoundError(f"block height {height} out of range")

    def get_block_count(self) -> int:
        with self._locked() as state:
            return max(len(state.hashes) - 1, 0)

    def get_block(self, block_hash: str) -> str:
        """The block as consensus-encoded hex."""
        with self._locked() as state:
            block = state.blocks.get(block_hash)
        if block is None:
            raise NotFoundError(f"block {block_hash} not found")
        return block.serialize().hex()

    def get_balance(self) -> int:
        """Trusted balance: the sum of unlocked unspent outputs."""
        return sum(amount for _, amount in self.list_unspent())

    def create_wallet(self, name: str) -> str:
        with self._locked() as state:
            state.wallets.add(name)
        return name

    def load_wallet(self, wallet: str) -> str:
        with self._locked() as state:
            if wallet not in state.wallets:
                raise NotFoundError(f"wallet {wallet} not found")
            state.loaded_wallets.add(wallet)
        return wallet

    def list_wallets(self) -> list[str]:
        with self._locked() as state:
            return sorted(state.loaded_wallets)

    def list_unspent(self) -> list[tuple[OutPoint, int]]:
        """Unlocked unspent outputs with their values, in outpoint order."""
        with self._locked() as state:
            return sorted(
                (outpoint, amount)
                for outpoint, amount in state.utxos.items()
                if outpoint not in state.locked
            )

    def list_lock_unspent(self) -> list[OutPoint]:
        with self._locked() as state:
            return sorted(state.locked)

    def lock_unspent(self, outputs: Iterable[OutPoint]) -> bool:
        """Lock ``outputs``; returns ``False`` when the node is set to refuse."""
        with self._locked() as state:
            if state.fail_lock_unspent:
                return False
            outputs = list(outputs)
            for output in outputs:
                if output not in state.utxos:
                    raise ValueError(f"cannot lock unknown output {output}")
            state.locked.update(outputs)
        return True

    def send_to_address(self, address: Address, amount: float) -> str:
        """Record a send along with the outputs locked at the time."""
        with self._locked() as state:
            state.sent.append(Sent(amount, address, sorted(state.locked)))
        return _SENT_TXID

    def send_raw_transaction(self, tx: Transaction) -> str:
        with self._locked() as state:
            state.mempool.append(tx)
        return tx.txid()

    def get_raw_transaction(self, txid: str) -> str:
        """A mined transaction as consensus-encoded hex."""
        with self._locked() as state:
            tx = state.transactions.get(txid)
        if tx is None:
            raise NotFoundError(f"transaction {txid} not found")
        return tx.serialize().hex()

    def list_transactions(self, count: int | None = None) -> list[tuple[str, int]]:
        """Pairs of txid and confirmations: up to ``count`` mined, then the mempool."""
        limit = _DEFAULT_LIST_COUNT if count is None else count
        with self._locked() as state:
            mined = sorted(state.transactions.items(), key=lambda item: _txid_key(item[0]))
            entries = [(txid, tx) for txid, tx in mined[:limit]]
            entries.extend((tx.txid(), tx) for tx in state.mempool)
            return [(txid, state.get_confirmations(tx)) for txid, tx in entries]

    def list_descriptors(self) -> list[str]:
        with self._locked() as state:
            return list(state.descriptors)