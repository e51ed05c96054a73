# ordwallet

Wallet logic for tracking individual satoshis ("sats") and the inscriptions
they carry. The package uses only the Python standard library and runs on
Python 3.10 or later.

## What is in the package

- `ordwallet.primitives`: addresses (segwit and legacy parsing), outpoints,
  satpoints, inscription ids, transactions with consensus serialisation,
  txid, weight and virtual size, dust limits, and `FeeRate`.
- `ordwallet.transaction_builder`: `build_transaction_with_postage`,
  `build_transaction_with_value`, and the step-by-step `TransactionBuilder`
  with its `Target`. These move one chosen sat to a recipient without
  spending any other inscribed sat. Only cardinal (uninscribed) UTXOs are
  picked for padding and fees. The outgoing sat is aligned to the first
  position of the recipient output, excess value is stripped into change,
  and the fee is deducted at the given rate.
- `ordwallet.errors`: `BuildError` and its subclasses (`DuplicateAddress`,
  `Dust`, `NotEnoughCardinalUtxos`, `NotInWallet`, `OutOfRange`,
  `UtxoContainsAdditionalInscription`, `ValueOverflow`). It also has
  `InvariantError`, a subclass of `AssertionError`. The builder raises it
  when a built transaction breaks one of its checks.
- `ordwallet.wallet`: views over unspent outputs. These are
  `cardinal_balance`, `cardinal_utxos`, `list_outputs`,
  `wallet_inscriptions` and `explorer_url`.
- `ordwallet.sats`: `sats_from_tsv` finds listed sats within sat ranges.
- `ordwallet.clock`: `clock_hands` gives the subsidy, epoch and
  difficulty-period hand angles for a block height.
- `ordwallet.tally`: `tally` writes counted nouns.
- `ordwallet.mockchain` and `ordwallet.mocknode`: an in-memory chain
  (`ChainState`) and node (`MockNode`). Together they mine blocks, keep a
  mempool, track UTXOs, lock outputs and record sends.
- `ordwallet.testing`: fixed outpoints, satpoints, addresses and inscription
  ids for test scenarios.

## Installation

```
pip install ordwallet
```

To run the test suite:

```
pip install "ordwallet[test]"
pytest
```

## Building a transaction

```python
from ordwallet.primitives import FeeRate
from ordwallet.testing import change, outpoint, recipient, satpoint
from ordwallet.transaction_builder import build_transaction_with_postage

tx = build_transaction_with_postage(
    satpoint(1, 0),              # the sat to send
    {},                          # inscriptions: SatPoint -> InscriptionId
    {outpoint(1): 5_000},        # wallet UTXOs and their values in sats
    recipient(),
    [change(0), change(1)],      # two distinct change addresses
    FeeRate(1.0),
)
print([out.value for out in tx.outputs])  # [4901]
```

`build_transaction_with_value` works the same way, with one difference: it
sends the requested amount to the recipient. The recipient may get slightly
more when splitting off the excess would cost more than it is worth.

## Finding sats from a list

```python
from ordwallet.sats import sats_from_tsv
from ordwallet.testing import outpoint

sats_from_tsv([(outpoint(1), [(0, 2)])], "1\n0\n")
# [(outpoint(1), "0"), (outpoint(1), "1")]
```

Only the first column is read, and empty lines and lines starting with `#`
are skipped. A value that is not a sat number raises `ValueError` naming the
line.

## Counting nouns

```python
from ordwallet.tally import tally

tally("foo", 1)  # "1 foo"
tally("foo", 2)  # "2 foos"
```

## Testing against an in-memory node

```python
from ordwallet.mocknode import MockNode

node = MockNode()
node.mine_blocks(1)
node.get_block_count()  # 1
```

Lookups of missing blocks, transactions or wallets raise `NotFoundError`.

## What the package does not do

The package has no command-line program. It does not index the chain. It
does not connect to a real node, and it does not sign, broadcast or create
inscriptions. The wallet functions work on maps of unspent outputs and
inscriptions that you supply. `MockNode` is an in-process object, not a
network server.