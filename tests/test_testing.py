import pytest

from ordwallet.primitives import (
    SEQUENCE_ENABLE_RBF_NO_LOCKTIME,
    Network,
    OutPoint,
)
from ordwallet.testing import (
    address,
    blockhash,
    change,
    inscription_id,
    outpoint,
    recipient,
    satpoint,
    tx_in,
    tx_out,
    txid,
)


def test_blockhash_repeats_digit():
    assert blockhash(0) == "0" * 64
    assert blockhash(10) == "a" * 64


def test_txid_repeats_digit():
    assert txid(1) == "1" * 64


@pytest.mark.parametrize("n", [16, -1])
def test_multi_digit_values_rejected(n):
    with pytest.raises(ValueError):
        txid(n)
    with pytest.raises(ValueError):
        blockhash(n)
    with pytest.raises(ValueError):
        inscription_id(n)


def test_outpoint_text():
    assert str(outpoint(1)) == "1" * 64 + ":1"


def test_outpoint_parses_back():
    assert OutPoint.parse(str(outpoint(2))) == outpoint(2)


def test_satpoint_text():
    assert str(satpoint(1, 0)) == "1" * 64 + ":1:0"
    assert satpoint(1, 5).outpoint == outpoint(1)


def test_inscription_id_text():
    assert str(inscription_id(1)) == "1" * 64 + "i1"


def test_address_is_mainnet():
    assert address().network is Network.BITCOIN
    assert str(address()) == "bc1qw508d6qejxtdg4y5r3zarvary0c5xw7kv8f3t4"


def test_recipient_is_testnet():
    assert recipient().network is Network.TESTNET
    assert str(recipient()) == "tb1q6en7qjxgw4ev8xwx94pzdry6a6ky7wlfeqzunz"


def test_change_addresses_are_distinct():
    addresses = {change(0), change(1), change(2)}
    assert len(addresses) == 3
    assert recipient() not in addresses


def test_unknown_change_address_rejected():
    with pytest.raises(ValueError):
        change(3)


def test_tx_in_signals_rbf():
    txin = tx_in(outpoint(1))
    assert txin.previous_output == outpoint(1)
    assert txin.sequence == SEQUENCE_ENABLE_RBF_NO_LOCKTIME
    assert txin.witness == ()
    assert txin.script_sig == b""


def test_tx_out_pays_address():
    txout = tx_out(5_000, recipient())
    assert txout.value == 5_000
    assert txout.script_pubkey == recipient().script_pubkey()