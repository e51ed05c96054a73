import dataclasses
import math

import pytest

from ordwallet.primitives import (
    SEQUENCE_ENABLE_RBF_NO_LOCKTIME,
    SEQUENCE_MAX,
    Address,
    FeeRate,
    InscriptionId,
    Network,
    OutPoint,
    SatPoint,
    Transaction,
    TxIn,
    TxOut,
    compact_size,
    dust_value,
    script_push_int,
)

BIP_ADDRESS = "bc1qw508d6qejxtdg4y5r3zarvary0c5xw7kv8f3t4"
TESTNET_ADDRESS = "tb1q6en7qjxgw4ev8xwx94pzdry6a6ky7wlfeqzunz"
P2TR_ADDRESS = "bc1pxwww0ct9ue7e8tdnlmug5m2tamfn7q06sahstg39ys4c9f3340qqxrdu9k"
P2PKH_ADDRESS = "1111111111111111111114oLvT2"
ONES = "1" * 64


def _estimate_tx(inputs, outputs):
    return Transaction(
        version=1,
        lock_time=0,
        inputs=[
            TxIn(OutPoint.null(), b"", SEQUENCE_ENABLE_RBF_NO_LOCKTIME, (bytes(64),))
            for _ in range(inputs)
        ],
        outputs=[TxOut(0, address.script_pubkey()) for address in outputs],
    )


def test_p2wpkh_script_pubkey():
    assert Address.parse(BIP_ADDRESS).script_pubkey() == bytes.fromhex(
        "0014751e76e8199196d454941c45d1b3a323f1433bd6"
    )


def test_p2pkh_script_pubkey_of_zero_hash():
    assert Address.parse(P2PKH_ADDRESS).script_pubkey() == bytes.fromhex(
        "76a914" + "00" * 20 + "88ac"
    )


def test_address_networks():
    assert Address.parse(BIP_ADDRESS).network is Network.BITCOIN
    assert Address.parse(TESTNET_ADDRESS).network is Network.TESTNET
    assert Address.parse(P2PKH_ADDRESS).network is Network.BITCOIN


def test_address_str_round_trip():
    assert str(Address.parse(P2TR_ADDRESS)) == P2TR_ADDRESS
    assert str(Address.parse(P2PKH_ADDRESS)) == P2PKH_ADDRESS


def test_uppercase_address_equals_lowercase():
    assert Address.parse(BIP_ADDRESS.upper()) == Address.parse(BIP_ADDRESS)


def test_mixed_case_address_rejected():
    with pytest.raises(ValueError):
        Address.parse("bc1Qw508d6qejxtdg4y5r3zarvary0c5xw7kv8f3t4")


def test_bad_bech32_checksum_rejected():
    with pytest.raises(ValueError):
        Address.parse(BIP_ADDRESS[:-1] + "5")


def test_bad_base58_checksum_rejected():
    with pytest.raises(ValueError):
        Address.parse(P2PKH_ADDRESS[:-1] + "3")


def test_garbage_address_rejected():
    with pytest.raises(ValueError):
        Address.parse("not an address")


def test_addresses_hash_and_order():
    first = Address.parse(BIP_ADDRESS)
    second = Address.parse(TESTNET_ADDRESS)
    assert len({first, Address.parse(BIP_ADDRESS), second}) == 2
    assert sorted([second, first]) == sorted([first, second])


def test_dust_value_of_p2wpkh():
    assert dust_value(Address.parse(TESTNET_ADDRESS).script_pubkey()) == 294


def test_dust_value_of_op_return_is_zero():
    assert dust_value(bytes([0x6A, 0x01, 0x00])) == 0


def test_witness_outputs_have_lower_dust_than_legacy():
    witness = dust_value(Address.parse(BIP_ADDRESS).script_pubkey())
    legacy = dust_value(Address.parse(P2PKH_ADDRESS).script_pubkey())
    taproot = dust_value(Address.parse(P2TR_ADDRESS).script_pubkey())
    assert witness < legacy
    assert witness < taproot < legacy


@pytest.mark.parametrize("n", [0, 1, 0xFC])
def test_compact_size_single_byte(n):
    assert compact_size(n) == bytes([n])


@pytest.mark.parametrize("n,prefix", [(0xFD, 0xFD), (0xFFFF, 0xFD), (0x10000, 0xFE), (1 << 32, 0xFF)])
def test_compact_size_prefixed(n, prefix):
    encoded = compact_size(n)
    assert encoded[0] == prefix
    assert int.from_bytes(encoded[1:], "little") == n


def test_compact_size_negative_rejected():
    with pytest.raises(ValueError):
        compact_size(-1)


def test_small_ints_are_single_consecutive_opcodes():
    opcodes = [script_push_int(n) for n in range(1, 17)]
    assert all(len(op) == 1 for op in opcodes)
    assert [op[0] - opcodes[0][0] for op in opcodes] == list(range(16))
    assert len(script_push_int(0)) == 1
    assert len(script_push_int(-1)) == 1


def test_larger_ints_are_pushed_as_data():
    pushed = script_push_int(17)
    assert pushed[0] == len(pushed) - 1
    assert int.from_bytes(pushed[1:], "little") == 17


def test_negative_ints_carry_sign_bit():
    pushed = script_push_int(-17)
    assert pushed[-1] & 0x80
    assert int.from_bytes(pushed[1:], "little") & 0x7F == 17


def test_outpoint_round_trip():
    text = f"{ONES}:1"
    assert str(OutPoint.parse(text)) == text


def test_null_outpoint():
    null = OutPoint.null()
    assert null.is_null()
    assert str(null) == "0000000000000000000000000000000000000000000000000000000000000000:4294967295"
    assert not OutPoint(ONES, 1).is_null()


@pytest.mark.parametrize("text", [ONES, f"{ONES}:01", f"{ONES}:1:2", "xyz:1", f"{ONES}:", f"{ONES}:4294967296"])
def test_outpoint_parse_errors(text):
    with pytest.raises(ValueError):
        OutPoint.parse(text)


def test_outpoint_orders_by_internal_byte_order():
    low_display = OutPoint("01" + "00" * 31, 0)
    high_display = OutPoint("00" * 31 + "01", 0)
    assert sorted([high_display, low_display]) == [low_display, high_display]
    assert OutPoint(ONES, 0) < OutPoint(ONES, 1)


def test_satpoint_round_trip():
    text = f"{ONES}:1:0"
    satpoint = SatPoint.parse(text)
    assert str(satpoint) == text
    assert satpoint == SatPoint(OutPoint(ONES, 1), 0)


def test_satpoint_parse_error():
    with pytest.raises(ValueError):
        SatPoint.parse(f"{ONES}:1:x")


def test_inscription_id_round_trip():
    text = f"{ONES}i1"
    assert str(InscriptionId.parse(text)) == text


@pytest.mark.parametrize("text", [ONES, f"{ONES}x1", f"{ONES}i", f"{ONES}ix"])
def test_inscription_id_parse_errors(text):
    with pytest.raises(ValueError):
        InscriptionId.parse(text)


def test_additional_input_vbytes():
    before = _estimate_tx(0, []).vsize()
    after = _estimate_tx(1, []).vsize()
    assert after - before == 58


def test_additional_output_vbytes():
    before = _estimate_tx(0, []).vsize()
    after = _estimate_tx(0, [Address.parse(P2TR_ADDRESS)]).vsize()
    assert after - before == 43


def test_empty_legacy_serialization():
    assert Transaction().serialize(include_witness=False) == bytes.fromhex("01000000000000000000")


def test_vsize_rounds_weight_up():
    tx = _estimate_tx(3, [Address.parse(BIP_ADDRESS)])
    assert tx.vsize() * 4 >= tx.weight() > (tx.vsize() - 1) * 4


def test_weight_without_witness_is_four_times_size():
    tx = Transaction(
        inputs=[TxIn(OutPoint(ONES, 1))],
        outputs=[TxOut(5, Address.parse(BIP_ADDRESS).script_pubkey())],
    )
    assert tx.weight() == 4 * tx.size()
    assert tx.size() == len(tx.serialize())


def test_size_matches_serialized_length_with_witness():
    tx = _estimate_tx(2, [Address.parse(BIP_ADDRESS), Address.parse(P2TR_ADDRESS)])
    assert tx.size() == len(tx.serialize())


def test_witness_does_not_change_txid():
    with_witness = _estimate_tx(1, [Address.parse(BIP_ADDRESS)])
    stripped = Transaction(
        version=with_witness.version,
        lock_time=with_witness.lock_time,
        inputs=[dataclasses.replace(txin, witness=()) for txin in with_witness.inputs],
        outputs=with_witness.outputs,
    )
    assert with_witness.txid() == stripped.txid()
    assert with_witness.serialize(include_witness=False) == stripped.serialize()
    assert len(with_witness.txid()) == 64


def test_different_transactions_have_different_txids():
    first = Transaction(outputs=[TxOut(1)])
    second = Transaction(outputs=[TxOut(2)])
    assert first.txid() != second.txid()
    assert first.txid() == Transaction(outputs=(TxOut(1),)).txid()


def test_rbf_signalling():
    rbf = Transaction(inputs=[TxIn(OutPoint(ONES, 1), sequence=SEQUENCE_ENABLE_RBF_NO_LOCKTIME)])
    final = Transaction(inputs=[TxIn(OutPoint(ONES, 1), sequence=SEQUENCE_MAX)])
    assert rbf.is_explicitly_rbf() is True
    assert final.is_explicitly_rbf() is False


def test_transaction_equality_ignores_sequence_type():
    txin = TxIn(OutPoint(ONES, 1))
    assert Transaction(inputs=[txin]) == Transaction(inputs=(txin,))


@pytest.mark.parametrize("rate", [1.0, 3.3, 17.3, 0.5])
@pytest.mark.parametrize("vsize", [0, 1, 3, 141, 1000])
def test_fee_is_rate_rounded_up(rate, vsize):
    fee = FeeRate(rate).fee(vsize)
    assert fee >= rate * vsize
    assert fee - rate * vsize < 1


def test_fee_at_unit_rate_equals_vsize():
    assert FeeRate(1.0).fee(250) == 250


@pytest.mark.parametrize("rate", [-1.0, math.nan, math.inf, -0.0])
def test_invalid_fee_rates_rejected(rate):
    with pytest.raises(ValueError):
        FeeRate(rate)