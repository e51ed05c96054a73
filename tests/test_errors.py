import pytest

from ordwallet.errors import (
    BuildError,
    DuplicateAddress,
    Dust,
    InvariantError,
    NotEnoughCardinalUtxos,
    NotInWallet,
    OutOfRange,
    UtxoContainsAdditionalInscription,
    ValueOverflow,
)
from ordwallet.testing import change, inscription_id, recipient, satpoint


def test_not_enough_cardinal_utxos_message():
    assert str(NotEnoughCardinalUtxos()) == (
        "wallet does not contain enough cardinal UTXOs, "
        "please add additional funds to wallet."
    )


def test_value_overflow_message():
    assert str(ValueOverflow()) == "arithmetic overflow calculating value"


def test_duplicate_address_message_and_field():
    error = DuplicateAddress(recipient())
    assert str(error) == f"duplicate input address: {recipient()}"
    assert error.address == recipient()


def test_dust_message():
    error = Dust(1, 294)
    assert str(error) == (
        "output value is below dust value: 0.00000001 BTC < 0.00000294 BTC"
    )
    assert (error.output_value, error.dust_value) == (1, 294)


def test_not_in_wallet_message():
    point = satpoint(2, 0)
    assert str(NotInWallet(point)) == f"outgoing satpoint {point} not in wallet"


def test_out_of_range_message():
    point = satpoint(1, 4)
    error = OutOfRange(point, 3)
    assert str(error) == f"outgoing satpoint {point} offset higher than maximum 3"
    assert error.maximum == 3


def test_additional_inscription_message():
    error = UtxoContainsAdditionalInscription(
        satpoint(1, 0), satpoint(1, 500), inscription_id(1)
    )
    assert str(error) == (
        f"cannot send {satpoint(1, 0)} without also sending "
        f"inscription {inscription_id(1)} at {satpoint(1, 500)}"
    )


def test_errors_compare_by_fields():
    assert DuplicateAddress(change(0)) == DuplicateAddress(change(0))
    assert not DuplicateAddress(change(0)) == DuplicateAddress(change(1))
    assert Dust(1, 294) == Dust(1, 294)
    assert not Dust(1, 294) == Dust(2, 294)
    assert NotEnoughCardinalUtxos() == NotEnoughCardinalUtxos()


def test_errors_of_different_kinds_are_unequal():
    assert not NotEnoughCardinalUtxos() == ValueOverflow()
    assert not NotInWallet(satpoint(1, 0)) == OutOfRange(satpoint(1, 0), 0)


def test_equal_errors_hash_equally():
    first = UtxoContainsAdditionalInscription(
        satpoint(1, 0), satpoint(1, 500), inscription_id(1)
    )
    second = UtxoContainsAdditionalInscription(
        satpoint(1, 0), satpoint(1, 500), inscription_id(1)
    )
    assert {first, second} == {first}


def test_build_errors_can_be_caught_as_base():
    with pytest.raises(BuildError) as info:
        raise NotInWallet(satpoint(3, 0))
    assert info.value.satpoint == satpoint(3, 0)


def test_invariant_error_is_assertion():
    error = InvariantError("invariant: fee estimation is correct")
    with pytest.raises(AssertionError) as info:
        raise error
    assert info.value is error
    assert str(info.value) == "invariant: fee estimation is correct"