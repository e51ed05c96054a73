from ordwallet.tally import tally


def test_zero():
    assert tally("foo", 0) == "0 foos"


def test_one():
    assert tally("foo", 1) == "1 foo"


def test_two():
    assert tally("foo", 2) == "2 foos"