import pytest

from ordwallet.clock import clock_hands


@pytest.mark.parametrize(
    "height, expected",
    [
        (0, 0.0),
        (504, 90.0),
        (1008, 180.0),
        (1512, 270.0),
        (2016, 0.0),
        (6930000, 180.0),
        (6930504, 270.0),
    ],
)
def test_second(height, expected):
    assert clock_hands(height).second == expected


@pytest.mark.parametrize(
    "height, expected",
    [
        (0, 0.0),
        (52500, 90.0),
        (105000, 180.0),
        (157500, 270.0),
        (210000, 0.0),
        (6930000, 0.0),
        (6930001, 0.0),
    ],
)
def test_minute(height, expected):
    assert clock_hands(height).minute == expected


@pytest.mark.parametrize(
    "height, expected",
    [
        (0, 0.0),
        (1732500, 90.0),
        (3465000, 180.0),
        (5197500, 270.0),
        (6930000, 0.0),
        (6930001, 0.0),
    ],
)
def test_hour(height, expected):
    assert clock_hands(height).hour == expected


def test_final_subsidy_height():
    hands = clock_hands(6929999)
    assert hands.second == 1007.0 / 2016.0 * 360.0
    assert hands.minute == 209_999.0 / 210_000.0 * 360.0
    assert hands.hour == 6929999.0 / 6930000.0 * 360.0


def test_first_post_subsidy_height():
    hands = clock_hands(6930000)
    assert hands.second == 180.0
    assert hands.minute == 0.0
    assert hands.hour == 0.0


def test_final_subsidy_height_renders_like_svg_angles():
    hands = clock_hands(6929999)
    assert repr(hands.hour) == "359.9999480519481"
    assert repr(hands.minute) == "359.9982857142857"
    assert repr(hands.second) == "179.82142857142858"
    assert hands.height == 6929999


def test_negative_height_rejected():
    with pytest.raises(ValueError):
        clock_hands(-1)