import pytest

from nzi.focus import DIRECTIONS, Focus

ALL = list(Focus)

EXPECTED_MOVES = {
    (Focus.MAP, "up"): Focus.MAP,
    (Focus.MAP, "down"): Focus.TIME_CONVERT,
    (Focus.MAP, "left"): Focus.MAP,
    (Focus.MAP, "right"): Focus.WEATHER,
    (Focus.WEATHER, "up"): Focus.WEATHER,
    (Focus.WEATHER, "down"): Focus.TIME_CONVERT,
    (Focus.WEATHER, "left"): Focus.MAP,
    (Focus.WEATHER, "right"): Focus.WEATHER,
    (Focus.TIME_CONVERT, "up"): Focus.WEATHER,
    (Focus.TIME_CONVERT, "down"): Focus.TIME_CONVERT,
    (Focus.TIME_CONVERT, "left"): Focus.MAP,
    (Focus.TIME_CONVERT, "right"): Focus.CURRENCY,
    (Focus.CURRENCY, "up"): Focus.WEATHER,
    (Focus.CURRENCY, "down"): Focus.CURRENCY,
    (Focus.CURRENCY, "left"): Focus.TIME_CONVERT,
    (Focus.CURRENCY, "right"): Focus.CURRENCY,
}


@pytest.mark.parametrize("focus", ALL)
def test_ring_wraps_after_four_steps(focus):
    forward = focus
    backward = focus
    for _ in range(4):
        forward = forward.next()
        backward = backward.prev()
    assert forward is focus
    assert backward is focus


@pytest.mark.parametrize("focus", ALL)
def test_next_then_prev_is_identity(focus):
    assert focus.next().prev() is focus
    assert focus.prev().next() is focus


def test_ring_order():
    assert Focus.MAP.next() is Focus.WEATHER
    assert Focus.WEATHER.next() is Focus.TIME_CONVERT
    assert Focus.TIME_CONVERT.next() is Focus.CURRENCY
    assert Focus.CURRENCY.next() is Focus.MAP


def test_move_table_is_total_and_exact():
    assert set(DIRECTIONS) == {"up", "down", "left", "right"}
    for focus in ALL:
        for direction in DIRECTIONS:
            assert focus.move(direction) is EXPECTED_MOVES[(focus, direction)]


def test_direction_helpers_match_move():
    for focus in ALL:
        assert focus.up() is focus.move("up")
        assert focus.down() is focus.move("down")
        assert focus.left() is focus.move("left")
        assert focus.right() is focus.move("right")


def test_only_time_and_currency_are_editable():
    assert [f for f in ALL if f.editable] == [Focus.TIME_CONVERT, Focus.CURRENCY]
