import pytest

from nzi.clock import AppClock


def test_tick_due_after_interval(clock):
    app_clock = AppClock(tick_ms=250, clock=clock)
    assert not app_clock.tick_due()
    clock.advance(0.125)
    assert not app_clock.tick_due()
    assert app_clock.seconds_until_tick() == pytest.approx(0.125)
    clock.advance(0.125)
    assert app_clock.tick_due()
    app_clock.mark_tick()
    assert not app_clock.tick_due()


def test_refresh_due_strictly_after_five_minutes(clock):
    app_clock = AppClock(clock=clock)
    clock.advance(300)
    assert not app_clock.refresh_due()
    clock.advance(0.5)
    assert app_clock.refresh_due()
    app_clock.mark_refresh()
    assert not app_clock.refresh_due()


def test_tick_and_refresh_are_independent(clock):
    app_clock = AppClock(tick_ms=250, refresh_seconds=1.0, clock=clock)
    ticks = 0
    for _ in range(5):
        clock.advance(0.25)
        if app_clock.tick_due():
            app_clock.mark_tick()
            ticks += 1
    assert ticks == 5
    assert app_clock.refresh_due()


def test_set_tick_ms_clamps_to_positive(clock):
    app_clock = AppClock(clock=clock)
    app_clock.set_tick_ms(250)
    assert app_clock.tick_interval == pytest.approx(0.25)
    app_clock.set_tick_ms(0)
    assert app_clock.tick_interval == pytest.approx(0.001)
    assert app_clock.seconds_until_tick() >= 0.0
