"""Tests for the session timer."""
import asyncio

import pytest

from speaking_practice.session.timer import SessionTimer
from tests.conftest import FakeClock


def test_timer_counts_whole_seconds_from_start():
    clock = FakeClock()
    timer = SessionTimer(clock=clock)
    timer.start()

    clock.advance(2.7)
    assert timer.tick() == 2
    clock.advance(0.4)
    assert timer.tick() == 3


def test_timer_does_not_advance_before_start():
    clock = FakeClock()
    timer = SessionTimer(clock=clock)
    clock.advance(10)

    assert timer.tick() == 0
    assert not timer.started


def test_second_start_is_ignored():
    clock = FakeClock()
    timer = SessionTimer(clock=clock)
    timer.start()
    clock.advance(5)
    timer.start()
    clock.advance(5)

    assert timer.tick() == 10


def test_stop_freezes_elapsed_value():
    clock = FakeClock()
    timer = SessionTimer(clock=clock)
    timer.start()
    clock.advance(31)
    timer.stop()
    clock.advance(100)

    assert timer.tick() == 31
    assert timer.elapsed_seconds == 31
    assert not timer.running


def test_elapsed_never_decreases():
    clock = FakeClock()
    timer = SessionTimer(clock=clock)
    timer.start()
    clock.advance(5)
    timer.tick()
    clock.advance(-3)

    assert timer.tick() == 5


def test_tick_listeners_fire_on_increase_only():
    clock = FakeClock()
    timer = SessionTimer(clock=clock)
    ticks = []
    timer.add_tick_listener(ticks.append)
    timer.start()

    clock.advance(1)
    timer.tick()
    timer.tick()
    clock.advance(1)
    timer.tick()

    assert ticks == [1, 2]


@pytest.mark.asyncio
async def test_running_timer_ticks_on_its_own():
    clock = FakeClock()
    timer = SessionTimer(clock=clock, tick_interval=0.01)
    ticks = []
    timer.add_tick_listener(ticks.append)
    timer.start()

    clock.advance(1)
    await asyncio.sleep(0.05)
    timer.stop()

    assert ticks == [1]
