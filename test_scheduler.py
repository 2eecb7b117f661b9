"""Tests for the deferred callback scheduler."""

from touchscreen_sketch.core.scheduler import CallbackScheduler, ManualClock


def test_calls_fire_in_due_order():
    clock = ManualClock()
    scheduler = CallbackScheduler(clock)
    fired = []
    scheduler.schedule(0.2, lambda: fired.append('late'))
    scheduler.schedule(0.1, lambda: fired.append('early'))

    assert scheduler.run_due() == 0
    clock.advance(0.15)
    scheduler.run_due()
    assert fired == ['early']
    clock.advance(0.1)
    scheduler.run_due()
    assert fired == ['early', 'late']
    assert scheduler.pending_count == 0


def test_cancelled_call_never_fires():
    clock = ManualClock()
    scheduler = CallbackScheduler(clock)
    fired = []
    call = scheduler.schedule(0.1, lambda: fired.append(1))

    assert call.cancel()
    clock.advance(1)
    scheduler.run_due()
    assert fired == []


def test_fire_early_runs_once():
    clock = ManualClock()
    scheduler = CallbackScheduler(clock)
    fired = []
    call = scheduler.schedule(0.1, lambda: fired.append(1))

    call.fire()
    clock.advance(1)
    scheduler.run_due()
    assert fired == [1]
    assert not call.cancel()
