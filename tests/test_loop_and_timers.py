import pytest

from data.models import InputEvent
from experiment.animation import AnimationPhase, AnimationSequence
from experiment.loop import KEYBOARD, EventLoop
from experiment.timers import TimerSet


def test_call_fires_at_due_time_not_before(harness):
    fired = []
    harness.loop.call_later(100, lambda: fired.append(harness.clock.now))

    harness.advance_to(99)
    assert fired == []
    harness.advance_to(100)
    assert fired == [100]


def test_same_due_time_fires_in_registration_order(harness):
    order = []
    for name in ("a", "b", "c"):
        harness.loop.call_later(50, lambda n=name: order.append(n))

    harness.advance_to(50)
    assert order == ["a", "b", "c"]


def test_negative_delay_is_rejected():
    loop = EventLoop(clock=lambda: 0)
    with pytest.raises(ValueError):
        loop.call_later(-1, lambda: None)
    with pytest.raises(ValueError):
        TimerSet(loop).schedule(-5, lambda: None)


def test_cancel_all_prevents_every_pending_callback(harness):
    timers = TimerSet(harness.loop)
    fired = []
    timers.schedule(10, lambda: fired.append(10))
    timers.schedule(20, lambda: fired.append(20))
    assert len(timers) == 2

    timers.cancel_all()
    timers.cancel_all()
    harness.advance_to(1000)

    assert fired == []
    assert len(timers) == 0
    assert harness.loop.pending() == 0


def test_cancel_all_from_earlier_callback_wins_over_same_tick_timer(harness):
    timers = TimerSet(harness.loop)
    fired = []
    timers.schedule(100, lambda: (fired.append("first"), timers.cancel_all()))
    timers.schedule(100, lambda: fired.append("second"))

    harness.advance_to(100)
    assert fired == ["first"]


def test_fired_timer_leaves_pending_set(harness):
    timers = TimerSet(harness.loop)
    timers.schedule(0, lambda: None)
    timers.schedule(30, lambda: None)

    harness.advance_to(0)
    assert len(timers) == 1


def test_dispatch_reaches_only_active_subscribers(harness):
    seen = []
    sub = harness.loop.subscribe(KEYBOARD, lambda ev: seen.append(ev.code))
    harness.loop.dispatch(InputEvent(KEYBOARD, "a"))
    harness.loop.unsubscribe(sub)
    harness.loop.dispatch(InputEvent(KEYBOARD, "b"))

    assert seen == ["a"]


def test_animation_runs_phases_in_order_at_their_offsets(harness):
    timers = TimerSet(harness.loop)
    log = []
    phases = [
        AnimationPhase("settle", 300, lambda: log.append(("settle", harness.clock.now))),
        AnimationPhase("start", 0, lambda: log.append(("start", harness.clock.now))),
        AnimationPhase("flash", 120, lambda: log.append(("flash", harness.clock.now))),
    ]
    harness.advance_to(1000)
    seq = AnimationSequence(phases)
    seq.start(timers)

    assert log == [("start", 1000)]
    assert seq.current == "start"

    harness.advance_to(1500)
    assert log == [("start", 1000), ("flash", 1120), ("settle", 1300)]
    assert seq.finished


def test_animation_stops_when_timers_are_cancelled(harness):
    timers = TimerSet(harness.loop)
    log = []
    seq = AnimationSequence([AnimationPhase(str(t), t, lambda t=t: log.append(t)) for t in (0, 100, 200)])
    seq.start(timers)

    harness.advance_to(150)
    timers.cancel_all()
    harness.advance_to(1000)

    assert log == [0, 100]
    assert not seq.finished
