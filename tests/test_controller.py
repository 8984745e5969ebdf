import pytest

from data.models import InputEvent, ResponseEvent, TrialConfig, TrialConfigError
from experiment.controller import PHASE_AWAITING, PHASE_DONE, PHASE_RESPONDED, TrialController
from experiment.display import TEXT, DisplayItem
from experiment.listeners import LATCH
from experiment.loop import KEYBOARD
from experiment.plugins.base import TrialPlugin


class KeyOrTimeoutPlugin(TrialPlugin):
    """Заканчивается по первой подходящей клавише или по trial_duration."""

    name = "key-or-timeout"

    def __init__(self, config, context, resources=()):
        super().__init__(config, context)
        self.resources = resources
        self.responses = 0

    def start(self, ctrl):
        ctrl.display.add(DisplayItem("stimulus", TEXT, lines=("+",)))
        for r in self.resources:
            ctrl.acquire(r)
        ctrl.listen(KEYBOARD, lambda ev: self._on_key(ctrl, ev), valid_codes=self.config.choices, mode=LATCH,
                    on_other=ctrl.log_event)
        if self.config.trial_duration is not None:
            ctrl.schedule(self.config.trial_duration, ctrl.finalize)

    def _on_key(self, ctrl, event):
        self.responses += 1
        ctrl.respond(event)
        ctrl.mark_responded()
        if self.config.response_ends_trial:
            ctrl.finalize()


class Resource:
    def __init__(self, name, log):
        self.name = name
        self.log = log

    def acquire(self):
        self.log.append(("acquire", self.name))

    def release(self):
        self.log.append(("release", self.name))


def _start(harness, resources=(), **kwargs):
    config = TrialConfig(trial_type="key-or-timeout", **kwargs)
    plugin = KeyOrTimeoutPlugin(config, harness.context, resources)
    ctrl = TrialController(config, plugin, harness.context, finish=harness.results.append)
    harness.controller = ctrl
    ctrl.start()
    return ctrl, plugin


def test_reaction_time_is_exact_without_trial_duration(harness):
    harness.advance_to(1000)
    ctrl, _ = _start(harness, choices=("0",))
    assert ctrl.phase == PHASE_AWAITING

    harness.press("0", at=1370)

    assert len(harness.results) == 1
    result = harness.results[0]
    assert result.reaction_time == 370
    assert result.response_code == "0"
    assert result.valid_response
    assert ctrl.phase == PHASE_DONE


def test_timeout_emits_once_with_null_reaction_time(harness):
    ctrl, _ = _start(harness, choices=("0",), trial_duration=1000)

    harness.advance_to(999)
    assert harness.results == []
    harness.advance_to(5000)

    assert len(harness.results) == 1
    assert harness.results[0].reaction_time is None
    assert harness.results[0].response_code is None
    assert not harness.results[0].valid_response


def test_timeout_is_not_before_duration(harness):
    emitted_at = []
    config = TrialConfig(trial_type="key-or-timeout", choices=("0",), trial_duration=750)
    plugin = KeyOrTimeoutPlugin(config, harness.context)
    ctrl = TrialController(config, plugin, harness.context, finish=lambda r: emitted_at.append(harness.clock.now))
    ctrl.start()

    harness.advance_to(3000)
    assert emitted_at == [750]


def test_double_finalize_emits_one_result(harness):
    ctrl, _ = _start(harness, choices=("0",))

    ctrl.finalize()
    ctrl.finalize()

    assert len(harness.results) == 1


def test_response_and_timeout_in_same_tick_emit_once(harness):
    _start(harness, choices=("0",), trial_duration=500)
    harness.clock.now = 500
    # ответ обработан раньше таймера из той же итерации
    harness.loop.dispatch(InputEvent(KEYBOARD, "0"))
    harness.loop.run_due()

    assert len(harness.results) == 1
    assert harness.results[0].reaction_time == 500


def test_nothing_fires_after_finalize(harness):
    ctrl, plugin = _start(harness, choices=("0",), trial_duration=2000, response_ends_trial=False)
    ctrl.schedule(3000, lambda: pytest.fail("timer fired after finalize"))

    harness.press("0", at=100)
    assert ctrl.phase == PHASE_RESPONDED
    ctrl.finalize()
    snapshot = (ctrl.state.rt, ctrl.state.code, list(ctrl.state.events))

    harness.advance_to(100_000)
    harness.press("0")
    harness.press("9")

    assert plugin.responses == 1
    assert (ctrl.state.rt, ctrl.state.code, list(ctrl.state.events)) == snapshot
    assert harness.loop.pending() == 0
    assert len(harness.results) == 1


def test_unlisted_key_goes_to_aux_log_and_leaves_response_null(harness):
    ctrl, _ = _start(harness, choices=("0",), trial_duration=1000)

    harness.press("9", at=200)
    assert ctrl.state.code is None
    assert ctrl.state.rt is None
    assert [e.code for e in ctrl.state.events] == ["9"]

    harness.press("0", at=600)
    assert harness.results[0].response_code == "0"
    assert harness.results[0].reaction_time == 600


def test_resources_released_in_reverse_order_at_finalize(harness):
    log = []
    ctrl, _ = _start(harness, resources=(Resource("audio", log), Resource("keyboard", log)), choices=("0",))
    assert log == [("acquire", "audio"), ("acquire", "keyboard")]

    ctrl.finalize()
    ctrl.finalize()

    assert log[2:] == [("release", "keyboard"), ("release", "audio")]


def test_display_is_cleared_after_result(harness):
    ctrl, _ = _start(harness, choices=("0",))
    assert "stimulus" in harness.display

    harness.press("0", at=10)

    assert harness.display.items() == []
    assert harness.display.clear_count == 1


def test_response_state_rejects_mutation_after_finalize(harness):
    ctrl, _ = _start(harness, choices=("0",))
    ctrl.finalize()

    with pytest.raises(RuntimeError):
        ctrl.state.record_response(ResponseEvent("0", 10, KEYBOARD))
    # через контроллер журнал просто не пишется
    ctrl.log_event(ResponseEvent("9", 10, KEYBOARD))
    assert ctrl.state.events == []


def test_derived_value_is_computed_once(harness):
    ctrl, _ = _start(harness, choices=("0",))
    calls = []

    first = ctrl.derive("reward", lambda: calls.append(1) or "win")
    second = ctrl.derive("reward", lambda: calls.append(1) or "lose")

    assert first == second == "win"
    assert calls == [1]


def test_negative_duration_is_a_config_error():
    with pytest.raises(TrialConfigError):
        TrialConfig(trial_type="key-or-timeout", trial_duration=-1)
