from data.models import ResponseEvent, TrialConfig, TrialConfigError, TrialResult
from experiment.display import IMAGE, TEXT, DisplayItem
from experiment.listeners import LATCH, RT_DATE
from experiment.loop import KEYBOARD
from experiment.plugins.base import Param, TrialPlugin, as_lines, gap_ms, normalize_choices, optional_ms

STIMULUS_ID = "two-stage"


class TwoStagePlugin(TrialPlugin):
    """Показывает картинку и меняет её на вторую по нажатию клавиши."""

    name = "two-stage"
    parameters = {
        "stimuli": Param(array=True, description="The two images to be displayed."),
        "choices": Param(default="space", array=True, description="Key press we're looking for."),
        "prompt": Param(default=None),
        "stimulus_duration": Param(default=None, description="How long to hide the stimulus."),
        "trial_duration": Param(default=None, description="How long to show trial before it ends."),
    }

    @classmethod
    def build_config(cls, values) -> TrialConfig:
        stimuli = values["stimuli"]
        if stimuli is None or len(stimuli) != 2 or any(s is None for s in stimuli):
            raise TrialConfigError(f"{cls.name}: stimuli must hold exactly 2 images")
        choices = normalize_choices(values["choices"])
        if not choices:
            raise TrialConfigError(f"{cls.name}: choices must name at least one key")
        return TrialConfig(
            trial_type=cls.name,
            stimuli=tuple(stimuli),
            choices=choices,
            prompt=as_lines(values["prompt"]),
            stimulus_duration=optional_ms("stimulus_duration", values["stimulus_duration"]),
            trial_duration=optional_ms("trial_duration", values["trial_duration"]),
            post_trial_gap=gap_ms(values),
        )

    def __init__(self, config, context) -> None:
        super().__init__(config, context)
        self.choice_pressed = 0
        self.listener = None

    def start(self, ctrl) -> None:
        display = ctrl.display
        display.add(self._image(self.config.stimuli[0]))
        if self.config.prompt:
            display.add(self._prompt())

        self.listener = ctrl.listen(
            KEYBOARD,
            lambda ev: self._on_choice(ctrl, ev),
            valid_codes=self.config.choices,
            mode=LATCH,
            rt_method=RT_DATE,
            on_other=ctrl.log_event,
        )

        if self.config.stimulus_duration is not None:
            ctrl.schedule(self.config.stimulus_duration, lambda: display.update(STIMULUS_ID, visible=False))
        if self.config.trial_duration is not None:
            ctrl.schedule(self.config.trial_duration, ctrl.finalize)

    def _on_choice(self, ctrl, event: ResponseEvent) -> None:
        ctrl.respond(event)
        self.choice_pressed = 1
        ctrl.display.add_class(STIMULUS_ID, "responded")
        ctrl.display.update(STIMULUS_ID, ref=self.config.stimuli[1], visible=True)
        self.listener.stop()
        ctrl.mark_responded()

    def _image(self, ref) -> DisplayItem:
        return DisplayItem(STIMULUS_ID, IMAGE, x=0, y=0, w=self.layout.width, h=self.layout.height, ref=ref)

    def _prompt(self) -> DisplayItem:
        return DisplayItem(
            "prompt",
            TEXT,
            x=self.layout.text_start_x,
            y=self.layout.height * 0.9,
            lines=self.config.prompt,
            font_size=int(self.layout.font_size),
        )

    def build_result(self, ctrl) -> TrialResult:
        state = ctrl.state
        data = {
            "stimulus": list(self.config.stimuli),
            "key_press": state.code,
            "duration": self.config.trial_duration,
            "choice_pressed": self.choice_pressed,
        }
        data.update(self.aux_log(ctrl))
        return TrialResult(
            trial_type=self.name,
            reaction_time=state.rt,
            response_code=state.code,
            valid_response=bool(self.choice_pressed),
            data=data,
        )
