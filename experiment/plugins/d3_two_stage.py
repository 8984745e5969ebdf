from data.models import ResponseEvent, TrialConfig, TrialConfigError, TrialResult
from experiment.display import CIRCLE, IMAGE, TEXT, DisplayItem
from experiment.listeners import LATCH, RT_DATE
from experiment.loop import KEYBOARD
from experiment.plugins.base import Param, TrialPlugin, as_lines, gap_ms, normalize_choices, optional_ms

STIMULUS_ID = "two-stage"
MARKER_ID = "pressed-marker"

# картинки роботов рисуются 540x720
IMAGE_WIDTH = 540
IMAGE_HEIGHT = 720
MARKER_X = 269
MARKER_Y = 362
MARKER_R = 30


class D3TwoStagePlugin(TrialPlugin):
    name = "d3-two-stage"
    parameters = {
        "stimuli": Param(description="The image to be displayed."),
        "choices": Param(default=["space"], array=True),
        "prompt": Param(default=None),
        "stimulus_duration": Param(default=None),
        "trial_duration": Param(default=None),
    }

    @classmethod
    def build_config(cls, values) -> TrialConfig:
        stimulus = values["stimuli"]
        if isinstance(stimulus, (list, tuple)):
            if len(stimulus) != 1:
                raise TrialConfigError(f"{cls.name}: expects a single image")
            stimulus = stimulus[0]
        if stimulus is None:
            raise TrialConfigError(f"{cls.name}: stimuli is required")
        choices = normalize_choices(values["choices"])
        if not choices:
            raise TrialConfigError(f"{cls.name}: choices must name at least one key")
        return TrialConfig(
            trial_type=cls.name,
            stimuli=(stimulus,),
            choices=choices,
            prompt=as_lines(values["prompt"]),
            stimulus_duration=optional_ms("stimulus_duration", values["stimulus_duration"]),
            trial_duration=optional_ms("trial_duration", values["trial_duration"]),
            post_trial_gap=gap_ms(values),
        )

    def __init__(self, config, context) -> None:
        super().__init__(config, context)
        self.choice_pressed = 0
        self.left = (self.layout.width - IMAGE_WIDTH) / 2
        self.top = (self.layout.height - IMAGE_HEIGHT) / 2

    def start(self, ctrl) -> None:
        display = ctrl.display
        display.add(
            DisplayItem(STIMULUS_ID, IMAGE, x=self.left, y=self.top, w=IMAGE_WIDTH, h=IMAGE_HEIGHT,
                        ref=self.config.stimuli[0])
        )
        if self.config.prompt:
            display.add(
                DisplayItem("prompt", TEXT, x=self.left, y=self.top + IMAGE_HEIGHT, lines=self.config.prompt)
            )

        # каждое нажатие идёт в журнал, первое подходящее ещё и рисует кружок
        ctrl.listen(
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
        ctrl.log_event(event)
        self.choice_pressed = 1
        ctrl.display.add_class(STIMULUS_ID, "responded")
        ctrl.display.add(
            DisplayItem(
                MARKER_ID,
                CIRCLE,
                x=self.left + MARKER_X,
                y=self.top + MARKER_Y,
                w=MARKER_R * 2,
                h=MARKER_R * 2,
                fill=(0, 0, 0),
            )
        )
        ctrl.mark_responded()

    def build_result(self, ctrl) -> TrialResult:
        state = ctrl.state
        data = {
            "stimulus": self.config.stimuli[0],
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
