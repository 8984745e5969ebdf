from data.models import TrialConfig, TrialResult
from experiment.display import IMAGE, TEXT, DisplayItem
from experiment.plugins.base import Param, TrialPlugin, gap_ms, optional_ms


class FixationPlugin(TrialPlugin):
    name = "two-step-fixation"
    parameters = {
        "stimulus": Param(description="Background image, may be null."),
        "text": Param(default=None, description="Text drawn at the screen center."),
        "trial_duration": Param(default=None),
    }

    @classmethod
    def build_config(cls, values) -> TrialConfig:
        return TrialConfig(
            trial_type=cls.name,
            stimuli=(values["stimulus"],),
            choices=(),
            trial_duration=optional_ms("trial_duration", values["trial_duration"]),
            post_trial_gap=gap_ms(values),
            payload={"text": values["text"]},
        )

    def start(self, ctrl) -> None:
        stimulus = self.config.stimuli[0]
        if stimulus is not None:
            ctrl.display.add(
                DisplayItem("background", IMAGE, w=self.layout.width, h=self.layout.height, ref=stimulus)
            )
        text = self.config.payload.get("text")
        if text is not None:
            ctrl.display.add(
                DisplayItem(
                    "fixation-text",
                    TEXT,
                    x=self.layout.x_center - 3,
                    y=self.layout.y_center,
                    lines=(str(text),),
                    font_size=int(self.layout.font_size),
                )
            )
        if self.config.trial_duration is not None:
            ctrl.schedule(self.config.trial_duration, ctrl.finalize)

    def build_result(self, ctrl) -> TrialResult:
        return TrialResult(
            trial_type=self.name,
            reaction_time=None,
            response_code=None,
            valid_response=False,
            data={"stimulus": self.config.stimuli[0], "trial_stage": "fixation"},
        )
