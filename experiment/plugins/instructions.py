from data.models import ResponseEvent, TrialConfig, TrialResult
from experiment.audio import ScopedPlayback
from experiment.display import CIRCLE, IMAGE, TEXT, DisplayItem
from experiment.listeners import GATE, RT_PERFORMANCE
from experiment.loop import KEYBOARD, POINTER
from experiment.plugins.base import ALL_KEYS, Param, TrialPlugin, as_lines, gap_ms, normalize_choices

BUTTON_ID = "continue-button"
BUTTON_CODE = "continue"
BUTTON_RADIUS = 25
RED = (255, 0, 0)
GREEN = (0, 128, 0)
BLACK = (0, 0, 0)


class InstructionsPlugin(TrialPlugin):
    """
    Страница инструкции: фон, картинки, текст и аудио.

    Дальше можно пройти только после клика по кружку:
    кружок становится зелёным, и тогда нажатие клавиши завершает trial.
    """

    name = "d3-instructions"
    parameters = {
        "stimulus": Param(default=None, description="The image to be displayed"),
        "right_text": Param(default=None),
        "left_text": Param(default=None),
        "center_text": Param(default=None),
        "reward_string": Param(default=None),
        "choices": Param(default=ALL_KEYS),
        "prompt": Param(default=None),
        "response_ends_trial": Param(default=False),
        "button_clicked": Param(default=False),
        "audio_stimulus": Param(description="The audio to be played."),
        "trial_ends_after_audio": Param(default=False),
    }

    @classmethod
    def build_config(cls, values) -> TrialConfig:
        return TrialConfig(
            trial_type=cls.name,
            stimuli=(values["stimulus"],),
            choices=normalize_choices(values["choices"]),
            prompt=as_lines(values["prompt"]),
            response_ends_trial=bool(values["response_ends_trial"]),
            post_trial_gap=gap_ms(values),
            payload={
                "right_text": values["right_text"],
                "left_text": values["left_text"],
                "center_text": values["center_text"],
                "reward_string": values["reward_string"],
                "button_clicked": bool(values["button_clicked"]),
                "audio_stimulus": values["audio_stimulus"],
                "trial_ends_after_audio": bool(values["trial_ends_after_audio"]),
            },
        )

    def __init__(self, config, context) -> None:
        super().__init__(config, context)
        self.button_clicked = config.payload["button_clicked"]

    def start(self, ctrl) -> None:
        p = self.config.payload
        layout = self.layout
        display = ctrl.display
        monster = layout.monster_size

        if self.config.stimuli[0] is not None:
            display.add(DisplayItem("background", IMAGE, w=layout.width, h=layout.height, ref=self.config.stimuli[0]))
        if p["right_text"] is not None:
            display.add(
                DisplayItem("right", IMAGE, x=layout.choice_x_right, y=layout.choice_y, w=monster, h=monster,
                            ref=p["right_text"])
            )
        if p["reward_string"] is not None:
            display.add(
                DisplayItem(
                    "reward",
                    IMAGE,
                    x=layout.x_center - layout.reward_size / 2,
                    y=layout.choice_y,
                    w=layout.reward_size,
                    h=layout.reward_size,
                    ref=p["reward_string"],
                )
            )
        if p["left_text"] is not None:
            display.add(
                DisplayItem("left", IMAGE, x=layout.choice_x_left, y=layout.choice_y, w=monster, h=monster,
                            ref=p["left_text"])
            )
        if p["center_text"] is not None:
            display.add(
                DisplayItem("center", IMAGE, x=layout.x_center - monster / 2, y=layout.choice_y, w=monster, h=monster,
                            ref=p["center_text"])
            )
        display.add(
            DisplayItem(
                BUTTON_ID,
                CIRCLE,
                x=layout.choice_x_right + monster,
                y=layout.choice_y + monster - 100,
                w=BUTTON_RADIUS * 2,
                h=BUTTON_RADIUS * 2,
                fill=GREEN if self.button_clicked else RED,
                stroke=BLACK,
                code=BUTTON_CODE,
            )
        )
        if self.config.prompt:
            display.add(
                DisplayItem(
                    "prompt",
                    TEXT,
                    x=layout.text_start_x,
                    y=layout.instructions_text_start_y,
                    lines=self.config.prompt,
                    font_size=int(layout.font_size),
                )
            )

        playback = None
        if p["audio_stimulus"] is not None and self.context.audio is not None:
            playback = ctrl.acquire(ScopedPlayback(self.context.audio.clip(p["audio_stimulus"])))

        ctrl.listen(POINTER, lambda ev: self._on_button(ctrl), valid_codes=[BUTTON_CODE], mode=GATE,
                    allow_held_key=True)
        if self.config.choices != ():
            ctrl.listen(
                KEYBOARD,
                lambda ev: self._on_key(ctrl, ev),
                valid_codes=self.config.choices,
                mode=GATE,
                rt_method=RT_PERFORMANCE,
            )

        if p["trial_ends_after_audio"] and playback is not None:
            ctrl.schedule(playback.length_ms, ctrl.finalize)

    def _on_button(self, ctrl) -> None:
        self.button_clicked = True
        ctrl.display.update(BUTTON_ID, fill=GREEN, stroke=BLACK)

    def _on_key(self, ctrl, event: ResponseEvent) -> None:
        if self.button_clicked or self.config.response_ends_trial:
            ctrl.respond(event)
            ctrl.finalize()
        else:
            ctrl.log_event(event)

    def build_result(self, ctrl) -> TrialResult:
        state = ctrl.state
        return TrialResult(
            trial_type=self.name,
            reaction_time=state.rt,
            response_code=state.code,
            valid_response=state.responded,
            data={
                "stimulus": self.config.stimuli[0],
                "key_press": state.code,
                "button_clicked": self.button_clicked,
            },
        )
