import re
from typing import List, Optional

from data.models import ButtonConfig, FeedbackConfig, ResponseEvent, TrialConfig, TrialConfigError, TrialResult
from experiment.display import BUTTON, IMAGE, TEXT, DisplayItem
from experiment.listeners import LATCH
from experiment.loop import POINTER
from experiment.plugins.base import Param, TrialPlugin, as_lines, gap_ms, optional_ms
from experiment.randomization import shuffle_together

STIMULUS_ID = "mars-trial-stimulus"
TIMER_ID = "timer"
FEEDBACK_ID = "feedback"
CHOICE_TOKEN = "%choice%"


def _px(value: str) -> float:
    match = re.match(r"^\s*(-?\d+(?:\.\d+)?)\s*(px)?\s*$", str(value))
    if match is None:
        raise TrialConfigError(f"margin must be given in px, got {value!r}")
    return float(match.group(1))


class MarsTrialPlugin(TrialPlugin):
    """
    MaRs матрица: стимул и ряд кнопок-ответов.

    Правильный ответ: вариант 0 до перемешивания кнопок.
    """

    name = "mars-trial"
    parameters = {
        "stimulus": Param(),
        "choices": Param(array=True, description="The labels for the buttons."),
        "button_html": Param(default='<button class="jspsych-btn">%choice%</button>'),
        "prompt": Param(default=None),
        "stimulus_duration": Param(default=None),
        "trial_duration": Param(default=None),
        "countdown_start": Param(default=None),
        "margin_vertical": Param(default="0px"),
        "margin_horizontal": Param(default="8px"),
        "response_ends_trial": Param(default=True),
        "shuffle_buttons": Param(default=False),
        "display_feedback": Param(default=False),
        "feedback_duration": Param(default=2000),
        "pos_img": Param(default=None),
        "neg_img": Param(default=None),
    }

    @classmethod
    def build_config(cls, values) -> TrialConfig:
        if values["stimulus"] is None:
            raise TrialConfigError(f"{cls.name}: stimulus is required")
        labels = values["choices"]
        if not labels:
            raise TrialConfigError(f"{cls.name}: choices must hold at least one label")
        labels = tuple(str(c) for c in labels)

        button_html = values["button_html"]
        if isinstance(button_html, (list, tuple)):
            if len(button_html) != len(labels):
                raise TrialConfigError(
                    f"{cls.name}: the length of the button_html array does not equal the length of the choices array"
                )
            templates = tuple(button_html)
        else:
            templates = (button_html,) * len(labels)

        display_feedback = bool(values["display_feedback"])
        if display_feedback and (values["pos_img"] is None or values["neg_img"] is None):
            raise TrialConfigError(f"{cls.name}: display_feedback needs both pos_img and neg_img")

        # проверяем заранее, чтобы не упасть посреди trial-а
        _px(values["margin_vertical"])
        _px(values["margin_horizontal"])

        return TrialConfig(
            trial_type=cls.name,
            stimuli=(values["stimulus"],),
            choices=tuple(str(i) for i in range(len(labels))),
            prompt=as_lines(values["prompt"]),
            stimulus_duration=optional_ms("stimulus_duration", values["stimulus_duration"]),
            trial_duration=optional_ms("trial_duration", values["trial_duration"]),
            countdown_start=optional_ms("countdown_start", values["countdown_start"]),
            response_ends_trial=bool(values["response_ends_trial"]),
            post_trial_gap=gap_ms(values),
            feedback=FeedbackConfig(
                display=display_feedback,
                duration_ms=optional_ms("feedback_duration", values["feedback_duration"]) or 0,
                positive=values["pos_img"],
                negative=values["neg_img"],
            ),
            buttons=ButtonConfig(
                labels=labels,
                templates=templates,
                shuffle=bool(values["shuffle_buttons"]),
                margin_vertical=str(values["margin_vertical"]),
                margin_horizontal=str(values["margin_horizontal"]),
            ),
        )

    def __init__(self, config, context) -> None:
        super().__init__(config, context)
        self.order: List[int] = list(range(len(config.buttons.labels)))
        if config.buttons.shuffle:
            shuffle_together(self.order, rng=context.rng)
        self.button_pressed: Optional[int] = None
        self.unshuffled_button: Optional[int] = None
        self._countdown_calls = []

    def start(self, ctrl) -> None:
        display = ctrl.display
        layout = self.layout
        size = min(layout.width, layout.height) * 0.5
        display.add(
            DisplayItem(
                STIMULUS_ID,
                IMAGE,
                x=layout.x_center - size / 2,
                y=layout.height * 0.05,
                w=size,
                h=size,
                ref=self.config.stimuli[0],
            )
        )
        for item in self._buttons():
            display.add(item)
        if self.config.prompt:
            display.add(
                DisplayItem("prompt", TEXT, x=layout.text_start_x, y=layout.height * 0.9, lines=self.config.prompt)
            )

        ctrl.listen(
            POINTER,
            lambda ev: self._on_click(ctrl, ev),
            valid_codes=self.config.choices,
            mode=LATCH,
            allow_held_key=True,
        )

        if self.config.countdown_start is not None:
            mars = self.context.mars
            for i, frame in enumerate(mars.countdown_frames):
                call = ctrl.schedule(
                    self.config.countdown_start + i * mars.countdown_step_ms,
                    lambda ref=frame: self._show_timer(display, ref),
                )
                self._countdown_calls.append(call)

        if self.config.stimulus_duration is not None:
            ctrl.schedule(self.config.stimulus_duration, lambda: display.update(STIMULUS_ID, visible=False))
        if self.config.trial_duration is not None:
            ctrl.schedule(self.config.trial_duration, ctrl.finalize)

    def _buttons(self) -> List[DisplayItem]:
        layout = self.layout
        buttons = self.config.buttons
        n = len(buttons.labels)
        gap = 2 * _px(buttons.margin_horizontal)
        total = n * layout.button_width + (n - 1) * gap
        x0 = layout.x_center - total / 2
        y = layout.buttons_y + _px(buttons.margin_vertical)
        items = []
        for i in range(n):
            k = self.order[i]
            items.append(
                DisplayItem(
                    f"mars-trial-button-{i}",
                    BUTTON,
                    x=x0 + i * (layout.button_width + gap),
                    y=y,
                    w=layout.button_width,
                    h=layout.button_height,
                    ref=buttons.templates[k].replace(CHOICE_TOKEN, buttons.labels[k]),
                    lines=(buttons.labels[k],),
                    code=str(i),
                )
            )
        return items

    def _show_timer(self, display, ref: str) -> None:
        size = self.context.mars.timer_size
        display.add(DisplayItem(TIMER_ID, IMAGE, x=self.layout.width - size - 20, y=20, w=size, h=size, ref=ref))

    def _on_click(self, ctrl, event: ResponseEvent) -> None:
        ctrl.respond(event)
        ctrl.mark_responded()
        self.button_pressed = int(event.code)
        self.unshuffled_button = self.order[self.button_pressed]

        # ответ остановил обратный отсчёт
        for call in self._countdown_calls:
            ctrl.timers.cancel(call)
        if self.config.response_ends_trial:
            ctrl.timers.cancel_all()

        display = ctrl.display
        display.add_class(STIMULUS_ID, "responded")
        for i in range(len(self.order)):
            display.update(f"mars-trial-button-{i}", disabled=True)

        feedback = self.config.feedback
        if feedback.display:
            self._show_timer(display, self.context.mars.blank_timer)
            ref = feedback.positive if self.unshuffled_button == 0 else feedback.negative
            size = self.layout.reward_size * 2
            display.add(
                DisplayItem(
                    FEEDBACK_ID,
                    IMAGE,
                    x=self.layout.x_center - size / 2,
                    y=self.layout.buttons_y - size - 10,
                    w=size,
                    h=size,
                    ref=ref,
                )
            )

        if self.config.response_ends_trial:
            ctrl.schedule(feedback.duration_ms, ctrl.finalize)

    def build_result(self, ctrl) -> TrialResult:
        state = ctrl.state
        correct = None if self.unshuffled_button is None else self.unshuffled_button == 0
        return TrialResult(
            trial_type=self.name,
            reaction_time=state.rt,
            response_code=state.code,
            valid_response=state.responded,
            data={
                "stimulus": self.config.stimuli[0],
                "button_pressed": self.button_pressed,
                "unshuffled_button": self.unshuffled_button,
                "button_order": list(self.order),
                "correct": correct,
            },
        )
