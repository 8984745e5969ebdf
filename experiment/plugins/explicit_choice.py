"""
Выбор в two-step: фон планеты и до двух картинок для выбора.

Правильная клавиша двигает выбранную картинку в центр, мигает ею и, если
задана строка вероятностей, показывает награду. Если ответа нет до
``trial_duration``, картинки переходят в вид "_sp", и trial кончается
через ``isitime``.
"""
import logging
from typing import Optional

from data.models import ResponseEvent, TrialConfig, TrialConfigError, TrialResult
from experiment.animation import AnimationPhase, AnimationSequence
from experiment.audio import ScopedPlayback
from experiment.display import IMAGE, TEXT, DisplayItem
from experiment.listeners import GATE
from experiment.loop import KEYBOARD
from experiment.plugins.base import Param, TrialPlugin, as_lines, gap_ms, normalize_choices, optional_ms
from experiment.plugins.reward import ROW_WIDTH, draw_reward, validate_row

logger = logging.getLogger(__name__)

SIDES = ("left", "right")


class ExplicitChoicePlugin(TrialPlugin):
    name = "two-step-explicit-choice"
    parameters = {
        "planet_text": Param(),
        "trial_stage": Param(default="NA"),
        "practice_trial": Param(default="practice"),
        "right_text": Param(default=None),
        "left_text": Param(default=None),
        "center_text": Param(default=None),
        "reward_string": Param(default=None),
        "prompt": Param(default=None),
        "choices": Param(default=["1", "0"], array=True),
        "trial_duration": Param(default=None),
        "trial_row": Param(default=None, array=True),
        "left_row_index": Param(default=None),
        "right_row_index": Param(default=None),
        "timeout": Param(default=True),
        "query_trial": Param(default=None),
        "transition_type": Param(default=None, description="Whether it was a common or rare transition."),
        "audio_stimulus": Param(default=None),
    }

    @classmethod
    def build_config(cls, values) -> TrialConfig:
        if values["planet_text"] is None:
            raise TrialConfigError(f"{cls.name}: planet_text is required")
        choices = normalize_choices(values["choices"])
        if choices is None or len(choices) != 2:
            raise TrialConfigError(f"{cls.name}: choices must hold exactly 2 keys (left, right)")

        trial_row = values["trial_row"]
        if trial_row is not None:
            trial_row = validate_row(trial_row)
            for side in SIDES:
                if values[f"{side}_text"] is None:
                    continue
                index = values[f"{side}_row_index"]
                if not isinstance(index, int) or isinstance(index, bool) or not 0 <= index < ROW_WIDTH:
                    raise TrialConfigError(
                        f"{cls.name}: {side}_row_index must be 0..{ROW_WIDTH - 1} when trial_row is set"
                    )

        payload = {
            key: values[key]
            for key in (
                "planet_text",
                "left_text",
                "right_text",
                "center_text",
                "left_row_index",
                "right_row_index",
                "reward_string",
                "query_trial",
                "trial_stage",
                "practice_trial",
                "transition_type",
                "audio_stimulus",
            )
        }
        payload["trial_row"] = trial_row
        payload["timeout"] = bool(values["timeout"])
        return TrialConfig(
            trial_type=cls.name,
            stimuli=(values["planet_text"],),
            choices=choices,
            prompt=as_lines(values["prompt"]),
            trial_duration=optional_ms("trial_duration", values["trial_duration"]),
            post_trial_gap=gap_ms(values),
            payload=payload,
        )

    def __init__(self, config, context) -> None:
        super().__init__(config, context)
        p = config.payload
        self.timing = context.timing
        self.valid_pressed = 0
        self.move_possible = True
        self.chosen_text: Optional[str] = None
        self.reward_text = ""
        self.animation: Optional[AnimationSequence] = None
        self._timeout_call = None

        self.valid_choices = tuple(
            config.choices[i] for i, side in enumerate(SIDES) if p[f"{side}_text"] is not None
        )

    def start(self, ctrl) -> None:
        p = self.config.payload
        layout = self.layout
        display = ctrl.display

        display.add(DisplayItem("planet", IMAGE, w=layout.width, h=layout.height, ref=p["planet_text"]))
        for side, x in (("right", layout.choice_x_right), ("left", layout.choice_x_left)):
            if p[f"{side}_text"] is not None:
                display.add(
                    DisplayItem(
                        side,
                        IMAGE,
                        x=x,
                        y=layout.choice_y,
                        w=layout.monster_size,
                        h=layout.monster_size,
                        ref=p[f"{side}_text"] + "_norm.png",
                    )
                )
        if p["center_text"] is not None:
            display.add(
                DisplayItem(
                    "center",
                    IMAGE,
                    x=layout.chosen_x,
                    y=layout.chosen_y,
                    w=layout.monster_size,
                    h=layout.monster_size,
                    ref=p["center_text"] + "_deact.png",
                )
            )
        if p["query_trial"] is not None:
            display.add(
                DisplayItem(
                    "query",
                    TEXT,
                    x=layout.text_start_x,
                    y=layout.text_start_y,
                    lines=(p["query_trial"],),
                    font_size=int(layout.font_size),
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

        if p["audio_stimulus"] is not None and self.context.audio is not None:
            ctrl.acquire(ScopedPlayback(self.context.audio.clip(p["audio_stimulus"])))

        ctrl.listen(
            KEYBOARD,
            lambda ev: self._on_key(ctrl, ev),
            valid_codes=self.valid_choices,
            mode=GATE,
            on_other=ctrl.log_event,
        )

        if self.config.trial_duration is not None and p["timeout"]:
            self._timeout_call = ctrl.schedule(self.config.trial_duration, lambda: self._on_timeout(ctrl))

    def _on_key(self, ctrl, event: ResponseEvent) -> None:
        if self.valid_pressed or not self.move_possible:
            ctrl.log_event(event)
            return
        ctrl.respond(event)
        self.valid_pressed = 1
        ctrl.timers.cancel(self._timeout_call)
        logger.debug("valid key was pressed: %s", event.code)

        if self.config.payload["query_trial"] is not None:
            ctrl.finalize()
            return

        ctrl.mark_responded()
        side = "right" if self.config.choices.index(event.code) == 1 else "left"
        other = "left" if side == "right" else "right"
        self.chosen_text = self.config.payload[f"{side}_text"]
        # награда разыгрывается сразу при выборе, анимация её только показывает
        if self.config.payload["trial_row"] is not None:
            outcome = ctrl.derive("reward", lambda: self._draw_reward(side))
            self.reward_text = outcome.image
        self.animation = self._choice_animation(ctrl, side, other)
        self.animation.start(ctrl.timers)
        ctrl.schedule(self.timing.isitime + self.timing.moneytime, ctrl.finalize)

    def _choice_animation(self, ctrl, side: str, other: str) -> AnimationSequence:
        display = ctrl.display
        layout = self.layout
        timing = self.timing
        chosen = self.chosen_text
        unchosen = self.config.payload[f"{other}_text"]

        phases = []
        if len(self.valid_choices) > 1 and unchosen is not None:
            phases.append(AnimationPhase("deactivate", 0, lambda: display.update(other, ref=unchosen + "_deact.png")))

        move_at = 0
        if "center" in display:
            phases.append(AnimationPhase("center_exit", 0, lambda: display.remove("center")))
            move_at = timing.center_exit_ms

        def move() -> None:
            display.update(side, ref=chosen + "_a2.png")
            display.move(side, layout.chosen_x, layout.chosen_y, timing.box_moving_time, ctrl.loop.now_ms())

        phases.append(AnimationPhase("move", move_at, move))

        frame_ms = timing.isitime // 5
        flash_at = move_at + timing.box_moving_time
        for k in range(1, 5):
            suffix = "_a1.png" if k % 2 == 1 else "_a2.png"
            phases.append(
                AnimationPhase(f"flash_{k}", flash_at + k * frame_ms, lambda s=suffix: display.update(side, ref=chosen + s))
            )
        phases.append(AnimationPhase("settle", flash_at + 5 * frame_ms, lambda: self._settle(ctrl, side)))
        return AnimationSequence(phases)

    def _settle(self, ctrl, side: str) -> None:
        ctrl.display.update(side, ref=self.chosen_text + "_deact.png")
        p = self.config.payload
        if p["trial_row"] is None:
            return
        outcome = ctrl.state.derived["reward"]
        layout = self.layout
        ctrl.display.add(
            DisplayItem(
                "reward",
                IMAGE,
                x=layout.reward_x,
                y=layout.reward_y,
                w=layout.reward_size,
                h=layout.reward_size,
                ref=outcome.image,
            )
        )

    def _draw_reward(self, side: str):
        p = self.config.payload
        settings = self.context.two_step
        return draw_reward(
            p["trial_row"],
            p[f"{side}_row_index"],
            self.context.rng,
            reward_image=p["reward_string"] or settings.reward_string,
            null_image=settings.null_string,
        )

    def _on_timeout(self, ctrl) -> None:
        if not ctrl.state.responded:
            self.move_possible = False
            self.chosen_text = ""
            for side in SIDES:
                text = self.config.payload[f"{side}_text"]
                if text is not None:
                    ctrl.display.update(side, ref=text + "_sp.png")
        ctrl.schedule(self.timing.isitime, ctrl.finalize)

    def build_result(self, ctrl) -> TrialResult:
        state = ctrl.state
        p = self.config.payload
        outcome = state.derived.get("reward")
        data = {
            "key_press": state.code,
            "duration": self.config.trial_duration,
            "valid_pressed": self.valid_pressed,
            "planet_text": p["planet_text"],
            "right_text": p["right_text"],
            "left_text": p["left_text"],
            "center_text": p["center_text"],
            "chosen_text": self.chosen_text,
            "reward_text": self.reward_text,
            "reward_outcome": None if outcome is None else outcome.rewarded,
            "reward_probability": None if outcome is None else outcome.probability,
            "trial_stage": p["trial_stage"],
            "practice_trial": p["practice_trial"],
            "transition_type": p["transition_type"],
        }
        data.update(self.aux_log(ctrl))
        return TrialResult(
            trial_type=self.name,
            reaction_time=state.rt,
            response_code=state.code,
            valid_response=bool(self.valid_pressed),
            data=data,
        )
