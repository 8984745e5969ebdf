import random
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from config.settings import LayoutConfig, MarsSettings, TwoStepSettings, TwoStepTiming
from data.models import TrialConfig, TrialConfigError, TrialResult
from experiment.display import Display
from experiment.loop import EventLoop

ALL_KEYS = "ALL_KEYS"
NO_KEYS = "NO_KEYS"

# коды клавиш браузера (keyCode), их передают старые таймлайны
_KEYCODE_NAMES = {32: "space", 13: "return", 27: "escape", 37: "left", 38: "up", 39: "right", 40: "down"}
_KEYCODE_NAMES.update({48 + d: str(d) for d in range(10)})
_KEYCODE_NAMES.update({65 + i: chr(97 + i) for i in range(26)})


class _Required:
    def __repr__(self) -> str:
        return "REQUIRED"


REQUIRED = _Required()


@dataclass(frozen=True)
class Param:
    default: Any = REQUIRED
    array: bool = False
    description: str = ""


@dataclass
class TrialContext:
    loop: EventLoop
    display: Display
    layout: LayoutConfig
    audio: Any = None
    rng: random.Random = field(default_factory=random.Random)
    timing: TwoStepTiming = TwoStepTiming()
    two_step: TwoStepSettings = TwoStepSettings()
    mars: MarsSettings = MarsSettings()


def normalize_code(code) -> str:
    if isinstance(code, bool):
        raise TrialConfigError(f"invalid key code: {code!r}")
    if isinstance(code, int):
        if code not in _KEYCODE_NAMES:
            raise TrialConfigError(f"unsupported key code: {code}")
        return _KEYCODE_NAMES[code]
    if not isinstance(code, str) or not code:
        raise TrialConfigError(f"invalid key code: {code!r}")
    return code if len(code) > 1 else code.lower()


def normalize_choices(choices) -> Optional[Tuple[str, ...]]:
    if choices is None or choices == ALL_KEYS:
        return None
    if choices == NO_KEYS:
        return ()
    if isinstance(choices, (str, int)):
        return (normalize_code(choices),)
    return tuple(normalize_code(c) for c in choices)


def as_lines(value) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(v) for v in value)


def optional_ms(name: str, value) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TrialConfigError(f"{name} must be a number of ms, got {value!r}")
    return int(value)


def gap_ms(values) -> int:
    return optional_ms("post_trial_gap", values["post_trial_gap"]) or 0


class TrialPlugin:
    """
    Один тип trial-а.

    Класс описывает параметры и проверяет их (define), экземпляр живёт
    ровно один trial и хранит состояние отрисовки.
    """

    name: str = "base"
    parameters: Dict[str, Param] = {}

    COMMON_PARAMETERS: Dict[str, Param] = {
        "type": Param(default=None),
        "post_trial_gap": Param(default=0),
    }

    def __init__(self, config: TrialConfig, context: TrialContext) -> None:
        self.config = config
        self.context = context
        self.layout = context.layout

    @classmethod
    def resolve(cls, params: Mapping[str, Any]) -> Dict[str, Any]:
        schema = dict(cls.COMMON_PARAMETERS)
        schema.update(cls.parameters)
        values: Dict[str, Any] = {}
        for key, param in schema.items():
            if key in params:
                values[key] = params[key]
            elif param.default is REQUIRED:
                raise TrialConfigError(f"{cls.name}: missing required parameter '{key}'")
            else:
                values[key] = param.default
            if param.array and values[key] is not None and isinstance(values[key], (str, int)):
                values[key] = [values[key]]
        return values

    @classmethod
    def define(cls, params: Mapping[str, Any]) -> TrialConfig:
        values = cls.resolve(params)
        return cls.build_config(values)

    @classmethod
    def build_config(cls, values: Dict[str, Any]) -> TrialConfig:
        raise NotImplementedError

    def start(self, ctrl) -> None:
        raise NotImplementedError

    def build_result(self, ctrl) -> TrialResult:
        state = ctrl.state
        return TrialResult(
            trial_type=self.config.trial_type,
            reaction_time=state.rt,
            response_code=state.code,
            valid_response=state.responded,
            data={},
        )

    # --------------------------
    # Общие помощники
    # --------------------------

    def aux_log(self, ctrl) -> Dict[str, list]:
        return {
            "rts": [ctrl.state.elapsed(e) for e in ctrl.state.events],
            "keys": [e.code for e in ctrl.state.events],
        }
