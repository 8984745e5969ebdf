from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


class TrialConfigError(ValueError):
    """Ошибка в описании trial-а; поднимается до его старта."""


@dataclass(frozen=True)
class FeedbackConfig:
    display: bool = False
    duration_ms: int = 2000
    positive: Optional[str] = None
    negative: Optional[str] = None


@dataclass(frozen=True)
class ButtonConfig:
    labels: Tuple[str, ...] = ()
    templates: Tuple[str, ...] = ()
    shuffle: bool = False
    margin_vertical: str = "0px"
    margin_horizontal: str = "8px"


@dataclass(frozen=True)
class TrialConfig:
    """
    Неизменяемое описание одного trial-а.

    choices=None означает "любая клавиша", пустой кортеж означает "никаких клавиш".
    Длительности в мс; при None таймер не ставится.
    """
    trial_type: str
    stimuli: Tuple[Optional[str], ...] = ()
    choices: Optional[Tuple[str, ...]] = None
    prompt: Tuple[str, ...] = ()
    stimulus_duration: Optional[int] = None
    trial_duration: Optional[int] = None
    countdown_start: Optional[int] = None
    response_ends_trial: bool = True
    post_trial_gap: int = 0
    feedback: FeedbackConfig = FeedbackConfig()
    buttons: ButtonConfig = ButtonConfig()
    payload: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        durations = {
            "stimulus_duration": self.stimulus_duration,
            "trial_duration": self.trial_duration,
            "countdown_start": self.countdown_start,
            "post_trial_gap": self.post_trial_gap,
            "feedback_duration": self.feedback.duration_ms,
        }
        for name, value in durations.items():
            if value is not None and value < 0:
                raise TrialConfigError(f"{self.trial_type}: {name} must be >= 0, got {value}")


@dataclass(frozen=True)
class InputEvent:
    channel: str  # "keyboard" | "pointer"
    code: str
    kind: str = "down"  # "down" | "up"


@dataclass(frozen=True)
class ResponseEvent:
    code: str
    timestamp_ms: int
    channel: str
    rt_method: str = "performance"


@dataclass
class ResponseState:
    onset_ms: int = 0
    onset_wall_ms: int = 0
    rt: Optional[int] = None
    code: Optional[str] = None
    events: List[ResponseEvent] = field(default_factory=list)
    derived: Dict[str, Any] = field(default_factory=dict)
    finalized: bool = False

    def _check_open(self) -> None:
        if self.finalized:
            raise RuntimeError("response state is finalized")

    def elapsed(self, event: ResponseEvent) -> int:
        onset = self.onset_wall_ms if event.rt_method == "date" else self.onset_ms
        return event.timestamp_ms - onset

    def record_response(self, event: ResponseEvent) -> bool:
        """Первый ответ запоминается, остальные игнорируются (False)."""
        self._check_open()
        if self.code is not None:
            return False
        self.code = event.code
        self.rt = self.elapsed(event)
        return True

    def log_event(self, event: ResponseEvent) -> None:
        self._check_open()
        self.events.append(event)

    def derive(self, name: str, compute):
        if name in self.derived:
            return self.derived[name]
        self._check_open()
        value = compute()
        self.derived[name] = value
        return value

    @property
    def responded(self) -> bool:
        return self.code is not None


@dataclass(frozen=True)
class TrialResult:
    trial_type: str
    reaction_time: Optional[int]
    response_code: Optional[str]
    valid_response: bool
    data: Dict[str, Any] = field(default_factory=dict)

    def to_record(self) -> Dict[str, Any]:
        record = {
            "trial_type": self.trial_type,
            "reaction_time": self.reaction_time,
            "response_code": self.response_code,
            "valid_response": self.valid_response,
        }
        record.update(self.data)
        return record
