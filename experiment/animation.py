from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from experiment.timers import TimerSet


@dataclass(frozen=True)
class AnimationPhase:
    name: str
    start_ms: int
    action: Callable[[], None]


class AnimationSequence:
    """
    Конечная последовательность именованных фаз.

    Один драйвер (_tick) смотрит, сколько прошло времени с начала,
    и запускает все фазы, чьё время наступило, по порядку.
    Следующий тик ставится на начало следующей фазы.
    """

    def __init__(self, phases: Sequence[AnimationPhase]) -> None:
        self.phases: List[AnimationPhase] = sorted(phases, key=lambda p: p.start_ms)
        self.current: Optional[str] = None
        self._index = 0
        self._timers: Optional[TimerSet] = None
        self._started_ms = 0

    @property
    def finished(self) -> bool:
        return self._index >= len(self.phases)

    def start(self, timers: TimerSet) -> None:
        self._timers = timers
        self._started_ms = timers.loop.now_ms()
        self._index = 0
        self._tick()

    def _tick(self) -> None:
        elapsed = self._timers.loop.now_ms() - self._started_ms
        while self._index < len(self.phases) and self.phases[self._index].start_ms <= elapsed:
            phase = self.phases[self._index]
            self._index += 1
            self.current = phase.name
            phase.action()
        if self._index < len(self.phases):
            delay = max(0, self.phases[self._index].start_ms - elapsed)
            self._timers.schedule(delay, self._tick)
