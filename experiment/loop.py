import heapq
import itertools
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from data.models import InputEvent

KEYBOARD = "keyboard"
POINTER = "pointer"


def _wall_ms() -> int:
    return int(time.time() * 1000)


@dataclass(order=True)
class ScheduledCall:
    due_ms: int
    seq: int
    callback: Callable[[], None] = field(compare=False)
    cancelled: bool = field(default=False, compare=False)
    fired: bool = field(default=False, compare=False)


@dataclass
class Subscription:
    channel: str
    callback: Callable[[InputEvent], None]
    active: bool = True


class EventLoop:
    """
    Однопоточный кооперативный цикл событий.

    Таймеры и ввод исполняются только внутри run_due() / dispatch(),
    никогда параллельно. Время берётся из переданных часов (мс):
    в игре это pygame.time.get_ticks, в тестах ручные часы.
    """

    def __init__(self, clock: Callable[[], int], wall_clock: Optional[Callable[[], int]] = None) -> None:
        self._clock = clock
        self._wall_clock = wall_clock or _wall_ms
        self._queue: List[ScheduledCall] = []
        self._seq = itertools.count()
        self._subscribers: Dict[str, List[Subscription]] = {KEYBOARD: [], POINTER: []}

    def now_ms(self) -> int:
        return int(self._clock())

    def wall_ms(self) -> int:
        return int(self._wall_clock())

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> ScheduledCall:
        if delay_ms < 0:
            raise ValueError(f"delay must be >= 0, got {delay_ms}")
        call = ScheduledCall(due_ms=self.now_ms() + int(delay_ms), seq=next(self._seq), callback=callback)
        heapq.heappush(self._queue, call)
        return call

    def cancel(self, call: ScheduledCall) -> None:
        call.cancelled = True

    def pending(self) -> int:
        return sum(1 for c in self._queue if not c.cancelled)

    def next_due_ms(self) -> Optional[int]:
        for call in sorted(self._queue):
            if not call.cancelled:
                return call.due_ms
        return None

    def run_due(self) -> int:
        """Запускает все наступившие callback-и по (время, порядок регистрации); возвращает их число."""
        fired = 0
        now = self.now_ms()
        while self._queue and self._queue[0].due_ms <= now:
            call = heapq.heappop(self._queue)
            if call.cancelled:
                continue
            call.fired = True
            call.callback()
            fired += 1
        return fired

    def subscribe(self, channel: str, callback: Callable[[InputEvent], None]) -> Subscription:
        sub = Subscription(channel=channel, callback=callback)
        self._subscribers.setdefault(channel, []).append(sub)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        sub.active = False
        subs = self._subscribers.get(sub.channel, [])
        if sub in subs:
            subs.remove(sub)

    def dispatch(self, event: InputEvent) -> None:
        for sub in list(self._subscribers.get(event.channel, [])):
            if sub.active:
                sub.callback(event)
