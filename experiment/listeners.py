from typing import Callable, Iterable, Optional, Set

from data.models import InputEvent, ResponseEvent
from experiment.loop import KEYBOARD, EventLoop, Subscription

# LATCH: только первый подходящий ответ доходит до callback,
#        всё остальное уходит в on_other (журнал нажатий).
# GATE:  каждый подходящий ответ доходит до callback, пока слушатель не остановлен.
LATCH = "LATCH"
GATE = "GATE"

RT_PERFORMANCE = "performance"
RT_DATE = "date"


class ResponseListener:
    def __init__(
        self,
        loop: EventLoop,
        channel: str,
        callback: Callable[[ResponseEvent], None],
        valid_codes: Optional[Iterable[str]] = None,
        mode: str = LATCH,
        allow_held_key: bool = False,
        rt_method: str = RT_PERFORMANCE,
        on_other: Optional[Callable[[ResponseEvent], None]] = None,
    ) -> None:
        if mode not in (LATCH, GATE):
            raise ValueError(f"Unknown listener mode: {mode}")
        if rt_method not in (RT_PERFORMANCE, RT_DATE):
            raise ValueError(f"Unknown rt_method: {rt_method}")
        self.loop = loop
        self.channel = channel
        self.callback = callback
        self.valid_codes: Optional[Set[str]] = None if valid_codes is None else set(valid_codes)
        self.mode = mode
        self.allow_held_key = allow_held_key
        self.rt_method = rt_method
        self.on_other = on_other
        self._sub: Optional[Subscription] = None
        self._held: Set[str] = set()
        self._latched = False

    @property
    def active(self) -> bool:
        return self._sub is not None

    @property
    def latched(self) -> bool:
        return self._latched

    def start(self) -> "ResponseListener":
        if self._sub is None:
            self._sub = self.loop.subscribe(self.channel, self._on_input)
        return self

    def stop(self) -> None:
        if self._sub is None:
            return
        self.loop.unsubscribe(self._sub)
        self._sub = None

    def qualifies(self, code: str) -> bool:
        return self.valid_codes is None or code in self.valid_codes

    def _stamp(self) -> int:
        return self.loop.wall_ms() if self.rt_method == RT_DATE else self.loop.now_ms()

    def _on_input(self, event: InputEvent) -> None:
        if self._sub is None:
            return
        if event.kind == "up":
            self._held.discard(event.code)
            return
        if event.kind != "down":
            return
        if self.channel == KEYBOARD:
            if event.code in self._held and not self.allow_held_key:
                return
            self._held.add(event.code)

        response = ResponseEvent(
            code=event.code,
            timestamp_ms=self._stamp(),
            channel=self.channel,
            rt_method=self.rt_method,
        )
        if self.qualifies(event.code) and not self._latched:
            if self.mode == LATCH:
                self._latched = True
            self.callback(response)
        elif self.on_other is not None:
            self.on_other(response)
