from typing import Callable, Dict

from experiment.loop import EventLoop, ScheduledCall


class TimerSet:
    """Таймеры одного trial-а; cancel_all() снимает всё, что было поставлено."""

    def __init__(self, loop: EventLoop) -> None:
        self.loop = loop
        self._pending: Dict[int, ScheduledCall] = {}

    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> ScheduledCall:
        if delay_ms is None or delay_ms < 0:
            raise ValueError(f"delay must be >= 0, got {delay_ms}")
        holder = {}

        def fire() -> None:
            self._pending.pop(holder["call"].seq, None)
            callback()

        call = self.loop.call_later(delay_ms, fire)
        holder["call"] = call
        self._pending[call.seq] = call
        return call

    def cancel(self, call: ScheduledCall) -> None:
        if call is None:
            return
        self.loop.cancel(call)
        self._pending.pop(call.seq, None)

    def cancel_all(self) -> None:
        for call in list(self._pending.values()):
            self.loop.cancel(call)
        self._pending.clear()

    def __len__(self) -> int:
        return len(self._pending)
