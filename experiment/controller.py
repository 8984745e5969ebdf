import logging
from typing import Callable, Iterable, List, Optional

from data.models import ResponseEvent, ResponseState, TrialConfig, TrialResult
from experiment.listeners import LATCH, RT_PERFORMANCE, ResponseListener
from experiment.loop import ScheduledCall
from experiment.timers import TimerSet

logger = logging.getLogger(__name__)

# Фазы trial-а храним строками, как и раньше
PHASE_INIT = "INIT"              # рисуем стимул, ставим таймеры и слушателей
PHASE_AWAITING = "AWAITING"      # ждём ответ или таймаут
PHASE_RESPONDED = "RESPONDED"    # ответ принят, идёт фидбек/анимация
PHASE_FINALIZING = "FINALIZING"  # снимаем таймеры, собираем результат
PHASE_DONE = "DONE"


class TrialController:
    """
    Управляет ровно одним trial-ом.

    - владеет ResponseState, TimerSet и слушателями ввода
    - переходы делают только callback-и таймеров и слушателей
    - finalize() срабатывает ровно один раз, повторный вызов ничего не делает
    - результат уходит наружу через finish(result)
    """

    def __init__(self, config: TrialConfig, plugin, context, finish: Callable[[TrialResult], None]) -> None:
        self.config = config
        self.plugin = plugin
        self.context = context
        self.display = context.display
        self.loop = context.loop
        self._finish = finish

        self.state = ResponseState()
        self.timers = TimerSet(self.loop)
        self.phase: str = PHASE_INIT
        self._listeners: List[ResponseListener] = []
        self._resources: list = []

    def start(self) -> None:
        self.phase = PHASE_INIT
        self.state.onset_ms = self.loop.now_ms()
        self.state.onset_wall_ms = self.loop.wall_ms()
        self.plugin.start(self)
        if self.phase == PHASE_INIT:
            self.phase = PHASE_AWAITING
        logger.debug("trial %s started at %d ms", self.config.trial_type, self.state.onset_ms)

    # --------------------------
    # Возможности для плагинов
    # --------------------------

    def listen(
        self,
        channel: str,
        callback: Callable[[ResponseEvent], None],
        valid_codes: Optional[Iterable[str]] = None,
        mode: str = LATCH,
        allow_held_key: bool = False,
        rt_method: str = RT_PERFORMANCE,
        on_other: Optional[Callable[[ResponseEvent], None]] = None,
    ) -> ResponseListener:
        listener = ResponseListener(
            self.loop,
            channel,
            callback,
            valid_codes=valid_codes,
            mode=mode,
            allow_held_key=allow_held_key,
            rt_method=rt_method,
            on_other=on_other,
        )
        self._listeners.append(listener.start())
        return listener

    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> ScheduledCall:
        return self.timers.schedule(delay_ms, callback)

    def acquire(self, resource):
        """Ресурс на время trial-а: берём сейчас, отпускаем в finalize в обратном порядке."""
        resource.acquire()
        self._resources.append(resource)
        return resource

    def respond(self, event: ResponseEvent) -> bool:
        return self.state.record_response(event)

    def log_event(self, event: ResponseEvent) -> None:
        if not self.state.finalized:
            self.state.log_event(event)

    def derive(self, name: str, compute):
        return self.state.derive(name, compute)

    def mark_responded(self) -> None:
        if self.phase == PHASE_AWAITING:
            self.phase = PHASE_RESPONDED
            logger.debug("trial %s responded: %s", self.config.trial_type, self.state.code)

    @property
    def finalized(self) -> bool:
        return self.state.finalized

    def finalize(self) -> None:
        if self.state.finalized:
            return
        self.state.finalized = True
        self.phase = PHASE_FINALIZING

        self.timers.cancel_all()
        for listener in self._listeners:
            listener.stop()
        for resource in reversed(self._resources):
            resource.release()
        self._resources.clear()

        result = self.plugin.build_result(self)
        self.display.clear()
        self.phase = PHASE_DONE
        logger.debug("trial %s finalized, rt=%s", self.config.trial_type, result.reaction_time)
        self._finish(result)
