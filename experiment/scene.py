import logging
from typing import Any, Callable, List, Mapping, Optional, Sequence, Union

from data.logger import JsonlLogger
from data.models import TrialConfig, TrialResult
from experiment.controller import TrialController
from experiment.plugins import define_trial, get_plugin
from experiment.plugins.base import TrialContext
from experiment.randomization import guid

logger = logging.getLogger(__name__)

# элемент таймлайна: готовый TrialConfig, словарь параметров
# или функция, которая по прошлым результатам вернёт словарь
TimelineEntry = Union[TrialConfig, Mapping[str, Any], Callable[[List[TrialResult]], Mapping[str, Any]]]


class TimelineScene:
    """
    Линейный таймлайн: trial-ы идут строго один за другим.

    - статичные элементы проверяются все сразу в start(),
      чтобы ошибка в описании всплыла до сбора данных
    - каждый результат пишется в JsonlLogger (если он задан)
    - следующий trial стартует через post_trial_gap мс
    """

    def __init__(
        self,
        context: TrialContext,
        timeline: Sequence[TimelineEntry],
        results_logger: Optional[JsonlLogger] = None,
        on_trial_result: Optional[Callable[[TrialResult], None]] = None,
        session_id: Optional[str] = None,
    ) -> None:
        self.context = context
        self.timeline = list(timeline)
        self.results_logger = results_logger
        self.on_trial_result = on_trial_result
        self.session_id = session_id or guid()

        self.results: List[TrialResult] = []
        self.current_index: int = 0
        self.controller: Optional[TrialController] = None
        self._configs: List[Optional[TrialConfig]] = []
        self._finished = False

    def start(self) -> None:
        self._configs = [self._define(entry) if not callable(entry) else None for entry in self.timeline]
        self.results = []
        self.current_index = 0
        self._finished = False
        logger.info("timeline %s: %d trials", self.session_id, len(self.timeline))
        self._start_trial()

    @staticmethod
    def _define(entry) -> TrialConfig:
        if isinstance(entry, TrialConfig):
            return entry
        return define_trial(entry)

    def _start_trial(self) -> None:
        if self.current_index >= len(self.timeline):
            self._finished = True
            self.controller = None
            logger.info("timeline %s finished", self.session_id)
            return

        config = self._configs[self.current_index]
        if config is None:
            config = self._define(self.timeline[self.current_index](list(self.results)))
            self._configs[self.current_index] = config

        plugin = get_plugin(config.trial_type)(config, self.context)
        self.controller = TrialController(config, plugin, self.context, finish=self._on_finish)
        self.controller.start()

    def _on_finish(self, result: TrialResult) -> None:
        config = self._configs[self.current_index]
        self.results.append(result)
        if self.results_logger is not None:
            record = result.to_record()
            record["session_id"] = self.session_id
            record["trial_index"] = self.current_index
            self.results_logger.write(record)
        if self.on_trial_result is not None:
            self.on_trial_result(result)

        self.current_index += 1
        # не стартуем следующий trial изнутри callback-а текущего
        self.context.loop.call_later(config.post_trial_gap, self._start_trial)

    def is_finished(self) -> bool:
        return self._finished

    def get_results(self) -> List[TrialResult]:
        return self.results
