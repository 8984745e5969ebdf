import logging
import random
from pathlib import Path
from typing import Sequence

import pygame

from config.settings import LayoutConfig, MarsSettings, RunSettings, TwoStepSettings, TwoStepTiming
from data.logger import JsonlLogger
from experiment.audio import MixerAudio
from experiment.display import Display
from experiment.input import ABORT_KEYS, InputManager
from experiment.loop import EventLoop
from experiment.plugins.base import TrialContext
from experiment.randomization import formatted_time, guid
from experiment.renderer import Renderer
from experiment.scene import TimelineEntry, TimelineScene

logger = logging.getLogger(__name__)


class ExperimentApp:
    def __init__(
        self,
        run: RunSettings,
        timeline: Sequence[TimelineEntry],
        asset_dir: Path = Path("."),
        timing: TwoStepTiming = TwoStepTiming(),
        two_step: TwoStepSettings = TwoStepSettings(),
        mars: MarsSettings = MarsSettings(),
    ) -> None:
        pygame.init()
        window = run.window
        flags = pygame.FULLSCREEN if window.fullscreen else 0
        self.screen = pygame.display.set_mode((window.width, window.height), flags)
        pygame.display.set_caption(window.title)
        self.clock = pygame.time.Clock()
        self.window = window
        width, height = self.screen.get_size()

        self.loop = EventLoop(clock=pygame.time.get_ticks)
        self.display = Display(width, height)
        self.renderer = Renderer(self.screen, asset_dir=asset_dir)
        self.input = InputManager(self.loop, self.display)
        self.audio = MixerAudio(base_dir=asset_dir)

        self.context = TrialContext(
            loop=self.loop,
            display=self.display,
            layout=LayoutConfig.from_window(width, height),
            audio=self.audio,
            rng=random.Random(run.seed),
            timing=timing,
            two_step=two_step,
            mars=mars,
        )
        self.session_id = guid()
        results_path = Path(run.output_dir) / f"results-{formatted_time()}.jsonl"
        self.scene = TimelineScene(
            self.context,
            timeline,
            results_logger=JsonlLogger(str(results_path)),
            session_id=self.session_id,
        )
        self.results_path = results_path
        self.running = True

    def run(self):
        self.scene.start()
        while self.running:
            self.clock.tick(self.window.fps)

            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    self.running = False
                if event.type == pygame.KEYDOWN and event.key in ABORT_KEYS:
                    self.running = False
                self.input.process_pygame_event(event)
            if not self.running:
                break

            self.loop.run_due()
            self.renderer.draw(self.display, self.loop.now_ms())

            if self.scene.is_finished():
                self.running = False

        if not self.scene.is_finished():
            logger.info("session %s aborted after %d trials", self.session_id, len(self.scene.results))
        pygame.quit()
        return self.scene.get_results()
