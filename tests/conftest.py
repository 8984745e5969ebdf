import os
import random

import pytest

os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

from config.settings import LayoutConfig  # noqa: E402
from data.models import InputEvent  # noqa: E402
from experiment.controller import TrialController  # noqa: E402
from experiment.display import Display  # noqa: E402
from experiment.loop import KEYBOARD, POINTER, EventLoop  # noqa: E402
from experiment.plugins import define_trial, get_plugin  # noqa: E402
from experiment.plugins.base import TrialContext  # noqa: E402

WALL_OFFSET = 1_600_000_000_000


class ManualClock:
    def __init__(self) -> None:
        self.now = 0

    def __call__(self) -> int:
        return self.now

    def wall(self) -> int:
        return WALL_OFFSET + self.now


class FakeClip:
    def __init__(self, ref: str, length_ms: int = 1500) -> None:
        self.ref = ref
        self.length_ms = length_ms
        self.plays = 0
        self.stops = 0

    def play(self) -> None:
        self.plays += 1

    def stop(self) -> None:
        self.stops += 1


class FakeAudio:
    def __init__(self, length_ms: int = 1500) -> None:
        self.length_ms = length_ms
        self.clips = []

    def clip(self, ref: str) -> FakeClip:
        clip = FakeClip(ref, self.length_ms)
        self.clips.append(clip)
        return clip


class Harness:
    """EventLoop и Display на ручных часах."""

    def __init__(self, seed: int = 7) -> None:
        self.clock = ManualClock()
        self.loop = EventLoop(clock=self.clock, wall_clock=self.clock.wall)
        self.display = Display(1340, 1000)
        self.audio = FakeAudio()
        self.context = TrialContext(
            loop=self.loop,
            display=self.display,
            layout=LayoutConfig.from_window(1340, 1000),
            audio=self.audio,
            rng=random.Random(seed),
        )
        self.results = []
        self.controller = None

    def run(self, params) -> TrialController:
        config = define_trial(params)
        plugin = get_plugin(config.trial_type)(config, self.context)
        self.controller = TrialController(config, plugin, self.context, finish=self.results.append)
        self.controller.start()
        return self.controller

    def advance_to(self, t: int) -> None:
        while True:
            due = self.loop.next_due_ms()
            if due is None or due > t:
                break
            self.clock.now = max(self.clock.now, due)
            self.loop.run_due()
        self.clock.now = max(self.clock.now, t)
        self.loop.run_due()

    def advance(self, ms: int) -> None:
        self.advance_to(self.clock.now + ms)

    def press(self, code: str, at: int = None) -> None:
        if at is not None:
            self.advance_to(at)
        self.loop.dispatch(InputEvent(KEYBOARD, code, "down"))
        self.loop.dispatch(InputEvent(KEYBOARD, code, "up"))

    def click(self, code: str, at: int = None) -> None:
        if at is not None:
            self.advance_to(at)
        self.loop.dispatch(InputEvent(POINTER, code, "down"))


@pytest.fixture
def harness() -> Harness:
    return Harness()


@pytest.fixture
def make_harness():
    return Harness
