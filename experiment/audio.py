import logging
from pathlib import Path
from typing import Dict, Optional

import pygame

logger = logging.getLogger(__name__)


class AudioClip:
    def __init__(self, ref: str, sound: "pygame.mixer.Sound") -> None:
        self.ref = ref
        self.sound = sound
        self._channel: Optional["pygame.mixer.Channel"] = None

    @property
    def length_ms(self) -> int:
        return int(self.sound.get_length() * 1000)

    def play(self) -> None:
        self._channel = self.sound.play()

    def stop(self) -> None:
        self.sound.stop()
        self._channel = None


class ScopedPlayback:
    """Звук живёт ровно один trial: контроллер останавливает его в finalize."""

    def __init__(self, clip) -> None:
        self.clip = clip
        self.active = False

    @property
    def length_ms(self) -> int:
        return self.clip.length_ms

    def acquire(self) -> None:
        self.clip.play()
        self.active = True

    def release(self) -> None:
        if not self.active:
            return
        self.clip.stop()
        self.active = False


class MixerAudio:
    """Библиотека звуков на pygame.mixer с кэшем загрузки."""

    def __init__(self, base_dir: Path = Path(".")) -> None:
        self.base_dir = Path(base_dir)
        self._cache: Dict[str, "pygame.mixer.Sound"] = {}
        if not pygame.mixer.get_init():
            pygame.mixer.init()

    def clip(self, ref: str) -> AudioClip:
        return AudioClip(ref, self._load(ref))

    def _load(self, ref: str) -> "pygame.mixer.Sound":
        if ref not in self._cache:
            path = self.base_dir / ref
            if not path.exists():
                raise FileNotFoundError(f"Audio file not found: {path}")
            logger.debug("loading audio %s", path)
            self._cache[ref] = pygame.mixer.Sound(str(path))
        return self._cache[ref]
