import logging
from pathlib import Path
from typing import Dict, Optional, Set, Tuple

import pygame

from experiment.display import BUTTON, CIRCLE, IMAGE, TEXT, Display, DisplayItem

logger = logging.getLogger(__name__)


class Renderer:
    """
    Renderer отвечает ТОЛЬКО за рисование.
    Он не считает RT и не управляет фазами trial-а.
    Ему дают Display, он рисует его элементы по порядку.
    """

    def __init__(self, screen: pygame.Surface, asset_dir: Path = Path(".")):
        self.screen = screen
        self.w, self.h = screen.get_size()
        self.asset_dir = Path(asset_dir)

        self.bg_color = (0, 0, 0)
        self.ui_color = (255, 255, 255)
        self.button_color = (230, 230, 230)
        self.button_disabled = (140, 140, 140)
        self.placeholder_color = (60, 60, 60)

        self._images: Dict[str, Optional[pygame.Surface]] = {}
        self._scaled: Dict[Tuple[str, int, int], pygame.Surface] = {}
        self._fonts: Dict[int, pygame.font.Font] = {}
        self._missing: Set[str] = set()

    # -----------------------
    # Базовые методы экрана
    # -----------------------

    def clear(self) -> None:
        self.screen.fill(self.bg_color)

    def present(self) -> None:
        pygame.display.flip()

    def draw(self, display: Display, now_ms: int) -> None:
        self.clear()
        for item in display.items():
            if not item.visible:
                continue
            if item.kind == IMAGE:
                self._draw_image(item, display, now_ms)
            elif item.kind == TEXT:
                self._draw_text(item)
            elif item.kind == CIRCLE:
                self._draw_circle(item)
            elif item.kind == BUTTON:
                self._draw_button(item)
        self.present()

    # -----------------------
    # Загрузка картинок
    # -----------------------

    def _image(self, ref: str) -> Optional[pygame.Surface]:
        if ref not in self._images:
            path = self.asset_dir / ref
            try:
                self._images[ref] = pygame.image.load(str(path)).convert_alpha()
            except (pygame.error, FileNotFoundError):
                if ref not in self._missing:
                    logger.warning("image not found: %s", path)
                    self._missing.add(ref)
                self._images[ref] = None
        return self._images[ref]

    def _scaled_image(self, ref: str, w: int, h: int) -> Optional[pygame.Surface]:
        key = (ref, w, h)
        if key not in self._scaled:
            surf = self._image(ref)
            if surf is None:
                return None
            self._scaled[key] = pygame.transform.smoothscale(surf, (max(1, w), max(1, h)))
        return self._scaled[key]

    def _font(self, size: int) -> pygame.font.Font:
        size = max(10, int(size))
        if size not in self._fonts:
            self._fonts[size] = pygame.font.SysFont(None, size)
        return self._fonts[size]

    # -----------------------
    # Рисование элементов
    # -----------------------

    def _draw_image(self, item: DisplayItem, display: Display, now_ms: int) -> None:
        if item.ref is None:
            return
        x, y = display.position_at(item, now_ms)
        rect = pygame.Rect(int(x), int(y), int(item.w), int(item.h))
        surf = self._scaled_image(item.ref, rect.width, rect.height)
        if surf is None:
            # картинки нет, рисуем серый прямоугольник, чтобы было видно место
            pygame.draw.rect(self.screen, self.placeholder_color, rect, width=2)
            return
        self.screen.blit(surf, rect)

    def _draw_text(self, item: DisplayItem) -> None:
        font = self._font(item.font_size)
        line_h = int(font.get_linesize() * 1.1)
        for i, line in enumerate(item.lines):
            surf = font.render(line, True, self.ui_color)
            self.screen.blit(surf, (int(item.x), int(item.y) + (i + 1) * line_h))

    def _draw_circle(self, item: DisplayItem) -> None:
        center = (int(item.x), int(item.y))
        radius = max(1, int(item.w / 2))
        pygame.draw.circle(self.screen, item.fill or self.ui_color, center, radius)
        if item.stroke is not None:
            pygame.draw.circle(self.screen, item.stroke, center, radius, width=2)

    def _draw_button(self, item: DisplayItem) -> None:
        rect = pygame.Rect(int(item.x), int(item.y), int(item.w), int(item.h))
        color = self.button_disabled if item.disabled else self.button_color
        pygame.draw.rect(self.screen, color, rect, border_radius=6)
        label = item.lines[0] if item.lines else ""
        surf = None
        if label.lower().endswith((".png", ".jpg", ".jpeg")):
            surf = self._scaled_image(label, rect.width - 8, rect.height - 8)
        if surf is not None:
            self.screen.blit(surf, (rect.x + 4, rect.y + 4))
            return
        text = self._font(28).render(label, True, self.bg_color)
        self.screen.blit(text, text.get_rect(center=rect.center))
