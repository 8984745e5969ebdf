from typing import Optional

import pygame

from data.models import InputEvent
from experiment.display import Display
from experiment.loop import KEYBOARD, POINTER, EventLoop

# ESC закрывает приложение и не считается ответом
ABORT_KEYS = (pygame.K_ESCAPE,)


class InputManager:
    """
    InputManager: прослойка между pygame и нашей логикой.

    Идея:
    - pygame шлёт события (event)
    - клавиатура: KEYDOWN/KEYUP -> код клавиши по имени ("1", "0", "space")
    - мышь: MOUSEBUTTONDOWN -> код элемента под курсором (hit test по Display)
    - готовое InputEvent отдаём в EventLoop, дальше его разбирают слушатели
    """

    def __init__(self, loop: EventLoop, display: Display):
        self.loop = loop
        self.display = display

    @staticmethod
    def key_code(event) -> str:
        return pygame.key.name(event.key)

    def translate(self, event) -> Optional[InputEvent]:
        if event.type in (pygame.KEYDOWN, pygame.KEYUP) and event.key in ABORT_KEYS:
            return None
        if event.type == pygame.KEYDOWN:
            return InputEvent(KEYBOARD, self.key_code(event), "down")
        if event.type == pygame.KEYUP:
            return InputEvent(KEYBOARD, self.key_code(event), "up")
        if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
            code = self.display.hit_test(*event.pos)
            if code is None:
                return None
            return InputEvent(POINTER, code, "down")
        return None

    def process_pygame_event(self, event) -> None:
        translated = self.translate(event)
        if translated is not None:
            self.loop.dispatch(translated)
