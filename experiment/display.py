from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple

IMAGE = "image"
TEXT = "text"
CIRCLE = "circle"
BUTTON = "button"


@dataclass
class DisplayItem:
    item_id: str
    kind: str
    x: float = 0.0
    y: float = 0.0
    w: float = 0.0
    h: float = 0.0
    ref: Optional[str] = None
    lines: Tuple[str, ...] = ()
    font_size: int = 25
    fill: Optional[Tuple[int, int, int]] = None
    stroke: Optional[Tuple[int, int, int]] = None
    code: Optional[str] = None
    visible: bool = True
    disabled: bool = False
    classes: List[str] = field(default_factory=list)
    # линейное перемещение: откуда и когда началось
    from_x: Optional[float] = None
    from_y: Optional[float] = None
    move_start_ms: int = 0
    move_duration_ms: int = 0


class Display:
    """
    Экран как упорядоченный набор элементов (картинки, текст, кнопки).

    Плагины только меняют элементы; рисует их Renderer (pygame),
    а тесты смотрят на элементы напрямую.
    """

    def __init__(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        self._items: Dict[str, DisplayItem] = {}
        self.clear_count = 0

    def add(self, item: DisplayItem) -> DisplayItem:
        self._items.pop(item.item_id, None)
        self._items[item.item_id] = item
        return item

    def get(self, item_id: str) -> Optional[DisplayItem]:
        return self._items.get(item_id)

    def __contains__(self, item_id: str) -> bool:
        return item_id in self._items

    def items(self) -> List[DisplayItem]:
        return list(self._items.values())

    def update(self, item_id: str, **changes) -> Optional[DisplayItem]:
        item = self._items.get(item_id)
        if item is None:
            return None
        updated = replace(item, **changes)
        self._items[item_id] = updated
        return updated

    def add_class(self, item_id: str, name: str) -> None:
        item = self._items.get(item_id)
        if item is not None and name not in item.classes:
            item.classes.append(name)

    def move(self, item_id: str, x: float, y: float, duration_ms: int, now_ms: int) -> None:
        item = self._items.get(item_id)
        if item is None:
            return
        cur_x, cur_y = self.position_at(item, now_ms)
        self.update(
            item_id,
            x=x,
            y=y,
            from_x=cur_x,
            from_y=cur_y,
            move_start_ms=now_ms,
            move_duration_ms=max(0, int(duration_ms)),
        )

    def remove(self, item_id: str) -> None:
        self._items.pop(item_id, None)

    def clear(self) -> None:
        self._items.clear()
        self.clear_count += 1

    @staticmethod
    def position_at(item: DisplayItem, now_ms: int) -> Tuple[float, float]:
        if item.from_x is None or item.move_duration_ms <= 0:
            return item.x, item.y
        t = (now_ms - item.move_start_ms) / item.move_duration_ms
        t = max(0.0, min(1.0, t))
        return (
            item.from_x + (item.x - item.from_x) * t,
            item.from_y + (item.y - item.from_y) * t,
        )

    def hit_test(self, x: float, y: float) -> Optional[str]:
        """Код верхнего видимого и активного элемента под точкой."""
        for item in reversed(self.items()):
            if item.code is None or not item.visible or item.disabled:
                continue
            if item.kind == CIRCLE:
                r = item.w / 2
                if (x - item.x) ** 2 + (y - item.y) ** 2 <= r * r:
                    return item.code
                continue
            if item.x <= x <= item.x + item.w and item.y <= y <= item.y + item.h:
                return item.code
        return None
