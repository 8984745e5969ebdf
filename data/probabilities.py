import csv
from pathlib import Path
from typing import List, Tuple

from data.models import TrialConfigError

ROW_WIDTH = 4


def parse_probability_row(values) -> Tuple[float, ...]:
    row = tuple(float(v) for v in values)
    if len(row) != ROW_WIDTH:
        raise TrialConfigError(f"probability row must have {ROW_WIDTH} values, got {len(row)}")
    for p in row:
        if not 0.0 <= p <= 1.0:
            raise TrialConfigError(f"probability out of range: {p}")
    return row


def load_probability_rows(path: Path) -> List[Tuple[float, ...]]:
    """Строки таблицы вероятностей награды; нечисловая первая строка считается заголовком."""
    rows: List[Tuple[float, ...]] = []
    with Path(path).open("r", encoding="utf-8", newline="") as f:
        for i, values in enumerate(csv.reader(f)):
            values = [v.strip() for v in values if v.strip()]
            if not values:
                continue
            if i == 0:
                try:
                    float(values[0])
                except ValueError:
                    continue
            rows.append(parse_probability_row(values))
    return rows
