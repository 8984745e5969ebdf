import random
from dataclasses import dataclass
from typing import Optional, Sequence

from data.models import TrialConfigError

ROW_WIDTH = 4


def row_index(state: int, alien: int) -> int:
    """Столбец строки вероятностей для (планета второго этапа, инопланетянин на ней)."""
    if state not in (0, 1) or alien not in (0, 1):
        raise TrialConfigError(f"state/alien must be 0 or 1, got {state}/{alien}")
    return 2 * state + alien


def validate_row(trial_row: Sequence[float]) -> tuple:
    row = tuple(float(p) for p in trial_row)
    if len(row) != ROW_WIDTH:
        raise TrialConfigError(f"trial_row must have {ROW_WIDTH} probabilities, got {len(row)}")
    for p in row:
        if not 0.0 <= p <= 1.0:
            raise TrialConfigError(f"trial_row probability out of range: {p}")
    return row


@dataclass(frozen=True)
class RewardOutcome:
    rewarded: bool
    probability: float
    row_index: int
    image: Optional[str]


def draw_reward(
    trial_row: Sequence[float],
    index: int,
    rng: random.Random,
    reward_image: Optional[str],
    null_image: Optional[str],
) -> RewardOutcome:
    probability = float(trial_row[index])
    rewarded = rng.random() < probability
    return RewardOutcome(
        rewarded=rewarded,
        probability=probability,
        row_index=index,
        image=reward_image if rewarded else null_image,
    )
