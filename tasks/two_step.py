import random
from typing import Any, Callable, Dict, List, Sequence

from config.settings import TwoStepSettings, TwoStepTiming
from data.models import TrialResult
from experiment.plugins.reward import row_index

EARTH = "images/earth.jpg"
BLACK_BACKGROUND = "images/blackbackground.jpg"
ROCKETS = ("images/rocket1", "images/rocket2")

# второй этап: планета -> (фон, инопланетяне)
PLANETS = {
    0: ("images/redplanet1.jpg", ("images/alien1", "images/alien2")),
    1: ("images/purpleplanet.jpg", ("images/alien3", "images/alien4")),
}

# столбец строки вероятностей для каждого инопланетянина:
# первый на планете берёт нечётный столбец своей пары, второй чётный
ALIEN_ROW_INDEX = {
    alien: row_index(state, 1 - k)
    for state, (_, aliens) in PLANETS.items()
    for k, alien in enumerate(aliens)
}


def fixation(timing: TwoStepTiming) -> Dict[str, Any]:
    return {
        "type": "two-step-fixation",
        "stimulus": BLACK_BACKGROUND,
        "text": "+",
        "trial_duration": timing.ititime,
    }


def first_stage(settings: TwoStepSettings, timing: TwoStepTiming, rockets_swapped: bool) -> Dict[str, Any]:
    left, right = (ROCKETS[1], ROCKETS[0]) if rockets_swapped else ROCKETS
    return {
        "type": "two-step-explicit-choice",
        "planet_text": EARTH,
        "left_text": left,
        "right_text": right,
        "choices": [settings.left_key, settings.right_key],
        "trial_duration": timing.choicetime,
        "trial_stage": "1",
        "practice_trial": "real",
    }


def second_stage(
    settings: TwoStepSettings,
    timing: TwoStepTiming,
    row: Sequence[float],
    rng: random.Random,
    aliens_swapped: Dict[int, bool],
) -> Callable[[List[TrialResult]], Dict[str, Any]]:
    """Элемент таймлайна, который решается после первого этапа: планету выбирает ракета."""

    def build(results: List[TrialResult]) -> Dict[str, Any]:
        chosen = results[-1].data.get("chosen_text") if results else None
        if not chosen:
            return fixation(timing)
        common_state = ROCKETS.index(chosen)
        common = rng.random() < settings.transprob
        state = common_state if common else 1 - common_state
        planet, aliens = PLANETS[state]
        left, right = (aliens[1], aliens[0]) if aliens_swapped[state] else aliens
        return {
            "type": "two-step-explicit-choice",
            "planet_text": planet,
            "left_text": left,
            "right_text": right,
            "center_text": chosen,
            "left_row_index": ALIEN_ROW_INDEX[left],
            "right_row_index": ALIEN_ROW_INDEX[right],
            "choices": [settings.left_key, settings.right_key],
            "trial_duration": timing.choicetime,
            "trial_row": list(row),
            "trial_stage": "2",
            "practice_trial": "real",
            "transition_type": "common" if common else "rare",
        }

    return build


def build_block(
    rows: Sequence[Sequence[float]],
    settings: TwoStepSettings,
    timing: TwoStepTiming,
    rng: random.Random,
    n_trials: int = None,
) -> list:
    n_trials = settings.block_trials if n_trials is None else n_trials
    rockets_swapped = rng.random() < 0.5
    aliens_swapped = {0: rng.random() < 0.5, 1: rng.random() < 0.5}
    timeline: list = []
    for row in list(rows)[:n_trials]:
        timeline.append(fixation(timing))
        timeline.append(first_stage(settings, timing, rockets_swapped))
        timeline.append(second_stage(settings, timing, row, rng, aliens_swapped))
    return timeline
