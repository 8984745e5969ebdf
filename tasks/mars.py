import json
from pathlib import Path
from typing import Any, Dict, List

from config.settings import MarsSettings


def mars_trial(item: Dict[str, Any], mars: MarsSettings, trial_duration: int = 30000,
               display_feedback: bool = False) -> Dict[str, Any]:
    """
    item: {"stimulus": ..., "options": [correct, distractor, ...]}
    плюс "pos_img"/"neg_img" для обратной связи в тренировке.
    """
    countdown_start = max(0, trial_duration - len(mars.countdown_frames) * mars.countdown_step_ms)
    params = {
        "type": "mars-trial",
        "stimulus": item["stimulus"],
        "choices": list(item["options"]),
        "button_html": '<img src="%choice%" height="200px" width="200px"/>',
        "shuffle_buttons": True,
        "trial_duration": trial_duration,
        "countdown_start": countdown_start,
        "feedback_duration": mars.feedback_duration if display_feedback else 0,
        "display_feedback": display_feedback,
    }
    if display_feedback:
        params["pos_img"] = item["pos_img"]
        params["neg_img"] = item["neg_img"]
    return params


def load_items(path: Path) -> List[Dict[str, Any]]:
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    items = payload.get("items") if isinstance(payload, dict) else payload
    if not isinstance(items, list):
        raise ValueError(f"{path}: expected a list of items")
    return items


def build_timeline(items: List[Dict[str, Any]], mars: MarsSettings, trial_duration: int = 30000,
                   practice: bool = False) -> list:
    return [mars_trial(item, mars, trial_duration, display_feedback=practice) for item in items]
