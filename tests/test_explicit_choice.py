import random

import pytest

from config.settings import TwoStepTiming
from data.models import TrialConfigError
from experiment.plugins.reward import draw_reward, row_index


def _second_stage(**extra):
    params = {
        "type": "two-step-explicit-choice",
        "planet_text": "images/redplanet1.jpg",
        "left_text": "images/alien1",
        "right_text": "images/alien2",
        "choices": ["1", "0"],
        "trial_duration": 3000,
        "trial_row": [0.8, 0.2, 0.6, 0.4],
        "left_row_index": 1,
        "right_row_index": 0,
        "trial_stage": "2",
    }
    params.update(extra)
    return params


def test_initial_screen_shows_planet_and_both_choices(harness):
    harness.run(_second_stage(center_text="images/rocket1", prompt=["Choose"]))
    d = harness.display

    assert d.get("planet").ref == "images/redplanet1.jpg"
    assert d.get("left").ref == "images/alien1_norm.png"
    assert d.get("right").ref == "images/alien2_norm.png"
    assert d.get("center").ref == "images/rocket1_deact.png"
    assert d.get("prompt").lines == ("Choose",)


def test_left_choice_animates_and_reveals_reward(harness):
    layout = harness.context.layout
    harness.run(_second_stage())
    d = harness.display

    harness.press("1", at=500)
    # без центральной картинки движение начинается сразу
    assert d.get("right").ref == "images/alien2_deact.png"
    assert d.get("left").ref == "images/alien1_a2.png"
    assert (d.get("left").x, d.get("left").y) == (layout.chosen_x, layout.chosen_y)

    harness.advance_to(790)
    assert d.get("left").ref == "images/alien1_a1.png"
    harness.advance_to(990)
    assert d.get("left").ref == "images/alien1_a2.png"
    harness.advance_to(1589)
    assert "reward" not in d

    harness.advance_to(1590)
    assert d.get("left").ref == "images/alien1_deact.png"
    assert "reward" in d

    harness.advance_to(2499)
    assert harness.results == []
    harness.advance_to(2500)

    result = harness.results[0]
    assert result.reaction_time == 500
    assert result.response_code == "1"
    assert result.data["chosen_text"] == "images/alien1"
    assert result.data["valid_pressed"] == 1
    assert result.data["reward_probability"] == 0.2
    assert result.data["reward_text"] in ("images/t.png", "images/nothing.png")
    assert result.data["reward_outcome"] == (result.data["reward_text"] == "images/t.png")


def test_response_cancels_timeout(harness):
    harness.run(_second_stage(trial_duration=1000))
    harness.press("0", at=900)

    harness.advance_to(1000)
    assert harness.display.get("left").ref == "images/alien1_deact.png"

    harness.advance_to(2900)
    assert len(harness.results) == 1
    assert harness.results[0].data["chosen_text"] == "images/alien2"


def test_center_image_exits_before_move(harness):
    harness.run(_second_stage(center_text="images/rocket2"))
    d = harness.display

    harness.press("0", at=100)
    assert "center" not in d
    assert d.get("right").ref == "images/alien2_norm.png"

    harness.advance_to(350)
    assert d.get("right").ref == "images/alien2_a2.png"
    harness.advance_to(350 + 90 + 1000)
    assert d.get("right").ref == "images/alien2_deact.png"


def test_timeout_switches_to_slow_images_and_ends_after_isi(harness):
    harness.run(_second_stage())

    harness.advance_to(3000)
    d = harness.display
    assert d.get("left").ref == "images/alien1_sp.png"
    assert d.get("right").ref == "images/alien2_sp.png"

    harness.press("1", at=3500)
    harness.advance_to(3999)
    assert harness.results == []
    harness.advance_to(4000)

    result = harness.results[0]
    assert result.reaction_time is None
    assert result.response_code is None
    assert result.data["chosen_text"] == ""
    assert result.data["reward_outcome"] is None
    assert result.data["keys"] == ["1"]


def test_second_key_is_logged_not_recorded(harness):
    harness.run(_second_stage())
    harness.press("1", at=400)
    harness.press("0", at=700)
    harness.advance_to(5000)

    result = harness.results[0]
    assert result.response_code == "1"
    assert result.data["keys"] == ["0"]


def test_only_present_sides_accept_keys(harness):
    harness.run(_second_stage(left_text=None, left_row_index=None))

    harness.press("1", at=100)
    assert harness.controller.state.code is None

    harness.press("0", at=200)
    assert harness.controller.state.code == "0"


def test_query_trial_ends_on_valid_key(harness):
    harness.run(_second_stage(trial_row=None, query_trial="Which alien gave more gold?"))
    assert harness.display.get("query").lines == ("Which alien gave more gold?",)

    harness.press("0", at=800)

    assert len(harness.results) == 1
    assert harness.results[0].reaction_time == 800


def test_without_probability_row_no_reward_is_drawn(harness):
    harness.run(_second_stage(trial_row=None))
    harness.press("1", at=0)
    harness.advance_to(1590)
    assert "reward" not in harness.display
    harness.advance_to(3000)

    assert harness.results[0].data["reward_outcome"] is None
    assert harness.results[0].data["reward_text"] == ""


def test_audio_plays_for_the_trial_only(harness):
    harness.run(_second_stage(audio_stimulus="audio/choose.mp3"))
    clip = harness.audio.clips[0]
    assert clip.plays == 1 and clip.stops == 0

    harness.advance_to(10_000)
    assert clip.stops == 1


@pytest.mark.parametrize(
    "extra",
    [
        {"choices": ["1"]},
        {"choices": ["1", "0", "2"]},
        {"left_row_index": None},
        {"right_row_index": 7},
        {"trial_row": [0.5, 0.5, 0.5]},
        {"trial_row": [0.5, 0.5, 1.5, 0.5]},
    ],
)
def test_malformed_definitions_are_rejected(harness, extra):
    with pytest.raises(TrialConfigError):
        harness.run(_second_stage(**extra))


def test_missing_planet_is_rejected(harness):
    params = _second_stage()
    del params["planet_text"]
    with pytest.raises(TrialConfigError):
        harness.run(params)


def test_same_seed_gives_same_reward_in_trial(make_harness):
    outcomes = []
    for _ in range(2):
        h = make_harness(seed=11)
        for _trial in range(5):
            h.run(_second_stage(trial_row=[0.5, 0.5, 0.5, 0.5]))
            h.press("1")
            h.advance(3000)
        outcomes.append([r.data["reward_outcome"] for r in h.results])

    assert outcomes[0] == outcomes[1]
    assert len(outcomes[0]) == 5


def test_reward_is_reproducible_with_same_seed():
    row = (0.55, 0.45, 0.3, 0.7)
    first = [draw_reward(row, row_index(s, a), random.Random(42), "t.png", "n.png") for s in (0, 1) for a in (0, 1)]
    second = [draw_reward(row, row_index(s, a), random.Random(42), "t.png", "n.png") for s in (0, 1) for a in (0, 1)]

    assert first == second
    assert [o.probability for o in first] == list(row)


def test_reward_probability_edges():
    rng = random.Random(3)
    assert all(draw_reward((1.0, 0, 0, 0), 0, rng, "t", "n").rewarded for _ in range(50))
    assert not any(draw_reward((1.0, 0, 0, 0), 1, rng, "t", "n").rewarded for _ in range(50))


def test_row_index_maps_state_and_alien():
    assert [row_index(s, a) for s in (0, 1) for a in (0, 1)] == [0, 1, 2, 3]
    with pytest.raises(TrialConfigError):
        row_index(2, 0)


def test_reward_is_drawn_when_choice_is_made(harness):
    # деньги показываются меньше, чем длится анимация: финал раньше settle
    harness.context.timing = TwoStepTiming(moneytime=200)
    harness.run(_second_stage(center_text="images/rocket1", trial_row=[1, 1, 1, 1]))

    harness.press("1", at=100)
    assert harness.controller.state.derived["reward"].rewarded is True

    harness.advance(10_000)

    result = harness.results[0]
    assert result.valid_response
    assert result.data["reward_outcome"] is True
    assert result.data["reward_probability"] == 1.0
    assert result.data["reward_text"] == "images/t.png"
