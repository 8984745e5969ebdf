import os
from dataclasses import dataclass, field
from typing import Tuple


@dataclass(frozen=True)
class WindowConfig:
    width: int = 1280
    height: int = 720
    fps: int = 60
    title: str = "Two-Step Task"
    fullscreen: bool = False


@dataclass(frozen=True)
class TwoStepTiming:
    moneytime: int = 1000  # награда на экране
    isitime: int = 1000  # анимация выбранного инопланетянина
    choicetime: int = 3000  # время на выбор
    box_moving_time: int = 90
    ititime: int = 1000
    center_exit_ms: int = 250  # уход центральной картинки перед движением


@dataclass(frozen=True)
class TwoStepSettings:
    block_trials: int = 50
    transprob: float = 0.7  # вероятность частого перехода
    left_key: str = "1"
    right_key: str = "0"
    reward_string: str = "images/t.png"
    null_string: str = "images/nothing.png"
    probability_file: str = "fixed/masterprob4.csv"


@dataclass(frozen=True)
class MarsSettings:
    countdown_frames: Tuple[str, ...] = (
        "img/timer5.png",
        "img/timer4.png",
        "img/timer3.png",
        "img/timer2.png",
        "img/timer1.png",
    )
    countdown_step_ms: int = 1000
    blank_timer: str = "img/blanktimer.png"
    timer_size: int = 100
    feedback_duration: int = 2000


@dataclass(frozen=True)
class LayoutConfig:
    """Координаты в пикселях для одного размера окна; считаются один раз."""

    width: int
    height: int
    picture_width: float
    picture_height: float
    monster_size: float
    reward_size: float
    x_center: float
    y_center: float
    choice_y: float
    choice_x_right: float
    choice_x_left: float
    chosen_y: float
    chosen_x: float
    reward_y: float
    reward_x: float
    text_start_y: float
    instructions_text_start_y: float
    text_start_x: float
    font_size: float
    button_width: float
    button_height: float
    buttons_y: float

    @classmethod
    def from_window(cls, width: int, height: int) -> "LayoutConfig":
        # картинки рисовались под 1.34:1 и высоту 758 px
        if width / height < 1.34:
            picture_height = width / 1.34
            picture_width = float(width)
        else:
            picture_height = float(height)
            picture_width = height * 1.34
        monster_size = picture_height * 300 / 758
        reward_size = picture_height * 75 / 758
        x_center = width / 2
        y_center = height / 2
        button_width = min(width / 5, picture_height / 3)
        return cls(
            width=width,
            height=height,
            picture_width=picture_width,
            picture_height=picture_height,
            monster_size=monster_size,
            reward_size=reward_size,
            x_center=x_center,
            y_center=y_center,
            choice_y=y_center + 0.22 * picture_height - monster_size / 2,
            choice_x_right=x_center + 0.25 * picture_width - monster_size / 2,
            choice_x_left=x_center - 0.25 * picture_width - monster_size / 2,
            chosen_y=y_center - 0.06 * picture_height - monster_size / 2,
            chosen_x=x_center - monster_size / 2,
            reward_y=y_center - 0.06 * picture_height - reward_size / 2 - monster_size / 2,
            reward_x=x_center - reward_size / 2,
            text_start_y=y_center - 0.2 * picture_height,
            instructions_text_start_y=y_center - 0.4 * picture_height,
            text_start_x=x_center - 0.49 * picture_width,
            font_size=picture_height * 25 / 758,
            button_width=button_width,
            button_height=button_width,
            buttons_y=height * 0.62,
        )


@dataclass(frozen=True)
class RunSettings:
    output_dir: str = "data/results"
    seed: int = 1
    window: WindowConfig = field(default_factory=WindowConfig)


def load_run_settings() -> RunSettings:
    output_dir = os.getenv("TWOSTEP_OUTPUT_DIR", "data/results").strip() or "data/results"
    seed = int(os.getenv("TWOSTEP_SEED", "1"))
    fullscreen = os.getenv("TWOSTEP_FULLSCREEN", "").strip().lower() in ("1", "true", "yes")
    return RunSettings(
        output_dir=output_dir,
        seed=seed,
        window=WindowConfig(fullscreen=fullscreen),
    )
