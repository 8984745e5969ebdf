import argparse
import logging
import random
from pathlib import Path

from config.settings import MarsSettings, TwoStepSettings, TwoStepTiming, load_run_settings
from data.probabilities import load_probability_rows
from experiment.app import ExperimentApp
from tasks import mars, two_step

DEFAULT_ROW = (0.9, 0.1, 0.9, 0.1)


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the two-step or MaRs task")
    parser.add_argument("--task", choices=["two-step", "mars"], default="two-step")
    parser.add_argument("--assets", type=Path, default=Path("."), help="Directory with images/ and audio/")
    parser.add_argument("--probabilities", type=Path, default=None, help="Reward probability CSV")
    parser.add_argument("--items", type=Path, default=None, help="MaRs items JSON")
    parser.add_argument("--trials", type=int, default=None)
    parser.add_argument("--practice", action="store_true", help="MaRs: show feedback after each answer")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # 1. Настройки запуска (env) и тайминги
    run = load_run_settings()
    timing = TwoStepTiming()
    settings = TwoStepSettings()
    mars_settings = MarsSettings()
    rng = random.Random(run.seed)

    # 2. Таймлайн
    if args.task == "two-step":
        prob_path = args.probabilities or (args.assets / settings.probability_file)
        if prob_path.exists():
            rows = load_probability_rows(prob_path)
        else:
            logging.getLogger(__name__).warning("%s not found, using a fixed row", prob_path)
            rows = [DEFAULT_ROW] * settings.block_trials
        timeline = two_step.build_block(rows, settings, timing, rng, n_trials=args.trials)
    else:
        if args.items is None:
            parser.error("--items is required for the MaRs task")
        items = mars.load_items(args.items)
        if args.trials is not None:
            items = items[: args.trials]
        timeline = mars.build_timeline(items, mars_settings, practice=args.practice)

    # 3. Запуск
    app = ExperimentApp(run, timeline, asset_dir=args.assets, timing=timing, two_step=settings, mars=mars_settings)
    results = app.run()

    print("Task finished")
    print("Results:", app.results_path)
    for r in results:
        print(r.trial_type, r.response_code, r.valid_response, r.reaction_time)


if __name__ == "__main__":
    main()
