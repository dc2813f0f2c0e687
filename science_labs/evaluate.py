#!/usr/bin/env python3
"""
Score a saved model against a fresh simulator hold-out (different seed from
training). For the pendulum the small-angle formula is scored as well, so ML
mode and formula mode can be compared on the same rows.
"""

import argparse
import asyncio
import json
import logging

import numpy as np

from . import EXPERIMENTS, get_experiment
from .config import load_config
from .errors import LabError
from .metrics import score
from .pendulum import theoretical_small_angle_period
from .session import ModelSession
from .storage import ModelStore


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Evaluate a saved experiment model.")
    parser.add_argument("--experiment", choices=sorted(EXPERIMENTS), required=True)
    parser.add_argument("--config", default=None, help="Optional lab_config.json path.")
    parser.add_argument("--store", default=None, help="Model store directory.")
    parser.add_argument("--samples", type=int, default=200, help="Hold-out parameter tuples.")
    parser.add_argument("--seed", type=int, default=7, help="Hold-out seed.")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


def evaluate_experiment(name: str, store: ModelStore, samples: int, seed: int) -> dict:
    module = get_experiment(name)
    experiment = module.EXPERIMENT
    session = ModelSession(experiment)
    if not session.load(store):
        raise SystemExit(f"No saved model for {name} in {store.root}. Train it first.")

    rows = module.generate_synthetic_dataset(samples, seed)
    preds = asyncio.run(session.predict_frame(rows))
    truth = rows[list(experiment.target_columns)].to_numpy(dtype=np.float64)

    report = {"experiment": name, "rows": int(len(rows))}
    for idx, column in enumerate(experiment.target_columns):
        report[column] = score(truth[:, idx], preds[:, idx])

    if name == "pendulum":
        formula = np.array(
            [theoretical_small_angle_period(L, g) for L, g in zip(rows["length_m"], rows["gravity"])]
        )
        report["formula_mode"] = score(truth[:, 0], formula)
    return report


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)
    cfg = load_config(args.config)
    store = ModelStore(args.store or cfg.store_dir)
    try:
        report = evaluate_experiment(args.experiment, store, args.samples, args.seed)
    except LabError as exc:
        raise SystemExit(str(exc)) from exc
    print(json.dumps(report, indent=2))
    return report


if __name__ == "__main__":
    main()
