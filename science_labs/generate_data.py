#!/usr/bin/env python3
"""
Generate a synthetic (teacher) dataset for one experiment by sampling
parameters with the seeded generator and running the simulator on each.

Output: CSV with one column per feature/target, rows in generation order.
"""

import argparse
import logging
from pathlib import Path

from . import EXPERIMENTS, get_experiment
from .config import load_config


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Generate a synthetic training dataset.")
    parser.add_argument("--experiment", choices=sorted(EXPERIMENTS), required=True)
    parser.add_argument("--config", default=None, help="Optional lab_config.json path.")
    parser.add_argument("--samples", type=int, default=None, help="Parameter tuples to draw.")
    parser.add_argument("--seed", type=int, default=None, help="Generator seed.")
    parser.add_argument(
        "--output",
        default=None,
        help="CSV path (default: <experiment>_data.csv).",
    )
    parser.add_argument("--duration", type=float, default=20.0, help="Pendulum simulation length (s).")
    parser.add_argument("--days", type=int, default=90, help="Tomato simulation length (days).")
    parser.add_argument(
        "--target-day",
        type=int,
        default=None,
        help="Tomato: keep only this day per environment instead of every day.",
    )
    parser.add_argument("--no-noise", action="store_true", help="Acid-base: disable colour noise.")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


def generate(args):
    cfg = load_config(args.config)
    n = cfg.n_samples if args.samples is None else args.samples
    seed = cfg.seed if args.seed is None else args.seed
    module = get_experiment(args.experiment)

    if args.experiment == "acid-base":
        kwargs = {"noise_sigma": 0.0} if args.no_noise else {}
        return module.generate_synthetic_dataset(n, seed, **kwargs)
    if args.experiment == "pendulum":
        return module.generate_synthetic_dataset(n, seed, sim_duration_s=args.duration)
    if args.experiment == "tomato":
        return module.generate_synthetic_dataset(n, seed, days=args.days, target_day=args.target_day)
    raise ValueError(f"Unhandled experiment {args.experiment!r}")


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    out = Path(args.output or f"{args.experiment.replace('-', '_')}_data.csv")
    try:
        df = generate(args)
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc
    df.to_csv(out, index=False)
    print(f"✅ Saved {out} with shape {df.shape}")
    print(df.head(10))
    return out


if __name__ == "__main__":
    main()
