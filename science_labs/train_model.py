#!/usr/bin/env python3
"""
Train an experiment's regression network and persist it with its
normalization. Teacher rows come from `--data` CSVs (as written by
generate_data) or are generated on the fly; `--user-data` CSVs are appended.
"""

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import List, Optional

import pandas as pd

from . import EXPERIMENTS, get_experiment
from .config import load_config
from .errors import LabError
from .session import ModelSession
from .storage import ModelStore


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Train and save an experiment model.")
    parser.add_argument("--experiment", choices=sorted(EXPERIMENTS), required=True)
    parser.add_argument("--config", default=None, help="Optional lab_config.json path.")
    parser.add_argument(
        "--data",
        nargs="+",
        default=None,
        help="Teacher CSV files. Generated with the configured seed when omitted.",
    )
    parser.add_argument("--user-data", nargs="+", default=None, help="User-collected CSV files.")
    parser.add_argument("--samples", type=int, default=None, help="Rows to generate when --data is omitted.")
    parser.add_argument("--epochs", type=int, default=None, help="Training epochs.")
    parser.add_argument("--batch-size", type=int, default=None, help="Mini-batch size.")
    parser.add_argument("--val-ratio", type=float, default=None, help="Validation split.")
    parser.add_argument("--seed", type=int, default=None, help="Random seed.")
    parser.add_argument("--store", default=None, help="Model store directory.")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


def load_csv(path: str) -> pd.DataFrame:
    csv_path = Path(path)
    if not csv_path.exists():
        raise FileNotFoundError(f"CSV not found: {csv_path}")
    df = pd.read_csv(csv_path)
    if df.empty:
        raise ValueError(f"{csv_path} is empty.")
    return df


def load_frames(paths: Optional[List[str]]) -> Optional[pd.DataFrame]:
    if not paths:
        return None
    frames = []
    for path in paths:
        df = load_csv(path)
        frames.append(df)
        print(f"Loaded {path}: {len(df)} rows")
    return pd.concat(frames, ignore_index=True)


def print_epoch(epoch, logs):
    print(
        f"Epoch {epoch:03d} | Train loss={logs['loss']:.4f} | MAE={logs['mae']:.4f} | "
        f"Val loss={logs['val_loss']:.4f}"
    )


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)
    cfg = load_config(args.config)
    module = get_experiment(args.experiment)
    experiment = module.EXPERIMENT
    seed = cfg.seed if args.seed is None else args.seed

    teacher = load_frames(args.data)
    if teacher is None:
        n = cfg.n_samples if args.samples is None else args.samples
        print(f"Generating {n} synthetic {experiment.name} samples (seed={seed})...")
        teacher = module.generate_synthetic_dataset(n, seed)
    user = load_frames(args.user_data)

    store = ModelStore(args.store or cfg.store_dir)
    session = ModelSession(experiment)
    try:
        summary = asyncio.run(
            session.train(
                teacher,
                user_rows=user,
                epochs=args.epochs if args.epochs is not None else cfg.epochs_for(experiment),
                batch_size=args.batch_size if args.batch_size is not None else cfg.batch_size_for(experiment),
                val_ratio=args.val_ratio,
                seed=seed,
                on_epoch_end=print_epoch,
                store=store,
            )
        )
    except LabError as exc:
        raise SystemExit(str(exc)) from exc

    print(f"✅ Saved {experiment.model_key} and {experiment.normalization_key} to {store.root}")
    print(
        json.dumps(
            {
                "experiment": summary.experiment,
                "train_rows": summary.train_rows,
                "val_rows": summary.val_rows,
                "final_loss": summary.final_loss,
                "final_mae": summary.final_mae,
            },
            indent=2,
        )
    )
    return summary


if __name__ == "__main__":
    main()
