#!/usr/bin/env python3
"""
Train an experiment's regression network on simulator rows (optionally
concatenated with user-collected rows). Inputs are standardized with a fresh
Normalization, a validation split is held out for monitoring only, and the
model is fitted with Adam on mean-squared error for a fixed epoch count.
"""

import asyncio
import logging
import math
import random
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd
import torch
from sklearn.model_selection import train_test_split
from torch.utils.data import DataLoader, TensorDataset

from .config import ExperimentSpec
from .errors import TrainingPreconditionError
from .mlp_model import RegressionMLP, build_for_experiment
from .normalization import Normalization, compute_normalization, standardize

LOG = logging.getLogger(__name__)

EpochCallback = Callable[[int, Dict[str, float]], None]


@dataclass
class TrainingSummary:
    experiment: str
    epochs: int
    batch_size: int
    train_rows: int
    val_rows: int
    history: Dict[str, List[float]] = field(default_factory=dict)

    @property
    def final_loss(self) -> float:
        return self.history["loss"][-1]

    @property
    def final_mae(self) -> float:
        return self.history["mae"][-1]


def set_seed(seed: int):
    random.seed(seed)
    np.random.seed(seed)
    torch.manual_seed(seed)


def ensure_columns(df: pd.DataFrame, columns, label: str):
    missing = [col for col in columns if col not in df.columns]
    if missing:
        raise TrainingPreconditionError(f"{label} rows are missing columns: {missing}")


def combine_rows(
    experiment: ExperimentSpec,
    teacher_rows: pd.DataFrame,
    user_rows: Optional[pd.DataFrame] = None,
) -> pd.DataFrame:
    required = list(experiment.feature_columns) + list(experiment.target_columns)
    ensure_columns(teacher_rows, required, "Teacher")
    frames = [teacher_rows[required]]
    if user_rows is not None and len(user_rows):
        ensure_columns(user_rows, required, "User")
        frames.append(user_rows[required])
    return pd.concat(frames, ignore_index=True)


def check_options(n_rows: int, epochs: int, batch_size: int, val_ratio: float):
    if n_rows < 2:
        raise TrainingPreconditionError(
            f"Training needs at least 2 rows, got {n_rows}."
        )
    if epochs < 1:
        raise TrainingPreconditionError(f"Epoch count must be positive, got {epochs}.")
    if batch_size < 1:
        raise TrainingPreconditionError(f"Batch size must be positive, got {batch_size}.")
    if not 0.0 < val_ratio < 1.0:
        raise TrainingPreconditionError(f"Validation ratio must be in (0, 1), got {val_ratio}.")
    n_val = math.ceil(n_rows * val_ratio)
    if n_rows - n_val < 1:
        raise TrainingPreconditionError(
            f"Validation ratio {val_ratio} leaves no training rows out of {n_rows}."
        )


def build_datasets(
    df: pd.DataFrame,
    experiment: ExperimentSpec,
    norm: Normalization,
    val_ratio: float,
    seed: int,
) -> Tuple[TensorDataset, TensorDataset]:
    features = standardize(
        df[list(experiment.feature_columns)].to_numpy(dtype=np.float64),
        norm,
        experiment.feature_columns,
    ).astype(np.float32)
    targets = (
        df[list(experiment.target_columns)].to_numpy(dtype=np.float64) / experiment.target_scale
    ).astype(np.float32)

    indices = np.arange(len(df))
    train_idx, val_idx = train_test_split(indices, test_size=val_ratio, random_state=seed, shuffle=True)

    def subset(idxs):
        return TensorDataset(torch.from_numpy(features[idxs]), torch.from_numpy(targets[idxs]))

    return subset(train_idx), subset(val_idx)


def run_epoch(model, loader, criterion, optimizer) -> Tuple[float, float]:
    model.train()
    total_loss = 0.0
    total_abs = 0.0
    count = 0
    for batch_x, batch_y in loader:
        optimizer.zero_grad()
        preds = model(batch_x)
        loss = criterion(preds, batch_y)
        loss.backward()
        optimizer.step()
        total_loss += loss.item() * batch_x.size(0)
        total_abs += (preds.detach() - batch_y).abs().mean().item() * batch_x.size(0)
        count += batch_x.size(0)
    return total_loss / count, total_abs / count


def evaluate(model, loader, criterion) -> Dict[str, float]:
    model.eval()
    total_loss = 0.0
    total_abs = 0.0
    count = 0
    with torch.no_grad():
        for batch_x, batch_y in loader:
            preds = model(batch_x)
            total_loss += criterion(preds, batch_y).item() * batch_x.size(0)
            total_abs += (preds - batch_y).abs().mean().item() * batch_x.size(0)
            count += batch_x.size(0)
    if count == 0:
        return {"val_loss": float("nan"), "val_mae": float("nan")}
    return {"val_loss": total_loss / count, "val_mae": total_abs / count}


def train_and_validate(model, train_loader, val_loader, criterion, optimizer) -> Dict[str, float]:
    train_loss, train_mae = run_epoch(model, train_loader, criterion, optimizer)
    logs = {"loss": train_loss, "mse": train_loss, "mae": train_mae}
    logs.update(evaluate(model, val_loader, criterion))
    return logs


async def fit_model(
    experiment: ExperimentSpec,
    teacher_rows: pd.DataFrame,
    user_rows: Optional[pd.DataFrame] = None,
    epochs: Optional[int] = None,
    batch_size: Optional[int] = None,
    val_ratio: Optional[float] = None,
    seed: int = 42,
    on_epoch_end: Optional[EpochCallback] = None,
) -> Tuple[RegressionMLP, Normalization, TrainingSummary]:
    """Train a fresh model; nothing outside the returned objects is touched."""
    epochs = experiment.default_epochs if epochs is None else int(epochs)
    batch_size = experiment.default_batch_size if batch_size is None else int(batch_size)
    val_ratio = experiment.val_ratio if val_ratio is None else float(val_ratio)

    rows = combine_rows(experiment, teacher_rows, user_rows)
    check_options(len(rows), epochs, batch_size, val_ratio)
    if not np.isfinite(rows.to_numpy(dtype=np.float64)).all():
        raise TrainingPreconditionError("Training rows contain NaN or infinite values.")

    set_seed(seed)
    norm = compute_normalization(rows, experiment.feature_columns)
    LOG.info("Normalization computed for %s: %s", experiment.name, norm.to_dict())

    train_dataset, val_dataset = build_datasets(rows, experiment, norm, val_ratio, seed)
    generator = torch.Generator().manual_seed(seed)
    train_loader = DataLoader(train_dataset, batch_size=batch_size, shuffle=True, generator=generator)
    val_loader = DataLoader(val_dataset, batch_size=batch_size, shuffle=False)

    model = build_for_experiment(experiment)
    criterion = torch.nn.MSELoss()
    optimizer = torch.optim.Adam(model.parameters(), lr=experiment.learning_rate)

    summary = TrainingSummary(
        experiment=experiment.name,
        epochs=epochs,
        batch_size=batch_size,
        train_rows=len(train_dataset),
        val_rows=len(val_dataset),
        history={"loss": [], "mse": [], "mae": [], "val_loss": [], "val_mae": []},
    )
    LOG.info(
        "Training %s for %d epochs | Train: %d | Val: %d",
        experiment.name, epochs, summary.train_rows, summary.val_rows,
    )

    for epoch in range(1, epochs + 1):
        logs = await asyncio.to_thread(train_and_validate, model, train_loader, val_loader, criterion, optimizer)
        for key, value in logs.items():
            summary.history[key].append(value)
        LOG.debug(
            "Epoch %03d | loss=%.5f | mae=%.5f | val_loss=%.5f",
            epoch, logs["loss"], logs["mae"], logs["val_loss"],
        )
        if on_epoch_end is not None:
            try:
                on_epoch_end(epoch, dict(logs))
            except Exception:
                LOG.warning("on_epoch_end callback failed at epoch %d", epoch, exc_info=True)

    model.eval()
    LOG.info("Training complete for %s: loss=%.4f mae=%.4f", experiment.name, summary.final_loss, summary.final_mae)
    return model, norm, summary
