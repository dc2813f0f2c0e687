"""
Per-feature standardization. Statistics are computed once from the training
rows (population mean/std, epsilon added to std) and reapplied unchanged to
every prediction input.
"""

from dataclasses import dataclass
from typing import Dict, Mapping, Sequence, Tuple

import numpy as np
import pandas as pd

from .errors import TrainingPreconditionError

EPSILON = 1e-7


@dataclass(frozen=True)
class Normalization:
    mean: Dict[str, float]
    std: Dict[str, float]

    @property
    def features(self) -> Tuple[str, ...]:
        return tuple(self.mean.keys())

    def vectors(self, columns: Sequence[str]) -> Tuple[np.ndarray, np.ndarray]:
        mean = np.array([self.mean[c] for c in columns], dtype=np.float64)
        std = np.array([self.std[c] for c in columns], dtype=np.float64)
        return mean, std

    def to_dict(self) -> Dict[str, Dict[str, float]]:
        return {"mean": dict(self.mean), "std": dict(self.std)}

    @classmethod
    def from_dict(cls, obj: Mapping) -> "Normalization":
        mean = {str(k): float(v) for k, v in obj["mean"].items()}
        std = {str(k): float(v) for k, v in obj["std"].items()}
        if set(mean) != set(std):
            raise ValueError("mean and std cover different features")
        if any(s <= 0 for s in std.values()):
            raise ValueError("std values must be positive")
        return cls(mean=mean, std=std)


def compute_normalization(df: pd.DataFrame, columns: Sequence[str]) -> Normalization:
    if df.empty:
        raise TrainingPreconditionError("Cannot compute normalization from an empty dataset.")
    stacked = df[list(columns)].to_numpy(dtype=np.float64)
    mean = stacked.mean(axis=0)
    std = stacked.std(axis=0) + EPSILON
    return Normalization(
        mean={c: float(m) for c, m in zip(columns, mean)},
        std={c: float(s) for c, s in zip(columns, std)},
    )


def standardize(values, norm: Normalization, columns: Sequence[str]) -> np.ndarray:
    mean, std = norm.vectors(columns)
    return (np.asarray(values, dtype=np.float64) - mean) / std


def destandardize(values, norm: Normalization, columns: Sequence[str]) -> np.ndarray:
    mean, std = norm.vectors(columns)
    return np.asarray(values, dtype=np.float64) * std + mean
