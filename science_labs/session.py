"""
Caller-owned holder for one experiment's current model and normalization.

Training swaps both in together once a run finishes; predictions read a
consistent snapshot of the pair. Separate sessions never share state.
"""

import logging
import threading
from typing import Mapping, Optional

import numpy as np
import pandas as pd
import torch

from .config import ExperimentSpec
from .errors import (
    InvalidParameterError,
    ModelNotReadyError,
    TrainingInProgressError,
)
from .mlp_model import RegressionMLP
from .normalization import Normalization, standardize
from .storage import ModelStore
from .training import EpochCallback, TrainingSummary, fit_model

LOG = logging.getLogger(__name__)


class ModelSession:
    def __init__(self, experiment: ExperimentSpec):
        self.experiment = experiment
        self._model: Optional[RegressionMLP] = None
        self._normalization: Optional[Normalization] = None
        self._lock = threading.Lock()
        self._training = False
        self.last_summary: Optional[TrainingSummary] = None

    @property
    def model(self) -> Optional[RegressionMLP]:
        return self._model

    @property
    def normalization(self) -> Optional[Normalization]:
        return self._normalization

    @property
    def is_ready(self) -> bool:
        with self._lock:
            return self._model is not None and self._normalization is not None

    @property
    def is_training(self) -> bool:
        return self._training

    def install(self, model: RegressionMLP, normalization: Normalization):
        with self._lock:
            self._model = model
            self._normalization = normalization

    def clear(self):
        with self._lock:
            self._model = None
            self._normalization = None

    async def train(
        self,
        teacher_rows: pd.DataFrame,
        user_rows: Optional[pd.DataFrame] = None,
        epochs: Optional[int] = None,
        batch_size: Optional[int] = None,
        val_ratio: Optional[float] = None,
        seed: int = 42,
        on_epoch_end: Optional[EpochCallback] = None,
        store: Optional[ModelStore] = None,
    ) -> TrainingSummary:
        with self._lock:
            if self._training:
                raise TrainingInProgressError(
                    f"A training run for {self.experiment.name} is already in progress."
                )
            self._training = True
        try:
            model, norm, summary = await fit_model(
                self.experiment,
                teacher_rows,
                user_rows=user_rows,
                epochs=epochs,
                batch_size=batch_size,
                val_ratio=val_ratio,
                seed=seed,
                on_epoch_end=on_epoch_end,
            )
            self.install(model, norm)
            self.last_summary = summary
        finally:
            with self._lock:
                self._training = False

        if store is not None:
            self.save(store)
        return summary

    async def predict(
        self,
        features: Mapping[str, float],
        normalization: Optional[Normalization] = None,
    ) -> np.ndarray:
        """Standardize raw features, run the network and rescale to physical units."""
        with self._lock:
            model = self._model
            norm = normalization or self._normalization
        if model is None:
            raise ModelNotReadyError(
                f"Model for {self.experiment.name} is not trained or loaded."
            )
        if norm is None:
            raise ModelNotReadyError(
                f"No normalization available for {self.experiment.name}."
            )

        columns = self.experiment.feature_columns
        missing = [c for c in columns if c not in features]
        if missing:
            raise InvalidParameterError(f"Missing input features: {missing}")
        uncovered = [c for c in columns if c not in norm.mean or c not in norm.std]
        if uncovered:
            raise InvalidParameterError(f"Normalization does not cover features: {uncovered}")
        raw = np.array([float(features[c]) for c in columns], dtype=np.float64)
        x = standardize(raw, norm, columns).astype(np.float32)

        with torch.inference_mode():
            out = model(torch.from_numpy(x).unsqueeze(0))[0].numpy().astype(np.float64)
        return out * self.experiment.target_scale

    async def predict_frame(self, rows: pd.DataFrame) -> np.ndarray:
        """Batch form of `predict`: one output row per input row."""
        with self._lock:
            model = self._model
            norm = self._normalization
        if model is None or norm is None:
            raise ModelNotReadyError(
                f"Model for {self.experiment.name} is not trained or loaded."
            )
        columns = self.experiment.feature_columns
        missing = [c for c in columns if c not in rows.columns]
        if missing:
            raise InvalidParameterError(f"Missing input features: {missing}")
        x = standardize(rows[list(columns)].to_numpy(dtype=np.float64), norm, columns).astype(np.float32)

        with torch.inference_mode():
            out = model(torch.from_numpy(x)).numpy().astype(np.float64)
        return out * self.experiment.target_scale

    def save(self, store: ModelStore):
        with self._lock:
            model = self._model
            norm = self._normalization
        if model is None or norm is None:
            raise ModelNotReadyError(f"Nothing to save for {self.experiment.name}.")
        store.save_model(self.experiment.model_key, model, self.experiment.name)
        store.save_normalization(self.experiment.normalization_key, norm)

    def load(self, store: ModelStore) -> bool:
        """Load both slots; returns False (session unchanged) if either is missing."""
        model = store.load_model(self.experiment.model_key, self.experiment.name)
        norm = store.load_normalization(self.experiment.normalization_key)
        if model is None or norm is None:
            return False
        self.install(model, norm)
        return True
