"""Simulators, synthetic datasets and small regression models for the science labs."""

from . import acid_base, pendulum, tomato
from .config import ExperimentSpec, LabConfig, load_config
from .errors import (
    CorruptEntryError,
    InvalidParameterError,
    LabError,
    ModelNotReadyError,
    TrainingInProgressError,
    TrainingPreconditionError,
)
from .normalization import Normalization
from .rng import Mulberry32, mulberry32
from .session import ModelSession
from .storage import ModelStore

__version__ = "0.1.0"

EXPERIMENTS = {
    acid_base.EXPERIMENT.name: acid_base,
    pendulum.EXPERIMENT.name: pendulum,
    tomato.EXPERIMENT.name: tomato,
}


def get_experiment(name: str):
    """Domain module (simulator, generator, EXPERIMENT, train/predict) for `name`."""
    try:
        return EXPERIMENTS[name]
    except KeyError:
        raise ValueError(f"Unknown experiment {name!r}; choose from {sorted(EXPERIMENTS)}") from None
