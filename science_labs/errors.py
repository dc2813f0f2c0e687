"""Exceptions raised by the simulation, training and persistence layers."""


class LabError(Exception):
    """Base class for every error this package raises on purpose."""


class InvalidParameterError(LabError, ValueError):
    """A simulation input is outside its physically sensible range."""


class ModelNotReadyError(LabError, RuntimeError):
    """Prediction was requested before a model was trained or loaded."""


class TrainingPreconditionError(LabError, ValueError):
    """Training inputs were rejected before any tensor was allocated."""


class TrainingInProgressError(LabError, RuntimeError):
    """A second training run was started on a session that is still training."""


class CorruptEntryError(LabError):
    """A stored model or normalization entry exists but cannot be decoded."""

    def __init__(self, key: str, reason: str):
        super().__init__(f"Stored entry '{key}' is unreadable: {reason}")
        self.key = key
        self.reason = reason
