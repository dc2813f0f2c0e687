"""
Lab configuration.

Experiment descriptors fix each network's architecture and persistence keys.
`LabConfig` holds the run-level knobs (store directory, sample count, seed,
epoch/batch overrides) and can be written to / read from `lab_config.json`.
"""

import argparse
import json
import os
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple

DEFAULT_CONFIG_PATH = "lab_config.json"
DEFAULT_STORE_DIR = "saved_models"
STORE_DIR_ENV = "SCIENCE_LABS_HOME"


class OutputActivation(str, Enum):
    LINEAR = "linear"
    SIGMOID = "sigmoid"


@dataclass(frozen=True)
class ExperimentSpec:
    name: str
    feature_columns: Tuple[str, ...]
    target_columns: Tuple[str, ...]
    hidden_units: Tuple[int, ...]
    output_activation: OutputActivation
    learning_rate: float
    model_key: str
    normalization_key: str
    target_scale: float = 1.0
    default_epochs: int = 50
    default_batch_size: int = 32
    val_ratio: float = 0.15

    @property
    def input_size(self) -> int:
        return len(self.feature_columns)

    @property
    def output_dim(self) -> int:
        return len(self.target_columns)


@dataclass
class LabConfig:
    store_dir: str = DEFAULT_STORE_DIR
    n_samples: int = 1000
    seed: int = 42
    epochs: Dict[str, int] = field(default_factory=dict)
    batch_size: Dict[str, int] = field(default_factory=dict)

    def epochs_for(self, experiment: ExperimentSpec) -> int:
        return int(self.epochs.get(experiment.name, experiment.default_epochs))

    def batch_size_for(self, experiment: ExperimentSpec) -> int:
        return int(self.batch_size.get(experiment.name, experiment.default_batch_size))


def load_config(path: Optional[str] = None) -> LabConfig:
    """Read `path` (or lab_config.json if present) and apply env overrides."""
    cfg = LabConfig()
    config_path = Path(path or DEFAULT_CONFIG_PATH)
    if config_path.exists():
        with open(config_path, "r") as f:
            raw = json.load(f)
        known = {k: v for k, v in raw.items() if k in LabConfig.__dataclass_fields__}
        cfg = LabConfig(**known)
    elif path is not None:
        raise FileNotFoundError(f"Config not found: {config_path}")

    env_dir = os.environ.get(STORE_DIR_ENV)
    if env_dir:
        cfg.store_dir = env_dir
    return cfg


def write_default_config(path: str = DEFAULT_CONFIG_PATH, experiments: Sequence[ExperimentSpec] = ()) -> LabConfig:
    cfg = LabConfig(
        epochs={e.name: e.default_epochs for e in experiments},
        batch_size={e.name: e.default_batch_size for e in experiments},
    )
    with open(path, "w") as f:
        json.dump(asdict(cfg), f, indent=2)
    return cfg


def main(argv=None):
    from . import EXPERIMENTS

    parser = argparse.ArgumentParser(description="Write the default lab configuration.")
    parser.add_argument("--output", default=DEFAULT_CONFIG_PATH, help="Config path to write.")
    args = parser.parse_args(argv)

    cfg = write_default_config(args.output, [m.EXPERIMENT for m in EXPERIMENTS.values()])
    print(f"✅ Saved {args.output}:")
    print(json.dumps(asdict(cfg), indent=2))
    return cfg


if __name__ == "__main__":
    main()
