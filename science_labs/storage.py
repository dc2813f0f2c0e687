"""
Directory-backed key-value store for trained models and their normalization.

Each key maps to one file: `<key>.pt` for a model checkpoint and `<key>.json`
for normalization. A later save overwrites the earlier one. The model and
normalization files are written independently, so a reader can briefly see a
new model next to the previous normalization (or the reverse).
"""

import json
import logging
import os
from pathlib import Path
from typing import List, Optional

import torch

from .errors import CorruptEntryError
from .mlp_model import RegressionMLP, build_mlp_model
from .normalization import Normalization

LOG = logging.getLogger(__name__)

MODEL_SUFFIX = ".pt"
NORMALIZATION_SUFFIX = ".json"


class ModelStore:
    def __init__(self, root="saved_models"):
        self.root = Path(root)

    def _path(self, name: str, suffix: str) -> Path:
        if not name or "/" in name or "\\" in name or name.startswith("."):
            raise ValueError(f"Invalid store key: {name!r}")
        return self.root / f"{name}{suffix}"

    def _write(self, path: Path, writer):
        self.root.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(path.name + ".tmp")
        writer(tmp_path)
        os.replace(tmp_path, path)

    def keys(self) -> List[str]:
        if not self.root.exists():
            return []
        return sorted(p.name for p in self.root.iterdir() if p.suffix in (MODEL_SUFFIX, NORMALIZATION_SUFFIX))

    # --- models ---

    def save_model(self, name: str, model: RegressionMLP, experiment: str):
        path = self._path(name, MODEL_SUFFIX)
        config = dict(model.config(), experiment=experiment)
        checkpoint = {"state_dict": model.state_dict(), "config": config}
        self._write(path, lambda p: torch.save(checkpoint, p))
        LOG.info("Model saved: %s", path)

    def load_model(self, name: str, experiment: Optional[str] = None) -> Optional[RegressionMLP]:
        path = self._path(name, MODEL_SUFFIX)
        if not path.exists():
            LOG.info("No saved model found: %s", name)
            return None
        try:
            checkpoint = torch.load(path, map_location="cpu")
            config = checkpoint["config"]
            model = build_mlp_model(config)
            model.load_state_dict(checkpoint["state_dict"])
        except Exception as exc:
            raise CorruptEntryError(name, str(exc)) from exc
        if experiment is not None and config.get("experiment") != experiment:
            raise CorruptEntryError(
                name, f"checkpoint belongs to {config.get('experiment')!r}, expected {experiment!r}"
            )
        model.eval()
        LOG.info("Model loaded: %s", path)
        return model

    # --- normalization ---

    def save_normalization(self, name: str, norm: Normalization):
        path = self._path(name, NORMALIZATION_SUFFIX)
        payload = json.dumps(norm.to_dict(), indent=2)
        self._write(path, lambda p: p.write_text(payload, encoding="utf-8"))
        LOG.info("Normalization saved: %s", path)

    def load_normalization(self, name: str) -> Optional[Normalization]:
        path = self._path(name, NORMALIZATION_SUFFIX)
        if not path.exists():
            LOG.info("No saved normalization found: %s", name)
            return None
        try:
            return Normalization.from_dict(json.loads(path.read_text(encoding="utf-8")))
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise CorruptEntryError(name, str(exc)) from exc
