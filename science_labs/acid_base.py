"""
Acid-base indicator colour.

Litmus blends its acid and base colours by the Henderson-Hasselbalch base
fraction; the universal indicator interpolates a fixed pH -> RGB table. A small
seeded uniform noise can be added per channel before clamping to [0, 255].
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

from .config import ExperimentSpec, OutputActivation
from .errors import InvalidParameterError
from .normalization import Normalization
from .rng import Mulberry32

LOG = logging.getLogger(__name__)

CONFIG = {
    "litmus": {
        "pKa": 7.0,
        "acid_color": (255, 0, 0),
        "base_color": (0, 0, 255),
    },
    "universal": {
        "color_map": (
            (1.0, (255, 0, 0)),
            (4.0, (255, 128, 0)),
            (7.0, (0, 255, 0)),
            (10.0, (0, 0, 255)),
            (14.0, (128, 0, 128)),
        ),
    },
    "default_path_length_cm": 1.0,
    # full noise width as a fraction of 255
    "noise_sigma": 0.01,
}

PH_RANGE = (0.0, 14.0)
PATH_LENGTH_RANGE = (0.5, 2.0)

FEATURE_COLUMNS = ("ph", "path_length_cm", "indicator")
TARGET_COLUMNS = ("r", "g", "b")


class Indicator(str, Enum):
    LITMUS = "litmus"
    UNIVERSAL = "universal"

    @property
    def code(self) -> int:
        return 0 if self is Indicator.LITMUS else 1

    @classmethod
    def from_code(cls, code: int) -> "Indicator":
        return cls.LITMUS if int(code) == 0 else cls.UNIVERSAL


@dataclass(frozen=True)
class AcidBaseParams:
    indicator: Indicator
    ph: float
    path_length_cm: float = CONFIG["default_path_length_cm"]
    run_id: str = ""

    def __post_init__(self):
        try:
            indicator = Indicator(self.indicator)
        except ValueError:
            raise InvalidParameterError(f"Unknown indicator: {self.indicator!r}") from None
        object.__setattr__(self, "indicator", indicator)
        if not PH_RANGE[0] <= self.ph <= PH_RANGE[1]:
            raise InvalidParameterError(f"pH must be within [0, 14], got {self.ph}")
        if not self.path_length_cm > 0:
            raise InvalidParameterError(f"Path length must be positive, got {self.path_length_cm}")

    def features(self) -> Dict[str, float]:
        return {
            "ph": self.ph,
            "path_length_cm": self.path_length_cm,
            "indicator": self.indicator.code,
        }


@dataclass(frozen=True)
class AcidBaseResult:
    r: float
    g: float
    b: float
    indicator: Indicator
    ph: float
    path_length_cm: float
    run_id: str = ""

    @property
    def rgb(self) -> Tuple[float, float, float]:
        return (self.r, self.g, self.b)


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def interpolate_rgb(a: Sequence[float], b: Sequence[float], t: float) -> List[int]:
    return [_round_half_up(a[i] + (b[i] - a[i]) * t) for i in range(3)]


def litmus_fractions(ph: float, pka: float = CONFIG["litmus"]["pKa"]) -> Tuple[float, float]:
    """(acid, base) fractions; safe for any finite pH."""
    x = ph - pka
    if x >= 0:
        base = 1.0 / (1.0 + 10.0 ** (-x)) if x < 300 else 1.0
    else:
        ratio = 10.0 ** x
        base = ratio / (1.0 + ratio)
    return 1.0 - base, base


def interpolate_universal_color(ph: float) -> List[int]:
    table = CONFIG["universal"]["color_map"]
    if ph <= table[0][0]:
        return list(table[0][1])
    if ph >= table[-1][0]:
        return list(table[-1][1])

    low, high = table[0], table[-1]
    for i in range(len(table) - 1):
        if table[i][0] <= ph <= table[i + 1][0]:
            low, high = table[i], table[i + 1]
            break
    span = high[0] - low[0]
    t = (ph - low[0]) / span if span > 0 else 0.0
    return interpolate_rgb(low[1], high[1], t)


def indicator_color(indicator: Indicator, ph: float) -> List[int]:
    indicator = Indicator(indicator)
    if indicator is Indicator.LITMUS:
        litmus = CONFIG["litmus"]
        _, base = litmus_fractions(ph, litmus["pKa"])
        return interpolate_rgb(litmus["acid_color"], litmus["base_color"], base)
    if indicator is Indicator.UNIVERSAL:
        return interpolate_universal_color(ph)
    raise InvalidParameterError(f"Unhandled indicator: {indicator!r}")


def run_simulation(
    params: AcidBaseParams,
    rng: Optional[Mulberry32] = None,
    noise_sigma: float = CONFIG["noise_sigma"],
) -> AcidBaseResult:
    """Colour for `params`. Noise is only added when an rng is supplied."""
    rgb = [float(v) for v in indicator_color(params.indicator, params.ph)]
    if rng is not None and noise_sigma > 0:
        rgb = [min(255.0, max(0.0, v + (rng() - 0.5) * noise_sigma * 255.0)) for v in rgb]
    return AcidBaseResult(
        r=rgb[0],
        g=rgb[1],
        b=rgb[2],
        indicator=params.indicator,
        ph=params.ph,
        path_length_cm=params.path_length_cm,
        run_id=params.run_id,
    )


def generate_synthetic_dataset(
    n: int = 1000,
    seed: int = 42,
    noise_sigma: float = CONFIG["noise_sigma"],
) -> pd.DataFrame:
    if n < 0:
        raise InvalidParameterError(f"Sample count must be non-negative, got {n}")
    rng = Mulberry32(seed)
    rows = []
    for i in range(n):
        indicator = Indicator.LITMUS if rng() > 0.5 else Indicator.UNIVERSAL
        ph = rng.uniform(*PH_RANGE)
        path_length_cm = rng.uniform(*PATH_LENGTH_RANGE)
        result = run_simulation(
            AcidBaseParams(indicator, ph, path_length_cm, run_id=f"synth_{i}"),
            rng=rng,
            noise_sigma=noise_sigma,
        )
        rows.append((round(ph, 2), round(path_length_cm, 2), indicator.code, result.r, result.g, result.b))
        if (i + 1) % 100 == 0:
            LOG.debug("Generated %d/%d acid-base samples", i + 1, n)
    LOG.info("Acid-base dataset generated: %d records", len(rows))
    return pd.DataFrame(rows, columns=list(FEATURE_COLUMNS + TARGET_COLUMNS))


def rgb_to_css(rgb: Sequence[float]) -> str:
    return f"rgb({_round_half_up(rgb[0])}, {_round_half_up(rgb[1])}, {_round_half_up(rgb[2])})"


EXPERIMENT = ExperimentSpec(
    name="acid-base",
    feature_columns=FEATURE_COLUMNS,
    target_columns=TARGET_COLUMNS,
    hidden_units=(32, 32, 16),
    output_activation=OutputActivation.SIGMOID,
    learning_rate=0.01,
    model_key="acid-base-model",
    normalization_key="acid-base-normalization",
    target_scale=255.0,
    default_epochs=50,
    default_batch_size=32,
    val_ratio=0.15,
)


async def train(session, rows: pd.DataFrame, user_rows: Optional[pd.DataFrame] = None, **options):
    return await session.train(rows, user_rows=user_rows, **options)


async def predict(
    session,
    params: AcidBaseParams,
    normalization: Optional[Normalization] = None,
) -> Dict[str, float]:
    out = await session.predict(params.features(), normalization)
    r, g, b = (min(255.0, max(0.0, float(v))) for v in out)
    return {"r": r, "g": g, "b": b}
