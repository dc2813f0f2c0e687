"""
Tomato phenology simulator.

Daily timestep: growing-degree-days accumulate above a 10 C base, germination
progresses under suitable temperature and moisture, and biomass follows a
logistic increment scaled by an effective GDD that combines four environment
multipliers (moisture, light, nutrients, pests). Height and leaf count are
saturating functions of biomass; the development stage is read off cumulative
GDD. Fruit set, growth and pest attrition follow fixed per-stage rules.
"""

import logging
import math
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence

import pandas as pd

from .config import ExperimentSpec, OutputActivation
from .errors import InvalidParameterError
from .normalization import Normalization
from .rng import Mulberry32

LOG = logging.getLogger(__name__)

T_BASE = 10.0
DEFAULT_DAYS = 90
MAX_HEIGHT_CM = 150.0
HEIGHT_RATE = 4.0
MAX_LEAVES = 40
LEAF_RATE = 3.0
GROWTH_RATE = 0.05
BASE_DAILY_GROWTH = 0.001
GERMINATED_AT_PCT = 5.0
FRUIT_CAP = 30
VARIETY_SPREAD = 0.12

RANGES = {
    "avg_temp_c": (8.0, 36.0),
    "soil_moisture_pct": (10.0, 100.0),
    "sunlight_hours": (0.0, 14.0),
    "soil_n": (0.0, 100.0),
    "pest_pressure": (0.0, 10.0),
}
ROUNDING = {
    "avg_temp_c": 2,
    "soil_moisture_pct": 1,
    "sunlight_hours": 1,
    "soil_n": 1,
    "pest_pressure": 1,
}

FEATURE_COLUMNS = ("avg_temp_c", "soil_moisture_pct", "sunlight_hours", "soil_n", "pest_pressure", "target_day")
TARGET_COLUMNS = ("height_cm",)


class Stage(str, Enum):
    SEED = "seed"
    GERMINATION = "germination"
    SEEDLING = "seedling"
    VEGETATIVE = "vegetative"
    FLOWERING = "flowering"
    FRUIT_SET = "fruit_set"
    FRUIT_DEVELOPMENT = "fruit_development"
    RIPENING = "ripening"

    @property
    def order(self) -> int:
        return STAGE_ORDER.index(self)


STAGE_ORDER = list(Stage)

# upper cumulative-GDD bound of each stage once germinated
STAGE_THRESHOLDS = (
    (50.0, Stage.GERMINATION),
    (200.0, Stage.SEEDLING),
    (400.0, Stage.VEGETATIVE),
    (700.0, Stage.FLOWERING),
    (1000.0, Stage.FRUIT_SET),
    (1300.0, Stage.FRUIT_DEVELOPMENT),
)

FRUITING_STAGES = (Stage.FLOWERING, Stage.FRUIT_SET, Stage.FRUIT_DEVELOPMENT, Stage.RIPENING)


@dataclass(frozen=True)
class TomatoParams:
    avg_temp_c: float
    soil_moisture_pct: float
    sunlight_hours: float
    soil_n: float
    pest_pressure: float
    days: int = DEFAULT_DAYS
    random_seed: Optional[int] = None

    def __post_init__(self):
        if not (math.isfinite(self.avg_temp_c) and -20.0 <= self.avg_temp_c <= 50.0):
            raise InvalidParameterError(f"avg_temp_c must be within [-20, 50], got {self.avg_temp_c}")
        bounds = {
            "soil_moisture_pct": (0.0, 100.0),
            "sunlight_hours": (0.0, 24.0),
            "soil_n": (0.0, 100.0),
            "pest_pressure": (0.0, 10.0),
        }
        for name, (low, high) in bounds.items():
            value = getattr(self, name)
            if not (math.isfinite(value) and low <= value <= high):
                raise InvalidParameterError(f"{name} must be within [{low}, {high}], got {value}")
        days = self.days
        if not isinstance(days, (int, float)) or not math.isfinite(days) or int(days) != days or days < 1:
            raise InvalidParameterError(f"days must be a positive integer, got {self.days}")

    def features(self, target_day: Optional[int] = None) -> Dict[str, float]:
        values = {c: getattr(self, c) for c in RANGES}
        values["target_day"] = self.days if target_day is None else target_day
        return values


@dataclass(frozen=True)
class TomatoDayState:
    day: int
    stage: Stage
    gdd_today: float
    gdd_cum: float
    germinated_pct: float
    height_cm: float
    leaf_count: int
    flowering: bool
    fruit_count: int
    health_index: float
    biomass: float = 0.0
    effective_gdd: float = 0.0


def daily_gdd(t_avg: float, t_base: float = T_BASE) -> float:
    return max(0.0, t_avg - t_base)


def moisture_multiplier(m: float) -> float:
    # peaks at 60 %, 0.5 at 10 % and 110 %
    return 1.5 - abs(m - 60.0) / 50.0


def light_multiplier(hours: float) -> float:
    if hours <= 0:
        return 0.4
    if hours >= 12:
        return 1.4
    return 0.4 + (hours / 12.0) * 1.0


def nutrient_multiplier(n: float) -> float:
    return 0.6 + (n / 100.0) * 0.8


def pest_multiplier(p: float) -> float:
    return 1.0 - (p / 10.0) * 0.3


def biomass_to_height_cm(biomass: float, max_height: float = MAX_HEIGHT_CM) -> float:
    return max_height * (1 - math.exp(-HEIGHT_RATE * biomass))


def biomass_to_leaf_count(biomass: float, max_leaves: int = MAX_LEAVES) -> int:
    return int(math.floor(max_leaves * (1 - math.exp(-LEAF_RATE * biomass))))


def stage_from_gdd(gdd_cum: float, germinated: bool) -> Stage:
    if not germinated:
        return Stage.SEED
    for upper, stage in STAGE_THRESHOLDS:
        if gdd_cum < upper:
            return stage
    return Stage.RIPENING


def germination_rate(t_avg: float, moisture: float) -> float:
    """Percent per day; best near 22 C and 55 % moisture."""
    temp_factor = max(0.0, 1 - abs(t_avg - 22.0) / 15.0)
    moist_factor = max(0.0, 1 - abs(moisture - 55.0) / 45.0)
    return 15.0 * temp_factor * moist_factor


def health_index(moisture: float, sunlight: float, soil_n: float, pest: float) -> float:
    health_moisture = min(1.0, moisture / 100.0)
    health_light = min(1.0, sunlight / 12.0)
    health_nutrients = min(1.0, soil_n / 100.0)
    health_pests = max(0.0, 1 - pest / 10.0)
    value = (
        0.55 * health_moisture
        + 0.2 * health_light
        + 0.25 * health_nutrients
        - 0.03 * (10 - health_pests * 10)
    )
    return max(0.0, min(1.0, value))


def update_fruit_count(
    fruit_count: int,
    stage: Stage,
    flowering: bool,
    biomass: float,
    effective_gdd: float,
    pest: float,
) -> int:
    """One day of fruit set, growth and pest attrition."""
    # Rules kept as tuned: additions and pest attrition overlap in the late stages.
    if stage is Stage.FRUIT_SET and flowering:
        fruit_count = min(FRUIT_CAP, fruit_count + int(math.floor(biomass * effective_gdd * 0.5)))
    if stage is Stage.FRUIT_DEVELOPMENT and flowering:
        fruit_count = min(FRUIT_CAP, fruit_count + int(math.floor(biomass * effective_gdd * 0.3)))
    if stage is Stage.RIPENING and flowering and fruit_count < 20:
        fruit_count = min(FRUIT_CAP, fruit_count + int(math.floor(biomass * effective_gdd * 0.2)))
    if stage in (Stage.FRUIT_DEVELOPMENT, Stage.RIPENING) and pest > 3:
        fruit_count = max(0, int(math.floor(fruit_count * (1 - pest * 0.02))))
    return fruit_count


def simulate_tomato(params: TomatoParams) -> List[TomatoDayState]:
    """One state per day, days 1..params.days."""
    variety_factor = 1.0
    if params.random_seed is not None:
        rng = Mulberry32(params.random_seed)
        variety_factor = 1 + (rng() - 0.5) * VARIETY_SPREAD

    t_avg = params.avg_temp_c
    moisture = params.soil_moisture_pct
    pest = params.pest_pressure

    m_eff = moisture_multiplier(moisture)
    l_eff = light_multiplier(params.sunlight_hours)
    n_eff = nutrient_multiplier(params.soil_n)
    p_eff = pest_multiplier(pest)
    health = round(health_index(moisture, params.sunlight_hours, params.soil_n, pest), 3)

    gdd_cum = 0.0
    biomass = 0.0
    germinated_pct = 0.0
    fruit_count = 0
    flowering = False

    series = []
    for day in range(1, int(params.days) + 1):
        gdd_today = daily_gdd(t_avg)
        gdd_cum += gdd_today

        if germinated_pct < 100:
            germinated_pct = min(100.0, germinated_pct + germination_rate(t_avg, moisture))
        germinated = germinated_pct >= GERMINATED_AT_PCT

        effective_gdd = gdd_today * m_eff * l_eff * n_eff * p_eff * variety_factor

        if germinated and effective_gdd > 0:
            delta = GROWTH_RATE * biomass * (1 - biomass) * effective_gdd * 0.01
            biomass = min(1.0, biomass + delta + BASE_DAILY_GROWTH)

        stage = stage_from_gdd(gdd_cum, germinated)
        if stage in FRUITING_STAGES:
            flowering = True

        fruit_count = update_fruit_count(fruit_count, stage, flowering, biomass, effective_gdd, pest)

        series.append(
            TomatoDayState(
                day=day,
                stage=stage,
                gdd_today=round(gdd_today, 2),
                gdd_cum=round(gdd_cum, 2),
                germinated_pct=round(germinated_pct, 1),
                height_cm=round(biomass_to_height_cm(biomass), 2),
                leaf_count=biomass_to_leaf_count(biomass),
                flowering=flowering,
                fruit_count=max(0, min(FRUIT_CAP, fruit_count)),
                health_index=health,
                biomass=biomass,
                effective_gdd=effective_gdd,
            )
        )
    return series


run_simulation = simulate_tomato


def states_to_frame(states: Sequence[TomatoDayState]) -> pd.DataFrame:
    df = pd.DataFrame([asdict(s) for s in states])
    if not df.empty:
        df["stage"] = df["stage"].map(lambda s: Stage(s).value)
    return df


def generate_synthetic_dataset(
    n: int = 1000,
    seed: int = 42,
    days: int = DEFAULT_DAYS,
    target_day: Optional[int] = None,
) -> pd.DataFrame:
    """
    Sample `n` environments and simulate each. Without `target_day` every
    simulated day becomes a row (trajectory-labelled); with it, only that day.
    """
    if n < 0:
        raise InvalidParameterError(f"Sample count must be non-negative, got {n}")
    if target_day is not None and target_day < 1:
        raise InvalidParameterError(f"target_day must be positive, got {target_day}")
    rng = Mulberry32(seed)
    sim_days = days if target_day is None else max(days, target_day)
    rows = []
    for i in range(n):
        sampled = {key: rng.uniform(low, high) for key, (low, high) in RANGES.items()}
        series = simulate_tomato(TomatoParams(days=sim_days, **sampled))
        rounded = {key: round(value, ROUNDING[key]) for key, value in sampled.items()}
        picked = series if target_day is None else [series[target_day - 1]]
        for state in picked:
            rows.append(
                dict(
                    rounded,
                    target_day=state.day,
                    height_cm=state.height_cm,
                    stage=state.stage.value,
                    fruit_count=state.fruit_count,
                    health_index=state.health_index,
                )
            )
        if (i + 1) % 100 == 0:
            LOG.debug("Generated %d/%d tomato samples", i + 1, n)
    LOG.info("Tomato dataset generated: %d records from %d environments", len(rows), n)
    columns = list(FEATURE_COLUMNS) + ["height_cm", "stage", "fruit_count", "health_index"]
    return pd.DataFrame(rows, columns=columns)


EXPERIMENT = ExperimentSpec(
    name="tomato",
    feature_columns=FEATURE_COLUMNS,
    target_columns=TARGET_COLUMNS,
    hidden_units=(32, 24, 12),
    output_activation=OutputActivation.LINEAR,
    learning_rate=0.001,
    model_key="tomato-ml-model",
    normalization_key="tomato-normalization",
    default_epochs=40,
    default_batch_size=64,
    val_ratio=0.15,
)


async def train(session, rows: pd.DataFrame, user_rows: Optional[pd.DataFrame] = None, **options):
    return await session.train(rows, user_rows=user_rows, **options)


async def predict(
    session,
    params: TomatoParams,
    target_day: Optional[int] = None,
    normalization: Optional[Normalization] = None,
) -> float:
    out = await session.predict(params.features(target_day), normalization)
    return float(out[0])
