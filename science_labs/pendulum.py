"""
Nonlinear damped pendulum with quadratic air drag, integrated with fixed-step
RK4. The oscillation period is measured from successive angle peaks, with the
small-angle formula T = 2*pi*sqrt(L/g) as the formula-mode answer and as the
fallback when too few peaks are found.
"""

import logging
import math
from dataclasses import asdict, dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .config import ExperimentSpec, OutputActivation
from .errors import InvalidParameterError
from .normalization import Normalization
from .rng import Mulberry32

LOG = logging.getLogger(__name__)

# 2.8 cm diameter bob
BOB_AREA_M2 = math.pi * (0.014 * 0.014)
STANDARD_GRAVITY = 9.81
DEFAULT_TIME_STEP = 0.01
DEFAULT_TOTAL_TIME = 20.0
MIN_PEAKS = 3

RANGES = {
    "length_m": (0.1, 2.0),
    "initial_angle_deg": (5.0, 60.0),
    "damping": (0.0, 0.2),
    "air_density": (0.8, 1.3),
    "bob_mass_kg": (0.05, 0.5),
    "gravity": (5.0, 15.0),
    "drag_coefficient": (0.1, 1.0),
}

FEATURE_COLUMNS = ("length_m", "initial_angle_deg", "damping", "air_density", "bob_mass_kg", "gravity")
TARGET_COLUMNS = ("estimated_period_s",)


@dataclass(frozen=True)
class PendulumParams:
    length_m: float
    initial_angle_deg: float
    damping: float = 0.0
    drag_coefficient: float = 0.0
    air_density: float = 1.225
    bob_mass_kg: float = 0.2
    gravity: float = STANDARD_GRAVITY
    time_step: float = DEFAULT_TIME_STEP
    total_time: float = DEFAULT_TOTAL_TIME

    def __post_init__(self):
        positive = ("length_m", "bob_mass_kg", "gravity", "time_step")
        non_negative = ("damping", "drag_coefficient", "air_density", "total_time")
        for name in positive:
            value = getattr(self, name)
            if not (math.isfinite(value) and value > 0):
                raise InvalidParameterError(f"{name} must be positive, got {value}")
        for name in non_negative:
            value = getattr(self, name)
            if not (math.isfinite(value) and value >= 0):
                raise InvalidParameterError(f"{name} must be non-negative, got {value}")
        if not -180.0 <= self.initial_angle_deg <= 180.0:
            raise InvalidParameterError(
                f"initial_angle_deg must be within [-180, 180], got {self.initial_angle_deg}"
            )

    def features(self) -> Dict[str, float]:
        return {c: getattr(self, c) for c in FEATURE_COLUMNS}


@dataclass(frozen=True)
class PendulumState:
    t: float
    theta: float
    omega: float
    alpha: float
    x: float
    y: float
    energy: float


@dataclass(frozen=True)
class PeriodEstimate:
    mean_period: Optional[float]
    std: Optional[float]
    n_peaks: int

    @property
    def is_defined(self) -> bool:
        return self.mean_period is not None


def deg2rad(d: float) -> float:
    return d * math.pi / 180.0


def rad2deg(r: float) -> float:
    return r * 180.0 / math.pi


def compute_energy(theta: float, omega: float, p: PendulumParams) -> float:
    v = p.length_m * omega
    kinetic = 0.5 * p.bob_mass_kg * v * v
    potential = p.bob_mass_kg * p.gravity * p.length_m * (1.0 - math.cos(theta))
    return kinetic + potential


def pendulum_derivatives(theta: float, omega: float, p: PendulumParams) -> Tuple[float, float]:
    L = p.length_m
    m = p.bob_mass_kg
    gravity_term = -m * p.gravity * L * math.sin(theta)
    damping_term = -p.damping * omega * L * L
    v = L * omega
    drag_term = -0.5 * p.air_density * abs(v) * v * BOB_AREA_M2 * p.drag_coefficient * L
    return omega, (gravity_term + damping_term + drag_term) / (m * L * L)


def rk4_step(theta: float, omega: float, dt: float, p: PendulumParams) -> Tuple[float, float]:
    k1_t, k1_w = pendulum_derivatives(theta, omega, p)
    k2_t, k2_w = pendulum_derivatives(theta + k1_t * dt / 2, omega + k1_w * dt / 2, p)
    k3_t, k3_w = pendulum_derivatives(theta + k2_t * dt / 2, omega + k2_w * dt / 2, p)
    k4_t, k4_w = pendulum_derivatives(theta + k3_t * dt, omega + k3_w * dt, p)
    next_theta = theta + (dt / 6) * (k1_t + 2 * k2_t + 2 * k3_t + k4_t)
    next_omega = omega + (dt / 6) * (k1_w + 2 * k2_w + 2 * k3_w + k4_w)
    return next_theta, next_omega


def simulate_pendulum(params: PendulumParams) -> List[PendulumState]:
    """States at t = 0, dt, ..., total_time; the first is the release point."""
    dt = params.time_step
    steps = int(round(params.total_time / dt))
    L = params.length_m
    theta = deg2rad(params.initial_angle_deg)
    omega = 0.0

    states = []
    for i in range(steps + 1):
        _, alpha = pendulum_derivatives(theta, omega, params)
        states.append(
            PendulumState(
                t=i * dt,
                theta=theta,
                omega=omega,
                alpha=alpha,
                x=L * math.sin(theta),
                y=-L * math.cos(theta),
                energy=compute_energy(theta, omega, params),
            )
        )
        if i < steps:
            theta, omega = rk4_step(theta, omega, dt, params)
    return states


run_simulation = simulate_pendulum


def estimate_period_from_series(states: Sequence[PendulumState], min_peaks: int = MIN_PEAKS) -> PeriodEstimate:
    peaks = [
        states[i].t
        for i in range(1, len(states) - 1)
        if states[i].theta > states[i - 1].theta and states[i].theta > states[i + 1].theta
    ]
    if len(peaks) < min_peaks:
        return PeriodEstimate(mean_period=None, std=None, n_peaks=len(peaks))
    diffs = np.diff(np.array(peaks, dtype=np.float64))
    return PeriodEstimate(mean_period=float(diffs.mean()), std=float(diffs.std()), n_peaks=len(peaks))


def theoretical_small_angle_period(length_m: float, gravity: float = STANDARD_GRAVITY) -> float:
    return 2 * math.pi * math.sqrt(length_m / gravity)


def period_with_fallback(params: PendulumParams, states: Optional[Sequence[PendulumState]] = None) -> Tuple[float, bool]:
    """Measured period, or (small-angle period, True) when it cannot be measured."""
    if states is None:
        states = simulate_pendulum(params)
    est = estimate_period_from_series(states)
    if est.is_defined:
        return est.mean_period, False
    return theoretical_small_angle_period(params.length_m, params.gravity), True


def states_to_frame(states: Sequence[PendulumState]) -> pd.DataFrame:
    return pd.DataFrame([asdict(s) for s in states])


def generate_synthetic_dataset(
    n: int = 800,
    seed: int = 42,
    sim_duration_s: float = DEFAULT_TOTAL_TIME,
    time_step: float = DEFAULT_TIME_STEP,
) -> pd.DataFrame:
    if n < 0:
        raise InvalidParameterError(f"Sample count must be non-negative, got {n}")
    rng = Mulberry32(seed)
    rows = []
    fallbacks = 0
    for i in range(n):
        sampled = {key: rng.uniform(low, high) for key, (low, high) in RANGES.items()}
        params = PendulumParams(time_step=time_step, total_time=sim_duration_s, **sampled)
        period, is_fallback = period_with_fallback(params)
        fallbacks += int(is_fallback)
        rows.append(
            dict(
                sampled,
                time_step=time_step,
                total_time=sim_duration_s,
                estimated_period_s=round(period * 1000) / 1000,
                estimated_period_is_fallback=is_fallback,
            )
        )
        if (i + 1) % 100 == 0:
            LOG.debug("Generated %d/%d pendulum samples", i + 1, n)
    LOG.info("Pendulum dataset generated: %d records (%d fallback periods)", len(rows), fallbacks)
    columns = list(RANGES) + ["time_step", "total_time", "estimated_period_s", "estimated_period_is_fallback"]
    return pd.DataFrame(rows, columns=columns)


EXPERIMENT = ExperimentSpec(
    name="pendulum",
    feature_columns=FEATURE_COLUMNS,
    target_columns=TARGET_COLUMNS,
    hidden_units=(24, 16, 8),
    output_activation=OutputActivation.LINEAR,
    learning_rate=0.01,
    model_key="pendulum-ml-model",
    normalization_key="pendulum-normalization",
    default_epochs=100,
    default_batch_size=32,
    val_ratio=0.15,
)


async def train(session, rows: pd.DataFrame, user_rows: Optional[pd.DataFrame] = None, **options):
    return await session.train(rows, user_rows=user_rows, **options)


async def predict(
    session,
    params: PendulumParams,
    normalization: Optional[Normalization] = None,
) -> float:
    out = await session.predict(params.features(), normalization)
    return float(out[0])
