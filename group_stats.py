"""Shot group statistics for ShotLog.

Computes dispersion figures for one session of marked impacts: mean point of
impact, mean radius, group size, R95, standard deviations, velocity spread,
vertical stringing against velocity and a bootstrap confidence rating. When a
target distance is known every linear figure is also expressed in MOA and
mrad, together with the A-ZED distance.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from numbers import Real
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from group_math import (
    DEFAULT_BOOTSTRAP_SAMPLES,
    ConfidenceInterval,
    RandomSource,
    a_zed_distance,
    angular_factors,
    bootstrap_mean_radius_ci,
    linear_regression,
)
from logger import get_logger

# Rayleigh-based multiplier from mean radius to the 95% radius
R95_MULTIPLIER = 1.953
VERTICAL_DISPERSION_RATIO = 1.5
LOW_CONFIDENCE_WIDTH = 0.75
HIGH_CONFIDENCE_WIDTH = 0.35


class ConfidenceLevel(Enum):
    """Confidence in the mean radius, with its display colour."""

    LOW = ("Low", "#ef4444")
    MEDIUM = ("Medium", "#eab308")
    HIGH = ("High", "#22c55e")

    @property
    def label(self) -> str:
        return self.value[0]

    @property
    def color(self) -> str:
        return self.value[1]


def is_valid_velocity(value: Any) -> bool:
    """True for a finite real number; ``None``, bools and NaN are rejected."""
    if value is None or isinstance(value, bool) or not isinstance(value, Real):
        return False
    return math.isfinite(value)


@dataclass(frozen=True)
class Shot:
    """One impact, as an offset from the point of aim in ``units``."""

    x: float
    y: float
    velocity: Optional[float] = None
    units: str = "units"
    shot_number: Optional[int] = None
    group: Optional[int] = None

    @property
    def has_velocity(self) -> bool:
        return is_valid_velocity(self.velocity)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "x": self.x,
            "y": self.y,
            "units": self.units,
            "velocity": self.velocity if self.has_velocity else None,
        }
        if self.shot_number is not None:
            data["shotNumber"] = self.shot_number
        if self.group is not None:
            data["group"] = self.group
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Shot":
        """Create a shot from a saved-session mapping."""
        velocity = data.get("velocity")
        return cls(
            x=float(data["x"]),
            y=float(data["y"]),
            velocity=velocity if is_valid_velocity(velocity) else None,
            units=data.get("units") or "units",
            shot_number=data.get("shotNumber", data.get("shot_number")),
            group=data.get("group"),
        )

    @classmethod
    def coerce(cls, value: Union["Shot", Mapping[str, Any]]) -> "Shot":
        if isinstance(value, Shot):
            return value
        return cls.from_dict(value)


@dataclass(frozen=True)
class AngularPair:
    moa: Optional[float] = None
    mrad: Optional[float] = None


@dataclass(frozen=True)
class AngularInterval:
    moa: Optional[Tuple[float, float]] = None
    mrad: Optional[Tuple[float, float]] = None


@dataclass(frozen=True)
class AngularStats:
    mr: AngularPair = field(default_factory=AngularPair)
    r95: AngularPair = field(default_factory=AngularPair)
    gs: AngularPair = field(default_factory=AngularPair)
    sd_x: AngularPair = field(default_factory=AngularPair)
    sd_y: AngularPair = field(default_factory=AngularPair)
    ci: AngularInterval = field(default_factory=AngularInterval)
    a_zed: Optional[float] = None


@dataclass(frozen=True)
class RawStats:
    """Linear-unit figures, used for plotting."""

    mean_radius: float
    units: str
    mpi: Tuple[float, float]


@dataclass(frozen=True)
class SessionStats:
    """Statistics for one session; recomputed on every request."""

    n: int
    raw: RawStats
    ang: AngularStats
    has_distance: bool
    vel_es: Optional[float]
    vel_sd: Optional[float]
    vel_vert_r2: Optional[float]
    has_vertical_dispersion: bool
    confidence_level: str
    confidence_color: str
    distance_units: Optional[str]
    sd_x: float
    sd_y: float
    group_size: float
    r95: float
    ci: ConfidenceInterval
    relative_ci_width: Optional[float]

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to plain JSON-friendly types."""

        def pair(value: AngularPair) -> Dict[str, Optional[float]]:
            return {"moa": value.moa, "mrad": value.mrad}

        return {
            "n": self.n,
            "raw": {
                "meanRadius": self.raw.mean_radius,
                "units": self.raw.units,
                "mpi": {"x": self.raw.mpi[0], "y": self.raw.mpi[1]},
            },
            "ang": {
                "mr": pair(self.ang.mr),
                "r95": pair(self.ang.r95),
                "gs": pair(self.ang.gs),
                "sd_x": pair(self.ang.sd_x),
                "sd_y": pair(self.ang.sd_y),
                "ci": {
                    "moa": list(self.ang.ci.moa) if self.ang.ci.moa else None,
                    "mrad": list(self.ang.ci.mrad) if self.ang.ci.mrad else None,
                },
                "a_zed": self.ang.a_zed,
            },
            "hasDistance": self.has_distance,
            "vel_es": self.vel_es,
            "vel_sd": self.vel_sd,
            "vel_vert_r2": self.vel_vert_r2,
            "hasVerticalDispersion": self.has_vertical_dispersion,
            "confidence_level": self.confidence_level,
            "confidence_color": self.confidence_color,
            "distanceUnits": self.distance_units,
            "linear": {
                "sd_x": self.sd_x,
                "sd_y": self.sd_y,
                "groupSize": self.group_size,
                "r95": self.r95,
                "ci": [self.ci.lower, self.ci.upper],
            },
        }


def classify_confidence(relative_width: Optional[float]) -> ConfidenceLevel:
    """Map the CI width relative to the mean radius onto three tiers.

    An undefined width (zero mean radius) lands in the middle tier.
    """

    if relative_width is None or math.isnan(relative_width):
        return ConfidenceLevel.MEDIUM
    if relative_width > LOW_CONFIDENCE_WIDTH:
        return ConfidenceLevel.LOW
    if relative_width < HIGH_CONFIDENCE_WIDTH:
        return ConfidenceLevel.HIGH
    return ConfidenceLevel.MEDIUM


def extreme_spread(points: Sequence[Tuple[float, float]]) -> float:
    """Largest distance between any two points."""
    max_spread = 0.0
    n = len(points)
    for i in range(n):
        for j in range(i + 1, n):
            dist = math.hypot(points[i][0] - points[j][0], points[i][1] - points[j][1])
            if dist > max_spread:
                max_spread = dist
    return max_spread


def _sample_sd(values: Sequence[float], mean: float) -> float:
    return math.sqrt(sum((v - mean) ** 2 for v in values) / (len(values) - 1))


def _velocity_stats(
    shots: Sequence[Shot],
) -> Tuple[Optional[float], Optional[float], Optional[float]]:
    velocity_shots = [s for s in shots if s.has_velocity]
    vel_es = vel_sd = vel_vert_r2 = None

    if len(velocity_shots) >= 2:
        velocities = [float(s.velocity) for s in velocity_shots]
        vel_es = max(velocities) - min(velocities)
        mean_vel = sum(velocities) / len(velocities)
        vel_sd = _sample_sd(velocities, mean_vel)

    if len(velocity_shots) >= 3:
        regression = linear_regression((float(s.velocity), s.y) for s in velocity_shots)
        vel_vert_r2 = regression.r2

    return vel_es, vel_sd, vel_vert_r2


def compute_session_stats(
    shots: Optional[Iterable[Union[Shot, Mapping[str, Any]]]],
    target_distance: Optional[float] = None,
    distance_units: Optional[str] = None,
    *,
    samples: int = DEFAULT_BOOTSTRAP_SAMPLES,
    rng: Optional[RandomSource] = None,
) -> Optional[SessionStats]:
    """Compute the statistics of one session of shots.

    Parameters
    ----------
    shots:
        :class:`Shot` instances or saved-session shot mappings.
    target_distance, distance_units:
        Optional distance to the target (``"yards"`` or ``"meters"``).
        Angular figures are only produced for a positive distance.
    samples:
        Number of bootstrap resamples for the mean radius interval.
    rng:
        Random source for the bootstrap; a fresh NumPy generator if omitted.

    Returns
    -------
    SessionStats or None
        ``None`` when fewer than two shots are supplied.
    """

    if not shots:
        return None
    shot_list = [Shot.coerce(s) for s in shots]
    if len(shot_list) < 2:
        return None

    n = len(shot_list)
    data_units = shot_list[0].units or "units"
    points = [(s.x, s.y) for s in shot_list]

    mean_x = sum(s.x for s in shot_list) / n
    mean_y = sum(s.y for s in shot_list) / n
    sd_x = _sample_sd([s.x for s in shot_list], mean_x)
    sd_y = _sample_sd([s.y for s in shot_list], mean_y)
    mean_radius = sum(math.hypot(s.x - mean_x, s.y - mean_y) for s in shot_list) / n

    group_size = extreme_spread(points)
    r95 = mean_radius * R95_MULTIPLIER
    has_vertical_dispersion = sd_y > sd_x * VERTICAL_DISPERSION_RATIO

    vel_es, vel_sd, vel_vert_r2 = _velocity_stats(shot_list)

    ci = bootstrap_mean_radius_ci(points, samples=samples, rng=rng)
    relative_width = ci.width / mean_radius if mean_radius > 0 else None
    confidence = classify_confidence(relative_width)

    factors = angular_factors(data_units, target_distance, distance_units)
    if factors:
        ang = AngularStats(
            mr=AngularPair(mean_radius * factors.moa, mean_radius * factors.mrad),
            r95=AngularPair(r95 * factors.moa, r95 * factors.mrad),
            gs=AngularPair(group_size * factors.moa, group_size * factors.mrad),
            sd_x=AngularPair(sd_x * factors.moa, sd_x * factors.mrad),
            sd_y=AngularPair(sd_y * factors.moa, sd_y * factors.mrad),
            ci=AngularInterval(
                moa=(ci.lower * factors.moa, ci.upper * factors.moa),
                mrad=(ci.lower * factors.mrad, ci.upper * factors.mrad),
            ),
            a_zed=a_zed_distance(r95, data_units, target_distance, distance_units),
        )
    else:
        ang = AngularStats()

    stats = SessionStats(
        n=n,
        raw=RawStats(mean_radius=mean_radius, units=data_units, mpi=(mean_x, mean_y)),
        ang=ang,
        has_distance=factors is not None,
        vel_es=vel_es,
        vel_sd=vel_sd,
        vel_vert_r2=vel_vert_r2,
        has_vertical_dispersion=has_vertical_dispersion,
        confidence_level=confidence.label,
        confidence_color=confidence.color,
        distance_units=distance_units,
        sd_x=sd_x,
        sd_y=sd_y,
        group_size=group_size,
        r95=r95,
        ci=ci,
        relative_ci_width=relative_width,
    )

    get_logger().log_analysis_calculation(
        "session_stats",
        inputs={
            "shots": n,
            "units": data_units,
            "target_distance": target_distance,
            "distance_units": distance_units,
            "samples": samples,
        },
        results={
            "mean_radius": mean_radius,
            "group_size": group_size,
            "ci": [ci.lower, ci.upper],
            "confidence": confidence.label,
        },
    )
    return stats


__all__ = [
    "AngularInterval",
    "AngularPair",
    "AngularStats",
    "ConfidenceLevel",
    "R95_MULTIPLIER",
    "RawStats",
    "SessionStats",
    "Shot",
    "classify_confidence",
    "compute_session_stats",
    "extreme_spread",
    "is_valid_velocity",
]
