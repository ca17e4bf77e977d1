"""Numerical helpers for shot-group analysis.

Bootstrap resampling of the mean radius, the velocity/vertical regression,
and the unit conversions behind the MOA, mrad and A-ZED figures.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Protocol, Sequence, Tuple

import numpy as np

# Linear unit -> meters
LENGTH_TO_METERS = {
    "in": 0.0254,
    "mm": 0.001,
}
YARDS_TO_METERS = 0.9144
MOA_PER_RADIAN = (180 / math.pi) * 60
MRAD_PER_RADIAN = 1000.0
# Width of the IPSC A-zone, in meters
A_ZONE_WIDTH_METERS = 0.15

DEFAULT_BOOTSTRAP_SAMPLES = 1000


class RandomSource(Protocol):
    """Uniform integer source used by the bootstrap."""

    def randrange(self, n: int) -> int:
        """Return an integer drawn uniformly from ``[0, n)``."""


class NumpyRandomSource:
    """:class:`RandomSource` backed by a NumPy ``Generator``."""

    def __init__(self, seed: Optional[int] = None) -> None:
        self.seed = seed
        self._rng = np.random.default_rng(seed)

    def randrange(self, n: int) -> int:
        return int(self._rng.integers(0, n))


@dataclass(frozen=True)
class ConfidenceInterval:
    lower: float
    upper: float

    @property
    def width(self) -> float:
        return self.upper - self.lower


@dataclass(frozen=True)
class RegressionResult:
    r: float
    r2: float


@dataclass(frozen=True)
class AngularFactors:
    """Angular size of one linear unit at the target distance."""

    moa: float
    mrad: float


def mean_radius(points: Sequence[Tuple[float, float]], n: Optional[int] = None) -> float:
    """Average distance of ``points`` from their centroid.

    ``n`` is the divisor used for both the centroid and the average; it
    defaults to ``len(points)``.
    """

    if n is None:
        n = len(points)
    mean_x = sum(p[0] for p in points) / n
    mean_y = sum(p[1] for p in points) / n
    return sum(math.hypot(x - mean_x, y - mean_y) for x, y in points) / n


def bootstrap_mean_radius_ci(
    points: Sequence[Tuple[float, float]],
    samples: int = DEFAULT_BOOTSTRAP_SAMPLES,
    rng: Optional[RandomSource] = None,
) -> ConfidenceInterval:
    """95% bootstrap confidence interval of the mean radius.

    Each resample draws ``n`` points with replacement. The resample centroid
    and mean radius are divided by the original ``n``; with resamples of the
    same size this matches the usual per-resample mean.
    """

    if samples <= 0:
        raise ValueError("samples must be a positive integer")

    n = len(points)
    if n < 2:
        return ConfidenceInterval(0.0, 0.0)

    if rng is None:
        rng = NumpyRandomSource()

    bootstrap_radii: List[float] = []
    for _ in range(samples):
        resample = [points[rng.randrange(n)] for _ in range(n)]
        bootstrap_radii.append(mean_radius(resample, n))

    bootstrap_radii.sort()
    lower_index = math.floor(samples * 0.025)
    upper_index = math.floor(samples * 0.975)
    return ConfidenceInterval(bootstrap_radii[lower_index], bootstrap_radii[upper_index])


def linear_regression(data: Iterable[Tuple[float, float]]) -> RegressionResult:
    """Pearson correlation of ``(x, y)`` pairs.

    Fewer than three pairs, or no variance along either axis, yields
    ``r = r2 = 0``.
    """

    pairs = list(data)
    n = len(pairs)
    if n < 3:
        return RegressionResult(0.0, 0.0)

    sum_x = sum_y = sum_xy = sum_x2 = sum_y2 = 0.0
    for x, y in pairs:
        sum_x += x
        sum_y += y
        sum_xy += x * y
        sum_x2 += x * x
        sum_y2 += y * y

    numerator = (n * sum_xy) - (sum_x * sum_y)
    denominator_x = (n * sum_x2) - (sum_x * sum_x)
    denominator_y = (n * sum_y2) - (sum_y * sum_y)

    if denominator_x == 0 or denominator_y == 0:
        return RegressionResult(0.0, 0.0)

    r = numerator / math.sqrt(denominator_x * denominator_y)
    return RegressionResult(r, r * r)


def length_to_meters(value: float, units: Optional[str]) -> float:
    """Convert a group-space length to meters; unknown units pass through."""
    return value * LENGTH_TO_METERS.get(units or "", 1.0)


def distance_to_meters(value: float, distance_units: Optional[str]) -> float:
    """Convert a target distance to meters (``yards`` or meters)."""
    if distance_units == "yards":
        return value * YARDS_TO_METERS
    return value


def meters_to_distance(value: float, distance_units: Optional[str]) -> float:
    if distance_units == "yards":
        return value / YARDS_TO_METERS
    return value


def has_target_distance(target_distance: Optional[float]) -> bool:
    """True for a finite, strictly positive distance; NaN and inf count as unset."""
    if target_distance is None:
        return False
    return math.isfinite(target_distance) and target_distance > 0


def angular_factors(
    data_units: Optional[str],
    target_distance: Optional[float],
    distance_units: Optional[str],
) -> Optional[AngularFactors]:
    """MOA and mrad subtended by one ``data_units`` at ``target_distance``."""

    if not has_target_distance(target_distance):
        return None

    dist_meters = distance_to_meters(target_distance, distance_units)
    size_meters = length_to_meters(1.0, data_units)
    rad_factor = size_meters / dist_meters

    return AngularFactors(
        moa=rad_factor * MOA_PER_RADIAN,
        mrad=rad_factor * MRAD_PER_RADIAN,
    )


def a_zed_distance(
    r95: float,
    data_units: Optional[str],
    target_distance: Optional[float],
    distance_units: Optional[str],
) -> Optional[float]:
    """Distance at which the R95 circle just fills the A-zone width.

    Returned in ``distance_units`` (yards, otherwise meters), or ``None``
    when the distance or R95 is not positive.
    """

    if not has_target_distance(target_distance):
        return None
    r95_meters = length_to_meters(r95, data_units)
    target_dist_meters = distance_to_meters(target_distance, distance_units)
    if target_dist_meters <= 0 or r95_meters <= 0:
        return None

    r95_radians = r95_meters / target_dist_meters
    a_zed_meters = A_ZONE_WIDTH_METERS / (2 * r95_radians)
    return meters_to_distance(a_zed_meters, distance_units)


__all__ = [
    "A_ZONE_WIDTH_METERS",
    "AngularFactors",
    "ConfidenceInterval",
    "DEFAULT_BOOTSTRAP_SAMPLES",
    "NumpyRandomSource",
    "RandomSource",
    "RegressionResult",
    "a_zed_distance",
    "angular_factors",
    "bootstrap_mean_radius_ci",
    "distance_to_meters",
    "has_target_distance",
    "length_to_meters",
    "linear_regression",
    "mean_radius",
]
