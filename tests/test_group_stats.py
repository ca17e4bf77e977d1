"""Tests for the shot group statistics engine."""

from __future__ import annotations

import math
import random

import pytest

from group_math import NumpyRandomSource, angular_factors
from group_stats import (
    ConfidenceLevel,
    R95_MULTIPLIER,
    Shot,
    classify_confidence,
    compute_session_stats,
    extreme_spread,
)

CROSS = [(0, 0), (1, 0), (0, 1), (-1, 0), (0, -1)]


def build_shots(points, units="in", velocities=None):
    velocities = velocities or [None] * len(points)
    return [Shot(x=x, y=y, units=units, velocity=v) for (x, y), v in zip(points, velocities)]


def test_fewer_than_two_shots_has_no_result():
    assert compute_session_stats(None) is None
    assert compute_session_stats([]) is None
    assert compute_session_stats(build_shots([(1, 1)])) is None


def test_cross_pattern_without_distance():
    stats = compute_session_stats(build_shots(CROSS), rng=NumpyRandomSource(1))

    assert stats.n == 5
    assert stats.raw.mpi == pytest.approx((0.0, 0.0))
    assert stats.raw.units == "in"
    assert stats.sd_x == pytest.approx(math.sqrt(2 / 4))
    assert stats.sd_y == pytest.approx(math.sqrt(2 / 4))
    # Centre shot sits on the MPI, the other four are 1 unit away
    assert stats.raw.mean_radius == pytest.approx(0.8)
    assert stats.group_size == pytest.approx(2.0)
    assert stats.has_vertical_dispersion is False

    assert stats.has_distance is False
    assert stats.ang.mr.moa is None and stats.ang.mr.mrad is None
    assert stats.ang.ci.moa is None
    assert stats.ang.a_zed is None


def test_cross_pattern_at_one_hundred_yards():
    stats = compute_session_stats(
        build_shots(CROSS), 100, "yards", rng=NumpyRandomSource(1)
    )
    moa_per_inch = 0.0254 / (100 * 0.9144) * (180 / math.pi) * 60
    mrad_per_inch = 0.0254 / (100 * 0.9144) * 1000

    assert moa_per_inch == pytest.approx(0.9549, abs=1e-4)
    assert stats.has_distance is True
    assert stats.distance_units == "yards"
    assert stats.ang.mr.moa == pytest.approx(stats.raw.mean_radius * moa_per_inch)
    assert stats.ang.mr.mrad == pytest.approx(stats.raw.mean_radius * mrad_per_inch)
    assert stats.ang.gs.moa == pytest.approx(2.0 * moa_per_inch)
    assert stats.ang.sd_x.mrad == pytest.approx(stats.sd_x * mrad_per_inch)
    assert stats.ang.ci.moa == pytest.approx(
        (stats.ci.lower * moa_per_inch, stats.ci.upper * moa_per_inch)
    )


def test_r95_is_fixed_multiple_of_mean_radius():
    rng = random.Random(3)
    points = [(rng.gauss(0, 1), rng.gauss(0, 2)) for _ in range(12)]
    stats = compute_session_stats(build_shots(points, units="mm"), rng=NumpyRandomSource(2))

    assert stats.r95 == stats.raw.mean_radius * R95_MULTIPLIER
    assert R95_MULTIPLIER == 1.953


def test_angular_r95_and_a_zed_follow_r95():
    stats = compute_session_stats(build_shots(CROSS), 100, "yards", rng=NumpyRandomSource(1))
    r95 = 0.8 * 1.953
    r95_meters = r95 * 0.0254
    a_zed_meters = 0.15 / (2 * (r95_meters / 91.44))

    assert stats.ang.r95.moa == pytest.approx(stats.ang.mr.moa * 1.953)
    assert stats.ang.a_zed == pytest.approx(a_zed_meters / 0.9144)


def test_a_zed_reported_in_meters_for_metric_distance():
    stats = compute_session_stats(build_shots(CROSS, units="mm"), 50, "meters",
                                  rng=NumpyRandomSource(1))
    r95_meters = 0.8 * 1.953 * 0.001

    assert stats.ang.a_zed == pytest.approx(0.15 / (2 * (r95_meters / 50)))


def test_a_zed_absent_when_all_shots_coincide():
    stats = compute_session_stats(build_shots([(1, 1), (1, 1)]), 100, "yards",
                                  rng=NumpyRandomSource(1))

    assert stats.raw.mean_radius == 0
    assert stats.has_distance is True
    assert stats.ang.a_zed is None
    # Zero mean radius leaves the relative width undefined
    assert stats.relative_ci_width is None
    assert stats.confidence_level == "Medium"


def test_non_positive_distance_disables_angular_figures():
    stats = compute_session_stats(build_shots(CROSS), 0, "yards", rng=NumpyRandomSource(1))
    assert stats.has_distance is False
    stats = compute_session_stats(build_shots(CROSS), -10, "yards", rng=NumpyRandomSource(1))
    assert stats.has_distance is False


@pytest.mark.parametrize("distance", [float("nan"), float("inf"), float("-inf")])
def test_non_finite_distance_disables_angular_figures(distance):
    stats = compute_session_stats(build_shots(CROSS), distance, "yards", rng=NumpyRandomSource(1))

    assert stats.has_distance is False
    assert stats.ang.mr.moa is None
    assert stats.ang.a_zed is None


def test_vertical_dispersion_flag():
    points = [(0.0, -3.0), (0.1, -1.0), (-0.1, 1.0), (0.05, 3.0)]
    stats = compute_session_stats(build_shots(points), rng=NumpyRandomSource(1))

    assert stats.sd_y > stats.sd_x * 1.5
    assert stats.has_vertical_dispersion is True


def test_velocity_statistics_filter_invalid_entries():
    velocities = [None, float("nan"), True, 2800.0, 2810.0]
    stats = compute_session_stats(build_shots(CROSS, velocities=velocities),
                                  rng=NumpyRandomSource(1))

    assert stats.vel_es == pytest.approx(10.0)
    assert stats.vel_sd == pytest.approx(math.sqrt(50.0))
    # Only two usable velocities: no regression
    assert stats.vel_vert_r2 is None


def test_velocity_statistics_absent_with_single_velocity():
    stats = compute_session_stats(build_shots(CROSS, velocities=[2800, None, None, None, None]),
                                  rng=NumpyRandomSource(1))

    assert stats.vel_es is None
    assert stats.vel_sd is None
    assert stats.vel_vert_r2 is None


def test_vertical_correlation_with_velocity():
    velocities = [2790.0, 2800.0, 2810.0, 2820.0]
    points = [(0.0, 2 * v + 1) for v in velocities]
    stats = compute_session_stats(build_shots(points, velocities=velocities),
                                  rng=NumpyRandomSource(1))

    assert stats.vel_vert_r2 == pytest.approx(1.0)


def test_constant_velocity_gives_zero_correlation():
    points = [(0.0, 0.0), (0.2, 1.0), (-0.3, 2.0)]
    stats = compute_session_stats(build_shots(points, velocities=[2800] * 3),
                                  rng=NumpyRandomSource(1))

    assert stats.vel_vert_r2 == 0
    assert stats.vel_es == 0


def test_accepts_saved_session_mappings():
    shots = [{"x": x, "y": y, "units": "mm", "velocity": None} for x, y in CROSS]
    stats = compute_session_stats(shots, rng=NumpyRandomSource(1))

    assert stats.n == 5
    assert stats.raw.units == "mm"


def test_first_shot_units_label_the_group():
    shots = build_shots(CROSS, units="mm")
    shots[1] = Shot(x=1, y=0, units="in")
    stats = compute_session_stats(shots, rng=NumpyRandomSource(1))

    assert stats.raw.units == "mm"


def test_group_size_bounds_and_interval_sanity():
    rng = random.Random(11)
    for trial in range(10):
        points = [(rng.uniform(-2, 2), rng.uniform(-2, 2)) for _ in range(rng.randint(2, 9))]
        stats = compute_session_stats(build_shots(points), samples=200,
                                      rng=NumpyRandomSource(trial))
        mx, my = stats.raw.mpi
        furthest = max(math.hypot(x - mx, y - my) for x, y in points)

        assert stats.raw.mean_radius >= 0
        assert stats.group_size >= furthest - 1e-9
        assert 0 <= stats.ci.lower <= stats.ci.upper <= 2 * stats.group_size + 1e-9


def test_seeded_runs_are_reproducible():
    rng = random.Random(5)
    points = [(rng.gauss(0, 1), rng.gauss(0, 1)) for _ in range(8)]
    first = compute_session_stats(build_shots(points), rng=NumpyRandomSource(42))
    second = compute_session_stats(build_shots(points), rng=NumpyRandomSource(42))

    assert first.ci == second.ci
    assert first.confidence_level == second.confidence_level


def test_bootstrap_sample_count_is_configurable(scripted_random):
    source = scripted_random([0, 1, 2, 3, 4])
    compute_session_stats(build_shots(CROSS), samples=10, rng=source)

    assert len(source.calls) == 10 * 5
    assert set(source.calls) == {5}


def test_moa_mrad_ratio():
    factors = angular_factors("in", 300, "meters")
    assert factors.mrad / factors.moa == pytest.approx(1000 / ((180 / math.pi) * 60))


@pytest.mark.parametrize(
    "relative_width, expected",
    [
        (0.7501, ConfidenceLevel.LOW),
        (2.0, ConfidenceLevel.LOW),
        (0.75, ConfidenceLevel.MEDIUM),
        (0.5, ConfidenceLevel.MEDIUM),
        (0.35, ConfidenceLevel.MEDIUM),
        (0.3499, ConfidenceLevel.HIGH),
        (0.0, ConfidenceLevel.HIGH),
        (None, ConfidenceLevel.MEDIUM),
    ],
)
def test_confidence_classification(relative_width, expected):
    assert classify_confidence(relative_width) is expected


def test_confidence_colours():
    assert ConfidenceLevel.LOW.color == "#ef4444"
    assert ConfidenceLevel.MEDIUM.color == "#eab308"
    assert ConfidenceLevel.HIGH.color == "#22c55e"


def test_tight_bootstrap_rates_high_confidence(scripted_random):
    # Replaying the original order in every resample keeps each resample equal
    # to the source group, so the interval collapses onto the mean radius.
    stats = compute_session_stats(build_shots(CROSS), samples=40,
                                  rng=scripted_random([0, 1, 2, 3, 4]))

    assert stats.ci.lower == pytest.approx(0.8)
    assert stats.ci.upper == pytest.approx(0.8)
    assert stats.confidence_level == "High"
    assert stats.confidence_color == "#22c55e"


def test_extreme_spread_scans_all_pairs():
    assert extreme_spread([(0, 0), (3, 4), (1, 1), (-3, -4)]) == pytest.approx(10.0)
    assert extreme_spread([(2, 2)]) == 0.0


def test_stats_serialise_to_plain_types():
    data = compute_session_stats(build_shots(CROSS), 100, "yards",
                                 rng=NumpyRandomSource(1)).to_dict()

    assert data["n"] == 5
    assert data["hasDistance"] is True
    assert data["raw"]["mpi"] == {"x": pytest.approx(0.0), "y": pytest.approx(0.0)}
    assert len(data["ang"]["ci"]["moa"]) == 2
    assert data["confidence_level"] in {"Low", "Medium", "High"}
