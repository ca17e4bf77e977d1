"""Validation helpers for ShotLog analysis settings."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List


@dataclass(frozen=True)
class ValidationIssue:
    """Represents a configuration validation problem."""

    field: str
    title: str
    message: str


DISTANCE_UNIT_CHOICES = ("yards", "meters")
SCALE_UNIT_CHOICES = ("in", "mm", "units")


def _coerce_int(value: Any) -> int | None:
    """Best-effort conversion to ``int`` returning ``None`` on failure."""

    if isinstance(value, bool):
        # ``bool`` is a subclass of ``int`` in Python, but we treat it as invalid
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def validate_analysis_settings(settings: Dict[str, Any]) -> List[ValidationIssue]:
    """Validate an analysis settings payload.

    Parameters
    ----------
    settings:
        Mapping of setting names to values, as read from the settings file
        or assembled from command line flags.

    Returns
    -------
    list[ValidationIssue]
        A collection of validation issues. An empty list denotes success.
    """

    issues: List[ValidationIssue] = []

    samples = _coerce_int(settings.get("bootstrap_samples"))
    if samples is None:
        issues.append(
            ValidationIssue(
                field="bootstrap_samples",
                title="Resample Count Invalid",
                message="Bootstrap resamples must be a whole number between 100 and 100000.",
            )
        )
    elif not 100 <= samples <= 100000:
        issues.append(
            ValidationIssue(
                field="bootstrap_samples",
                title="Resample Count Out of Range",
                message=(
                    "Use between 100 and 100000 bootstrap resamples. Fewer makes the "
                    "confidence rating unstable; more only slows the analysis."
                ),
            )
        )

    seed = settings.get("random_seed")
    if seed not in (None, ""):
        seed_value = _coerce_int(seed)
        if seed_value is None or seed_value < 0:
            issues.append(
                ValidationIssue(
                    field="random_seed",
                    title="Random Seed Invalid",
                    message="Leave the random seed blank or use a non-negative whole number.",
                )
            )

    distance_units = str(settings.get("distance_units", "")).strip().lower()
    if distance_units not in DISTANCE_UNIT_CHOICES:
        issues.append(
            ValidationIssue(
                field="distance_units",
                title="Distance Units Unsupported",
                message="Target distance units must be yards or meters.",
            )
        )

    scale_units = str(settings.get("scale_units", "")).strip().lower()
    if scale_units not in SCALE_UNIT_CHOICES:
        issues.append(
            ValidationIssue(
                field="scale_units",
                title="Scale Units Unsupported",
                message="Calibration units must be in, mm or units.",
            )
        )

    retention_value = _coerce_int(settings.get("log_retention"))
    if retention_value is None:
        issues.append(
            ValidationIssue(
                field="log_retention",
                title="Retention Value Invalid",
                message="Log retention must be a number between 7 and 365 days.",
            )
        )
    elif not 7 <= retention_value <= 365:
        issues.append(
            ValidationIssue(
                field="log_retention",
                title="Retention Out of Range",
                message="Choose a log retention window between 7 and 365 days.",
            )
        )

    return issues
