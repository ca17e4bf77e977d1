"""Analysis settings for ShotLog."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from config_validation import ValidationIssue, _coerce_int, validate_analysis_settings
from group_math import DEFAULT_BOOTSTRAP_SAMPLES

DEFAULT_HOME = Path.home() / "ShotLog"


class SettingsError(Exception):
    """Raised when settings fail validation."""

    def __init__(self, issues: List[ValidationIssue]):
        self.issues = list(issues)
        summary = "; ".join(f"{issue.field}: {issue.title}" for issue in self.issues)
        super().__init__(f"Invalid settings ({summary})")


@dataclass
class AnalysisSettings:
    bootstrap_samples: int = DEFAULT_BOOTSTRAP_SAMPLES
    random_seed: Optional[int] = None
    distance_units: str = "yards"
    scale_units: str = "in"
    log_retention: int = 30
    data_dir: Path = field(default_factory=lambda: DEFAULT_HOME / "data")

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["data_dir"] = str(self.data_dir)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisSettings":
        """Build settings from ``data`` layered over the defaults.

        Raises :class:`SettingsError` when the merged values are invalid.
        """
        merged = cls().to_dict()
        merged.update({key: value for key, value in data.items() if key in merged})

        issues = validate_analysis_settings(merged)
        if issues:
            raise SettingsError(issues)

        seed = merged.get("random_seed")
        return cls(
            bootstrap_samples=_coerce_int(merged["bootstrap_samples"]),
            random_seed=None if seed in (None, "") else _coerce_int(seed),
            distance_units=str(merged["distance_units"]).strip().lower(),
            scale_units=str(merged["scale_units"]).strip().lower(),
            log_retention=_coerce_int(merged["log_retention"]),
            data_dir=Path(merged["data_dir"]).expanduser(),
        )


def load_settings(path: Optional[Path] = None) -> AnalysisSettings:
    """Load settings from a JSON file; a missing file yields the defaults."""

    if path is None:
        path = DEFAULT_HOME / "config" / "settings.json"
    path = Path(path)
    if not path.exists():
        return AnalysisSettings()

    with path.open("r", encoding="utf-8") as handle:
        try:
            data = json.load(handle)
        except json.JSONDecodeError as exc:
            raise SettingsError(
                [
                    ValidationIssue(
                        field="settings",
                        title="Settings File Unreadable",
                        message=f"'{path}' does not contain valid JSON: {exc.msg}.",
                    )
                ]
            ) from exc
    if not isinstance(data, dict):
        raise SettingsError(
            [
                ValidationIssue(
                    field="settings",
                    title="Settings File Unreadable",
                    message=f"'{path}' must contain a JSON object.",
                )
            ]
        )
    return AnalysisSettings.from_dict(data)


__all__ = ["AnalysisSettings", "SettingsError", "load_settings"]
