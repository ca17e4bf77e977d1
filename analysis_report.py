"""
Session comparison and export for ShotLog.
Runs the statistics engine over saved sessions, diagnoses vertical stringing
and produces the rows of the comparison table in CSV and JSON form.
"""
import csv
import json
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from group_math import DEFAULT_BOOTSTRAP_SAMPLES, RandomSource
from group_stats import AngularPair, SessionStats, Shot, compute_session_stats
from logger import LogCategory, get_logger

# Above this R2 vertical stringing is attributed to velocity spread
VELOCITY_CORRELATION_R2 = 0.4
NO_DISTANCE_TEXT = "Set Dist."
NOT_AVAILABLE_TEXT = "N/A"


@dataclass
class SessionAnalysis:
    session_id: str
    name: str
    shots: List[Shot]
    stats: SessionStats


@dataclass(frozen=True)
class DispersionDiagnosis:
    severity: str  # "ok", "notice" or "warning"
    message: str


def session_display_name(record: Dict[str, Any], shot_count: int) -> str:
    timestamp = record.get("timestamp") or record.get("id", "Session")
    return f"{timestamp} ({shot_count} shots)"


def analyze_sessions(
    records: Iterable[Dict[str, Any]],
    *,
    samples: int = DEFAULT_BOOTSTRAP_SAMPLES,
    rng: Optional[RandomSource] = None,
    target_distance: Optional[float] = None,
    distance_units: Optional[str] = None,
) -> List[SessionAnalysis]:
    """Compute statistics for each record; sessions under two shots are skipped.

    ``target_distance``/``distance_units`` override the values stored with
    each record when given.
    """
    logger = get_logger()
    results: List[SessionAnalysis] = []
    for record in records:
        shots = [Shot.from_dict(s) for s in record.get("shots") or []]
        distance = target_distance if target_distance is not None else record.get("targetDistance")
        units = distance_units or record.get("distanceUnits")
        stats = compute_session_stats(shots, distance, units, samples=samples, rng=rng)
        if stats is None:
            logger.info("Session skipped: not enough shots", category=LogCategory.ANALYSIS,
                        session=record.get("id"), shots=len(shots))
            continue
        results.append(
            SessionAnalysis(
                session_id=record.get("id", ""),
                name=session_display_name(record, len(shots)),
                shots=shots,
                stats=stats,
            )
        )
    return results


def diagnose_dispersion(stats: SessionStats) -> DispersionDiagnosis:
    """Explain vertical stringing using the velocity correlation when known."""
    if not stats.has_vertical_dispersion:
        return DispersionDiagnosis("ok", "Nominal")
    if stats.vel_vert_r2 is None:
        return DispersionDiagnosis(
            "notice", "Vertical stringing detected. Add velocity data to diagnose."
        )
    r2_percent = f"{stats.vel_vert_r2 * 100:.1f}"
    if stats.vel_vert_r2 > VELOCITY_CORRELATION_R2:
        return DispersionDiagnosis(
            "warning", f"Vertical stringing correlates with velocity (R² = {r2_percent}%)"
        )
    return DispersionDiagnosis(
        "notice",
        "Vertical stringing present, but not strongly correlated to velocity "
        f"(R² = {r2_percent}%)",
    )


def _format_pair(pair: AngularPair) -> str:
    return f"{pair.moa:.2f} moa / {pair.mrad:.2f} mrad"


def build_comparison_rows(analyses: Iterable[SessionAnalysis]) -> List[Dict[str, str]]:
    """Display strings for the comparison table, one row per session."""
    rows: List[Dict[str, str]] = []
    for analysis in analyses:
        stats = analysis.stats
        ang = stats.ang
        if stats.has_distance:
            mr = _format_pair(ang.mr)
            r95 = _format_pair(ang.r95)
            gs = _format_pair(ang.gs)
            sd_x = f"{ang.sd_x.moa:.2f} moa"
            sd_y = f"{ang.sd_y.moa:.2f} moa"
            ci = f"{ang.ci.moa[0]:.2f} - {ang.ci.moa[1]:.2f} moa ({stats.confidence_level})"
        else:
            mr = r95 = gs = sd_x = sd_y = NO_DISTANCE_TEXT
            ci = f"{NO_DISTANCE_TEXT} ({stats.confidence_level})"
        if stats.has_distance and ang.a_zed:
            a_zed = f"{math.floor(ang.a_zed)} {stats.distance_units}"
        else:
            a_zed = NO_DISTANCE_TEXT
        rows.append(
            {
                "session": analysis.name,
                "shots": str(stats.n),
                "mean_radius": mr,
                "r95": r95,
                "mr_ci": ci,
                "group_size": gs,
                "a_zed": a_zed,
                "sd_horizontal": sd_x,
                "sd_vertical": sd_y,
                "velocity_sd": f"{stats.vel_sd:.2f}" if stats.vel_sd is not None else NOT_AVAILABLE_TEXT,
                "dispersion": diagnose_dispersion(stats).message,
            }
        )
    return rows


COMPARISON_HEADERS = {
    "session": "Session Details",
    "shots": "Shots",
    "mean_radius": "Mean Radius (MR)",
    "r95": "95th Percentile Radius",
    "mr_ci": "MR Confidence (95%)",
    "group_size": "Group Size",
    "a_zed": "A-ZED",
    "sd_horizontal": "Horizontal SD",
    "sd_vertical": "Vertical SD",
    "velocity_sd": "Velocity SD",
    "dispersion": "Dispersion Analysis",
}


def format_comparison_table(analyses: Iterable[SessionAnalysis]) -> str:
    """Plain-text comparison table for the console."""
    rows = build_comparison_rows(analyses)
    if not rows:
        return "No valid sessions found for analysis."
    lines = []
    for row in rows:
        lines.append(row["session"])
        for key, header in COMPARISON_HEADERS.items():
            if key == "session":
                continue
            lines.append(f"  {header:<24} {row[key]}")
    return "\n".join(lines)


def export_csv(analyses: Iterable[SessionAnalysis], file_path: Path) -> Path:
    """Export the comparison rows to CSV."""
    file_path = Path(file_path)
    rows = build_comparison_rows(analyses)
    with open(file_path, 'w', newline='', encoding='utf-8') as f:
        writer = csv.DictWriter(f, fieldnames=list(COMPARISON_HEADERS))
        writer.writerow(COMPARISON_HEADERS)
        for row in rows:
            writer.writerow(row)
    get_logger().info(f"Exported {len(rows)} sessions to {file_path}", category=LogCategory.DATA)
    return file_path


def export_json(analyses: Iterable[SessionAnalysis], file_path: Path) -> Path:
    """Export full statistics and shots to JSON."""
    file_path = Path(file_path)
    data = [
        {
            "id": analysis.session_id,
            "name": analysis.name,
            "shots": [shot.to_dict() for shot in analysis.shots],
            "stats": analysis.stats.to_dict(),
            "diagnosis": diagnose_dispersion(analysis.stats).message,
        }
        for analysis in analyses
    ]
    with open(file_path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2, ensure_ascii=False, default=str)
    get_logger().info(f"Exported {len(data)} sessions to {file_path}", category=LogCategory.DATA)
    return file_path


__all__ = [
    "DispersionDiagnosis",
    "SessionAnalysis",
    "analyze_sessions",
    "build_comparison_rows",
    "diagnose_dispersion",
    "export_csv",
    "export_json",
    "format_comparison_table",
]
