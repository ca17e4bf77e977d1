"""JSON store for saved marking sessions."""

from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from logger import LogCategory, get_logger

SESSION_STORE_SCHEMA_VERSION = 1
SESSION_FILE_NAME = "sessions.json"
DISTANCE_UNITS = {"yards", "meters"}


class SessionValidationError(Exception):
    """Raised when a session record fails validation."""


def _write_json_atomic(target: Path, payload: Dict[str, Any]) -> None:
    """Write JSON data to ``target`` using a temporary file for safety."""

    target = Path(target)
    tmp_path = target.with_suffix(target.suffix + ".tmp")
    with tmp_path.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2, ensure_ascii=False, sort_keys=True)
    tmp_path.replace(target)


class SessionRecordValidator:
    """Validate and normalize persisted session records."""

    CURRENT_VERSION = SESSION_STORE_SCHEMA_VERSION
    SUPPORTED_VERSIONS = {0, CURRENT_VERSION}

    @classmethod
    def _normalize_number(cls, value: Any, field_label: str, context: str) -> float:
        if isinstance(value, bool):
            raise SessionValidationError(f"{context}: {field_label} must be numeric")
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value)
            except ValueError as exc:
                raise SessionValidationError(
                    f"{context}: {field_label} must be numeric"
                ) from exc
        raise SessionValidationError(f"{context}: {field_label} must be numeric")

    @classmethod
    def _normalize_velocity(cls, value: Any) -> Optional[float]:
        # Unreadable chronograph entries are dropped rather than rejected
        if value is None or value == "" or isinstance(value, bool):
            return None
        try:
            velocity = float(value)
        except (TypeError, ValueError):
            return None
        return velocity if math.isfinite(velocity) else None

    @classmethod
    def _normalize_shot(cls, shot: Any, record_id: str, index: int) -> Dict[str, Any]:
        context = f"Session {record_id} shot {index}"
        if not isinstance(shot, dict):
            raise SessionValidationError(f"{context}: shot must be an object")
        if "x" not in shot or "y" not in shot:
            raise SessionValidationError(f"{context}: x and y are required")
        normalized = dict(shot)
        normalized["x"] = cls._normalize_number(shot["x"], "x", context)
        normalized["y"] = cls._normalize_number(shot["y"], "y", context)
        normalized["velocity"] = cls._normalize_velocity(shot.get("velocity"))
        normalized["units"] = shot.get("units") or "units"
        return normalized

    @classmethod
    def validate_record(cls, record: Any) -> Dict[str, Any]:
        """Return a normalized copy of ``record``."""
        if not isinstance(record, dict):
            raise SessionValidationError("Session record must be an object")
        record_id = record.get("id")
        if not isinstance(record_id, str) or not record_id:
            raise SessionValidationError("Session record requires a string id")

        normalized = dict(record)
        shots = record.get("shots", [])
        if not isinstance(shots, list):
            raise SessionValidationError(f"Session {record_id}: shots must be a list")
        normalized["shots"] = [
            cls._normalize_shot(shot, record_id, index) for index, shot in enumerate(shots)
        ]

        distance = record.get("targetDistance")
        if distance in (None, ""):
            normalized["targetDistance"] = None
        else:
            distance = cls._normalize_number(distance, "Target distance", f"Session {record_id}")
            if not math.isfinite(distance):
                raise SessionValidationError(
                    f"Session {record_id}: Target distance must be a finite number"
                )
            normalized["targetDistance"] = distance if distance > 0 else None

        distance_units = record.get("distanceUnits") or "yards"
        if distance_units not in DISTANCE_UNITS:
            raise SessionValidationError(
                f"Session {record_id}: distance units must be one of {sorted(DISTANCE_UNITS)}"
            )
        normalized["distanceUnits"] = distance_units
        return normalized

    @classmethod
    def validate_document(cls, document: Any) -> Tuple[int, List[Dict[str, Any]]]:
        """Validate the persisted document structure and sessions."""
        if isinstance(document, list):
            schema_version = 0
            sessions = document
        elif isinstance(document, dict):
            schema_version = document.get("schema_version", 0)
            sessions = document.get("sessions", [])
        else:
            raise SessionValidationError("Session data must be a list or object")
        if schema_version not in cls.SUPPORTED_VERSIONS:
            raise SessionValidationError(f"Unsupported schema version: {schema_version}")
        if not isinstance(sessions, list):
            raise SessionValidationError("Sessions must be provided as a list")
        return schema_version, [cls.validate_record(record) for record in sessions]


def load_record_file(path: Path) -> Dict[str, Any]:
    """Load and validate a single exported session record."""
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except json.JSONDecodeError as exc:
        raise SessionValidationError(f"Session file '{path}' contains invalid JSON") from exc
    return SessionRecordValidator.validate_record(data)


class SessionStore:
    """Saved sessions kept in one JSON document."""

    def __init__(self, data_dir: Optional[Path] = None) -> None:
        if data_dir is None:
            data_dir = Path.home() / "ShotLog" / "data"
        self.data_dir = Path(data_dir)
        self.file_path = self.data_dir / SESSION_FILE_NAME
        self.logger = get_logger()

    def _read(self) -> List[Dict[str, Any]]:
        if not self.file_path.exists():
            return []
        try:
            with self.file_path.open("r", encoding="utf-8") as handle:
                raw_data = json.load(handle)
        except json.JSONDecodeError as exc:
            raise SessionValidationError(
                f"Session store '{self.file_path}' contains invalid JSON"
            ) from exc
        _, sessions = SessionRecordValidator.validate_document(raw_data)
        return sessions

    def _write(self, sessions: List[Dict[str, Any]]) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        _write_json_atomic(
            self.file_path,
            {"schema_version": SESSION_STORE_SCHEMA_VERSION, "sessions": sessions},
        )

    def list_sessions(self) -> List[Dict[str, Any]]:
        return self._read()

    def get(self, session_id: str) -> Optional[Dict[str, Any]]:
        for record in self._read():
            if record["id"] == session_id:
                return record
        return None

    def save(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """Insert or replace the record with the same id."""
        normalized = SessionRecordValidator.validate_record(record)
        sessions = [s for s in self._read() if s["id"] != normalized["id"]]
        sessions.append(normalized)
        self._write(sessions)
        self.logger.info(
            "Session saved",
            category=LogCategory.DATA,
            session=normalized["id"],
            shots=len(normalized["shots"]),
        )
        return normalized

    def delete(self, session_id: str) -> bool:
        sessions = self._read()
        remaining = [s for s in sessions if s["id"] != session_id]
        if len(remaining) == len(sessions):
            return False
        self._write(remaining)
        self.logger.info("Session deleted", category=LogCategory.DATA, session=session_id)
        return True


__all__ = [
    "SessionRecordValidator",
    "SessionStore",
    "SessionValidationError",
    "load_record_file",
]
