"""Tests for the structured logger."""

from __future__ import annotations

import os
import time

from logger import LogCategory, LoggableMixin, get_logger


def read_log(logger, name="shotlog.log"):
    logger.flush()
    return (logger.log_dir / name).read_text(encoding="utf-8")


def test_string_categories_are_accepted(isolated_logger):
    isolated_logger.info("Imported sessions", category="data", extra_field="value")

    content = read_log(isolated_logger)
    assert '"category": "DATA"' in content
    assert '"field_extra_field": "value"' in content


def test_errors_are_written_to_error_log(isolated_logger):
    try:
        raise ValueError("bad shot")
    except ValueError as exc:
        isolated_logger.error("Shot rejected", exception=exc, category=LogCategory.DATA)

    content = read_log(isolated_logger, "shotlog_errors.log")
    assert "Shot rejected" in content
    assert '"type": "ValueError"' in content
    assert "Shot rejected" in read_log(isolated_logger)


def test_info_stays_out_of_error_log(isolated_logger):
    isolated_logger.info("Session saved", category=LogCategory.DATA)
    assert "Session saved" not in read_log(isolated_logger, "shotlog_errors.log")


def test_analysis_audit_trail(isolated_logger):
    isolated_logger.log_analysis_calculation("session_stats", {"shots": 5}, {"mean_radius": 0.8})

    content = read_log(isolated_logger)
    assert "ANALYSIS: session_stats" in content
    assert '"field_inputs": {"shots": 5}' in content


def test_timer_logs_duration(isolated_logger):
    with isolated_logger.timer("analysis") as operation_id:
        assert len(operation_id) == 8

    assert "Completed operation: analysis" in read_log(isolated_logger)


def test_mixin_prefixes_class_name(isolated_logger):
    class Canvas(LoggableMixin):
        pass

    assert get_logger() is isolated_logger
    Canvas().log_user_action("zoom_in", {"zoom": 1.2})

    content = read_log(isolated_logger)
    assert "USER ACTION: zoom_in" in content
    assert '"field_module": "Canvas"' in content


def test_cleanup_removes_only_old_rotated_logs(isolated_logger):
    old = isolated_logger.log_dir / "shotlog.log.1"
    recent = isolated_logger.log_dir / "shotlog.log.2"
    old.write_text("old", encoding="utf-8")
    recent.write_text("recent", encoding="utf-8")
    stale = time.time() - 40 * 24 * 3600
    os.utime(old, (stale, stale))

    assert isolated_logger.cleanup_old_logs(30) == 1
    assert not old.exists()
    assert recent.exists()
