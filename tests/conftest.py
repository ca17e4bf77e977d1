"""Shared fixtures for the ShotLog test-suite."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from logger import setup_logger  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_logger(tmp_path):
    """Route all log output into the test's temporary directory."""
    logger = setup_logger(log_dir=tmp_path / "logs")
    yield logger
    for handler in logger.logger.handlers:
        handler.close()


class ScriptedRandom:
    """Random source that replays a fixed sequence of indices."""

    def __init__(self, indices):
        self.indices = list(indices)
        self.calls = []
        self._position = 0

    def randrange(self, n):
        value = self.indices[self._position % len(self.indices)]
        self._position += 1
        self.calls.append(n)
        assert 0 <= value < n
        return value


@pytest.fixture()
def scripted_random():
    return ScriptedRandom
