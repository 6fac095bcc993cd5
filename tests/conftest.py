"""Pytest configuration for sentrytap tests.

Ensures the in-repo `src` directory is on `sys.path` so the package can be
imported without an editable install (`pip install -e .`).
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@pytest.fixture(autouse=True)
def _reset_env(monkeypatch):
    for name in ("SENTRYTAP_PLACEHOLDER", "SENTRYTAP_LOG_RESPONSE_BODIES", "SENTRYTAP_GENERIC_TYPES"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _fresh_logger(monkeypatch):
    # The global logger binds sys.stdout on creation; capsys swaps it per test
    monkeypatch.setattr("sentrytap.logging._GLOBAL", None)
