"""
tests/conftest.py — Shared fixtures.

Every test writes its JSONL session log into a temporary directory so the
working tree never collects log files.
"""

from __future__ import annotations

import pytest

from eyetalk.core.logger import configure_logger


@pytest.fixture(autouse=True)
def _session_log(tmp_path):
    log = configure_logger(tmp_path / "logs")
    yield log
    log.close()
