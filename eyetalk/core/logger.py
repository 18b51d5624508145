"""
eyetalk/core/logger.py — JSONL session log for EyeTalk.

SessionLogger writes one JSON object per line to logs/eyetalk_{date}.jsonl,
rotating automatically each day. It is the audit trail of what the patient
said: session start/stop, confirmed selections, lock toggles and audio
fallbacks. WARN/ERROR are also mirrored to Python stdlib logging (stderr).
Thread-safe via threading.Lock.

Usage::

    from eyetalk.core.logger import get_logger
    log = get_logger()
    log.info("dispatch", "selection_confirmed", {"target_id": "pain"})
"""

from __future__ import annotations

import json
import logging
import platform
import sys
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, TextIO

# ── stdlib mirror logger (stderr for WARN+) ──────────────────
_stdlib = logging.getLogger("eyetalk.session")
if not _stdlib.handlers:
    _handler = logging.StreamHandler(sys.stderr)
    _handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s — %(message)s"))
    _stdlib.addHandler(_handler)
_stdlib.setLevel(logging.WARNING)
_stdlib.propagate = False

# ── Log directory (relative to working directory) ────────────
_log_dir = Path("logs")
_enabled = True

# ── Singleton storage ─────────────────────────────────────────
_instance: Optional["SessionLogger"] = None
_instance_lock = threading.Lock()


class SessionLogger:
    """
    Singleton JSONL structured logger.

    Each call appends a single JSON line to ``{log_dir}/eyetalk_{YYYY-MM-DD}.jsonl``.
    A new file is opened automatically when the calendar date changes.

    Fields written per entry:

    .. code-block:: json

        {
          "timestamp_iso": "2026-10-19T08:20:49.123456+00:00",
          "level": "INFO",
          "phase": "dispatch",
          "event": "selection_confirmed",
          "data": {"target_id": "pain", "label": "I am in pain"}
        }

    When disabled, entries are dropped but WARN/ERROR still reach stderr.

    Do not instantiate directly — use :func:`get_logger`.
    """

    def __init__(self, log_dir: Path, enabled: bool = True) -> None:
        """Open the log file for today and write the startup entry."""
        self._lock = threading.Lock()
        self._log_dir = log_dir
        self._enabled = enabled
        self._file: Optional[TextIO] = None
        self._current_date: str = ""
        if enabled:
            self._write_startup()

    @property
    def log_dir(self) -> Path:
        return self._log_dir

    # ──────────────────────────────────────────
    # Public logging methods
    # ──────────────────────────────────────────

    def info(self, phase: str, event: str, data: Optional[dict] = None) -> None:
        """
        Write an INFO-level structured log entry.

        Args:
            phase: Subsystem (e.g. ``'session'``, ``'dispatch'``).
            event: Short event identifier (e.g. ``'selection_confirmed'``).
            data: Optional dict of additional key-value context.
        """
        self._write("INFO", phase, event, data)

    def warn(self, phase: str, event: str, data: Optional[dict] = None) -> None:
        """Write a WARN-level entry and mirror to stderr via stdlib logging."""
        self._write("WARN", phase, event, data)
        _stdlib.warning("[%s] %s | %s", phase, event, data or {})

    def error(self, phase: str, event: str, data: Optional[dict] = None) -> None:
        """Write an ERROR-level entry and mirror to stderr via stdlib logging."""
        self._write("ERROR", phase, event, data)
        _stdlib.error("[%s] %s | %s", phase, event, data or {})

    def flush(self) -> None:
        """Flush the underlying file buffer immediately."""
        with self._lock:
            if self._file and not self._file.closed:
                self._file.flush()

    def close(self) -> None:
        with self._lock:
            if self._file and not self._file.closed:
                self._file.close()
            self._file = None
            self._current_date = ""

    # ──────────────────────────────────────────
    # Internal helpers
    # ──────────────────────────────────────────

    def _write(self, level: str, phase: str, event: str, data: Optional[dict]) -> None:
        """
        Serialise and append one JSON line to the log file.

        Performs the daily rotation check on every write.
        """
        if not self._enabled:
            return

        now = datetime.now(tz=timezone.utc)
        record: dict[str, Any] = {
            "timestamp_iso": now.isoformat(),
            "level": level,
            "phase": phase,
            "event": event,
            "data": data or {},
        }
        line = json.dumps(record, ensure_ascii=False, separators=(",", ":"), default=str)

        with self._lock:
            self._rotate_if_needed(now)
            if self._file and not self._file.closed:
                self._file.write(line + "\n")
                self._file.flush()

    def _rotate_if_needed(self, now: datetime) -> None:
        """
        Open a new log file if the calendar date has changed.

        Called inside ``self._lock`` — do not call from outside.
        """
        today = now.strftime("%Y-%m-%d")
        if today != self._current_date:
            if self._file and not self._file.closed:
                self._file.close()
            self._current_date = today
            self._log_dir.mkdir(parents=True, exist_ok=True)
            log_path = self._log_dir / f"eyetalk_{today}.jsonl"
            self._file = open(log_path, "a", encoding="utf-8", buffering=1)

    def _write_startup(self) -> None:
        """Write a startup entry with Python version and platform."""
        self.info(
            phase="system",
            event="startup",
            data={
                "python_version": sys.version.split()[0],
                "platform": platform.platform(),
                "timestamp_local": datetime.now().isoformat(),
            },
        )


# ──────────────────────────────────────────────────────────────
# Singleton accessor
# ──────────────────────────────────────────────────────────────

def configure_logger(log_dir: Path | str, enabled: bool = True) -> SessionLogger:
    """
    Point the session log at *log_dir*, replacing any existing instance.

    Call once at startup, before any component logs.
    """
    global _instance, _log_dir, _enabled
    with _instance_lock:
        if _instance is not None:
            _instance.close()
        _log_dir = Path(log_dir)
        _enabled = enabled
        _instance = SessionLogger(_log_dir, enabled=_enabled)
    return _instance


def get_logger() -> SessionLogger:
    """
    Return the singleton :class:`SessionLogger` instance.

    Thread-safe: the first call creates the instance.
    """
    global _instance
    if _instance is None:
        with _instance_lock:
            if _instance is None:
                _instance = SessionLogger(_log_dir, enabled=_enabled)
    return _instance
