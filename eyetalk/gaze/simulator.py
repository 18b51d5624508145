"""
eyetalk/gaze/simulator.py — Pointer- and keyboard-simulated gaze input.

Stands in for an eye tracker during development and demos. Pointer
positions inside the board container are converted to percent
coordinates; arrow keys nudge the simulated gaze for keyboard-only use.
Every position change is forwarded to a sample sink (normally
:meth:`SessionController.push_sample`).
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

logger = logging.getLogger(__name__)

# Gaze step per arrow key press, percent of the board
_STEP: float = 5.0

SampleSink = Callable[[float, float], Any]


@dataclass(frozen=True)
class ContainerRect:
    """On-screen rectangle of the board container, in pixels."""

    left: float
    top: float
    width: float
    height: float


class PointerSimulator:
    """
    Pointer/keyboard gaze simulator.

    Key bindings:
    - Arrow Left / Right / Up / Down: move gaze by a fixed step.
    - 'r': reset gaze to the board centre.

    Samples are only forwarded while the simulator is running.

    Args:
        sink: Callable receiving ``(x, y)`` in percent of the board.
        container: Board rectangle used to convert pointer pixels.
    """

    def __init__(self, sink: SampleSink, container: Optional[ContainerRect] = None) -> None:
        self._sink = sink
        self._container = container or ContainerRect(0.0, 0.0, 1920.0, 1080.0)
        self._x: float = 50.0
        self._y: float = 50.0
        self._running: bool = False
        self._lock = threading.Lock()
        logger.info("PointerSimulator initialised — pointer / arrow keys drive gaze")

    # ──────────────────────────────────────────
    # Lifecycle
    # ──────────────────────────────────────────

    def start(self) -> None:
        self._running = True
        logger.info("PointerSimulator started")

    def stop(self) -> None:
        self._running = False
        logger.info("PointerSimulator stopped")

    @property
    def running(self) -> bool:
        return self._running

    @property
    def position(self) -> tuple[float, float]:
        """Current simulated gaze position in percent (thread-safe)."""
        with self._lock:
            return (self._x, self._y)

    def set_container(self, container: ContainerRect) -> None:
        """Update the board rectangle, e.g. after a window resize."""
        with self._lock:
            self._container = container

    # ──────────────────────────────────────────
    # Input injection
    # ──────────────────────────────────────────

    def on_pointer_move(self, client_x: float, client_y: float) -> None:
        """
        Convert a pointer position to board percent and forward it.

        Positions outside the container yield values outside [0, 100]; the
        session clamps them.
        """
        with self._lock:
            rect = self._container
            if rect.width <= 0 or rect.height <= 0:
                logger.debug("Ignoring pointer move: empty container %s", rect)
                return
            self._x = (client_x - rect.left) / rect.width * 100.0
            self._y = (client_y - rect.top) / rect.height * 100.0
        self._emit()

    def inject_key(self, key: str) -> None:
        """
        Process a key press and forward the new position.

        Args:
            key: Key name (``'Left'``, ``'Right'``, ``'Up'``, ``'Down'``, ``'r'``).
                Unknown keys are ignored.
        """
        with self._lock:
            if key == "Left":
                self._x = max(0.0, self._x - _STEP)
            elif key == "Right":
                self._x = min(100.0, self._x + _STEP)
            elif key == "Up":
                self._y = max(0.0, self._y - _STEP)
            elif key == "Down":
                self._y = min(100.0, self._y + _STEP)
            elif key == "r":
                self._x = 50.0
                self._y = 50.0
                logger.debug("Simulator: gaze reset to centre")
            else:
                return
        self._emit()

    def play_script(
        self,
        steps: Iterable[tuple[float, float, float]],
        rate_hz: float = 24.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> int:
        """
        Hold the gaze at a sequence of positions.

        Args:
            steps: ``(x, y, duration_s)`` triples in percent coordinates.
            rate_hz: Sample rate while holding a position.
            sleep: Sleep function; tests pass a no-op.

        Returns:
            Number of samples forwarded.
        """
        interval = 1.0 / rate_hz
        sent = 0
        for x, y, duration_s in steps:
            with self._lock:
                self._x, self._y = x, y
            for _ in range(max(1, round(duration_s * rate_hz))):
                if not self._running:
                    return sent
                self._emit()
                sent += 1
                sleep(interval)
        return sent

    def _emit(self) -> None:
        if not self._running:
            return
        x, y = self.position
        self._sink(x, y)
