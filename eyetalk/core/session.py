"""
eyetalk/core/session.py — Session controller for the EyeTalk dwell engine.

Owns the smoother, the dwell state machine, the target registry and the
action dispatcher. Samples are smoothed on arrival; the dwell machine is
evaluated only on the controller's own rate-limited tick, which runs in a
daemon thread while a session is active. Samples and ticks are serialised
by one lock, so dwell state is never mutated from two threads at once.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Dict, Iterable, Optional

from eyetalk.board.phrases import PhraseBook, PhraseRecord
from eyetalk.board.registry import TargetRegistry
from eyetalk.core.config import COORDINATE_SPACES, EyeTalkConfig, load_config
from eyetalk.core.errors import SessionStateError
from eyetalk.core.events import (
    ON_ACTIVE_TARGET_CHANGED,
    ON_PROGRESS_UPDATED,
    ON_SESSION_STARTED,
    ON_SESSION_STOPPED,
    EventBus,
    EventCallback,
)
from eyetalk.core.logger import get_logger
from eyetalk.dwell.state_machine import DwellStateMachine, TickResult
from eyetalk.gaze.samples import GazeSample, SmoothedPoint, parse_wire_message, to_percent
from eyetalk.gaze.smoother import SampleSmoother
from eyetalk.output.dispatcher import ActionDispatcher, AudioOutput

logger = logging.getLogger(__name__)


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class SessionController:
    """
    Runs one dwell-selection session over the configured phrase board.

    Args:
        config: Validated :class:`EyeTalkConfig` instance.
        audio: Audio capability used when a phrase is selected.
        bus: Event bus for outward notifications; a private one if None.
        phrase_book: Phrase set; built from ``config.phrases`` if None.
            The default phrases are used only when ``config.phrases`` is
            None; an empty list gives an empty board.
        clock: Monotonic clock in milliseconds.
        background_audio: Voice selections in a daemon thread.
    """

    def __init__(
        self,
        config: EyeTalkConfig,
        audio: AudioOutput,
        bus: Optional[EventBus] = None,
        phrase_book: Optional[PhraseBook] = None,
        clock: Callable[[], float] = _monotonic_ms,
        background_audio: bool = True,
    ) -> None:
        self._config = config
        self._clock = clock
        self._bus = bus if bus is not None else EventBus()
        self._phrase_book = phrase_book if phrase_book is not None else PhraseBook(config.phrases)

        self._smoother = SampleSmoother(config.smoothing.window_size)
        self._dwell = DwellStateMachine(config.dwell)
        self._registry = TargetRegistry(config.layout, self._phrase_book.phrases)
        self._dispatcher = ActionDispatcher(
            audio=audio,
            bus=self._bus,
            phrases=self._phrase_book,
            use_tts_fallback=config.audio.use_tts_fallback,
            background=background_audio,
        )

        self._lock = threading.RLock()
        self._running = False
        self._loop_thread: Optional[threading.Thread] = None
        self._active_id: Optional[str] = None
        self._progress: float = 0.0

        logger.info("SessionController initialised (%d phrases)", len(self._phrase_book))

    @classmethod
    def from_config_file(
        cls,
        audio: AudioOutput,
        config_path: str | None = None,
        bus: Optional[EventBus] = None,
    ) -> "SessionController":
        """
        Convenience factory: load config from file and build the controller.

        Args:
            audio: Audio capability.
            config_path: Optional path to eyetalk.yaml; auto-discovers if None.
            bus: Optional shared event bus.
        """
        return cls(config=load_config(config_path), audio=audio, bus=bus)

    # ──────────────────────────────────────────
    # Accessors
    # ──────────────────────────────────────────

    @property
    def config(self) -> EyeTalkConfig:
        return self._config

    @property
    def bus(self) -> EventBus:
        return self._bus

    @property
    def running(self) -> bool:
        with self._lock:
            return self._running

    @property
    def locked(self) -> bool:
        return self._dispatcher.locked

    @property
    def registry(self) -> TargetRegistry:
        return self._registry

    @property
    def phrase_book(self) -> PhraseBook:
        return self._phrase_book

    @property
    def dwell(self) -> DwellStateMachine:
        return self._dwell

    @property
    def smoother(self) -> SampleSmoother:
        return self._smoother

    def subscribe(self, event: str, callback: EventCallback) -> None:
        """Shortcut for ``controller.bus.subscribe``."""
        self._bus.subscribe(event, callback)

    # ──────────────────────────────────────────
    # Lifecycle
    # ──────────────────────────────────────────

    def start(self, run_loop: bool = True) -> None:
        """
        Begin a session: unlock the board and start the tick thread.

        Args:
            run_loop: Start the background tick thread. Tests pass False and
                drive :meth:`tick` directly.

        Raises:
            SessionStateError: If a session is already running.
        """
        with self._lock:
            if self._running:
                raise SessionStateError("Session is already running")
            self._running = True
            self._dispatcher.reset_lock()
            self._dwell.reset()
            self._active_id = None
            self._progress = 0.0

        if run_loop:
            self._loop_thread = threading.Thread(
                target=self._loop, name="eyetalk-tick", daemon=True
            )
            self._loop_thread.start()

        get_logger().info("session", "session_started", {"phrases": len(self._phrase_book)})
        self._bus.publish(ON_SESSION_STARTED, {"timestamp": time.time() * 1000.0})
        logger.info("Session started")

    def stop(self) -> None:
        """
        End the session: halt ticks, reset dwell to Idle, clear the smoother
        and unlock the board. Stopping an idle controller is a no-op.
        """
        with self._lock:
            if not self._running:
                return
            self._running = False

        if self._loop_thread is not None and self._loop_thread is not threading.current_thread():
            self._loop_thread.join(timeout=2.0)
        self._loop_thread = None

        with self._lock:
            self._dwell.reset()
            self._smoother.clear()
            self._dispatcher.reset_lock()
            had_active = self._active_id is not None
            self._active_id = None
            self._progress = 0.0

        if had_active:
            self._bus.publish(ON_ACTIVE_TARGET_CHANGED, {"target_id": None})
            self._bus.publish(ON_PROGRESS_UPDATED, {"target_id": None, "progress": 0.0})
        get_logger().info("session", "session_stopped")
        self._bus.publish(ON_SESSION_STOPPED, {"timestamp": time.time() * 1000.0})
        logger.info("Session stopped")

    # ──────────────────────────────────────────
    # Input
    # ──────────────────────────────────────────

    def push_sample(
        self,
        x: Any,
        y: Any,
        t: Optional[float] = None,
        coordinate_space: Optional[str] = None,
    ) -> Optional[SmoothedPoint]:
        """
        Feed one raw gaze sample.

        Out-of-range values are clamped; non-numeric or non-finite values
        are dropped.

        Args:
            x: Horizontal coordinate.
            y: Vertical coordinate.
            t: Sample time in milliseconds; the controller clock if None.
            coordinate_space: ``percent`` or ``pixels`` for this sample;
                ``input.coordinate_space`` if None.

        Returns:
            The new smoothed point, or None if the sample was dropped.

        Raises:
            ValueError: If *coordinate_space* is not a known space.
        """
        input_cfg = self._config.input
        if coordinate_space is None:
            coordinate_space = input_cfg.coordinate_space
        elif coordinate_space not in COORDINATE_SPACES:
            raise ValueError(f"Unknown coordinate space: {coordinate_space!r}")
        pair = to_percent(
            x, y,
            coordinate_space=coordinate_space,
            reference_width=input_cfg.reference_width,
            reference_height=input_cfg.reference_height,
        )
        if pair is None:
            logger.debug("Dropping invalid gaze sample (%r, %r)", x, y)
            return None
        stamp = self._clock() if t is None else t
        with self._lock:
            return self._smoother.push(GazeSample(x=pair[0], y=pair[1], t=stamp))

    def push_wire_message(self, raw: str | bytes) -> Optional[SmoothedPoint]:
        """Parse a tracker message and feed it as a sample."""
        pair = parse_wire_message(raw)
        if pair is None:
            return None
        return self.push_sample(pair[0], pair[1])

    def set_phrases(self, phrases: Iterable[PhraseRecord]) -> None:
        """
        Replace the phrase set and re-lay out the board.

        Any dwell in progress is abandoned.

        Raises:
            ValueError: If two phrases share an id.
        """
        self._phrase_book.replace(phrases)
        with self._lock:
            self._registry.rebuild(self._phrase_book.phrases)
            self._dwell.state.reset()
            had_active = self._active_id is not None
            self._active_id = None
            self._progress = 0.0
        if had_active:
            self._bus.publish(ON_ACTIVE_TARGET_CHANGED, {"target_id": None})
            self._bus.publish(ON_PROGRESS_UPDATED, {"target_id": None, "progress": 0.0})

    # ──────────────────────────────────────────
    # Tick
    # ──────────────────────────────────────────

    def tick(self, now_ms: Optional[float] = None) -> TickResult:
        """
        Evaluate one frame of the dwell machine and publish UI feedback.

        On a confirmation the sequence is: progress 100, dispatch, active
        target cleared, progress 0.

        Args:
            now_ms: Frame time in milliseconds; the controller clock if None.
        """
        now = self._clock() if now_ms is None else now_ms
        with self._lock:
            targets = self._registry.active_targets(self._dispatcher.locked)
            result = self._dwell.tick(self._smoother.latest, targets, now)
            if not result.accepted:
                return result

            if result.candidate_changed:
                self._active_id = result.candidate.id if result.candidate else None
                self._bus.publish(ON_ACTIVE_TARGET_CHANGED, {"target_id": self._active_id})

            self._set_progress(result.progress)

            if result.triggered is not None:
                self._dispatcher.dispatch(result.triggered, self._smoother.latest)
                self._active_id = None
                self._bus.publish(ON_ACTIVE_TARGET_CHANGED, {"target_id": None})
                self._set_progress(0.0)
        return result

    def _set_progress(self, progress: float) -> None:
        if progress == self._progress:
            return
        self._progress = progress
        self._bus.publish(ON_PROGRESS_UPDATED, {
            "target_id": self._active_id,
            "progress": progress,
        })

    def _loop(self) -> None:
        """Background tick loop; the dwell machine rate-limits itself."""
        poll_s = self._config.input.tick_poll_ms / 1000.0
        while self.running:
            try:
                self.tick()
            except Exception as exc:  # noqa: BLE001
                logger.error("Unhandled error in tick loop: %s", exc, exc_info=True)
            time.sleep(poll_s)

    # ──────────────────────────────────────────
    # Snapshot
    # ──────────────────────────────────────────

    def state(self) -> Dict[str, Any]:
        """JSON-safe snapshot of the session for UI rendering."""
        with self._lock:
            locked = self._dispatcher.locked
            point = self._smoother.latest
            targets = self._registry.active_targets(locked)
            return {
                "running": self._running,
                "locked": locked,
                "active_target_id": self._active_id,
                "progress": self._progress,
                "smoothed_point": {"x": point.x, "y": point.y} if point else None,
                "last_label": self._dispatcher.last_label,
                "targets": [
                    {
                        "id": tgt.id,
                        "x": tgt.center_x,
                        "y": tgt.center_y,
                        "radius": tgt.radius,
                        "kind": tgt.kind.value,
                        "label": tgt.label,
                        "color": tgt.color,
                    }
                    for tgt in targets
                ],
            }
