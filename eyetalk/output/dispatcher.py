"""
eyetalk/output/dispatcher.py — Side effects of a confirmed dwell selection.

Standard targets are voiced (recorded audio first, text-to-speech when the
recording is missing or fails) and announced outward; the mode toggle flips
the lock flag. Voicing runs in a daemon thread so the tick loop never waits
on audio I/O.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Optional, Protocol

from eyetalk.board.phrases import PhraseBook
from eyetalk.board.registry import Target, TargetKind
from eyetalk.core.events import ON_LOCK_STATE_CHANGED, ON_SELECTION_CONFIRMED, EventBus
from eyetalk.core.logger import get_logger
from eyetalk.gaze.samples import SmoothedPoint

logger = logging.getLogger(__name__)


class AudioOutput(Protocol):
    """Audio capability injected into the dispatcher."""

    def play(self, ref: str) -> None:
        """Play recorded audio; raise if it cannot be played."""

    def speak(self, text: str) -> None:
        """Synthesise *text* as speech."""


class ActionDispatcher:
    """
    Converts confirmed targets into audio, usage counts and events.

    Owns the lock-mode flag; the session reads :attr:`locked` each tick to
    decide which targets are hit-testable.

    Args:
        audio: Audio capability (``play`` / ``speak``).
        bus: Event bus that receives the outward events.
        phrases: Phrase book whose usage counters are incremented.
        use_tts_fallback: Speak the label when recorded audio fails.
        background: Voice selections in a daemon thread. Tests pass False to
            run audio inline.
    """

    def __init__(
        self,
        audio: AudioOutput,
        bus: EventBus,
        phrases: PhraseBook,
        use_tts_fallback: bool = True,
        background: bool = True,
    ) -> None:
        self._audio = audio
        self._bus = bus
        self._phrases = phrases
        self._use_tts_fallback = use_tts_fallback
        self._background = background
        self._lock = threading.Lock()
        self._locked = False
        self._last_label: Optional[str] = None

    @property
    def locked(self) -> bool:
        with self._lock:
            return self._locked

    @property
    def last_label(self) -> Optional[str]:
        """Label of the most recently voiced phrase."""
        with self._lock:
            return self._last_label

    def reset_lock(self) -> None:
        """Force the board back to unlocked without emitting an event."""
        with self._lock:
            self._locked = False

    def dispatch(self, target: Target, gaze_point: Optional[SmoothedPoint] = None) -> None:
        """
        Carry out the action of a confirmed target.

        Args:
            target: The target the dwell machine confirmed.
            gaze_point: Smoothed gaze position at the trigger tick.
        """
        if target.kind is TargetKind.MODE_TOGGLE:
            self._toggle_lock()
        else:
            self._select(target, gaze_point)

    # ──────────────────────────────────────────
    # Internal
    # ──────────────────────────────────────────

    def _toggle_lock(self) -> None:
        with self._lock:
            self._locked = not self._locked
            locked = self._locked
        logger.info("Screen %s", "locked" if locked else "unlocked")
        get_logger().info("dispatch", "lock_toggled", {"locked": locked})
        self._bus.publish(ON_LOCK_STATE_CHANGED, {
            "locked": locked,
            "timestamp": time.time() * 1000.0,
        })

    def _select(self, target: Target, gaze_point: Optional[SmoothedPoint]) -> None:
        usage = self._phrases.increment_usage(target.id)
        with self._lock:
            self._last_label = target.label

        if self._background:
            threading.Thread(
                target=self._voice,
                args=(target,),
                daemon=True,
                name="eyetalk-voice",
            ).start()
        else:
            self._voice(target)

        payload = {
            "target_id": target.id,
            "label": target.label,
            "timestamp": time.time() * 1000.0,
            "gaze_point": (
                {"x": gaze_point.x, "y": gaze_point.y} if gaze_point is not None else None
            ),
            "usage_count": usage,
        }
        logger.info("Selection confirmed: %s (%r)", target.id, target.label)
        get_logger().info("dispatch", "selection_confirmed", payload)
        self._bus.publish(ON_SELECTION_CONFIRMED, payload)

    def _voice(self, target: Target) -> None:
        """Play the recording, falling back to speech synthesis."""
        if target.audio_ref:
            try:
                self._audio.play(target.audio_ref)
                return
            except Exception as exc:  # noqa: BLE001
                get_logger().warn("dispatch", "audio_fallback", {
                    "target_id": target.id,
                    "audio_ref": target.audio_ref,
                    "error": str(exc),
                })

        if not self._use_tts_fallback:
            logger.error("No audio output for %s and TTS fallback disabled", target.id)
            return
        try:
            self._audio.speak(target.label)
        except Exception as exc:  # noqa: BLE001
            logger.error("TTS fallback failed for %s: %s", target.id, exc)
