"""
eyetalk/output/audio.py — Offline phrase playback and text-to-speech.

Recorded phrases are played through ``pygame.mixer``; speech synthesis
uses pyttsx3 in a dedicated worker thread so callers never block on it.
All audio output is fully offline — no network calls are made.
"""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Any, Optional

import pyttsx3  # type: ignore[import]

from eyetalk.core.config import AudioConfig, TTSConfig
from eyetalk.core.errors import AudioUnavailableError

logger = logging.getLogger(__name__)


class AudioPlayer:
    """
    Audio capability used by the action dispatcher.

    :meth:`play` resolves an audio reference against the configured audio
    directory and starts playback without waiting for it to finish.
    :meth:`speak` queues text for the TTS worker; a newer request replaces
    one that has not started yet.

    Args:
        audio_config: Where recorded phrases live.
        tts_config: Speech rate, volume and voice.
    """

    def __init__(self, audio_config: AudioConfig, tts_config: TTSConfig) -> None:
        """Initialise mixer and TTS engine, then start the speech worker."""
        self._audio_cfg = audio_config
        self._tts_cfg = tts_config
        self._lock = threading.Lock()
        self._pending_text: Optional[str] = None
        self._speaking = False
        self._shutdown_flag = False

        self._mixer: Optional[Any] = None
        self._engine: Optional[Any] = None
        self._worker_thread: Optional[threading.Thread] = None

        self._init_mixer()
        self._init_engine()
        self._start_worker()

    # ──────────────────────────────────────────
    # Public API
    # ──────────────────────────────────────────

    def resolve(self, ref: str) -> Path:
        """
        Map an audio reference to a file path.

        ``/audio/thirsty.wav`` and ``thirsty.wav`` both resolve to
        ``{audio_dir}/thirsty.wav``; an existing absolute path is used as-is.
        """
        path = Path(ref)
        if path.is_absolute() and path.exists():
            return path
        return self._audio_cfg.resolved_audio_dir / path.name

    def play(self, ref: str) -> None:
        """
        Start playing a recorded phrase.

        Raises:
            AudioUnavailableError: If the mixer is not available, the file
                does not exist, or pygame cannot load it.
        """
        if self._mixer is None:
            raise AudioUnavailableError("pygame mixer not initialised")

        path = self.resolve(ref)
        if not path.exists():
            raise AudioUnavailableError(f"Audio file not found: {path}")

        try:
            sound = self._mixer.Sound(str(path))
            sound.play()
        except Exception as exc:  # noqa: BLE001
            raise AudioUnavailableError(f"Playback failed for {path}: {exc}") from exc
        logger.info("Playing %s", path)

    def speak(self, text: str) -> None:
        """
        Queue text for asynchronous speech synthesis.

        Args:
            text: The phrase to speak. Empty text is ignored.
        """
        text = text.strip()
        if not text:
            logger.warning("AudioPlayer.speak called with empty text — ignored")
            return
        if self._engine is None:
            logger.error("TTS unavailable — cannot speak %r", text[:80])
            return

        with self._lock:
            self._pending_text = text
        logger.info("TTS: queuing speech: %r", text[:80])

    @property
    def is_speaking(self) -> bool:
        with self._lock:
            return self._speaking

    def shutdown(self) -> None:
        """
        Stop the worker thread and release audio resources.

        Safe to call multiple times. Blocks until the worker exits (max 3s).
        """
        self._shutdown_flag = True
        if self._worker_thread:
            self._worker_thread.join(timeout=3.0)
        if self._engine is not None:
            try:
                self._engine.stop()
            except Exception as exc:  # noqa: BLE001
                logger.debug("TTS engine stop failed: %s", exc)
        if self._mixer is not None:
            self._mixer.quit()
        logger.info("AudioPlayer shut down")

    # ──────────────────────────────────────────
    # Internal
    # ──────────────────────────────────────────

    def _init_mixer(self) -> None:
        """Initialise ``pygame.mixer``; playback is unavailable if this fails."""
        try:
            import pygame  # type: ignore

            pygame.mixer.init()
            self._mixer = pygame.mixer
            logger.info("pygame mixer initialised")
        except Exception as exc:  # noqa: BLE001
            logger.warning("pygame mixer init failed: %s — recorded audio unavailable", exc)
            self._mixer = None

    def _init_engine(self) -> None:
        """
        Initialise the pyttsx3 engine and apply configuration.

        pyttsx3 engines are not thread-safe, so this instance is only used in
        the worker thread after construction.
        """
        try:
            self._engine = pyttsx3.init()
            self._engine.setProperty("rate", self._tts_cfg.rate)
            self._engine.setProperty("volume", self._tts_cfg.volume)
            if self._tts_cfg.voice_id:
                self._engine.setProperty("voice", self._tts_cfg.voice_id)
            logger.info(
                "TTS engine initialised (rate=%d, volume=%.1f)",
                self._tts_cfg.rate, self._tts_cfg.volume,
            )
        except Exception as exc:  # noqa: BLE001
            logger.error("TTS engine init failed: %s — TTS will be unavailable", exc)
            self._engine = None

    def _start_worker(self) -> None:
        self._worker_thread = threading.Thread(
            target=self._worker_loop, name="eyetalk-tts", daemon=True
        )
        self._worker_thread.start()

    def _worker_loop(self) -> None:
        """Poll for pending text every 50ms and speak it (blocking runAndWait)."""
        while not self._shutdown_flag:
            text: Optional[str] = None
            with self._lock:
                if self._pending_text is not None:
                    text = self._pending_text
                    self._pending_text = None

            if text is not None and self._engine is not None:
                with self._lock:
                    self._speaking = True
                try:
                    self._engine.say(text)
                    self._engine.runAndWait()
                except Exception as exc:  # noqa: BLE001
                    logger.error("TTS speak error: %s", exc)
                finally:
                    with self._lock:
                        self._speaking = False
            else:
                time.sleep(0.05)
