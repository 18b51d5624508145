"""
eyetalk/board/phrases.py — Phrase records backing the standard dwell targets.

Each phrase becomes one circular button on the board. The book keeps the
ordered phrase set and per-phrase usage counters; geometry is derived from
the phrase count alone by :mod:`eyetalk.board.layout`.
"""

from __future__ import annotations

import logging
import threading
from typing import Iterable, Optional

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

#: Button colour per phrase category; unknown categories render grey.
CATEGORY_COLORS: dict[str, str] = {
    "basic_needs": "#3B82F6",
    "medical":     "#EF4444",
    "comfort":     "#10B981",
    "assistance":  "#F59E0B",
    "emergency":   "#DC2626",
}
DEFAULT_COLOR: str = "#6B7280"


class PhraseRecord(BaseModel):
    """
    One configured phrase/button.

    Attributes:
        id: Stable identifier, also used as the target id.
        label: Text shown on the button and spoken by the TTS fallback.
        category: Semantic grouping used for the default colour.
        audio_ref: Recorded audio reference; defaults to ``/audio/{id}.wav``.
        color: Explicit button colour; defaults from :data:`CATEGORY_COLORS`.
        usage_count: Number of confirmed selections so far.
    """

    id: str
    label: str
    category: str = "basic_needs"
    audio_ref: Optional[str] = None
    color: Optional[str] = None
    usage_count: int = Field(default=0, ge=0)

    @field_validator("id", "label")
    @classmethod
    def must_be_non_empty(cls, v: str) -> str:
        """
        Validate that the field is a non-empty string.

        Raises:
            ValueError: If the string is empty or whitespace-only.
        """
        if not v or not v.strip():
            raise ValueError("Phrase id and label must not be empty")
        return v.strip()

    @property
    def resolved_audio_ref(self) -> str:
        """Audio reference to play, falling back to the per-id default."""
        return self.audio_ref or f"/audio/{self.id}.wav"

    @property
    def resolved_color(self) -> str:
        """Button colour, falling back to the category colour."""
        return self.color or CATEGORY_COLORS.get(self.category, DEFAULT_COLOR)


DEFAULT_PHRASES: tuple[PhraseRecord, ...] = (
    PhraseRecord(id="thirsty", label="I am thirsty", category="basic_needs",
                 audio_ref="/audio/thirsty.wav"),
    PhraseRecord(id="hungry", label="I am hungry", category="basic_needs",
                 audio_ref="/audio/hungry.wav"),
    PhraseRecord(id="help", label="Help me", category="assistance",
                 audio_ref="/audio/help.wav"),
    PhraseRecord(id="pain", label="I am in pain", category="medical",
                 audio_ref="/audio/pain.wav"),
)


class PhraseBook:
    """
    Ordered, thread-safe collection of :class:`PhraseRecord` objects.

    Order matters: it is the order targets are laid out and hit-tested in.

    Args:
        phrases: Initial phrases; :data:`DEFAULT_PHRASES` when None.
    """

    def __init__(self, phrases: Optional[Iterable[PhraseRecord]] = None) -> None:
        self._lock = threading.Lock()
        source = DEFAULT_PHRASES if phrases is None else phrases
        self._phrases: list[PhraseRecord] = [p.model_copy() for p in source]
        logger.info("PhraseBook ready: %d phrases", len(self._phrases))

    def __len__(self) -> int:
        with self._lock:
            return len(self._phrases)

    @property
    def phrases(self) -> tuple[PhraseRecord, ...]:
        """Snapshot of all phrases in board order."""
        with self._lock:
            return tuple(self._phrases)

    def get(self, phrase_id: str) -> Optional[PhraseRecord]:
        with self._lock:
            return self._find(phrase_id)

    def replace(self, phrases: Iterable[PhraseRecord]) -> None:
        """
        Swap in a completely new phrase set.

        Raises:
            ValueError: If two phrases share an id.
        """
        new = [p.model_copy() for p in phrases]
        ids = [p.id for p in new]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Duplicate phrase ids: {ids}")
        with self._lock:
            self._phrases = new
        logger.info("PhraseBook replaced: %d phrases", len(new))

    def add(self, phrase: PhraseRecord) -> PhraseRecord:
        """
        Append a phrase to the end of the board.

        Raises:
            ValueError: If a phrase with the same id already exists.
        """
        with self._lock:
            if self._find(phrase.id) is not None:
                raise ValueError(f"Phrase id already exists: {phrase.id!r}")
            added = phrase.model_copy()
            self._phrases.append(added)
        logger.info("Phrase added: %s", phrase.id)
        return added

    def update(self, phrase_id: str, **changes: object) -> Optional[PhraseRecord]:
        """Apply field changes to one phrase; returns None if it is unknown."""
        with self._lock:
            for idx, phrase in enumerate(self._phrases):
                if phrase.id == phrase_id:
                    updated = PhraseRecord(**{**phrase.model_dump(), **changes})
                    self._phrases[idx] = updated
                    return updated
        return None

    def remove(self, phrase_id: str) -> bool:
        """Remove a phrase; returns False if it was not present."""
        with self._lock:
            before = len(self._phrases)
            self._phrases = [p for p in self._phrases if p.id != phrase_id]
            removed = len(self._phrases) != before
        if removed:
            logger.info("Phrase removed: %s", phrase_id)
        return removed

    def increment_usage(self, phrase_id: str) -> int:
        """
        Bump the usage counter of a phrase.

        Returns:
            The new count, or 0 if the phrase no longer exists (it may have
            been removed between the trigger and this call).
        """
        with self._lock:
            for idx, phrase in enumerate(self._phrases):
                if phrase.id == phrase_id:
                    count = phrase.usage_count + 1
                    self._phrases[idx] = phrase.model_copy(update={"usage_count": count})
                    return count
        logger.warning("increment_usage: unknown phrase %r", phrase_id)
        return 0

    def by_category(self, category: str) -> list[PhraseRecord]:
        with self._lock:
            return [p for p in self._phrases if p.category == category]

    def categories(self) -> list[str]:
        """Sorted list of distinct categories."""
        with self._lock:
            return sorted({p.category for p in self._phrases})

    def _find(self, phrase_id: str) -> Optional[PhraseRecord]:
        for phrase in self._phrases:
            if phrase.id == phrase_id:
                return phrase
        return None
