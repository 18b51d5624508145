"""
eyetalk/core/errors.py — Exception types raised inside EyeTalk.

None of these are fatal to a running session: callers catch them at the
seam where a fallback exists.
"""

from __future__ import annotations


class EyeTalkError(Exception):
    """Base class for EyeTalk errors."""


class AudioUnavailableError(EyeTalkError):
    """Recorded audio for a phrase could not be played."""


class SessionStateError(EyeTalkError):
    """A session lifecycle call was made in the wrong state."""
