"""
Exception hierarchy for the presence alarm.

Every error carries a short user-facing message that ends up in the
status line. None of them is fatal to the process.
"""

from typing import Optional


class PresenceAlarmError(Exception):
    """Base exception for all presence alarm errors."""

    def __init__(self, message: str, user_message: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.user_message = user_message or message


class CameraError(PresenceAlarmError):
    """Camera missing, busy, or permission denied."""
    pass


class EngineError(PresenceAlarmError):
    """Face engine not loaded or failed on a frame."""
    pass


class AudioError(PresenceAlarmError):
    """Alert sound could not be loaded or played."""
    pass
