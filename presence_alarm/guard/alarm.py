"""
Alarm gate.

Decides, for every raw input event on the monitoring window, whether the
alarm fires: only when the owner is judged absent AND the window is
visible. Firing switches the status to the alarm message, shows the alert
overlay for a fixed window (never cancelled early) and plays the alert
sound from the beginning. Every qualifying event retriggers the sequence.

Before monitoring starts, the gate runs one muted play/pause cycle of the
alert sound so the output device is acquired up front. A failure there is
reported but never blocks monitoring.
"""

from __future__ import annotations
import asyncio
from typing import Callable, Optional
from ..errors import AudioError
from .events import INPUT_EVENT_TYPES, VISIBILITY_CHANGE, InputDispatcher, InputEvent
from .logger import ActivityLogger
from .presence import MonitoringSession

ALARM_MESSAGE = "ALARM! Unauthorized input detected"
AUDIO_OK_SUFFIX = " (audio OK)"
AUDIO_BLOCKED_HINT = " (Alert sound is blocked. Check the audio device.)"
PLAYBACK_FAILED_HINT = " (No sound? Check the audio device.)"


def _default_call_later(delay: float, callback: Callable[[], None]):
    return asyncio.get_running_loop().call_later(delay, callback)


class AlarmGate:
    def __init__(
        self,
        session: MonitoringSession,
        display,
        sound,
        logger: Optional[ActivityLogger] = None,
        overlay_seconds: float = 5.0,
        call_later: Optional[Callable] = None,
        debug: bool = False,
    ):
        self.session = session
        self.display = display
        self.sound = sound
        self.logger = logger
        self.overlay_seconds = float(overlay_seconds)
        self.call_later = call_later or _default_call_later
        self.debug = bool(debug)
        self.fired_count = 0
        # None until the first unlock; then whether the last play attempt worked
        self.audio_ok: Optional[bool] = None

    # -------------------------
    # Host event handlers
    # -------------------------

    def on_visibility_change(self, event: InputEvent):
        self.session.tab_visible = bool(event.visible)
        if self.debug:
            print(f"[alarm] window visible={self.session.tab_visible}")

    def on_input_event(self, event: InputEvent) -> bool:
        if not (self.session.owner_absent and self.session.tab_visible):
            return False
        print(f"[alarm] Unauthorized input detected! event={event.type} owner_absent={self.session.owner_absent}")
        self._fire(event)
        return True

    def attach(self, dispatcher: InputDispatcher):
        """Register handlers once; repeated calls never double-register."""
        for event_type in INPUT_EVENT_TYPES:
            dispatcher.add_listener(event_type, self.on_input_event)
        dispatcher.add_listener(VISIBILITY_CHANGE, self.on_visibility_change)

    # -------------------------
    # Side effects
    # -------------------------

    def _fire(self, event: InputEvent):
        self.fired_count += 1
        self.display.set_status(ALARM_MESSAGE, alarm=True)

        self.display.show_alert_overlay()
        self.call_later(self.overlay_seconds, self.display.hide_alert_overlay)

        try:
            self.sound.rewind()
            self.sound.play()
            self.audio_ok = True
            if self.debug:
                print("[alarm] alert sound playing")
        except AudioError as e:
            print(f"[alarm] Alert sound failed: {e}")
            self.audio_ok = False
            self.display.append_status(PLAYBACK_FAILED_HINT)

        if self.logger:
            self.logger.log_alarm(event.type)

    def unlock_audio(self) -> bool:
        """Muted play/pause so later alarms can play without a prompt."""
        try:
            self.sound.rewind()
            self.sound.volume = 0.0
            self.sound.play()
            self.sound.pause()
        except AudioError as e:
            print(f"[alarm] Audio unlock failed: {e}")
            self.audio_ok = False
            self.display.append_status(AUDIO_BLOCKED_HINT)
            return False
        finally:
            self.sound.volume = 1.0

        self.audio_ok = True
        print("[alarm] Audio playback unlocked")
        self.display.append_status(AUDIO_OK_SUFFIX)
        return True
