"""
Monitoring loop.

Stopped -> Running on start(); there is no way back. While running, each
cycle reads a frame, awaits the face engine, recomputes the presence
verdict, renders the overlay and pumps window input events, then sleeps
for a fixed delay before the next cycle. A cycle is only scheduled after
the previous one finished, so cycles never overlap.

While the alert overlay is showing, the status line keeps the alarm
message instead of the per-cycle verdict. A failed audio unlock or alert
playback is repeated on every status line until a later playback works.
"""

from __future__ import annotations
import asyncio
from typing import List, Optional
from ..errors import CameraError, EngineError
from ..recognize.types import Detection
from .alarm import AUDIO_BLOCKED_HINT, AlarmGate
from .enrollment import Enrollment
from .events import InputDispatcher
from .logger import ActivityLogger
from .presence import CycleResult, MonitoringSession, PresenceClassifier

NEED_ENROLLMENT_NOTICE = "Enroll at least one face first."
MONITORING_STARTED = "Monitoring started!"


class MonitoringLoop:
    def __init__(
        self,
        camera,
        engine,
        enrollment: Enrollment,
        session: MonitoringSession,
        classifier: PresenceClassifier,
        gate: AlarmGate,
        display,
        dispatcher: InputDispatcher,
        logger: Optional[ActivityLogger] = None,
        cycle_delay: float = 0.05,
        debug: bool = False,
    ):
        self.camera = camera
        self.engine = engine
        self.enrollment = enrollment
        self.session = session
        self.classifier = classifier
        self.gate = gate
        self.display = display
        self.dispatcher = dispatcher
        self.logger = logger
        self.cycle_delay = float(cycle_delay)
        self.debug = bool(debug)
        self.cycles = 0

    def start(self) -> bool:
        if self.enrollment.matcher is None:
            print("[monitor] refused: no enrollment")
            self.display.notify(NEED_ENROLLMENT_NOTICE)
            return False
        if self.session.active:
            return True

        self.display.set_status(MONITORING_STARTED)
        self.gate.unlock_audio()
        # show the unlock result before the first cycle replaces the status
        self.display.render(None)

        self.session.active = True
        self.session.consecutive_no_face_frames = 0
        self.gate.attach(self.dispatcher)
        print("[monitor] started")
        if self.logger:
            self.logger.log_activity("monitor", "armed")
        return True

    async def cycle(self) -> CycleResult:
        frame = None
        detections: List[Detection] = []
        error: Optional[str] = None

        try:
            frame = self.camera.read()
            detections = await self.engine.detect(frame)
        except (CameraError, EngineError) as e:
            # counted as a frame without faces
            print(f"[monitor] {e}")
            error = e.user_message

        result = self.classifier.update(self.session, detections, self.enrollment.matcher)
        # the alarm status stays up as long as the alert overlay does
        if not self.display.alert_visible:
            self.display.set_status(result.status_message)
            if error:
                self.display.append_status(f" [{error}]")
            if self.gate.audio_ok is False:
                self.display.append_status(AUDIO_BLOCKED_HINT)

        if self.logger:
            self.logger.log_presence_change(result.owner_absent)
        if self.debug:
            print(f"[monitor] cycle={self.cycles} faces={result.face_count} verdict={result.verdict.value} "
                  f"no_face={self.session.consecutive_no_face_frames}")

        self.display.render(frame, detections)
        self.display.pump()
        self.cycles += 1
        return result

    async def run(self) -> None:
        while self.session.active:
            await self.cycle()
            await asyncio.sleep(self.cycle_delay)
