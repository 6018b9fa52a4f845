from __future__ import annotations
from typing import Optional
from ..errors import EngineError
from ..recognize.matcher import DEFAULT_MATCH_THRESHOLD, FaceMatcher, build_matcher
from ..recognize.types import MaskState
from .logger import ActivityLogger
from .store import EnrollmentData, EnrollmentStore

ONE_FACE_NOTICE = "Exactly one face must be visible to enroll."
PREVIOUS_ENROLLMENT_STATUS = "Previous enrollment found. Ready to monitor (or enroll more)."


class Enrollment:
    """
    Owner enrollment actions. Holds the current matcher, rebuilt from the
    full store after every change.
    """
    def __init__(
        self,
        store: EnrollmentStore,
        engine,
        display,
        match_threshold: float = DEFAULT_MATCH_THRESHOLD,
        logger: Optional[ActivityLogger] = None,
    ):
        self.store = store
        self.engine = engine
        self.display = display
        self.match_threshold = float(match_threshold)
        self.logger = logger
        self.data: EnrollmentData = EnrollmentData()
        self.matcher: Optional[FaceMatcher] = None

    def _rebuild(self, data: EnrollmentData):
        self.data = data
        self.matcher = build_matcher(data, dist_thresh=self.match_threshold)
        n_classes = len(self.matcher.labels) if self.matcher else 0
        print(f"[enroll] matcher rebuilt: {n_classes} class(es), {data.total} sample(s)")

    def reload(self) -> EnrollmentData:
        self._rebuild(self.store.load())
        if self.matcher is not None:
            self.display.set_status(PREVIOUS_ENROLLMENT_STATUS)
        return self.data

    async def enroll(self, frame, mask_state: MaskState) -> bool:
        try:
            detections = await self.engine.detect(frame)
        except EngineError as e:
            print(f"[enroll] {e}")
            self.display.set_status(e.user_message)
            return False

        if len(detections) != 1:
            print(f"[enroll] refused: {len(detections)} face(s) detected")
            self.display.notify(ONE_FACE_NOTICE)
            return False

        data = self.store.append(mask_state, detections[0].embedding)
        self._rebuild(data)
        self.display.set_status(f"Enrolled ({mask_state.display_name}). Total samples: {data.total}")
        if self.logger:
            self.logger.log_enrollment(mask_state.display_name, data.total)
        return True

    def clear(self) -> None:
        self._rebuild(self.store.clear())
        self.display.set_status("Enrollment cleared. Please enroll again.")
        if self.logger:
            self.logger.log_activity("owner", "enrollment cleared")
