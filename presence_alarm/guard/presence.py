"""
Owner-presence verdict.

Each monitoring cycle turns the frame's detections plus the current
matcher into a single `owner_absent` flag stored on the shared
MonitoringSession. The only memory between cycles is the count of
consecutive frames without any detected face.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence
from ..recognize.matcher import DEFAULT_MATCH_THRESHOLD, FaceMatcher
from ..recognize.types import Detection, OWNER_LABELS, UNKNOWN_LABEL

DEFAULT_NO_FACE_THRESHOLD = 10


@dataclass
class MonitoringSession:
    """State shared by the monitoring loop (writer) and the alarm gate (reader)."""
    active: bool = False
    consecutive_no_face_frames: int = 0
    owner_absent: bool = False  # no verdict before the first cycle
    tab_visible: bool = True


class CycleVerdict(str, Enum):
    NO_FACE_TIMEOUT = "no_face_timeout"
    INTRUDER = "intruder"
    OWNER_PRESENT = "owner_present"
    OWNER_ABSENT = "owner_absent"


STATUS_MESSAGES = {
    CycleVerdict.NO_FACE_TIMEOUT: "No face detected for a long time (check the camera)",
    CycleVerdict.INTRUDER: "Intruder detected (unregistered face)!",
    CycleVerdict.OWNER_PRESENT: "Owner confirmed...",
    CycleVerdict.OWNER_ABSENT: "Owner absent",
}


@dataclass(frozen=True)
class CycleResult:
    verdict: CycleVerdict
    owner_present: bool
    intruder_detected: bool
    owner_absent: bool
    face_count: int

    @property
    def status_message(self) -> str:
        return STATUS_MESSAGES[self.verdict]


class PresenceClassifier:
    def __init__(
        self,
        match_threshold: float = DEFAULT_MATCH_THRESHOLD,
        no_face_threshold: int = DEFAULT_NO_FACE_THRESHOLD,
    ):
        self.match_threshold = float(match_threshold)
        self.no_face_threshold = int(no_face_threshold)

    def update(
        self,
        session: MonitoringSession,
        detections: Sequence[Detection],
        matcher: Optional[FaceMatcher],
    ) -> CycleResult:
        owner_present = False
        intruder_detected = False

        if len(detections) == 0:
            session.consecutive_no_face_frames += 1
        else:
            session.consecutive_no_face_frames = 0
            if matcher is not None:
                for det in detections:
                    best = matcher.find_best_match(det.embedding)
                    if best.label in OWNER_LABELS and best.distance < self.match_threshold:
                        owner_present = True
                    elif best.label != UNKNOWN_LABEL:
                        intruder_detected = True

        no_face_timeout = session.consecutive_no_face_frames >= self.no_face_threshold
        # fail safe: prolonged camera silence is never treated as "owner here"
        session.owner_absent = True if no_face_timeout else not owner_present

        if no_face_timeout:
            verdict = CycleVerdict.NO_FACE_TIMEOUT
        elif intruder_detected:
            verdict = CycleVerdict.INTRUDER
        elif owner_present:
            verdict = CycleVerdict.OWNER_PRESENT
        else:
            verdict = CycleVerdict.OWNER_ABSENT

        return CycleResult(
            verdict=verdict,
            owner_present=owner_present,
            intruder_detected=intruder_detected,
            owner_absent=session.owner_absent,
            face_count=len(detections),
        )
