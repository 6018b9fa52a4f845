from typing import Optional
import cv2
import numpy as np
from .errors import CameraError


class Camera:
    """OpenCV capture with a fallback to device 0."""

    def __init__(self, index: int = 0, mirror: bool = True):
        self.index = int(index)
        self.mirror = bool(mirror)
        self.cap: Optional[cv2.VideoCapture] = None

    def open(self) -> "Camera":
        candidates = [self.index] if self.index == 0 else [self.index, 0]
        for idx in candidates:
            cap = cv2.VideoCapture(idx)
            if cap.isOpened():
                self.cap = cap
                self.index = idx
                print(f"[camera] opened device {idx}")
                return self
            cap.release()
        raise CameraError(
            f"camera not available (tried {candidates})",
            "Camera error: no camera available or permission denied.",
        )

    @property
    def is_open(self) -> bool:
        return self.cap is not None and self.cap.isOpened()

    def read(self) -> np.ndarray:
        if not self.is_open:
            raise CameraError("camera not opened", "Camera error: camera is not open.")
        ok, frame = self.cap.read()
        if not ok or frame is None:
            raise CameraError("failed to read frame", "Camera error: failed to read a frame.")
        return cv2.flip(frame, 1) if self.mirror else frame

    def release(self) -> None:
        if self.cap is not None:
            self.cap.release()
            self.cap = None
