import cv2
import numpy as np
from typing import List, Tuple
try:
    import face_recognition
except Exception as e:
    face_recognition = None
    _FR_IMPORT_ERROR = e

from .types import FaceDet

DETECTOR_MODELS = ("hog", "cnn")


def _clip_xyxy(x1: float, y1: float, x2: float, y2: float, W: int, H: int) -> Tuple[int, int, int, int]:
    x1 = int(max(0, min(W - 1, round(x1))))
    y1 = int(max(0, min(H - 1, round(y1))))
    x2 = int(max(0, min(W - 1, round(x2))))
    y2 = int(max(0, min(H - 1, round(y2))))
    return x1, y1, x2, y2


class DlibFaceLocator:
    """
    dlib face detector through face_recognition.face_locations.
    Runs on a downscaled copy of the RGB frame and maps the boxes back to
    full-frame coordinates, largest face first. Boxes smaller than
    min_size (full-frame pixels) are dropped.
    """
    def __init__(
        self,
        model: str = "hog",
        upsample: int = 1,
        scale: float = 1.0,
        min_size: int = 40,
        debug: bool = False,
    ):
        if face_recognition is None:
            raise RuntimeError(f"face_recognition import failed: {_FR_IMPORT_ERROR}\n Install: pip install face_recognition")
        if model not in DETECTOR_MODELS:
            raise ValueError(f"Unknown detector model {model!r}, expected one of {DETECTOR_MODELS}")
        if not 0.0 < float(scale) <= 1.0:
            raise ValueError(f"scale must be in (0, 1], got {scale}")

        self.model = model
        self.upsample = int(upsample)
        self.scale = float(scale)
        self.min_size = int(min_size)
        self.debug = bool(debug)

    def detect(self, rgb: np.ndarray, max_faces: int = 5) -> List[FaceDet]:
        H, W = rgb.shape[:2]
        small = rgb
        if self.scale != 1.0:
            small = cv2.resize(rgb, (0, 0), fx=self.scale, fy=self.scale, interpolation=cv2.INTER_AREA)

        locations = face_recognition.face_locations(
            np.ascontiguousarray(small),
            number_of_times_to_upsample=self.upsample,
            model=self.model,
        )

        out: List[FaceDet] = []
        for (top, right, bottom, left) in locations:
            x1, y1, x2, y2 = _clip_xyxy(
                left / self.scale, top / self.scale, right / self.scale, bottom / self.scale, W, H
            )
            if min(x2 - x1, y2 - y1) < self.min_size:
                if self.debug:
                    print(f"[detector] face {x2 - x1}x{y2 - y1} below min size -> skip")
                continue
            out.append(FaceDet(x1=x1, y1=y1, x2=x2, y2=y2))

        out.sort(key=lambda f: f.area, reverse=True)
        return out[:max_faces]
