import numpy as np
from typing import List, Sequence
try:
    import face_recognition
except Exception as e:
    face_recognition = None
    _FR_IMPORT_ERROR = e

from .types import FaceDet

ENCODER_MODELS = ("small", "large")


class DlibFaceEncoder:
    """
    dlib ResNet face descriptor through face_recognition.face_encodings.
    Input: full RGB frame + face boxes. Output: one (128,) float32 vector
    per box, left unnormalised. Same-person pairs sit below ~0.6
    Euclidean distance in this space, which is what the 0.58 match
    threshold is set against.
    """
    def __init__(self, num_jitters: int = 1, model: str = "small", debug: bool = False):
        if face_recognition is None:
            raise RuntimeError(f"face_recognition import failed: {_FR_IMPORT_ERROR}\n Install: pip install face_recognition")
        if model not in ENCODER_MODELS:
            raise ValueError(f"Unknown landmark model {model!r}, expected one of {ENCODER_MODELS}")
        self.num_jitters = max(1, int(num_jitters))
        self.model = model
        self.debug = bool(debug)

    def encode(self, rgb: np.ndarray, faces: Sequence[FaceDet]) -> List[np.ndarray]:
        if not faces:
            return []
        vectors = face_recognition.face_encodings(
            np.ascontiguousarray(rgb),
            known_face_locations=[f.css for f in faces],
            num_jitters=self.num_jitters,
            model=self.model,
        )
        out = [np.asarray(v, dtype=np.float32).reshape(-1) for v in vectors]
        if self.debug:
            print(f"[embed] {len(out)} descriptor(s)")
        return out
