from dataclasses import dataclass
from enum import Enum
from typing import Tuple
import numpy as np

OWNER_NO_MASK = "owner_no_mask"
OWNER_MASK = "owner_mask"
UNKNOWN_LABEL = "unknown"
OWNER_LABELS = (OWNER_NO_MASK, OWNER_MASK)

Embedding = Tuple[float, ...]


class MaskState(str, Enum):
    NO_MASK = "no_mask"
    WITH_MASK = "with_mask"

    @property
    def label(self) -> str:
        return OWNER_MASK if self is MaskState.WITH_MASK else OWNER_NO_MASK

    @property
    def display_name(self) -> str:
        return "with mask" if self is MaskState.WITH_MASK else "no mask"


@dataclass(frozen=True)
class FaceDet:
    x1: int
    y1: int
    x2: int
    y2: int
    score: float = 1.0

    @property
    def area(self) -> int:
        return max(0, self.x2 - self.x1) * max(0, self.y2 - self.y1)

    @property
    def css(self) -> Tuple[int, int, int, int]:
        """(top, right, bottom, left), the box order dlib / face_recognition use."""
        return self.y1, self.x2, self.y2, self.x1


@dataclass(frozen=True)
class Detection:
    embedding: np.ndarray  # (D,) float32, read-only
    bbox: Tuple[int, int, int, int]  # (x1, y1, x2, y2)
    score: float = 1.0

    @classmethod
    def from_vector(cls, vector, bbox=(0, 0, 0, 0), score: float = 1.0) -> "Detection":
        emb = np.asarray(vector, dtype=np.float32).reshape(-1).copy()
        emb.setflags(write=False)
        return cls(embedding=emb, bbox=tuple(int(v) for v in bbox), score=float(score))


@dataclass(frozen=True)
class BestMatch:
    label: str
    distance: float

    @property
    def is_owner(self) -> bool:
        return self.label in OWNER_LABELS
