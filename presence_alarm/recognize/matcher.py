import numpy as np
from dataclasses import dataclass
from typing import List, Optional, Tuple
from .types import BestMatch, Embedding, MaskState, UNKNOWN_LABEL

DEFAULT_MATCH_THRESHOLD = 0.58


@dataclass(frozen=True)
class LabeledEmbeddings:
    label: str
    embeddings: Tuple[Embedding, ...]


def labeled_classes(data) -> List[LabeledEmbeddings]:
    """One class per mask state that has at least one sample."""
    out: List[LabeledEmbeddings] = []
    for state in MaskState:
        samples = data.samples(state)
        if samples:
            out.append(LabeledEmbeddings(label=state.label, embeddings=tuple(samples)))
    return out


class FaceMatcher:
    """
    Nearest-sample classifier over the enrolled classes.
    Distance is Euclidean; the best match is the single closest enrolled
    sample across every class. Anything not strictly below the threshold
    is reported as 'unknown'.
    """
    def __init__(self, classes: List[LabeledEmbeddings], dist_thresh: float = DEFAULT_MATCH_THRESHOLD):
        if not classes:
            raise ValueError("FaceMatcher needs at least one labeled class")
        self.classes = list(classes)
        self.dist_thresh = float(dist_thresh)
        # pre-stack for speed
        self._labels: List[str] = []
        self._mat: Optional[np.ndarray] = None
        self._rebuild()

    def _rebuild(self):
        rows = []
        self._labels = []
        for c in self.classes:
            for e in c.embeddings:
                rows.append(np.asarray(e, dtype=np.float32).reshape(-1))
                self._labels.append(c.label)
        self._mat = np.stack(rows, axis=0)  # (N,D)

    @property
    def labels(self) -> List[str]:
        return [c.label for c in self.classes]

    @property
    def dim(self) -> int:
        return int(self._mat.shape[1])

    def __len__(self) -> int:
        return int(self._mat.shape[0])

    def find_best_match(self, embedding) -> BestMatch:
        e = np.asarray(embedding, dtype=np.float32).reshape(1, -1)  # (1,D)
        if e.shape[1] != self.dim:
            raise ValueError(f"query embedding has length {e.shape[1]}, enrolled length is {self.dim}")

        dists = np.linalg.norm(self._mat - e, axis=1)  # (N,)
        best_i = int(np.argmin(dists))
        best_dist = float(dists[best_i])
        label = self._labels[best_i] if best_dist < self.dist_thresh else UNKNOWN_LABEL
        return BestMatch(label=label, distance=best_dist)


def build_matcher(data, dist_thresh: float = DEFAULT_MATCH_THRESHOLD) -> Optional[FaceMatcher]:
    classes = labeled_classes(data)
    if not classes:
        return None
    return FaceMatcher(classes, dist_thresh=dist_thresh)
