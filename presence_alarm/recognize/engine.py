"""
Async face engine.

camera frame (BGR) -> RGB -> dlib face boxes -> dlib 128-d descriptors
-> Detection(embedding, bbox)

Model loading and per-frame inference run in a worker thread so the
event loop stays responsive; callers simply await the result. Every
failure surfaces as EngineError.
"""

from __future__ import annotations
import asyncio
from typing import Callable, List, Optional, Tuple
import cv2
import numpy as np
from ..errors import EngineError
from .types import Detection


class FaceEngine:
    def __init__(
        self,
        loader: Optional[Callable[[], Tuple[object, object]]] = None,
        max_faces: int = 5,
        embedding_dim: Optional[int] = 128,
        debug: bool = False,
    ):
        self.loader = loader
        self.max_faces = int(max_faces)
        self.embedding_dim = embedding_dim
        self.debug = bool(debug)
        self.detector = None
        self.embedder = None

    @property
    def loaded(self) -> bool:
        return self.detector is not None and self.embedder is not None

    def attach(self, detector, embedder) -> None:
        self.detector = detector
        self.embedder = embedder

    async def load(self) -> None:
        if self.loaded:
            return
        if self.loader is None:
            raise EngineError("no model loader configured", "Face models are not configured.")
        try:
            detector, embedder = await asyncio.to_thread(self.loader)
        except Exception as e:
            raise EngineError(f"model loading failed: {e}", f"Model loading failed: {e}") from e
        self.attach(detector, embedder)
        print("[engine] models loaded")

    def _detect_sync(self, frame_bgr: np.ndarray) -> List[Detection]:
        rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
        faces = self.detector.detect(rgb, max_faces=self.max_faces)
        vectors = self.embedder.encode(rgb, faces) if faces else []
        if len(vectors) != len(faces):
            raise EngineError(
                f"embedder returned {len(vectors)} vectors for {len(faces)} faces",
                "Face detection failed.",
            )

        out: List[Detection] = []
        for f, vec in zip(faces, vectors):
            emb = np.asarray(vec, dtype=np.float32).reshape(-1)
            if self.embedding_dim is not None and emb.size != self.embedding_dim:
                raise EngineError(
                    f"embedder returned {emb.size} values, expected {self.embedding_dim}",
                    "Face model produces the wrong embedding size.",
                )
            out.append(Detection.from_vector(emb, bbox=(f.x1, f.y1, f.x2, f.y2), score=f.score))
        if self.debug:
            print(f"[engine] {len(out)} face(s)")
        return out

    async def detect(self, frame_bgr: Optional[np.ndarray]) -> List[Detection]:
        if not self.loaded:
            raise EngineError("engine not loaded", "Face models are still loading.")
        if frame_bgr is None:
            raise EngineError("no frame", "No camera frame available.")
        try:
            return await asyncio.to_thread(self._detect_sync, frame_bgr)
        except EngineError:
            raise
        except Exception as e:
            raise EngineError(f"detection failed: {e}", "Face detection failed.") from e
