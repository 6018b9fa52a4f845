"""
Owner enrollment persistence.

The whole enrollment set is one JSON string stored under a fixed key
in a small JSON-file key-value store:

    {"no_mask": [[...], ...], "with_mask": [[...], ...]}

Writes replace the backing file atomically, so a crash never leaves a
half-written record. Anything unreadable loads as the empty store.
"""

from __future__ import annotations
import json
import math
import numbers
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple
from ..recognize.types import Embedding, MaskState


class JsonFileKV:
    """Key -> string store backed by a single JSON object on disk."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            print(f"[store] Unreadable store file {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _write_all(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=self.path.name, suffix=".tmp", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def get(self, key: str) -> Optional[str]:
        return self._read_all().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def delete(self, key: str) -> None:
        data = self._read_all()
        if data.pop(key, None) is not None:
            self._write_all(data)


@dataclass(frozen=True)
class EnrollmentData:
    no_mask: Tuple[Embedding, ...] = ()
    with_mask: Tuple[Embedding, ...] = ()

    def samples(self, mask_state: MaskState) -> Tuple[Embedding, ...]:
        return self.with_mask if mask_state is MaskState.WITH_MASK else self.no_mask

    def with_sample(self, mask_state: MaskState, embedding: Embedding) -> "EnrollmentData":
        if mask_state is MaskState.WITH_MASK:
            return EnrollmentData(self.no_mask, self.with_mask + (embedding,))
        return EnrollmentData(self.no_mask + (embedding,), self.with_mask)

    @property
    def total(self) -> int:
        return len(self.no_mask) + len(self.with_mask)

    @property
    def is_empty(self) -> bool:
        return self.total == 0

    def to_dict(self) -> dict:
        return {
            MaskState.NO_MASK.value: [list(e) for e in self.no_mask],
            MaskState.WITH_MASK.value: [list(e) for e in self.with_mask],
        }


def _as_embedding(values: Iterable, dim: Optional[int]) -> Embedding:
    if isinstance(values, (str, bytes, dict)):
        raise ValueError("embedding must be a sequence of numbers")
    out = []
    for v in values:
        if isinstance(v, bool) or not isinstance(v, numbers.Real):
            raise ValueError(f"non-numeric embedding value: {v!r}")
        f = float(v)
        if not math.isfinite(f):
            raise ValueError("embedding value is not finite")
        out.append(f)
    if not out:
        raise ValueError("empty embedding")
    if dim is not None and len(out) != dim:
        raise ValueError(f"embedding length {len(out)} != {dim}")
    return tuple(out)


def parse_enrollment(raw: Optional[str], dim: Optional[int] = None) -> EnrollmentData:
    """Parse a persisted record. Raises ValueError/TypeError on malformed content."""
    if raw is None:
        return EnrollmentData()
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("enrollment record must be an object")

    parts = {}
    for state in MaskState:
        seq = data.get(state.value, [])
        if not isinstance(seq, list):
            raise ValueError(f"'{state.value}' must be a list")
        parts[state] = tuple(_as_embedding(e, dim) for e in seq)
    return EnrollmentData(no_mask=parts[MaskState.NO_MASK], with_mask=parts[MaskState.WITH_MASK])


class EnrollmentStore:
    """Loads, appends to and saves the owner's enrollment record."""

    def __init__(self, kv: JsonFileKV, key: str = "registeredFaces", embedding_dim: Optional[int] = None):
        self.kv = kv
        self.key = key
        self.embedding_dim = embedding_dim

    def load(self) -> EnrollmentData:
        try:
            return parse_enrollment(self.kv.get(self.key), self.embedding_dim)
        except (TypeError, ValueError) as e:
            print(f"[store] Malformed enrollment record, starting empty: {e}")
            return EnrollmentData()

    def save(self, data: EnrollmentData) -> None:
        self.kv.set(self.key, json.dumps(data.to_dict()))

    def append(self, mask_state: MaskState, embedding: Iterable) -> EnrollmentData:
        emb = _as_embedding(embedding, self.embedding_dim)
        data = self.load().with_sample(mask_state, emb)
        self.save(data)
        return data

    def clear(self) -> EnrollmentData:
        self.kv.delete(self.key)
        return EnrollmentData()
