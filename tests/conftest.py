"""
Shared pytest fixtures and fakes for presence alarm tests.
"""
from typing import List, Optional

import numpy as np
import pytest

from presence_alarm.errors import AudioError
from presence_alarm.guard.store import EnrollmentStore, JsonFileKV
from presence_alarm.recognize.types import Detection

DIM = 128


def unit(axis: int = 0, dim: int = DIM) -> np.ndarray:
    v = np.zeros(dim, dtype=np.float32)
    v[axis] = 1.0
    return v


def at_distance(base: np.ndarray, distance: float, axis: int = 1) -> np.ndarray:
    """A vector exactly `distance` away from `base` along an orthogonal axis."""
    v = base.astype(np.float32).copy()
    v[axis] += distance
    return v


def det(vector, bbox=(10, 10, 60, 60)) -> Detection:
    return Detection.from_vector(vector, bbox=bbox)


class FakeDisplay:
    def __init__(self):
        self.status = ""
        self.status_alarm = False
        self.notices: List[str] = []
        self.alert_visible = False
        self.overlay_shows = 0
        self.renders = 0
        self.rendered: List[str] = []
        self.pumps = 0
        self.on_pump = None

    def set_status(self, text, alarm=False):
        self.status = text
        self.status_alarm = alarm

    def append_status(self, text):
        self.status += text

    def notify(self, text):
        self.notices.append(text)

    def show_alert_overlay(self):
        self.alert_visible = True
        self.overlay_shows += 1

    def hide_alert_overlay(self):
        self.alert_visible = False

    def render(self, frame, detections=()):
        self.renders += 1
        self.rendered.append(self.status)

    def pump(self):
        self.pumps += 1
        if self.on_pump:
            self.on_pump()
        return 0


class FakeSound:
    def __init__(self, fail_play: bool = False):
        self.fail_play = fail_play
        self.volume = 1.0
        self.calls: List[str] = []
        self.volumes_at_play: List[float] = []

    def rewind(self):
        self.calls.append("rewind")

    def play(self):
        self.calls.append("play")
        self.volumes_at_play.append(self.volume)
        if self.fail_play:
            raise AudioError("blocked", "Alert sound playback failed.")

    def pause(self):
        self.calls.append("pause")


class FakeEngine:
    def __init__(self, results: Optional[list] = None):
        self.results = list(results or [])
        self.calls = 0

    async def detect(self, frame):
        self.calls += 1
        if not self.results:
            return []
        r = self.results.pop(0)
        if isinstance(r, Exception):
            raise r
        return r


class FakeCamera:
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.reads = 0

    def read(self):
        self.reads += 1
        if self.error:
            raise self.error
        return np.zeros((48, 64, 3), dtype=np.uint8)


class Scheduler:
    """Collects call_later requests instead of running them."""

    def __init__(self):
        self.scheduled = []

    def __call__(self, delay, callback):
        self.scheduled.append((delay, callback))

    def run_all(self):
        for _, cb in self.scheduled:
            cb()


@pytest.fixture
def store(tmp_path):
    return EnrollmentStore(JsonFileKV(tmp_path / "db" / "store.json"), embedding_dim=DIM)


@pytest.fixture
def display():
    return FakeDisplay()


@pytest.fixture
def sound():
    return FakeSound()


@pytest.fixture
def scheduler():
    return Scheduler()
