from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path


@dataclass
class AlarmConfig:
    # persistence
    store_path: Path = Path("data/db/presence_store.json")
    store_key: str = "registeredFaces"
    activity_log_path: Path = Path("data/alarm_activity.txt")

    # face engine (dlib through face_recognition)
    detector_model: str = "hog"  # "cnn" is only usable live on a CUDA build of dlib
    detector_upsample: int = 1
    detector_scale: float = 0.5  # detect on a half-size frame, encode on the full one
    detector_min_size: int = 40
    encoder_model: str = "small"
    encoder_jitters: int = 1
    embedding_dim: int = 128
    max_faces: int = 5

    # camera
    camera_index: int = 0

    # matching / presence
    match_threshold: float = 0.58  # dlib descriptor distance; face_recognition's default tolerance is 0.6
    no_face_threshold: int = 10  # ~0.5 s at 20 Hz

    # loop / alarm
    cycle_delay_s: float = 0.05
    alert_overlay_s: float = 5.0
    alert_sound_path: Path = Path("assets/alert.wav")

    # UI
    window_name: str = "presence_alarm"
    notice_s: float = 2.5
    debug: bool = False
