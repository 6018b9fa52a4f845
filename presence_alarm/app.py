"""
Presence alarm: arms the device so that keyboard or mouse input on the
monitoring window raises an alarm whenever the enrolled owner's face is
not in front of the camera.

Run:
python -m presence_alarm

Keys before monitoring starts:
n : enroll the face in view (no mask)
m : enroll the face in view (with mask)
s : start monitoring (needs at least one enrollment)
c : clear all enrollments
q : quit

Once monitoring has started there is no stop key: every key press,
mouse move or click on the window is checked against the owner's
presence. Close the process from the terminal.
"""

from __future__ import annotations
import argparse
import asyncio
from pathlib import Path
from typing import Optional
from .audio import AlertSound
from .camera import Camera
from .config import AlarmConfig
from .display import Cv2Display
from .errors import CameraError, EngineError
from .guard.alarm import AlarmGate
from .guard.enrollment import Enrollment
from .guard.events import KEYDOWN, InputDispatcher, InputEvent
from .guard.logger import ActivityLogger
from .guard.monitor import MonitoringLoop
from .guard.presence import MonitoringSession, PresenceClassifier
from .guard.store import EnrollmentStore, JsonFileKV
from .recognize.detector import DETECTOR_MODELS, DlibFaceLocator
from .recognize.embedder import DlibFaceEncoder
from .recognize.engine import FaceEngine
from .recognize.types import MaskState

SETUP_FRAME_DELAY_S = 0.03
SETUP_KEYS = {
    ord("n"): "enroll_no_mask",
    ord("m"): "enroll_mask",
    ord("s"): "start",
    ord("c"): "clear",
    ord("q"): "quit",
}


class PresenceAlarmApp:
    def __init__(self, cfg: AlarmConfig):
        self.cfg = cfg
        self.dispatcher = InputDispatcher()
        self.display = Cv2Display(self.dispatcher, window_name=cfg.window_name, notice_s=cfg.notice_s)
        self.logger = ActivityLogger(str(cfg.activity_log_path), echo=cfg.debug)
        self.session = MonitoringSession()
        self.camera = Camera(cfg.camera_index)
        self.engine = FaceEngine(
            loader=self._load_models,
            max_faces=cfg.max_faces,
            embedding_dim=cfg.embedding_dim,
            debug=cfg.debug,
        )
        store = EnrollmentStore(JsonFileKV(cfg.store_path), key=cfg.store_key, embedding_dim=cfg.embedding_dim)
        self.enrollment = Enrollment(store, self.engine, self.display, cfg.match_threshold, self.logger)
        self.sound = AlertSound(cfg.alert_sound_path)
        self.gate = AlarmGate(
            self.session,
            self.display,
            self.sound,
            logger=self.logger,
            overlay_seconds=cfg.alert_overlay_s,
            debug=cfg.debug,
        )
        self.monitor = MonitoringLoop(
            camera=self.camera,
            engine=self.engine,
            enrollment=self.enrollment,
            session=self.session,
            classifier=PresenceClassifier(cfg.match_threshold, cfg.no_face_threshold),
            gate=self.gate,
            display=self.display,
            dispatcher=self.dispatcher,
            logger=self.logger,
            cycle_delay=cfg.cycle_delay_s,
            debug=cfg.debug,
        )
        self._action: Optional[str] = None

    def _load_models(self):
        detector = DlibFaceLocator(
            model=self.cfg.detector_model,
            upsample=self.cfg.detector_upsample,
            scale=self.cfg.detector_scale,
            min_size=self.cfg.detector_min_size,
            debug=self.cfg.debug,
        )
        embedder = DlibFaceEncoder(
            num_jitters=self.cfg.encoder_jitters,
            model=self.cfg.encoder_model,
            debug=self.cfg.debug,
        )
        return detector, embedder

    def _on_setup_key(self, event: InputEvent):
        action = SETUP_KEYS.get(event.key)
        if action:
            self._action = action

    async def _init(self):
        self.display.set_status("Loading models...")
        self.display.render(None)
        self.display.pump()
        try:
            await self.engine.load()
            self.display.set_status("Models loaded. Please enroll.")
        except EngineError as e:
            print(f"[app] {e}")
            self.display.set_status(e.user_message)

        try:
            self.camera.open()
        except CameraError as e:
            print(f"[app] {e}")
            self.display.set_status(e.user_message)

        self.enrollment.reload()

    async def _setup_phase(self) -> bool:
        """Live preview with enroll/start actions. True once monitoring started."""
        self.dispatcher.add_listener(KEYDOWN, self._on_setup_key)
        while True:
            frame = None
            try:
                frame = self.camera.read()
            except CameraError as e:
                if self.cfg.debug:
                    print(f"[app] {e}")

            self.display.render(frame)
            self.display.pump()

            action, self._action = self._action, None
            if action == "quit":
                return False
            if action == "enroll_no_mask":
                await self.enrollment.enroll(frame, MaskState.NO_MASK)
            elif action == "enroll_mask":
                await self.enrollment.enroll(frame, MaskState.WITH_MASK)
            elif action == "clear":
                self.enrollment.clear()
            elif action == "start":
                if self.monitor.start():
                    self.dispatcher.remove_listener(KEYDOWN, self._on_setup_key)
                    return True

            await asyncio.sleep(SETUP_FRAME_DELAY_S)

    async def run(self):
        try:
            await self._init()
            if await self._setup_phase():
                await self.monitor.run()
        finally:
            self.camera.release()
            self.sound.close()
            self.display.close()


def build_parser() -> argparse.ArgumentParser:
    d = AlarmConfig()
    parser = argparse.ArgumentParser(description="Face-presence intrusion alarm for a single device owner")
    parser.add_argument("--camera", type=int, default=d.camera_index, help="Webcam index")
    parser.add_argument("--store", type=Path, default=d.store_path, help="Enrollment store (JSON file)")
    parser.add_argument("--sound", type=Path, default=d.alert_sound_path, help="Alert sound (16-bit WAV)")
    parser.add_argument("--detector", choices=DETECTOR_MODELS, default=d.detector_model, help="dlib face detector")
    parser.add_argument("--upsample", type=int, default=d.detector_upsample, help="Detector upsampling passes")
    parser.add_argument("--jitters", type=int, default=d.encoder_jitters, help="Re-samples per face descriptor")
    parser.add_argument("--threshold", type=float, default=d.match_threshold, help="Euclidean match threshold")
    parser.add_argument("--log", type=Path, default=d.activity_log_path, help="Activity log file")
    parser.add_argument("--debug", action="store_true", help="Verbose console output")
    return parser


def config_from_args(args: argparse.Namespace) -> AlarmConfig:
    return AlarmConfig(
        store_path=args.store,
        activity_log_path=args.log,
        detector_model=args.detector,
        detector_upsample=args.upsample,
        encoder_jitters=args.jitters,
        camera_index=args.camera,
        match_threshold=args.threshold,
        alert_sound_path=args.sound,
        debug=args.debug,
    )


def main(argv=None) -> None:
    args = build_parser().parse_args(argv)
    app = PresenceAlarmApp(config_from_args(args))
    try:
        asyncio.run(app.run())
    except KeyboardInterrupt:
        print("\n[app] interrupted")


if __name__ == "__main__":
    main()
