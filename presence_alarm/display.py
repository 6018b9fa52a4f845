"""
OpenCV window used as the monitoring surface.

Renders the live frame with detection boxes, the status line, transient
notices and the alert overlay. The same window is the input surface:
pump() runs cv2.waitKey and forwards key presses, mouse moves/clicks and
visibility flips to the InputDispatcher.
"""

from __future__ import annotations
import time
from typing import Callable, List, Optional, Sequence
import cv2
import numpy as np
from .guard.events import CLICK, KEYDOWN, MOUSEMOVE, VISIBILITY_CHANGE, InputDispatcher, InputEvent
from .recognize.types import Detection

ALERT_OVERLAY_TEXT = "INTRUSION ALERT"


def _put_text(img: np.ndarray, text: str, xy, scale: float, color, thickness: int = 2):
    # black shadow for readability
    cv2.putText(img, text, xy, cv2.FONT_HERSHEY_SIMPLEX, scale, (0, 0, 0), thickness + 2, cv2.LINE_AA)
    cv2.putText(img, text, xy, cv2.FONT_HERSHEY_SIMPLEX, scale, color, thickness, cv2.LINE_AA)


class Cv2Display:
    def __init__(
        self,
        dispatcher: InputDispatcher,
        window_name: str = "presence_alarm",
        notice_s: float = 2.5,
        clock: Callable[[], float] = time.time,
    ):
        self.dispatcher = dispatcher
        self.window_name = window_name
        self.notice_s = float(notice_s)
        self.clock = clock

        self.status_text = ""
        self.status_alarm = False
        self.notice_text = ""
        self.notice_until = 0.0
        self.alert_visible = False

        self._last_frame: Optional[np.ndarray] = None
        self._visible: Optional[bool] = None
        self._pending: List[InputEvent] = []
        self._opened = False

    # -------------------------
    # Status surface
    # -------------------------

    def set_status(self, text: str, alarm: bool = False):
        self.status_text = text
        self.status_alarm = bool(alarm)

    def append_status(self, text: str):
        self.status_text += text

    def notify(self, text: str):
        print(f"[notice] {text}")
        self.notice_text = text
        self.notice_until = self.clock() + self.notice_s

    def show_alert_overlay(self):
        self.alert_visible = True

    def hide_alert_overlay(self):
        self.alert_visible = False

    # -------------------------
    # Window
    # -------------------------

    def open(self):
        cv2.namedWindow(self.window_name, cv2.WINDOW_NORMAL)
        cv2.setMouseCallback(self.window_name, self._on_mouse)
        self._opened = True

    def close(self):
        if self._opened:
            cv2.destroyWindow(self.window_name)
            self._opened = False

    def _on_mouse(self, event, x, y, flags, param):
        # only queue here; events are dispatched from pump()
        if event == cv2.EVENT_MOUSEMOVE:
            self._pending.append(InputEvent(MOUSEMOVE, x=int(x), y=int(y)))
        elif event == cv2.EVENT_LBUTTONDOWN:
            self._pending.append(InputEvent(CLICK, x=int(x), y=int(y)))

    def compose(self, frame: Optional[np.ndarray], detections: Sequence[Detection] = ()) -> np.ndarray:
        if frame is None:
            frame = self._last_frame if self._last_frame is not None else np.zeros((480, 640, 3), dtype=np.uint8)
        else:
            self._last_frame = frame
        vis = frame.copy()
        h, w = vis.shape[:2]

        for det in detections:
            x1, y1, x2, y2 = det.bbox
            cv2.rectangle(vis, (x1, y1), (x2, y2), (255, 200, 0), 2)

        if self.status_alarm:
            _put_text(vis, self.status_text, (10, 40), 1.0, (0, 0, 255), 3)
        else:
            _put_text(vis, self.status_text, (10, 30), 0.62, (255, 255, 255), 2)

        if self.notice_text and self.clock() < self.notice_until:
            _put_text(vis, self.notice_text, (10, h - 20), 0.62, (0, 200, 255), 2)

        if self.alert_visible:
            red = np.zeros_like(vis)
            red[:, :] = (0, 0, 255)
            vis = cv2.addWeighted(vis, 0.35, red, 0.65, 0.0)
            (tw, th), _ = cv2.getTextSize(ALERT_OVERLAY_TEXT, cv2.FONT_HERSHEY_SIMPLEX, 1.6, 4)
            _put_text(vis, ALERT_OVERLAY_TEXT, (max(0, (w - tw) // 2), (h + th) // 2), 1.6, (255, 255, 255), 4)
        return vis

    def render(self, frame: Optional[np.ndarray], detections: Sequence[Detection] = ()):
        if not self._opened:
            self.open()
        cv2.imshow(self.window_name, self.compose(frame, detections))

    def _window_visible(self) -> bool:
        try:
            return cv2.getWindowProperty(self.window_name, cv2.WND_PROP_VISIBLE) >= 1
        except cv2.error:
            return False

    def pump(self) -> int:
        """Runs the GUI event loop once and dispatches what it produced."""
        key = cv2.waitKey(1)

        events: List[InputEvent] = []
        visible = self._window_visible()
        if self._visible is None:
            self._visible = visible
        elif visible != self._visible:
            self._visible = visible
            if visible:
                # imshow re-creates a closed window without our mouse callback
                self.open()
            events.append(InputEvent(VISIBILITY_CHANGE, visible=visible))

        events.extend(self._pending)
        self._pending = []
        if key != -1:
            events.append(InputEvent(KEYDOWN, key=key & 0xFF))

        for event in events:
            self.dispatcher.dispatch(event)
        return len(events)
