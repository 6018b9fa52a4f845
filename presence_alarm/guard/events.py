import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

KEYDOWN = "keydown"
MOUSEMOVE = "mousemove"
CLICK = "click"
VISIBILITY_CHANGE = "visibilitychange"

INPUT_EVENT_TYPES = (KEYDOWN, MOUSEMOVE, CLICK)


@dataclass(frozen=True)
class InputEvent:
    type: str
    key: Optional[int] = None
    x: Optional[int] = None
    y: Optional[int] = None
    visible: Optional[bool] = None
    timestamp: float = field(default_factory=time.time)


Listener = Callable[[InputEvent], None]


class InputDispatcher:
    """
    Delivers window input events to registered listeners.
    Adding the same listener twice for one event type is a no-op, so a
    physical event never reaches a handler more than once.
    """
    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = {}

    def add_listener(self, event_type: str, listener: Listener) -> bool:
        listeners = self._listeners.setdefault(event_type, [])
        if listener in listeners:
            return False
        listeners.append(listener)
        return True

    def remove_listener(self, event_type: str, listener: Listener) -> bool:
        listeners = self._listeners.get(event_type, [])
        if listener not in listeners:
            return False
        listeners.remove(listener)
        return True

    def listeners(self, event_type: str) -> List[Listener]:
        return list(self._listeners.get(event_type, []))

    def dispatch(self, event: InputEvent) -> int:
        handlers = self.listeners(event.type)
        for handler in handlers:
            handler(event)
        return len(handlers)
