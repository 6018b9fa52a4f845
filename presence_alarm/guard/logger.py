import time
from pathlib import Path
from typing import Optional


class ActivityLogger:
    """
    Appends security-relevant events (enrollments, arming, alarms,
    owner leaving/returning) to a text file, one timestamped line each.
    """
    def __init__(self, log_file_path: str = "data/alarm_activity.txt", echo: bool = True):
        self.log_file_path = Path(log_file_path)
        self.echo = bool(echo)
        self._last_owner_absent: Optional[bool] = None

    def log_activity(self, actor: str, activity: str):
        """Log an activity with timestamp to the file."""
        timestamp = time.strftime("%Y-%m-%d %H:%M:%S")
        log_entry = f"[{timestamp}] {actor}: {activity}\n"

        try:
            self.log_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.log_file_path, 'a', encoding='utf-8') as f:
                f.write(log_entry)
        except OSError as e:
            print(f"[ActivityLogger] Error writing to log: {e}")

        if self.echo:
            print(f"[Activity Log] {actor}: {activity}")

    def log_enrollment(self, mask_state_name: str, total: int):
        self.log_activity("owner", f"enrolled ({mask_state_name}), total samples {total}")

    def log_alarm(self, event_type: str):
        self.log_activity("alarm", f"fired on {event_type} while owner absent")

    def log_presence_change(self, owner_absent: bool):
        """Log only transitions, never the steady state."""
        if self._last_owner_absent is None:
            self._last_owner_absent = owner_absent
            return
        if owner_absent == self._last_owner_absent:
            return
        self._last_owner_absent = owner_absent
        if owner_absent:
            self.log_activity("owner", "left camera")
        else:
            self.log_activity("owner", "returned to camera")
