import threading
from datetime import datetime
from zoneinfo import ZoneInfo

IST = ZoneInfo("Asia/Kolkata")


def ist(hour: int, minute: int, second: int = 0, day: int = 19) -> datetime:
    return datetime(2026, 10, day, hour, minute, second, tzinfo=IST)


class Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class RecordingNotifier:
    def __init__(self) -> None:
        self.sent = []
        self.fail_texts = set()
        self.fail_all = False
        self._lock = threading.Lock()

    def send(self, user_id: str, text: str) -> bool:
        with self._lock:
            self.sent.append((user_id, text))
        return not (self.fail_all or text in self.fail_texts)

    def close(self) -> None:
        pass
