from dataclasses import dataclass
from datetime import UTC, datetime, time
from zoneinfo import ZoneInfo

from esg_lite.config.settings import Settings
from esg_lite.queue.models import JobPriority


@dataclass(frozen=True)
class SurgeWindow:
    start: time
    end: time

    def contains(self, moment: time) -> bool:
        if self.start <= self.end:
            return self.start <= moment < self.end
        # wraps midnight
        return moment >= self.start or moment < self.end

    @classmethod
    def parse(cls, raw: str) -> "SurgeWindow":
        """Parse ``HH:MM-HH:MM``."""
        try:
            start_raw, end_raw = raw.split("-", 1)
            return cls(
                start=time.fromisoformat(start_raw.strip()),
                end=time.fromisoformat(end_raw.strip()),
            )
        except ValueError as exc:
            raise ValueError(f"Invalid surge window '{raw}', expected HH:MM-HH:MM") from exc


class SurgeSchedule:
    """Local-time windows during which OCR submissions get high priority."""

    def __init__(self, windows: list[SurgeWindow], tz: ZoneInfo) -> None:
        self._windows = windows
        self._tz = tz

    @classmethod
    def from_settings(cls, settings: Settings) -> "SurgeSchedule":
        return cls(
            windows=[SurgeWindow.parse(raw) for raw in settings.surge_windows],
            tz=ZoneInfo(settings.timezone),
        )

    def is_surge(self, now: datetime | None = None) -> bool:
        moment = (now or datetime.now(UTC)).astimezone(self._tz).time()
        return any(window.contains(moment) for window in self._windows)

    def priority_for(self, now: datetime | None = None) -> JobPriority:
        return JobPriority.HIGH if self.is_surge(now) else JobPriority.NORMAL
