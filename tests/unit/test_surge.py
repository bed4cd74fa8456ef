from datetime import UTC, datetime, time
from zoneinfo import ZoneInfo

import pytest

from esg_lite.config.settings import Settings
from esg_lite.queue.models import JobPriority
from esg_lite.queue.surge import SurgeSchedule, SurgeWindow

MOSCOW = ZoneInfo("Europe/Moscow")


class TestSurgeWindow:
    def test_parse(self) -> None:
        assert SurgeWindow.parse("09:00-11:30") == SurgeWindow(time(9, 0), time(11, 30))

    def test_parse_rejects_garbage(self) -> None:
        with pytest.raises(ValueError, match="HH:MM-HH:MM"):
            SurgeWindow.parse("morning")

    def test_contains_is_end_exclusive(self) -> None:
        window = SurgeWindow(time(9, 0), time(11, 0))
        assert window.contains(time(9, 0))
        assert window.contains(time(10, 59))
        assert not window.contains(time(11, 0))

    def test_window_wrapping_midnight(self) -> None:
        window = SurgeWindow(time(23, 0), time(1, 0))
        assert window.contains(time(23, 30))
        assert window.contains(time(0, 30))
        assert not window.contains(time(12, 0))


class TestSurgeSchedule:
    def test_uses_local_time(self) -> None:
        schedule = SurgeSchedule([SurgeWindow(time(9, 0), time(11, 0))], MOSCOW)
        # 07:00 UTC is 10:00 in Moscow
        assert schedule.is_surge(datetime(2024, 3, 1, 7, 0, tzinfo=UTC))
        assert not schedule.is_surge(datetime(2024, 3, 1, 9, 0, tzinfo=UTC))

    def test_priority_for(self) -> None:
        schedule = SurgeSchedule([SurgeWindow(time(9, 0), time(11, 0))], MOSCOW)
        assert schedule.priority_for(datetime(2024, 3, 1, 7, 0, tzinfo=UTC)) is JobPriority.HIGH
        assert schedule.priority_for(datetime(2024, 3, 1, 12, 0, tzinfo=UTC)) is JobPriority.NORMAL

    def test_no_windows_never_surges(self) -> None:
        schedule = SurgeSchedule.from_settings(Settings(surge_windows=[]))
        assert schedule.priority_for() is JobPriority.NORMAL

    def test_from_settings(self) -> None:
        schedule = SurgeSchedule.from_settings(
            Settings(surge_windows=["00:00-23:59"], timezone="UTC")
        )
        assert schedule.is_surge(datetime(2024, 3, 1, 12, 0, tzinfo=UTC))
