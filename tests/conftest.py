"""Shared fixtures for Daybreak tests."""

from datetime import datetime, timedelta

import pytest
import pytz

from daybreak.config import Config
from daybreak.errors import ApplyFailure
from daybreak.sun_times import SunTimes


TZ = pytz.timezone("Europe/Berlin")
DAY = datetime(2026, 6, 1)


def at(hour: int, minute: int = 0, days: int = 0) -> datetime:
    """Aware datetime on the test day (plus `days`) in the test timezone."""
    return TZ.localize(DAY.replace(hour=hour, minute=minute) + timedelta(days=days))


@pytest.fixture
def config(tmp_path):
    return Config(
        latitude=52.52,
        longitude=13.405,
        timezone="Europe/Berlin",
        script_path=r"C:\Program Files\Daybreak\daybreak.exe",
        log_path=tmp_path / "daybreak.log",
    )


@pytest.fixture
def today():
    return SunTimes(sunrise=at(6), sunset=at(20))


class FakeOracle:
    """Sun time source returning canned results per date."""

    def __init__(self, results):
        self.results = results
        self.requested = []

    def get_sun_times(self, day):
        self.requested.append(day)
        result = self.results[day]
        if isinstance(result, Exception):
            raise result
        return result


class FakeApplier:
    def __init__(self, current=None, fail=False):
        self.current = current
        self.fail = fail
        self.applied = []

    def current_theme(self):
        return self.current

    def apply(self, theme):
        if self.fail:
            raise ApplyFailure("registry is read-only")
        self.applied.append(theme)


class FakeScheduler:
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def schedule_once(self, when):
        if self.fail:
            raise ApplyFailure("access denied")
        self.calls.append(('once', when))

    def schedule_at_logon(self):
        self.calls.append(('logon', None))
