"""Theme definitions and day/night decision."""

from dataclasses import dataclass
from enum import Enum
from datetime import datetime

from daybreak.sun_times import SunTimes


class Theme(Enum):
    """Windows UI themes."""

    LIGHT = "light"
    DARK = "dark"


@dataclass(frozen=True)
class ThemeDecision:
    """Theme wanted for a moment and whether that moment is daytime."""

    theme: Theme
    is_daytime: bool


def decide_theme(now: datetime, sun_times: SunTimes) -> ThemeDecision:
    """
    Determine the theme for the current time.

    Daytime is the half-open interval [sunrise, sunset).

    Args:
        now: Current datetime (timezone-aware)
        sun_times: Today's sunrise and sunset

    Returns:
        ThemeDecision with the desired theme
    """
    is_daytime = sun_times.sunrise <= now < sun_times.sunset
    return ThemeDecision(
        theme=Theme.LIGHT if is_daytime else Theme.DARK,
        is_daytime=is_daytime,
    )
