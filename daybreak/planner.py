"""Next transition planning."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from daybreak.sun_times import SunTimes


logger = logging.getLogger(__name__)

LABEL_SUNSET = "switch to Dark at sunset"
LABEL_SUNRISE = "switch to Light at sunrise"
LABEL_SUNRISE_TOMORROW = "switch to Light at sunrise (tomorrow)"


@dataclass(frozen=True)
class Transition:
    """When the next run should fire and what it will do."""

    trigger: datetime
    label: str


def plan_next_transition(
    now: datetime,
    sun_times: SunTimes,
    fetch_tomorrow: Callable[[], SunTimes]
) -> Transition:
    """
    Calculate when the next theme transition occurs.

    Args:
        now: Current datetime (timezone-aware)
        sun_times: Today's sunrise and sunset
        fetch_tomorrow: Returns tomorrow's SunTimes; only called after sunset

    Returns:
        Transition for the next sunrise or sunset

    Raises:
        DataUnavailable: If tomorrow's sun times are needed and cannot be fetched
    """
    sunrise = sun_times.sunrise
    sunset = sun_times.sunset

    if sunrise <= now < sunset:
        # Day → wait for sunset
        return Transition(sunset, LABEL_SUNSET)
    elif now < sunrise:
        # Night before sunrise → wait for sunrise
        return Transition(sunrise, LABEL_SUNRISE)
    else:
        # Night after sunset → wait for tomorrow's sunrise
        logger.debug("Past sunset, looking up tomorrow's sunrise")
        tomorrow_sun = fetch_tomorrow()
        return Transition(tomorrow_sun.sunrise, LABEL_SUNRISE_TOMORROW)
