"""Sunrise/sunset lookup for the configured location."""

import json
import logging
import urllib.parse
import urllib.request
from dataclasses import dataclass
from datetime import date, datetime

from astral import LocationInfo
from astral.sun import sun

from daybreak.config import Config
from daybreak.errors import DataUnavailable, NetworkFailure


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SunTimes:
    """Sunrise and sunset for one calendar date, timezone-aware."""

    sunrise: datetime
    sunset: datetime

    def __post_init__(self):
        if self.sunrise >= self.sunset:
            raise DataUnavailable(
                f"Sunrise {self.sunrise.isoformat()} is not before sunset {self.sunset.isoformat()}"
            )


class SunriseSunsetOracle:
    """Fetch sun times from the sunrise-sunset.org JSON API."""

    def __init__(self, config: Config):
        """
        Initialize the API client.

        Args:
            config: Configuration with location, API URL and request timeout
        """
        self.latitude = config.latitude
        self.longitude = config.longitude
        self.api_url = config.api_url
        self.timeout = config.request_timeout
        self.tz = config.tz

    def _build_url(self, day: date) -> str:
        query = urllib.parse.urlencode({
            'lat': self.latitude,
            'lng': self.longitude,
            'date': day.isoformat(),
            'formatted': 0,
        })
        return f"{self.api_url}?{query}"

    def _parse_instant(self, value: str) -> datetime:
        instant = datetime.fromisoformat(value)
        if instant.tzinfo is None:
            raise ValueError(f"timestamp without UTC offset: {value}")
        return instant.astimezone(self.tz)

    def get_sun_times(self, day: date) -> SunTimes:
        """
        Get sun times for a calendar date.

        Args:
            day: Date to look up

        Returns:
            SunTimes in the configured timezone

        Raises:
            NetworkFailure: Request failed, timed out, or returned a non-OK status
            DataUnavailable: The returned times are unusable (e.g. polar day)
        """
        url = self._build_url(day)
        logger.debug(f"Requesting sun times: {url}")

        try:
            with urllib.request.urlopen(url, timeout=self.timeout) as response:
                payload = json.loads(response.read().decode())
        except OSError as e:
            raise NetworkFailure(f"Sun data request failed for {day}: {e}") from e
        except ValueError as e:
            raise NetworkFailure(f"Sun data response for {day} is not valid JSON: {e}") from e

        status = payload.get('status') if isinstance(payload, dict) else None
        if status != 'OK':
            raise NetworkFailure(f"Sun data request for {day} returned status: {status}")

        try:
            results = payload['results']
            sunrise = self._parse_instant(results['sunrise'])
            sunset = self._parse_instant(results['sunset'])
        except (KeyError, TypeError, ValueError) as e:
            raise NetworkFailure(f"Malformed sun data response for {day}: {e}") from e

        return SunTimes(sunrise=sunrise, sunset=sunset)


class AstralOracle:
    """Calculate sun times locally using the astral library."""

    def __init__(self, config: Config):
        self.location = LocationInfo(
            latitude=config.latitude,
            longitude=config.longitude,
            timezone=config.timezone
        )
        self.tz = config.tz

    def get_sun_times(self, day: date) -> SunTimes:
        """Get sun times for a calendar date without network access."""
        try:
            sun_times = sun(self.location.observer, date=day, tzinfo=self.tz)
        except ValueError as e:
            # Polar regions where sun doesn't rise/set
            raise DataUnavailable(f"Sun calculation failed for {day} (polar region?): {e}") from e

        return SunTimes(sunrise=sun_times['sunrise'], sunset=sun_times['sunset'])


def create_oracle(config: Config):
    """Build the sun time source selected in the configuration."""
    if config.source == 'astral':
        return AstralOracle(config)
    return SunriseSunsetOracle(config)
