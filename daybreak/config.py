"""Configuration loading and validation."""

import json
import logging
import os
import shutil
import sys
import urllib.request
import yaml
from pathlib import Path
from dataclasses import dataclass
from typing import Tuple
import pytz

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.sunrise-sunset.org/json"
SOURCES = ('api', 'astral')


@dataclass(frozen=True)
class Config:
    """Daybreak configuration. Built once per run and never mutated."""

    latitude: float
    longitude: float
    timezone: str
    source: str = "api"
    api_url: str = DEFAULT_API_URL
    request_timeout: float = 10.0

    # Task Scheduler settings
    task_name: str = "Daybreak"
    task_path: str = "\\Daybreak\\"
    script_path: str = ""

    log_path: Path = Path("daybreak.log")
    force_explorer_restart: bool = False

    @property
    def tz(self):
        """pytz timezone for the configured location."""
        return pytz.timezone(self.timezone)

    @classmethod
    def load(cls, config_path: Path) -> "Config":
        """
        Load and validate configuration from YAML file.

        Args:
            config_path: Path to configuration file

        Returns:
            Config instance

        Raises:
            ValueError: If configuration is invalid
            FileNotFoundError: If config file doesn't exist
        """
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path) as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ValueError(f"Configuration file is not valid YAML: {e}")

        if not data:
            raise ValueError("Configuration file is empty")

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        """Validate a parsed configuration mapping."""
        if not isinstance(data, dict):
            raise ValueError(f"Configuration must be a mapping, got: {type(data).__name__}")

        location = _section(data, 'location')
        latitude = location.get('latitude')
        longitude = location.get('longitude')
        timezone = location.get('timezone')

        if latitude is None:
            raise ValueError("Missing required field: location.latitude")
        if longitude is None:
            raise ValueError("Missing required field: location.longitude")
        if timezone is None:
            raise ValueError("Missing required field: location.timezone")

        try:
            latitude = float(latitude)
            longitude = float(longitude)
        except (TypeError, ValueError):
            raise ValueError(f"Coordinates must be numbers, got: {latitude}, {longitude}")

        # Validate ranges
        if not (-90 <= latitude <= 90):
            raise ValueError(f"Latitude must be between -90 and 90, got: {latitude}")
        if not (-180 <= longitude <= 180):
            raise ValueError(f"Longitude must be between -180 and 180, got: {longitude}")

        # Validate timezone
        if timezone not in pytz.all_timezones:
            raise ValueError(
                f"Invalid timezone: {timezone}. "
                f"Must be a valid IANA timezone (e.g., 'Europe/London', 'America/New_York')"
            )

        # Optional settings
        settings = _section(data, 'settings')

        source = settings.get('source', 'api')
        if source not in SOURCES:
            raise ValueError(f"Invalid source: {source}. Must be 'api' or 'astral'")

        request_timeout = settings.get('request_timeout', 10)
        if (isinstance(request_timeout, bool)
                or not isinstance(request_timeout, (int, float))
                or request_timeout <= 0):
            raise ValueError(f"Request timeout must be a positive number, got: {request_timeout}")

        task = _section(data, 'task')
        task_name = _string(task, 'name', 'task', 'Daybreak')
        if not task_name or '\\' in task_name:
            raise ValueError(f"Task name must be non-empty and contain no backslashes, got: {task_name!r}")

        task_path = _string(task, 'path', 'task', '\\Daybreak\\')
        if not task_path.startswith('\\'):
            task_path = '\\' + task_path
        if not task_path.endswith('\\'):
            task_path = task_path + '\\'

        script_path = _string(task, 'script', 'task') or get_default_script_path()
        script_path = os.path.expanduser(os.path.expandvars(script_path))

        log_str = _string(settings, 'log_path', 'settings')
        if log_str:
            log_path = Path(os.path.expanduser(os.path.expandvars(log_str)))
        else:
            log_path = get_default_log_path()

        return cls(
            latitude=latitude,
            longitude=longitude,
            timezone=timezone,
            source=source,
            api_url=_string(settings, 'api_url', 'settings', DEFAULT_API_URL),
            request_timeout=float(request_timeout),
            task_name=task_name,
            task_path=task_path,
            script_path=script_path,
            log_path=log_path,
            force_explorer_restart=bool(settings.get('force_explorer_restart', False)),
        )

    @property
    def task_full_name(self) -> str:
        """Fully qualified name of the one-shot task."""
        return f"{self.task_path}{self.task_name}"

    @property
    def logon_task_full_name(self) -> str:
        """Fully qualified name of the logon task."""
        return f"{self.task_path}{self.task_name} Logon"


def _section(data: dict, name: str) -> dict:
    """Get an optional top-level mapping, rejecting any other type."""
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"Section '{name}' must be a mapping, got: {type(section).__name__}")
    return section


def _string(section: dict, key: str, section_name: str, default: str = None) -> str:
    """Get an optional string setting, rejecting any other type."""
    value = section.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise ValueError(f"{section_name}.{key} must be a string, got: {value!r}")
    return value


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    appdata = os.environ.get('APPDATA', os.path.expanduser('~/AppData/Roaming'))
    return Path(appdata) / 'daybreak' / 'config.yaml'


def get_default_log_path() -> Path:
    """Get the default log file path."""
    local_appdata = os.environ.get('LOCALAPPDATA', os.path.expanduser('~/AppData/Local'))
    return Path(local_appdata) / 'Daybreak' / 'daybreak.log'


def get_default_script_path() -> str:
    """Locate the program the scheduled tasks should start."""
    found = shutil.which('daybreak')
    if found:
        return found
    return str(Path(sys.argv[0]).resolve())


def get_location_from_ip() -> Tuple[float, float, str]:
    """Detect user's location via IP geolocation.

    Returns:
        Tuple of (latitude, longitude, timezone)

    Raises:
        Exception: If geolocation fails
    """
    url = "http://ip-api.com/json/?fields=lat,lon,timezone"
    with urllib.request.urlopen(url, timeout=5) as response:
        data = json.loads(response.read().decode())
        return data['lat'], data['lon'], data['timezone']


def create_default_config(config_path: Path) -> None:
    """Create a default configuration template file.

    Args:
        config_path: Path where the config file should be created
    """
    config_path.parent.mkdir(parents=True, exist_ok=True)

    # Try to detect location automatically
    try:
        lat, lon, tz = get_location_from_ip()
        logger.info(f"Detected location: {lat}, {lon}, {tz}")
    except Exception as e:
        logger.warning(f"Could not detect location: {e}, using defaults")
        lat, lon, tz = 51.5074, -0.1278, "Europe/London"

    template = f"""# Daybreak configuration

location:
  latitude: {lat}
  longitude: {lon}
  timezone: "{tz}"

task:
  name: Daybreak          # Task Scheduler task name
  path: "\\\\Daybreak\\\\"      # Task Scheduler folder
  # script: C:\\path\\to\\daybreak.exe   # Program the tasks run (default: installed daybreak)

settings:
  source: api                     # 'api' (sunrise-sunset.org) or 'astral' (offline)
  request_timeout: 10             # Sun data request timeout (seconds)
  force_explorer_restart: false   # Restart explorer.exe if the theme broadcast fails
  # log_path: ~/daybreak.log      # Log file (default: %LOCALAPPDATA%\\Daybreak\\daybreak.log)
"""

    config_path.write_text(template)
