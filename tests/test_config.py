"""Tests for configuration loading."""


import pytest

from daybreak import config as config_module
from daybreak.config import Config, create_default_config


def write(tmp_path, text):
    path = tmp_path / "config.yaml"
    path.write_text(text)
    return path


MINIMAL = """
location:
  latitude: 48.8566
  longitude: 2.3522
  timezone: "Europe/Paris"
task:
  script: C:\\Tools\\daybreak.exe
"""


def test_load_minimal_uses_defaults(tmp_path):
    config = Config.load(write(tmp_path, MINIMAL))

    assert config.latitude == 48.8566
    assert config.longitude == 2.3522
    assert config.timezone == "Europe/Paris"
    assert config.source == "api"
    assert config.request_timeout == 10
    assert config.task_name == "Daybreak"
    assert config.task_path == "\\Daybreak\\"
    assert config.script_path == "C:\\Tools\\daybreak.exe"
    assert config.force_explorer_restart is False
    assert config.task_full_name == "\\Daybreak\\Daybreak"
    assert config.logon_task_full_name == "\\Daybreak\\Daybreak Logon"


def test_load_full(tmp_path):
    config = Config.load(write(tmp_path, f"""
location:
  latitude: -33.87
  longitude: 151.21
  timezone: "Australia/Sydney"
task:
  name: ThemeSwitch
  path: Personal
  script: C:\\Tools\\daybreak.exe
settings:
  source: astral
  request_timeout: 4.5
  force_explorer_restart: true
  log_path: {tmp_path / "logs" / "run.log"}
"""))

    assert config.source == "astral"
    assert config.request_timeout == 4.5
    assert config.task_full_name == "\\Personal\\ThemeSwitch"
    assert config.force_explorer_restart is True
    assert config.log_path == tmp_path / "logs" / "run.log"


def test_config_is_immutable(tmp_path):
    config = Config.load(write(tmp_path, MINIMAL))
    with pytest.raises(AttributeError):
        config.latitude = 0.0


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        Config.load(tmp_path / "absent.yaml")


def test_empty_file(tmp_path):
    with pytest.raises(ValueError, match="empty"):
        Config.load(write(tmp_path, ""))


def test_invalid_yaml(tmp_path):
    with pytest.raises(ValueError, match="YAML"):
        Config.load(write(tmp_path, "location: [unclosed"))


@pytest.mark.parametrize("location, message", [
    ({"longitude": 0, "timezone": "UTC"}, "location.latitude"),
    ({"latitude": 0, "timezone": "UTC"}, "location.longitude"),
    ({"latitude": 0, "longitude": 0}, "location.timezone"),
    ({"latitude": 91, "longitude": 0, "timezone": "UTC"}, "Latitude"),
    ({"latitude": 0, "longitude": -181, "timezone": "UTC"}, "Longitude"),
    ({"latitude": 0, "longitude": 0, "timezone": "Mars/Olympus"}, "Invalid timezone"),
    ({"latitude": "north", "longitude": 0, "timezone": "UTC"}, "numbers"),
])
def test_invalid_location(location, message):
    with pytest.raises(ValueError, match=message):
        Config.from_dict({"location": location, "task": {"script": "daybreak.exe"}})


@pytest.mark.parametrize("settings, message", [
    ({"source": "almanac"}, "Invalid source"),
    ({"request_timeout": 0}, "timeout"),
    ({"request_timeout": "soon"}, "timeout"),
])
def test_invalid_settings(settings, message):
    data = {
        "location": {"latitude": 0, "longitude": 0, "timezone": "UTC"},
        "task": {"script": "daybreak.exe"},
        "settings": settings,
    }
    with pytest.raises(ValueError, match=message):
        Config.from_dict(data)


def test_task_name_rejects_backslash():
    data = {
        "location": {"latitude": 0, "longitude": 0, "timezone": "UTC"},
        "task": {"name": "a\\b", "script": "daybreak.exe"},
    }
    with pytest.raises(ValueError, match="Task name"):
        Config.from_dict(data)


def test_default_script_path(monkeypatch):
    monkeypatch.setattr(config_module.shutil, 'which', lambda name: "C:\\Python\\Scripts\\daybreak.exe")
    config = Config.from_dict({"location": {"latitude": 0, "longitude": 0, "timezone": "UTC"}})
    assert config.script_path == "C:\\Python\\Scripts\\daybreak.exe"


def test_create_default_config_with_detected_location(tmp_path, monkeypatch):
    monkeypatch.setattr(config_module, 'get_location_from_ip', lambda: (40.71, -74.01, "America/New_York"))
    path = tmp_path / "nested" / "config.yaml"

    create_default_config(path)
    config = Config.load(path)

    assert (config.latitude, config.longitude) == (40.71, -74.01)
    assert config.timezone == "America/New_York"
    assert config.task_path == "\\Daybreak\\"


def test_create_default_config_falls_back(tmp_path, monkeypatch):
    def offline():
        raise OSError("network unreachable")

    monkeypatch.setattr(config_module, 'get_location_from_ip', offline)
    path = tmp_path / "config.yaml"

    create_default_config(path)

    assert Config.load(path).timezone == "Europe/London"


def test_top_level_must_be_mapping(tmp_path):
    with pytest.raises(ValueError, match="mapping"):
        Config.load(write(tmp_path, "- latitude: 1\n- longitude: 2\n"))


VALID_LOCATION = {"latitude": 0, "longitude": 0, "timezone": "UTC"}


@pytest.mark.parametrize("data, message", [
    ({"location": ["0", "0"]}, "Section 'location'"),
    ({"location": VALID_LOCATION, "task": "Daybreak"}, "Section 'task'"),
    ({"location": VALID_LOCATION, "settings": [1]}, "Section 'settings'"),
    ({"location": VALID_LOCATION, "task": {"name": 123}}, "task.name"),
    ({"location": VALID_LOCATION, "task": {"path": 7}}, "task.path"),
    ({"location": VALID_LOCATION, "task": {"script": ["daybreak.exe"]}}, "task.script"),
    ({"location": VALID_LOCATION, "settings": {"log_path": 5}}, "settings.log_path"),
    ({"location": VALID_LOCATION, "settings": {"api_url": 80}}, "settings.api_url"),
    ({"location": VALID_LOCATION, "settings": {"request_timeout": True}}, "timeout"),
])
def test_wrongly_typed_values(data, message):
    with pytest.raises(ValueError, match=message):
        Config.from_dict(data)
