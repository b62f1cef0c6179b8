"""Exceptions raised by Daybreak collaborators."""


class DaybreakError(Exception):
    """Base class for Daybreak errors."""


class DataUnavailable(DaybreakError):
    """No usable sunrise/sunset data for the requested date."""


class NetworkFailure(DataUnavailable):
    """Sun data request timed out, failed, or returned a non-OK status."""


class ApplyFailure(DaybreakError):
    """Writing the theme or registering a scheduled task failed."""


class NotificationFailure(ApplyFailure):
    """The settings-changed broadcast did not reach running windows."""
