"""Daybreak - switch the Windows theme at sunrise and sunset."""

__version__ = "0.3.0"
