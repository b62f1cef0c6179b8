"""Windows theme switching via the registry."""

import ctypes
import logging
import subprocess
import time
from typing import Optional

try:
    import winreg
except ImportError:
    winreg = None

from daybreak.errors import ApplyFailure, NotificationFailure
from daybreak.theme import Theme


logger = logging.getLogger(__name__)

PERSONALIZE_KEY = r"Software\Microsoft\Windows\CurrentVersion\Themes\Personalize"
APPS_VALUE = "AppsUseLightTheme"
SYSTEM_VALUE = "SystemUsesLightTheme"

HWND_BROADCAST = 0xFFFF
WM_SETTINGCHANGE = 0x001A
SMTO_ABORTIFHUNG = 0x0002
BROADCAST_TIMEOUT_MS = 5000
SETTING_CLASS = "ImmersiveColorSet"


def broadcast_setting_change() -> None:
    """
    Tell running windows that the color settings changed.

    Raises:
        NotificationFailure: If the broadcast fails or times out
    """
    windll = getattr(ctypes, 'windll', None)
    if windll is None:
        raise NotificationFailure("Setting change broadcast requires Windows")

    result = ctypes.c_size_t()
    sent = windll.user32.SendMessageTimeoutW(
        HWND_BROADCAST,
        WM_SETTINGCHANGE,
        0,
        ctypes.c_wchar_p(SETTING_CLASS),
        SMTO_ABORTIFHUNG,
        BROADCAST_TIMEOUT_MS,
        ctypes.byref(result)
    )
    if not sent:
        raise NotificationFailure(
            f"SendMessageTimeoutW({SETTING_CLASS}) failed, error {ctypes.GetLastError()}"
        )


def restart_explorer() -> bool:
    """
    Restart the desktop shell so it picks up the new theme.

    Returns:
        True if explorer was relaunched, False otherwise
    """
    logger.info("Restarting explorer.exe...")
    try:
        subprocess.run(
            ['taskkill', '/F', '/IM', 'explorer.exe'],
            capture_output=True,
            text=True,
            timeout=10
        )
        time.sleep(1)
        subprocess.Popen(['explorer.exe'])
        return True
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.error(f"Failed to restart explorer.exe: {e}")
        return False


class WindowsThemeApplier:
    """Reads and writes the Windows light/dark theme settings."""

    def __init__(self, force_explorer_restart: bool = False):
        """
        Initialize theme applier.

        Args:
            force_explorer_restart: Restart explorer.exe when the broadcast fails
        """
        self.force_explorer_restart = force_explorer_restart

    def current_theme(self) -> Optional[Theme]:
        """
        Read the current app theme from the registry.

        Returns:
            Current Theme, or None if it cannot be read
        """
        if winreg is None:
            logger.debug("winreg unavailable, current theme unknown")
            return None

        try:
            with winreg.OpenKey(winreg.HKEY_CURRENT_USER, PERSONALIZE_KEY) as key:
                value, _ = winreg.QueryValueEx(key, APPS_VALUE)
        except OSError as e:
            logger.warning(f"Could not read {APPS_VALUE}: {e}")
            return None

        return Theme.LIGHT if value == 1 else Theme.DARK

    def _write(self, theme: Theme) -> None:
        if winreg is None:
            raise ApplyFailure("Registry access requires Windows")

        value = 1 if theme == Theme.LIGHT else 0
        try:
            with winreg.CreateKeyEx(
                winreg.HKEY_CURRENT_USER, PERSONALIZE_KEY, 0, winreg.KEY_SET_VALUE
            ) as key:
                winreg.SetValueEx(key, APPS_VALUE, 0, winreg.REG_DWORD, value)
                winreg.SetValueEx(key, SYSTEM_VALUE, 0, winreg.REG_DWORD, value)
        except OSError as e:
            raise ApplyFailure(f"Failed to write theme to registry: {e}") from e

    def apply(self, theme: Theme) -> None:
        """
        Switch Windows to a theme and notify running applications.

        Args:
            theme: Theme to apply

        Raises:
            ApplyFailure: If the registry write fails
        """
        logger.info(f"Setting theme: {theme.value}")
        self._write(theme)

        try:
            broadcast_setting_change()
        except NotificationFailure as e:
            logger.warning(f"Theme change broadcast failed: {e}")
            if self.force_explorer_restart:
                restart_explorer()
            else:
                logger.info("Some windows may keep the old theme until restarted")

        logger.info(f"Theme changed to: {theme.value}")
