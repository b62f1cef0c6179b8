"""Windows Task Scheduler registration via schtasks.exe."""

import logging
import os
import subprocess
import tempfile
from datetime import datetime, timedelta
from pathlib import Path
from xml.sax.saxutils import escape

from daybreak.config import Config
from daybreak.errors import ApplyFailure


logger = logging.getLogger(__name__)

TASK_TEMPLATE = """<?xml version="1.0" encoding="UTF-16"?>
<Task version="1.2" xmlns="http://schemas.microsoft.com/windows/2004/02/mit/task">
  <RegistrationInfo>
    <Description>{description}</Description>
  </RegistrationInfo>
  <Triggers>
{trigger}
  </Triggers>
  <Principals>
    <Principal id="Author">
      <LogonType>InteractiveToken</LogonType>
      <RunLevel>HighestAvailable</RunLevel>
    </Principal>
  </Principals>
  <Settings>
    <MultipleInstancesPolicy>IgnoreNew</MultipleInstancesPolicy>
    <DisallowStartIfOnBatteries>false</DisallowStartIfOnBatteries>
    <StopIfGoingOnBatteries>false</StopIfGoingOnBatteries>
    <StartWhenAvailable>true</StartWhenAvailable>
    <ExecutionTimeLimit>PT10M</ExecutionTimeLimit>
    <Enabled>true</Enabled>
  </Settings>
  <Actions Context="Author">
    <Exec>
      <Command>{command}</Command>
    </Exec>
  </Actions>
</Task>
"""


def round_up_to_second(moment: datetime) -> datetime:
    """Next whole second at or after `moment`; Task Scheduler has no sub-second triggers."""
    if moment.microsecond:
        return moment.replace(microsecond=0) + timedelta(seconds=1)
    return moment


def time_trigger_xml(start: datetime) -> str:
    """Trigger element firing once at a local wall-clock time, never before `start`."""
    boundary = round_up_to_second(start).strftime('%Y-%m-%dT%H:%M:%S')
    return (
        "    <TimeTrigger>\n"
        f"      <StartBoundary>{boundary}</StartBoundary>\n"
        "      <Enabled>true</Enabled>\n"
        "    </TimeTrigger>"
    )


def logon_trigger_xml(user: str = "") -> str:
    """Trigger element firing at logon (of `user`, or of anyone if empty)."""
    user_line = f"      <UserId>{escape(user)}</UserId>\n" if user else ""
    return (
        "    <LogonTrigger>\n"
        "      <Enabled>true</Enabled>\n"
        f"{user_line}"
        "    </LogonTrigger>"
    )


def render_task(trigger: str, command: str, description: str) -> str:
    """Render a complete Task Scheduler XML definition."""
    return TASK_TEMPLATE.format(
        description=escape(description),
        trigger=trigger,
        command=escape(command),
    )


def current_user() -> str:
    """Logged-on account as DOMAIN\\user, or just the user name."""
    user = os.environ.get('USERNAME', '')
    domain = os.environ.get('USERDOMAIN', '')
    if user and domain:
        return f"{domain}\\{user}"
    return user


class WindowsTaskScheduler:
    """Persists Daybreak's next run as Task Scheduler entries."""

    def __init__(self, config: Config):
        """
        Initialize task scheduler.

        Args:
            config: Configuration with task names, script path and timezone
        """
        self.task_name = config.task_full_name
        self.logon_task_name = config.logon_task_full_name
        self.command = config.script_path
        self.tz = config.tz

    def _run_schtasks(self, args: list[str]) -> subprocess.CompletedProcess:
        """
        Execute schtasks.exe.

        Args:
            args: Arguments after the executable name

        Returns:
            Completed process

        Raises:
            ApplyFailure: If schtasks is missing, times out or exits non-zero
        """
        cmd = ['schtasks', *args]
        try:
            return subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                check=True,
                timeout=30
            )
        except subprocess.CalledProcessError as e:
            output = (e.stderr or e.stdout or "").strip()
            raise ApplyFailure(f"Command failed: {' '.join(cmd)}\n{output}") from e
        except subprocess.TimeoutExpired as e:
            raise ApplyFailure(f"Command timed out: {' '.join(cmd)}") from e
        except OSError as e:
            raise ApplyFailure(f"Could not run schtasks: {e}") from e

    def _register(self, name: str, task_xml: str) -> None:
        fd, tmp_name = tempfile.mkstemp(prefix='daybreak-', suffix='.xml')
        os.close(fd)
        xml_path = Path(tmp_name)
        try:
            xml_path.write_text(task_xml, encoding='utf-16')
            self._run_schtasks(['/Create', '/TN', name, '/XML', str(xml_path), '/F'])
        finally:
            xml_path.unlink(missing_ok=True)

    def schedule_once(self, when: datetime) -> None:
        """
        Replace the one-shot task so Daybreak runs again at `when`.

        Args:
            when: Next run time (timezone-aware)

        Raises:
            ApplyFailure: If registration fails
        """
        local = round_up_to_second(when.astimezone(self.tz))
        task_xml = render_task(
            time_trigger_xml(local),
            self.command,
            "Switch the Windows theme at the next sunrise or sunset"
        )
        self._register(self.task_name, task_xml)
        logger.info(f"Scheduled '{self.task_name}' at {local.strftime('%Y-%m-%d %H:%M:%S')}")

    def schedule_at_logon(self) -> None:
        """
        Register (or refresh) the task that runs Daybreak at every logon.

        Raises:
            ApplyFailure: If registration fails
        """
        task_xml = render_task(
            logon_trigger_xml(current_user()),
            self.command,
            "Apply the Windows theme for the time of day at logon"
        )
        self._register(self.logon_task_name, task_xml)
        logger.info(f"Scheduled '{self.logon_task_name}' at logon")

    def remove(self) -> bool:
        """
        Delete both Daybreak tasks.

        Returns:
            True if every existing task was removed, False otherwise
        """
        all_success = True
        for name in (self.task_name, self.logon_task_name):
            try:
                self._run_schtasks(['/Query', '/TN', name])
            except ApplyFailure:
                logger.debug(f"Task not registered: {name}")
                continue

            try:
                self._run_schtasks(['/Delete', '/TN', name, '/F'])
                logger.info(f"Removed task: {name}")
            except ApplyFailure as e:
                logger.error(f"Failed to remove task {name}: {e}")
                all_success = False

        return all_success
