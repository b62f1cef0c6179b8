"""Main entry point and run cycle for Daybreak."""

import argparse
import logging
import sys
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

from daybreak.config import Config, create_default_config, get_default_config_path
from daybreak.errors import ApplyFailure, DataUnavailable
from daybreak.planner import plan_next_transition
from daybreak.scheduler import WindowsTaskScheduler
from daybreak.sun_times import create_oracle
from daybreak.theme import Theme, decide_theme
from daybreak.theme_applier import WindowsThemeApplier


logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(log_path: Optional[Path] = None, verbose: bool = False):
    """Configure logging to stdout and, when given, an append-only log file."""
    level = logging.DEBUG if verbose else logging.INFO
    handlers = [logging.StreamHandler(sys.stdout)]

    file_error = None
    if log_path is not None:
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_path, mode='a', encoding='utf-8'))
        except OSError as e:
            file_error = e

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)

    if file_error is not None:
        logger.warning(f"Could not open log file {log_path}: {file_error}")


def run_cycle(config: Config, oracle, applier, scheduler, now: datetime = None) -> int:
    """
    Apply the theme for the current time and schedule the next run.

    Args:
        config: Configuration object
        oracle: Sun time source with get_sun_times(date)
        applier: Theme applier with current_theme() and apply(theme)
        scheduler: Task scheduler with schedule_once(when) and schedule_at_logon()
        now: Current time (defaults to now in the configured timezone)

    Returns:
        Process exit status
    """
    if now is None:
        now = datetime.now(config.tz)

    current_theme = applier.current_theme()
    logger.info(
        f"Run at {now.strftime('%Y-%m-%d %H:%M:%S')}, current theme: "
        f"{current_theme.value if current_theme else 'unknown'}"
    )

    try:
        sun_times = oracle.get_sun_times(now.date())
    except DataUnavailable as e:
        logger.error(f"Could not get today's sun times: {e}")
        return 1

    logger.info(f"Sunrise: {sun_times.sunrise.strftime('%H:%M')}")
    logger.info(f"Sunset: {sun_times.sunset.strftime('%H:%M')}")

    decision = decide_theme(now, sun_times)
    logger.info(f"Daytime: {decision.is_daytime}, desired theme: {decision.theme.value}")

    if decision.theme != current_theme:
        try:
            applier.apply(decision.theme)
        except ApplyFailure as e:
            logger.error(f"Failed to apply theme: {e}")
    else:
        logger.info("Theme already up to date")

    try:
        transition = plan_next_transition(
            now,
            sun_times,
            lambda: oracle.get_sun_times(now.date() + timedelta(days=1))
        )
    except DataUnavailable as e:
        logger.error(f"Could not get tomorrow's sun times: {e}")
        return 1

    logger.info(f"Next run: {transition.trigger.strftime('%Y-%m-%d %H:%M')} ({transition.label})")

    try:
        scheduler.schedule_once(transition.trigger)
        scheduler.schedule_at_logon()
    except ApplyFailure as e:
        logger.error(f"Failed to schedule next run: {e}")
        return 1

    return 0


def run(config: Config) -> int:
    """Run one cycle against the real Windows collaborators."""
    return run_cycle(
        config,
        create_oracle(config),
        WindowsThemeApplier(config.force_explorer_restart),
        WindowsTaskScheduler(config),
    )


def run_apply(config: Config, theme: str) -> int:
    """
    Force a theme once and exit.

    Args:
        config: Configuration object
        theme: 'light' or 'dark'
    """
    applier = WindowsThemeApplier(config.force_explorer_restart)
    try:
        applier.apply(Theme(theme))
    except ApplyFailure as e:
        logger.error(f"Failed to apply theme: {e}")
        return 1

    logger.info("Theme set successfully")
    return 0


def run_test(config: Config, oracle=None, now: datetime = None) -> int:
    """
    Show the current decision and next transition without changing anything.

    Args:
        config: Configuration object
    """
    oracle = oracle or create_oracle(config)
    if now is None:
        now = datetime.now(config.tz)

    try:
        sun_times = oracle.get_sun_times(now.date())
        decision = decide_theme(now, sun_times)
        transition = plan_next_transition(
            now,
            sun_times,
            lambda: oracle.get_sun_times(now.date() + timedelta(days=1))
        )
    except DataUnavailable as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"\nCurrent time: {now.strftime('%Y-%m-%d %H:%M:%S %Z')}")
    print(f"\nSun times for today ({config.source}):")
    print(f"  Sunrise:     {sun_times.sunrise.strftime('%H:%M:%S')}")
    print(f"  Sunset:      {sun_times.sunset.strftime('%H:%M:%S')}")
    print(f"\nDesired theme: {decision.theme.value}")

    print(f"\nNext transition: {transition.trigger.strftime('%Y-%m-%d %H:%M:%S')} ({transition.label})")

    time_until = transition.trigger - now
    hours = int(time_until.total_seconds() // 3600)
    minutes = int((time_until.total_seconds() % 3600) // 60)
    print(f"Time until transition: {hours}h {minutes}m\n")
    return 0


def run_uninstall(config: Config) -> int:
    """Remove Daybreak's scheduled tasks."""
    if WindowsTaskScheduler(config).remove():
        logger.info("Scheduled tasks removed")
        return 0
    return 1


def init_config(config_path: Path):
    """Generate a configuration template."""
    if config_path.exists():
        response = input(f"Config file already exists at {config_path}. Overwrite? [y/N] ")
        if response.lower() != 'y':
            print("Aborted.")
            return

    create_default_config(config_path)
    print(f"Configuration template created at: {config_path}")
    print("\nPlease check the detected location before the first run.")


def cli():
    """Command-line interface entry point."""
    parser = argparse.ArgumentParser(
        description="Daybreak - switch the Windows theme at sunrise and sunset"
    )
    parser.add_argument(
        '--config', '-c',
        type=Path,
        help='Path to configuration file (default: %%APPDATA%%\\daybreak\\config.yaml)'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # Test command
    subparsers.add_parser('test', help='Show current theme decision and next transition')

    # Apply command
    apply_parser = subparsers.add_parser('apply', help='Set a theme once and exit')
    apply_parser.add_argument(
        '--theme',
        choices=[t.value for t in Theme],
        required=True,
        help='Theme to set'
    )

    # Init command
    subparsers.add_parser('init', help='Generate configuration template')

    # Uninstall command
    subparsers.add_parser('uninstall', help='Remove scheduled tasks')

    args = parser.parse_args()

    config_path = args.config or get_default_config_path()

    # Handle init command (doesn't need config)
    if args.command == 'init':
        setup_logging(verbose=args.verbose)
        init_config(config_path)
        return

    # Load configuration
    try:
        config = Config.load(config_path)
    except FileNotFoundError:
        print(f"Error: Configuration file not found: {config_path}", file=sys.stderr)
        print("Run 'daybreak init' to create a template.", file=sys.stderr)
        sys.exit(1)
    except ValueError as e:
        print(f"Error: Invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)

    # Execute command
    if args.command == 'test':
        setup_logging(verbose=args.verbose)
        sys.exit(run_test(config))

    setup_logging(config.log_path, verbose=args.verbose)

    if args.command == 'apply':
        sys.exit(run_apply(config, args.theme))
    elif args.command == 'uninstall':
        sys.exit(run_uninstall(config))
    else:
        # Default: run one cycle
        sys.exit(run(config))


if __name__ == '__main__':
    cli()
