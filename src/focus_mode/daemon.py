import json
import signal
import sys
import time
from datetime import datetime
from typing import Callable

from loguru import logger
from rich.console import Console

from focus_mode.host import ConsoleHost, Host
from focus_mode.session import BlockSession
from focus_mode.settings import settings
from focus_mode.store import ConfigStore
from focus_mode.utils.state import cleanup_state, write_state
from focus_mode.utils.time import parse_time_string
from focus_mode.utils.timers import Scheduler

console = Console()


def build_session(
    host: Host,
    scheduler: Scheduler | None = None,
    clock: Callable[[], datetime] = datetime.now,
) -> BlockSession:
    store = ConfigStore(settings.config_file, min_pin_length=settings.min_pin_length)
    return BlockSession(store, host, scheduler or Scheduler(), clock=clock)


def apply_command(session: BlockSession, command: dict) -> bool:
    """Runs one command (from the command file or the CLI) against the session."""
    cmd = command.get("command")
    logger.info(f"Applying command: {cmd}")

    if cmd == "enable":
        return session.set_enabled(True)
    if cmd == "disable":
        return session.set_enabled(False)
    if cmd == "window":
        try:
            from_time = parse_time_string(command["from"]) if command.get("from") else None
            to_time = parse_time_string(command["to"]) if command.get("to") else None
        except ValueError as e:
            logger.error(f"Invalid window command: {e}")
            return False
        return session.set_window(from_time=from_time, to_time=to_time)
    if cmd == "set_pin":
        return session.set_bypass_pin(str(command.get("pin", "")))
    if cmd == "clear_pin":
        return session.clear_bypass_pin()
    if cmd == "bypass":
        if not session.request_bypass():
            return False
        pin = command.get("pin")
        return session.submit_pin(None if pin is None else str(pin))

    logger.warning(f"Unknown command: {cmd!r}")
    return False


def _read_command() -> dict | None:
    """Reads and removes the pending command file, if any."""
    if not settings.command_file.exists():
        return None

    try:
        with open(settings.command_file) as f:
            command_data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        console.print(f"[red]Error reading command file: {e}[/red]")
        return None
    finally:
        if settings.command_file.exists():
            settings.command_file.unlink()

    return command_data if isinstance(command_data, dict) else None


class ClockJumpDetector:
    """Notices wall-clock time passing without the process running (device sleep)."""

    def __init__(
        self,
        threshold: float,
        wall: Callable[[], float] = time.time,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.threshold = threshold
        self._wall = wall
        self._monotonic = monotonic
        self._last_wall = wall()
        self._last_mono = monotonic()

    def jumped(self) -> bool:
        wall, mono = self._wall(), self._monotonic()
        drift = (wall - self._last_wall) - (mono - self._last_mono)
        self._last_wall, self._last_mono = wall, mono
        return abs(drift) > self.threshold


def _handle_sigterm(signum, frame):
    sys.exit(0)


def run_daemon():
    """Main loop for the focus mode daemon."""
    scheduler = Scheduler()
    session = build_session(ConsoleHost(console), scheduler)
    detector = ClockJumpDetector(settings.elapsed_sanity_seconds)

    console.print("[bold green]Focus Mode daemon started...[/bold green]")
    console.print(f"Data directory: [cyan]{settings.data_dir}[/cyan]")
    console.print("Watching the focus window. Press Ctrl+C to stop.")

    signal.signal(signal.SIGTERM, _handle_sigterm)

    session.on_ready()
    last_mtime = session.store.mtime()
    write_state(session.status())

    try:
        while True:
            command = _read_command()
            if command:
                apply_command(session, command)

            if detector.jumped():
                logger.info("Wall clock jumped; treating as suspend/resume.")
                session.on_suspend()
                session.on_resume()

            current_mtime = session.store.mtime()
            if current_mtime != last_mtime:
                last_mtime = current_mtime
                session.on_config_changed()

            scheduler.run_pending()
            write_state(session.status())

            next_delay = scheduler.next_delay()
            sleep_for = settings.poll_seconds if next_delay is None else min(next_delay, settings.poll_seconds)
            time.sleep(max(sleep_for, 0.05))
    finally:
        console.print("\n[yellow]Stopping daemon...[/yellow]")
        session.on_suspend()
        cleanup_state()
