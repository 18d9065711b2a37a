import json
import time
from datetime import datetime

import psutil
import typer
from rich.console import Console
from rich.table import Table

from focus_mode.daemon import apply_command, build_session, run_daemon
from focus_mode.host import ConsoleHost
from focus_mode.settings import settings
from focus_mode.store import ConfigStore
from focus_mode.utils.logging import setup_logging
from focus_mode.utils.state import read_state
from focus_mode.utils.time import (
    format_end_time,
    format_remaining,
    is_within_window,
    parse_time_string,
    remaining_minutes,
)

app = typer.Typer(help="Focus Mode - block the device during a daily time window")
console = Console()


def is_daemon_running() -> bool:
    """Checks if the daemon is running via state file and PID."""
    state = read_state()
    if not state:
        return False
    pid = state.get("pid")
    return bool(pid) and psutil.pid_exists(pid)


def _send_to_daemon(command: dict) -> None:
    if settings.command_file.exists():
        # Check if the file is stale (older than 30 seconds)
        mtime = settings.command_file.stat().st_mtime
        if time.time() - mtime > 30:
            console.print("[yellow]Found stale command file, removing...[/yellow]")
            settings.command_file.unlink()
        else:
            console.print(
                "[yellow]Warning:[/yellow] Another command is already pending. "
                "Please wait a moment before trying again."
            )
            raise typer.Exit(1)

    try:
        settings.data_dir.mkdir(parents=True, exist_ok=True)
        with open(settings.command_file, "w") as f:
            json.dump(command, f)
    except OSError as e:
        console.print(f"[red]Error:[/red] Could not send command to daemon: {e}")
        raise typer.Exit(1)

    console.print(f"[green]Sent '{command['command']}' to the running daemon.[/green]")


def dispatch(command: dict) -> None:
    """Routes a command to the daemon if it runs, else applies it locally."""
    if is_daemon_running():
        _send_to_daemon(command)
        return

    session = build_session(ConsoleHost(console, desktop_notifications=False, fullscreen=False))
    # Derive the current blocking state before applying the change
    session.check()
    if not apply_command(session, command):
        raise typer.Exit(1)
    console.print("[green]Configuration saved![/green]")


@app.command()
def run(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Run the focus mode daemon in the foreground."""
    setup_logging(verbose=verbose)

    if is_daemon_running():
        console.print("[yellow]Daemon is already running.[/yellow]")
        return

    run_daemon()


@app.command()
def status(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Show the configuration and whether a block is active."""
    setup_logging(verbose=verbose)
    config = ConfigStore(settings.config_file, min_pin_length=settings.min_pin_length).read_config()

    table = Table(title="Focus Mode Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="magenta")
    table.add_row("Enabled", "Yes" if config.enabled else "No")
    table.add_row("From", str(config.from_time))
    table.add_row("To", str(config.to_time))
    table.add_row("Bypass PIN", "Set" if config.bypass_pin else "Not set")
    console.print(table)

    if is_daemon_running():
        session_info = (read_state() or {}).get("session") or {}
        console.print("Daemon: [bold green]● Running[/bold green]")
        state = session_info.get("state", "unknown")
        if state != "idle":
            console.print(f"\n[bold yellow]⚠️ FOCUS MODE ACTIVE ({state})[/bold yellow]")
            if session_info.get("countdown"):
                console.print(f"{session_info['countdown']} (until {session_info['to_time']})")
        else:
            console.print("\nNo block currently active.")
        return

    console.print("Daemon: [bold red]○ Stopped[/bold red]")
    now = datetime.now()
    if config.enabled and is_within_window(now, config.from_time, config.to_time):
        hours, minutes = remaining_minutes(now, config.to_time)
        console.print(
            f"\nInside the focus window: {format_remaining(hours, minutes)} "
            f"(until {format_end_time(config.to_time)})"
        )
    console.print("\n[dim]To start the daemon, run: [bold]focusmode run[/bold][/dim]")


@app.command()
def enable(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Enable focus mode (blocks at once if inside the window)."""
    setup_logging(verbose=verbose)
    dispatch({"command": "enable"})


@app.command()
def disable(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Disable focus mode (refused while a block is active)."""
    setup_logging(verbose=verbose)
    dispatch({"command": "disable"})


@app.command()
def window(
    from_time: str | None = typer.Option(None, "--from", "-f", help="Window start (e.g. 6am, 06:00)"),
    to_time: str | None = typer.Option(None, "--to", "-t", help="Window end (e.g. 7pm, 19:00)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Set the daily focus window."""
    setup_logging(verbose=verbose)
    if from_time is None and to_time is None:
        console.print("[red]Error:[/red] Pass --from and/or --to.")
        raise typer.Exit(1)

    try:
        for value in (from_time, to_time):
            if value is not None:
                parse_time_string(value)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    dispatch({"command": "window", "from": from_time, "to": to_time})


@app.command(name="set-pin")
def set_pin(
    pin: str = typer.Argument(..., help="Bypass PIN (at least 4 digits)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Set the bypass PIN."""
    setup_logging(verbose=verbose)
    dispatch({"command": "set_pin", "pin": pin})


@app.command(name="clear-pin")
def clear_pin(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Remove the bypass PIN."""
    setup_logging(verbose=verbose)
    dispatch({"command": "clear_pin"})


@app.command()
def bypass(
    pin: str = typer.Argument(..., help="The bypass PIN"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """End the active block early with the bypass PIN."""
    setup_logging(verbose=verbose)
    if not is_daemon_running():
        console.print(
            "[red]Error:[/red] Daemon is not running. Please start it with `focusmode run`."
        )
        raise typer.Exit(1)
    _send_to_daemon({"command": "bypass", "pin": pin})


if __name__ == "__main__":
    app()
