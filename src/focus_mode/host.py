import itertools
from abc import ABC, abstractmethod

import pyfiglet
from loguru import logger
from rich.align import Align
from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from focus_mode.schema import SurfaceSpec
from focus_mode.utils.notifications import send_notification


class Host(ABC):
    """
    UI operations the session needs from whatever displays it.

    The session never renders; it only hands over ``SurfaceSpec`` payloads
    and opaque handles.
    """

    @abstractmethod
    def present_blocking_surface(self, spec: SurfaceSpec):
        """Show the modal, input-absorbing surface. Returns a handle."""

    @abstractmethod
    def update_blocking_surface(self, handle, spec: SurfaceSpec): ...

    @abstractmethod
    def dismiss_blocking_surface(self, handle): ...

    @abstractmethod
    def present_bypass_prompt(self):
        """Ask for the PIN. The answer comes back through ``BlockSession.submit_pin``."""

    @abstractmethod
    def dismiss_bypass_prompt(self): ...

    @abstractmethod
    def notify(self, message: str, timeout_seconds: int): ...


class ConsoleHost(Host):
    """Renders the blocker in the terminal and mirrors notices to the desktop."""

    def __init__(
        self,
        console: Console | None = None,
        desktop_notifications: bool = True,
        fullscreen: bool = True,
    ):
        self.console = console or Console()
        self.desktop_notifications = desktop_notifications
        self.fullscreen = fullscreen
        self._handles = itertools.count(1)
        self._shown: set[int] = set()

    def _render(self, spec: SurfaceSpec):
        font = pyfiglet.Figlet(font="standard")
        art_text = font.renderText("FOCUS MODE")

        body = Text(justify="center")
        body.append(f"{spec.title}\n", style="bold yellow")
        body.append(f"{spec.message}\n\n")
        body.append(spec.text, style="bold cyan")
        if spec.has_bypass_pin:
            body.append("\n\nRun `focusmode bypass <PIN>` to end the block early.", style="dim")

        content = Group(Text(art_text, style="bold green", justify="center"), body)
        panel = Panel(content, border_style="red", expand=False)
        if self.fullscreen:
            self.console.clear()
            self.console.print(Align.center(panel, vertical="middle"))
        else:
            self.console.print(panel)

    def present_blocking_surface(self, spec: SurfaceSpec) -> int:
        handle = next(self._handles)
        self._shown.add(handle)
        logger.debug(f"Presenting blocking surface #{handle} (modal={spec.modal})")
        self._render(spec)
        return handle

    def update_blocking_surface(self, handle: int, spec: SurfaceSpec):
        if handle in self._shown:
            self._render(spec)

    def dismiss_blocking_surface(self, handle: int):
        if handle in self._shown:
            self._shown.discard(handle)
            logger.debug(f"Dismissed blocking surface #{handle}")
            if self.fullscreen:
                self.console.clear()

    def present_bypass_prompt(self):
        self.console.print(
            Panel(
                "Enter the bypass PIN with [bold]focusmode bypass <PIN>[/bold].",
                title="Bypass Focus Mode",
                border_style="yellow",
            )
        )

    def dismiss_bypass_prompt(self):
        logger.debug("Bypass prompt closed.")

    def notify(self, message: str, timeout_seconds: int):
        self.console.print(f"[bold yellow]{message}[/bold yellow]")
        if self.desktop_notifications:
            send_notification("Focus Mode", message, timeout_seconds)
