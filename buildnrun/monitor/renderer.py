"""Rich status lines for the supervision loop.

Color scheme
------------
- cyan      : building
- green     : running a fresh build
- red       : build or spawn failure
- dim       : waiting for changes
"""

from __future__ import annotations

from pathlib import Path

from rich.console import Console
from rich.markup import escape

from buildnrun.models.events import EventKind, FsEvent

_EVENT_LABELS: dict[EventKind, str] = {
    EventKind.CREATE: "created",
    EventKind.WRITE: "modified",
    EventKind.RENAME: "renamed",
    EventKind.REMOVE: "removed",
    EventKind.RESCAN: "rescan",
    EventKind.OTHER: "changed",
}


class StatusRenderer:
    """Prints one-line status updates to stderr.

    Parameters
    ----------
    console:
        Rich Console instance.  Defaults to one writing to stderr so the
        child's stdout stays clean.
    quiet:
        Suppress everything except failures.
    """

    def __init__(self, console: Console | None = None, *, quiet: bool = False) -> None:
        self.console = console or Console(stderr=True)
        self.quiet = quiet

    def _print(self, message: str) -> None:
        if not self.quiet:
            self.console.print(message, highlight=False)

    def building(self, cycle: int) -> None:
        self._print(f"[bold cyan]Building[/bold cyan] [dim](cycle {cycle})[/dim]")

    def build_failed(self) -> None:
        self.console.print(
            "[bold red]Build failed[/bold red]; keeping the previous instance running",
            highlight=False,
        )

    def running(self, executable: Path, pid: int) -> None:
        self._print(
            f"[bold green]Running[/bold green] {escape(str(executable))} [dim](pid {pid})[/dim]"
        )

    def spawn_failed(self, executable: Path) -> None:
        self.console.print(
            f"[bold red]Could not start[/bold red] {escape(str(executable))}",
            highlight=False,
        )

    def waiting(self) -> None:
        self._print("[dim]Waiting for changes...[/dim]")

    def changed(self, event: FsEvent, drained: int) -> None:
        label = _EVENT_LABELS[event.kind]
        subject = event.subject_path
        detail = f" {escape(str(subject))}" if subject is not None else ""
        extra = f" [dim](+{drained} more)[/dim]" if drained else ""
        self._print(f"[yellow]{label}[/yellow]{detail}{extra}")
