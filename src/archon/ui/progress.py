"""spinner handling for network-bound commands."""

import sys
from contextlib import contextmanager
from typing import Callable, Optional, TypeVar
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn

T = TypeVar("T")


class ProgressManager:
    """shows spinners while requests are in flight."""

    def __init__(self, console: Optional[Console] = None, quiet: bool = False):
        """
        initialize progress manager.

        args:
            console: optional rich console instance. if not provided, creates new one.
            quiet: suppress spinners and status lines entirely (json output)
        """
        self.console = console or Console()
        self.quiet = quiet
        self._enabled = not quiet and self._should_show_progress()

    def _should_show_progress(self) -> bool:
        """returns false in non-interactive environments (ci/cd, piped output)."""
        return sys.stdout.isatty() and not sys.stdout.closed

    def print(self, *args, **kwargs):
        """print through managed console unless quiet."""
        if not self.quiet:
            self.console.print(*args, **kwargs)

    @contextmanager
    def spinner(self, description: str, transient: bool = True):
        """
        create an indeterminate spinner for unknown-duration tasks.

        yields:
            task id for the spinner, or None when spinners are disabled
        """
        if not self._enabled:
            self.print(f"[dim]{description}[/dim]")
            yield None
            return

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=self.console,
            transient=transient,
        ) as progress:
            task_id = progress.add_task(description, total=None)
            yield task_id

    def run(self, description: str, fn: Callable[[], T], success: Optional[str] = None) -> T:
        """run fn under a spinner, printing a check mark (or a cross) afterwards."""
        try:
            with self.spinner(description):
                result = fn()
        except Exception:
            self.print(f"[red]✗[/red] {description}")
            raise
        self.print(f"[green]✓[/green] {success or description}")
        return result
