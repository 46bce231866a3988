import json
import logging
from typing import NoReturn

import typer
from rich.console import Console

from ..domain.errors import (
    ApiError,
    ArchonError,
    LoginFailedError,
    NotAuthenticatedError,
    SessionExpiredError,
)

logger = logging.getLogger(__name__)

LOGIN_HINT = "Run: archon auth login"


def handle_error(console: Console, err: Exception) -> NoReturn:
    """print an error with remediation text and exit with status 1."""
    if isinstance(err, ApiError):
        _print_api_error(console, err)
    elif isinstance(err, SessionExpiredError):
        console.print(f"[red]Session expired:[/red] {err}")
        if LOGIN_HINT not in str(err):
            console.print(f"[dim]{LOGIN_HINT}[/dim]")
    elif isinstance(err, NotAuthenticatedError):
        console.print(f"[red]Error:[/red] {err}")
    elif isinstance(err, LoginFailedError):
        console.print(f"[red]Login failed:[/red] {err}")
    elif isinstance(err, ArchonError):
        console.print(f"[red]Error:[/red] {err}")
    else:
        console.print(f"[red]Unexpected error:[/red] {err}")
        logger.debug("unexpected error", exc_info=err)

    raise typer.Exit(1)


def _print_api_error(console: Console, err: ApiError) -> None:
    message = err.message or ""

    if err.status == 401:
        lowered = message.lower()
        if "expired" in lowered or "invalid token" in lowered:
            console.print("[red]Session expired.[/red]")
            console.print("[dim]Your authentication token has expired.[/dim]")
        else:
            console.print("[red]Authentication required.[/red]")
        console.print(f"[dim]{LOGIN_HINT}[/dim]")
    elif err.status == 403:
        console.print("[red]Permission denied.[/red]")
        console.print("[dim]This action requires admin or operator privileges.[/dim]")
    elif err.status == 404:
        console.print(f"[red]Not found:[/red] {message}")
    elif err.status == 409:
        console.print(f"[red]Conflict:[/red] {message}")
    elif err.status == 422:
        console.print(f"[red]Validation error:[/red] {message}")
        if err.details:
            console.print(json.dumps(err.details, indent=2), style="dim", markup=False)
    elif err.status >= 500:
        console.print(f"[red]Server error:[/red] {message}")
        console.print("[dim]The server encountered an internal error. Please try again later.[/dim]")
    else:
        console.print(f"[red]Error ({err.status}):[/red] {message}")
        if err.error:
            console.print(err.error, style="dim", markup=False)
