import json
import logging
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from ..domain.errors import ArchonError, ProfileNotFoundError
from ..ui.progress import ProgressManager
from . import state as cli_state
from .auth_commands import app as auth_app
from .errors import LOGIN_HINT, handle_error
from .output import print_json
from .profile_commands import app as profile_app
from .state import CliState, get_state

logger = logging.getLogger(__name__)

app = typer.Typer(help="ARCHON Infrastructure Management CLI")
console = Console()
err_console = Console(stderr=True)

app.add_typer(profile_app, name="profile", help="Manage connection profiles")
app.add_typer(auth_app, name="auth", help="Authentication commands")


def setup_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@app.callback()
def main_callback(
    ctx: typer.Context,
    profile: Optional[str] = typer.Option(None, "--profile", "-p", help="Use specific profile"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    debug: bool = typer.Option(False, "--debug", help="Show debug info"),
):
    """callback that builds the session before every command."""
    session = cli_state.make_session()
    ctx.call_on_close(session.close)

    setup_logging(debug or session.env.debug)

    # environment variable takes precedence over the flag
    profile_name = session.env.profile_override or profile
    if profile_name:
        try:
            session.use_profile(profile_name)
        except ProfileNotFoundError:
            err_console.print(f"[red]Profile '{profile_name}' not found.[/red]")
            err_console.print("[dim]Run: archon profile list[/dim]")
            raise typer.Exit(1)

    ctx.obj = CliState(
        session=session,
        console=console,
        err_console=err_console,
        progress=ProgressManager(err_console, quiet=json_output),
        json_output=json_output,
    )

    logger.debug("profile: %s", session.profiles.get_active_profile_name())


@app.command()
def raw(
    ctx: typer.Context,
    method: str,
    path: str,
    body: Optional[str] = typer.Argument(None),
    auth: bool = typer.Option(True, "--auth/--no-auth", help="Send the bearer token (default) or skip authentication"),
):
    """make a raw API request."""
    state = get_state(ctx)
    session = state.session

    try:
        profile = session.active_profile()
        if auth:
            token = session.resolver.require_token(profile, notify=state.progress.print)
        else:
            token = None
    except ArchonError as e:
        if auth:
            err_console.print("[dim]Or use --no-auth to skip authentication[/dim]")
        handle_error(err_console, e)

    upper = method.upper()
    payload = None
    content = None
    if body and upper in ("POST", "PUT", "PATCH"):
        # send as JSON when it parses, otherwise as-is
        try:
            payload = json.loads(body)
        except ValueError:
            content = body

    api = session.api_client(profile, token)
    if not path.startswith("/"):
        path = "/" + path
    err_console.print(f"[dim]{upper} {api.base_url}{path}[/dim]")

    try:
        response = api.send(upper, path, payload, content=content)
    except ArchonError as e:
        handle_error(err_console, e)

    err_console.print(f"[dim]Status: {response.status_code} {response.reason_phrase}[/dim]")

    data = None
    if "application/json" in response.headers.get("content-type", ""):
        try:
            data = response.json()
        except ValueError:
            logger.debug("response claimed JSON but did not parse, printing as text")

    if data is not None:
        print_json(console, data)
    else:
        console.print(response.text, markup=False, highlight=False)

    if not response.is_success:
        if response.status_code == 401:
            err_console.print(f"[dim]{LOGIN_HINT}[/dim]")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
