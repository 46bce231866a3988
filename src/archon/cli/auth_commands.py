from datetime import datetime, timezone
from typing import Optional

import typer
from rich.prompt import Prompt

from ..auth.claims import decode_claims
from ..auth.models import Claims
from ..domain.errors import ArchonError
from .errors import LOGIN_HINT, handle_error
from .output import print_record
from .state import get_state

app = typer.Typer()


def _iso(epoch_ms: Optional[int]) -> Optional[str]:
    if epoch_ms is None:
        return None
    return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc).isoformat()


@app.command("login")
def login(
    ctx: typer.Context,
    username: Optional[str] = typer.Argument(None),
    password: Optional[str] = typer.Argument(None),
):
    """login and save credentials for the active profile."""
    state = get_state(ctx)
    session = state.session

    try:
        profile = session.active_profile()
        state.progress.print(f"[blue]Logging in to {profile.name} ({profile.url})[/blue]")

        # interactive mode if credentials not provided
        if not username:
            username = Prompt.ask("Username")
        if not password:
            password = Prompt.ask("Password", password=True)
        if not username or not password:
            state.err_console.print("[red]Error:[/red] Username and password are required")
            raise typer.Exit(1)

        tokens = state.progress.run(
            "Authenticating...",
            lambda: session.tokens.login(profile.key, profile.url, username, password, profile.insecure),
            "Authenticated successfully",
        )
    except ArchonError as e:
        handle_error(state.err_console, e)

    state.progress.print(
        f"[dim]  Logged in as[/dim] [cyan]{tokens.user.username}[/cyan] [dim]({tokens.user.role})[/dim]"
    )


@app.command("logout")
def logout(ctx: typer.Context):
    """clear saved credentials for the active profile."""
    state = get_state(ctx)
    session = state.session

    try:
        profile = session.active_profile()
        if not session.tokens.is_logged_in(profile.key):
            state.console.print(f"Not logged in to {profile.name}.")
            return
        session.tokens.logout(profile.key)
    except ArchonError as e:
        handle_error(state.err_console, e)

    state.console.print(f"[green]✓[/green] Logged out from {profile.name}.")


@app.command("status")
def status(ctx: typer.Context):
    """show authentication status."""
    state = get_state(ctx)
    session = state.session

    try:
        profile = session.active_profile()
        tokens = session.tokens.get_stored_tokens(profile.key)
        logged_in = session.tokens.is_logged_in(profile.key)
        auth_state = session.resolver.quick_check(profile)
    except ArchonError as e:
        handle_error(state.err_console, e)

    info = {
        "profile": profile.key,
        "profileName": profile.name,
        "url": profile.url,
        "authenticated": logged_in,
        "source": auth_state.value,
        "user": tokens.user.username if tokens else None,
        "role": tokens.user.role if tokens else None,
        "expiresAt": _iso(tokens.expires_at) if tokens else None,
    }

    # claims are shown for information only
    if tokens:
        claims = decode_claims(tokens.access_token)
        if isinstance(claims, Claims):
            info["tokenUser"] = claims.username
            info["tokenRole"] = claims.role
            info["tokenExpiresAt"] = _iso(claims.exp)

    print_record(state.console, info, as_json=state.json_output)

    if not logged_in and not state.json_output:
        state.console.print()
        state.console.print(f"[dim]{LOGIN_HINT}[/dim]")


@app.command("me")
def me(ctx: typer.Context):
    """show current user details from the server."""
    state = get_state(ctx)
    session = state.session

    try:
        api = session.authenticated_client(notify=state.progress.print)
        user = state.progress.run("Fetching user info...", lambda: api.get("/api/auth/me"))
    except ArchonError as e:
        handle_error(state.err_console, e)

    print_record(
        state.console,
        {
            "id": user.get("id"),
            "username": user.get("username"),
            "email": user.get("email") or "-",
            "role": user.get("role"),
        },
        as_json=state.json_output,
    )


@app.command("password")
def change_password(ctx: typer.Context):
    """change password, then log in again with the new one."""
    state = get_state(ctx)
    session = state.session

    try:
        profile = session.active_profile()
        api = session.authenticated_client(notify=state.progress.print)
    except ArchonError as e:
        handle_error(state.err_console, e)

    current_password = Prompt.ask("Current password", password=True)
    new_password = Prompt.ask("New password", password=True)
    if len(new_password) < 8:
        state.err_console.print("[red]Error:[/red] Password must be at least 8 characters")
        raise typer.Exit(1)
    if Prompt.ask("Confirm new password", password=True) != new_password:
        state.err_console.print("[red]Error:[/red] Passwords do not match")
        raise typer.Exit(1)

    try:
        state.progress.run(
            "Changing password...",
            lambda: api.post(
                "/api/auth/change-password",
                {"currentPassword": current_password, "newPassword": new_password},
            ),
            "Password changed successfully",
        )

        tokens = session.tokens.get_stored_tokens(profile.key)
        if tokens and tokens.user.username:
            state.progress.print("[blue]Re-authenticating with new password...[/blue]")
            session.tokens.login(profile.key, profile.url, tokens.user.username, new_password, profile.insecure)
    except ArchonError as e:
        handle_error(state.err_console, e)
