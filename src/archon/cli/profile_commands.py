from typing import Optional

import typer
from rich.prompt import Confirm, Prompt

from ..domain.errors import ArchonError
from .errors import handle_error
from .output import print_record, print_table
from .state import get_state

app = typer.Typer()


def _create(
    ctx: typer.Context,
    name: str,
    url: Optional[str],
    display_name: Optional[str],
    insecure: bool,
    use: bool,
) -> None:
    state = get_state(ctx)
    manager = state.session.profiles

    if name in manager.list_profiles():
        state.err_console.print(
            f"[red]Error:[/red] Profile '{name}' already exists. "
            "Use 'archon profile update' to modify it."
        )
        raise typer.Exit(1)

    # interactive mode if url not provided
    if not url:
        url = Prompt.ask("API URL")
        if not display_name:
            display_name = Prompt.ask("Display name", default=name[:1].upper() + name[1:])

    try:
        manager.create_profile(name, url, display_name=display_name, insecure=insecure)
        state.console.print(f"[green]✓[/green] Profile '{name}' created.")

        if use:
            manager.set_default_profile(name)
            state.console.print(f"[green]✓[/green] Now using profile '{name}'.")
    except ArchonError as e:
        handle_error(state.err_console, e)


@app.command("list")
def list_profiles(ctx: typer.Context):
    """list all profiles."""
    state = get_state(ctx)
    manager = state.session.profiles

    profiles = manager.list_profiles()
    active = manager.get_active_profile_name()

    items = [
        {
            "name": key,
            "displayName": p.name,
            "url": p.url,
            "insecure": p.insecure,
            "active": key == active,
        }
        for key, p in profiles.items()
    ]
    rows = [
        [
            "[green]●[/green]" if item["active"] else " ",
            item["name"],
            item["displayName"],
            item["url"],
            "[yellow]Yes[/yellow]" if item["insecure"] else "-",
        ]
        for item in items
    ]
    print_table(
        state.console,
        "Profiles",
        ["", "Name", "Display Name", "URL", "Insecure"],
        rows,
        items,
        as_json=state.json_output,
    )


@app.command("create")
def create_profile(
    ctx: typer.Context,
    name: str,
    url: Optional[str] = typer.Option(None, "--url", "-u", help="API URL"),
    display_name: Optional[str] = typer.Option(None, "--display-name", "-n", help="Display name"),
    insecure: bool = typer.Option(False, "--insecure", "-k", help="Allow insecure TLS connections"),
    use: bool = typer.Option(False, "--use", help="Set as active profile after creation"),
):
    """create a new profile."""
    _create(ctx, name, url, display_name, insecure, use)


@app.command("add")
def add_profile(
    ctx: typer.Context,
    name: str,
    url: Optional[str] = typer.Option(None, "--url", "-u", help="API URL"),
    display_name: Optional[str] = typer.Option(None, "--display-name", "-n", help="Display name"),
    insecure: bool = typer.Option(False, "--insecure", "-k", help="Allow insecure TLS connections"),
    use: bool = typer.Option(False, "--use", help="Set as active profile after creation"),
):
    """add a new profile (alias for create)."""
    _create(ctx, name, url, display_name, insecure, use)


@app.command("show")
def show_profile(ctx: typer.Context, name: Optional[str] = typer.Argument(None)):
    """show profile details."""
    state = get_state(ctx)
    manager = state.session.profiles
    active = manager.get_active_profile_name()
    key = name or active

    try:
        profile = manager.get_profile(key)
    except ArchonError as e:
        handle_error(state.err_console, e)

    print_record(
        state.console,
        {
            "name": key,
            "displayName": profile.name,
            "url": profile.url,
            "insecure": profile.insecure,
            "active": key == active,
        },
        as_json=state.json_output,
    )


@app.command("use")
def use_profile(ctx: typer.Context, name: str):
    """set the default profile."""
    state = get_state(ctx)

    try:
        state.session.profiles.set_default_profile(name)
    except ArchonError as e:
        handle_error(state.err_console, e)

    state.console.print(f"[green]✓[/green] Now using profile '{name}'.")


@app.command("update")
def update_profile(
    ctx: typer.Context,
    name: str,
    url: Optional[str] = typer.Option(None, "--url", "-u", help="API URL"),
    display_name: Optional[str] = typer.Option(None, "--display-name", "-n", help="Display name"),
    insecure: Optional[bool] = typer.Option(
        None, "--insecure/--no-insecure", help="Allow (or forbid) insecure TLS connections"
    ),
):
    """update a profile."""
    state = get_state(ctx)

    try:
        state.session.profiles.update_profile(name, url=url, display_name=display_name, insecure=insecure)
    except ArchonError as e:
        handle_error(state.err_console, e)

    state.console.print(f"[green]✓[/green] Profile '{name}' updated.")


@app.command("delete")
def delete_profile(
    ctx: typer.Context,
    name: str,
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation"),
):
    """delete a profile and its saved credentials."""
    state = get_state(ctx)
    session = state.session

    if name not in session.profiles.list_profiles():
        state.err_console.print(f"[red]Error:[/red] Profile '{name}' not found.")
        raise typer.Exit(1)

    if not force and not Confirm.ask(f"Delete profile '{name}' and its saved credentials?", default=False):
        state.console.print("Cancelled.")
        return

    try:
        session.token_store.delete(name)
        deleted = session.profiles.delete_profile(name)
    except ArchonError as e:
        handle_error(state.err_console, e)

    if deleted:
        state.console.print(f"[green]✓[/green] Profile '{name}' deleted.")
    else:
        state.err_console.print(f"[red]Error:[/red] Failed to delete profile '{name}'.")
        raise typer.Exit(1)
