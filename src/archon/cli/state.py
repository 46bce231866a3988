from dataclasses import dataclass

import typer
from rich.console import Console

from ..session import Session
from ..ui.progress import ProgressManager


@dataclass
class CliState:
    session: Session
    console: Console
    err_console: Console
    progress: ProgressManager
    json_output: bool = False


def make_session() -> Session:
    """build the session for this invocation from the real environment."""
    return Session()


def get_state(ctx: typer.Context) -> CliState:
    return ctx.find_root().obj
