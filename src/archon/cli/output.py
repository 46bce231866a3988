import json
from typing import Any, Dict, List, Sequence

from rich.console import Console
from rich.table import Table


def print_json(console: Console, data: Any) -> None:
    console.print_json(json.dumps(data, default=str))


def print_record(console: Console, data: Dict[str, Any], as_json: bool = False) -> None:
    """print a single object as JSON or as aligned key/value lines."""
    if as_json:
        print_json(console, data)
        return

    width = max((len(k) for k in data), default=0)
    for key, value in data.items():
        shown = "-" if value is None else value
        console.print(f"  {key + ':':<{width + 1}}  {shown}", markup=False, highlight=False)


def print_table(
    console: Console,
    title: str,
    headers: Sequence[str],
    rows: List[Sequence[str]],
    items: List[Dict[str, Any]],
    as_json: bool = False,
) -> None:
    """print rows as a rich table, or the underlying items as JSON."""
    if as_json:
        print_json(console, items)
        return

    table = Table(title=title)
    for header in headers:
        table.add_column(header)
    for row in rows:
        table.add_row(*row)
    console.print(table)
