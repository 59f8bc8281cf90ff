"""Terminal front end for the viewer.

Pattern: Prompt Renderer
-------------------------
The CLI is the human-facing boundary and stays thin.  It handles three steps:

  1. **Login**  collect credentials and send a ``Login`` action; re-prompt on
     failure until the user succeeds or gives up (Ctrl-D / Ctrl-C).
  2. **Fetch**  send a ``Fetch`` action for the logged-in session.
  3. **Render** draw the returned ``ResultTable`` with Rich.

It only ever sees ``Outcome`` objects from the request handler: no
credential table, no warehouse client, no raw exceptions.
"""

from __future__ import annotations

import getpass
import logging

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from gated_viewer.auth.session import Session
from gated_viewer.gateway.request_handler import Fetch, Login, RequestHandler
from gated_viewer.warehouse.query import ResultTable

logger = logging.getLogger(__name__)
console = Console()


def _print_banner(table_name: str) -> None:
    console.print(
        Panel(
            "[bold]Gated Table Viewer[/bold]\n"
            f"Log in to view [cyan]{escape(table_name)}[/cyan]",
            border_style="blue",
        )
    )


def render_table(result: ResultTable, title: str | None = None) -> Table:
    """Build a Rich table with one column per result column, in result order.

    Headers and cells are plain ``Text`` so warehouse values are never read as markup.
    """
    table = Table(title=Text(title) if title is not None else None)
    for column in result.columns:
        table.add_column(Text(column), overflow="fold")
    for row in result.rows:
        table.add_row(*(Text(_cell(row.get(col))) for col in result.columns))
    return table


def _cell(value: object) -> str:
    return "" if value is None else str(value)


def _login(handler: RequestHandler, session: Session) -> bool:
    """Prompt until the session is authenticated.  False if the user gives up."""
    console.print("\n[bold yellow]Login[/bold yellow]\n")
    while True:
        try:
            username = input("  Username: ").strip()
            password = getpass.getpass("  Password: ")
        except (EOFError, KeyboardInterrupt):
            console.print("\n[dim]Login cancelled.[/dim]")
            return False

        if not username or not password:
            console.print("[red]Username and password are required.[/red]")
            continue

        outcome = handler.handle(session, Login(username=username, password=password))
        if outcome.ok:
            username = escape(session.username or "")
            console.print(f"\n  [green]Authenticated[/green] as [bold]{username}[/bold]\n")
            return True
        console.print(Text(outcome.message, style="red"))


def run_cli(handler: RequestHandler, table_name: str) -> int:
    """Log in, fetch the table, render it.  Returns a process exit code."""
    _print_banner(table_name)
    session = handler.open_session()
    try:
        if not _login(handler, session):
            return 1

        with console.status("Loading data..."):
            outcome = handler.handle(session, Fetch())
        if not outcome.ok or outcome.table is None:
            console.print(Text(outcome.message, style="red"))
            return 1

        console.print(render_table(outcome.table, title=table_name))
        console.print(Text(outcome.message, style="dim"))
        return 0
    finally:
        handler.close_session(session)
        console.print("\n[dim]Session ended.[/dim]")
