"""
Rich-formatted CLI help display.
"""

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from mssqlhop.application.actions import available_actions
from mssqlhop.infrastructure.sql.connection_profile import AuthType

EXE_NAME = "mssqlhop"


def print_main_help(console: Console | None = None) -> None:
    """Print the main CLI help with rich formatting."""
    console = console or Console()

    console.print("[bold cyan]mssqlhop[/bold cyan] [dim]- SQL Server linked server traversal[/dim]\n")

    console.print("[bold yellow]USAGE:[/bold yellow]")
    console.print(
        f"  {EXE_NAME} [bright_cyan]HOST[/bright_cyan] -c TYPE "
        f"[dim]{escape('[-u USER] [-p PASSWORD] [-l CHAIN] [options]')}[/dim] "
        f"[bright_cyan]{escape('[ACTION [ARGS...]]')}[/bright_cyan]\n"
    )

    console.print("[bold yellow]HOST / CHAIN HOP SYNTAX:[/bold yellow]")
    console.print(
        f"  name[dim]{escape('[:port][/login][@database]')}[/dim]   "
        "hops in a chain are separated by [bold],[/bold]"
    )
    console.print(
        f"  [dim]Wrap names containing , : / @ or spaces in brackets: {escape('[SQL-02,prod]')}[/dim]\n"
    )

    actions = Table(show_header=True, header_style="bold magenta", box=box.SIMPLE, padding=(0, 2))
    actions.add_column("Action", style="bright_cyan", width=12)
    actions.add_column("Arguments", style="dim")
    actions.add_column("Description", style="white")
    for name, usage, description in available_actions():
        actions.add_row(name, escape(usage or "-"), escape(description))
    console.print(Panel(actions, title="[bold green]ACTIONS[/bold green]", border_style="green"))

    options = Table(show_header=False, box=box.SIMPLE, padding=(0, 2))
    options.add_column("Option", style="bright_cyan", width=22)
    options.add_column("Description", style="white")
    options.add_row("-c, --credentials", " | ".join(auth.value for auth in AuthType))
    options.add_row("-u / -p / -d", "Username, password, domain")
    options.add_row("--token", "Entra ID access token (-c token)")
    options.add_row("-l, --links", "Linked server chain to route through")
    options.add_row("--timeout", "Initial statement timeout in seconds")
    options.add_row("-o, --output", "table | csv | json | markdown")
    options.add_row("--config", "Settings file (default: mssqlhop.json)")
    options.add_row("--debug / --log-file", "Verbose logging, log file")
    console.print(Panel(options, title="[bold green]OPTIONS[/bold green]", border_style="green"))

    console.print("\n[bold yellow]EXAMPLES:[/bold yellow]")
    examples = [
        ("Who am I on SQL01:", f"{EXE_NAME} SQL01 -c windows whoami"),
        ("Hop twice, impersonating on the first link:",
         f'{EXE_NAME} SQL01 -c local -u sa -p pass -l "SQL02/webapp,SQL03@appdb" query "SELECT @@SERVERNAME"'),
        ("List linked servers as JSON:", f"{EXE_NAME} SQL01:1434 -c local -u sa -p pass -o json links"),
    ]
    for label, cmd in examples:
        console.print(f"  [dim]{label}[/dim]")
        console.print(f"    [bright_green]{cmd}[/bright_green]", markup=True, highlight=False)
    console.print()
