"""
Result formatters for CLI output.

Results go to stdout in the selected format; everything else is logging.
"""

from __future__ import annotations

import csv
import io
import json
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Dict

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from mssqlhop.domain.models import QueryResult
from mssqlhop.infrastructure.config_loader import OutputFormat


def _display_value(value: Any) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, bytes):
        return "0x" + value.hex().upper()
    return str(value)


def _json_value(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, bytes):
        return "0x" + value.hex().upper()
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


def _column_names(result: QueryResult) -> list[str]:
    # EXEC AT and OPENQUERY results may carry unnamed columns
    return [name or f"column{index}" for index, name in enumerate(result.columns, start=1)]


def render_table(result: QueryResult, title: str | None = None) -> Table:
    table = Table(title=escape(title) if title else None, header_style="bold magenta")
    for name in _column_names(result):
        table.add_column(escape(name), style="cyan" if not table.columns else None)
    for row in result.rows:
        # Server data is never markup
        table.add_row(*(escape(_display_value(value)) for value in row))
    return table


def format_csv(result: QueryResult) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(_column_names(result))
    for row in result.rows:
        writer.writerow(["" if value is None else _display_value(value) for value in row])
    return buffer.getvalue()


def format_json(result: QueryResult) -> str:
    columns = _column_names(result)
    records = [
        {column: _json_value(value) for column, value in zip(columns, row)}
        for row in result.rows
    ]
    return json.dumps(records, indent=2, ensure_ascii=False)


def format_markdown(result: QueryResult) -> str:
    columns = _column_names(result)

    def cell(value: Any) -> str:
        return _display_value(value).replace("|", "\\|").replace("\n", " ")

    lines = [
        "| " + " | ".join(columns) + " |",
        "| " + " | ".join("---" for _ in columns) + " |",
    ]
    lines.extend("| " + " | ".join(cell(value) for value in row) + " |" for row in result.rows)
    return "\n".join(lines) + "\n"


TEXT_FORMATTERS: Dict[OutputFormat, Callable[[QueryResult], str]] = {
    OutputFormat.CSV: format_csv,
    OutputFormat.JSON: format_json,
    OutputFormat.MARKDOWN: format_markdown,
}


class ResultPrinter:
    """Prints action results in the configured format."""

    def __init__(self, output_format: OutputFormat = OutputFormat.TABLE, console: Console | None = None):
        self.output_format = output_format
        self.console = console or Console()

    def print_result(self, result: QueryResult | None, title: str | None = None) -> None:
        if result is None or not result.columns:
            self.console.print("[dim]No results.[/dim]")
            return

        if self.output_format is OutputFormat.TABLE:
            self.console.print(render_table(result, title))
            self.console.print(f"[dim]{len(result)} row(s)[/dim]")
            return

        # Plain text: no markup or highlighting in machine-readable output
        self.console.print(
            TEXT_FORMATTERS[self.output_format](result),
            markup=False,
            highlight=False,
            emoji=False,
            soft_wrap=True,
            end="",
        )
