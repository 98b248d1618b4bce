"""Output formatters for CLI commands."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Mapping, Sequence, TextIO

from rich.box import SIMPLE
from rich.console import Console
from rich.table import Table

_STATE_STYLES = {"live": "green", "connecting": "yellow", "degraded": "red"}


class OutputFormatter:
    """Base class for CLI output formatters."""

    name: str

    def render(
        self,
        rows: Sequence[Mapping[str, object]],
        *,
        stream: TextIO,
        columns: Sequence[str] | None = None,
    ) -> None:
        raise NotImplementedError


@dataclass(slots=True)
class TableFormatter(OutputFormatter):
    """Render rows as a Rich table; connection states are colour coded."""

    name: str = "table"
    no_color: bool = False

    def render(
        self,
        rows: Sequence[Mapping[str, object]],
        *,
        stream: TextIO,
        columns: Sequence[str] | None = None,
    ) -> None:
        console = Console(file=stream, color_system=None if self.no_color else "auto", no_color=self.no_color)
        resolved = list(columns) if columns else list(rows[0].keys()) if rows else []

        table = Table(box=SIMPLE, show_lines=False)
        for column in resolved:
            justify = "left" if column in {"symbol", "state", "open_time", "last_update"} else "right"
            table.add_column(column, header_style="" if self.no_color else "bold", justify=justify)
        for row in rows:
            table.add_row(*(self._format_cell(column, row.get(column)) for column in resolved))

        if resolved:
            console.print(table)
        if not rows:
            console.print("No data available.")

    def _format_cell(self, column: str, value: object) -> str:
        if value is None:
            return "-"
        if isinstance(value, bool):
            return "yes" if value else "no"
        if isinstance(value, float):
            if math.isnan(value):
                return "NaN"
            if abs(value) >= 1:
                return f"{value:,.2f}"
            return f"{value:.6g}"
        if column == "state" and not self.no_color:
            style = _STATE_STYLES.get(str(value))
            if style:
                return f"[{style}]{value}[/{style}]"
        return str(value)


@dataclass(slots=True)
class JSONLFormatter(OutputFormatter):
    """Render rows as JSON Lines."""

    name: str = "jsonl"

    def render(
        self,
        rows: Sequence[Mapping[str, object]],
        *,
        stream: TextIO,
        columns: Sequence[str] | None = None,
    ) -> None:
        for row in rows:
            record = {column: row.get(column) for column in columns} if columns else dict(row)
            json.dump(record, stream, ensure_ascii=False, default=str)
            stream.write("\n")
        stream.flush()


def create_formatter(name: str, *, no_color: bool = False) -> OutputFormatter:
    """Instantiate a formatter by name."""

    normalized = name.strip().lower()
    if normalized == "table":
        return TableFormatter(no_color=no_color)
    if normalized == "jsonl":
        return JSONLFormatter()
    raise ValueError(f"Unsupported format '{name}'. Available formats: table, jsonl.")


__all__ = ["OutputFormatter", "TableFormatter", "JSONLFormatter", "create_formatter"]
