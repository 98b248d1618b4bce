"""Main entry point for the pricepulse command line interface."""

from __future__ import annotations

from pathlib import Path

import typer

from pricepulse.core.logging import LOG_LEVELS, configure_logging

from .candles import register as register_candle_commands
from .formatters import create_formatter
from .prices import register as register_price_commands


def create_app() -> typer.Typer:
    """Create a Typer application instance for pricepulse."""

    app = typer.Typer(add_completion=False, help="pricepulse command line interface")

    @app.callback()
    def main(
        ctx: typer.Context,
        format: str = typer.Option(
            "table",
            "--format",
            "-f",
            help="Output format (table or jsonl).",
            show_default=True,
        ),
        output: Path | None = typer.Option(
            None,
            "--output",
            "-o",
            help="Write output to a file instead of stdout.",
        ),
        log_level: str = typer.Option(
            "WARNING",
            "--log-level",
            help="Minimum level of the JSON log lines written to stderr.",
            show_default=True,
        ),
        no_color: bool = typer.Option(
            False,
            "--no-color",
            help="Disable colorized output for table format.",
        ),
        offline: bool = typer.Option(
            False,
            "--offline",
            help="Serve prices and klines from the built-in static provider.",
        ),
    ) -> None:
        ctx.ensure_object(dict)
        normalized_format = format.strip().lower()
        try:
            create_formatter(normalized_format, no_color=no_color)
        except ValueError as exc:
            raise typer.BadParameter(str(exc), param_hint="--format") from exc

        ctx.obj.update(
            {
                "format": normalized_format,
                "output_path": output,
                "log_level": log_level.upper(),
                "no_color": no_color,
                "offline": offline,
            }
        )
        _configure_logging(log_level)

    register_price_commands(app)
    register_candle_commands(app)
    return app


def _configure_logging(level_name: str) -> None:
    level = level_name.upper()
    if level not in LOG_LEVELS:
        level = "WARNING"
    configure_logging(level)


app = create_app()
