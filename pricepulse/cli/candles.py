"""Candle commands for the pricepulse CLI."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import Mapping

import typer

from pricepulse.core.models import ProcessedCandle

from .utils import CLIOptions, create_client, exit_for_error, prepare_output

candles_app = typer.Typer(help="Historical candle analytics.")

CANDLE_COLUMNS = [
    "open_time",
    "open",
    "high",
    "low",
    "close",
    "volume",
    "body_size",
    "upper_shadow",
    "lower_shadow",
    "momentum",
    "is_bullish",
]


def register(app: typer.Typer) -> None:
    """Register the candles command group on the provided application."""

    app.add_typer(candles_app, name="candles", help="Fetch processed klines")


@candles_app.command("fetch")
def fetch_command(
    ctx: typer.Context,
    symbol: str = typer.Argument(..., help="Base asset symbol, e.g. BTC."),
    interval: str | None = typer.Option(None, "--interval", "-i", help="Kline interval (1m ... 1M)."),
    limit: int | None = typer.Option(None, "--limit", "-l", help="Number of bars to fetch."),
) -> None:
    """Fetch klines and print them with momentum and body/shadow geometry."""

    formatter, stream, stack, options = prepare_output(ctx)
    try:
        try:
            candles = asyncio.run(_fetch(options, symbol, interval, limit))
        except Exception as error:
            raise exit_for_error(error) from error
        formatter.render(_candle_rows(candles), stream=stream, columns=CANDLE_COLUMNS)
    finally:
        stack.close()


async def _fetch(options: CLIOptions, symbol: str, interval: str | None, limit: int | None) -> list[ProcessedCandle]:
    async with create_client(options) as client:
        return await client.get_candles(symbol, interval, limit)


def _candle_rows(candles: list[ProcessedCandle]) -> list[Mapping[str, object]]:
    rows: list[Mapping[str, object]] = []
    for candle in candles:
        row = dict(candle.as_mapping())
        row["open_time"] = datetime.fromtimestamp(candle.open_time / 1000, tz=UTC).isoformat()
        rows.append(row)
    return rows


__all__ = ["register", "candles_app", "fetch_command"]
