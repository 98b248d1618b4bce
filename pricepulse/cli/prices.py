"""Price commands for the pricepulse CLI."""

from __future__ import annotations

import asyncio
from typing import Mapping, TextIO

import typer

from pricepulse.core.models import ConnectionState, PriceSnapshot

from .constants import PROVIDER_EXIT_CODE, VALIDATION_EXIT_CODE
from .formatters import OutputFormatter
from .utils import CLIOptions, create_client, emit_error, exit_for_error, load_config, parse_symbols, prepare_output

prices_app = typer.Typer(help="Live price operations.")

PRICE_COLUMNS = ["symbol", "price_usd", "price_local", "change_24h_percent", "last_update"]
WATCH_COLUMNS = ["update", "state", *PRICE_COLUMNS]


def register(app: typer.Typer) -> None:
    """Register the prices command group on the provided application."""

    app.add_typer(prices_app, name="prices", help="Fetch or watch aggregated prices")


def snapshot_rows(snapshot: PriceSnapshot, symbols: list[str], *, include_state: bool = False) -> list[Mapping[str, object]]:
    rows: list[Mapping[str, object]] = []
    for symbol in symbols:
        record = snapshot.get(symbol)
        if record is None:
            continue
        row: dict[str, object] = record.model_dump(mode="json")
        if include_state:
            row["update"] = snapshot.update_count
            row["state"] = snapshot.connection_state.value
        rows.append(row)
    return rows


def _require_symbols(symbols: str | None) -> list[str]:
    collected = parse_symbols(symbols)
    if not collected:
        emit_error("No symbols supplied.", "SYMBOLS_MISSING")
        raise typer.Exit(code=VALIDATION_EXIT_CODE)
    return collected


@prices_app.command("get")
def get_command(
    ctx: typer.Context,
    symbols: str = typer.Option(None, "--symbols", "-s", help="Comma separated list of symbols."),
) -> None:
    """Run one fetch cycle and print the resulting prices."""

    formatter, stream, stack, options = prepare_output(ctx)
    try:
        collected = _require_symbols(symbols)
        try:
            snapshot = asyncio.run(_fetch_once(options, collected))
        except Exception as error:
            raise exit_for_error(error) from error

        if snapshot.connection_state is ConnectionState.DEGRADED:
            emit_error(snapshot.error_message or "Price fetch failed", "PROVIDER_ERROR", details={"source": snapshot.source})
            raise typer.Exit(code=PROVIDER_EXIT_CODE)
        formatter.render(snapshot_rows(snapshot, collected), stream=stream, columns=PRICE_COLUMNS)
    finally:
        stack.close()


async def _fetch_once(options: CLIOptions, symbols: list[str]) -> PriceSnapshot:
    async with create_client(options) as client:
        return await client.fetch_prices(symbols)


@prices_app.command("watch")
def watch_command(
    ctx: typer.Context,
    symbols: str = typer.Option(None, "--symbols", "-s", help="Comma separated list of symbols."),
    cycles: int = typer.Option(3, "--cycles", "-n", min=1, help="Number of fetch cycles to print."),
    interval: float | None = typer.Option(None, "--interval", min=0.1, help="Override the poll interval (seconds)."),
) -> None:
    """Attach a consumer and print every update until ``--cycles`` were seen."""

    formatter, stream, stack, options = prepare_output(ctx)
    try:
        collected = _require_symbols(symbols)
        try:
            last = asyncio.run(_watch(options, collected, cycles, interval, formatter, stream))
        except Exception as error:
            raise exit_for_error(error) from error

        if last is not None and last.connection_state is ConnectionState.DEGRADED:
            raise typer.Exit(code=PROVIDER_EXIT_CODE)
    finally:
        stack.close()


async def _watch(
    options: CLIOptions,
    symbols: list[str],
    cycles: int,
    interval: float | None,
    formatter: OutputFormatter,
    stream: TextIO,
) -> PriceSnapshot | None:
    config = load_config(options)
    if interval is not None:
        config.store.poll_interval = interval

    seen = 0
    last: PriceSnapshot | None = None
    async with create_client(options, config) as client:
        async with client.consumer(symbols) as consumer:
            async for snapshot in consumer.updates():
                if snapshot.connection_state is ConnectionState.CONNECTING:
                    continue
                seen += 1
                last = snapshot
                if snapshot.connection_state is ConnectionState.DEGRADED:
                    emit_error(
                        snapshot.error_message or "Price fetch failed",
                        "PROVIDER_ERROR",
                        details={"source": snapshot.source, "update": snapshot.update_count},
                    )
                formatter.render(snapshot_rows(snapshot, symbols, include_state=True), stream=stream, columns=WATCH_COLUMNS)
                if seen >= cycles:
                    break
    return last


__all__ = ["register", "prices_app", "get_command", "watch_command", "snapshot_rows"]
