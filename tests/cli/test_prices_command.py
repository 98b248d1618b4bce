from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from pricepulse.cli import prices as prices_module
from pricepulse.cli.main import create_app
from pricepulse.core.client import PricePulseClient
from pricepulse.core.exceptions import ProviderUnavailableError
from pricepulse.core.providers import StaticMarketDataProvider


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def static_provider() -> StaticMarketDataProvider:
    return StaticMarketDataProvider({"BTC": 95000.0, "ETH": 3500.0}, changes={"BTC": 1.25})


@pytest.fixture
def patched_client(monkeypatch: pytest.MonkeyPatch, fast_config, static_provider, metrics):
    created: list[PricePulseClient] = []

    def factory(options, config=None):
        client = PricePulseClient(fast_config, provider=static_provider, metrics=metrics)
        created.append(client)
        return client

    monkeypatch.setattr(prices_module, "create_client", factory)
    return created


def _json_rows(output: str) -> list[dict[str, object]]:
    rows = []
    for line in output.splitlines():
        line = line.strip()
        if not line.startswith("{"):
            continue
        record = json.loads(line)
        if "symbol" in record:
            rows.append(record)
    return rows


def test_get_table_output(runner: CliRunner, patched_client) -> None:
    result = runner.invoke(create_app(), ["--no-color", "prices", "get", "--symbols", "btc,eth"], env={"COLUMNS": "240"})

    assert result.exit_code == 0, result.output
    assert "BTC" in result.output
    assert "95,000.00" in result.output
    assert "price_local" in result.output
    assert len(patched_client) == 1


def test_get_jsonl_output(runner: CliRunner, patched_client) -> None:
    result = runner.invoke(create_app(), ["--format", "jsonl", "prices", "get", "-s", "BTC,ETH,DOGE"])

    assert result.exit_code == 0, result.output
    rows = _json_rows(result.output)
    assert [row["symbol"] for row in rows] == ["BTC", "ETH"]
    assert rows[0]["price_usd"] == 95000.0
    assert rows[0]["price_local"] == 95000.0 * 84.0
    assert rows[0]["change_24h_percent"] == 1.25


def test_get_requires_symbols(runner: CliRunner, patched_client) -> None:
    result = runner.invoke(create_app(), ["prices", "get", "--symbols", " , "])

    assert result.exit_code == 2
    assert "SYMBOLS_MISSING" in result.output
    assert patched_client == []


def test_get_reports_provider_failure(runner: CliRunner, patched_client, static_provider) -> None:
    static_provider.fail_with = ProviderUnavailableError("Binance unreachable", "static", status_code=503)

    result = runner.invoke(create_app(), ["--log-level", "CRITICAL", "prices", "get", "-s", "BTC"])

    assert result.exit_code == 3
    assert "Binance unreachable" in result.output
    assert "PROVIDER_ERROR" in result.output


def test_get_writes_output_file(runner: CliRunner, patched_client, tmp_path) -> None:
    target = tmp_path / "prices.jsonl"

    result = runner.invoke(create_app(), ["--format", "jsonl", "--output", str(target), "prices", "get", "-s", "ETH"])

    assert result.exit_code == 0, result.output
    [row] = _json_rows(target.read_text(encoding="utf-8"))
    assert row["symbol"] == "ETH"


def test_watch_prints_each_cycle(runner: CliRunner, patched_client, static_provider) -> None:
    result = runner.invoke(create_app(), ["--format", "jsonl", "prices", "watch", "-s", "BTC", "--cycles", "2"])

    assert result.exit_code == 0, result.output
    rows = _json_rows(result.output)
    assert [row["update"] for row in rows] == [1, 2]
    assert all(row["state"] == "live" for row in rows)
    assert not patched_client[0].store.is_running
    assert static_provider.closed


def test_watch_exits_with_provider_code_when_degraded(runner: CliRunner, patched_client, static_provider) -> None:
    static_provider.fail_with = ProviderUnavailableError("timeout", "static")

    result = runner.invoke(create_app(), ["--log-level", "CRITICAL", "prices", "watch", "-s", "BTC", "-n", "1"])

    assert result.exit_code == 3
    assert "timeout" in result.output


def test_invalid_format_is_rejected(runner: CliRunner) -> None:
    result = runner.invoke(create_app(), ["--format", "xml", "prices", "get", "-s", "BTC"])

    assert result.exit_code != 0
    assert "xml" in result.output
