"""
价格聚合存储.

A :class:`PriceAggregationStore` multiplexes any number of observers onto one
polling loop against a :class:`MarketDataProvider`:

* observers register with :meth:`~PriceAggregationStore.subscribe` and declare
  symbols with :meth:`~PriceAggregationStore.request_symbols`; all requested
  symbols are merged into a single fetch set;
* the loop starts with the first observer, fetches immediately and then every
  ``poll_interval`` seconds, and stops when the last observer leaves;
* fetch attempts closer together than ``min_fetch_interval`` are skipped;
* failures keep the existing price table and only flip the connection state,
  so observers never see an exception and never lose data they already had.

Everything runs on the event loop thread. The provider call is the only
suspension point, so table updates and notification fan-out need no locking.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Coroutine, Iterable
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any

from loguru import logger

from pricepulse.core.config import CurrencyConfig, StoreConfig
from pricepulse.core.exceptions import ErrorCode, ProviderError
from pricepulse.core.models import ConnectionState, PriceRecord, PriceSnapshot, TickerSnapshot, normalize_symbols
from pricepulse.core.monitoring import MetricsCollector, get_metrics_collector
from pricepulse.core.providers import MarketDataProvider

PriceObserver = Callable[[PriceSnapshot], None]
Unsubscribe = Callable[[], None]


class _Subscription:
    __slots__ = ("callback",)

    def __init__(self, callback: PriceObserver):
        self.callback = callback


class PriceAggregationStore:
    """Shared price table fed by one de-duplicated polling loop."""

    def __init__(
        self,
        provider: MarketDataProvider,
        *,
        source: str | None = None,
        config: StoreConfig | None = None,
        currency: CurrencyConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
        metrics: MetricsCollector | None = None,
    ):
        self.provider = provider
        self.source = source or provider.name
        self.config = config or StoreConfig()
        self.currency = currency or CurrencyConfig()
        self._clock = clock
        self._metrics = metrics or get_metrics_collector()
        self._log = logger.bind(source=self.source)

        self._records: dict[str, PriceRecord] = {}
        self._symbols: set[str] = set()
        self._subscriptions: list[_Subscription] = []
        self._state = ConnectionState.CONNECTING
        self._error: str | None = None
        self._update_count = 0
        self._snapshot = PriceSnapshot(source=self.source)

        # debounce bookkeeping and request fencing
        self._last_attempt: float | None = None
        self._generation = 0

        self._loop_task: asyncio.Task[None] | None = None
        self._tasks: set[asyncio.Task[Any]] = set()
        self._cycle_done = asyncio.Event()

    # ------------------------------------------------------------------
    # read side
    # ------------------------------------------------------------------

    def get_snapshot(self) -> PriceSnapshot:
        """Return the current immutable view of the store."""
        return self._snapshot

    def get_price(self, symbol: str) -> PriceRecord | None:
        return self._snapshot.get(symbol)

    @property
    def tracked_symbols(self) -> frozenset[str]:
        return frozenset(self._symbols)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    @property
    def is_running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def generation(self) -> int:
        return self._generation

    # ------------------------------------------------------------------
    # subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, callback: PriceObserver) -> Unsubscribe:
        """Register ``callback`` and return a function that deregisters it.

        The callback receives the new :class:`PriceSnapshot` synchronously on
        every state change. The first subscriber starts the polling loop when
        symbols have been requested; this needs a running event loop.
        """
        subscription = _Subscription(callback)
        self._subscriptions.append(subscription)
        self._metrics.set_subscribers(self.source, len(self._subscriptions))
        self._ensure_running()

        def unsubscribe() -> None:
            self._remove_subscription(subscription)

        return unsubscribe

    def _remove_subscription(self, subscription: _Subscription) -> None:
        try:
            self._subscriptions.remove(subscription)
        except ValueError:
            return
        self._metrics.set_subscribers(self.source, len(self._subscriptions))
        if not self._subscriptions:
            self._stop_loop("last subscriber detached")

    def request_symbols(self, symbols: Iterable[str] | str) -> frozenset[str]:
        """Merge ``symbols`` into the tracked set and return the newly added ones.

        An empty or all-invalid request is ignored.
        """
        if isinstance(symbols, str):
            symbols = [symbols]
        requested = normalize_symbols(symbols)
        if not requested:
            self._log.bind(error_code=ErrorCode.INVALID_SUBSCRIPTION.value).debug(
                "Ignoring empty or invalid symbol request"
            )
            return frozenset()

        added = requested - self._symbols
        if not added:
            self._ensure_running()
            return frozenset()

        self._symbols |= added
        self._rebuild_snapshot()
        self._log.debug(f"Tracking {len(self._symbols)} symbols (+{','.join(sorted(added))})")
        if self.is_running:
            self._spawn(self._fetch_cycle())
        else:
            self._ensure_running()
        return frozenset(added)

    def recompute_symbols(self, symbols: Iterable[str]) -> frozenset[str]:
        """Replace the tracked set outright, which is the only way it shrinks."""
        requested = normalize_symbols(symbols)
        added = requested - self._symbols
        self._symbols = set(requested)
        self._rebuild_snapshot()
        if not self._symbols:
            self._stop_loop("no symbols tracked")
        elif added and self.is_running:
            self._spawn(self._fetch_cycle())
        else:
            self._ensure_running()
        return self.tracked_symbols

    # ------------------------------------------------------------------
    # loop lifecycle
    # ------------------------------------------------------------------

    def reconnect(self) -> None:
        """Restart fetching immediately with a clean connection state.

        Responses still in flight from before the reconnect are discarded when
        they arrive.
        """
        self._log.info("Reconnecting price store")
        self._generation += 1
        self._last_attempt = None
        self._cancel_loop_task()
        if self._subscriptions and self._symbols:
            self._start_loop()
        else:
            self._set_state(ConnectionState.CONNECTING, None)

    async def refresh(self) -> bool:
        """Run one fetch cycle now, subject to the debounce window.

        Returns ``True`` when the provider was called and its result applied.
        """
        if not self._symbols:
            return False
        return await asyncio.shield(self._spawn(self._fetch_cycle()))

    async def wait_for_cycle(self, timeout: float | None = None) -> PriceSnapshot:
        """Wait for the next completed fetch cycle, successful or not.

        Raises:
            TimeoutError: no cycle completed within ``timeout`` seconds
        """
        await asyncio.wait_for(self._cycle_done.wait(), timeout)
        return self._snapshot

    async def aclose(self) -> None:
        """Stop polling, drop observers and cancel outstanding fetches."""
        self._subscriptions.clear()
        self._metrics.set_subscribers(self.source, 0)
        self._stop_loop("store closed")
        pending = list(self._tasks)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    def _ensure_running(self) -> None:
        if self._subscriptions and self._symbols and not self.is_running:
            self._start_loop()

    def _start_loop(self) -> None:
        loop = asyncio.get_running_loop()
        self._set_state(ConnectionState.CONNECTING, None)
        self._loop_task = loop.create_task(self._run(), name=f"pricepulse-poll-{self.source}")
        self._log.info(f"Polling loop started (every {self.config.poll_interval}s)")

    def _cancel_loop_task(self) -> bool:
        task, self._loop_task = self._loop_task, None
        if task is None or task.done():
            return False
        task.cancel()
        return True

    def _stop_loop(self, reason: str) -> None:
        # in-flight requests are left to finish on their own
        if self._cancel_loop_task():
            self._log.info(f"Polling loop stopped: {reason}")

    async def _run(self) -> None:
        while True:
            await asyncio.shield(self._spawn(self._fetch_cycle()))
            await asyncio.sleep(self.config.poll_interval)

    def _spawn(self, coro: Coroutine[Any, Any, bool]) -> asyncio.Task[bool]:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # ------------------------------------------------------------------
    # fetch cycle
    # ------------------------------------------------------------------

    async def _fetch_cycle(self) -> bool:
        now = self._clock()
        if self._last_attempt is not None and now - self._last_attempt < self.config.min_fetch_interval:
            self._metrics.record_skipped(self.source)
            self._log.debug("Skipping fetch inside debounce window")
            return False

        symbols = sorted(self._symbols)
        if not symbols:
            return False

        self._last_attempt = now
        generation = self._generation
        started = time.perf_counter()
        try:
            tickers = await self.provider.tickers_multi(symbols)
        except ProviderError as exc:
            self._metrics.observe_fetch(self.source, time.perf_counter() - started, success=False)
            if self._is_stale(generation):
                return False
            self._log.bind(error_code=exc.error_code).warning(f"Price fetch failed: {exc.message}")
            self._fail(exc.message)
            return False
        except Exception as exc:
            self._metrics.observe_fetch(self.source, time.perf_counter() - started, success=False)
            if self._is_stale(generation):
                return False
            self._log.bind(error_code=ErrorCode.UNEXPECTED_ERROR.value).exception("Price fetch raised unexpectedly")
            self._fail(f"{type(exc).__name__}: {exc}")
            return False

        self._metrics.observe_fetch(self.source, time.perf_counter() - started)
        if self._is_stale(generation):
            return False
        self._apply(tickers)
        self._log.debug(f"Fetched {len(tickers)}/{len(symbols)} tickers (update #{self._update_count})")
        return True

    def _is_stale(self, generation: int) -> bool:
        if generation == self._generation:
            return False
        self._metrics.record_stale_response(self.source)
        self._log.info(f"Discarding response from generation {generation} (current {self._generation})")
        return True

    def _apply(self, tickers: Iterable[TickerSnapshot]) -> None:
        now = datetime.now(UTC)
        records = dict(self._records)
        for ticker in tickers:
            symbol = ticker.symbol.upper()
            previous = records.get(symbol)
            last_update = now if previous is None or now >= previous.last_update else previous.last_update
            records[symbol] = PriceRecord(
                symbol=symbol,
                price_usd=ticker.last_price,
                price_local=self.currency.to_local(ticker.last_price),
                change_24h_percent=ticker.price_change_percent,
                last_update=last_update,
            )
        self._records = records
        self._update_count += 1
        self._set_state(ConnectionState.LIVE, None)
        self._signal_cycle()

    def _fail(self, message: str) -> None:
        self._set_state(ConnectionState.DEGRADED, message)
        self._signal_cycle()

    def _signal_cycle(self) -> None:
        done, self._cycle_done = self._cycle_done, asyncio.Event()
        done.set()

    # ------------------------------------------------------------------
    # publication
    # ------------------------------------------------------------------

    def _set_state(self, state: ConnectionState, error: str | None) -> None:
        self._state = state
        self._error = error
        self._rebuild_snapshot()
        self._notify()

    def _rebuild_snapshot(self) -> None:
        self._snapshot = PriceSnapshot(
            source=self.source,
            prices=MappingProxyType(dict(self._records)),
            connection_state=self._state,
            error_message=self._error,
            update_count=self._update_count,
            tracked_symbols=frozenset(self._symbols),
        )

    def _notify(self) -> None:
        snapshot = self._snapshot
        for subscription in list(self._subscriptions):
            try:
                subscription.callback(snapshot)
            except Exception:
                self._log.opt(exception=True).error(f"Price observer {subscription.callback!r} failed")

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(source='{self.source}', state={self._state.value}, "
            f"symbols={len(self._symbols)}, subscribers={len(self._subscriptions)})"
        )
