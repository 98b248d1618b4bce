"""Consumer adapter binding an observer's lifecycle to a price store."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable, Iterable

from loguru import logger

from pricepulse.core.models import PriceRecord, PriceSnapshot, normalize_symbols

from .aggregation import PriceAggregationStore, Unsubscribe

DEFAULT_BUFFER_SIZE = 16


class PriceConsumer:
    """One independent observer of a :class:`PriceAggregationStore`.

    ``attach`` requests the consumer's symbols and subscribes; ``detach``
    unsubscribes. Detaching before the first fetch completed is safe, and
    detaching twice is a no-op.

    Snapshots are buffered only while :meth:`updates` is being iterated, and at
    most ``buffer_size`` of them; a slow reader loses the oldest ones first.

    Example:
        >>> async with PriceConsumer(store, ["BTC", "ETH"]) as consumer:
        ...     async for snapshot in consumer.updates():
        ...         print(snapshot.get("BTC"))
    """

    def __init__(
        self,
        store: PriceAggregationStore,
        symbols: Iterable[str] = (),
        callback: Callable[[PriceSnapshot], None] | None = None,
        *,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
    ):
        if buffer_size < 1:
            raise ValueError("buffer_size must be at least 1")
        self.store = store
        self.symbols = normalize_symbols(symbols)
        self.callback = callback
        self.buffer_size = buffer_size
        self._unsubscribe: Unsubscribe | None = None
        self._queue: asyncio.Queue[PriceSnapshot] | None = None

    @property
    def attached(self) -> bool:
        return self._unsubscribe is not None

    @property
    def snapshot(self) -> PriceSnapshot:
        return self.store.get_snapshot()

    @property
    def pending_updates(self) -> int:
        """Snapshots buffered for :meth:`updates` but not yet read."""
        return self._queue.qsize() if self._queue is not None else 0

    def price(self, symbol: str) -> PriceRecord | None:
        return self.store.get_price(symbol)

    def attach(self) -> "PriceConsumer":
        if self._unsubscribe is not None:
            return self
        self.store.request_symbols(self.symbols)
        self._unsubscribe = self.store.subscribe(self._on_update)
        logger.bind(source=self.store.source).debug(f"Consumer attached for {sorted(self.symbols)}")
        return self

    def detach(self) -> None:
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is not None:
            unsubscribe()
            logger.bind(source=self.store.source).debug("Consumer detached")

    def update_symbols(self, symbols: Iterable[str]) -> None:
        """Change the symbol list; the store merges it into its fetch set."""
        self.symbols = normalize_symbols(symbols)
        if self._unsubscribe is not None:
            self.store.request_symbols(self.symbols)

    def _on_update(self, snapshot: PriceSnapshot) -> None:
        queue = self._queue
        if queue is not None:
            if queue.full():
                queue.get_nowait()
                logger.bind(source=self.store.source).debug("Consumer buffer full, dropping oldest snapshot")
            queue.put_nowait(snapshot)
        if self.callback is not None:
            self.callback(snapshot)

    async def updates(self) -> AsyncIterator[PriceSnapshot]:
        """Yield the current snapshot, then every later one while attached.

        A new iteration takes over the buffer from any earlier one.
        """
        queue: asyncio.Queue[PriceSnapshot] = asyncio.Queue(maxsize=self.buffer_size)
        queue.put_nowait(self.store.get_snapshot())
        self._queue = queue
        try:
            while self._unsubscribe is not None or not queue.empty():
                yield await queue.get()
        finally:
            if self._queue is queue:
                self._queue = None

    async def __aenter__(self) -> "PriceConsumer":
        return self.attach()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.detach()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(source='{self.store.source}', symbols={sorted(self.symbols)}, attached={self.attached})"
