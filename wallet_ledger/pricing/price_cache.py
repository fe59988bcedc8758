"""In-memory live price map fed by the push price stream."""

from __future__ import annotations

import asyncio
import logging
import threading
from decimal import Decimal

from wallet_ledger.adapters import PriceStreamPort, PriceTick
from wallet_ledger.db import EventRepositoryPort

logger = logging.getLogger(__name__)


class LivePriceCache:
    """Latest streamed price per symbol.

    One daemon thread runs an asyncio consumer for every known symbol. It is
    started once, reconnects after stream errors and is never cancelled.
    Lookups never block on the stream.
    """

    def __init__(
        self,
        stream: PriceStreamPort,
        event_repository: EventRepositoryPort,
        reconnect_seconds: float = 2.0,
    ):
        """Initialize live price cache.

        Args:
            stream: Push price feed adapter.
            event_repository: Event repository used to list symbols to subscribe.
            reconnect_seconds: Delay before reconnecting a dropped stream.

        Returns:
            None: Initializer does not return values.

        Raises:
            ValueError: Raised when a dependency or delay is invalid.
        """

        if stream is None:
            raise ValueError("stream must not be None")
        if event_repository is None:
            raise ValueError("event_repository must not be None")
        if reconnect_seconds < 0:
            raise ValueError("reconnect_seconds must be >= 0")

        self._stream = stream
        self._event_repository = event_repository
        self._reconnect_seconds = reconnect_seconds
        self._prices: dict[str, Decimal] = {}
        self._prices_guard = threading.Lock()
        self._start_guard = threading.Lock()
        self._thread: threading.Thread | None = None

    def price_cache_start(self) -> bool:
        """Start the stream consumer thread once.

        Returns:
            bool: True when this call started the consumer.

        Raises:
            StorageError: Raised when listing symbols fails.
        """

        with self._start_guard:
            if self._thread is not None:
                return False

            symbols = self._event_repository.db_event_distinct_symbols(None)
            if not symbols:
                logger.info("No symbols to stream; live price cache not started")
                return False

            self._thread = threading.Thread(
                target=asyncio.run,
                args=(self._price_cache_run(symbols),),
                name="price-stream",
                daemon=True,
            )
            self._thread.start()
            logger.info("Live price cache started symbols=%d", len(symbols))
            return True

    def price_cache_get_current_price(self, symbol: str) -> Decimal | None:
        """Return the latest streamed price, or None when the symbol has none."""

        with self._prices_guard:
            return self._prices.get(symbol)

    def price_cache_update(self, tick: PriceTick) -> None:
        """Store one tick as the latest price of its symbol."""

        logger.debug("Price tick symbol=%s price=%s time=%s", tick.symbol, tick.price, tick.time)
        with self._prices_guard:
            self._prices[tick.symbol] = tick.price

    async def price_cache_consume_connection(self, symbols: list[str]) -> None:
        """Consume one stream connection until it ends or drops.

        Args:
            symbols: Symbols to subscribe.

        Returns:
            None: Prices are stored as side effect.

        Raises:
            RuntimeError: Stream failures are logged instead of raised.
        """

        try:
            async for tick in self._stream.adapter_stream_ticks(symbols):
                self.price_cache_update(tick)
        except ConnectionError as error:
            logger.warning("Price stream disconnected: %s", error)

    async def _price_cache_run(self, symbols: list[str]) -> None:
        while True:
            await self.price_cache_consume_connection(symbols)
            logger.info("Reconnecting price stream in %.1fs", self._reconnect_seconds)
            await asyncio.sleep(self._reconnect_seconds)


__all__ = ["LivePriceCache"]
