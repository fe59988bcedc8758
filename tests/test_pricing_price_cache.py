"""Regression tests for the live price cache."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from wallet_ledger.adapters import PriceTick
from wallet_ledger.domain import Event, OperationKind, StockOperation
from wallet_ledger.pricing import LivePriceCache


class _PriceStreamStub:
    """Price stream stub yielding predefined ticks, then optionally dropping."""

    def __init__(self, ticks: list[PriceTick], drop_after: bool = False) -> None:
        self._ticks = ticks
        self._drop_after = drop_after
        self.subscriptions: list[list[str]] = []

    async def adapter_stream_ticks(self, symbols: list[str]):
        """Yield configured ticks for one subscription."""

        self.subscriptions.append(list(symbols))
        for tick in self._ticks:
            await asyncio.sleep(0)
            yield tick
        if self._drop_after:
            raise ConnectionError("price stream failed")


def test_price_cache_stores_latest_tick_per_symbol(event_repository) -> None:
    """Keep the most recent streamed price of each symbol.

    Returns:
        None: Assertions validate cached prices.

    Raises:
        AssertionError: Raised when cache contents diverge.
    """

    stream = _PriceStreamStub(
        [
            PriceTick(symbol="PETR4", price=Decimal("30.10")),
            PriceTick(symbol="VALE3", price=Decimal("70")),
            PriceTick(symbol="PETR4", price=Decimal("30.25")),
        ]
    )
    cache = LivePriceCache(stream=stream, event_repository=event_repository)

    asyncio.run(cache.price_cache_consume_connection(["PETR4", "VALE3"]))

    assert cache.price_cache_get_current_price("PETR4") == Decimal("30.25")
    assert cache.price_cache_get_current_price("VALE3") == Decimal("70")
    assert cache.price_cache_get_current_price("ITUB4") is None
    assert stream.subscriptions == [["PETR4", "VALE3"]]


def test_price_cache_logs_dropped_stream_without_raising(event_repository) -> None:
    """Swallow connection drops so the reconnect loop can continue."""

    stream = _PriceStreamStub([PriceTick(symbol="PETR4", price=Decimal("30"))], drop_after=True)
    cache = LivePriceCache(stream=stream, event_repository=event_repository)

    asyncio.run(cache.price_cache_consume_connection(["PETR4"]))

    assert cache.price_cache_get_current_price("PETR4") == Decimal("30")


def test_price_cache_start_requires_symbols_and_starts_once(event_repository) -> None:
    """Skip startup without symbols and start the consumer only once."""

    stream = _PriceStreamStub([])
    cache = LivePriceCache(stream=stream, event_repository=event_repository, reconnect_seconds=0.01)

    assert cache.price_cache_start() is False

    event_repository.events.append(
        Event(
            symbol="PETR4",
            time=datetime(2020, 1, 1, tzinfo=timezone.utc),
            detail=StockOperation(kind=OperationKind.PURCHASE, price=Decimal("1"), quantity=Decimal("1")),
        )
    )
    assert cache.price_cache_start() is True
    assert cache.price_cache_start() is False


def test_price_cache_rejects_invalid_dependencies(event_repository) -> None:
    """Reject missing stream and negative reconnect delay."""

    with pytest.raises(ValueError):
        LivePriceCache(stream=None, event_repository=event_repository)
    with pytest.raises(ValueError):
        LivePriceCache(stream=_PriceStreamStub([]), event_repository=event_repository, reconnect_seconds=-1)
