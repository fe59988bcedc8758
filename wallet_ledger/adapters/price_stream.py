"""Websocket adapter for the live price push feed."""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

import websockets

from .interfaces import PriceStreamPort, PriceTick

logger = logging.getLogger(__name__)


class WebSocketPriceStreamAdapter(PriceStreamPort):
    """Subscribe to a JSON tick feed and yield decoded price ticks."""

    def __init__(self, stream_url: str, symbol_suffix: str = ".SA", open_timeout_seconds: float = 10.0):
        """Initialize stream adapter.

        Args:
            stream_url: Websocket URL of the push feed.
            symbol_suffix: Exchange suffix used on the wire and stripped from ticks.
            open_timeout_seconds: Handshake timeout in seconds.

        Returns:
            None: Initializer does not return a value.

        Raises:
            ValueError: Raised when stream URL is blank or timeout is not positive.
        """

        normalized_url = stream_url.strip()
        if not normalized_url:
            raise ValueError("stream_url must not be blank")
        if open_timeout_seconds <= 0:
            raise ValueError("open_timeout_seconds must be > 0")

        self._stream_url = normalized_url
        self._symbol_suffix = symbol_suffix.strip()
        self._open_timeout_seconds = open_timeout_seconds

    async def adapter_stream_ticks(self, symbols: list[str]) -> AsyncIterator[PriceTick]:
        """Subscribe to live ticks for the given symbols.

        Args:
            symbols: Ledger symbols without exchange suffix.

        Returns:
            AsyncIterator[PriceTick]: Ticks in arrival order until the stream closes.

        Raises:
            ConnectionError: Raised when the stream cannot be established or drops.
        """

        subscription = {"subscribe": [f"{symbol}{self._symbol_suffix}" for symbol in symbols]}
        try:
            async with websockets.connect(self._stream_url, open_timeout=self._open_timeout_seconds) as connection:
                await connection.send(json.dumps(subscription))
                logger.info("Subscribed to price stream url=%s symbols=%d", self._stream_url, len(symbols))
                async for message in connection:
                    tick = adapter_decode_tick_message(message, symbol_suffix=self._symbol_suffix)
                    if tick is not None:
                        yield tick
        except (OSError, TimeoutError, websockets.exceptions.WebSocketException) as error:
            raise ConnectionError(f"price stream failed url={self._stream_url}") from error


def adapter_decode_tick_message(message: str | bytes, symbol_suffix: str = ".SA") -> PriceTick | None:
    """Decode one feed message into a tick.

    Messages that are not JSON documents or lack a symbol or finite price are
    ignored; the feed interleaves heartbeats with price updates.

    Args:
        message: Raw websocket frame payload.
        symbol_suffix: Exchange suffix stripped from the wire symbol.

    Returns:
        PriceTick | None: Decoded tick, or None for non-price frames.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    try:
        document = json.loads(message)
    except (TypeError, ValueError):
        logger.debug("Ignoring non-JSON price stream frame")
        return None
    if not isinstance(document, dict):
        return None

    wire_symbol = document.get("id") or document.get("symbol")
    if not isinstance(wire_symbol, str) or not wire_symbol.strip():
        return None
    symbol = wire_symbol.strip()
    if symbol_suffix and symbol.endswith(symbol_suffix):
        symbol = symbol[: -len(symbol_suffix)]

    price = _adapter_decode_price(document.get("price"))
    if price is None:
        return None

    return PriceTick(symbol=symbol, price=price, time=_adapter_decode_tick_time(document.get("time")))


def _adapter_decode_price(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    return price if price.is_finite() else None


def _adapter_decode_tick_time(value: Any) -> datetime | None:
    """Decode epoch milliseconds into UTC; other shapes yield None."""

    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return None
    try:
        return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)
    except (ValueError, OverflowError, OSError):
        return None


__all__ = ["WebSocketPriceStreamAdapter", "adapter_decode_tick_message"]
