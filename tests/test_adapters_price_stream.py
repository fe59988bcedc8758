"""Regression tests for live price stream frame decoding."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from wallet_ledger.adapters import WebSocketPriceStreamAdapter, adapter_decode_tick_message


def test_adapters_decode_tick_strips_suffix_and_parses_time() -> None:
    """Decode a price frame into a tick keyed by the ledger symbol."""

    message = json.dumps({"id": "PETR4.SA", "price": 30.15, "time": 1586304000000})

    tick = adapter_decode_tick_message(message)

    assert tick is not None
    assert tick.symbol == "PETR4"
    assert tick.price == Decimal("30.15")
    assert tick.time == datetime(2020, 4, 8, tzinfo=timezone.utc)


def test_adapters_decode_tick_accepts_symbol_key_and_bytes() -> None:
    """Accept the `symbol` key and byte frames without a timestamp."""

    tick = adapter_decode_tick_message(b'{"symbol": "VALE3", "price": "70.5"}')

    assert tick is not None
    assert tick.symbol == "VALE3"
    assert tick.price == Decimal("70.5")
    assert tick.time is None


@pytest.mark.parametrize(
    "message",
    [
        "not json",
        "[]",
        json.dumps({"type": "heartbeat"}),
        json.dumps({"id": "PETR4.SA"}),
        json.dumps({"id": "PETR4.SA", "price": "NaN"}),
        json.dumps({"id": "PETR4.SA", "price": True}),
    ],
)
def test_adapters_decode_tick_ignores_non_price_frames(message: str) -> None:
    """Return None for frames that carry no usable price."""

    assert adapter_decode_tick_message(message) is None


def test_adapters_price_stream_rejects_invalid_config() -> None:
    """Reject blank URL and non-positive handshake timeout."""

    with pytest.raises(ValueError):
        WebSocketPriceStreamAdapter(stream_url=" ")
    with pytest.raises(ValueError):
        WebSocketPriceStreamAdapter(stream_url="wss://example.test/", open_timeout_seconds=0)
