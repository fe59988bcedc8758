"""Adapter layer package for market-data integration boundaries."""

from .interfaces import MarketDataBar, MarketDataPort, PriceStreamPort, PriceTick
from .market_data_errors import (
	MarketDataAdapterError,
	MarketDataConnectionError,
	MarketDataEmptyRangeError,
	MarketDataResponseError,
	MarketDataTimeoutError,
)
from .price_stream import WebSocketPriceStreamAdapter, adapter_decode_tick_message
from .yahoo_chart import YahooChartAdapter

__all__ = [
	"MarketDataAdapterError",
	"MarketDataBar",
	"MarketDataConnectionError",
	"MarketDataEmptyRangeError",
	"MarketDataPort",
	"MarketDataResponseError",
	"MarketDataTimeoutError",
	"PriceStreamPort",
	"PriceTick",
	"WebSocketPriceStreamAdapter",
	"YahooChartAdapter",
	"adapter_decode_tick_message",
]
