"""Pricing layer package for daily price backfill and live prices."""

from .historical_service import HistoricalPriceService, HistoricalRefreshSummary
from .price_cache import LivePriceCache

__all__ = [
	"HistoricalPriceService",
	"HistoricalRefreshSummary",
	"LivePriceCache",
]
