"""Yahoo-style chart endpoint adapter for daily price-bar retrieval."""

from __future__ import annotations

import random
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Final

import httpx

from .interfaces import MarketDataBar, MarketDataPort
from .market_data_errors import (
    MarketDataAdapterError,
    MarketDataConnectionError,
    MarketDataEmptyRangeError,
    MarketDataResponseError,
    MarketDataTimeoutError,
)


@dataclass(frozen=True)
class _AdapterRetryStrategy:
    """Immutable retry strategy config and calculation helpers.

    Attributes:
        retry_attempts: Number of request attempts.
        backoff_base_seconds: Base delay for exponential backoff.
        max_backoff_seconds: Exponential delay cap before jitter.
        jitter_min_multiplier: Minimum jitter multiplier.
        jitter_max_multiplier: Maximum jitter multiplier.
        random_unit_interval_provider: Provider returning value in [0.0, 1.0].
    """

    retry_attempts: int
    backoff_base_seconds: float
    max_backoff_seconds: float
    jitter_min_multiplier: float
    jitter_max_multiplier: float
    random_unit_interval_provider: Callable[[], float]

    def strategy_calculate_retry_wait_seconds(self, retry_index: int) -> float:
        """Calculate exponential retry wait with cap and jitter.

        Args:
            retry_index: Zero-based retry attempt index.

        Returns:
            float: Computed wait seconds before the retry.

        Raises:
            ValueError: Raised when retry index is negative.
            RuntimeError: Raised when jitter provider returns out-of-range value.
        """

        if retry_index < 0:
            raise ValueError("retry_index must be >= 0")

        backoff_seconds = self.backoff_base_seconds * (2**retry_index)
        capped_backoff_seconds = min(backoff_seconds, self.max_backoff_seconds)
        return float(capped_backoff_seconds * self.strategy_calculate_jitter_multiplier())

    def strategy_calculate_jitter_multiplier(self) -> float:
        """Return jitter multiplier using configured min/max bounds.

        Returns:
            float: Jitter multiplier value.

        Raises:
            RuntimeError: Raised when jitter source returns value outside [0.0, 1.0].
        """

        random_ratio = float(self.random_unit_interval_provider())
        if random_ratio < 0.0 or random_ratio > 1.0:
            raise RuntimeError("random_unit_interval_provider must return a value in [0.0, 1.0]")

        jitter_span = self.jitter_max_multiplier - self.jitter_min_multiplier
        return self.jitter_min_multiplier + (random_ratio * jitter_span)


class YahooChartAdapter(MarketDataPort):
    """Adapter implementation for the `v8/finance/chart` daily-bar endpoint."""

    _USER_AGENT: Final[str] = "wallet-ledger/1.0 (Python/httpx)"
    _EMPTY_RANGE_MARKERS: Final[tuple[str, ...]] = (
        "no data found",
        "data doesn't exist",
        "data doesn't exist for startdate",
    )
    _RETRYABLE_STATUS_CODES: Final[frozenset[int]] = frozenset({429, 500, 502, 503, 504})

    def __init__(
        self,
        base_url: str = "https://query1.finance.yahoo.com",
        symbol_suffix: str = ".SA",
        request_timeout_seconds: float = 30.0,
        retry_attempts: int = 3,
        retry_backoff_base_seconds: float = 1.0,
        retry_max_backoff_seconds: float = 10.0,
        jitter_min_multiplier: float = 0.5,
        jitter_max_multiplier: float = 1.5,
        random_unit_interval_provider: Callable[[], float] | None = None,
        sleep: Callable[[float], None] | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize chart adapter.

        Args:
            base_url: Base endpoint URL of the chart service.
            symbol_suffix: Exchange suffix appended to ledger symbols.
            request_timeout_seconds: HTTP request timeout in seconds.
            retry_attempts: Number of attempts for throttled or failing requests.
            retry_backoff_base_seconds: Base retry delay used by exponential backoff.
            retry_max_backoff_seconds: Maximum retry delay cap before applying jitter.
            jitter_min_multiplier: Minimum jitter multiplier for computed retry delay.
            jitter_max_multiplier: Maximum jitter multiplier for computed retry delay.
            random_unit_interval_provider: Optional provider returning random values in [0.0, 1.0].
            sleep: Optional sleep function used between retries.
            transport: Optional httpx transport, used by tests to stub upstream responses.

        Returns:
            None: Initializer does not return a value.

        Raises:
            ValueError: Raised when required config values are invalid.
        """

        normalized_base_url = base_url.strip()
        if not normalized_base_url:
            raise ValueError("base_url must not be blank")
        if retry_attempts < 1:
            raise ValueError("retry_attempts must be >= 1")
        if retry_backoff_base_seconds < 0:
            raise ValueError("retry_backoff_base_seconds must be >= 0")
        if retry_max_backoff_seconds <= 0:
            raise ValueError("retry_max_backoff_seconds must be > 0")
        if jitter_min_multiplier <= 0:
            raise ValueError("jitter_min_multiplier must be > 0")
        if jitter_max_multiplier < jitter_min_multiplier:
            raise ValueError("jitter_max_multiplier must be >= jitter_min_multiplier")
        if request_timeout_seconds <= 0:
            raise ValueError("request_timeout_seconds must be > 0")

        self._base_url = normalized_base_url.rstrip("/")
        self._symbol_suffix = symbol_suffix.strip()
        self._request_timeout_seconds = request_timeout_seconds
        self._retry_strategy = _AdapterRetryStrategy(
            retry_attempts=retry_attempts,
            backoff_base_seconds=retry_backoff_base_seconds,
            max_backoff_seconds=retry_max_backoff_seconds,
            jitter_min_multiplier=jitter_min_multiplier,
            jitter_max_multiplier=jitter_max_multiplier,
            random_unit_interval_provider=random_unit_interval_provider or random.random,
        )
        self._sleep = sleep or time.sleep
        self._transport = transport

    def adapter_source_name(self) -> str:
        """Return stable adapter source label.

        Returns:
            str: Source identifier.

        Raises:
            RuntimeError: This implementation does not raise runtime errors.
        """

        return "yahoo_chart"

    def adapter_fetch_daily_bars(self, symbol: str, start: datetime, end: datetime) -> list[MarketDataBar]:
        """Fetch daily bars for one symbol over an inclusive time range.

        Args:
            symbol: Ledger symbol without exchange suffix.
            start: Offset-aware range start.
            end: Offset-aware range end.

        Returns:
            list[MarketDataBar]: Complete bars in upstream order.

        Raises:
            ValueError: Raised when inputs are invalid.
            MarketDataEmptyRangeError: Raised when upstream reports no data in range.
            MarketDataConnectionError: Raised for transport failures and non-success HTTP status.
            MarketDataTimeoutError: Raised when every attempt timed out.
            MarketDataResponseError: Raised when payload violates the chart contract.
        """

        normalized_symbol = symbol.strip()
        if not normalized_symbol:
            raise ValueError("symbol must not be blank")
        if start.tzinfo is None or end.tzinfo is None:
            raise ValueError("start and end must be offset-aware")
        if end < start:
            raise ValueError("end must be >= start")

        request_url = f"{self._base_url}/v8/finance/chart/{normalized_symbol}{self._symbol_suffix}"
        query_parameters = {
            "period1": str(int(start.timestamp())),
            "period2": str(int(end.timestamp())),
            "interval": "1d",
            "events": "history",
            "includePrePost": "false",
        }

        last_error: MarketDataAdapterError | None = None
        for retry_index in range(self._retry_strategy.retry_attempts):
            if retry_index > 0:
                wait_seconds = self._retry_strategy.strategy_calculate_retry_wait_seconds(retry_index=retry_index - 1)
                if wait_seconds > 0:
                    self._sleep(wait_seconds)

            try:
                response = self._adapter_http_get(url=request_url, query_parameters=query_parameters)
            except (MarketDataConnectionError, MarketDataTimeoutError) as error:
                last_error = error
                continue

            if response.status_code in self._RETRYABLE_STATUS_CODES:
                last_error = MarketDataConnectionError(
                    f"market-data upstream returned HTTP {response.status_code}",
                    error_code=str(response.status_code),
                )
                continue

            return self._adapter_parse_chart_response(response=response, symbol=normalized_symbol)

        if last_error is None:
            raise MarketDataConnectionError("market-data request was not attempted")
        raise last_error

    def _adapter_http_get(self, url: str, query_parameters: dict[str, str]) -> httpx.Response:
        """Execute one HTTP GET and return the raw response.

        Args:
            url: Endpoint URL.
            query_parameters: Query string parameters.

        Returns:
            httpx.Response: Response with body already read.

        Raises:
            MarketDataTimeoutError: Raised when the transport times out.
            MarketDataConnectionError: Raised for other transport failures.
        """

        try:
            with httpx.Client(
                timeout=self._request_timeout_seconds,
                headers={"User-Agent": self._USER_AGENT},
                transport=self._transport,
            ) as client:
                response = client.get(url, params=query_parameters)
                response.read()
        except httpx.TimeoutException as error:
            raise MarketDataTimeoutError("market-data request timed out") from error
        except httpx.HTTPError as error:
            raise MarketDataConnectionError("market-data request failed") from error
        return response

    def _adapter_parse_chart_response(self, response: httpx.Response, symbol: str) -> list[MarketDataBar]:
        """Parse chart payload into bars, mapping upstream error shapes.

        Args:
            response: Upstream HTTP response.
            symbol: Requested ledger symbol, for error text.

        Returns:
            list[MarketDataBar]: Parsed complete bars.

        Raises:
            MarketDataEmptyRangeError: Raised for the recognized no-data error shape.
            MarketDataConnectionError: Raised for non-success status without a chart error.
            MarketDataResponseError: Raised when payload is not a chart document.
        """

        try:
            payload = response.json()
        except ValueError as error:
            if response.status_code >= 400:
                raise MarketDataConnectionError(
                    f"market-data upstream returned HTTP {response.status_code}",
                    error_code=str(response.status_code),
                ) from error
            raise MarketDataResponseError(f"market-data payload is not JSON for symbol={symbol}") from error

        chart = payload.get("chart") if isinstance(payload, dict) else None
        if not isinstance(chart, dict):
            if response.status_code >= 400:
                raise MarketDataConnectionError(
                    f"market-data upstream returned HTTP {response.status_code}",
                    error_code=str(response.status_code),
                )
            raise MarketDataResponseError(f"market-data payload missing chart for symbol={symbol}")

        chart_error = chart.get("error")
        if chart_error:
            error_code, error_description = self._adapter_extract_chart_error(chart_error)
            if any(marker in error_description.lower() for marker in self._EMPTY_RANGE_MARKERS):
                raise MarketDataEmptyRangeError(
                    f"no market data in range for symbol={symbol}: {error_description}",
                    error_code=error_code,
                )
            raise MarketDataResponseError(
                f"market-data request rejected for symbol={symbol}: code={error_code}, message={error_description}",
                error_code=error_code,
            )

        if response.status_code >= 400:
            raise MarketDataConnectionError(
                f"market-data upstream returned HTTP {response.status_code}",
                error_code=str(response.status_code),
            )

        results = chart.get("result") or []
        if not isinstance(results, list):
            raise MarketDataResponseError(f"market-data chart.result must be a list for symbol={symbol}")
        if not results:
            return []

        return self._adapter_build_bars(result=results[0], symbol=symbol)

    def _adapter_build_bars(self, result: Any, symbol: str) -> list[MarketDataBar]:
        """Zip chart timestamp and quote arrays into complete bars.

        Entries with a missing open, high, low or close are skipped; upstream
        emits them for suspended sessions.

        Args:
            result: First chart result document.
            symbol: Requested ledger symbol, for error text.

        Returns:
            list[MarketDataBar]: Complete bars.

        Raises:
            MarketDataResponseError: Raised when arrays are missing or inconsistent.
        """

        if not isinstance(result, dict):
            raise MarketDataResponseError(f"market-data chart result must be a document for symbol={symbol}")

        timestamps = result.get("timestamp") or []
        if not timestamps:
            return []

        try:
            quote = result["indicators"]["quote"][0]
        except (KeyError, IndexError, TypeError) as error:
            raise MarketDataResponseError(f"market-data quote indicators missing for symbol={symbol}") from error

        columns = [quote.get(name) or [] for name in ("open", "high", "low", "close", "volume")]
        if any(len(column) != len(timestamps) for column in columns[:4]):
            raise MarketDataResponseError(f"market-data quote arrays length mismatch for symbol={symbol}")

        volumes = columns[4] if len(columns[4]) == len(timestamps) else [None] * len(timestamps)
        bars: list[MarketDataBar] = []
        for index, timestamp_value in enumerate(timestamps):
            open_price, high_price, low_price, close_price = (column[index] for column in columns[:4])
            if None in (open_price, high_price, low_price, close_price):
                continue
            bars.append(
                MarketDataBar(
                    time=datetime.fromtimestamp(int(timestamp_value), tz=timezone.utc),
                    open=_adapter_to_decimal(open_price),
                    high=_adapter_to_decimal(high_price),
                    low=_adapter_to_decimal(low_price),
                    close=_adapter_to_decimal(close_price),
                    volume=int(volumes[index] or 0),
                )
            )
        return bars

    def _adapter_extract_chart_error(self, chart_error: Any) -> tuple[str, str]:
        """Extract normalized error code and description from a chart error node.

        Args:
            chart_error: Chart error document or text.

        Returns:
            tuple[str, str]: Error code and description.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        if isinstance(chart_error, dict):
            error_code = str(chart_error.get("code") or "UNKNOWN").strip()
            error_description = str(chart_error.get("description") or "").strip()
            return error_code, error_description
        return "UNKNOWN", str(chart_error).strip()


def _adapter_to_decimal(value: Any) -> Decimal:
    """Convert one JSON number to Decimal without binary float artifacts."""

    return Decimal(str(value))


__all__ = ["YahooChartAdapter"]
