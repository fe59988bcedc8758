"""Typed domain models shared across runtime layers.

Events are read-only inputs owned by external CRUD collaborators. Positions are
append-only snapshots produced by the ledger engine, and asset days are daily
price bars written only by the historical price service.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum


ZERO = Decimal("0")


class OperationKind(str, Enum):
    """Stock operation direction."""

    PURCHASE = "purchase"
    SALE = "sale"


class SplitKind(str, Enum):
    """Stock split direction."""

    SPLIT = "split"
    REVERSE_SPLIT = "reverse-split"


@dataclass(frozen=True)
class HealthStatus:
    """Health response contract used by health-check surfaces.

    Attributes:
        status: Overall status text for service health.
        detail: Additional message suitable for operational diagnostics.
    """

    status: str
    detail: str


@dataclass(frozen=True)
class StockOperation:
    """Purchase or sale detail of one ledger event.

    Attributes:
        kind: Operation direction.
        price: Unit price of the operation.
        quantity: Positive traded quantity.
        fees: Fees charged for the operation.
        broker: Optional broker identifier.
        portfolios: Portfolio identifiers the operation belongs to.
    """

    kind: OperationKind
    price: Decimal
    quantity: Decimal
    fees: Decimal = ZERO
    broker: str | None = None
    portfolios: frozenset[str] = frozenset()


@dataclass(frozen=True)
class StockSplit:
    """Split or reverse-split detail of one ledger event.

    Attributes:
        kind: Split direction.
        factor: Positive split factor.
    """

    kind: SplitKind
    factor: Decimal


EventDetail = StockOperation | StockSplit


@dataclass(frozen=True)
class Event:
    """One immutable ledger event for a symbol.

    Attributes:
        symbol: Asset symbol.
        time: Offset-aware UTC event timestamp.
        detail: Operation or split detail.
        event_id: Optional persisted identifier.
    """

    symbol: str
    time: datetime
    detail: EventDetail
    event_id: str | None = None


@dataclass(frozen=True)
class RecentOperation:
    """Stock operation reported by the first snapshot that covers it.

    Attributes:
        time: Operation timestamp.
        kind: Operation direction.
        price: Unit price.
        quantity: Traded quantity.
    """

    time: datetime
    kind: OperationKind
    price: Decimal
    quantity: Decimal


@dataclass(frozen=True)
class Position:
    """Point-in-time ownership summary for a symbol.

    Attributes:
        symbol: Asset symbol.
        time: Offset-aware UTC timestamp this state refers to.
        portfolio_id: Optional portfolio scope; None means all portfolios.
        quantity: Held quantity.
        cost_basis: Amount paid for the held quantity.
        average_price: Cost basis divided by quantity, carried forward when undefined.
        current_price: Latest known market price.
        gain: Unrealized gain at current price.
        realized: Cumulative realized gain from sales.
        recent_operations: Operations not reported by an earlier snapshot.
        position_id: Display-only sequential identifier, never persisted.
    """

    symbol: str
    time: datetime
    portfolio_id: str | None = None
    quantity: Decimal = ZERO
    cost_basis: Decimal = ZERO
    average_price: Decimal = ZERO
    current_price: Decimal = ZERO
    gain: Decimal = ZERO
    realized: Decimal = ZERO
    recent_operations: tuple[RecentOperation, ...] = field(default_factory=tuple)
    position_id: int | None = None


@dataclass(frozen=True)
class AssetDay:
    """One daily OHLCV price bar for a symbol.

    Attributes:
        symbol: Asset symbol.
        time: Offset-aware UTC bar timestamp.
        open: Opening price.
        high: Highest price.
        low: Lowest price.
        close: Closing price.
        volume: Traded volume.
    """

    symbol: str
    time: datetime
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: int


def domain_serialize_position(position: Position) -> dict[str, object]:
    """Serialize one position to a JSON-compatible payload.

    Args:
        position: Position to serialize.

    Returns:
        dict[str, object]: JSON-serializable position payload.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    return {
        "id": position.position_id,
        "symbol": position.symbol,
        "portfolio_id": position.portfolio_id,
        "time": position.time.isoformat(),
        "quantity": str(position.quantity),
        "cost_basis": str(position.cost_basis),
        "average_price": str(position.average_price),
        "current_price": str(position.current_price),
        "gain": str(position.gain),
        "realized": str(position.realized),
        "recent_operations": [domain_serialize_recent_operation(operation) for operation in position.recent_operations],
    }


def domain_serialize_recent_operation(operation: RecentOperation) -> dict[str, str]:
    """Serialize one recent operation to a JSON-compatible payload."""

    return {
        "time": operation.time.isoformat(),
        "type": operation.kind.value,
        "price": str(operation.price),
        "quantity": str(operation.quantity),
    }
