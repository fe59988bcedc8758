"""Shared event-document decoding helpers.

This module centralizes the document contract of persisted ledger events and
snapshot operation lists, so the db layer and tests decode the same shapes.
Any contract violation raises `DecodeError`.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from .errors import DecodeError
from .models import (
    ZERO,
    Event,
    EventDetail,
    OperationKind,
    RecentOperation,
    SplitKind,
    StockOperation,
    StockSplit,
)

EVENT_TYPE_STOCK_OPERATION = "stock-operation"
EVENT_TYPE_STOCK_SPLIT = "stock-split"


def domain_event_decode(
    symbol: str,
    time: datetime,
    event_type: str,
    detail_document: Any,
    event_id: str | None = None,
) -> Event:
    """Decode one persisted event document into a typed event.

    Args:
        symbol: Event symbol column value.
        time: Event timestamp column value.
        event_type: Detail variant tag.
        detail_document: JSON detail document.
        event_id: Optional persisted identifier.

    Returns:
        Event: Typed immutable event.

    Raises:
        DecodeError: Raised when any field violates the event document contract.
    """

    if not isinstance(symbol, str) or not symbol.strip():
        raise DecodeError("event symbol must be a non-empty string")
    if not isinstance(detail_document, dict):
        raise DecodeError(f"event detail must be a document for symbol={symbol}")

    return Event(
        symbol=symbol.strip(),
        time=domain_normalize_utc_timestamp(time, "event.time"),
        detail=domain_event_decode_detail(event_type, detail_document),
        event_id=event_id,
    )


def domain_event_decode_detail(event_type: str, detail_document: dict[str, Any]) -> EventDetail:
    """Decode the tagged detail variant of one event.

    Args:
        event_type: Detail variant tag.
        detail_document: JSON detail document.

    Returns:
        EventDetail: Operation or split detail.

    Raises:
        DecodeError: Raised when the tag is unknown or the document is malformed.
    """

    if event_type == EVENT_TYPE_STOCK_OPERATION:
        portfolios = detail_document.get("portfolios") or []
        if not isinstance(portfolios, list) or not all(isinstance(item, str) for item in portfolios):
            raise DecodeError("detail.portfolios must be a list of strings")
        broker = detail_document.get("broker")
        if broker is not None and not isinstance(broker, str):
            raise DecodeError("detail.broker must be a string when provided")

        return StockOperation(
            kind=_domain_decode_enum(OperationKind, detail_document.get("type"), "detail.type"),
            price=domain_parse_decimal(detail_document.get("price"), "detail.price"),
            quantity=domain_parse_decimal(detail_document.get("quantity"), "detail.quantity"),
            fees=domain_parse_decimal(detail_document.get("fees", "0"), "detail.fees"),
            broker=broker,
            portfolios=frozenset(portfolios),
        )

    if event_type == EVENT_TYPE_STOCK_SPLIT:
        factor = domain_parse_decimal(detail_document.get("factor"), "detail.factor")
        if factor <= ZERO:
            raise DecodeError("detail.factor must be > 0")
        return StockSplit(
            kind=_domain_decode_enum(SplitKind, detail_document.get("type"), "detail.type"),
            factor=factor,
        )

    raise DecodeError(f"unsupported event_type={event_type}")


def domain_encode_recent_operations(operations: tuple[RecentOperation, ...]) -> list[dict[str, str]]:
    """Encode recent operations into the persisted JSON document list.

    Args:
        operations: Recent operations to encode.

    Returns:
        list[dict[str, str]]: JSON-compatible documents.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    return [
        {
            "time": operation.time.isoformat(),
            "type": operation.kind.value,
            "price": str(operation.price),
            "quantity": str(operation.quantity),
        }
        for operation in operations
    ]


def domain_decode_recent_operations(documents: Any) -> tuple[RecentOperation, ...]:
    """Decode a persisted recent-operations document list.

    Args:
        documents: JSON document list, or None for rows without operations.

    Returns:
        tuple[RecentOperation, ...]: Decoded operations in stored order.

    Raises:
        DecodeError: Raised when the list or any document is malformed.
    """

    if documents is None:
        return ()
    if not isinstance(documents, list):
        raise DecodeError("recent_operations must be a list")

    operations: list[RecentOperation] = []
    for document in documents:
        if not isinstance(document, dict):
            raise DecodeError("recent_operations entries must be documents")
        raw_time = document.get("time")
        if not isinstance(raw_time, str):
            raise DecodeError("recent_operations.time must be an ISO-8601 string")
        try:
            parsed_time = datetime.fromisoformat(raw_time)
        except ValueError as error:
            raise DecodeError(f"invalid recent_operations.time={raw_time}") from error

        operations.append(
            RecentOperation(
                time=domain_normalize_utc_timestamp(parsed_time, "recent_operations.time"),
                kind=_domain_decode_enum(OperationKind, document.get("type"), "recent_operations.type"),
                price=domain_parse_decimal(document.get("price"), "recent_operations.price"),
                quantity=domain_parse_decimal(document.get("quantity"), "recent_operations.quantity"),
            )
        )
    return tuple(operations)


def domain_parse_decimal(value: Any, field_name: str) -> Decimal:
    """Parse one numeric document value into a finite Decimal.

    Args:
        value: Candidate numeric value (int, float, str or Decimal).
        field_name: Field name for deterministic error text.

    Returns:
        Decimal: Parsed finite value.

    Raises:
        DecodeError: Raised when value is missing, non-numeric or not finite.
    """

    if value is None or isinstance(value, bool):
        raise DecodeError(f"{field_name} must be numeric")
    try:
        parsed_value = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as error:
        raise DecodeError(f"{field_name} must be numeric") from error

    if not parsed_value.is_finite():
        raise DecodeError(f"{field_name} must be finite")
    return parsed_value


def domain_normalize_utc_timestamp(value: Any, field_name: str) -> datetime:
    """Normalize one timestamp to offset-aware UTC.

    Naive timestamps are interpreted as UTC, matching how the store persists them.

    Args:
        value: Candidate datetime value.
        field_name: Field name for deterministic error text.

    Returns:
        datetime: Offset-aware UTC timestamp.

    Raises:
        DecodeError: Raised when value is not a datetime.
    """

    if not isinstance(value, datetime):
        raise DecodeError(f"{field_name} must be a datetime")
    if value.tzinfo is None or value.utcoffset() is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _domain_decode_enum(enum_type, value: Any, field_name: str):
    """Decode one enum member from its persisted text value."""

    if not isinstance(value, str):
        raise DecodeError(f"{field_name} must be a string")
    try:
        return enum_type(value.strip().lower())
    except ValueError as error:
        raise DecodeError(f"unsupported {field_name}={value}") from error


__all__ = [
    "EVENT_TYPE_STOCK_OPERATION",
    "EVENT_TYPE_STOCK_SPLIT",
    "domain_event_decode",
    "domain_event_decode_detail",
    "domain_encode_recent_operations",
    "domain_decode_recent_operations",
    "domain_parse_decimal",
    "domain_normalize_utc_timestamp",
]
