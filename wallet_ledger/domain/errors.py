"""Project-native typed exceptions shared across ledger layers."""

from __future__ import annotations


class WalletLedgerError(Exception):
    """Base exception for ledger-engine failures."""


class StorageError(WalletLedgerError, RuntimeError):
    """Store access failure while reading or writing persisted records."""


class DecodeError(WalletLedgerError, ValueError):
    """Persisted record could not be decoded into a domain model."""


class NotFound(WalletLedgerError, LookupError):
    """Expected persisted record is missing."""


class ExternalServiceError(WalletLedgerError, ConnectionError):
    """Market-data source failure other than the recognized empty-range case."""


class InvalidLedgerState(WalletLedgerError, ValueError):
    """Ledger replay invariant violated.

    Attributes:
        symbol: Symbol whose replay failed.
    """

    def __init__(self, message: str, symbol: str | None = None):
        super().__init__(message)
        self.symbol = symbol


__all__ = [
    "WalletLedgerError",
    "StorageError",
    "DecodeError",
    "NotFound",
    "ExternalServiceError",
    "InvalidLedgerState",
]
