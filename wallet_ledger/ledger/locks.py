"""Process-local named mutual exclusion keyed by `(namespace, key)`."""

from __future__ import annotations

import logging
import threading
from typing import Final

logger = logging.getLogger(__name__)

LOCK_NAMESPACE_EVENT: Final[str] = "event"
LOCK_NAMESPACE_ASSET_DAY: Final[str] = "asset_day"


class LockToken:
    """Ownership of one `(namespace, key)` pair.

    Release is idempotent and may happen on a thread other than the acquirer,
    so a token can be handed to a background task that finishes the work.
    """

    def __init__(self, coordinator: "LockCoordinator", namespace: str, key: str):
        self._coordinator = coordinator
        self._namespace = namespace
        self._key = key
        self._released = False
        self._release_guard = threading.Lock()

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def key(self) -> str:
        return self._key

    @property
    def released(self) -> bool:
        return self._released

    def lock_release(self) -> None:
        """Release the pair; later calls are no-ops.

        Returns:
            None: Ownership is dropped as side effect.

        Raises:
            RuntimeError: This method does not raise runtime errors.
        """

        with self._release_guard:
            if self._released:
                return
            self._released = True
        self._coordinator._lock_release(self._namespace, self._key)

    def __enter__(self) -> "LockToken":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.lock_release()

    def __repr__(self) -> str:
        return f"LockToken(namespace={self._namespace!r}, key={self._key!r}, released={self._released})"


class LockCoordinator:
    """Registry of held `(namespace, key)` pairs guarded by one condition.

    Non-reentrant: a thread acquiring a pair it already holds blocks forever.
    Waiters poll with a fixed backoff and are also woken when any pair is
    released. There is no fairness and no deadlock detection.
    """

    def __init__(self, backoff_seconds: float = 0.05):
        """Initialize lock coordinator.

        Args:
            backoff_seconds: Maximum wait between acquisition attempts.

        Returns:
            None: Initializer does not return values.

        Raises:
            ValueError: Raised when backoff is not positive.
        """

        if backoff_seconds <= 0:
            raise ValueError("backoff_seconds must be > 0")
        self._backoff_seconds = backoff_seconds
        self._held: set[tuple[str, str]] = set()
        self._condition = threading.Condition()

    def lock_try_acquire(self, namespace: str, key: str) -> LockToken | None:
        """Acquire the pair when free, without blocking.

        Args:
            namespace: Lock namespace, usually a collection name.
            key: Lock key within the namespace, usually a symbol.

        Returns:
            LockToken | None: Token when acquired, None when the pair is held.

        Raises:
            ValueError: Raised when namespace or key is blank.
        """

        lock_pair = _lock_validate_pair(namespace, key)
        with self._condition:
            if lock_pair in self._held:
                return None
            self._held.add(lock_pair)
        return LockToken(self, lock_pair[0], lock_pair[1])

    def lock_acquire(self, namespace: str, key: str) -> LockToken:
        """Acquire the pair, blocking until it becomes free.

        Args:
            namespace: Lock namespace, usually a collection name.
            key: Lock key within the namespace, usually a symbol.

        Returns:
            LockToken: Token owning the pair.

        Raises:
            ValueError: Raised when namespace or key is blank.
        """

        while True:
            token = self.lock_try_acquire(namespace, key)
            if token is not None:
                return token
            logger.debug("Waiting for lock namespace=%s key=%s", namespace, key)
            with self._condition:
                if (namespace.strip(), key.strip()) in self._held:
                    self._condition.wait(timeout=self._backoff_seconds)

    def lock_is_held(self, namespace: str, key: str) -> bool:
        """Return whether the pair is currently owned.

        Args:
            namespace: Lock namespace.
            key: Lock key within the namespace.

        Returns:
            bool: True when a live token owns the pair.

        Raises:
            ValueError: Raised when namespace or key is blank.
        """

        lock_pair = _lock_validate_pair(namespace, key)
        with self._condition:
            return lock_pair in self._held

    def _lock_release(self, namespace: str, key: str) -> None:
        with self._condition:
            self._held.discard((namespace, key))
            self._condition.notify_all()


def _lock_validate_pair(namespace: str, key: str) -> tuple[str, str]:
    if not isinstance(namespace, str) or not namespace.strip():
        raise ValueError("namespace must not be blank")
    if not isinstance(key, str) or not key.strip():
        raise ValueError("key must not be blank")
    return namespace.strip(), key.strip()


__all__ = ["LOCK_NAMESPACE_ASSET_DAY", "LOCK_NAMESPACE_EVENT", "LockCoordinator", "LockToken"]
