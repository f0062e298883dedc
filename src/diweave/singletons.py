from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

from diweave.defaults import DEFAULT_LOCK_MODE
from diweave.lock_mode import LockMode

logger = logging.getLogger(__name__)

_MISSING = object()


class _SingletonRecord:
    """Holds the shared instance of one implementation.

    ``set`` is first-write-wins: once an instance is stored, later writes are
    ignored and the stored instance is returned to the writer instead.
    """

    __slots__ = ("_guard", "_instance", "construction_lock", "implementation")

    def __init__(self, implementation: Any) -> None:
        self.implementation = implementation
        self.construction_lock = threading.Lock()
        self._guard = threading.Lock()
        self._instance: Any = _MISSING

    def get(self) -> Any:
        """Return the stored instance, or the missing sentinel."""
        with self._guard:
            return self._instance

    def set(self, instance: Any) -> Any:
        """Store ``instance`` unless one is already stored; return the stored one."""
        with self._guard:
            if self._instance is _MISSING:
                self._instance = instance
            return self._instance


class SingletonStore:
    """Caches singleton instances by implementation identity.

    Identity is the implementation class, or the closed alias for open-generic
    implementations (``Repository[User]`` and ``Repository[Order]`` are
    different singletons). The store only grows.
    """

    def __init__(self, lock_mode: LockMode = DEFAULT_LOCK_MODE) -> None:
        self._lock_mode = lock_mode
        self._records: dict[Any, _SingletonRecord] = {}
        self._records_lock = threading.Lock()

    @property
    def lock_mode(self) -> LockMode:
        """The construction policy chosen for this store."""
        return self._lock_mode

    def get_or_create(self, implementation: Any, factory: Callable[[], Any]) -> Any:
        """Return the cached instance, building it with ``factory`` on first use.

        With ``LockMode.THREAD`` the check, construction and store happen inside
        the record's construction lock, so ``factory`` runs once. With
        ``LockMode.NONE`` concurrent callers may all run ``factory``; the first
        stored instance wins and is what every caller receives.
        """
        record = self._get_record(implementation)
        instance = record.get()
        if instance is not _MISSING:
            return instance

        if self._lock_mode is LockMode.THREAD:
            with record.construction_lock:
                instance = record.get()
                if instance is not _MISSING:  # pragma: no cover - race timing dependent
                    return instance
                return self._store(record, factory())

        return self._store(record, factory())

    def get(self, implementation: Any, default: Any = None) -> Any:
        """Return the cached instance of ``implementation``, or ``default`` if none is stored."""
        record = self._records.get(implementation)
        if record is None:
            return default
        instance = record.get()
        return default if instance is _MISSING else instance

    def _store(self, record: _SingletonRecord, instance: Any) -> Any:
        stored = record.set(instance)
        if stored is instance:
            logger.debug("Created singleton instance of %r", record.implementation)
        else:
            logger.debug(
                "Discarded concurrently constructed instance of %r",
                record.implementation,
            )
        return stored

    def _get_record(self, implementation: Any) -> _SingletonRecord:
        """Get or create the record for an implementation.

        Uses double-checked locking to minimize lock contention.
        """
        record = self._records.get(implementation)
        if record is None:
            with self._records_lock:
                # Second check after acquiring lock - race timing dependent
                record = self._records.get(implementation)
                if record is None:  # pragma: no branch - race timing dependent
                    record = _SingletonRecord(implementation)
                    self._records[implementation] = record
        return record

    def __contains__(self, implementation: object) -> bool:
        record = self._records.get(implementation)
        return record is not None and record.get() is not _MISSING

    def __len__(self) -> int:
        return sum(1 for record in tuple(self._records.values()) if record.get() is not _MISSING)
