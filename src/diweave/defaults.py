from collections.abc import Collection, Iterable, Sequence
from types import NoneType
from typing import Any

from diweave.lock_mode import LockMode

VALUE_TYPES: tuple[type[Any], ...] = (
    int,
    float,
    complex,
    bool,
    str,
    bytes,
    NoneType,
)
"""Types that can never be registered as an abstraction or an implementation."""

COLLECTION_ORIGINS: frozenset[type[Any]] = frozenset(
    {
        Iterable,
        Collection,
        Sequence,
        list,
    },
)
"""Generic origins treated as a request for every implementation of their element type."""

DEFAULT_LOCK_MODE = LockMode.THREAD

DEFAULT_MAX_RESOLUTION_DEPTH = 100
