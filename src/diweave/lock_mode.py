from __future__ import annotations

from enum import Enum


class LockMode(Enum):
    """Select locking behavior for singleton construction.

    Pass one of these values to ``Container(lock_mode=...)``. Reads and writes of
    a cached singleton are always guarded; the mode only decides whether the
    whole check-construct-store sequence runs as one critical section.
    """

    THREAD = "thread"
    """Construct each singleton once, under a per-implementation ``threading.Lock``."""

    NONE = "none"
    """Let first resolutions race; the first stored instance wins, later ones are dropped."""
