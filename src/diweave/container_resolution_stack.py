from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

# Context variable for resolution tracking (isolated per thread and per context)
# Stores an immutable tuple so copied contexts never share a mutable stack
_resolution_stack: ContextVar[tuple[Any, ...]] = ContextVar(
    "diweave_resolution_stack",
    default=(),
)


def get_resolution_stack() -> tuple[Any, ...]:
    """Get the implementations currently being built in this context, outermost first."""
    return _resolution_stack.get()


@contextmanager
def resolving(implementation: Any) -> Iterator[tuple[Any, ...]]:
    """Push ``implementation`` onto the resolution stack for the duration of the block."""
    stack = (*_resolution_stack.get(), implementation)
    token = _resolution_stack.set(stack)
    try:
        yield stack
    finally:
        _resolution_stack.reset(token)
