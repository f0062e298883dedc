from __future__ import annotations

from collections.abc import Sequence
from typing import Any


def _type_name(value: Any) -> str:
    qualname = getattr(value, "__qualname__", None)
    if qualname is not None and not getattr(value, "__args__", None):
        return qualname
    return repr(value)


class DIWeaveError(Exception):
    """Represent a base class for all DIWeave-specific failures.

    Catch this type when you want to handle any DIWeave error path without
    matching each concrete exception class individually.
    """


class DIWeaveConfigurationError(DIWeaveError):
    """Signal a malformed registration.

    Raised by ``DependencyConfiguration.register`` and
    ``DependencyConfiguration.register_singleton`` when a value type is
    registered, when the implementation is abstract or a protocol, when the
    implementation does not implement the abstraction, or when a collection
    abstraction is bound to another non-concrete collection.

    Typical fixes include registering a concrete class, registering the element
    type instead of ``Iterable[T]``, or registering a concrete collection such as
    ``list[T]``.
    """

    def __init__(self, abstraction: Any, implementation: Any, reason: str) -> None:
        self.abstraction = abstraction
        self.implementation = implementation
        self.reason = reason
        super().__init__(
            f"Cannot register {_type_name(implementation)} for "
            f"{_type_name(abstraction)}: {reason}",
        )


class DIWeaveCircularDependencyError(DIWeaveError):
    """Signal a circular constructor dependency chain.

    Raised by ``Container.validate`` when the pre-flight walk meets an
    implementation that is already on the current path, and by
    ``Container.resolve`` when an unvalidated configuration contains a cycle.

    ``implementation`` is the type that closed the cycle and ``path`` lists the
    chain of implementations that led back to it.
    """

    def __init__(
        self,
        implementation: Any,
        path: Sequence[Any],
        message: str | None = None,
    ) -> None:
        self.implementation = implementation
        self.path = tuple(path)
        if message is None:
            chain = " -> ".join(_type_name(item) for item in (*self.path, implementation))
            message = f"Circular dependency detected for {_type_name(implementation)}: {chain}"
        super().__init__(message)


class DIWeaveResolutionDepthError(DIWeaveCircularDependencyError):
    """Signal that a resolution path grew past the configured depth bound.

    Raised by ``Container.resolve`` when open-generic implementations keep
    requesting new closed types, so no implementation repeats but the path
    never ends. Raise ``max_resolution_depth`` only for legitimately deep graphs.
    """

    def __init__(self, implementation: Any, path: Sequence[Any], max_depth: int) -> None:
        self.max_depth = max_depth
        super().__init__(
            implementation,
            path,
            f"Resolution depth limit of {max_depth} exceeded while building "
            f"{_type_name(implementation)}",
        )


class DIWeaveUnconstructableTypeError(DIWeaveError):
    """Signal that an implementation has no usable constructor.

    Common triggers are a class whose ``__init__`` is disabled, a constructor
    without an inspectable signature, or a required constructor parameter
    without a type annotation.

    Typical fixes include annotating every required parameter or registering
    the implementation with an explicit ``factory=``/``dependencies=``.
    """

    def __init__(self, implementation: Any, reason: str) -> None:
        self.implementation = implementation
        self.reason = reason
        super().__init__(f"Type {_type_name(implementation)} cannot be constructed: {reason}")


class DIWeaveDependencyNotRegisteredError(DIWeaveError):
    """Signal that a dependency key has no registration.

    Raised by ``Container.resolve`` for the requested abstraction or for any
    abstraction required transitively by a constructor. No open-generic or
    collection registration matched either.
    """

    def __init__(self, dependency: Any) -> None:
        self.dependency = dependency
        super().__init__(f"Dependency {_type_name(dependency)} is not registered")


class DIWeaveGenericArgumentError(DIWeaveError):
    """Signal a generic parameter that cannot be matched on an open registration.

    Raised while closing an open-generic implementation when a constructor
    ``TypeVar`` or an implementation type parameter has no same-named parameter
    on the requested abstraction, or when the number of type arguments does not
    match the abstraction's parameters.
    """

    def __init__(self, abstraction: Any, name: str, reason: str) -> None:
        self.abstraction = abstraction
        self.name = name
        self.reason = reason
        super().__init__(
            f"Generic parameter '{name}' cannot be bound for {_type_name(abstraction)}: {reason}",
        )
