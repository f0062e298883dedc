from __future__ import annotations

import logging
from typing import Any, TypeVar, get_args, get_origin, overload

from diweave.container_resolution_stack import get_resolution_stack, resolving
from diweave.defaults import DEFAULT_LOCK_MODE, DEFAULT_MAX_RESOLUTION_DEPTH
from diweave.exceptions import (
    DIWeaveCircularDependencyError,
    DIWeaveDependencyNotRegisteredError,
    DIWeaveGenericArgumentError,
    DIWeaveResolutionDepthError,
)
from diweave.lock_mode import LockMode
from diweave.open_generics import (
    GenericBinding,
    bind_type_arguments,
    close_implementation,
    contains_typevar,
    is_closed_generic,
    is_open_generic_class,
    parameter_fallback,
    type_argument_request,
)
from diweave.providers import Implementation, Lifetime, ProviderDependency, UserDependency
from diweave.registrations import DependencyConfiguration, RegistrationTable
from diweave.singletons import SingletonStore
from diweave.validators import ConfigurationValidator

T = TypeVar("T")

logger = logging.getLogger(__name__)
_SKIP = object()


class Container:
    """Resolve fully wired object graphs from a dependency configuration.

    The container freezes the configuration it is given, so registrations made
    afterwards are not visible to it. ``resolve`` builds the first registered
    implementation of an abstraction, or every implementation when asked for
    ``Iterable[T]`` (also ``Collection``/``Sequence``/``list``). Closed generic
    requests fall back to open-generic registrations of their origin.

    Call ``validate`` once before the first resolution to catch cycles and
    unconstructable types early. Without it the same problems surface lazily
    from ``resolve``.
    """

    __slots__ = (
        "_extractor",
        "_max_resolution_depth",
        "_singletons",
        "_table",
        "_validator",
    )

    def __init__(
        self,
        configuration: DependencyConfiguration,
        *,
        lock_mode: LockMode = DEFAULT_LOCK_MODE,
        max_resolution_depth: int = DEFAULT_MAX_RESOLUTION_DEPTH,
    ) -> None:
        """Initialize a container over a snapshot of ``configuration``.

        Args:
            configuration: Registrations to resolve from.
            lock_mode: Singleton construction policy. ``LockMode.THREAD`` builds
                each singleton once; ``LockMode.NONE`` tolerates duplicate
                construction under concurrent first resolution.
            max_resolution_depth: Longest chain of nested constructions before
                ``DIWeaveResolutionDepthError`` is raised.

        """
        if max_resolution_depth < 1:
            msg = f"max_resolution_depth must be positive, got {max_resolution_depth}."
            raise ValueError(msg)

        self._table = configuration.freeze()
        self._extractor = configuration.extractor
        self._singletons = SingletonStore(lock_mode)
        self._validator = ConfigurationValidator(self._table, self._extractor)
        self._max_resolution_depth = max_resolution_depth

    @property
    def registrations(self) -> RegistrationTable:
        """The frozen registration snapshot this container resolves from."""
        return self._table

    @property
    def singletons(self) -> SingletonStore:
        """The store holding this container's singleton instances."""
        return self._singletons

    def validate(self) -> None:
        """Check every registered implementation for cycles and usable constructors.

        Raises:
            DIWeaveCircularDependencyError: If constructor dependencies form a cycle.
            DIWeaveUnconstructableTypeError: If an implementation cannot be constructed.

        """
        self._validator.validate_all()

    @overload
    def resolve(self, dependency: type[T]) -> T: ...

    @overload
    def resolve(self, dependency: Any) -> Any: ...

    def resolve(self, dependency: Any) -> Any:
        """Resolve an abstraction to an instance, or to a list for collection requests.

        Raises:
            DIWeaveDependencyNotRegisteredError: If neither the abstraction nor a
                matching open-generic or element registration exists.
            DIWeaveGenericArgumentError: If an open-generic implementation cannot
                be closed over the requested type arguments.

        """
        candidates = self._table.find_candidates(dependency)
        if candidates is None:
            raise DIWeaveDependencyNotRegisteredError(dependency)

        binding: GenericBinding | None = None
        if candidates.is_open_generic:
            binding = bind_type_arguments(candidates.dependency)

        if candidates.is_collection:
            return [
                self._build(implementation, binding)
                for implementation in candidates.implementations
            ]
        return self._build(candidates.implementations[0], binding)

    def _build(self, implementation: Implementation, binding: GenericBinding | None) -> Any:
        target = implementation.implementation
        if binding is not None:
            target = close_implementation(target, binding)
            logger.debug(
                "Closed %r over %r as %r",
                implementation.implementation,
                binding.abstraction,
                target,
            )
        elif is_closed_generic(target) and is_open_generic_class(get_origin(target)):
            # explicitly closed implementations bind their own arguments
            binding = bind_type_arguments(target)

        stack = get_resolution_stack()
        if target in stack:
            raise DIWeaveCircularDependencyError(target, stack)
        if len(stack) >= self._max_resolution_depth:
            raise DIWeaveResolutionDepthError(target, stack, self._max_resolution_depth)

        with resolving(target):
            if implementation.lifetime is Lifetime.SINGLETON:
                return self._singletons.get_or_create(
                    target,
                    lambda: self._instantiate(implementation, target, binding),
                )
            return self._instantiate(implementation, target, binding)

    def _instantiate(
        self,
        implementation: Implementation,
        target: Any,
        binding: GenericBinding | None,
    ) -> Any:
        args: list[Any] = []
        kwargs: dict[str, Any] = {}
        positional_skipped = False
        for dependency in self._extractor.extract(implementation):
            if positional_skipped and dependency.is_positional:
                continue
            value = self._resolve_dependency(dependency, target, binding)
            parameter = dependency.parameter
            if value is _SKIP:
                positional_skipped = positional_skipped or dependency.is_positional
                continue
            if dependency.is_positional or parameter is None:
                args.append(value)
            else:
                kwargs[parameter.name] = value

        provider = implementation.factory or target
        return provider(*args, **kwargs)

    def _resolve_dependency(
        self,
        dependency: ProviderDependency,
        target: Any,
        binding: GenericBinding | None,
    ) -> Any:
        provides = dependency.provides
        if binding is None:
            unbound = _first_typevar(provides)
            if unbound is not None:
                msg = "the implementation was not requested through a closed generic"
                raise DIWeaveGenericArgumentError(target, unbound.__name__, msg)
        else:
            requested_type = type_argument_request(provides)
            if requested_type is not None:
                return binding.lookup(requested_type)[1]
            if isinstance(provides, TypeVar):
                provides = self._typevar_dependency(provides, binding)
            elif contains_typevar(provides):
                provides = binding.substitute(provides)

        if dependency.is_optional and self._table.find_candidates(provides) is None:
            return _SKIP
        return self.resolve(provides)

    def _typevar_dependency(self, typevar: TypeVar, binding: GenericBinding) -> UserDependency:
        """Pick the key a ``TypeVar`` constructor parameter resolves to.

        The bound type argument wins when it is registered. Otherwise the
        abstraction parameter's bound (or first constraint) is used when that is
        registered, and the argument itself is returned so the error names it.
        """
        parameter, argument = binding.lookup(typevar)
        if self._table.find_candidates(argument) is not None:
            return argument
        fallback = parameter_fallback(parameter)
        if fallback is not None and self._table.find_candidates(fallback) is not None:
            return fallback
        return argument


def _first_typevar(value: Any) -> TypeVar | None:
    if isinstance(value, TypeVar):
        return value
    if get_origin(value) is None:
        return None
    for argument in get_args(value):
        found = _first_typevar(argument)
        if found is not None:
            return found
    return None
