from __future__ import annotations

import inspect
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum, auto
from inspect import Parameter
from types import NoneType, UnionType
from typing import Any, TypeAlias, Union, get_args, get_origin, get_type_hints

from diweave.exceptions import DIWeaveConfigurationError, DIWeaveUnconstructableTypeError

UserDependency: TypeAlias = Any
"""A dependency that has been registered or is being resolved from the user's code."""

UserImplementation: TypeAlias = Any
"""A class, open generic class, or closed generic alias bound to an abstraction."""

FactoryProvider: TypeAlias = Callable[..., Any]
"""A callable that builds an implementation from its resolved dependencies."""

_MISSING_ANNOTATION: Any = object()


class Lifetime(Enum):
    """Defines the lifetime of a registered implementation."""

    TRANSIENT = auto()
    """A new instance is created every time the implementation is requested."""

    SINGLETON = auto()
    """A single instance is created and shared for the lifetime of the container."""


@dataclass(frozen=True, slots=True)
class Implementation:
    """A single entry of the registration table."""

    implementation: UserImplementation
    """The concrete class (or generic alias of one) that gets instantiated."""
    lifetime: Lifetime
    """Instance reuse policy."""
    factory: FactoryProvider | None = None
    """An optional callable used instead of the implementation class."""
    dependencies: tuple[UserDependency, ...] | None = None
    """An optional explicit dependency list that replaces constructor introspection."""

    @property
    def implementation_type(self) -> type[Any]:
        """The runtime class behind ``implementation``, with generic arguments stripped."""
        return get_origin(self.implementation) or self.implementation


@dataclass(frozen=True, slots=True)
class ProviderDependency:
    """Represents a dependency required by an implementation."""

    provides: UserDependency
    parameter: Parameter | None = None

    @property
    def is_optional(self) -> bool:
        """Whether the parameter has a default the container may keep."""
        return self.parameter is not None and self.parameter.default is not Parameter.empty

    @property
    def is_positional(self) -> bool:
        """Whether the value must be passed positionally."""
        return self.parameter is None or self.parameter.kind is Parameter.POSITIONAL_ONLY


def unwrap_optional(annotation: Any) -> Any:
    """Return ``X`` for ``X | None`` and ``Optional[X]``, otherwise ``annotation`` unchanged."""
    if get_origin(annotation) not in (Union, UnionType):
        return annotation
    arguments = tuple(argument for argument in get_args(annotation) if argument is not NoneType)
    if len(arguments) == 1:
        return arguments[0]
    return annotation


def designated_constructor(concrete_type: type[Any]) -> Any:
    """Return the first ``__init__`` declared along the MRO."""
    for base in concrete_type.__mro__:
        if base is object:
            return object.__init__
        if "__init__" in base.__dict__:
            return base.__dict__["__init__"]
    return object.__init__


class ProviderDependenciesExtractor:
    """Extracts constructor dependencies from registered implementations.

    The validator and the container share one extractor, so both agree on which
    constructor is designated and what it needs. Results for concrete types are
    cached because the registration table is frozen once a container exists.
    """

    def __init__(self) -> None:
        self._cache: dict[type[Any], tuple[ProviderDependency, ...]] = {}

    def extract(self, implementation: Implementation) -> tuple[ProviderDependency, ...]:
        """Extract dependencies for an entry, honoring explicit registrations first."""
        if implementation.dependencies is not None:
            return tuple(
                ProviderDependency(provides=dependency)
                for dependency in implementation.dependencies
            )
        if implementation.factory is not None:
            return self.extract_from_factory(implementation.factory)
        return self.extract_from_concrete_type(implementation.implementation_type)

    def extract_from_concrete_type(
        self,
        concrete_type: type[Any],
    ) -> tuple[ProviderDependency, ...]:
        """Extract dependencies from the designated constructor of a class."""
        cached = self._cache.get(concrete_type)
        if cached is not None:
            return cached

        constructor = designated_constructor(concrete_type)
        if constructor is object.__init__:
            dependencies: tuple[ProviderDependency, ...] = ()
        elif not callable(constructor):
            raise DIWeaveUnconstructableTypeError(concrete_type, "its __init__ is disabled")
        else:
            dependencies = self._extract_dependencies(
                provider=constructor,
                owner=concrete_type,
                skip_first_parameter=True,
            )
        self._cache[concrete_type] = dependencies
        return dependencies

    def extract_from_factory(self, factory: FactoryProvider) -> tuple[ProviderDependency, ...]:
        """Extract dependencies from a factory's own signature."""
        return self._extract_dependencies(
            provider=factory,
            owner=factory,
            skip_first_parameter=False,
        )

    def validate_explicit(
        self,
        abstraction: UserDependency,
        implementation: Implementation,
    ) -> None:
        """Check that explicit dependencies can be passed positionally to the target."""
        if implementation.dependencies is None:
            return
        target = implementation.factory or implementation.implementation_type
        try:
            signature = inspect.signature(target)
        except (TypeError, ValueError):
            return
        try:
            signature.bind(*implementation.dependencies)
        except TypeError as error:
            msg = f"explicit dependencies do not match the call signature ({error})"
            raise DIWeaveConfigurationError(
                abstraction,
                implementation.implementation,
                msg,
            ) from error

    def _extract_dependencies(
        self,
        *,
        provider: Callable[..., Any],
        owner: Any,
        skip_first_parameter: bool,
    ) -> tuple[ProviderDependency, ...]:
        try:
            parameters = tuple(inspect.signature(provider).parameters.values())
        except (TypeError, ValueError) as error:
            msg = f"its constructor signature cannot be inspected ({error})"
            raise DIWeaveUnconstructableTypeError(owner, msg) from error
        if skip_first_parameter and parameters:
            parameters = parameters[1:]

        annotations, annotation_error = self._resolved_type_hints(provider)
        dependencies: list[ProviderDependency] = []
        for parameter in parameters:
            if parameter.kind in (Parameter.VAR_POSITIONAL, Parameter.VAR_KEYWORD):
                continue
            provides = self._resolve_parameter_annotation(
                parameter=parameter,
                annotations=annotations,
                annotation_error=annotation_error,
                owner=owner,
            )
            if provides is _MISSING_ANNOTATION:
                continue
            dependencies.append(
                ProviderDependency(provides=unwrap_optional(provides), parameter=parameter),
            )
        return tuple(dependencies)

    def _resolve_parameter_annotation(
        self,
        *,
        parameter: Parameter,
        annotations: dict[str, Any],
        annotation_error: Exception | None,
        owner: Any,
    ) -> Any:
        annotation = annotations.get(parameter.name, _MISSING_ANNOTATION)
        if annotation is not _MISSING_ANNOTATION:
            return annotation

        raw_annotation = parameter.annotation
        if raw_annotation is not Parameter.empty and not isinstance(raw_annotation, str):
            return raw_annotation

        if parameter.default is not Parameter.empty:
            return _MISSING_ANNOTATION

        msg = f"required parameter '{parameter.name}' has no usable type annotation"
        if annotation_error is None:
            raise DIWeaveUnconstructableTypeError(owner, msg)
        msg = f"{msg} ({annotation_error})"
        raise DIWeaveUnconstructableTypeError(owner, msg) from annotation_error

    def _resolved_type_hints(
        self,
        provider: Callable[..., Any],
    ) -> tuple[dict[str, Any], Exception | None]:
        try:
            return get_type_hints(provider), None
        except (AttributeError, NameError, TypeError) as error:
            return {}, error
