from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, get_args, get_origin

from diweave.defaults import COLLECTION_ORIGINS
from diweave.open_generics import is_closed_generic, is_open_generic_class
from diweave.providers import (
    FactoryProvider,
    Implementation,
    Lifetime,
    ProviderDependenciesExtractor,
    UserDependency,
    UserImplementation,
)
from diweave.validators import DependencyRegistrationValidator

if TYPE_CHECKING:
    from typing_extensions import Self

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Candidates:
    """The implementations selected for one request."""

    dependency: UserDependency
    """The abstraction being served; the element type for collection requests."""
    implementations: tuple[Implementation, ...]
    is_open_generic: bool = False
    """Implementations come from an open shape and must be closed over ``dependency``."""
    is_collection: bool = False
    """Every implementation is built and returned as a list."""


class RegistrationTable(Mapping[UserDependency, tuple[Implementation, ...]]):
    """An immutable snapshot of the registrations, with request classification."""

    def __init__(self, entries: Mapping[UserDependency, Sequence[Implementation]]) -> None:
        self._entries: Mapping[UserDependency, tuple[Implementation, ...]] = MappingProxyType(
            {key: tuple(implementations) for key, implementations in entries.items()},
        )

    def __getitem__(self, key: UserDependency) -> tuple[Implementation, ...]:
        return self._entries[key]

    def __iter__(self) -> Iterator[UserDependency]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def find_candidates(self, dependency: UserDependency) -> Candidates | None:
        """Classify a request and return its candidates, or ``None`` if unregistered.

        A collection request (``Iterable[T]`` and friends) that is not registered
        itself asks for every implementation of ``T``. Otherwise the exact key
        wins over an open-generic registration of its origin.
        """
        if get_origin(dependency) in COLLECTION_ORIGINS and dependency not in self._entries:
            arguments = get_args(dependency)
            if len(arguments) == 1:
                element = self._find_single(arguments[0])
                if element is not None:
                    return replace(element, is_collection=True)

        return self._find_single(dependency)

    def _find_single(self, dependency: UserDependency) -> Candidates | None:
        implementations = self._entries.get(dependency)
        if implementations:
            return Candidates(dependency=dependency, implementations=implementations)

        if is_closed_generic(dependency):
            origin = get_origin(dependency)
            implementations = self._entries.get(origin)
            if implementations and is_open_generic_class(origin):
                return Candidates(
                    dependency=dependency,
                    implementations=implementations,
                    is_open_generic=True,
                )
        return None


class DependencyConfiguration:
    """Collects abstraction-to-implementation registrations.

    Registrations keep their insertion order per abstraction: the first one is
    what a single request resolves, and collection requests return all of them
    in that order.

    Example:
        configuration = DependencyConfiguration()
        configuration.register_singleton(Clock, SystemClock)
        configuration.register(Repository, SqlRepository)
        configuration.register(Reader)  # as itself

    """

    def __init__(self, extractor: ProviderDependenciesExtractor | None = None) -> None:
        self._registrations: dict[UserDependency, list[Implementation]] = {}
        self._extractor = extractor or ProviderDependenciesExtractor()
        self._validator = DependencyRegistrationValidator(self._extractor)

    @property
    def extractor(self) -> ProviderDependenciesExtractor:
        """The extractor shared with containers built from this configuration."""
        return self._extractor

    def register(
        self,
        abstraction: UserDependency,
        implementation: UserImplementation | None = None,
        lifetime: Lifetime = Lifetime.TRANSIENT,
        *,
        factory: FactoryProvider | None = None,
        dependencies: Sequence[UserDependency] | None = None,
    ) -> Self:
        """Register an implementation for an abstraction.

        Args:
            abstraction: Class, open generic shape (``Repo`` or ``Repo[T]``) or
                closed generic alias being requested.
            implementation: Concrete class or generic alias that gets built.
                Defaults to ``abstraction`` itself.
            lifetime: Instance reuse policy.
            factory: Optional callable used instead of the implementation class.
                It receives the resolved dependencies.
            dependencies: Optional explicit dependency list passed positionally,
                replacing constructor introspection.

        Raises:
            DIWeaveConfigurationError: If the pair is malformed.

        """
        if implementation is None:
            implementation = abstraction
        key = self._validator.normalize_key(abstraction, abstraction)
        entry = Implementation(
            implementation=self._validator.normalize_key(abstraction, implementation),
            lifetime=lifetime,
            factory=factory,
            dependencies=tuple(dependencies) if dependencies is not None else None,
        )
        self._validator.validate(key, entry)

        self._registrations.setdefault(key, []).append(entry)
        logger.debug(
            "Registered %r for %r with %s lifetime",
            entry.implementation,
            key,
            lifetime.name.lower(),
        )
        return self

    def register_singleton(
        self,
        abstraction: UserDependency,
        implementation: UserImplementation | None = None,
        *,
        factory: FactoryProvider | None = None,
        dependencies: Sequence[UserDependency] | None = None,
    ) -> Self:
        """Register an implementation whose instance is shared by the container."""
        return self.register(
            abstraction,
            implementation,
            Lifetime.SINGLETON,
            factory=factory,
            dependencies=dependencies,
        )

    def freeze(self) -> RegistrationTable:
        """Return an immutable snapshot; later registrations do not affect it."""
        return RegistrationTable(self._registrations)

    def __contains__(self, abstraction: object) -> bool:
        return abstraction in self._registrations

    def __len__(self) -> int:
        return len(self._registrations)
