from __future__ import annotations

import inspect
import logging
from typing import TYPE_CHECKING, Any, get_origin

from typing_extensions import is_protocol

from diweave.defaults import COLLECTION_ORIGINS, VALUE_TYPES
from diweave.exceptions import DIWeaveCircularDependencyError, DIWeaveConfigurationError
from diweave.open_generics import canonicalize_open_key, contains_typevar
from diweave.providers import Implementation, ProviderDependenciesExtractor

if TYPE_CHECKING:
    from diweave.registrations import RegistrationTable

logger = logging.getLogger(__name__)


class DependencyRegistrationValidator:
    """Validates registrations before they are added to the table."""

    def __init__(self, extractor: ProviderDependenciesExtractor) -> None:
        self._extractor = extractor

    def normalize_key(self, abstraction: Any, key: Any) -> Any:
        """Return the table key for ``key``, collapsing open shapes to their origin class."""
        runtime_class = get_origin(key) or key
        if not inspect.isclass(runtime_class):
            raise DIWeaveConfigurationError(abstraction, key, "expected a class or generic alias")

        open_key = canonicalize_open_key(key)
        if open_key is not None:
            return open_key
        if contains_typevar(key):
            msg = "generic aliases must bind either all or none of their parameters"
            raise DIWeaveConfigurationError(abstraction, key, msg)
        return key

    def validate(self, abstraction: Any, implementation: Implementation) -> None:
        """Validate a normalized abstraction/implementation pair.

        Raises:
            DIWeaveConfigurationError: If the pair cannot be registered.

        """
        abstraction_class = get_origin(abstraction) or abstraction
        implementation_class = implementation.implementation_type

        if issubclass(abstraction_class, VALUE_TYPES) or issubclass(
            implementation_class,
            VALUE_TYPES,
        ):
            msg = "value types cannot be registered"
            raise DIWeaveConfigurationError(abstraction, implementation.implementation, msg)

        if get_origin(abstraction) in COLLECTION_ORIGINS and self._is_abstract(
            implementation_class,
        ):
            msg = (
                "a collection abstraction needs a concrete collection such as list[T]; "
                "register the element type to resolve every implementation instead"
            )
            raise DIWeaveConfigurationError(abstraction, implementation.implementation, msg)

        if self._is_abstract(implementation_class):
            msg = "implementation cannot be abstract or a protocol"
            raise DIWeaveConfigurationError(abstraction, implementation.implementation, msg)

        if not self._implements(implementation_class, abstraction_class):
            msg = f"{implementation_class.__name__} does not implement {abstraction_class.__name__}"
            raise DIWeaveConfigurationError(abstraction, implementation.implementation, msg)

        if implementation.factory is not None and not callable(implementation.factory):
            msg = f"factory {implementation.factory!r} is not callable"
            raise DIWeaveConfigurationError(abstraction, implementation.implementation, msg)

        self._extractor.validate_explicit(abstraction, implementation)

    def _is_abstract(self, cls: type[Any]) -> bool:
        return inspect.isabstract(cls) or is_protocol(cls)

    def _implements(self, implementation_class: type[Any], abstraction_class: type[Any]) -> bool:
        if implementation_class is abstraction_class:
            return True
        # matched by name, so same-named classes from different modules are accepted
        names = {base.__name__ for base in implementation_class.__mro__}
        if abstraction_class.__name__ in names:
            return True
        try:
            return issubclass(implementation_class, abstraction_class)
        except TypeError:
            return False


class ConfigurationValidator:
    """Walks every registered implementation before first resolution.

    The walk keeps the path of implementations currently being validated.
    Meeting a type already on the path is a cycle. Every implementation must
    also expose a designated constructor the container can call; dependencies
    that are not registered abstractions are left for resolution time.
    """

    def __init__(
        self,
        table: RegistrationTable,
        extractor: ProviderDependenciesExtractor,
    ) -> None:
        self._table = table
        self._extractor = extractor

    def validate_all(self) -> None:
        """Validate every registered implementation, walking shared subgraphs once.

        Raises:
            DIWeaveCircularDependencyError: If constructor dependencies form a cycle.
            DIWeaveUnconstructableTypeError: If an implementation cannot be constructed.

        """
        validated: set[Implementation] = set()
        count = 0
        for implementations in self._table.values():
            for implementation in implementations:
                self.validate(implementation, validated=validated)
                count += 1
        logger.info(
            "Validated %d implementation(s) across %d abstraction(s)",
            count,
            len(self._table),
        )

    def validate(
        self,
        implementation: Implementation,
        path: tuple[Any, ...] = (),
        *,
        validated: set[Implementation] | None = None,
    ) -> None:
        """Validate one implementation and, recursively, every registered dependency.

        Raises:
            DIWeaveCircularDependencyError: If the implementation is already on ``path``.
            DIWeaveUnconstructableTypeError: If a designated constructor is unusable.

        """
        implementation_type = implementation.implementation_type
        if implementation_type in path:
            raise DIWeaveCircularDependencyError(implementation_type, path)
        if validated is not None and implementation in validated:
            return

        child_path = (*path, implementation_type)
        for dependency in self._extractor.extract(implementation):
            if contains_typevar(dependency.provides):
                continue
            candidates = self._table.find_candidates(dependency.provides)
            if candidates is None:
                continue
            for candidate in candidates.implementations:
                self.validate(candidate, child_path, validated=validated)

        if validated is not None:
            validated.add(implementation)
