from diweave.container import Container
from diweave.exceptions import (
    DIWeaveCircularDependencyError,
    DIWeaveConfigurationError,
    DIWeaveDependencyNotRegisteredError,
    DIWeaveError,
    DIWeaveGenericArgumentError,
    DIWeaveResolutionDepthError,
    DIWeaveUnconstructableTypeError,
)
from diweave.lock_mode import LockMode
from diweave.providers import Lifetime
from diweave.registrations import DependencyConfiguration

__all__ = [
    "Container",
    "DIWeaveCircularDependencyError",
    "DIWeaveConfigurationError",
    "DIWeaveDependencyNotRegisteredError",
    "DIWeaveError",
    "DIWeaveGenericArgumentError",
    "DIWeaveResolutionDepthError",
    "DIWeaveUnconstructableTypeError",
    "DependencyConfiguration",
    "Lifetime",
    "LockMode",
]
