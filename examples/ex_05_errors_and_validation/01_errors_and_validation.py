"""Common error classes and where they surface.

Registration errors are raised by ``register``. Cycles and unusable
constructors are found by ``Container.validate``, or lazily by ``resolve`` when
validation is skipped. Missing registrations surface at resolution.
"""

from __future__ import annotations

from diweave import (
    Container,
    DependencyConfiguration,
    DIWeaveCircularDependencyError,
    DIWeaveConfigurationError,
    DIWeaveDependencyNotRegisteredError,
    DIWeaveUnconstructableTypeError,
)


class Missing:
    pass


class Unrelated:
    pass


class Left:
    def __init__(self, right: Right) -> None:
        self.right = right


class Right:
    def __init__(self, left: Left) -> None:
        self.left = left


class Untyped:
    def __init__(self, value) -> None:  # noqa: ANN001
        self.value = value


def main() -> None:
    try:
        DependencyConfiguration().register(Missing, Unrelated)
    except DIWeaveConfigurationError as error:
        configuration_reason = error.reason
    print(f"configuration={configuration_reason}")  # => configuration=Unrelated does not implement Missing

    try:
        DependencyConfiguration().register(int)
    except DIWeaveConfigurationError as error:
        value_reason = error.reason
    print(f"value_type={value_reason}")  # => value_type=value types cannot be registered

    cyclic = DependencyConfiguration().register(Left).register(Right)
    try:
        Container(cyclic).validate()
    except DIWeaveCircularDependencyError as error:
        cycle = str(error)
    print(f"cycle={cycle}")  # => cycle=Circular dependency detected for Left: Left -> Right -> Left

    try:
        Container(cyclic).resolve(Right)
    except DIWeaveCircularDependencyError as error:
        lazy_cycle = " -> ".join(item.__name__ for item in error.path)
    print(f"lazy_cycle={lazy_cycle}")  # => lazy_cycle=Right -> Left

    untyped = DependencyConfiguration().register(Untyped)
    try:
        Container(untyped).validate()
    except DIWeaveUnconstructableTypeError as error:
        unconstructable = type(error).__name__
    print(f"unconstructable={unconstructable}")  # => unconstructable=DIWeaveUnconstructableTypeError

    try:
        Container(DependencyConfiguration()).resolve(Missing)
    except DIWeaveDependencyNotRegisteredError as error:
        missing = str(error)
    print(f"missing={missing}")  # => missing=Dependency Missing is not registered


if __name__ == "__main__":
    main()
