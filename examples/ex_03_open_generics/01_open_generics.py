"""Open generics: one registration serves every closed request.

1. ``type[T]`` parameters receive the requested type argument.
2. A closed registration overrides the open one for its arguments.
3. A ``TypeVar`` parameter falls back to the parameter's bound.
4. Arguments violating a bound are rejected.
"""

from __future__ import annotations

from typing import Generic, TypeVar

from diweave import Container, DependencyConfiguration, DIWeaveGenericArgumentError

T = TypeVar("T")


class Model:
    pass


class User(Model):
    pass


class Order(Model):
    pass


M = TypeVar("M", bound=Model)


class Repository(Generic[T]):
    pass


class SqlRepository(Repository[T]):
    def __init__(self, model: type[T]) -> None:
        self.model = model


class CachedUserRepository(Repository[User]):
    pass


class Handler(Generic[M]):
    pass


class ModelHandler(Handler[M]):
    def __init__(self, model: M) -> None:
        self.model = model


def main() -> None:
    configuration = DependencyConfiguration()
    configuration.register(Repository, SqlRepository)
    configuration.register(Handler, ModelHandler)
    configuration.register(Model)

    container = Container(configuration)
    container.validate()

    orders = container.resolve(Repository[Order])
    closed = f"{type(orders).__name__}[{orders.model.__name__}]"
    print(f"repository={closed}")  # => repository=SqlRepository[Order]

    configuration.register(Repository[User], CachedUserRepository)
    overriding = Container(configuration)
    users = overriding.resolve(Repository[User])
    print(f"override={type(users).__name__}")  # => override=CachedUserRepository

    handler = container.resolve(Handler[User])
    print(f"handler_model={type(handler.model).__name__}")  # => handler_model=Model

    try:
        container.resolve(Handler[str])
    except DIWeaveGenericArgumentError as error:
        bound_error = error.name
    print(f"bound_error={bound_error}")  # => bound_error=M


if __name__ == "__main__":
    main()
