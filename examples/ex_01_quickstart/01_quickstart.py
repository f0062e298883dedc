"""Quickstart: register abstractions, validate once, resolve object graphs.

Register implementations against the abstractions your code asks for, let
``Container.validate`` check the graph, then resolve only the top-level service.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from diweave import Container, DependencyConfiguration


class Clock(ABC):
    @abstractmethod
    def now(self) -> str: ...


class FixedClock(Clock):
    def now(self) -> str:
        return "12:00"


class Database:
    def __init__(self) -> None:
        self.host = "localhost"


class UserRepository:
    def __init__(self, database: Database, clock: Clock) -> None:
        self.database = database
        self.clock = clock


class UserService:
    def __init__(self, repository: UserRepository) -> None:
        self.repository = repository


def main() -> None:
    configuration = DependencyConfiguration()
    configuration.register_singleton(Clock, FixedClock)
    configuration.register_singleton(Database)
    configuration.register(UserRepository)
    configuration.register(UserService)

    container = Container(configuration)
    container.validate()

    service = container.resolve(UserService)
    print(f"db_host={service.repository.database.host}")  # => db_host=localhost
    print(f"now={service.repository.clock.now()}")  # => now=12:00

    chain = (
        f"{type(service).__name__}"
        f">{type(service.repository).__name__}"
        f">{type(service.repository.database).__name__}"
    )
    print(f"chain={chain}")  # => chain=UserService>UserRepository>Database

    other = container.resolve(UserService)
    print(f"transient_service={service is not other}")  # => transient_service=True
    shared_db = service.repository.database is other.repository.database
    print(f"singleton_database={shared_db}")  # => singleton_database=True


if __name__ == "__main__":
    main()
