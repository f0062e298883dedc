from abc import ABC, abstractmethod
from collections.abc import Collection, Iterable, Sequence
from dataclasses import dataclass
from typing import Optional

import pytest

from diweave.container import Container
from diweave.exceptions import (
    DIWeaveCircularDependencyError,
    DIWeaveDependencyNotRegisteredError,
    DIWeaveUnconstructableTypeError,
)
from diweave.providers import Lifetime
from diweave.registrations import DependencyConfiguration


class Interface1(ABC):
    @abstractmethod
    def name(self) -> str: ...


class Interface2(ABC):
    @abstractmethod
    def name(self) -> str: ...


class Class1If1(Interface1):
    def name(self) -> str:
        return "class1-if1"


class Class2If1(Interface1):
    def name(self) -> str:
        return "class2-if1"


class Class1If2(Interface2):
    def __init__(self, first: Interface1) -> None:
        self.first = first

    def name(self) -> str:
        return "class1-if2"


class Reporter:
    def __init__(self, second: Interface2, everyone: Iterable[Interface1]) -> None:
        self.second = second
        self.everyone = everyone


class CycleA:
    def __init__(self, b: "CycleB") -> None:
        self.b = b


class CycleB:
    def __init__(self, a: CycleA) -> None:
        self.a = a


def test_resolves_registered_implementation(configuration: DependencyConfiguration) -> None:
    configuration.register_singleton(Interface1, Class1If1)
    configuration.register(Interface2, Class1If2)
    container = Container(configuration)

    container.validate()
    item = container.resolve(Interface1)

    assert type(item) is Class1If1


def test_transient_resolution_returns_new_instances(
    configuration: DependencyConfiguration,
) -> None:
    configuration.register(Interface1, Class1If1)
    container = Container(configuration)

    first = container.resolve(Interface1)
    second = container.resolve(Interface1)

    assert isinstance(first, Class1If1)
    assert isinstance(second, Class1If1)
    assert first is not second


def test_singleton_resolution_returns_same_instance(
    configuration: DependencyConfiguration,
) -> None:
    configuration.register_singleton(Interface1, Class1If1)
    container = Container(configuration)

    container.validate()

    assert container.resolve(Interface1) is container.resolve(Interface1)


def test_register_with_lifetime_argument(configuration: DependencyConfiguration) -> None:
    configuration.register(Interface1, Class1If1, Lifetime.SINGLETON)
    container = Container(configuration)

    assert container.resolve(Interface1) is container.resolve(Interface1)


def test_as_self_registration_resolves_concrete_type(
    configuration: DependencyConfiguration,
) -> None:
    configuration.register(Class1If1, Class1If1)
    configuration.register(Class2If1)
    container = Container(configuration)

    container.validate()

    assert type(container.resolve(Class1If1)) is Class1If1
    assert type(container.resolve(Class2If1)) is Class2If1


def test_constructor_dependencies_are_resolved_recursively(
    configuration: DependencyConfiguration,
) -> None:
    configuration.register_singleton(Interface1, Class1If1)
    configuration.register(Interface2, Class1If2)
    container = Container(configuration)

    second = container.resolve(Interface2)

    assert isinstance(second, Class1If2)
    assert second.first is container.resolve(Interface1)


def test_transient_dependencies_are_not_shared_between_siblings(
    configuration: DependencyConfiguration,
) -> None:
    class Pair:
        def __init__(self, left: Interface1, right: Interface1) -> None:
            self.left = left
            self.right = right

    configuration.register(Interface1, Class1If1)
    configuration.register(Pair)
    container = Container(configuration)

    pair = container.resolve(Pair)

    assert pair.left is not pair.right


def test_single_request_returns_first_registered_implementation(
    configuration: DependencyConfiguration,
) -> None:
    configuration.register(Interface1, Class1If1)
    configuration.register(Interface1, Class2If1)
    container = Container(configuration)

    assert type(container.resolve(Interface1)) is Class1If1


def test_single_request_builds_only_the_first_candidate(
    configuration: DependencyConfiguration,
) -> None:
    built: list[str] = []

    class First(Interface1):
        def __init__(self) -> None:
            built.append("first")

        def name(self) -> str:
            return "first"

    class Second(Interface1):
        def __init__(self) -> None:
            built.append("second")

        def name(self) -> str:
            return "second"

    configuration.register(Interface1, First)
    configuration.register(Interface1, Second)
    container = Container(configuration)

    container.resolve(Interface1)

    assert built == ["first"]


class TestCollections:
    def test_collection_request_returns_all_implementations_in_order(
        self,
        configuration: DependencyConfiguration,
    ) -> None:
        configuration.register_singleton(Interface1, Class1If1)
        configuration.register_singleton(Interface1, Class2If1)
        configuration.register(Interface2, Class1If2)
        container = Container(configuration)

        container.validate()
        items = container.resolve(Iterable[Interface1])

        assert isinstance(items, list)
        assert [type(item) for item in items] == [Class1If1, Class2If1]

    def test_singleton_collection_members_match_single_resolution(
        self,
        configuration: DependencyConfiguration,
    ) -> None:
        configuration.register_singleton(Interface1, Class1If1)
        configuration.register_singleton(Interface1, Class2If1)
        container = Container(configuration)

        first_pass = container.resolve(Iterable[Interface1])
        second_pass = container.resolve(Iterable[Interface1])

        assert first_pass[0] is second_pass[0]
        assert first_pass[1] is second_pass[1]
        assert container.resolve(Interface1) is first_pass[0]

    @pytest.mark.parametrize("shape", [Iterable, Collection, Sequence, list])
    def test_every_collection_shape_unwraps(
        self,
        configuration: DependencyConfiguration,
        shape: type,
    ) -> None:
        configuration.register(Interface1, Class1If1)
        configuration.register(Interface1, Class2If1)
        container = Container(configuration)

        items = container.resolve(shape[Interface1])

        assert len(items) == 2

    def test_registered_collection_is_resolved_as_single_request(
        self,
        configuration: DependencyConfiguration,
    ) -> None:
        configuration.register(Interface1, Class1If1)
        configuration.register(Iterable[Interface1], list[Interface1])
        container = Container(configuration)

        container.validate()
        item = container.resolve(Iterable[Interface1])

        assert type(item) is list
        assert item == []

    def test_collection_dependency_is_injected(
        self,
        configuration: DependencyConfiguration,
    ) -> None:
        configuration.register(Interface1, Class1If1)
        configuration.register(Interface1, Class2If1)
        configuration.register(Interface2, Class1If2)
        configuration.register(Reporter)
        container = Container(configuration)

        container.validate()
        reporter = container.resolve(Reporter)

        assert isinstance(reporter.second, Class1If2)
        assert [item.name() for item in reporter.everyone] == ["class1-if1", "class2-if1"]

    def test_collection_of_unregistered_element_is_not_registered(
        self,
        configuration: DependencyConfiguration,
    ) -> None:
        container = Container(configuration)

        with pytest.raises(DIWeaveDependencyNotRegisteredError) as exc_info:
            container.resolve(Iterable[Interface1])

        assert exc_info.value.dependency == Iterable[Interface1]


class TestErrors:
    def test_unregistered_abstraction_raises(self, configuration: DependencyConfiguration) -> None:
        container = Container(configuration)

        with pytest.raises(DIWeaveDependencyNotRegisteredError) as exc_info:
            container.resolve(Interface1)

        assert exc_info.value.dependency is Interface1

    def test_unregistered_transitive_dependency_raises(
        self,
        configuration: DependencyConfiguration,
    ) -> None:
        configuration.register(Interface2, Class1If2)
        container = Container(configuration)

        with pytest.raises(DIWeaveDependencyNotRegisteredError) as exc_info:
            container.resolve(Interface2)

        assert exc_info.value.dependency is Interface1

    def test_constructor_exception_propagates_unmodified(
        self,
        configuration: DependencyConfiguration,
    ) -> None:
        class Broken:
            def __init__(self) -> None:
                msg = "boom"
                raise RuntimeError(msg)

        configuration.register(Broken)
        container = Container(configuration)

        with pytest.raises(RuntimeError, match="boom"):
            container.resolve(Broken)

    def test_failed_singleton_construction_is_not_cached(
        self,
        configuration: DependencyConfiguration,
    ) -> None:
        attempts: list[int] = []

        class Flaky:
            def __init__(self) -> None:
                attempts.append(1)
                if len(attempts) == 1:
                    msg = "first attempt fails"
                    raise RuntimeError(msg)

        configuration.register_singleton(Flaky)
        container = Container(configuration)

        with pytest.raises(RuntimeError):
            container.resolve(Flaky)

        instance = container.resolve(Flaky)
        assert container.resolve(Flaky) is instance
        assert len(attempts) == 2

    def test_unvalidated_cycle_is_detected_during_resolution(
        self,
        configuration: DependencyConfiguration,
    ) -> None:
        configuration.register(CycleA)
        configuration.register(CycleB)
        container = Container(configuration)

        with pytest.raises(DIWeaveCircularDependencyError) as exc_info:
            container.resolve(CycleA)

        assert exc_info.value.implementation is CycleA
        assert exc_info.value.path == (CycleA, CycleB)

    def test_unvalidated_singleton_cycle_is_detected_during_resolution(
        self,
        configuration: DependencyConfiguration,
    ) -> None:
        configuration.register_singleton(CycleA)
        configuration.register_singleton(CycleB)
        container = Container(configuration)

        with pytest.raises(DIWeaveCircularDependencyError):
            container.resolve(CycleB)

        assert CycleA not in container.singletons
        assert CycleB not in container.singletons

    def test_unconstructable_type_surfaces_lazily(
        self,
        configuration: DependencyConfiguration,
    ) -> None:
        class Untyped:
            def __init__(self, value) -> None:  # type: ignore[no-untyped-def]
                self.value = value

        configuration.register(Untyped)
        container = Container(configuration)

        with pytest.raises(DIWeaveUnconstructableTypeError):
            container.resolve(Untyped)

    def test_max_resolution_depth_must_be_positive(
        self,
        configuration: DependencyConfiguration,
    ) -> None:
        with pytest.raises(ValueError, match="max_resolution_depth"):
            Container(configuration, max_resolution_depth=0)


class TestDependencyDefaults:
    def test_optional_unregistered_dependency_keeps_default(
        self,
        configuration: DependencyConfiguration,
    ) -> None:
        class Settings:
            def __init__(self, retries: int = 3, name: str = "svc") -> None:
                self.retries = retries
                self.name = name

        configuration.register(Settings)
        container = Container(configuration)

        settings = container.resolve(Settings)

        assert settings.retries == 3
        assert settings.name == "svc"

    def test_optional_registered_dependency_is_injected(
        self,
        configuration: DependencyConfiguration,
    ) -> None:
        class Consumer:
            def __init__(self, first: Interface1 | None = None) -> None:
                self.first = first

        class Service:
            def __init__(self, first: Interface1 = Class2If1()) -> None:  # noqa: B008
                self.first = first

        configuration.register(Interface1, Class1If1)
        configuration.register(Consumer)
        configuration.register(Service)
        container = Container(configuration)

        assert isinstance(container.resolve(Consumer).first, Class1If1)
        assert isinstance(container.resolve(Service).first, Class1If1)

    def test_optional_annotation_spellings_resolve_the_inner_type(
        self,
        configuration: DependencyConfiguration,
    ) -> None:
        class Consumer:
            def __init__(
                self,
                first: Optional[Interface1] = None,  # noqa: UP007
                second: Interface2 | None = None,
            ) -> None:
                self.first = first
                self.second = second

        configuration.register_singleton(Interface1, Class1If1)
        configuration.register(Consumer)
        container = Container(configuration)

        consumer = container.resolve(Consumer)

        assert consumer.first is container.resolve(Interface1)
        assert consumer.second is None

    def test_required_optional_annotation_must_be_registered(
        self,
        configuration: DependencyConfiguration,
    ) -> None:
        class Consumer:
            def __init__(self, first: Interface1 | None) -> None:
                self.first = first

        configuration.register(Consumer)
        container = Container(configuration)

        with pytest.raises(DIWeaveDependencyNotRegisteredError) as exc_info:
            container.resolve(Consumer)

        assert exc_info.value.dependency is Interface1

    def test_unannotated_optional_parameter_is_skipped(
        self,
        configuration: DependencyConfiguration,
    ) -> None:
        class Loose:
            def __init__(self, first: Interface1, extra=None) -> None:  # type: ignore[no-untyped-def]
                self.first = first
                self.extra = extra

        configuration.register(Interface1, Class1If1)
        configuration.register(Loose)
        container = Container(configuration)

        loose = container.resolve(Loose)

        assert isinstance(loose.first, Class1If1)
        assert loose.extra is None

    def test_dataclass_fields_are_injected(self, configuration: DependencyConfiguration) -> None:
        @dataclass
        class Holder:
            first: Interface1
            second: Interface2

        configuration.register(Interface1, Class1If1)
        configuration.register(Interface2, Class1If2)
        configuration.register(Holder)
        container = Container(configuration)

        holder = container.resolve(Holder)

        assert isinstance(holder.first, Class1If1)
        assert isinstance(holder.second, Class1If2)

    def test_keyword_only_dependencies_are_injected(
        self,
        configuration: DependencyConfiguration,
    ) -> None:
        class KeywordOnly:
            def __init__(self, *, first: Interface1) -> None:
                self.first = first

        configuration.register(Interface1, Class1If1)
        configuration.register(KeywordOnly)
        container = Container(configuration)

        assert isinstance(container.resolve(KeywordOnly).first, Class1If1)


class TestExplicitRegistrations:
    def test_factory_receives_resolved_dependencies(
        self,
        configuration: DependencyConfiguration,
    ) -> None:
        def build_second(first: Interface1) -> Class1If2:
            return Class1If2(first)

        configuration.register(Interface1, Class1If1)
        configuration.register(Interface2, Class1If2, factory=build_second)
        container = Container(configuration)

        second = container.resolve(Interface2)

        assert isinstance(second, Class1If2)
        assert isinstance(second.first, Class1If1)

    def test_explicit_dependencies_replace_introspection(
        self,
        configuration: DependencyConfiguration,
    ) -> None:
        calls: list[tuple[object, ...]] = []

        def build(*parts: object) -> Class1If2:
            calls.append(parts)
            return Class1If2(parts[0])  # type: ignore[arg-type]

        configuration.register(Interface1, Class1If1)
        configuration.register(Interface1, Class2If1)
        configuration.register(
            Interface2,
            Class1If2,
            factory=build,
            dependencies=[Interface1, Iterable[Interface1]],
        )
        container = Container(configuration)

        container.validate()
        container.resolve(Interface2)

        first, everyone = calls[0]
        assert isinstance(first, Class1If1)
        assert [type(item) for item in everyone] == [Class1If1, Class2If1]  # type: ignore[attr-defined]

    def test_singleton_factory_is_cached_by_implementation(
        self,
        configuration: DependencyConfiguration,
    ) -> None:
        calls: list[int] = []

        def build() -> Class1If1:
            calls.append(1)
            return Class1If1()

        configuration.register_singleton(Interface1, Class1If1, factory=build)
        container = Container(configuration)

        assert container.resolve(Interface1) is container.resolve(Interface1)
        assert calls == [1]


def test_singletons_are_shared_by_implementation_across_abstractions(
    configuration: DependencyConfiguration,
) -> None:
    class Both(Interface1, Interface2):
        def name(self) -> str:
            return "both"

    configuration.register_singleton(Interface1, Both)
    configuration.register_singleton(Interface2, Both)
    container = Container(configuration)

    assert container.resolve(Interface1) is container.resolve(Interface2)


def test_container_uses_a_snapshot_of_the_configuration(
    configuration: DependencyConfiguration,
) -> None:
    configuration.register(Interface1, Class1If1)
    container = Container(configuration)

    configuration.register(Interface1, Class2If1)
    configuration.register(Interface2, Class1If2)

    assert len(container.resolve(Iterable[Interface1])) == 1
    with pytest.raises(DIWeaveDependencyNotRegisteredError):
        container.resolve(Interface2)


def test_containers_do_not_share_singletons(configuration: DependencyConfiguration) -> None:
    configuration.register_singleton(Interface1, Class1If1)

    first = Container(configuration)
    second = Container(configuration)

    assert first.resolve(Interface1) is not second.resolve(Interface1)
