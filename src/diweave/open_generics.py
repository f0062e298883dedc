from __future__ import annotations

import inspect
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, TypeVar, get_args, get_origin

from diweave.exceptions import DIWeaveGenericArgumentError


@dataclass(frozen=True, slots=True)
class GenericBinding:
    """Type arguments of a closed generic request, keyed by parameter name.

    Open-generic implementations are closed by matching their own ``TypeVar``
    names against the abstraction's parameter names, so an implementation and
    its constructor must spell the parameters the way the abstraction does.
    """

    abstraction: Any
    arguments: Mapping[str, tuple[TypeVar, Any]]

    def lookup(self, typevar: TypeVar) -> tuple[TypeVar, Any]:
        """Return the abstraction's parameter and the argument bound to ``typevar``'s name.

        Raises:
            DIWeaveGenericArgumentError: If the abstraction has no parameter with
                that name.

        """
        bound = self.arguments.get(typevar.__name__)
        if bound is None:
            names = ", ".join(self.arguments) or "none"
            msg = f"not present among the abstraction's generic parameters ({names})"
            raise DIWeaveGenericArgumentError(self.abstraction, typevar.__name__, msg)
        return bound

    def substitute(self, value: Any) -> Any:
        """Substitute every ``TypeVar`` in a type expression with its bound argument."""
        if isinstance(value, TypeVar):
            return self.lookup(value)[1]

        origin = get_origin(value)
        if origin is None:
            return value

        arguments = get_args(value)
        if not arguments:
            return value

        substituted_arguments = tuple(self.substitute(argument) for argument in arguments)
        return _rebuild_alias(origin=origin, args=substituted_arguments, fallback=value)


def contains_typevar(value: Any) -> bool:
    """Return whether a type expression still contains a ``TypeVar``.

    Args:
        value: Type expression or object to inspect.

    Returns:
        ``True`` when any nested node contains a TypeVar, else ``False``.

    """
    if isinstance(value, TypeVar):
        return True

    origin = get_origin(value)
    if origin is not None:
        return any(contains_typevar(argument) for argument in get_args(value))

    parameters = getattr(value, "__parameters__", ())
    return any(isinstance(parameter, TypeVar) for parameter in parameters)


def typevar_parameters(value: Any) -> tuple[TypeVar, ...]:
    """Return the unbound ``TypeVar`` parameters declared by a generic class."""
    if not inspect.isclass(value):
        return ()
    return tuple(
        parameter
        for parameter in getattr(value, "__parameters__", ())
        if isinstance(parameter, TypeVar)
    )


def is_open_generic_class(value: Any) -> bool:
    """Return whether ``value`` is a generic class with unbound ``TypeVar`` parameters."""
    return bool(typevar_parameters(value))


def canonicalize_open_key(dependency: Any) -> Any | None:
    """Normalize an open-generic key to its origin class.

    ``Repository`` and ``Repository[T]`` both describe the same open shape and
    map to ``Repository``. Returns ``None`` when ``dependency`` is not open.
    """
    if is_open_generic_class(dependency):
        return dependency

    origin = get_origin(dependency)
    arguments = get_args(dependency)
    if origin is None or not arguments:
        return None
    if all(isinstance(argument, TypeVar) for argument in arguments):
        return origin
    return None


def is_closed_generic(dependency: Any) -> bool:
    """Return whether ``dependency`` is a generic alias whose arguments contain no ``TypeVar``."""
    origin = get_origin(dependency)
    if origin is None:
        return False
    arguments = get_args(dependency)
    if not arguments:
        return False
    return not any(contains_typevar(argument) for argument in arguments)


def type_argument_request(dependency: Any) -> TypeVar | None:
    """Return ``T`` when a dependency asks for the type argument itself via ``type[T]``."""
    if get_origin(dependency) is not type:
        return None
    arguments = get_args(dependency)
    if len(arguments) == 1 and isinstance(arguments[0], TypeVar):
        return arguments[0]
    return None


def bind_type_arguments(dependency: Any) -> GenericBinding:
    """Bind a closed generic request's arguments to its open shape's parameter names.

    Raises:
        DIWeaveGenericArgumentError: If the argument count does not match the
            open shape, or an argument violates a parameter's bound or
            constraints.

    """
    origin = get_origin(dependency)
    parameters = typevar_parameters(origin)
    arguments = get_args(dependency)
    if len(parameters) != len(arguments):
        names = ", ".join(parameter.__name__ for parameter in parameters)
        msg = f"expected {len(parameters)} type argument(s) for ({names}), got {len(arguments)}"
        raise DIWeaveGenericArgumentError(dependency, names, msg)

    for parameter, argument in zip(parameters, arguments, strict=True):
        if not _is_type_argument_valid(typevar=parameter, argument=argument):
            msg = f"argument {argument!r} violates the parameter's bound or constraints"
            raise DIWeaveGenericArgumentError(dependency, parameter.__name__, msg)

    return GenericBinding(
        abstraction=dependency,
        arguments={
            parameter.__name__: (parameter, argument)
            for parameter, argument in zip(parameters, arguments, strict=True)
        },
    )


def close_implementation(implementation: Any, binding: GenericBinding) -> Any:
    """Close an open-generic implementation over the bound type arguments.

    An implementation without type parameters of its own is accepted only when
    it already derives from the requested closed abstraction.

    Raises:
        DIWeaveGenericArgumentError: If an implementation parameter has no
            same-named abstraction parameter, or a non-generic implementation
            is closed over other type arguments.

    """
    parameters = typevar_parameters(implementation)
    if not parameters:
        if not derives_from_closed(implementation, binding.abstraction):
            names = ", ".join(binding.arguments)
            msg = (
                f"{_implementation_name(implementation)} does not derive from "
                f"{binding.abstraction!r}"
            )
            raise DIWeaveGenericArgumentError(binding.abstraction, names, msg)
        return implementation
    arguments = tuple(binding.lookup(parameter)[1] for parameter in parameters)
    return _rebuild_alias(origin=implementation, args=arguments, fallback=implementation)


def derives_from_closed(implementation: Any, dependency: Any) -> bool:
    """Return whether ``implementation`` subclasses exactly the closed alias ``dependency``.

    A closed implementation alias such as ``SqlRepository[User]`` has its own
    arguments substituted into its declared bases first.
    """
    origin = get_origin(implementation)
    if origin is not None:
        own = bind_type_arguments(implementation) if is_open_generic_class(origin) else None
        for base in getattr(origin, "__orig_bases__", ()):
            if own is not None:
                base = own.substitute(base)  # noqa: PLW2901
            if base == dependency:
                return True
        return False

    return any(
        dependency in base.__dict__.get("__orig_bases__", ())
        for base in getattr(implementation, "__mro__", ())
    )


def _implementation_name(implementation: Any) -> str:
    if get_origin(implementation) is None:
        return getattr(implementation, "__qualname__", repr(implementation))
    return repr(implementation)


def parameter_fallback(typevar: TypeVar) -> Any | None:
    """Return the bound, or the first constraint, declared on a generic parameter."""
    constraints = getattr(typevar, "__constraints__", ())
    if constraints:
        return constraints[0]
    return getattr(typevar, "__bound__", None)


def _rebuild_alias(*, origin: Any, args: tuple[Any, ...], fallback: Any) -> Any:
    try:
        if len(args) == 1:
            return origin[args[0]]
        return origin[args]
    except TypeError:
        return fallback


def _is_type_argument_valid(*, typevar: TypeVar, argument: Any) -> bool:
    constraints = getattr(typevar, "__constraints__", ())
    if constraints:
        return any(
            _matches_type_constraint(argument=argument, constraint=constraint)
            for constraint in constraints
        )
    bound = getattr(typevar, "__bound__", None)
    if bound is None:
        return True
    return _matches_type_constraint(argument=argument, constraint=bound)


def _matches_type_constraint(*, argument: Any, constraint: Any) -> bool:
    if constraint is Any:
        return True
    argument_type = get_origin(argument) or argument
    constraint_type = get_origin(constraint) or constraint
    if isinstance(argument_type, type) and isinstance(constraint_type, type):
        try:
            return issubclass(argument_type, constraint_type)
        except TypeError:
            # non-runtime protocols only support nominal checks
            return constraint_type in argument_type.__mro__
    return argument == constraint
