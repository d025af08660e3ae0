from __future__ import annotations

import inspect
import logging
from collections.abc import Mapping, Sequence
from enum import IntFlag
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from ._errors import ConfigurationError, ResolutionError, TypeMismatchError
from ._introspect import CallableInfo, Parameter, as_callable, describe
from ._ref import Ref
from ._types import FAILED, coerce, type_name, type_repr


if TYPE_CHECKING:
    from collections.abc import Callable

    TypeMap = Mapping[Any, Sequence[Any]]
    ArgMap = Mapping[int | str, Any]


logger = logging.getLogger(__name__)

_MISSING = object()


class ResolveFlag(IntFlag):
    """Sources consulted, besides the type map, when resolving a parameter."""

    USE_CONTAINER_BY_TYPE = 0x1
    USE_CONTAINER_BY_NAME = 0x2
    USE_ARGS_BY_POSITION = 0x4
    USE_ARGS_BY_NAME = 0x8

    DEFAULT = USE_CONTAINER_BY_TYPE | USE_ARGS_BY_POSITION | USE_ARGS_BY_NAME


@runtime_checkable
class ContainerInterface(Protocol):
    """Anything that can look entries up by identifier."""

    def has(self, entry_id: Any) -> bool: ...

    def get(self, entry_id: Any) -> Any: ...


class Arguments(list):  # type: ignore[type-arg]
    """Values resolved for a callable, in declaration order.

    Parameters declared ``Ref[T]`` receive a `Ref` slot instead of a plain
    value; `refs` maps their positions to those slots so the caller can read
    back what the callee assigned. Slots are never shared between two
    `Resolver.resolve` calls.
    """

    def __init__(self, info: CallableInfo) -> None:
        super().__init__()
        self.info = info
        self.refs: dict[int, Ref[Any]] = {}

    def split(self) -> tuple[list[Any], dict[str, Any]]:
        """Split into positional and keyword-only arguments for the call."""
        args: list[Any] = []
        kwargs: dict[str, Any] = {}
        for param, value in zip(self.info.parameters, self, strict=False):
            if param.kind is inspect.Parameter.VAR_POSITIONAL:
                args.extend(value)
            elif param.kind is inspect.Parameter.VAR_KEYWORD:
                kwargs.update(value)
            elif param.keyword_only:
                kwargs[param.name] = value
            else:
                args.append(value)
        return args, kwargs


class Resolver:
    """Resolve the parameters of callables and call them.

    For every parameter, in declaration order, the first of these wins:

    1. the next unconsumed value registered for its declared type in the type map
    2. the backing container, by declared type then by parameter name (flags permitting)
    3. explicit arguments, by position then by name (flags permitting)
    4. the parameter default
    5. None, when the annotation admits it
    6. an empty tuple or dict, when the parameter is variadic
    7. otherwise `ResolutionError`.

    Values found by 1-3 are checked (and losslessly coerced) against the
    declared type.
    """

    def __init__(self, container: ContainerInterface | None = None, flags: int | None = None) -> None:
        self._container: ContainerInterface | None = None
        if container is not None:
            self.container = container
        self.flags = ResolveFlag.DEFAULT if flags is None else flags

    @property
    def container(self) -> ContainerInterface | None:
        return self._container

    @container.setter
    def container(self, value: ContainerInterface) -> None:
        if not isinstance(value, ContainerInterface):
            msg = f"Resolver container must provide has() and get(), {type_name(value)} given"
            raise ConfigurationError(msg)
        self._container = value

    @property
    def flags(self) -> ResolveFlag:
        return self._flags

    @flags.setter
    def flags(self, value: int) -> None:
        self._flags = _check_flags(value, "Resolver.flags")

    def resolve(
        self,
        info: CallableInfo,
        type_map: TypeMap | None = None,
        args: ArgMap | None = None,
        flags: int | None = None,
    ) -> Arguments:
        """Resolve every parameter of `info`.

        `type_map` maps type tokens to sequences of candidate values; within
        one call the n-th parameter declaring a type receives the n-th value.
        `args` holds explicit values keyed by parameter position (int) or
        name (str); a None value counts as absent.
        """
        flags = self._flags if flags is None else _check_flags(flags, "resolve")
        type_map = type_map or {}
        args = args or {}

        indices: dict[Any, int] = {}
        resolved = Arguments(info)

        for param in info.parameters:
            value = self._lookup(param, type_map, indices, args, flags)

            if value is not _MISSING:
                if param.by_reference and isinstance(value, Ref):
                    value.value = self._validate(info, param, value.value)
                else:
                    value = self._validate(info, param, value)
            elif param.has_default:
                value = param.default
            elif param.nullable:
                value = None
            elif param.optional:
                value = {} if param.kind is inspect.Parameter.VAR_KEYWORD else ()
            else:
                raise ResolutionError(_unresolvable_message(info, param))

            if param.by_reference:
                slot = value if isinstance(value, Ref) else Ref(value)
                resolved.refs[param.position] = slot
                value = slot

            resolved.append(value)

        return resolved

    def invoke(
        self,
        target: Any,
        type_map: TypeMap | None = None,
        args: ArgMap | None = None,
        flags: int | None = None,
    ) -> Any:
        """Call `target` with resolved arguments and return its result."""
        func: Callable[..., Any] = as_callable(target, context=type(self).__name__)
        info = describe(func)

        if not info.parameters:
            return func()

        positional, keywords = self.resolve(info, type_map, args, flags).split()
        logger.debug("Invoking %s() with %d resolved argument(s)", info.name, len(positional) + len(keywords))
        return func(*positional, **keywords)

    def _lookup(  # noqa: C901
        self,
        param: Parameter,
        type_map: TypeMap,
        indices: dict[Any, int],
        args: ArgMap,
        flags: int,
    ) -> Any:
        tp = param.annotation
        if tp is not None:
            if tp in type_map:
                values = type_map[tp]
                if not isinstance(values, Sequence) or isinstance(values, (str, bytes)):
                    msg = (
                        "resolve() expects type_map to hold sequences of values, "
                        f"{type_name(values)} given for {type_repr(tp)}"
                    )
                    raise ConfigurationError(msg)

                index = indices.get(tp, 0)
                if index < len(values):
                    indices[tp] = index + 1
                    return values[index]

            container = self._container
            if container is not None:
                if flags & ResolveFlag.USE_CONTAINER_BY_TYPE and container.has(tp):
                    value = container.get(tp)
                    if value is not None:
                        return value
                if flags & ResolveFlag.USE_CONTAINER_BY_NAME and container.has(param.name):
                    value = container.get(param.name)
                    if value is not None:
                        return value

        if flags & ResolveFlag.USE_ARGS_BY_POSITION and args.get(param.position) is not None:
            return args[param.position]
        if flags & ResolveFlag.USE_ARGS_BY_NAME and args.get(param.name) is not None:
            return args[param.name]

        return _MISSING

    def _validate(self, info: CallableInfo, param: Parameter, value: Any) -> Any:
        tp = param.annotation
        if tp is None or (value is None and param.nullable):
            return value

        converted = coerce(value, tp)
        if converted is FAILED:
            msg = (
                f"{info.name}() expects parameter {param.position + 1} to be {type_repr(tp)}, "
                f"{type_name(value)} was resolved to be given"
            )
            raise TypeMismatchError(msg)
        return converted


def _check_flags(value: object, where: str) -> ResolveFlag:
    if isinstance(value, bool) or not isinstance(value, int):
        msg = f"{where} expects flags to be int, {type_name(value)} given"
        raise ConfigurationError(msg)
    return ResolveFlag(value)


def _unresolvable_message(info: CallableInfo, param: Parameter) -> str:
    if param.annotation is not None:
        return (
            f"{info.name}() expects parameter {param.position + 1} to be {type_repr(param.annotation)} "
            "but there is none to provide"
        )
    return f"Could not resolve parameter {param.position + 1} ('{param.name}') of {info.name}()"
