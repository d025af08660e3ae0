"""Type matching and lossless scalar coercion.

Type tokens accepted here are whatever may appear as a parameter annotation
or as an entry ``type``: classes, protocols, unions, parametrised generics
(checked by their origin), ``Any`` and plain strings naming a class.
"""

from __future__ import annotations

import inspect
import types
import typing
from typing import Annotated, Any, Literal, Protocol, Union, cast, get_args, get_origin, get_type_hints


class _Failed:
    def __repr__(self) -> str:
        return "FAILED"

    def __bool__(self) -> bool:
        return False


# Returned by `coerce` when the value cannot be made to satisfy the type.
FAILED: Any = _Failed()


if hasattr(typing, "is_protocol"):
    # https://docs.python.org/3/library/typing.html#typing.is_protocol
    def is_protocol(tp: object) -> bool:
        return inspect.isclass(tp) and typing.is_protocol(tp)

else:

    def is_protocol(tp: object) -> bool:
        return inspect.isclass(tp) and issubclass(tp, cast("type", Protocol))


def is_union(tp: object) -> bool:
    origin = get_origin(tp)
    return origin is Union or origin is types.UnionType


def matches_type(value: object, tp: Any) -> bool:  # noqa: C901, PLR0911
    """Return True when `value` satisfies the type token `tp`."""
    if tp is Any or tp is object:
        return True
    if tp is None or tp is type(None):
        return value is None
    if isinstance(tp, str):
        return _matches_name(value, tp)
    if is_union(tp):
        return any(matches_type(value, arg) for arg in get_args(tp))

    origin = get_origin(tp)
    if origin is Annotated:
        return matches_type(value, get_args(tp)[0])
    if origin is Literal:
        return value in get_args(tp)
    if origin is not None:
        return matches_type(value, origin)

    if is_protocol(tp):
        return _matches_protocol(value, tp)
    if inspect.isclass(tp):
        return isinstance(value, tp)
    return False


def coerce(value: object, tp: Any) -> Any:
    """Return `value` (converted if need be) as `tp`, or `FAILED`.

    Only lossless scalar conversions are attempted; everything else must
    already match.
    """
    if matches_type(value, tp):
        return value
    if is_union(tp):
        for arg in get_args(tp):
            converted = coerce(value, arg)
            if converted is not FAILED:
                return converted
        return FAILED

    # bool is an int subclass, but "True" -> 1 is never what the caller meant
    if isinstance(value, bool):
        return FAILED

    converter = _SCALAR_CONVERTERS.get(tp)
    if converter is None:
        return FAILED
    try:
        return converter(value)
    except (TypeError, ValueError, OverflowError):
        return FAILED


def type_name(value: object) -> str:
    if value is None:
        return "None"
    return type(value).__qualname__


def type_repr(tp: Any) -> str:
    if isinstance(tp, str):
        return tp
    if inspect.isclass(tp) and get_origin(tp) is None:
        return tp.__qualname__
    return repr(tp).replace("typing.", "")


def _matches_name(value: object, name: str) -> bool:
    if value is None:
        return name == "None"
    for klass in type(value).__mro__:
        if name in (klass.__name__, klass.__qualname__, f"{klass.__module__}.{klass.__qualname__}"):
            return True
    return False


def _matches_protocol(value: object, proto: type) -> bool:
    # nominal
    if proto in type(value).__mro__:
        return True

    try:
        return isinstance(value, proto)
    except TypeError:
        # not runtime checkable
        pass

    try:
        hinted = list(get_type_hints(proto))
    except (NameError, TypeError):
        hinted = []
    members = hinted + [name for name, attr in proto.__dict__.items() if inspect.isfunction(attr)]
    return all(hasattr(value, name) for name in members if not name.startswith("_"))


def _to_int(value: object) -> int:
    if isinstance(value, float):
        if not value.is_integer():
            msg = f"{value!r} is not integral"
            raise ValueError(msg)
        return int(value)
    if isinstance(value, str):
        return int(value.strip())
    msg = f"cannot convert {type_name(value)} to int"
    raise TypeError(msg)


def _to_float(value: object) -> float:
    if isinstance(value, (int, str)):
        return float(value)
    msg = f"cannot convert {type_name(value)} to float"
    raise TypeError(msg)


def _to_str(value: object) -> str:
    if isinstance(value, (int, float)):
        return str(value)
    msg = f"cannot convert {type_name(value)} to str"
    raise TypeError(msg)


_SCALAR_CONVERTERS: dict[Any, typing.Callable[[Any], Any]] = {
    int: _to_int,
    float: _to_float,
    str: _to_str,
}
