"""Introspection of callables and constructors.

Everything the resolver needs to know about a callable is captured once in a
`CallableInfo`: a display name plus one `Parameter` descriptor per declared
parameter, in declaration order.
"""

from __future__ import annotations

import importlib
import inspect
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Union, get_args, get_origin, get_type_hints

from ._errors import ConfigurationError, IntrospectionError
from ._ref import Ref
from ._types import is_union, type_name


if TYPE_CHECKING:
    from collections.abc import Callable


logger = logging.getLogger(__name__)

_VARIADIC = (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
_NONE_TYPE = type(None)


@dataclass(frozen=True)
class Parameter:
    position: int
    name: str
    kind: inspect._ParameterKind  # noqa: SLF001
    annotation: Any = None  # declared type token, None when undeclared
    has_default: bool = False
    default: Any = None
    nullable: bool = False
    optional: bool = False  # variadic, empty when nothing is supplied
    by_reference: bool = False

    @property
    def keyword_only(self) -> bool:
        return self.kind is inspect.Parameter.KEYWORD_ONLY


@dataclass(frozen=True)
class CallableInfo:
    target: Callable[..., Any]
    name: str
    parameters: tuple[Parameter, ...]


def describe(target: Callable[..., Any], name: str | None = None) -> CallableInfo:
    try:
        sig = inspect.signature(target)
    except (TypeError, ValueError) as exc:
        msg = f"Cannot read the signature of {callable_name(target) or repr(target)}: {exc}"
        raise IntrospectionError(msg) from exc

    hints = _get_type_hints(target)
    parameters = tuple(_describe_parameter(pos, p, hints) for pos, p in enumerate(sig.parameters.values()))
    return CallableInfo(target=target, name=name or callable_name(target) or repr(target), parameters=parameters)


def describe_constructor(cls: type) -> CallableInfo | None:
    """Describe the constructor of `cls`, or None if it only has object's."""
    if cls.__init__ is object.__init__ and cls.__new__ is object.__new__:
        return None
    return describe(cls, name=f"{cls.__qualname__}.__init__")


def callable_name(value: object) -> str | None:
    """Display name of a callable (``func`` or ``Owner.method``), None if not callable."""
    if _is_method_pair(value):
        owner, attr = _split_pair(value)
        owner_name = owner.__qualname__ if inspect.isclass(owner) else type(owner).__qualname__
        return f"{owner_name}.{attr}"

    if isinstance(value, str):
        return value if _is_import_path(value) else None

    if not callable(value):
        return None

    name = getattr(value, "__qualname__", None)
    if isinstance(name, str):
        return name
    # callable instance
    return f"{type(value).__qualname__}.__call__"


def as_callable(value: object, context: str) -> Callable[..., Any]:
    """Turn any accepted callable form into a plain callable.

    Accepted forms are Python callables, ``(owner, "method")`` pairs and
    ``"package.module:attr"`` or ``"package.module.attr"`` import paths.
    """
    if _is_method_pair(value):
        owner, attr = _split_pair(value)
        target = getattr(owner, attr, None)
        if callable(target):
            return target
        if _is_private_member(owner, attr):
            msg = f"Call to private method {callable_name(value)} from context '{context}'"
            raise ConfigurationError(msg)
    elif isinstance(value, str) and _is_import_path(value):
        target = load_object(value)
        if callable(target):
            return target
    elif callable(value):
        return value

    msg = f"invoke() expects parameter 1 to be callable, {type_name(value)} given"
    raise ConfigurationError(msg)


def load_object(path: str) -> Any:
    """Import ``package.module:attr`` (or ``package.module.attr``)."""
    module_name, sep, qualname = path.partition(":")
    if not sep:
        module_name, _, qualname = path.rpartition(".")
    if not module_name or not qualname:
        msg = f"Invalid import path '{path}'"
        raise IntrospectionError(msg)

    try:
        obj: Any = importlib.import_module(module_name)
        for part in qualname.split("."):
            obj = getattr(obj, part)
    except (ImportError, AttributeError) as exc:
        msg = f"Cannot import '{path}': {exc}"
        raise IntrospectionError(msg) from exc

    return obj


def load_class(spec: type | str) -> type:
    if inspect.isclass(spec):
        return spec

    cls = load_object(spec)
    if not inspect.isclass(cls):
        msg = f"'{spec}' does not name a class ({type_name(cls)} found)"
        raise IntrospectionError(msg)
    return cls


def _split_pair(value: Any) -> tuple[Any, str]:
    return value[0], value[1]


def _is_import_path(value: str) -> bool:
    return (":" in value or "." in value) and not any(c.isspace() for c in value)


def _is_method_pair(value: object) -> bool:
    return isinstance(value, tuple) and len(value) == 2 and isinstance(value[1], str)  # noqa: PLR2004


def _is_private_member(owner: object, attr: str) -> bool:
    if not attr.startswith("__") or attr.endswith("__"):
        return False
    klass = owner if inspect.isclass(owner) else type(owner)
    return any(hasattr(owner, f"_{k.__name__.lstrip('_')}{attr}") for k in klass.__mro__)


def _describe_parameter(position: int, p: inspect.Parameter, hints: dict[str, Any]) -> Parameter:
    annotation = hints.get(p.name, p.annotation)
    if annotation is inspect.Parameter.empty:
        annotation = None

    by_reference = False
    if annotation is Ref:
        by_reference, annotation = True, None
    elif get_origin(annotation) is Ref:
        by_reference = True
        annotation = get_args(annotation)[0]

    nullable = False
    if p.kind in _VARIADIC:
        # only ever fed whole from explicit arguments
        annotation = None
    elif annotation is not None:
        annotation, nullable = _split_optional(annotation)

    has_default = p.default is not inspect.Parameter.empty
    return Parameter(
        position=position,
        name=p.name,
        kind=p.kind,
        annotation=annotation,
        has_default=has_default,
        default=p.default if has_default else None,
        nullable=nullable,
        optional=p.kind in _VARIADIC,
        by_reference=by_reference,
    )


def _split_optional(tp: Any) -> tuple[Any, bool]:
    """Strip None from an Optional/union annotation, reporting whether it was there."""
    if tp is _NONE_TYPE:
        return tp, True
    if not is_union(tp):
        return tp, False

    args = get_args(tp)
    if _NONE_TYPE not in args:
        return tp, False

    rest = tuple(a for a in args if a is not _NONE_TYPE)
    if len(rest) == 1:
        return rest[0], True
    return Union[rest], True  # noqa: UP007


def _get_type_hints(target: Callable[..., Any]) -> dict[str, Any]:
    source: Any = target
    if inspect.isclass(target):
        source = target.__init__ if target.__init__ is not object.__init__ else target.__new__
    elif not (inspect.isfunction(target) or inspect.ismethod(target)):
        call = getattr(type(target), "__call__", None)  # noqa: B004
        if inspect.isfunction(call):
            source = call

    try:
        hints = get_type_hints(source)
    except (TypeError, SyntaxError):
        hints = {}
    except NameError as exc:
        logger.warning(
            "'%s' name error retrieving %s type hints, falling back to raw annotations",
            exc.name,
            callable_name(target),
        )
        hints = {}

    return hints
