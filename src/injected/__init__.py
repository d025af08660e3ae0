"""Parameter resolver, callable invoker and dependency container.

This package resolves the parameters of any Python callable from a chain of
sources (values registered by type, a backing container, explicit arguments,
defaults) and builds a small identifier-keyed container on top of it.

Exports:
- `Resolver`: resolves parameters for a callable and invokes it.
- `ResolveFlag`: bit flags selecting which fallback sources `Resolver` consults.
- `Container`: registry of values, classes and factories fetched by identifier,
  with shared (cached) and locked entries.
- `ContainerInterface`: protocol of anything with ``has()``/``get()``, usable as
  the backing source of a `Resolver` or as a `Container` delegate.
- `Ref`: slot type for parameters whose mutations the caller must see.
"""

from ._container import Container, Entry
from ._errors import (
    ConfigurationError,
    ContainerError,
    IntrospectionError,
    LockedEntryError,
    NotFoundError,
    ResolutionError,
    TypeMismatchError,
)
from ._introspect import CallableInfo, Parameter, callable_name, describe, describe_constructor
from ._ref import Ref
from ._resolver import Arguments, ContainerInterface, ResolveFlag, Resolver


__all__ = [
    "Arguments",
    "CallableInfo",
    "ConfigurationError",
    "Container",
    "ContainerError",
    "ContainerInterface",
    "Entry",
    "IntrospectionError",
    "LockedEntryError",
    "NotFoundError",
    "Parameter",
    "Ref",
    "ResolutionError",
    "ResolveFlag",
    "Resolver",
    "TypeMismatchError",
    "callable_name",
    "describe",
    "describe_constructor",
]
