from __future__ import annotations


class ContainerError(RuntimeError):
    """Base error of the container subsystem."""


class NotFoundError(ContainerError):
    pass


class LockedEntryError(ContainerError):
    pass


class TypeMismatchError(TypeError):
    pass


class ConfigurationError(ValueError):
    pass


class ResolutionError(RuntimeError):
    pass


class IntrospectionError(RuntimeError):
    """A callable or class could not be located or inspected."""
