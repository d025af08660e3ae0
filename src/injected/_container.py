from __future__ import annotations

import inspect
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ._errors import (
    ConfigurationError,
    ContainerError,
    IntrospectionError,
    LockedEntryError,
    NotFoundError,
    ResolutionError,
    TypeMismatchError,
)
from ._introspect import describe_constructor, load_class
from ._resolver import ContainerInterface, Resolver
from ._types import matches_type, type_name, type_repr


if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator


logger = logging.getLogger(__name__)

_DEFINITION_KEYS = frozenset({"class", "factory", "args", "type", "shared", "locked"})


@dataclass
class Entry:
    """A named binding: a finished value, a class to build, or a factory to call.

    Once a shared entry has been created it keeps only its value.
    """

    shared: bool = False
    locked: bool = False
    created: bool = False
    value: Any = None
    cls: type | str | None = None
    args: dict[int | str, Any] | None = None
    factory: Any = None
    type: Any = None  # noqa: A003

    def freeze(self, value: Any) -> None:
        self.created = True
        self.value = value
        self.cls = self.args = self.factory = None


class Container:
    """Registry of entries resolved by identifier.

    - `set` a finished value, `define` a class or a factory to build lazily
    - `get` builds entries, injecting constructor/factory parameters through
      its `Resolver`, whose backing source is this container (or `delegate`)
    - shared entries are built once; their values then feed later resolutions
      by type and by entry name
    - locked entries can be neither redefined nor removed.

    Item access, ``in``, ``len()`` and iteration apply to the plain `settings`
    dict, not to entries.
    """

    def __init__(
        self,
        settings: Mapping[str, Any] | None = None,
        delegate: ContainerInterface | None = None,
        flags: int | None = None,
    ) -> None:
        self.settings: dict[str, Any] = dict(settings or {})
        self._entries: dict[Any, Entry] = {}
        self._aliases: dict[Any, Any] = {}
        self._args: dict[Any, Any] = {}
        self._map: dict[Any, list[Any]] = {tp: [self] for tp in (ContainerInterface, Container, type(self))}
        self._creating: list[Any] = []
        self.resolver = Resolver(delegate if delegate is not None else self, flags)

    def get(self, entry_id: Any) -> Any:
        real_id = self._aliases.get(entry_id, entry_id)
        entry = self._entries.get(real_id)
        if entry is None:
            msg = f"Entry '{type_repr(entry_id)}' not found"
            raise NotFoundError(msg)

        if entry.created:
            return entry.value

        if real_id in self._creating:
            chain = [*self._creating[self._creating.index(real_id) :], real_id]
            msg = f"Circular dependency detected: {' -> '.join(map(type_repr, chain))}"
            raise ResolutionError(msg)

        self._creating.append(real_id)
        try:
            value = self._create(entry_id, entry)
        finally:
            self._creating.pop()

        if entry.type is not None and not matches_type(value, entry.type):
            raise TypeMismatchError(_mismatch_message(entry_id, entry.type, value))

        if entry.shared:
            entry.freeze(value)
            if entry.type is not None:
                self._map.setdefault(entry.type, []).append(value)
            self._args[real_id] = value
            logger.debug("Created shared entry '%s' (%s)", type_repr(real_id), type_name(value))

        return value

    def has(self, entry_id: Any) -> bool:
        return self._aliases.get(entry_id, entry_id) in self._entries

    def set(self, entry_id: Any, value: Any, type: Any = None) -> None:  # noqa: A002
        """Register a finished value; it is shared and never built again.

        Without an explicit `type`, the type of a replaced entry carries over.
        """
        old = self._entries.get(entry_id)
        if old is not None:
            _check_unlocked(entry_id, old)
            if type is None:
                type = old.type  # noqa: A001

        if type is not None and not matches_type(value, type):
            raise TypeMismatchError(_mismatch_message(entry_id, type, value))

        if old is not None:
            self.remove(entry_id)

        if type is not None:
            self._aliases[type] = entry_id
            self._map.setdefault(type, []).append(value)
        self._args[entry_id] = value
        self._entries[entry_id] = Entry(shared=True, created=True, value=value, type=type)

    def set_many(self, values: Mapping[Any, Any]) -> None:
        for entry_id, value in values.items():
            self.set(entry_id, value)

    def define(self, entry_id: Any, definition: Mapping[str, Any] | Callable[..., Any] | tuple[Any, str] | str) -> None:
        """Define how an entry is built.

        A bare callable (or ``(owner, "method")`` pair, or import path string)
        defines a shared, locked factory. Otherwise `definition` is a mapping
        with exactly one of ``class`` or ``factory`` and optionally ``args``
        (constructor arguments by name or position, ``class`` only),
        ``type``, ``shared`` and ``locked``. Keys left out of a redefinition
        are taken from the entry being replaced.

        Example:
          container.define("db", {"class": Database, "args": {"dsn": dsn}, "shared": True})
          container.define("clock", lambda: SystemClock())

        """
        old = self._entries.get(entry_id)
        if old is not None:
            _check_unlocked(entry_id, old)

        if isinstance(definition, Mapping):
            entry = self._build_entry(entry_id, definition, old)
        elif callable(definition) or isinstance(definition, (tuple, str)):
            entry = Entry(shared=True, locked=True, factory=definition)
        else:
            msg = f"define() expects definition to be a mapping or a callable, {type_name(definition)} given"
            raise ConfigurationError(msg)

        if old is not None:
            self.remove(entry_id)

        if entry.type is not None:
            self._aliases[entry.type] = entry_id
        self._entries[entry_id] = entry
        logger.debug("Defined entry '%s'", type_repr(entry_id))

    def define_many(self, definitions: Mapping[Any, Any]) -> None:
        for entry_id, definition in definitions.items():
            self.define(entry_id, definition)

    def remove(self, entry_id: Any) -> None:
        """Remove an entry and the values it published; unknown ids are ignored."""
        entry = self._entries.get(entry_id)
        if entry is None:
            return
        _check_unlocked(entry_id, entry)

        del self._entries[entry_id]
        if entry.type is not None and self._aliases.get(entry.type) == entry_id:
            del self._aliases[entry.type]

        if entry.created:
            if entry.type is not None:
                _discard_identical(self._map.get(entry.type, []), entry.value)
            self._args.pop(entry_id, None)
        logger.debug("Removed entry '%s'", type_repr(entry_id))

    def remove_many(self, entry_ids: Iterable[Any]) -> None:
        for entry_id in entry_ids:
            self.remove(entry_id)

    def call(self, target: Any, args: Mapping[int | str, Any] | None = None) -> Any:
        """Invoke `target`, resolving its parameters against this container.

        `args` take precedence over shared entries with the same name.
        """
        return self.resolver.invoke(target, self._map, {**self._args, **args} if args else self._args)

    def _create(self, entry_id: Any, entry: Entry) -> Any:
        try:
            if entry.factory is not None:
                return self.resolver.invoke(entry.factory, self._map, self._args)

            cls = load_class(entry.cls)  # type: ignore[arg-type]
            info = describe_constructor(cls)
            if info is None or not info.parameters:
                return cls()

            args = {**self._args, **entry.args} if entry.args else self._args
            positional, keywords = self.resolver.resolve(info, self._map, args).split()
            return cls(*positional, **keywords)
        except IntrospectionError as exc:
            msg = f"Error while retrieving entry '{type_repr(entry_id)}': {exc}"
            raise ContainerError(msg) from exc

    def _build_entry(self, entry_id: Any, definition: Mapping[str, Any], old: Entry | None) -> Entry:
        unknown = set(definition) - _DEFINITION_KEYS
        if unknown:
            msg = f"Unknown key(s) {', '.join(sorted(map(repr, unknown)))} in definition of entry '{type_repr(entry_id)}'"
            raise ConfigurationError(msg)

        spec = dict(definition)
        if old is not None:
            inherited = {"shared": old.shared, "locked": old.locked, "type": old.type}
            # class/args/factory only carry over together
            if "class" not in spec and "factory" not in spec:
                inherited.update({"class": old.cls, "args": old.args, "factory": old.factory})
            spec = {**{k: v for k, v in inherited.items() if v is not None}, **spec}

        cls, factory, args = spec.get("class"), spec.get("factory"), spec.get("args")
        if cls is not None and factory is not None:
            msg = f"Both 'class' and 'factory' are defined for entry '{type_repr(entry_id)}'"
            raise ConfigurationError(msg)
        if cls is None and factory is None:
            msg = f"Neither 'class' nor 'factory' is defined for entry '{type_repr(entry_id)}'"
            raise ConfigurationError(msg)
        if cls is not None and not (inspect.isclass(cls) or isinstance(cls, str)):
            msg = f"'class' of entry '{type_repr(entry_id)}' must be a class or an import path, {type_name(cls)} given"
            raise ConfigurationError(msg)
        if args is not None:
            if cls is None:
                msg = f"'args' of entry '{type_repr(entry_id)}' only apply to 'class' definitions"
                raise ConfigurationError(msg)
            if not isinstance(args, Mapping):
                msg = f"'args' of entry '{type_repr(entry_id)}' must be a mapping, {type_name(args)} given"
                raise ConfigurationError(msg)

        return Entry(
            shared=bool(spec.get("shared", False)),
            locked=bool(spec.get("locked", False)),
            cls=cls,
            args=dict(args) if args else None,
            factory=factory,
            type=spec.get("type"),
        )

    # settings

    def __getitem__(self, key: str) -> Any:
        return self.settings[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self.settings[key] = value

    def __delitem__(self, key: str) -> None:
        del self.settings[key]

    def __contains__(self, key: object) -> bool:
        return key in self.settings

    def __len__(self) -> int:
        return len(self.settings)

    def __iter__(self) -> Iterator[str]:
        return iter(self.settings)


def _check_unlocked(entry_id: Any, entry: Entry) -> None:
    if entry.locked:
        msg = f"Entry '{type_repr(entry_id)}' is locked and cannot be modified"
        raise LockedEntryError(msg)


def _discard_identical(values: list[Any], value: Any) -> None:
    # removes one occurrence only, matched by identity
    for index, candidate in enumerate(values):
        if candidate is value:
            del values[index]
            return


def _mismatch_message(entry_id: Any, tp: Any, value: Any) -> str:
    return f"Value of entry '{type_repr(entry_id)}' is expected to be {type_repr(tp)}, {type_name(value)} got"
