import argparse
import os

import pytest

from injected import (
    Container,
    ContainerError,
    ContainerInterface,
    IntrospectionError,
    LockedEntryError,
    NotFoundError,
    ResolutionError,
    ResolveFlag,
)


class Connection:
    def __init__(self, host: str, port: int = 5432):
        self.host = host
        self.port = port


class Logger:
    def __init__(self, name: str = "app"):
        self.name = name


class Plain: ...


class Repository:
    def __init__(self, connection: Connection, logger: Logger):
        self.connection = connection
        self.logger = logger


class Chicken:
    def __init__(self, egg: "Egg"):
        self.egg = egg


class Egg:
    def __init__(self, chicken: Chicken):
        self.chicken = chicken


def test_get_unknown_entry_raises_not_found():
    c = Container()

    with pytest.raises(NotFoundError, match="Entry 'missing' not found"):
        c.get("missing")


def test_not_found_is_a_container_error():
    assert issubclass(NotFoundError, ContainerError)
    assert issubclass(LockedEntryError, ContainerError)


def test_define_class_entry_binds_args_and_caches_shared_instance():
    c = Container()
    c.define("conn", {"class": Connection, "args": {"host": "localhost"}, "shared": True})

    conn = c.get("conn")

    assert isinstance(conn, Connection)
    assert conn.host == "localhost"
    assert conn.port == 5432
    assert c.get("conn") is conn


def test_define_class_entry_args_by_position():
    c = Container()
    c.define("conn", {"class": Connection, "args": {0: "db.local", 1: "6543"}})

    conn = c.get("conn")

    assert conn.host == "db.local"
    assert conn.port == 6543


def test_define_class_without_constructor_builds_directly():
    c = Container()
    c.define("plain", {"class": Plain})

    assert isinstance(c.get("plain"), Plain)


@pytest.mark.parametrize("path", ["argparse:Namespace", "argparse.Namespace"])
def test_define_class_by_import_path(path):
    c = Container()
    c.define("ns", {"class": path})

    assert isinstance(c.get("ns"), argparse.Namespace)


@pytest.mark.parametrize("path", ["os:getcwd", "os.getcwd"])
def test_factory_by_import_path(path):
    c = Container()
    c.define("cwd", path)

    assert c.get("cwd") == os.getcwd()


def test_introspection_failure_is_wrapped_with_entry_id():
    c = Container()
    c.define("broken", {"class": "no_such_module_anywhere:Thing"})

    with pytest.raises(ContainerError, match="Error while retrieving entry 'broken'") as exc_info:
        c.get("broken")

    assert isinstance(exc_info.value.__cause__, IntrospectionError)
    assert c.has("broken")


def test_bare_callable_defines_shared_locked_factory():
    c = Container()
    c.define("log", lambda: Logger())

    first = c.get("log")

    assert isinstance(first, Logger)
    assert c.get("log") is first
    with pytest.raises(LockedEntryError, match="Entry 'log' is locked and cannot be modified"):
        c.remove("log")
    with pytest.raises(LockedEntryError):
        c.define("log", {"class": Logger})
    with pytest.raises(LockedEntryError):
        c.set("log", Logger())
    assert c.get("log") is first


def test_bare_class_is_a_factory_with_resolved_constructor():
    c = Container()
    c.set("host", "example.org")
    c.define("conn", Connection)

    conn = c.get("conn")

    assert conn.host == "example.org"
    assert c.get("conn") is conn


def test_factory_parameters_resolve_from_shared_entries_by_name():
    c = Container()
    c.set("dsn", "sqlite://")
    c.define("conn", {"factory": lambda dsn: Connection(dsn)})

    assert c.get("conn").host == "sqlite://"


def test_factory_parameters_resolve_from_typed_entries():
    c = Container()
    c.define("conn", {"class": Connection, "args": {"host": "h"}, "shared": True, "type": Connection})
    c.set("log", Logger("audit"), Logger)

    def make_repository(connection: Connection, logger: Logger):
        return Repository(connection, logger)

    c.define("repo", {"factory": make_repository})
    repo = c.get("repo")

    assert repo.connection is c.get("conn")
    assert repo.logger.name == "audit"


def test_same_typed_constructor_parameters_receive_successive_values():
    class Pair:
        def __init__(self, first: Logger, second: Logger):
            self.first = first
            self.second = second

    c = Container()
    primary, audit = Logger("primary"), Logger("audit")
    c.set("primary", primary, Logger)
    c.set("audit", audit, Logger)
    c.define("pair", {"class": Pair})

    pair = c.get("pair")

    assert pair.first is primary
    assert pair.second is audit


def test_container_injects_itself():
    c = Container()

    def factory(container: Container, lookup: ContainerInterface):
        return container, lookup

    c.define("self", {"factory": factory})

    assert c.get("self") == (c, c)


def test_has_never_creates_entries():
    calls = []
    c = Container()
    c.define("lazy", {"factory": lambda: calls.append(1) or Plain(), "shared": True})

    assert c.has("lazy")
    assert not c.has("other")
    assert calls == []


def test_has_and_get_resolve_type_aliases():
    c = Container()
    c.define("conn", {"class": Connection, "args": {"host": "h"}, "type": Connection})

    assert c.has(Connection)
    assert isinstance(c.get(Connection), Connection)


def test_get_through_alias_publishes_under_entry_id():
    c = Container()
    c.define("conn", {"class": Connection, "args": {"host": "h"}, "shared": True, "type": Connection})

    conn = c.get(Connection)

    assert c.get("conn") is conn
    assert c.call(lambda conn: conn) is conn


def test_set_and_get_return_value():
    c = Container()
    value = object()
    c.set("value", value)

    assert c.get("value") is value
    assert c.has("value")


def test_set_many_define_many_remove_many():
    c = Container()
    c.set_many({"a": 1, "b": 2})
    c.define_many({"plain": {"class": Plain}, "log": {"factory": Logger}})

    assert c.get("a") == 1
    assert isinstance(c.get("plain"), Plain)
    assert isinstance(c.get("log"), Logger)

    c.remove_many(["a", "b", "plain"])

    assert not c.has("a")
    assert not c.has("b")
    assert not c.has("plain")
    assert c.has("log")


def test_remove_unknown_entry_is_ignored():
    c = Container()
    c.remove("missing")

    assert not c.has("missing")


def test_remove_prunes_type_alias_and_shared_args():
    c = Container()
    c.set("a", Logger("a"), Logger)
    c.remove("a")

    assert not c.has("a")
    assert not c.has(Logger)

    def needs_logger(logger: Logger): ...

    with pytest.raises(ResolutionError):
        c.call(needs_logger)
    with pytest.raises(ResolutionError):
        c.call(lambda a: a)


def test_remove_takes_out_a_single_identical_occurrence():
    # the same object published twice under one type is removed one slot at a time
    c = Container(flags=ResolveFlag.USE_ARGS_BY_POSITION | ResolveFlag.USE_ARGS_BY_NAME)
    shared = Logger("shared")
    c.set("a", shared, Logger)
    c.set("b", shared, Logger)

    def two_loggers(first: Logger, second: Logger = None):  # noqa: RUF013
        return first, second

    assert c.call(two_loggers) == (shared, shared)

    c.remove("a")

    assert c.call(two_loggers) == (shared, None)


def test_remove_matches_by_identity_not_equality():
    class Same:
        def __eq__(self, other):
            return isinstance(other, Same)

        __hash__ = object.__hash__

    c = Container()
    first, second = Same(), Same()
    c.set("first", first, Same)
    c.set("second", second, Same)
    c.remove("second")

    def take(value: Same):
        return value

    assert c.call(take) is first


def test_call_explicit_args_override_shared_entries():
    c = Container()
    c.set("host", "shared")

    assert c.call(lambda host: host) == "shared"
    assert c.call(lambda host: host, {"host": "explicit"}) == "explicit"


def test_circular_dependency_is_detected():
    c = Container()
    c.define("chicken", {"class": Chicken, "type": Chicken})
    c.define("egg", {"class": Egg, "type": Egg})

    with pytest.raises(ResolutionError, match="Circular dependency detected: chicken -> egg -> chicken"):
        c.get("chicken")

    # nothing is left half-built
    with pytest.raises(ResolutionError, match="egg -> chicken -> egg"):
        c.get("egg")


def test_delegate_is_the_backing_source_for_parameters():
    parent = Container()
    parent.set("log", Logger("parent"), Logger)

    child = Container(delegate=parent)
    child.define("conn", {"class": Connection, "args": {"host": "h"}, "type": Connection})
    child.define("repo", {"class": Repository, "args": {"connection": Connection("direct")}})

    repo = child.get("repo")

    assert repo.logger is parent.get("log")
    assert repo.connection.host == "direct"
    assert child.resolver.container is parent


def test_settings_item_access_delegates_to_settings_dict():
    c = Container(settings={"debug": True})
    c["region"] = "eu"

    assert c["debug"] is True
    assert "region" in c
    assert len(c) == 2
    assert sorted(c) == ["debug", "region"]

    del c["debug"]

    assert c.settings == {"region": "eu"}
    assert not c.has("region")


def test_container_satisfies_lookup_interface():
    c = Container()

    assert isinstance(c, ContainerInterface)
    assert c.resolver.container is c
