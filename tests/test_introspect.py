import inspect
import logging
from typing import Optional

import pytest

from injected import IntrospectionError, Ref, callable_name, describe, describe_constructor


class Connection:
    def __init__(self, host: str, port: int = 5432, *, timeout: Optional[float] = None):
        self.host = host
        self.port = port
        self.timeout = timeout

    def ping(self, retries: int) -> bool:
        return True


class Plain: ...


class CallableThing:
    def __call__(self, value: int) -> int:
        return value


def test_describe_reads_parameters_in_declaration_order():
    info = describe(Connection)

    assert [p.name for p in info.parameters] == ["host", "port", "timeout"]
    assert [p.position for p in info.parameters] == [0, 1, 2]


def test_describe_reports_types_defaults_and_nullability():
    host, port, timeout = describe(Connection).parameters

    assert host.annotation is str
    assert not host.has_default
    assert not host.nullable

    assert port.annotation is int
    assert port.has_default
    assert port.default == 5432

    assert timeout.annotation is float
    assert timeout.nullable
    assert timeout.keyword_only


def test_describe_marks_variadic_parameters_optional_and_untyped():
    def target(a, *rest: int, **options: str): ...

    a, rest, options = describe(target).parameters

    assert not a.optional
    assert rest.optional
    assert rest.annotation is None
    assert options.optional
    assert options.kind is inspect.Parameter.VAR_KEYWORD


def test_describe_unwraps_by_reference_annotation():
    def target(counter: Ref[int], slot: Ref): ...

    counter, slot = describe(target).parameters

    assert counter.by_reference
    assert counter.annotation is int
    assert slot.by_reference
    assert slot.annotation is None


def test_describe_keeps_union_minus_none():
    def target(value: int | str | None): ...

    (value,) = describe(target).parameters

    assert value.nullable
    assert set(value.annotation.__args__) == {int, str}


def test_describe_falls_back_to_raw_annotations_on_unknown_names(caplog):
    def target(thing: "NotDefinedAnywhere", count: int): ...  # noqa: F821

    with caplog.at_level(logging.WARNING, logger="injected._introspect"):
        thing, count = describe(target).parameters

    assert thing.annotation == "NotDefinedAnywhere"
    assert count.annotation is int
    assert "NotDefinedAnywhere" in caplog.text


def test_describe_callable_instance_uses_call_signature():
    (value,) = describe(CallableThing()).parameters

    assert value.name == "value"
    assert value.annotation is int


def test_describe_raises_introspection_error_when_signature_is_unavailable():
    def target(): ...

    target.__signature__ = "broken"

    with pytest.raises(IntrospectionError, match="Cannot read the signature"):
        describe(target)


def test_describe_constructor_is_none_without_own_constructor():
    assert describe_constructor(Plain) is None


def test_describe_constructor_names_init():
    info = describe_constructor(Connection)

    assert info is not None
    assert info.name == "Connection.__init__"
    assert info.parameters[0].name == "host"


def test_callable_name():
    def func(): ...

    assert callable_name(Connection(host="h").ping) == "Connection.ping"
    assert callable_name((Connection, "ping")) == "Connection.ping"
    assert callable_name(func).endswith("func")
    assert callable_name(CallableThing()) == "CallableThing.__call__"
    assert callable_name("posixpath:join") == "posixpath:join"
    assert callable_name("posixpath.join") == "posixpath.join"
    assert callable_name("not a path") is None
    assert callable_name(42) is None
