from __future__ import annotations

from typing import Generic, TypeVar


T = TypeVar("T")


class Ref(Generic[T]):
    """Mutable slot handed to a by-reference parameter.

    Annotate a parameter as ``Ref[T]`` to receive the resolved ``T`` wrapped in
    a slot; whatever the callee assigns to ``.value`` stays visible to whoever
    holds the slot after the call.
    """

    __slots__ = ("value",)

    def __init__(self, value: T) -> None:
        self.value = value

    def __repr__(self) -> str:
        return f"Ref({self.value!r})"
