"""Shared, lock-guarded state handed to pipeline operations."""

from __future__ import annotations

import asyncio
import copy
import inspect
from typing import Any, Awaitable, Callable, Generic, TypeVar, Union

T = TypeVar("T")

Mutator = Callable[[T], Union[Any, Awaitable[Any]]]


async def _apply(fn: Callable[[Any], Any], value: Any) -> Any:
    result = fn(value)
    if inspect.isawaitable(result):
        result = await result
    return result


class StateCell(Generic[T]):
    """Holder for one externally supplied value.

    Every holder shares the same cell object, so a mutation committed by one
    operation is visible to every later reader. All access goes through an
    ``asyncio.Lock``; readers receive deep copies, so no live reference to the
    stored value escapes the lock.

    The lock serializes access within one event loop. When the cell is used
    from a different loop (a later ``asyncio.run``), it gets a fresh lock.
    """

    def __init__(self, value: T) -> None:
        self._value = value
        self._value_type: type = type(value)
        self._lock: asyncio.Lock | None = None
        self._lock_loop: asyncio.AbstractEventLoop | None = None

    @property
    def value_type(self) -> type:
        """Type of the value the cell was created with.

        Fixed at construction; state binding uses it, and ``replace`` with a
        value of another type does not change it.
        """
        return self._value_type

    @property
    def locked(self) -> bool:
        return self._lock is not None and self._lock.locked()

    def _guard(self) -> asyncio.Lock:
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    async def snapshot(self) -> T:
        """Return a deep copy of the current value."""
        async with self._guard():
            return copy.deepcopy(self._value)

    clone_snapshot = snapshot

    async def replace(self, value: T) -> None:
        """Overwrite the stored value."""
        async with self._guard():
            self._value = value

    async def mutate(self, fn: Mutator[T]) -> None:
        """Apply ``fn`` to the live value in place while holding the lock.

        Whatever ``fn`` returns is ignored, so ``dict.setdefault`` or
        ``list.pop`` are safe to call. Coroutine functions are awaited before
        the lock is released.
        """
        async with self._guard():
            await _apply(fn, self._value)

    async def transform(self, fn: Callable[[T], T] | Callable[[T], Awaitable[T]]) -> None:
        """Replace the value with ``fn(value)``, computed under the lock.

        Use this for immutable values: ``await label.transform(lambda s: s + "-x")``.
        """
        async with self._guard():
            self._value = await _apply(fn, self._value)

    def __repr__(self) -> str:
        return f"StateCell[{self._value_type.__name__}]"
