"""Read-if-ready access to asynchronous values.

``read()`` never blocks and never depends on call order, so it can be used
from inside branches and loops. It returns ``Ready`` once the value exists and
``Pending`` while it is still being produced. A resource whose producer
failed re-raises the failure on read.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Generic, Optional, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Ready(Generic[T]):
    value: T
    error: Any = None


@dataclass(frozen=True)
class Pending:
    generation: Optional[int] = None


ReadResult = Union[Ready[Any], Pending]


class Resource(Generic[T]):
    """Wrap an awaitable so callers can poll it without awaiting."""

    def __init__(self, future: "asyncio.Future[T]") -> None:
        self._future = future

    @classmethod
    def from_awaitable(cls, awaitable: Awaitable[T]) -> "Resource[T]":
        return cls(asyncio.ensure_future(awaitable))

    @classmethod
    def resolved(cls, value: T) -> "Resource[T]":
        future: asyncio.Future[T] = asyncio.get_running_loop().create_future()
        future.set_result(value)
        return cls(future)

    def done(self) -> bool:
        return self._future.done()

    def read(self) -> ReadResult:
        if not self._future.done():
            return Pending()
        # result() re-raises the producer's exception, or CancelledError.
        return Ready(self._future.result())

    async def wait(self) -> T:
        return await self._future


__all__ = ["Pending", "ReadResult", "Ready", "Resource"]
