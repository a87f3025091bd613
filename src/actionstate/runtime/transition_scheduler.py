"""Non-blocking transition scheduler with logical (not physical) cancellation.

Work handed to ``TransitionScheduler.run`` executes inside an asyncio task, so
the caller's current synchronous turn is never blocked. Superseding a handle
does not abort the task; it only stops the handle's result from counting as
outstanding work. Consumers must not assume side effects of superseded work
were undone.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import OrderedDict
from typing import Any, Awaitable, Callable, Generator, Optional, Tuple, Union

from actionstate.errors import SchedulerClosed

logger = logging.getLogger(__name__)

Work = Callable[[], Union[Any, Awaitable[Any]]]
SettleCallback = Callable[["TransitionHandle"], None]


class TransitionHandle:
    """Tracks one unit of scheduled work."""

    def __init__(self, handle_id: str) -> None:
        self.id = handle_id
        self._task: Optional[asyncio.Task] = None
        self._superseded = False
        self._settled = False
        self._cancelled = False
        self._result: Any = None
        self._exception: Optional[BaseException] = None
        self._handled = False

    def __repr__(self) -> str:
        return (
            f"TransitionHandle(id={self.id!r}, settled={self._settled}, "
            f"superseded={self._superseded}, cancelled={self._cancelled})"
        )

    @property
    def superseded(self) -> bool:
        return self._superseded

    @property
    def settled(self) -> bool:
        return self._settled

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def outstanding(self) -> bool:
        return not self._settled and not self._superseded

    @property
    def result(self) -> Any:
        return self._result

    @property
    def exception(self) -> Optional[BaseException]:
        return self._exception

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task

    def done(self) -> bool:
        return self._task is not None and self._task.done()

    def mark_handled(self) -> None:
        """Flag the failure as consumed by a recovery boundary."""

        self._handled = True
        task = self._task
        if task is not None and task.done() and not task.cancelled():
            task.exception()

    def __await__(self) -> Generator[Any, None, Any]:
        assert self._task is not None, "TransitionHandle awaited before scheduling"
        return self._task.__await__()

    # ------------------------------------------------------------------
    def _supersede(self) -> bool:
        if self._settled or self._superseded:
            return False
        self._superseded = True
        return True

    def _settle_success(self, result: Any) -> None:
        self._settled = True
        self._result = result

    def _settle_failure(self, exc: BaseException) -> None:
        self._settled = True
        self._exception = exc

    def _settle_cancelled(self, exc: asyncio.CancelledError) -> None:
        self._settled = True
        self._cancelled = True
        self._exception = exc


class TransitionScheduler:
    """Run work without blocking the caller and expose a single pending flag."""

    def __init__(
        self,
        *,
        name: str = "transition",
        loop: Optional[asyncio.AbstractEventLoop] = None,
        supersede_previous: bool = True,
        log_traces: bool = False,
    ) -> None:
        self._name = str(name)
        self._loop = loop
        self._supersede_previous = bool(supersede_previous)
        self._log_traces = bool(log_traces)
        self._counter = 0
        self._active: "OrderedDict[str, TransitionHandle]" = OrderedDict()
        self._latest: Optional[TransitionHandle] = None
        self._closed = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    def run(
        self,
        work: Work,
        *,
        on_settle: Optional[SettleCallback] = None,
        supersede_previous: Optional[bool] = None,
    ) -> TransitionHandle:
        """Schedule ``work`` and return immediately with its handle."""

        assert callable(work), "TransitionScheduler work must be callable"
        if self._closed:
            raise SchedulerClosed(f"scheduler {self._name!r} is closed")
        loop = self._loop if self._loop is not None else asyncio.get_running_loop()

        self._counter = (self._counter + 1) & 0xFFFFFFFF
        handle = TransitionHandle(f"{self._name}-{self._counter:08x}")

        supersede = self._supersede_previous if supersede_previous is None else bool(supersede_previous)
        if supersede:
            self.supersede_all()

        self._active[handle.id] = handle
        self._latest = handle
        task = loop.create_task(self._execute(handle, work, on_settle), name=handle.id)
        handle._task = task
        task.add_done_callback(lambda _task, _handle=handle: self._on_task_done(_handle, on_settle))

        if self._log_traces:
            logger.info("transition start: id=%s active=%d", handle.id, len(self._active))
        return handle

    def is_pending(self) -> bool:
        latest = self._latest
        return latest is not None and latest.outstanding

    def outstanding(self) -> Tuple[TransitionHandle, ...]:
        return tuple(handle for handle in self._active.values() if handle.outstanding)

    def supersede(self, handle: TransitionHandle) -> bool:
        changed = handle._supersede()
        if changed and self._log_traces:
            logger.info("transition superseded: id=%s", handle.id)
        return changed

    def supersede_all(self) -> int:
        count = 0
        for handle in tuple(self._active.values()):
            if self.supersede(handle):
                count += 1
        return count

    async def drain(self) -> list[BaseException]:
        """Wait for every tracked task; return the failures they raised."""

        failures: list[BaseException] = []
        while self._active:
            tasks = [handle.task for handle in self._active.values() if handle.task is not None]
            if not tasks:
                break
            results = await asyncio.gather(*tasks, return_exceptions=True)
            failures.extend(r for r in results if isinstance(r, BaseException))
        return failures

    async def aclose(self, *, cancel: bool = False) -> None:
        self._closed = True
        if cancel:
            for handle in tuple(self._active.values()):
                if handle.task is not None and not handle.task.done():
                    handle.task.cancel()
        await self.drain()

    # ------------------------------------------------------------------
    async def _execute(
        self,
        handle: TransitionHandle,
        work: Work,
        on_settle: Optional[SettleCallback],
    ) -> Any:
        try:
            result = work()
            if inspect.isawaitable(result):
                result = await result
        except asyncio.CancelledError as exc:
            handle._settle_cancelled(exc)
            self._fire(handle, on_settle)
            raise
        except Exception as exc:
            handle._settle_failure(exc)
            self._fire(handle, on_settle)
            raise
        handle._settle_success(result)
        self._fire(handle, on_settle)
        return result

    def _fire(self, handle: TransitionHandle, on_settle: Optional[SettleCallback]) -> None:
        if self._log_traces:
            logger.info(
                "transition settle: id=%s superseded=%s failed=%s",
                handle.id,
                handle.superseded,
                handle.exception is not None,
            )
        if on_settle is not None:
            on_settle(handle)

    def _on_task_done(self, handle: TransitionHandle, on_settle: Optional[SettleCallback]) -> None:
        self._active.pop(handle.id, None)
        task = handle.task
        if not handle.settled:
            # Cancelled before the coroutine body ever ran.
            handle._settle_cancelled(asyncio.CancelledError())
            self._fire(handle, on_settle)
        if handle._handled and task is not None and not task.cancelled():
            task.exception()


__all__ = ["SettleCallback", "TransitionHandle", "TransitionScheduler", "Work"]
