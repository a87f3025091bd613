"""Coordinator that drives one mutation slot through pending → settled.

Each ``dispatch`` bumps the coordinator generation and hands the action to a
``TransitionScheduler``. When the work finishes the coordinator compares the
generation captured at dispatch time with its current generation: only a
match may commit. Stale results are computed but never committed, and no
observer hears about them.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import OrderedDict
from itertools import count
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from actionstate.config.models import CoordinatorConfig, SettlePolicy
from actionstate.runtime.resource import Pending, ReadResult, Ready
from actionstate.runtime.transition_scheduler import TransitionHandle, TransitionScheduler
from actionstate.state.records import (
    ActionRecord,
    ActionResult,
    CoordinatorState,
    CoordinatorStatus,
    Ok,
    ObservedState,
    make_action_record,
    normalize_result,
)
from actionstate.state.status_broadcaster import StatusBroadcaster

logger = logging.getLogger(__name__)

ActionFn = Callable[[Any, Mapping[str, Any]], Any]
ErrorBoundary = Callable[[BaseException, ActionRecord], None]

_COORDINATOR_IDS = count(1)


class ActionCoordinator:
    """Own the authoritative state for one mutation slot."""

    def __init__(
        self,
        initial_value: Any = None,
        *,
        name: Optional[str] = None,
        scheduler: Optional[TransitionScheduler] = None,
        broadcaster: Optional[StatusBroadcaster] = None,
        config: Optional[CoordinatorConfig] = None,
        error_boundary: Optional[ErrorBoundary] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config if config is not None else CoordinatorConfig()
        self._toggles = self._config.debug_policy.logging
        self.name = str(name) if name is not None else f"coordinator-{next(_COORDINATOR_IDS):04d}"
        if scheduler is None:
            scheduler = TransitionScheduler(
                name=self.name,
                supersede_previous=self._supersedes_on_dispatch(),
                log_traces=self._toggles.log_scheduler,
            )
        self._scheduler = scheduler
        if broadcaster is None:
            broadcaster = StatusBroadcaster(clock=clock, log_notify=self._toggles.log_notify)
        self.broadcaster = broadcaster
        self._error_boundary = error_boundary
        self._clock = clock

        self._state = CoordinatorState(CoordinatorStatus.IDLE, value=initial_value, generation=0)
        self._last_commit = self._state
        # Generation of the last commit/reset/restore; nothing at or below it may commit.
        self._commit_floor = 0
        self._commit_epoch = 0
        self._inflight: "OrderedDict[int, Tuple[ActionRecord, TransitionHandle]]" = OrderedDict()
        self._waiters: List[asyncio.Future] = []

    def __repr__(self) -> str:
        return (
            f"ActionCoordinator(name={self.name!r}, status={self._state.status.value}, "
            f"generation={self._state.generation})"
        )

    # ------------------------------------------------------------------
    @property
    def config(self) -> CoordinatorConfig:
        return self._config

    @property
    def scheduler(self) -> TransitionScheduler:
        return self._scheduler

    @property
    def state(self) -> CoordinatorState:
        return self._state

    @property
    def generation(self) -> int:
        return self._state.generation

    @property
    def commit_epoch(self) -> int:
        """Bumped whenever the committed value may have changed."""

        return self._commit_epoch

    def is_pending(self) -> bool:
        return self._state.pending

    def observe(self) -> ObservedState:
        return self._state.observed()

    def read(self) -> ReadResult:
        """Return ``Ready`` when no dispatch is outstanding, else ``Pending``."""

        state = self._state
        if state.pending:
            return Pending(generation=state.generation)
        return Ready(state.value, error=state.error)

    def outstanding(self) -> Tuple[ActionRecord, ...]:
        return tuple(record for record, handle in self._inflight.values() if handle.outstanding)

    # ------------------------------------------------------------------
    def dispatch(self, action_fn: ActionFn, payload: Optional[Mapping[str, Any]] = None) -> ActionRecord:
        """Start ``action_fn(previous_value, payload)``; the result arrives via state."""

        assert callable(action_fn), "ActionCoordinator action must be callable"
        generation = self._state.generation + 1
        record = make_action_record(payload, generation=generation, timestamp=self._clock())
        previous_value = self._state.value

        def _work() -> Any:
            return action_fn(previous_value, record.payload)

        handle = self._scheduler.run(
            _work,
            on_settle=lambda h, r=record: self._on_settle(r, h),
            supersede_previous=self._supersedes_on_dispatch(),
        )
        self._inflight[generation] = (record, handle)
        self._state = CoordinatorState(
            CoordinatorStatus.PENDING,
            value=previous_value,
            error=None,
            generation=generation,
        )

        if self._toggles.log_dispatch:
            logger.info(
                "dispatch: coordinator=%s generation=%d id=%s inflight=%d",
                self.name,
                generation,
                record.id,
                len(self._inflight),
            )
        elif logger.isEnabledFor(logging.DEBUG):
            logger.debug("dispatch: coordinator=%s generation=%d id=%s", self.name, generation, record.id)

        if self._config.notify_on_dispatch:
            self._publish()
        return record

    def reset(self, initial_value: Any = None) -> CoordinatorState:
        """Force idle and invalidate everything still in flight."""

        generation = self._state.generation + 1
        superseded = 0
        for _record, handle in self._inflight.values():
            if self._scheduler.supersede(handle):
                superseded += 1
        self._state = CoordinatorState(CoordinatorStatus.IDLE, value=initial_value, generation=generation)
        self._last_commit = self._state
        self._commit_floor = generation
        self._commit_epoch += 1
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "reset: coordinator=%s generation=%d superseded=%d",
                self.name,
                generation,
                superseded,
            )
        self._publish()
        return self._state

    async def settled(self) -> CoordinatorState:
        """Wait until no dispatch is outstanding and return the resulting state."""

        while self._state.pending:
            waiter = asyncio.get_running_loop().create_future()
            self._waiters.append(waiter)
            await waiter
        return self._state

    # ------------------------------------------------------------------
    def _supersedes_on_dispatch(self) -> bool:
        if self._config.settle_policy is SettlePolicy.FIRST_SUCCESS_WINS:
            return False
        return self._config.supersede_previous

    def _on_settle(self, record: ActionRecord, handle: TransitionHandle) -> None:
        entry = self._inflight.get(record.generation)
        if entry is not None and entry[1] is handle:
            del self._inflight[record.generation]

        if handle.exception is not None:
            self._on_defect(record, handle)
            return

        outcome = normalize_result(handle.result)
        if not self._accepts(record, handle, outcome):
            if self._toggles.log_discard:
                logger.info(
                    "discard stale result: coordinator=%s generation=%d current=%d id=%s",
                    self.name,
                    record.generation,
                    self._state.generation,
                    record.id,
                )
            elif logger.isEnabledFor(logging.DEBUG):
                logger.debug(
                    "discard stale result: coordinator=%s generation=%d current=%d",
                    self.name,
                    record.generation,
                    self._state.generation,
                )
            return
        self._commit(record, outcome)

    def _accepts(self, record: ActionRecord, handle: TransitionHandle, outcome: ActionResult) -> bool:
        state = self._state
        if not state.pending or record.generation <= self._commit_floor:
            return False
        if self._config.settle_policy is SettlePolicy.LAST_WRITER_WINS:
            return record.generation == state.generation
        if handle.superseded:
            return False
        if isinstance(outcome, Ok):
            return True
        # An expected error waits for newer attempts unless none are left.
        return record.generation == state.generation or not self.outstanding()

    def _commit(self, record: ActionRecord, outcome: ActionResult) -> None:
        if isinstance(outcome, Ok):
            value, error = outcome.value, None
        else:
            value, error = None, outcome.error
        generation = self._state.generation
        self._state = CoordinatorState(CoordinatorStatus.SETTLED, value=value, error=error, generation=generation)
        self._last_commit = self._state
        self._commit_floor = generation
        self._commit_epoch += 1

        for _record, handle in self._inflight.values():
            self._scheduler.supersede(handle)

        if self._toggles.log_commit:
            logger.info(
                "commit: coordinator=%s generation=%d from=%d id=%s error=%s",
                self.name,
                generation,
                record.generation,
                record.id,
                error is not None,
            )
        elif logger.isEnabledFor(logging.DEBUG):
            logger.debug("commit: coordinator=%s generation=%d id=%s", self.name, generation, record.id)
        self._publish()

    def _on_defect(self, record: ActionRecord, handle: TransitionHandle) -> None:
        exc = handle.exception
        assert exc is not None
        state = self._state
        owns_pending = state.pending and record.generation > self._commit_floor
        if self._config.settle_policy is SettlePolicy.LAST_WRITER_WINS:
            owns_pending = owns_pending and record.generation == state.generation
        else:
            owns_pending = owns_pending and not self.outstanding()

        if owns_pending:
            # Fall back to the last good commit; the failed attempt leaves no trace.
            self._state = self._last_commit.with_generation(state.generation)
            self._commit_floor = state.generation
            self._commit_epoch += 1
            logger.warning(
                "action failed: coordinator=%s generation=%d id=%s cancelled=%s error=%r",
                self.name,
                record.generation,
                record.id,
                handle.cancelled,
                exc,
            )
            self._publish()
        elif logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "stale action failed: coordinator=%s generation=%d current=%d error=%r",
                self.name,
                record.generation,
                state.generation,
                exc,
            )

        if handle.cancelled:
            return
        handle.mark_handled()
        if self._error_boundary is not None:
            self._error_boundary(exc, record)
            return
        task = handle.task
        loop = task.get_loop() if task is not None else asyncio.get_running_loop()
        loop.call_exception_handler(
            {
                "message": f"unhandled action failure in {self.name} (generation {record.generation})",
                "exception": exc,
                "task": task,
            }
        )

    def _publish(self) -> None:
        self.broadcaster.notify(self, self._state)
        if self._state.pending or not self._waiters:
            return
        waiters, self._waiters = self._waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(None)

    # ------------------------------------------------------------------
    def dump_debug(self) -> Dict[str, Any]:  # pragma: no cover - diagnostic helper
        state = self._state
        return {
            "name": self.name,
            "status": state.status.value,
            "value": state.value,
            "error": state.error,
            "generation": state.generation,
            "commit_floor": self._commit_floor,
            "commit_epoch": self._commit_epoch,
            "policy": self._config.settle_policy.value,
            "inflight": [
                {
                    "id": record.id,
                    "generation": record.generation,
                    "handle": handle.id,
                    "superseded": handle.superseded,
                    "payload": record.payload_dict(),
                }
                for record, handle in self._inflight.values()
            ],
        }


__all__ = ["ActionCoordinator", "ActionFn", "ErrorBoundary"]
