"""Convenience wrappers around ``ActionCoordinator`` for trigger code."""

from __future__ import annotations

import asyncio
import functools
import inspect
from typing import Any, Mapping, Optional

from actionstate.errors import ActionTimeout
from actionstate.runtime.action_coordinator import ActionCoordinator, ActionFn
from actionstate.state.records import ActionRecord, ObservedState


def with_timeout(action_fn: ActionFn, seconds: float) -> ActionFn:
    """Wrap ``action_fn`` so that exceeding ``seconds`` raises ``ActionTimeout``.

    The timeout is a defect, not an expected error: the coordinator falls back
    to its last commit and the failure reaches the error boundary.
    """

    name = getattr(action_fn, "__name__", None)

    @functools.wraps(action_fn)
    async def _timed(previous: Any, payload: Mapping[str, Any]) -> Any:
        result = action_fn(previous, payload)
        if not inspect.isawaitable(result):
            return result
        try:
            return await asyncio.wait_for(result, timeout=seconds)
        except asyncio.TimeoutError as exc:
            raise ActionTimeout(seconds, action_name=name) from exc

    return _timed


class BoundAction:
    """An action fixed to a coordinator: call it with the submitted fields."""

    def __init__(self, coordinator: ActionCoordinator, action_fn: ActionFn) -> None:
        self.coordinator = coordinator
        self.action_fn = action_fn

    def __call__(self, payload: Optional[Mapping[str, Any]] = None, **fields: Any) -> ActionRecord:
        merged = dict(payload) if payload is not None else {}
        merged.update(fields)
        return self.coordinator.dispatch(self.action_fn, merged)

    @property
    def state(self) -> ObservedState:
        return self.coordinator.observe()

    @property
    def pending(self) -> bool:
        return self.coordinator.is_pending()


def bind_action(
    action_fn: ActionFn,
    initial_value: Any = None,
    *,
    coordinator: Optional[ActionCoordinator] = None,
    **coordinator_kwargs: Any,
) -> BoundAction:
    """Return a trigger bound to ``coordinator`` (a fresh one when omitted)."""

    if coordinator is None:
        coordinator = ActionCoordinator(initial_value, **coordinator_kwargs)
    return BoundAction(coordinator, action_fn)


__all__ = ["BoundAction", "bind_action", "with_timeout"]
