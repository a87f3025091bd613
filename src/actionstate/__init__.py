"""
actionstate: pending/optimistic/broadcast coordination for user-triggered mutations.

A caller dispatches an action onto an ``ActionCoordinator``; the coordinator
tracks it through a pending state, commits only the most recent dispatch, and
notifies observers. ``OptimisticOverlay`` layers predicted values on top of
the committed one until the next commit.
"""

from actionstate.config import CoordinatorConfig, SettlePolicy
from actionstate.errors import ActionTimeout, SchedulerClosed
from actionstate.runtime import (
    ActionCoordinator,
    BoundAction,
    Pending,
    Ready,
    Resource,
    TransitionHandle,
    TransitionScheduler,
    bind_action,
    with_timeout,
)
from actionstate.state import (
    ActionError,
    ActionRecord,
    CoordinatorState,
    CoordinatorStatus,
    Err,
    ObservedState,
    Ok,
    OptimisticOverlay,
    StatusBroadcaster,
    StatusScope,
    StatusUpdate,
)

__version__ = "0.1.0"

__all__ = [
    "ActionCoordinator",
    "ActionError",
    "ActionRecord",
    "ActionTimeout",
    "BoundAction",
    "CoordinatorConfig",
    "CoordinatorState",
    "CoordinatorStatus",
    "Err",
    "ObservedState",
    "Ok",
    "OptimisticOverlay",
    "Pending",
    "Ready",
    "Resource",
    "SchedulerClosed",
    "SettlePolicy",
    "StatusBroadcaster",
    "StatusScope",
    "StatusUpdate",
    "TransitionHandle",
    "TransitionScheduler",
    "bind_action",
    "with_timeout",
]
