"""Records, optimistic projection and status fan-out."""

from .optimistic_overlay import OptimisticHint, OptimisticOverlay, append_value, compute_overlay, replace_value
from .records import (
    ActionError,
    ActionRecord,
    ActionResult,
    CoordinatorState,
    CoordinatorStatus,
    Err,
    ObservedState,
    Ok,
    make_action_record,
    normalize_result,
)
from .status_broadcaster import StatusBroadcaster, StatusScope, StatusUpdate, Subscription

__all__ = [
    "ActionError",
    "ActionRecord",
    "ActionResult",
    "CoordinatorState",
    "CoordinatorStatus",
    "Err",
    "ObservedState",
    "Ok",
    "OptimisticHint",
    "OptimisticOverlay",
    "StatusBroadcaster",
    "StatusScope",
    "StatusUpdate",
    "Subscription",
    "append_value",
    "compute_overlay",
    "make_action_record",
    "normalize_result",
    "replace_value",
]
