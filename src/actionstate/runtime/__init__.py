"""Scheduling and coordination of in-flight actions."""

from .action_coordinator import ActionCoordinator
from .bindings import BoundAction, bind_action, with_timeout
from .resource import Pending, Ready, Resource
from .transition_scheduler import TransitionHandle, TransitionScheduler

__all__ = [
    "ActionCoordinator",
    "BoundAction",
    "Pending",
    "Ready",
    "Resource",
    "TransitionHandle",
    "TransitionScheduler",
    "bind_action",
    "with_timeout",
]
