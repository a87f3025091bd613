"""Status fan-out for coordinators plus explicit scope lookup.

Observers register against a coordinator through ``StatusBroadcaster``. Code
that sits structurally "inside" a mutation's trigger resolves the nearest
enclosing coordinator through a ``StatusScope`` chain instead of receiving it
as a parameter from every intermediate layer.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Tuple

from actionstate.state.records import CoordinatorState, CoordinatorStatus, ObservedState

if TYPE_CHECKING:  # pragma: no cover
    from actionstate.runtime.action_coordinator import ActionCoordinator


logger = logging.getLogger(__name__)

_IDLE = ObservedState(pending=False)


@dataclass(frozen=True)
class StatusUpdate:
    coordinator: str
    status: CoordinatorStatus
    pending: bool
    value: Any
    error: Any
    generation: int
    timestamp: float

    def observed(self) -> ObservedState:
        return ObservedState(pending=self.pending, value=self.value, error=self.error)


StatusCallback = Callable[[StatusUpdate], None]


class Subscription:
    """One observer registration; owned by the broadcaster."""

    def __init__(self, broadcaster: "StatusBroadcaster", coordinator: Any, callback: StatusCallback) -> None:
        self.broadcaster = broadcaster
        self.coordinator = coordinator
        self.callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self.broadcaster._remove(self)

    def __call__(self) -> None:
        self.unsubscribe()


class StatusBroadcaster:
    """Registry of observers keyed by coordinator identity."""

    def __init__(self, *, clock: Callable[[], float] = time.time, log_notify: bool = False) -> None:
        self._clock = clock
        self._log_notify = bool(log_notify)
        self._subscribers: Dict[int, List[Subscription]] = {}
        self._global_subscribers: List[Subscription] = []

    # ------------------------------------------------------------------
    def subscribe(self, coordinator: Any, callback: StatusCallback) -> Subscription:
        """Register ``callback``; the returned subscription unsubscribes when called."""

        assert callable(callback), "StatusBroadcaster subscriber must be callable"
        listeners = self._subscribers.setdefault(id(coordinator), [])
        assert all(sub.callback is not callback for sub in listeners), "StatusBroadcaster subscriber already registered"
        subscription = Subscription(self, coordinator, callback)
        listeners.append(subscription)
        return subscription

    def subscribe_all(self, callback: StatusCallback) -> Subscription:
        assert callable(callback), "StatusBroadcaster subscriber must be callable"
        assert all(
            sub.callback is not callback for sub in self._global_subscribers
        ), "StatusBroadcaster global subscriber already registered"
        subscription = Subscription(self, None, callback)
        self._global_subscribers.append(subscription)
        return subscription

    def subscriptions(self, coordinator: Any) -> Tuple[Subscription, ...]:
        return tuple(self._subscribers.get(id(coordinator), ()))

    def clear(self, coordinator: Any = None) -> None:
        if coordinator is None:
            for listeners in self._subscribers.values():
                for sub in listeners:
                    sub.active = False
            for sub in self._global_subscribers:
                sub.active = False
            self._subscribers.clear()
            self._global_subscribers.clear()
            return
        for sub in self._subscribers.pop(id(coordinator), []):
            sub.active = False

    # ------------------------------------------------------------------
    def notify(self, coordinator: Any, state: CoordinatorState) -> StatusUpdate:
        """Deliver one snapshot to every interested observer."""

        update = StatusUpdate(
            coordinator=str(getattr(coordinator, "name", coordinator)),
            status=state.status,
            pending=state.pending,
            value=state.value,
            error=state.error,
            generation=state.generation,
            timestamp=float(self._clock()),
        )
        targets = tuple(self._global_subscribers) + tuple(self._subscribers.get(id(coordinator), ()))
        if self._log_notify:
            logger.info(
                "status notify: coordinator=%s status=%s generation=%d subscribers=%d",
                update.coordinator,
                update.status.value,
                update.generation,
                len(targets),
            )
        for sub in targets:
            if not sub.active:
                continue
            try:
                sub.callback(update)
            except Exception:
                logger.exception("status subscriber failed: coordinator=%s", update.coordinator)
        return update

    # ------------------------------------------------------------------
    def _remove(self, subscription: Subscription) -> None:
        if subscription.coordinator is None:
            if subscription in self._global_subscribers:
                self._global_subscribers.remove(subscription)
            return
        key = id(subscription.coordinator)
        listeners = self._subscribers.get(key)
        if not listeners:
            return
        if subscription in listeners:
            listeners.remove(subscription)
        if not listeners:
            self._subscribers.pop(key, None)


class StatusScope:
    """A node in the composition tree that may provide a coordinator."""

    def __init__(
        self,
        *,
        coordinator: Optional["ActionCoordinator"] = None,
        parent: Optional["StatusScope"] = None,
    ) -> None:
        self.coordinator = coordinator
        self.parent = parent

    @classmethod
    def root(cls) -> "StatusScope":
        return cls()

    def provide(self, coordinator: "ActionCoordinator") -> "StatusScope":
        return StatusScope(coordinator=coordinator, parent=self)

    def child(self) -> "StatusScope":
        return StatusScope(parent=self)

    def nearest(self) -> Optional["ActionCoordinator"]:
        scope: Optional[StatusScope] = self
        while scope is not None:
            if scope.coordinator is not None:
                return scope.coordinator
            scope = scope.parent
        return None

    def status(self) -> ObservedState:
        """Pending/value/error of the enclosing coordinator, idle when none."""

        coordinator = self.nearest()
        if coordinator is None:
            return _IDLE
        return coordinator.observe()

    def subscribe(self, callback: StatusCallback) -> Subscription:
        coordinator = self.nearest()
        if coordinator is None:
            raise LookupError("no coordinator encloses this scope")
        return coordinator.broadcaster.subscribe(coordinator, callback)


__all__ = [
    "StatusBroadcaster",
    "StatusCallback",
    "StatusScope",
    "StatusUpdate",
    "Subscription",
]
