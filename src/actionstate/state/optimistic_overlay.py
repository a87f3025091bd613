"""Optimistic projection over a coordinator's committed value."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from itertools import count
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Optional, Tuple

if TYPE_CHECKING:  # pragma: no cover
    from actionstate.runtime.action_coordinator import ActionCoordinator


logger = logging.getLogger(__name__)

Predict = Callable[[Any, Any], Any]


def replace_value(base: Any, hint: Any) -> Any:
    return hint


def append_value(base: Any, hint: Any) -> Any:
    """Predict helper for list-shaped values (e.g. a comment thread)."""

    return [*(base or ()), hint]


@dataclass(frozen=True)
class OptimisticHint:
    sequence: int
    generation: int
    epoch: int
    predict: Predict
    value: Any


def compute_overlay(committed_value: Any, hints: Iterable[OptimisticHint]) -> Any:
    """Fold every hint over ``committed_value`` in dispatch order."""

    display = committed_value
    for hint in sorted(hints, key=lambda h: h.sequence):
        display = hint.predict(display, hint.value)
    return display


class OptimisticOverlay:
    """Derived read-only view: committed value plus unconfirmed predictions.

    Nothing here is authoritative. Hints belong to the commit epoch that was
    current when they were added; once the coordinator commits, resets or
    falls back after a failure, the epoch moves on and those hints stop
    counting on the very next read.
    """

    def __init__(self, coordinator: "ActionCoordinator", predict: Optional[Predict] = None) -> None:
        self._coordinator = coordinator
        self._predict = predict if predict is not None else replace_value
        self._hints: List[OptimisticHint] = []
        self._sequence = count(1)
        self._log_hints = coordinator.config.debug_policy.logging.log_hints

    @property
    def coordinator(self) -> "ActionCoordinator":
        return self._coordinator

    def add_hint(self, value: Any, predict: Optional[Predict] = None) -> bool:
        """Record a prediction; ignored unless a dispatch is outstanding."""

        coordinator = self._coordinator
        if not coordinator.is_pending():
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug("hint ignored (not pending): coordinator=%s value=%r", coordinator.name, value)
            return False
        self._prune()
        hint = OptimisticHint(
            sequence=next(self._sequence),
            generation=coordinator.generation,
            epoch=coordinator.commit_epoch,
            predict=predict if predict is not None else self._predict,
            value=value,
        )
        self._hints.append(hint)
        if self._log_hints:
            logger.info(
                "hint add: coordinator=%s generation=%d outstanding=%d value=%r",
                coordinator.name,
                hint.generation,
                len(self._hints),
                value,
            )
        return True

    def outstanding(self) -> Tuple[OptimisticHint, ...]:
        self._prune()
        return tuple(self._hints)

    def has_hints(self) -> bool:
        return bool(self.outstanding())

    def compute(self) -> Any:
        return compute_overlay(self._coordinator.state.value, self.outstanding())

    @property
    def value(self) -> Any:
        return self.compute()

    def _prune(self) -> None:
        if not self._hints:
            return
        coordinator = self._coordinator
        if not coordinator.is_pending():
            dropped = len(self._hints)
            self._hints.clear()
        else:
            epoch = coordinator.commit_epoch
            kept = [hint for hint in self._hints if hint.epoch == epoch]
            dropped = len(self._hints) - len(kept)
            self._hints = kept
        if dropped and self._log_hints:
            logger.info("hint revert: coordinator=%s dropped=%d", coordinator.name, dropped)

    def dump_debug(self) -> Dict[str, Any]:  # pragma: no cover - diagnostic helper
        return {
            "coordinator": self._coordinator.name,
            "committed": self._coordinator.state.value,
            "display": self.compute(),
            "hints": [
                {"sequence": h.sequence, "generation": h.generation, "epoch": h.epoch, "value": h.value}
                for h in self.outstanding()
            ],
        }


__all__ = [
    "OptimisticHint",
    "OptimisticOverlay",
    "Predict",
    "append_value",
    "compute_overlay",
    "replace_value",
]
