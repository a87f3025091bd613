"""Immutable records describing dispatches, coordinator state and outcomes."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Generic, Mapping, Optional, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


class CoordinatorStatus(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    SETTLED = "settled"


@dataclass(frozen=True)
class ActionRecord:
    """One mutation attempt, created at dispatch time."""

    id: str
    payload: Mapping[str, Any]
    generation: int
    timestamp: float

    def payload_dict(self) -> Dict[str, Any]:
        return dict(self.payload)


def make_action_record(
    payload: Optional[Mapping[str, Any]],
    *,
    generation: int,
    timestamp: Optional[float] = None,
    record_id: Optional[str] = None,
) -> ActionRecord:
    """Helper for constructing records with a frozen payload copy."""

    frozen_payload = MappingProxyType(dict(payload) if payload is not None else {})
    ts = time.time() if timestamp is None else float(timestamp)
    return ActionRecord(
        id=str(record_id) if record_id is not None else uuid.uuid4().hex,
        payload=frozen_payload,
        generation=int(generation),
        timestamp=ts,
    )


@dataclass(frozen=True)
class ActionError:
    """Expected, user-facing failure returned (never raised) by an action."""

    code: str
    message: str
    details: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details is not None:
            payload["details"] = dict(self.details)
        return payload


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E


ActionResult = Union[Ok[Any], Err[Any]]


def normalize_result(raw: Any) -> ActionResult:
    """Map whatever an action returned onto ``Ok`` / ``Err``."""

    if isinstance(raw, (Ok, Err)):
        return raw
    if isinstance(raw, ActionError):
        return Err(raw)
    return Ok(raw)


@dataclass(frozen=True)
class ObservedState:
    """What a rendering layer sees: at most one of these is authoritative."""

    pending: bool
    value: Any = None
    error: Any = None


@dataclass(frozen=True)
class CoordinatorState:
    status: CoordinatorStatus
    value: Any = None
    error: Any = None
    generation: int = 0
    _observed: ObservedState = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        observed = ObservedState(
            pending=self.status is CoordinatorStatus.PENDING,
            value=self.value,
            error=self.error,
        )
        object.__setattr__(self, "_observed", observed)

    @property
    def pending(self) -> bool:
        return self.status is CoordinatorStatus.PENDING

    def observed(self) -> ObservedState:
        return self._observed

    def with_generation(self, generation: int) -> "CoordinatorState":
        return CoordinatorState(
            status=self.status,
            value=self.value,
            error=self.error,
            generation=int(generation),
        )


__all__ = [
    "ActionError",
    "ActionRecord",
    "ActionResult",
    "CoordinatorState",
    "CoordinatorStatus",
    "Err",
    "ObservedState",
    "Ok",
    "make_action_record",
    "normalize_result",
]
