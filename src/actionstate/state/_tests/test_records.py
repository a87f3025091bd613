from __future__ import annotations

import pytest

from actionstate.state.records import (
    ActionError,
    CoordinatorState,
    CoordinatorStatus,
    Err,
    ObservedState,
    Ok,
    make_action_record,
    normalize_result,
)


def test_make_action_record_freezes_a_copy_of_the_payload() -> None:
    source = {"email": "a@example.com"}
    record = make_action_record(source, generation=3, timestamp=12.5)

    source["email"] = "changed"

    assert record.payload["email"] == "a@example.com"
    assert record.generation == 3
    assert record.timestamp == pytest.approx(12.5)
    with pytest.raises(TypeError):
        record.payload["email"] = "x"  # type: ignore[index]

    copy = record.payload_dict()
    copy["email"] = "mutable copy"
    assert record.payload["email"] == "a@example.com"


def test_action_record_ids_are_unique() -> None:
    ids = {make_action_record(None, generation=1).id for _ in range(50)}
    assert len(ids) == 50


def test_normalize_result_variants() -> None:
    error = ActionError(code="email.invalid", message="invalid email")

    assert normalize_result(5) == Ok(5)
    assert normalize_result(None) == Ok(None)
    assert normalize_result(Ok("x")) == Ok("x")
    assert normalize_result(Err("bad")) == Err("bad")
    assert normalize_result(error) == Err(error)


def test_action_error_to_dict() -> None:
    assert ActionError("c", "m").to_dict() == {"code": "c", "message": "m"}
    assert ActionError("c", "m", {"field": "email"}).to_dict() == {
        "code": "c",
        "message": "m",
        "details": {"field": "email"},
    }


def test_coordinator_state_observed_view() -> None:
    pending = CoordinatorState(CoordinatorStatus.PENDING, value=1, generation=4)
    assert pending.pending
    assert pending.observed() is pending.observed()
    assert pending.observed() == ObservedState(pending=True, value=1, error=None)

    settled = CoordinatorState(CoordinatorStatus.SETTLED, value=None, error="nope", generation=4)
    assert settled.observed() == ObservedState(pending=False, value=None, error="nope")

    bumped = settled.with_generation(9)
    assert bumped.generation == 9
    assert bumped.status is CoordinatorStatus.SETTLED
    assert bumped.error == "nope"
