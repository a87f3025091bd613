from __future__ import annotations

import asyncio
from typing import Any

from actionstate.runtime.action_coordinator import ActionCoordinator
from actionstate.state.optimistic_overlay import (
    OptimisticHint,
    OptimisticOverlay,
    append_value,
    compute_overlay,
)
from actionstate.state.records import Err


async def _flush(turns: int = 3) -> None:
    for _ in range(turns):
        await asyncio.sleep(0)


def test_compute_overlay_folds_in_sequence_order() -> None:
    hints = [
        OptimisticHint(sequence=2, generation=1, epoch=0, predict=lambda base, v: base * v, value=10),
        OptimisticHint(sequence=1, generation=1, epoch=0, predict=lambda base, v: base + v, value=1),
    ]
    assert compute_overlay(2, hints) == 30
    assert compute_overlay(2, []) == 2


def test_hint_is_ignored_without_outstanding_dispatch() -> None:
    coordinator = ActionCoordinator(["first"])
    overlay = OptimisticOverlay(coordinator, predict=append_value)

    assert overlay.add_hint("ghost") is False
    assert overlay.value == ["first"]
    assert not overlay.has_hints()


def test_overlay_shows_hint_then_reverts_on_success() -> None:
    async def runner() -> None:
        coordinator = ActionCoordinator(["first"])
        overlay = OptimisticOverlay(coordinator, predict=append_value)
        gate = asyncio.Event()

        async def post_comment(previous: list[str], payload: Any) -> list[str]:
            await gate.wait()
            return [*previous, payload["body"]]

        coordinator.dispatch(post_comment, {"body": "hello"})
        assert overlay.add_hint("comment pending...") is True
        assert overlay.value == ["first", "comment pending..."]

        gate.set()
        await coordinator.settled()

        assert overlay.value == coordinator.state.value == ["first", "hello"]
        assert overlay.outstanding() == ()

    asyncio.run(runner())


def test_overlay_reverts_on_expected_failure() -> None:
    async def runner() -> None:
        coordinator = ActionCoordinator(0)
        overlay = OptimisticOverlay(coordinator, predict=lambda base, delta: base + delta)

        async def like(previous: int, payload: Any) -> Any:
            await asyncio.sleep(0)
            return Err("already liked")

        coordinator.dispatch(like)
        overlay.add_hint(1)
        assert overlay.value == 1

        await coordinator.settled()
        assert overlay.value == coordinator.state.value
        assert not overlay.has_hints()

    asyncio.run(runner())


def test_overlay_reverts_after_defect() -> None:
    async def runner() -> None:
        coordinator = ActionCoordinator(["first"], error_boundary=lambda exc, record: None)
        overlay = OptimisticOverlay(coordinator, predict=append_value)

        async def post_comment(previous: list[str], payload: Any) -> list[str]:
            await asyncio.sleep(0)
            raise ConnectionError("dropped")

        coordinator.dispatch(post_comment)
        overlay.add_hint("pending")
        await coordinator.settled()

        assert overlay.value == ["first"]

    asyncio.run(runner())


def test_rapid_double_dispatch_folds_both_hints() -> None:
    async def runner() -> None:
        coordinator = ActionCoordinator(0)
        overlay = OptimisticOverlay(coordinator, predict=lambda base, delta: base + delta)
        gates = [asyncio.Event(), asyncio.Event()]

        async def add(previous: int, payload: Any) -> int:
            await gates[payload["index"]].wait()
            return previous + payload["amount"]

        coordinator.dispatch(add, {"index": 0, "amount": 1})
        overlay.add_hint(1)
        coordinator.dispatch(add, {"index": 1, "amount": 2})
        overlay.add_hint(2)
        assert overlay.value == 3
        assert [hint.generation for hint in overlay.outstanding()] == [1, 2]

        gates[1].set()
        await coordinator.settled()
        # Only the latest dispatch committed; no prediction survives.
        assert coordinator.state.value == 2
        assert overlay.value == 2

        gates[0].set()
        await coordinator.scheduler.drain()
        assert overlay.value == 2

    asyncio.run(runner())


def test_hints_from_before_a_reset_do_not_leak() -> None:
    async def runner() -> None:
        coordinator = ActionCoordinator("a")
        overlay = OptimisticOverlay(coordinator)
        gate = asyncio.Event()

        coordinator.dispatch(lambda previous, payload: gate.wait())
        overlay.add_hint("optimistic a")
        coordinator.reset("b")
        coordinator.dispatch(lambda previous, payload: gate.wait())
        await _flush()

        assert overlay.value == "b"
        assert overlay.add_hint("optimistic b")
        assert overlay.value == "optimistic b"

        gate.set()
        await coordinator.scheduler.drain()
        # The action returned True from Event.wait().
        assert overlay.value is True

    asyncio.run(runner())
