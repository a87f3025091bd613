"""Exceptions raised by the actionstate runtime."""

from __future__ import annotations


class SchedulerClosed(RuntimeError):
    """Raised when work is submitted to a scheduler after ``aclose``."""


class ActionTimeout(TimeoutError):
    """Raised by ``with_timeout`` wrappers when an action exceeds its deadline."""

    def __init__(self, seconds: float, *, action_name: str | None = None) -> None:
        label = action_name or "action"
        super().__init__(f"{label} did not settle within {seconds:.3f}s")
        self.seconds = float(seconds)
        self.action_name = action_name


__all__ = ["ActionTimeout", "SchedulerClosed"]
