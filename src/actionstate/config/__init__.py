"""Shared configuration dataclasses for actionstate."""

from .logging_policy import DebugPolicy, LoggingToggles, load_debug_policy
from .models import CoordinatorConfig, SettlePolicy

__all__ = [
    "CoordinatorConfig",
    "DebugPolicy",
    "LoggingToggles",
    "SettlePolicy",
    "load_debug_policy",
]
