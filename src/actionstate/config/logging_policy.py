"""Central debug/logging policy plumbing for actionstate coordinators."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

DEBUG_ENV_VAR = "ACTIONSTATE_DEBUG"


@dataclass(frozen=True)
class LoggingToggles:
    log_dispatch: bool = False
    log_commit: bool = False
    log_discard: bool = False
    log_hints: bool = False
    log_notify: bool = False
    log_scheduler: bool = False


@dataclass(frozen=True)
class DebugPolicy:
    enabled: bool
    logging: LoggingToggles


_LOG_FLAG_MAP: dict[str, Iterable[str]] = {
    "dispatch": ("log_dispatch",),
    "commit": ("log_commit",),
    "discard": ("log_discard",),
    "hints": ("log_hints",),
    "notify": ("log_notify",),
    "scheduler": ("log_scheduler",),
    "all": tuple(LoggingToggles.__annotations__.keys()),
}

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off", ""}


def _coerce_bool(value: object, default: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        val = value.strip().lower()
        if val in _TRUTHY:
            return True
        if val in _FALSY:
            return False
    return default


def _split_flags(raw: object) -> set[str]:
    result: set[str] = set()
    items: Iterable[object]
    if raw is None:
        return result
    if isinstance(raw, str):
        items = raw.split(",")
    elif isinstance(raw, Iterable):
        items = raw
    else:
        return result
    for item in items:
        token = str(item).strip().lower()
        if token:
            result.add(token)
    return result


def _load_debug_config(env: Mapping[str, str]) -> tuple[bool, dict[str, object]]:
    raw = env.get(DEBUG_ENV_VAR)
    if raw is None:
        return False, {}
    raw_str = raw.strip()
    if raw_str.lower() in _FALSY:
        return False, {}
    if raw_str.lower() in _TRUTHY:
        # Bare "on" enables every trace.
        return True, {"flags": ["all"]}
    try:
        parsed = json.loads(raw_str)
    except ValueError:
        logger.debug("Failed to parse %s JSON; treating as flag list", DEBUG_ENV_VAR, exc_info=True)
        return True, {"flags": raw_str}
    if isinstance(parsed, dict):
        enabled = _coerce_bool(parsed.get("enabled", True), True)
        return enabled, parsed
    if isinstance(parsed, (list, tuple)):
        return True, {"flags": parsed}
    return True, {"flags": raw_str}


def load_debug_policy(env: Optional[Mapping[str, str]] = None) -> DebugPolicy:
    env = os.environ if env is None else env
    enabled, cfg = _load_debug_config(env)

    flags = _split_flags(cfg.get("flags")) if enabled else set()

    log_kwargs = {name: False for name in LoggingToggles.__annotations__.keys()}
    for flag, attrs in _LOG_FLAG_MAP.items():
        if flag in flags:
            for attr in attrs:
                log_kwargs[attr] = True

    unknown = flags.difference(_LOG_FLAG_MAP)
    if unknown:
        logger.debug("ignoring unknown %s flags: %s", DEBUG_ENV_VAR, ", ".join(sorted(unknown)))

    return DebugPolicy(enabled=enabled, logging=LoggingToggles(**log_kwargs))


__all__ = [
    "DEBUG_ENV_VAR",
    "DebugPolicy",
    "LoggingToggles",
    "load_debug_policy",
]
