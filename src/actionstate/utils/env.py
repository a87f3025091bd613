from __future__ import annotations

import os
from typing import Iterable, Mapping, Optional


def _lookup(name: str, env: Optional[Mapping[str, str]]) -> Optional[str]:
    source = os.environ if env is None else env
    return source.get(name)


def env_bool(name: str, default: bool = False, *, env: Optional[Mapping[str, str]] = None) -> bool:
    v = _lookup(name, env)
    if v is None:
        return default
    s = v.strip().lower()
    if s in ("1", "true", "yes", "on"):
        return True
    if s in ("0", "false", "no", "off"):
        return False
    return default


def env_choice(name: str, choices: Iterable[str], default: str, *, env: Optional[Mapping[str, str]] = None) -> str:
    v = _lookup(name, env)
    if not v:
        return default
    key = v.strip().lower().replace("-", "_")
    table = {c.lower(): c for c in choices}
    return table.get(key, default)
