"""Configuration dataclasses shared across the coordinator runtime."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional

from actionstate.config.logging_policy import DebugPolicy, load_debug_policy
from actionstate.utils.env import env_bool, env_choice


class SettlePolicy(str, Enum):
    """Which in-flight dispatch is allowed to commit."""

    LAST_WRITER_WINS = "last_writer_wins"
    FIRST_SUCCESS_WINS = "first_success_wins"


@dataclass(frozen=True)
class CoordinatorConfig:
    """Behavioural knobs for an ``ActionCoordinator``."""

    settle_policy: SettlePolicy = SettlePolicy.LAST_WRITER_WINS
    # New work marks older outstanding transitions as superseded.
    supersede_previous: bool = True
    notify_on_dispatch: bool = True
    debug_policy: DebugPolicy = field(default_factory=lambda: load_debug_policy({}))

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "CoordinatorConfig":
        defaults = cls()
        policy_name = env_choice(
            "ACTIONSTATE_SETTLE_POLICY",
            [p.value for p in SettlePolicy],
            defaults.settle_policy.value,
            env=env,
        )
        policy = SettlePolicy(policy_name)
        # First-success needs every dispatch to stay eligible until one commits.
        supersede_default = policy is SettlePolicy.LAST_WRITER_WINS
        return cls(
            settle_policy=policy,
            supersede_previous=env_bool("ACTIONSTATE_SUPERSEDE", supersede_default, env=env),
            notify_on_dispatch=env_bool("ACTIONSTATE_NOTIFY_ON_DISPATCH", defaults.notify_on_dispatch, env=env),
            debug_policy=load_debug_policy(env),
        )
