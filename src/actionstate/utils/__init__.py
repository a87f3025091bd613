"""Small helpers shared across actionstate."""

from .env import env_bool, env_choice

__all__ = ["env_bool", "env_choice"]
