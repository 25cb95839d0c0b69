"""Configuration helpers for the bot runtime."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta

from uc_helper.models import DEFAULT_CACHE_WINDOW

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}

REQUIRED_VARS = ("DISCORD_TOKEN", "UC_TABLE_NAME")


def env_bool(name: str, *, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    lowered = raw.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    return default


def env_int(name: str, *, default: int | None = None) -> int | None:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True, slots=True)
class EnvironmentConfig:
    discord_token: str
    table_name: str
    aws_region: str
    tetrio_session_id: str | None
    guild_id: int | None
    staff_role_id: int | None
    player_cache_window: timedelta
    sync_commands: bool

    @classmethod
    def load(cls) -> EnvironmentConfig:
        missing = [name for name in REQUIRED_VARS if not os.getenv(name)]
        if missing:
            raise RuntimeError("Missing env vars: " + ", ".join(sorted(missing)))

        cache_minutes = env_int("UC_PLAYER_CACHE_MINUTES")
        if cache_minutes is None or cache_minutes < 0:
            cache_window = DEFAULT_CACHE_WINDOW
        else:
            cache_window = timedelta(minutes=cache_minutes)

        return cls(
            discord_token=os.environ["DISCORD_TOKEN"],
            table_name=os.environ["UC_TABLE_NAME"],
            aws_region=os.getenv("AWS_REGION", "us-east-1"),
            tetrio_session_id=os.getenv("TETRIO_SESSION_ID") or None,
            guild_id=env_int("UC_GUILD_ID"),
            staff_role_id=env_int("UC_STAFF_ROLE_ID"),
            player_cache_window=cache_window,
            sync_commands=env_bool("UC_SYNC_COMMANDS", default=True),
        )


__all__ = ["EnvironmentConfig", "REQUIRED_VARS", "env_bool", "env_int"]
