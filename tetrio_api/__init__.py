"""Thin client for the TETR.IO channel API used as the player data source."""

from .client import (
    API_URL,
    CacheInfo,
    LeaderboardFetchResult,
    PlayerFetchResult,
    TetrioClient,
    stats_from_api,
)

__all__ = [
    "API_URL",
    "CacheInfo",
    "LeaderboardFetchResult",
    "PlayerFetchResult",
    "TetrioClient",
    "stats_from_api",
]
