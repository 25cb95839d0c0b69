from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Final, Literal

import requests

from uc_helper.models import PlayerStats
from uc_helper.ranks import Rank

log: Final = logging.getLogger("tetrio-api")

API_URL: Final[str] = "https://ch.tetr.io/api"
USER_ENDPOINT: Final[str] = "users/%s"
LEADERBOARD_ENDPOINT: Final[str] = "users/lists/league/all"
DEFAULT_TIMEOUT: Final[float] = 30.0
# The full ladder is a single large response; give it room
LEADERBOARD_TIMEOUT: Final[float] = 300.0

FetchStatus = Literal["ok", "not_found", "error"]


@dataclass(slots=True)
class CacheInfo:
    status: str
    cached_at: datetime
    cached_until: datetime

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> CacheInfo:
        return cls(
            status=str(data.get("status", "")),
            cached_at=_from_millis(data.get("cached_at")),
            cached_until=_from_millis(data.get("cached_until")),
        )


@dataclass(slots=True)
class PlayerFetchResult:
    """Return object describing the result of a single player fetch."""

    status: FetchStatus
    player: PlayerStats | None = None
    cache: CacheInfo | None = None
    error: str | None = None


@dataclass(slots=True)
class LeaderboardFetchResult:
    status: FetchStatus
    players: list[PlayerStats] = field(default_factory=list)
    cache: CacheInfo | None = None
    error: str | None = None


def _from_millis(raw: object) -> datetime:
    if raw is None:
        return datetime.now(UTC)
    return datetime.fromtimestamp(int(raw) / 1000, tz=UTC)  # type: ignore[arg-type]


def _optional_float(raw: object) -> float | None:
    if raw is None:
        return None
    try:
        return float(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None


def stats_from_api(data: Mapping[str, Any], captured_at: datetime) -> PlayerStats:
    """Build stats from a user object of the user or leaderboard endpoints."""
    league = data.get("league") or {}
    games_won = league.get("gameswon")
    return PlayerStats(
        tetrio_id=str(data["_id"]),
        username=str(data.get("username", "")),
        rank=Rank.parse(league.get("rank")),
        games_played=max(int(league.get("gamesplayed") or 0), 0),
        rating=float(league.get("rating") or 0.0),
        rating_deviation=_optional_float(league.get("rd")),
        captured_at=captured_at,
        country=data.get("country"),
        games_won=int(games_won) if games_won is not None else None,
        apm=_optional_float(league.get("apm")),
        pps=_optional_float(league.get("pps")),
        vs=_optional_float(league.get("vs")),
    )


class TetrioClient:
    """Blocking client for the public TETR.IO channel API."""

    def __init__(
        self,
        session_id: str | None = None,
        *,
        base_url: str = API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()
        if session_id:
            self._session.headers["X-Session-ID"] = session_id

    def close(self) -> None:
        self._session.close()

    def _request(
        self, endpoint: str, timeout: float
    ) -> tuple[FetchStatus, dict[str, Any], CacheInfo | None, str | None]:
        url = f"{self._base_url}/{endpoint}"
        log.info("Requesting from endpoint %s", endpoint)
        try:
            resp = self._session.get(url, timeout=timeout)
        except requests.RequestException as exc:
            log.error("TETR.IO request to %s failed: %s", endpoint, exc)
            return "error", {}, None, str(exc)

        if resp.status_code == 404:
            return "not_found", {}, None, "Not found"

        try:
            payload = resp.json()
        except ValueError as exc:
            log.error("TETR.IO returned invalid JSON for %s: %s", endpoint, exc)
            return "error", {}, None, "Could not parse response"

        if not payload.get("success"):
            error = str(payload.get("error") or f"HTTP {resp.status_code}")
            # The API reports unknown users as an unsuccessful 200 response
            if "no such user" in error.lower() or resp.status_code == 404:
                return "not_found", {}, None, error
            log.error("TETR.IO error for %s: %s", endpoint, error)
            return "error", {}, None, error

        data = payload.get("data")
        if not isinstance(data, dict):
            return "error", {}, None, "No data"
        cache_data = payload.get("cache")
        cache = CacheInfo.from_api(cache_data) if isinstance(cache_data, dict) else None
        return "ok", data, cache, None

    def fetch_player(self, tetrio_id: str) -> PlayerFetchResult:
        """Fetch one user by id or username."""
        status, data, cache, error = self._request(
            USER_ENDPOINT % tetrio_id.strip().lower(), self._timeout
        )
        if status != "ok":
            if status == "not_found":
                log.warning("Player %s not found", tetrio_id)
            return PlayerFetchResult(status=status, error=error)

        user = data.get("user")
        if not isinstance(user, dict):
            log.warning("Player %s not found", tetrio_id)
            return PlayerFetchResult(status="not_found", error="No user in response")
        captured_at = cache.cached_at if cache else datetime.now(UTC)
        try:
            player = stats_from_api(user, captured_at)
        except (KeyError, TypeError, ValueError) as exc:
            log.error("Could not parse TETR.IO user %s: %s", tetrio_id, exc)
            return PlayerFetchResult(status="error", error="Could not parse user")
        return PlayerFetchResult(status="ok", player=player, cache=cache)

    def fetch_leaderboard(self) -> LeaderboardFetchResult:
        """Fetch every currently ranked player in one request."""
        status, data, cache, error = self._request(LEADERBOARD_ENDPOINT, LEADERBOARD_TIMEOUT)
        if status != "ok":
            return LeaderboardFetchResult(status="error", error=error)

        captured_at = cache.cached_at if cache else datetime.now(UTC)
        players: list[PlayerStats] = []
        for user in data.get("users", []):
            try:
                players.append(stats_from_api(user, captured_at))
            except (KeyError, TypeError, ValueError) as exc:
                log.warning("Skipping malformed leaderboard entry: %s", exc)
        log.info("Fetched %d ranked players from the leaderboard", len(players))
        return LeaderboardFetchResult(status="ok", players=players, cache=cache)


__all__ = [
    "API_URL",
    "CacheInfo",
    "FetchStatus",
    "LeaderboardFetchResult",
    "PlayerFetchResult",
    "TetrioClient",
    "stats_from_api",
]
