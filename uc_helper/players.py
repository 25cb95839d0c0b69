from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Literal, Protocol

from .errors import (
    AlreadyLinkedError,
    DuplicateDiscordEntryError,
    DuplicateTetrioEntryError,
    ExternalFetchFailedError,
    FieldNotSetError,
    NotFoundError,
)
from .models import DEFAULT_CACHE_WINDOW, DiscordLink, PlayerRecord, PlayerStats, utc_now
from .storage import RegistryStorage

log = logging.getLogger(__name__)

RefreshOutcome = Literal["created", "refreshed", "cached"]
# A claim whose player write never landed is reclaimable after this long
STALE_CLAIM_AGE = timedelta(minutes=5)


class PlayerFetch(Protocol):
    status: str
    player: PlayerStats | None


class LeaderboardFetch(Protocol):
    status: str
    players: list[PlayerStats]


class PlayerDataSource(Protocol):
    def fetch_player(self, tetrio_id: str) -> PlayerFetch: ...

    def fetch_leaderboard(self) -> LeaderboardFetch: ...


@dataclass(slots=True)
class RefreshResult:
    record: PlayerRecord
    outcome: RefreshOutcome


class PlayerRegistry:
    """Player records keyed by TETR.IO id, optionally linked to a Discord user.

    Records are created implicitly the first time stats for an account are
    fetched. A Discord id can be linked to at most one account and an account
    to at most one Discord id.
    """

    def __init__(
        self,
        storage: RegistryStorage,
        source: PlayerDataSource,
        *,
        cache_window: timedelta = DEFAULT_CACHE_WINDOW,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._storage = storage
        self._source = source
        self._cache_window = cache_window
        self._clock = clock

    # ----- Lookups -----
    def get_by_external_id(self, tetrio_id: str) -> PlayerRecord | None:
        return self._storage.get_player(tetrio_id)

    def get_by_username(self, username: str) -> PlayerRecord | None:
        matches = self._storage.find_players_by_username(username.strip())
        if not matches:
            return None
        if len(matches) > 1:
            # Usernames move between accounts; the freshest stats own the name
            matches.sort(
                key=lambda record: record.fetched_at or datetime.min.replace(tzinfo=UTC),
                reverse=True,
            )
            log.warning(
                "Username %s matches %d players, using %s",
                username,
                len(matches),
                matches[0].tetrio_id,
            )
        return matches[0]

    def get_by_discord_id(self, discord_id: int) -> PlayerRecord | None:
        link = self._storage.get_discord_link(discord_id)
        if link is None:
            return None
        record = self._storage.get_player(link.tetrio_id)
        if record is None or record.discord_id != discord_id:
            # Claim left behind by an interrupted link
            return None
        return record

    def resolve(self, tetrio_id_or_username: str) -> PlayerRecord | None:
        """Find a cached record by TETR.IO id first, then by username."""
        value = tetrio_id_or_username.strip()
        return self.get_by_external_id(value) or self.get_by_username(value)

    # ----- Refreshing -----
    def refresh(self, tetrio_id_or_username: str) -> RefreshResult:
        """Refresh one player's stats from the API unless the cache is fresh.

        Raises ExternalFetchFailedError if the API errors or does not know
        the account.
        """
        now = self._clock()
        cached = self.resolve(tetrio_id_or_username)
        if cached is not None and cached.is_cached(now, self._cache_window):
            return RefreshResult(record=cached, outcome="cached")

        lookup = cached.tetrio_id if cached is not None else tetrio_id_or_username
        log.info("Updating %s", lookup)
        result = self._source.fetch_player(lookup)
        if result.status != "ok" or result.player is None:
            if result.status == "not_found":
                raise ExternalFetchFailedError(f"TETR.IO user {lookup} does not exist")
            raise ExternalFetchFailedError(f"Could not fetch TETR.IO user {lookup}")

        created = self._storage.save_player_stats(result.player, now)
        if created:
            log.info("%s not in database, added as new", result.player.username)
        record = self._storage.get_player(result.player.tetrio_id)
        if record is None:  # pragma: no cover - the write above creates it
            raise NotFoundError(result.player.tetrio_id)
        return RefreshResult(record=record, outcome="created" if created else "refreshed")

    def refresh_one(self, tetrio_id_or_username: str) -> PlayerRecord:
        return self.refresh(tetrio_id_or_username).record

    def refresh_from_leaderboard(self) -> list[PlayerStats]:
        """Upsert every currently ranked player from a single leaderboard request.

        The cache window is ignored since the data has already been fetched.
        Players missing from the leaderboard (unranked) are left untouched.
        Each upsert is written on its own, so a failure part way leaves the
        earlier ones applied. Can take a few minutes for a full ladder.
        """
        log.info("Started updating via leaderboard")
        result = self._source.fetch_leaderboard()
        if result.status != "ok":
            raise ExternalFetchFailedError("Could not fetch the TETR.IO leaderboard")

        now = self._clock()
        created = 0
        for stats in result.players:
            if self._storage.save_player_stats(stats, now):
                created += 1
        log.info(
            "Leaderboard update finished: %d players, %d new",
            len(result.players),
            created,
        )
        return list(result.players)

    # ----- Linking -----
    def link(self, discord_id: int, tetrio_id_or_username: str) -> PlayerRecord:
        """Link a Discord user to a TETR.IO account.

        Raises AlreadyLinkedError when this exact pair is already linked,
        DuplicateDiscordEntryError when the Discord user is linked to another
        account, DuplicateTetrioEntryError when the account is linked to
        another Discord user, and ExternalFetchFailedError when the account
        cannot be resolved.
        """
        log.info("Linking %s to %s", tetrio_id_or_username, discord_id)
        wanted = tetrio_id_or_username.strip()
        existing = self.get_by_discord_id(discord_id)
        if existing is not None:
            if _matches(existing, wanted):
                raise AlreadyLinkedError(
                    f"{discord_id} is already linked to {existing.tetrio_id}"
                )
            raise DuplicateDiscordEntryError(
                f"{discord_id} is already linked to {existing.tetrio_id}"
            )

        record = self.refresh_one(wanted)
        if record.discord_id is not None:
            if record.discord_id == discord_id:
                raise AlreadyLinkedError(f"{discord_id} is already linked to {record.tetrio_id}")
            raise DuplicateTetrioEntryError(
                f"{record.tetrio_id} is already linked to another Discord user"
            )

        linked_at = self._clock()
        self._claim_discord(discord_id, record.tetrio_id, linked_at)

        if not self._storage.set_player_discord(record.tetrio_id, discord_id, linked_at):
            self._storage.release_discord(discord_id, record.tetrio_id)
            raise DuplicateTetrioEntryError(
                f"{record.tetrio_id} is already linked to another Discord user"
            )

        linked = self._storage.get_player(record.tetrio_id)
        if linked is None:  # pragma: no cover - the record was just updated
            raise NotFoundError(record.tetrio_id)
        return linked

    def _claim_discord(self, discord_id: int, tetrio_id: str, linked_at: datetime) -> None:
        claim = DiscordLink(discord_id=discord_id, tetrio_id=tetrio_id, linked_at=linked_at)
        if self._storage.claim_discord(claim):
            return

        holder = self._storage.get_discord_link(discord_id)
        if holder is not None:
            holder_record = self._storage.get_player(holder.tetrio_id)
            if holder_record is not None and holder_record.discord_id == discord_id:
                if holder.tetrio_id == tetrio_id:
                    raise AlreadyLinkedError(f"{discord_id} is already linked to {tetrio_id}")
                raise DuplicateDiscordEntryError(
                    f"{discord_id} is already linked to {holder.tetrio_id}"
                )
            if linked_at - holder.linked_at < STALE_CLAIM_AGE:
                raise DuplicateDiscordEntryError(f"{discord_id} is already being linked")
            # Claim left behind by an interrupted link
            log.warning("Releasing stale link claim %s -> %s", discord_id, holder.tetrio_id)
            self._storage.release_discord(discord_id, holder.tetrio_id)

        if not self._storage.claim_discord(claim):
            raise DuplicateDiscordEntryError(f"{discord_id} is already being linked")

    def unlink_by_discord(self, discord_id: int) -> None:
        """Raises NotFoundError if the Discord user has no linked account."""
        record = self.get_by_discord_id(discord_id)
        if record is None:
            raise NotFoundError(f"No TETR.IO user is linked to {discord_id}")
        self._unlink(record)

    def unlink_by_external(self, tetrio_id_or_username: str) -> None:
        """Raises NotFoundError for unknown players, FieldNotSetError if unlinked."""
        record = self.resolve(tetrio_id_or_username)
        if record is None:
            raise NotFoundError(f"Player {tetrio_id_or_username} does not exist")
        if record.discord_id is None:
            raise FieldNotSetError(f"{record.tetrio_id} is not linked to a Discord user")
        self._unlink(record)

    def _unlink(self, record: PlayerRecord) -> None:
        discord_id = record.discord_id
        if discord_id is None:
            raise FieldNotSetError(f"{record.tetrio_id} is not linked to a Discord user")
        log.info("Unlinking %s from %s", record.tetrio_id, discord_id)
        if not self._storage.clear_player_discord(record.tetrio_id, discord_id):
            raise FieldNotSetError(f"{record.tetrio_id} is not linked to {discord_id}")
        self._storage.release_discord(discord_id, record.tetrio_id)


def _matches(record: PlayerRecord, wanted: str) -> bool:
    if record.tetrio_id == wanted:
        return True
    username = record.username
    return username is not None and username.lower() == wanted.lower()


__all__ = [
    "PlayerDataSource",
    "PlayerRegistry",
    "RefreshOutcome",
    "RefreshResult",
]
