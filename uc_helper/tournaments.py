from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from .eligibility import Rejection, evaluate
from .errors import (
    AlreadyLinkedError,
    AlreadyRegisteredError,
    MissingArgumentError,
    NoTournamentActiveError,
    NotEligibleError,
    NotFoundError,
    NotRegisteredError,
    UcHelperError,
)
from .models import (
    ActiveTournament,
    LeaderboardSnapshot,
    PlayerRecord,
    RegistrationEntry,
    TournamentRecord,
    TournamentRestrictions,
    utc_now,
)
from .players import PlayerRegistry
from .storage import RegistryStorage
from .validation import validate_restrictions, validate_tournament_name, validate_shorthand

log = logging.getLogger(__name__)


def _new_snapshot_id() -> str:
    return uuid.uuid4().hex


@dataclass(slots=True)
class EligibilityCheck:
    tournament: TournamentRecord
    player: PlayerRecord
    rejection: Rejection | None

    @property
    def eligible(self) -> bool:
        return self.rejection is None


class TournamentRegistry:
    """Tournaments, their leaderboard snapshots and registrations.

    At most one tournament is active at a time; registration always targets
    the active one.
    """

    def __init__(
        self,
        storage: RegistryStorage,
        *,
        clock: Callable[[], datetime] = utc_now,
        snapshot_id_factory: Callable[[], str] = _new_snapshot_id,
    ) -> None:
        self._storage = storage
        self._clock = clock
        self._snapshot_id_factory = snapshot_id_factory

    def _hydrate(
        self, record: TournamentRecord, pointer: ActiveTournament | None
    ) -> TournamentRecord:
        record.registered = self._storage.list_registrations(record.shorthand)
        record.active = pointer is not None and pointer.shorthand == record.shorthand
        return record

    def _find(self, name_or_shorthand: str) -> TournamentRecord | None:
        value = name_or_shorthand.strip()
        return self._storage.get_tournament(value) or self._storage.get_tournament_by_name(
            value
        )

    def _require(self, name_or_shorthand: str) -> TournamentRecord:
        record = self._find(name_or_shorthand)
        if record is None:
            raise NotFoundError(f"Tournament {name_or_shorthand} does not exist")
        return record

    # ----- Lifecycle -----
    def create(
        self, name: str, shorthand: str, restrictions: TournamentRestrictions
    ) -> TournamentRecord:
        """Raises DuplicateNameError if the name or the shorthand is taken."""
        name = validate_tournament_name(name)
        shorthand = validate_shorthand(shorthand)
        restrictions = validate_restrictions(restrictions)
        log.info("Creating tournament %s (%s)", name, shorthand)
        record = TournamentRecord(
            name=name,
            shorthand=shorthand,
            restrictions=restrictions,
            created_at=self._clock(),
        )
        self._storage.create_tournament(record)
        return record

    def get(self, name_or_shorthand: str) -> TournamentRecord | None:
        record = self._find(name_or_shorthand)
        if record is None:
            return None
        return self._hydrate(record, self._storage.get_active_pointer())

    def list(self) -> list[TournamentRecord]:
        pointer = self._storage.get_active_pointer()
        return [self._hydrate(record, pointer) for record in self._storage.list_tournaments()]

    def set_active(self, name_or_shorthand: str | None) -> TournamentRecord | None:
        """Make one tournament active, or none when ``None`` is passed.

        Raises NotFoundError if the named tournament does not exist.
        """
        if name_or_shorthand is None:
            self._storage.set_active_pointer(None)
            log.info("Set all tournaments to inactive")
            return None

        record = self._require(name_or_shorthand)
        pointer = ActiveTournament(shorthand=record.shorthand, updated_at=self._clock())
        self._storage.set_active_pointer(pointer)
        log.info("Set tournament %s to active", record.name)
        return self._hydrate(record, pointer)

    def get_active(self) -> TournamentRecord | None:
        pointer = self._storage.get_active_pointer()
        if pointer is None:
            return None
        record = self._storage.get_tournament(pointer.shorthand)
        if record is None:
            log.warning("Active tournament %s no longer exists", pointer.shorthand)
            return None
        return self._hydrate(record, pointer)

    def _require_active(self) -> TournamentRecord:
        tournament = self.get_active()
        if tournament is None:
            raise NoTournamentActiveError("There is no tournament ongoing")
        return tournament

    def set_check_in_message(self, name_or_shorthand: str, message_id: int) -> None:
        record = self._require(name_or_shorthand)
        if not self._storage.set_check_in_message(record.shorthand, message_id):
            raise NotFoundError(f"Tournament {name_or_shorthand} does not exist")

    # ----- Snapshots -----
    def capture_snapshot(
        self, players: PlayerRegistry, name_or_shorthand: str
    ) -> LeaderboardSnapshot:
        """Store the current leaderboard as the tournament's announcement-day data.

        Also refreshes every ranked player in the player registry. Replaces
        any earlier snapshot of the same tournament. Raises NotFoundError or
        ExternalFetchFailedError.
        """
        record = self._require(name_or_shorthand)
        log.info("Adding stat snapshot for tournament %s", record.name)

        # Only ranked players are on the leaderboard, which is what makes
        # "missing from the snapshot" mean "unranked on announcement day"
        stats = players.refresh_from_leaderboard()
        taken_at = self._clock()
        snapshot_id = self._snapshot_id_factory()
        written = self._storage.write_snapshot_entries(record.shorthand, snapshot_id, stats)
        try:
            previous = self._storage.set_snapshot(record.shorthand, snapshot_id, taken_at)
        except UcHelperError:
            log.warning("Discarding unattached snapshot %s for %s", snapshot_id, record.shorthand)
            self._storage.delete_snapshot(record.shorthand, snapshot_id)
            raise
        log.info("Snapshot %s for %s holds %d players", snapshot_id, record.shorthand, written)

        if previous is not None and previous != snapshot_id:
            removed = self._storage.delete_snapshot(record.shorthand, previous)
            log.info("Removed %d entries of previous snapshot %s", removed, previous)

        return LeaderboardSnapshot.from_stats(taken_at, stats)

    def get_snapshot(self, name_or_shorthand: str) -> LeaderboardSnapshot | None:
        record = self._require(name_or_shorthand)
        while True:
            snapshot = self._storage.load_snapshot(record)
            if snapshot is None or len(snapshot):
                return snapshot
            latest = self._replaced_snapshot(record)
            if latest is None:
                return snapshot
            record = latest

    def _replaced_snapshot(self, tournament: TournamentRecord) -> TournamentRecord | None:
        """The tournament as stored now, if a newer snapshot replaced the one read.

        A capture deletes the previous generation right after switching to the
        new one, so a reader holding the old id can find it empty.
        """
        latest = self._storage.get_tournament(tournament.shorthand)
        if latest is None or not latest.has_snapshot:
            return None
        if latest.snapshot_id == tournament.snapshot_id:
            return None
        log.info(
            "Snapshot of %s changed from %s to %s while reading",
            tournament.shorthand,
            tournament.snapshot_id,
            latest.snapshot_id,
        )
        return latest

    def _announcement_data(
        self, tournament: TournamentRecord, tetrio_id: str
    ) -> LeaderboardSnapshot | None:
        """The slice of the tournament snapshot relevant to one player."""
        if not tournament.has_snapshot:
            return None
        while True:
            entry = self._storage.get_snapshot_entry(
                tournament.shorthand,
                tournament.snapshot_id,  # type: ignore[arg-type]
                tetrio_id,
            )
            if entry is not None:
                break
            latest = self._replaced_snapshot(tournament)
            if latest is None:
                break
            tournament = latest
        return LeaderboardSnapshot(
            taken_at=tournament.snapshot_at,  # type: ignore[arg-type]
            entries={tetrio_id: entry} if entry is not None else {},
        )

    # ----- Registration -----
    def register(
        self,
        players: PlayerRegistry,
        tetrio_id: str | None,
        discord_id: int,
        staff_override: bool = False,
    ) -> PlayerRecord:
        """Register a player to the active tournament.

        With a TETR.IO id or username the Discord user is linked to it first;
        without one the existing link is used. ``staff_override`` skips the
        eligibility rules but never the duplicate registration check.

        Raises NoTournamentActiveError, MissingArgumentError, the identity
        conflicts of PlayerRegistry.link, NotEligibleError and
        AlreadyRegisteredError.
        """
        tournament = self._require_active()
        player = self._resolve_registrant(players, tetrio_id, discord_id)
        log.info(
            "Registering %s to tournament %s", player.username or player.tetrio_id, tournament.name
        )

        if not staff_override:
            _, rejection = self._evaluate(tournament, players, player.tetrio_id)
            if rejection is not None:
                log.info(
                    "Rejected %s for %s: %s",
                    player.tetrio_id,
                    tournament.shorthand,
                    rejection.reason,
                )
                raise NotEligibleError(rejection)

        entry = RegistrationEntry(
            shorthand=tournament.shorthand,
            tetrio_id=player.tetrio_id,
            registered_at=self._clock(),
        )
        if not self._storage.add_registration(entry):
            raise AlreadyRegisteredError(f"{player.tetrio_id} is already registered")

        refreshed = players.get_by_external_id(player.tetrio_id)
        return refreshed if refreshed is not None else player

    def _evaluate(
        self, tournament: TournamentRecord, players: PlayerRegistry, lookup: str
    ) -> tuple[PlayerRecord, Rejection | None]:
        current = players.refresh_one(lookup)
        if current.latest_stats is None:  # pragma: no cover - refresh stores stats
            raise NotFoundError(f"No stats stored for {current.tetrio_id}")
        rejection = evaluate(
            tournament.restrictions,
            self._announcement_data(tournament, current.tetrio_id),
            current.latest_stats,
        )
        return current, rejection

    def check_eligibility(
        self, players: PlayerRegistry, tetrio_id_or_username: str
    ) -> EligibilityCheck:
        """Evaluate a player against the active tournament without registering.

        Refreshes the player's stats like ``register`` does. Raises
        NoTournamentActiveError or ExternalFetchFailedError.
        """
        tournament = self._require_active()
        player, rejection = self._evaluate(tournament, players, tetrio_id_or_username)
        return EligibilityCheck(tournament=tournament, player=player, rejection=rejection)

    def _resolve_registrant(
        self, players: PlayerRegistry, tetrio_id: str | None, discord_id: int
    ) -> PlayerRecord:
        if tetrio_id is None or not tetrio_id.strip():
            linked = players.get_by_discord_id(discord_id)
            if linked is None:
                raise MissingArgumentError("username")
            return linked

        try:
            return players.link(discord_id, tetrio_id)
        except AlreadyLinkedError:
            linked = players.get_by_discord_id(discord_id)
            if linked is None:
                raise
            return linked

    def unregister_by_discord(self, players: PlayerRegistry, discord_id: int) -> None:
        """Raises NoTournamentActiveError, NotFoundError or NotRegisteredError."""
        tournament = self._require_active()
        player = players.get_by_discord_id(discord_id)
        if player is None:
            raise NotFoundError(f"No TETR.IO user is linked to {discord_id}")
        self._unregister(tournament, player)

    def unregister_by_external(
        self, players: PlayerRegistry, tetrio_id_or_username: str
    ) -> None:
        """Raises NoTournamentActiveError, NotFoundError or NotRegisteredError."""
        tournament = self._require_active()
        player = players.resolve(tetrio_id_or_username)
        if player is None:
            raise NotFoundError(f"Player {tetrio_id_or_username} does not exist")
        self._unregister(tournament, player)

    def _unregister(self, tournament: TournamentRecord, player: PlayerRecord) -> None:
        log.info("Unregistering %s from tournament %s", player.tetrio_id, tournament.name)
        if not self._storage.delete_registration(tournament.shorthand, player.tetrio_id):
            raise NotRegisteredError(f"{player.tetrio_id} is not registered")

    @staticmethod
    def player_is_registered(tournament: TournamentRecord, player: PlayerRecord) -> bool:
        return tournament.is_registered(player.tetrio_id)


__all__ = ["EligibilityCheck", "TournamentRegistry"]
