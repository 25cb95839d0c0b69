from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import BotoCoreError, ClientError

from .errors import (
    ConnectionFailedError,
    DuplicateNameError,
    NotFoundError,
    StoreWriteFailedError,
)
from .models import (
    ActiveTournament,
    CheckInEvent,
    DiscordLink,
    LeaderboardSnapshot,
    PlayerRecord,
    PlayerStats,
    RegistrationEntry,
    SnapshotEntry,
    TournamentName,
    TournamentRecord,
    format_timestamp,
)

log = logging.getLogger(__name__)

USERNAME_INDEX = "username-index"
CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"


def _is_conditional_failure(exc: ClientError) -> bool:
    return exc.response.get("Error", {}).get("Code") == CONDITIONAL_CHECK_FAILED


@contextmanager
def _store_errors(action: str) -> Iterator[None]:
    """Translate boto errors into registry errors for everything but conditions."""
    try:
        yield
    except ClientError as exc:
        if _is_conditional_failure(exc):
            raise
        log.error("DynamoDB %s failed: %s", action, exc)
        raise StoreWriteFailedError(f"Could not {action}") from exc
    except BotoCoreError as exc:
        log.error("DynamoDB unreachable during %s: %s", action, exc)
        raise ConnectionFailedError(f"Could not reach the database to {action}") from exc


class RegistryStorage:
    """Single-table DynamoDB layout backing the player and tournament registries.

    Uniqueness and the single active tournament are enforced with conditional
    writes, so concurrent callers never both pass a check-then-write.
    """

    def __init__(self, table) -> None:
        self._table = table

    def ensure_table(self) -> None:
        if self._table is None:
            raise RuntimeError("Registry table is not configured")

    def _query_all(self, **kwargs: Any) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        while True:
            with _store_errors("query items"):
                resp = self._table.query(**kwargs)
            items.extend(resp.get("Items", []))
            last_key = resp.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key

    def _get(self, key: dict[str, str]) -> dict[str, Any] | None:
        with _store_errors("read item"):
            resp = self._table.get_item(Key=key)
        return resp.get("Item") or None

    # ----- Players -----
    def get_player(self, tetrio_id: str) -> PlayerRecord | None:
        self.ensure_table()
        item = self._get(PlayerRecord.key(tetrio_id))
        if not item:
            return None
        return PlayerRecord.from_item(item)

    def find_players_by_username(self, username: str) -> list[PlayerRecord]:
        self.ensure_table()
        items = self._query_all(
            IndexName=USERNAME_INDEX,
            KeyConditionExpression=Key("username_lower").eq(username.lower()),
        )
        return [PlayerRecord.from_item(item) for item in items]

    def save_player_stats(self, stats: PlayerStats, fetched_at: datetime) -> bool:
        """Upsert cached stats without touching link fields.

        Returns True when the player item did not exist before.
        """
        self.ensure_table()
        with _store_errors("save player stats"):
            resp = self._table.update_item(
                Key=PlayerRecord.key(stats.tetrio_id),
                UpdateExpression=(
                    "SET tetrio_id = :tetrio_id, latest_stats = :stats, "
                    "fetched_at = :fetched_at, username_lower = :username"
                ),
                ExpressionAttributeValues={
                    ":tetrio_id": stats.tetrio_id,
                    ":stats": stats.to_dict(),
                    ":fetched_at": format_timestamp(fetched_at),
                    ":username": stats.username.lower(),
                },
                ReturnValues="UPDATED_OLD",
            )
        return not resp.get("Attributes")

    def get_discord_link(self, discord_id: int) -> DiscordLink | None:
        self.ensure_table()
        item = self._get(DiscordLink.key(discord_id))
        if not item:
            return None
        return DiscordLink.from_item(item)

    def claim_discord(self, link: DiscordLink) -> bool:
        """Reserve a Discord id; False if another link already holds it."""
        self.ensure_table()
        try:
            with _store_errors("claim discord id"):
                self._table.put_item(
                    Item=link.to_item(),
                    ConditionExpression=Attr("pk").not_exists(),
                )
        except ClientError as exc:
            if _is_conditional_failure(exc):
                return False
            raise
        return True

    def release_discord(self, discord_id: int, tetrio_id: str) -> bool:
        self.ensure_table()
        try:
            with _store_errors("release discord id"):
                self._table.delete_item(
                    Key=DiscordLink.key(discord_id),
                    ConditionExpression=Attr("tetrio_id").eq(tetrio_id),
                )
        except ClientError as exc:
            if _is_conditional_failure(exc):
                return False
            raise
        return True

    def set_player_discord(
        self, tetrio_id: str, discord_id: int, linked_at: datetime
    ) -> bool:
        """Attach a Discord id unless the player is linked to someone else."""
        self.ensure_table()
        try:
            with _store_errors("link player"):
                self._table.update_item(
                    Key=PlayerRecord.key(tetrio_id),
                    UpdateExpression="SET discord_id = :discord_id, link_timestamp = :ts",
                    ConditionExpression=Attr("pk").exists()
                    & (
                        Attr("discord_id").not_exists()
                        | Attr("discord_id").eq(str(discord_id))
                    ),
                    ExpressionAttributeValues={
                        ":discord_id": str(discord_id),
                        ":ts": format_timestamp(linked_at),
                    },
                )
        except ClientError as exc:
            if _is_conditional_failure(exc):
                return False
            raise
        return True

    def clear_player_discord(self, tetrio_id: str, discord_id: int) -> bool:
        self.ensure_table()
        try:
            with _store_errors("unlink player"):
                self._table.update_item(
                    Key=PlayerRecord.key(tetrio_id),
                    UpdateExpression="REMOVE discord_id, link_timestamp",
                    ConditionExpression=Attr("discord_id").eq(str(discord_id)),
                )
        except ClientError as exc:
            if _is_conditional_failure(exc):
                return False
            raise
        return True

    # ----- Tournaments -----
    def create_tournament(self, record: TournamentRecord) -> None:
        self.ensure_table()
        try:
            with _store_errors("create tournament"):
                self._table.put_item(
                    Item=record.to_item(),
                    ConditionExpression=Attr("pk").not_exists(),
                )
        except ClientError as exc:
            if _is_conditional_failure(exc):
                raise DuplicateNameError(
                    f"A tournament with shorthand {record.shorthand!r} already exists"
                ) from exc
            raise

        try:
            with _store_errors("claim tournament name"):
                self._table.put_item(
                    Item=TournamentName(record.name, record.shorthand).to_item(),
                    ConditionExpression=Attr("pk").not_exists(),
                )
        except ClientError as exc:
            if not _is_conditional_failure(exc):
                raise
            with _store_errors("roll back tournament"):
                self._table.delete_item(Key=TournamentRecord.key(record.shorthand))
            raise DuplicateNameError(
                f"A tournament named {record.name!r} already exists"
            ) from exc

    def get_tournament(self, shorthand: str) -> TournamentRecord | None:
        self.ensure_table()
        item = self._get(TournamentRecord.key(shorthand))
        if not item:
            return None
        return TournamentRecord.from_item(item)

    def get_tournament_by_name(self, name: str) -> TournamentRecord | None:
        self.ensure_table()
        claim = self._get(TournamentName.key(name))
        if not claim:
            return None
        return self.get_tournament(str(claim["shorthand"]))

    def list_tournaments(self) -> list[TournamentRecord]:
        self.ensure_table()
        items = self._query_all(
            KeyConditionExpression=Key("pk").eq(TournamentRecord.PK_VALUE),
        )
        tournaments = [TournamentRecord.from_item(item) for item in items]
        tournaments.sort(key=lambda t: (t.created_at, t.shorthand))
        return tournaments

    def get_active_pointer(self) -> ActiveTournament | None:
        self.ensure_table()
        item = self._get(ActiveTournament.key())
        if not item:
            return None
        return ActiveTournament.from_item(item)

    def set_active_pointer(self, pointer: ActiveTournament | None) -> None:
        """Replace the active tournament in one write; None clears it."""
        self.ensure_table()
        with _store_errors("set active tournament"):
            if pointer is None:
                self._table.delete_item(Key=ActiveTournament.key())
            else:
                self._table.put_item(Item=pointer.to_item())

    def set_check_in_message(self, shorthand: str, message_id: int) -> bool:
        self.ensure_table()
        try:
            with _store_errors("set check-in message"):
                self._table.update_item(
                    Key=TournamentRecord.key(shorthand),
                    UpdateExpression="SET check_in_message_id = :message_id",
                    ConditionExpression=Attr("pk").exists(),
                    ExpressionAttributeValues={":message_id": str(message_id)},
                )
        except ClientError as exc:
            if _is_conditional_failure(exc):
                return False
            raise
        return True

    # ----- Snapshots -----
    def write_snapshot_entries(
        self, shorthand: str, snapshot_id: str, stats: Iterable[PlayerStats]
    ) -> int:
        self.ensure_table()
        count = 0
        with _store_errors("write snapshot"):
            with self._table.batch_writer() as batch:
                for entry in stats:
                    batch.put_item(
                        Item=SnapshotEntry(shorthand, snapshot_id, entry).to_item()
                    )
                    count += 1
        return count

    def set_snapshot(
        self, shorthand: str, snapshot_id: str, taken_at: datetime
    ) -> str | None:
        """Point a tournament at a snapshot generation; returns the previous id."""
        self.ensure_table()
        try:
            with _store_errors("attach snapshot"):
                resp = self._table.update_item(
                    Key=TournamentRecord.key(shorthand),
                    UpdateExpression="SET snapshot_id = :snapshot_id, snapshot_at = :taken_at",
                    ConditionExpression=Attr("pk").exists(),
                    ExpressionAttributeValues={
                        ":snapshot_id": snapshot_id,
                        ":taken_at": format_timestamp(taken_at),
                    },
                    ReturnValues="UPDATED_OLD",
                )
        except ClientError as exc:
            if _is_conditional_failure(exc):
                raise NotFoundError(f"Tournament {shorthand} does not exist") from exc
            raise
        previous = resp.get("Attributes", {}).get("snapshot_id")
        return str(previous) if previous is not None else None

    def get_snapshot_entry(
        self, shorthand: str, snapshot_id: str, tetrio_id: str
    ) -> PlayerStats | None:
        self.ensure_table()
        item = self._get(SnapshotEntry.key(shorthand, snapshot_id, tetrio_id))
        if not item:
            return None
        return SnapshotEntry.from_item(item).stats

    def load_snapshot(self, tournament: TournamentRecord) -> LeaderboardSnapshot | None:
        if not tournament.has_snapshot:
            return None
        self.ensure_table()
        items = self._query_all(
            KeyConditionExpression=Key("pk").eq(
                SnapshotEntry.partition(tournament.shorthand, tournament.snapshot_id)
            ),
        )
        return LeaderboardSnapshot.from_stats(
            tournament.snapshot_at,  # type: ignore[arg-type]
            (SnapshotEntry.from_item(item).stats for item in items),
        )

    def delete_snapshot(self, shorthand: str, snapshot_id: str) -> int:
        self.ensure_table()
        items = self._query_all(
            KeyConditionExpression=Key("pk").eq(
                SnapshotEntry.partition(shorthand, snapshot_id)
            ),
        )
        with _store_errors("delete snapshot"):
            with self._table.batch_writer() as batch:
                for item in items:
                    batch.delete_item(Key={"pk": item["pk"], "sk": item["sk"]})
        return len(items)

    # ----- Registrations -----
    def add_registration(self, entry: RegistrationEntry) -> bool:
        """Append a registration; False if the player is already registered."""
        self.ensure_table()
        try:
            with _store_errors("register player"):
                self._table.put_item(
                    Item=entry.to_item(),
                    ConditionExpression=Attr("pk").not_exists(),
                )
        except ClientError as exc:
            if _is_conditional_failure(exc):
                return False
            raise
        return True

    def delete_registration(self, shorthand: str, tetrio_id: str) -> bool:
        self.ensure_table()
        try:
            with _store_errors("unregister player"):
                self._table.delete_item(
                    Key=RegistrationEntry.key(shorthand, tetrio_id),
                    ConditionExpression=Attr("pk").exists(),
                )
        except ClientError as exc:
            if _is_conditional_failure(exc):
                return False
            raise
        return True

    def list_registrations(self, shorthand: str) -> list[RegistrationEntry]:
        self.ensure_table()
        items = self._query_all(
            KeyConditionExpression=Key("pk").eq(RegistrationEntry.PK_TEMPLATE % shorthand),
        )
        registrations = [RegistrationEntry.from_item(item) for item in items]
        registrations.sort(key=lambda entry: (entry.registered_at, entry.tetrio_id))
        return registrations

    # ----- Check-ins -----
    def append_check_in(self, event: CheckInEvent) -> None:
        self.ensure_table()
        with _store_errors("record check-in"):
            self._table.put_item(Item=event.to_item())

    def list_check_ins(self, shorthand: str) -> list[CheckInEvent]:
        self.ensure_table()
        items = self._query_all(
            KeyConditionExpression=Key("pk").eq(CheckInEvent.partition(shorthand)),
        )
        events = [CheckInEvent.from_item(item) for item in items]
        events.sort(key=lambda event: (event.at, event.event_id))
        return events


__all__ = ["RegistryStorage", "USERNAME_INDEX"]
