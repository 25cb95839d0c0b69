from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import ClassVar, Literal

from .ranks import Rank

ISO_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"
DEFAULT_CACHE_WINDOW = timedelta(minutes=45)


def utc_now() -> datetime:
    return datetime.now(UTC)


def utc_now_iso() -> str:
    """Return current UTC timestamp in ISO-8601 format (ms precision)."""
    return format_timestamp(utc_now())


def format_timestamp(value: datetime) -> str:
    return value.astimezone(UTC).strftime(ISO_FORMAT)


def parse_timestamp(raw: object) -> datetime:
    return datetime.strptime(str(raw), ISO_FORMAT).replace(tzinfo=UTC)


def _optional_timestamp(raw: object) -> datetime | None:
    if raw in (None, ""):
        return None
    return parse_timestamp(raw)


def _to_decimal(value: float) -> Decimal:
    # DynamoDB rejects binary floats; go through str to keep the printed value
    return Decimal(str(value))


def _optional_float(raw: object) -> float | None:
    if raw is None:
        return None
    return float(raw)  # type: ignore[arg-type]


def _optional_int(raw: object) -> int | None:
    if raw in (None, "", "None"):
        return None
    return int(raw)  # type: ignore[arg-type]


@dataclass(frozen=True, slots=True)
class PlayerStats:
    """A single player's league stats as reported at ``captured_at``."""

    tetrio_id: str
    username: str
    rank: Rank
    games_played: int
    rating: float
    rating_deviation: float | None
    captured_at: datetime
    country: str | None = None
    games_won: int | None = None
    apm: float | None = None
    pps: float | None = None
    vs: float | None = None

    def __post_init__(self) -> None:
        if self.games_played < 0:
            raise ValueError("games_played cannot be negative")

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {
            "tetrio_id": self.tetrio_id,
            "username": self.username,
            "rank": self.rank.code,
            "games_played": self.games_played,
            "rating": _to_decimal(self.rating),
            "captured_at": format_timestamp(self.captured_at),
        }
        if self.rating_deviation is not None:
            data["rating_deviation"] = _to_decimal(self.rating_deviation)
        if self.country is not None:
            data["country"] = self.country
        if self.games_won is not None:
            data["games_won"] = self.games_won
        for name in ("apm", "pps", "vs"):
            value = getattr(self, name)
            if value is not None:
                data[name] = _to_decimal(value)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> PlayerStats:
        country = data.get("country")
        return cls(
            tetrio_id=str(data["tetrio_id"]),
            username=str(data.get("username", "")),
            rank=Rank.parse(str(data.get("rank", ""))),
            games_played=int(data.get("games_played", 0)),  # type: ignore[arg-type]
            rating=float(data.get("rating", 0)),  # type: ignore[arg-type]
            rating_deviation=_optional_float(data.get("rating_deviation")),
            captured_at=parse_timestamp(data["captured_at"]),
            country=str(country) if country is not None else None,
            games_won=_optional_int(data.get("games_won")),
            apm=_optional_float(data.get("apm")),
            pps=_optional_float(data.get("pps")),
            vs=_optional_float(data.get("vs")),
        )


@dataclass(slots=True)
class PlayerRecord:
    tetrio_id: str
    discord_id: int | None = None
    link_timestamp: datetime | None = None
    latest_stats: PlayerStats | None = None
    fetched_at: datetime | None = None

    PK_TEMPLATE: ClassVar[str] = "PLAYER#%s"
    SK_VALUE: ClassVar[str] = "PROFILE"

    @classmethod
    def key(cls, tetrio_id: str) -> dict[str, str]:
        return {"pk": cls.PK_TEMPLATE % tetrio_id, "sk": cls.SK_VALUE}

    @property
    def username(self) -> str | None:
        if self.latest_stats is None:
            return None
        return self.latest_stats.username

    @property
    def is_linked(self) -> bool:
        return self.discord_id is not None

    def is_cached(
        self, now: datetime | None = None, window: timedelta = DEFAULT_CACHE_WINDOW
    ) -> bool:
        """Whether the stored stats are recent enough to skip an API request."""
        if self.latest_stats is None or self.fetched_at is None:
            return False
        now = now or utc_now()
        return now - self.fetched_at < window

    def to_item(self) -> dict[str, object]:
        item: dict[str, object] = dict(self.key(self.tetrio_id))
        item["tetrio_id"] = self.tetrio_id
        if self.discord_id is not None:
            item["discord_id"] = str(self.discord_id)
        if self.link_timestamp is not None:
            item["link_timestamp"] = format_timestamp(self.link_timestamp)
        if self.latest_stats is not None:
            item["latest_stats"] = self.latest_stats.to_dict()
            item["username_lower"] = self.latest_stats.username.lower()
        if self.fetched_at is not None:
            item["fetched_at"] = format_timestamp(self.fetched_at)
        return item

    @classmethod
    def from_item(cls, item: Mapping[str, object]) -> PlayerRecord:
        tetrio_id = item.get("tetrio_id") or str(item["pk"]).split("#", 1)[1]
        stats_data = item.get("latest_stats")
        return cls(
            tetrio_id=str(tetrio_id),
            discord_id=_optional_int(item.get("discord_id")),
            link_timestamp=_optional_timestamp(item.get("link_timestamp")),
            latest_stats=(
                PlayerStats.from_dict(stats_data)  # type: ignore[arg-type]
                if isinstance(stats_data, Mapping)
                else None
            ),
            fetched_at=_optional_timestamp(item.get("fetched_at")),
        )


@dataclass(slots=True)
class DiscordLink:
    """Claim item that reserves a Discord id for exactly one TETR.IO account."""

    discord_id: int
    tetrio_id: str
    linked_at: datetime

    PK_TEMPLATE: ClassVar[str] = "DISCORD#%s"
    SK_VALUE: ClassVar[str] = "LINK"

    @classmethod
    def key(cls, discord_id: int) -> dict[str, str]:
        return {"pk": cls.PK_TEMPLATE % discord_id, "sk": cls.SK_VALUE}

    def to_item(self) -> dict[str, object]:
        item: dict[str, object] = dict(self.key(self.discord_id))
        item.update(
            {
                "discord_id": str(self.discord_id),
                "tetrio_id": self.tetrio_id,
                "linked_at": format_timestamp(self.linked_at),
            }
        )
        return item

    @classmethod
    def from_item(cls, item: Mapping[str, object]) -> DiscordLink:
        return cls(
            discord_id=int(str(item.get("discord_id") or str(item["pk"]).split("#")[1])),
            tetrio_id=str(item["tetrio_id"]),
            linked_at=parse_timestamp(item["linked_at"]),
        )


@dataclass(frozen=True, slots=True)
class TournamentRestrictions:
    max_rank: Rank = Rank.UNRANKED
    max_rating_deviation: float = 999.0
    min_games_played: int = 0

    def to_dict(self) -> dict[str, object]:
        return {
            "max_rank": self.max_rank.code,
            "max_rating_deviation": _to_decimal(self.max_rating_deviation),
            "min_games_played": self.min_games_played,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> TournamentRestrictions:
        return cls(
            max_rank=Rank.parse(str(data.get("max_rank", ""))),
            max_rating_deviation=float(data.get("max_rating_deviation", 999)),  # type: ignore[arg-type]
            min_games_played=int(data.get("min_games_played", 0)),  # type: ignore[arg-type]
        )

    @property
    def max_current_rank(self) -> Rank:
        """Players may climb one tier above the cap during registration."""
        return self.max_rank.advance(1)


@dataclass(slots=True)
class RegistrationEntry:
    shorthand: str
    tetrio_id: str
    registered_at: datetime

    PK_TEMPLATE: ClassVar[str] = "REGISTRATION#%s"

    @classmethod
    def key(cls, shorthand: str, tetrio_id: str) -> dict[str, str]:
        return {"pk": cls.PK_TEMPLATE % shorthand, "sk": tetrio_id}

    def to_item(self) -> dict[str, object]:
        item: dict[str, object] = dict(self.key(self.shorthand, self.tetrio_id))
        item.update(
            {
                "tetrio_id": self.tetrio_id,
                "registered_at": format_timestamp(self.registered_at),
            }
        )
        return item

    @classmethod
    def from_item(cls, item: Mapping[str, object]) -> RegistrationEntry:
        return cls(
            shorthand=str(item["pk"]).split("#", 1)[1],
            tetrio_id=str(item.get("tetrio_id") or item["sk"]),
            registered_at=parse_timestamp(item["registered_at"]),
        )


@dataclass(slots=True)
class TournamentRecord:
    name: str
    shorthand: str
    restrictions: TournamentRestrictions
    created_at: datetime
    snapshot_at: datetime | None = None
    snapshot_id: str | None = None
    check_in_message_id: int | None = None
    # Populated by the registry from separate items, never stored on this one
    registered: list[RegistrationEntry] = field(default_factory=list)
    active: bool = False

    PK_VALUE: ClassVar[str] = "TOURNAMENT"

    @classmethod
    def key(cls, shorthand: str) -> dict[str, str]:
        return {"pk": cls.PK_VALUE, "sk": shorthand}

    @property
    def has_snapshot(self) -> bool:
        return self.snapshot_at is not None and self.snapshot_id is not None

    def is_registered(self, tetrio_id: str) -> bool:
        return any(entry.tetrio_id == tetrio_id for entry in self.registered)

    def to_item(self) -> dict[str, object]:
        item: dict[str, object] = dict(self.key(self.shorthand))
        item.update(
            {
                "name": self.name,
                "shorthand": self.shorthand,
                "restrictions": self.restrictions.to_dict(),
                "created_at": format_timestamp(self.created_at),
            }
        )
        if self.snapshot_at is not None:
            item["snapshot_at"] = format_timestamp(self.snapshot_at)
        if self.snapshot_id is not None:
            item["snapshot_id"] = self.snapshot_id
        if self.check_in_message_id is not None:
            item["check_in_message_id"] = str(self.check_in_message_id)
        return item

    @classmethod
    def from_item(cls, item: Mapping[str, object]) -> TournamentRecord:
        restrictions_data = item.get("restrictions") or {}
        snapshot_id = item.get("snapshot_id")
        return cls(
            name=str(item["name"]),
            shorthand=str(item.get("shorthand") or item["sk"]),
            restrictions=TournamentRestrictions.from_dict(restrictions_data),  # type: ignore[arg-type]
            created_at=parse_timestamp(item["created_at"]),
            snapshot_at=_optional_timestamp(item.get("snapshot_at")),
            snapshot_id=str(snapshot_id) if snapshot_id is not None else None,
            check_in_message_id=_optional_int(item.get("check_in_message_id")),
        )


@dataclass(slots=True)
class TournamentName:
    """Claim item that keeps tournament names unique."""

    name: str
    shorthand: str

    PK_VALUE: ClassVar[str] = "TOURNAMENT_NAME"

    @classmethod
    def key(cls, name: str) -> dict[str, str]:
        return {"pk": cls.PK_VALUE, "sk": name}

    def to_item(self) -> dict[str, object]:
        item: dict[str, object] = dict(self.key(self.name))
        item["shorthand"] = self.shorthand
        return item


@dataclass(slots=True)
class ActiveTournament:
    """Single pointer item naming the active tournament."""

    shorthand: str
    updated_at: datetime

    PK_VALUE: ClassVar[str] = "ACTIVE_TOURNAMENT"
    SK_VALUE: ClassVar[str] = "POINTER"

    @classmethod
    def key(cls) -> dict[str, str]:
        return {"pk": cls.PK_VALUE, "sk": cls.SK_VALUE}

    def to_item(self) -> dict[str, object]:
        item: dict[str, object] = dict(self.key())
        item.update(
            {
                "shorthand": self.shorthand,
                "updated_at": format_timestamp(self.updated_at),
            }
        )
        return item

    @classmethod
    def from_item(cls, item: Mapping[str, object]) -> ActiveTournament:
        return cls(
            shorthand=str(item["shorthand"]),
            updated_at=parse_timestamp(item["updated_at"]),
        )


@dataclass(slots=True)
class SnapshotEntry:
    shorthand: str
    snapshot_id: str
    stats: PlayerStats

    PK_TEMPLATE: ClassVar[str] = "SNAPSHOT#%s#%s"

    @classmethod
    def partition(cls, shorthand: str, snapshot_id: str) -> str:
        return cls.PK_TEMPLATE % (shorthand, snapshot_id)

    @classmethod
    def key(cls, shorthand: str, snapshot_id: str, tetrio_id: str) -> dict[str, str]:
        return {"pk": cls.partition(shorthand, snapshot_id), "sk": tetrio_id}

    def to_item(self) -> dict[str, object]:
        item: dict[str, object] = dict(
            self.key(self.shorthand, self.snapshot_id, self.stats.tetrio_id)
        )
        item["stats"] = self.stats.to_dict()
        return item

    @classmethod
    def from_item(cls, item: Mapping[str, object]) -> SnapshotEntry:
        _, shorthand, snapshot_id = str(item["pk"]).split("#", 2)
        return cls(
            shorthand=shorthand,
            snapshot_id=snapshot_id,
            stats=PlayerStats.from_dict(item["stats"]),  # type: ignore[arg-type]
        )


@dataclass(frozen=True, slots=True)
class LeaderboardSnapshot:
    """Announcement-day stats of every player ranked at ``taken_at``."""

    taken_at: datetime
    entries: Mapping[str, PlayerStats]

    @classmethod
    def from_stats(
        cls, taken_at: datetime, stats: Iterable[PlayerStats]
    ) -> LeaderboardSnapshot:
        return cls(taken_at=taken_at, entries={s.tetrio_id: s for s in stats})

    def get(self, tetrio_id: str) -> PlayerStats | None:
        return self.entries.get(tetrio_id)

    def __len__(self) -> int:
        return len(self.entries)


CheckInAction = Literal["add", "remove"]


@dataclass(frozen=True, slots=True)
class CheckInEvent:
    shorthand: str
    discord_id: int
    action: CheckInAction
    at: datetime
    event_id: str

    PK_TEMPLATE: ClassVar[str] = "CHECKIN#%s"

    @classmethod
    def partition(cls, shorthand: str) -> str:
        return cls.PK_TEMPLATE % shorthand

    def to_item(self) -> dict[str, object]:
        return {
            "pk": self.partition(self.shorthand),
            # Sort key orders the log chronologically
            "sk": f"{format_timestamp(self.at)}#{self.event_id}",
            "discord_id": str(self.discord_id),
            "action": self.action,
        }

    @classmethod
    def from_item(cls, item: Mapping[str, object]) -> CheckInEvent:
        shorthand = str(item["pk"]).split("#", 1)[1]
        at_raw, event_id = str(item["sk"]).split("#", 1)
        action = str(item.get("action", "add"))
        return cls(
            shorthand=shorthand,
            discord_id=int(str(item["discord_id"])),
            action="remove" if action == "remove" else "add",
            at=parse_timestamp(at_raw),
            event_id=event_id,
        )


__all__ = [
    "ISO_FORMAT",
    "DEFAULT_CACHE_WINDOW",
    "utc_now",
    "utc_now_iso",
    "format_timestamp",
    "parse_timestamp",
    "PlayerStats",
    "PlayerRecord",
    "DiscordLink",
    "TournamentRestrictions",
    "RegistrationEntry",
    "TournamentRecord",
    "TournamentName",
    "ActiveTournament",
    "SnapshotEntry",
    "LeaderboardSnapshot",
    "CheckInAction",
    "CheckInEvent",
]
