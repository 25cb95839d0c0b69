"""Registration eligibility rules.

``evaluate`` compares a player's announcement-day stats (taken from the
tournament's leaderboard snapshot) and their current stats against the
tournament restrictions. Checks run in a fixed order and the first failing
one is reported:

1. the tournament has a snapshot
2. the player was ranked when the snapshot was taken
3. announcement rank is at most ``max_rank``
4. announcement games played is at least ``min_games_played``
5. announcement rating deviation is known and at most ``max_rating_deviation``
6. current rank is at most one tier above ``max_rank``

Snapshot-based checks come before the live current-rank check so players are
told the announcement-day reason first.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import ClassVar

from .models import LeaderboardSnapshot, PlayerStats, TournamentRestrictions
from .ranks import Rank

DATE_DISPLAY_FORMAT = "%Y-%m-%d %H:%M UTC"


def _display_date(value: datetime) -> str:
    return value.strftime(DATE_DISPLAY_FORMAT)


@dataclass(frozen=True, slots=True)
class Rejection:
    reason: ClassVar[str] = "rejected"

    def describe(self) -> str:
        return "Registration rejected"


@dataclass(frozen=True, slots=True)
class SnapshotMissing(Rejection):
    reason: ClassVar[str] = "snapshot_missing"

    def describe(self) -> str:
        return "Player stat snapshot is missing"


@dataclass(frozen=True, slots=True)
class UnrankedOnAnnouncementDay(Rejection):
    date: datetime

    reason: ClassVar[str] = "unranked_on_announcement_day"

    def describe(self) -> str:
        return f"Player was unranked on announcement day ({_display_date(self.date)})"


@dataclass(frozen=True, slots=True)
class AnnouncementRankTooHigh(Rejection):
    rank: Rank
    expected: Rank
    date: datetime

    reason: ClassVar[str] = "announcement_rank_too_high"

    def describe(self) -> str:
        return (
            f"Rank was too high on announcement day (was {self.rank} by "
            f"{_display_date(self.date)}, at most {self.expected} required)"
        )


@dataclass(frozen=True, slots=True)
class NotEnoughGames(Rejection):
    value: int
    expected: int
    date: datetime

    reason: ClassVar[str] = "not_enough_games"

    def describe(self) -> str:
        return (
            "Not enough ranked games played until announcement day (was "
            f"{self.value} by {_display_date(self.date)}, at least {self.expected} required)"
        )


@dataclass(frozen=True, slots=True)
class RdTooHigh(Rejection):
    # None when the API had too few games to report a deviation at all
    value: float | None
    expected: float
    date: datetime

    reason: ClassVar[str] = "rd_too_high"

    def describe(self) -> str:
        shown = "unknown" if self.value is None else f"{self.value:.2f}"
        return (
            f"RD was too high on announcement day (was {shown} by "
            f"{_display_date(self.date)}, at most {self.expected:.2f} required)"
        )


@dataclass(frozen=True, slots=True)
class CurrentRankTooHigh(Rejection):
    rank: Rank
    expected: Rank

    reason: ClassVar[str] = "current_rank_too_high"

    def describe(self) -> str:
        return (
            f"Current rank is too high (currently {self.rank}, "
            f"at most {self.expected} required)"
        )


def evaluate(
    restrictions: TournamentRestrictions,
    snapshot: LeaderboardSnapshot | None,
    current_stats: PlayerStats,
) -> Rejection | None:
    """Return the first rule the player fails, or ``None`` if they may register."""
    if snapshot is None:
        return SnapshotMissing()

    date = snapshot.taken_at
    announced = snapshot.get(current_stats.tetrio_id)
    if announced is None:
        return UnrankedOnAnnouncementDay(date=date)

    if announced.rank > restrictions.max_rank:
        return AnnouncementRankTooHigh(
            rank=announced.rank, expected=restrictions.max_rank, date=date
        )

    if announced.games_played < restrictions.min_games_played:
        return NotEnoughGames(
            value=announced.games_played,
            expected=restrictions.min_games_played,
            date=date,
        )

    rd = announced.rating_deviation
    if rd is None or rd > restrictions.max_rating_deviation:
        return RdTooHigh(value=rd, expected=restrictions.max_rating_deviation, date=date)

    max_current = restrictions.max_current_rank
    if current_stats.rank > max_current:
        return CurrentRankTooHigh(rank=current_stats.rank, expected=max_current)

    return None


def is_eligible(
    restrictions: TournamentRestrictions,
    snapshot: LeaderboardSnapshot | None,
    current_stats: PlayerStats,
) -> bool:
    return evaluate(restrictions, snapshot, current_stats) is None


__all__ = [
    "Rejection",
    "SnapshotMissing",
    "UnrankedOnAnnouncementDay",
    "AnnouncementRankTooHigh",
    "NotEnoughGames",
    "RdTooHigh",
    "CurrentRankTooHigh",
    "evaluate",
    "is_eligible",
]
