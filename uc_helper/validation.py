from __future__ import annotations

import re
from dataclasses import replace

from .errors import UcHelperError
from .models import TournamentRestrictions
from .ranks import Rank


class InvalidValueError(UcHelperError, ValueError):
    """Base exception for validation failures."""

    code = "invalid_value"


_USERNAME_PATTERN = re.compile(r"^[a-z0-9_-]{3,16}$")
# TETR.IO ids are Mongo object ids
_TETRIO_ID_PATTERN = re.compile(r"^[0-9a-f]{24}$")
_SHORTHAND_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,16}$")
MAX_NAME_LENGTH = 100


def is_tetrio_id(value: str) -> bool:
    return bool(_TETRIO_ID_PATTERN.match(value.strip().lower()))


def normalize_tetrio_lookup(raw: str) -> str:
    """Normalize a TETR.IO id or username typed by a user."""
    value = raw.strip().lower()
    if not value:
        raise InvalidValueError("TETR.IO username cannot be empty")
    if _TETRIO_ID_PATTERN.match(value):
        return value
    if not _USERNAME_PATTERN.match(value):
        raise InvalidValueError(f"Invalid TETR.IO username: {raw.strip()}")
    return value


def validate_tournament_name(name: str) -> str:
    name = " ".join(name.split())
    if not name:
        raise InvalidValueError("Tournament name cannot be empty")
    if len(name) > MAX_NAME_LENGTH:
        raise InvalidValueError(
            f"Tournament name must be at most {MAX_NAME_LENGTH} characters"
        )
    return name


def validate_shorthand(shorthand: str) -> str:
    shorthand = shorthand.strip()
    if not shorthand:
        raise InvalidValueError("Tournament shorthand cannot be empty")
    if not _SHORTHAND_PATTERN.match(shorthand):
        raise InvalidValueError(
            "Shorthand may only contain letters, digits, '-' and '_' (max 16)"
        )
    return shorthand


def parse_rank(raw: str) -> Rank:
    """Strict counterpart to Rank.parse; only "z" maps to unranked."""
    value = raw.strip().lower()
    rank = Rank.parse(value)
    if rank is Rank.UNRANKED and value != Rank.UNRANKED.code:
        raise InvalidValueError(f"Unknown rank: {raw.strip()}")
    return rank


def validate_restrictions(restrictions: TournamentRestrictions) -> TournamentRestrictions:
    if restrictions.max_rating_deviation <= 0:
        raise InvalidValueError("Maximum RD must be positive")
    if restrictions.min_games_played < 0:
        raise InvalidValueError("Minimum games played cannot be negative")
    return restrictions


def parse_restrictions(
    max_rank: str | None = None,
    max_rd: float | None = None,
    min_games: int | None = None,
) -> TournamentRestrictions:
    restrictions = TournamentRestrictions()
    if max_rank is not None:
        restrictions = replace(restrictions, max_rank=parse_rank(max_rank))
    if max_rd is not None:
        restrictions = replace(restrictions, max_rating_deviation=float(max_rd))
    if min_games is not None:
        restrictions = replace(restrictions, min_games_played=int(min_games))
    return validate_restrictions(restrictions)


__all__ = [
    "InvalidValueError",
    "is_tetrio_id",
    "normalize_tetrio_lookup",
    "validate_tournament_name",
    "validate_shorthand",
    "parse_rank",
    "validate_restrictions",
    "parse_restrictions",
]
