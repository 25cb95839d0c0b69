"""Registration and eligibility engine for TETR.IO community tournaments."""

from .checkin import CheckInLog, replay
from .eligibility import Rejection, evaluate, is_eligible
from .errors import UcHelperError
from .models import (
    LeaderboardSnapshot,
    PlayerRecord,
    PlayerStats,
    TournamentRecord,
    TournamentRestrictions,
    utc_now_iso,
)
from .players import PlayerRegistry, RefreshResult
from .ranks import Rank
from .storage import RegistryStorage
from .tournaments import EligibilityCheck, TournamentRegistry
from .validation import InvalidValueError, normalize_tetrio_lookup, parse_restrictions

__all__ = [
    "CheckInLog",
    "replay",
    "Rejection",
    "evaluate",
    "is_eligible",
    "UcHelperError",
    "LeaderboardSnapshot",
    "PlayerRecord",
    "PlayerStats",
    "TournamentRecord",
    "TournamentRestrictions",
    "utc_now_iso",
    "PlayerRegistry",
    "RefreshResult",
    "Rank",
    "RegistryStorage",
    "EligibilityCheck",
    "TournamentRegistry",
    "InvalidValueError",
    "normalize_tetrio_lookup",
    "parse_restrictions",
]
