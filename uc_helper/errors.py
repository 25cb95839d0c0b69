"""Exceptions raised by the player and tournament registries.

Every public registry operation lists the subset it can raise. The front end
is expected to handle each class explicitly; see ``bots.messages``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .eligibility import Rejection


class UcHelperError(Exception):
    """Base exception for registry failures."""

    code = "error"


# ----- Identity conflicts -----
class IdentityConflictError(UcHelperError):
    code = "identity_conflict"


class AlreadyLinkedError(IdentityConflictError):
    """The Discord user is already linked to this exact TETR.IO account."""

    code = "already_linked"


class DuplicateDiscordEntryError(IdentityConflictError):
    """The Discord user is already linked to a different TETR.IO account."""

    code = "duplicate_discord_entry"


class DuplicateTetrioEntryError(IdentityConflictError):
    """The TETR.IO account is already linked to a different Discord user."""

    code = "duplicate_tetrio_entry"


# ----- Not found -----
class NotFoundError(UcHelperError):
    code = "not_found"


class FieldNotSetError(UcHelperError):
    """A record was found but has nothing to clear."""

    code = "field_not_set"


class NotRegisteredError(UcHelperError):
    code = "not_registered"


# ----- State preconditions -----
class NoTournamentActiveError(UcHelperError):
    code = "no_tournament_active"


class AlreadyRegisteredError(UcHelperError):
    code = "already_registered"


class DuplicateNameError(UcHelperError):
    code = "duplicate_name"


class MissingArgumentError(UcHelperError):
    code = "missing_argument"

    def __init__(self, argument: str) -> None:
        super().__init__(f"Missing argument: {argument}")
        self.argument = argument


# ----- Eligibility -----
class NotEligibleError(UcHelperError):
    """Registration was rejected by the eligibility rules."""

    code = "not_eligible"

    def __init__(self, rejection: Rejection) -> None:
        super().__init__(rejection.describe())
        self.rejection = rejection


# ----- Collaborators -----
class ExternalFetchFailedError(UcHelperError):
    """The TETR.IO API could not deliver the requested data."""

    code = "external_fetch_failed"


class StoreError(UcHelperError):
    code = "store_error"


class StoreWriteFailedError(StoreError):
    code = "store_write_failed"


class ConnectionFailedError(StoreError):
    code = "connection_failed"


__all__ = [
    "UcHelperError",
    "IdentityConflictError",
    "AlreadyLinkedError",
    "DuplicateDiscordEntryError",
    "DuplicateTetrioEntryError",
    "NotFoundError",
    "FieldNotSetError",
    "NotRegisteredError",
    "NoTournamentActiveError",
    "AlreadyRegisteredError",
    "DuplicateNameError",
    "MissingArgumentError",
    "NotEligibleError",
    "ExternalFetchFailedError",
    "StoreError",
    "StoreWriteFailedError",
    "ConnectionFailedError",
]
