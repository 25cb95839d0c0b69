"""User facing text for registry errors."""

from __future__ import annotations

from uc_helper.errors import (
    AlreadyLinkedError,
    AlreadyRegisteredError,
    ConnectionFailedError,
    DuplicateDiscordEntryError,
    DuplicateNameError,
    DuplicateTetrioEntryError,
    ExternalFetchFailedError,
    FieldNotSetError,
    IdentityConflictError,
    MissingArgumentError,
    NoTournamentActiveError,
    NotEligibleError,
    NotFoundError,
    NotRegisteredError,
    StoreError,
    StoreWriteFailedError,
    UcHelperError,
)
from uc_helper.validation import InvalidValueError

GENERIC_ERROR = "Something went wrong, please try again later or contact staff."


def error_message(error: UcHelperError) -> str:
    """Text shown to the Discord user for a failed operation."""
    match error:
        case AlreadyLinkedError():
            return "You are already linked to this TETR.IO account."
        case DuplicateDiscordEntryError():
            return (
                "Your Discord account is already linked to another TETR.IO account. "
                "Use /unlink first."
            )
        case DuplicateTetrioEntryError():
            return (
                "This TETR.IO account is already linked to another Discord user. "
                "Contact staff if this is your account."
            )
        case NotFoundError():
            return f"Not found: {error}"
        case FieldNotSetError():
            return "That player is not linked to a Discord account."
        case NotRegisteredError():
            return "You are not registered to the current tournament."
        case NoTournamentActiveError():
            return "There is no tournament open for registration right now."
        case AlreadyRegisteredError():
            return "You are already registered to the current tournament."
        case DuplicateNameError():
            return "A tournament with this name or shorthand already exists."
        case MissingArgumentError(argument=argument):
            return f"Please provide your TETR.IO {argument}, you are not linked yet."
        case NotEligibleError(rejection=rejection):
            return f"You cannot register for this tournament: {rejection.describe()}."
        case ExternalFetchFailedError():
            return f"Could not get data from TETR.IO: {error}"
        case StoreWriteFailedError() | ConnectionFailedError():
            return "The database is currently unavailable, please try again later."
        case InvalidValueError():
            return str(error)
        case IdentityConflictError() | StoreError() | UcHelperError():
            return GENERIC_ERROR


__all__ = ["GENERIC_ERROR", "error_message"]
