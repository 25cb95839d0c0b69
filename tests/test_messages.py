from datetime import UTC, datetime

import pytest

from bots.messages import GENERIC_ERROR, error_message
from uc_helper import errors
from uc_helper.eligibility import NotEnoughGames
from uc_helper.validation import InvalidValueError


def all_error_classes():
    found = []
    pending = [errors.UcHelperError]
    while pending:
        cls = pending.pop()
        found.append(cls)
        pending.extend(cls.__subclasses__())
    return found


def build(cls):
    if cls is errors.MissingArgumentError:
        return cls("username")
    if cls is errors.NotEligibleError:
        return cls(NotEnoughGames(value=3, expected=10, date=datetime(2024, 5, 1, tzinfo=UTC)))
    return cls("details")


LEAF_ERRORS = [
    cls
    for cls in all_error_classes()
    if not cls.__subclasses__()
    and cls not in (errors.UcHelperError, errors.StoreError, errors.IdentityConflictError)
]


@pytest.mark.parametrize("cls", LEAF_ERRORS, ids=lambda cls: cls.__name__)
def test_every_error_has_a_specific_message(cls):
    message = error_message(build(cls))
    assert message
    assert message != GENERIC_ERROR


def test_every_error_has_a_unique_code():
    codes = [cls.code for cls in all_error_classes()]
    assert len(codes) == len(set(codes))


def test_base_error_falls_back_to_generic_text():
    assert error_message(errors.UcHelperError("boom")) == GENERIC_ERROR


def test_not_eligible_message_includes_reason():
    message = error_message(build(errors.NotEligibleError))
    assert "Not enough ranked games" in message
    assert "at least 10" in message


def test_missing_argument_names_the_argument():
    assert "username" in error_message(errors.MissingArgumentError("username"))


def test_validation_errors_show_their_text():
    assert error_message(InvalidValueError("Unknown rank: gold")) == "Unknown rank: gold"


@pytest.mark.parametrize(
    "cls", [errors.IdentityConflictError, errors.StoreError], ids=lambda cls: cls.__name__
)
def test_abstract_error_groups_fall_back_to_generic_text(cls):
    assert error_message(cls("details")) == GENERIC_ERROR
