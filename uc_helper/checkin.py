"""Check-in log for the active tournament.

Check-ins are stored as an append-only list of add/remove events rather than
a mutable set, so the state at any time can be rebuilt with ``replay`` and
reaction events arriving out of order do not lose data.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Iterable
from datetime import datetime

from .errors import NotFoundError
from .models import CheckInAction, CheckInEvent, TournamentRecord, utc_now
from .storage import RegistryStorage

log = logging.getLogger(__name__)


def replay(events: Iterable[CheckInEvent]) -> list[int]:
    """Discord ids checked in after applying ``events`` in order.

    Ids keep the position of the add that checked them in; checking in again
    after a removal moves the id to the end. Duplicate adds and removes of
    ids that are not checked in are ignored.
    """
    checked_in: dict[int, None] = {}
    for event in events:
        if event.action == "add":
            checked_in.setdefault(event.discord_id, None)
        else:
            checked_in.pop(event.discord_id, None)
    return list(checked_in)


class CheckInLog:
    def __init__(
        self, storage: RegistryStorage, *, clock: Callable[[], datetime] = utc_now
    ) -> None:
        self._storage = storage
        self._clock = clock

    def _require(self, tournament: str) -> TournamentRecord:
        value = tournament.strip()
        record = self._storage.get_tournament(value) or self._storage.get_tournament_by_name(
            value
        )
        if record is None:
            raise NotFoundError(f"Tournament {tournament} does not exist")
        return record

    def record(self, tournament: str, discord_id: int, action: CheckInAction) -> CheckInEvent:
        """Append a check-in event. Raises NotFoundError for unknown tournaments."""
        if action not in ("add", "remove"):
            raise ValueError(f"Unknown check-in action: {action}")
        record = self._require(tournament)
        event = CheckInEvent(
            shorthand=record.shorthand,
            discord_id=discord_id,
            action=action,
            at=self._clock(),
            event_id=uuid.uuid4().hex,
        )
        self._storage.append_check_in(event)
        log.info("Check-in %s for %s in %s", action, discord_id, record.shorthand)
        return event

    def events(self, tournament: str) -> list[CheckInEvent]:
        return self._storage.list_check_ins(self._require(tournament).shorthand)

    def checked_in(self, tournament: str) -> list[int]:
        return replay(self.events(tournament))


__all__ = ["CheckInLog", "replay"]
