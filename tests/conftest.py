from __future__ import annotations

import copy
import threading
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
from botocore.exceptions import ClientError

from tetrio_api import LeaderboardFetchResult, PlayerFetchResult
from uc_helper.checkin import CheckInLog
from uc_helper.models import PlayerStats
from uc_helper.players import PlayerRegistry
from uc_helper.ranks import Rank
from uc_helper.storage import RegistryStorage
from uc_helper.tournaments import TournamentRegistry

START = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


def _conditional_failure(operation: str) -> ClientError:
    return ClientError(
        {
            "Error": {
                "Code": "ConditionalCheckFailedException",
                "Message": "The conditional request failed",
            }
        },
        operation,
    )


def _attr_name(value: Any) -> str:
    return value.name


def evaluate_condition(condition: Any, item: dict[str, Any]) -> bool:
    """Evaluate the subset of boto3 condition objects the storage layer uses."""
    expression = condition.get_expression()
    operator = expression["operator"]
    values = expression["values"]
    if operator == "AND":
        return all(evaluate_condition(value, item) for value in values)
    if operator == "OR":
        return any(evaluate_condition(value, item) for value in values)
    if operator == "NOT":
        return not evaluate_condition(values[0], item)
    name = _attr_name(values[0])
    if operator == "attribute_exists":
        return name in item
    if operator == "attribute_not_exists":
        return name not in item
    if operator == "=":
        return name in item and item[name] == values[1]
    if operator == "begins_with":
        return name in item and str(item[name]).startswith(values[1])
    raise NotImplementedError(f"Unsupported condition operator {operator}")


class FakeBatchWriter:
    def __init__(self, table: FakeTable) -> None:
        self._table = table

    def __enter__(self) -> FakeBatchWriter:
        return self

    def __exit__(self, *exc_info) -> None:
        return None

    def put_item(self, Item: dict[str, Any]) -> None:  # noqa: N803 - boto3 signature
        self._table.put_item(Item=Item)

    def delete_item(self, Key: dict[str, Any]) -> None:  # noqa: N803 - boto3 signature
        self._table.delete_item(Key=Key)


class FakeTable:
    """In-memory stand-in for a DynamoDB ``Table`` resource with pk/sk keys."""

    def __init__(self, *, page_size: int | None = None) -> None:
        self.items: dict[tuple[str, str], dict[str, Any]] = {}
        self.page_size = page_size
        self.calls: list[str] = []
        self.fail_with: Exception | None = None
        self._lock = threading.Lock()

    def _check_failure(self, operation: str) -> None:
        self.calls.append(operation)
        if self.fail_with is not None:
            raise self.fail_with

    @staticmethod
    def _key(key: dict[str, Any]) -> tuple[str, str]:
        return str(key["pk"]), str(key["sk"])

    def get_item(self, Key: dict[str, Any]) -> dict[str, Any]:  # noqa: N803
        self._check_failure("GetItem")
        with self._lock:
            item = self.items.get(self._key(Key))
            return {"Item": copy.deepcopy(item)} if item is not None else {}

    def put_item(self, Item: dict[str, Any], ConditionExpression=None) -> dict[str, Any]:  # noqa: N803
        self._check_failure("PutItem")
        with self._lock:
            key = self._key(Item)
            current = self.items.get(key, {})
            if ConditionExpression is not None and not evaluate_condition(
                ConditionExpression, current
            ):
                raise _conditional_failure("PutItem")
            self.items[key] = copy.deepcopy(Item)
        return {}

    def update_item(
        self,
        Key: dict[str, Any],  # noqa: N803
        UpdateExpression: str,  # noqa: N803
        ExpressionAttributeValues: dict[str, Any] | None = None,  # noqa: N803
        ConditionExpression=None,  # noqa: N803
        ReturnValues: str = "NONE",  # noqa: N803
    ) -> dict[str, Any]:
        self._check_failure("UpdateItem")
        values = ExpressionAttributeValues or {}
        with self._lock:
            key = self._key(Key)
            current = self.items.get(key, {})
            if ConditionExpression is not None and not evaluate_condition(
                ConditionExpression, current
            ):
                raise _conditional_failure("UpdateItem")
            updated = copy.deepcopy(current) or dict(Key)
            action, _, body = UpdateExpression.strip().partition(" ")
            touched: list[str] = []
            for part in body.split(","):
                part = part.strip()
                if action == "SET":
                    name, _, placeholder = part.partition("=")
                    name = name.strip()
                    updated[name] = copy.deepcopy(values[placeholder.strip()])
                elif action == "REMOVE":
                    name = part
                    updated.pop(name, None)
                else:
                    raise NotImplementedError(action)
                touched.append(name)
            self.items[key] = updated
        if ReturnValues == "UPDATED_OLD":
            old = {name: current[name] for name in touched if name in current}
            return {"Attributes": copy.deepcopy(old)} if old else {}
        return {}

    def delete_item(self, Key: dict[str, Any], ConditionExpression=None) -> dict[str, Any]:  # noqa: N803
        self._check_failure("DeleteItem")
        with self._lock:
            key = self._key(Key)
            current = self.items.get(key, {})
            if ConditionExpression is not None and not evaluate_condition(
                ConditionExpression, current
            ):
                raise _conditional_failure("DeleteItem")
            self.items.pop(key, None)
        return {}

    def query(
        self,
        KeyConditionExpression,  # noqa: N803
        IndexName: str | None = None,  # noqa: N803
        ExclusiveStartKey: dict[str, Any] | None = None,  # noqa: N803
    ) -> dict[str, Any]:
        self._check_failure("Query")
        with self._lock:
            matches = [
                copy.deepcopy(item)
                for key, item in sorted(self.items.items())
                if evaluate_condition(KeyConditionExpression, item)
            ]
        if ExclusiveStartKey is not None:
            start = self._key(ExclusiveStartKey)
            matches = [item for item in matches if self._key(item) > start]
        if self.page_size is not None and len(matches) > self.page_size:
            page = matches[: self.page_size]
            last = page[-1]
            return {"Items": page, "LastEvaluatedKey": {"pk": last["pk"], "sk": last["sk"]}}
        return {"Items": matches}

    def batch_writer(self) -> FakeBatchWriter:
        self._check_failure("BatchWriteItem")
        return FakeBatchWriter(self)

    def partition(self, pk: str) -> list[dict[str, Any]]:
        return [item for (item_pk, _), item in sorted(self.items.items()) if item_pk == pk]


class FakeClock:
    def __init__(self, start: datetime = START) -> None:
        self.now = start
        self._lock = threading.Lock()

    def __call__(self) -> datetime:
        # Every read moves time forward so ordering by timestamp is stable
        with self._lock:
            self.now += timedelta(microseconds=1)
            return self.now

    def advance(self, delta: timedelta) -> None:
        with self._lock:
            self.now += delta


def make_stats(
    tetrio_id: str,
    username: str | None = None,
    *,
    rank: Rank = Rank.A,
    games_played: int = 50,
    rating: float = 15000.0,
    rating_deviation: float | None = 70.0,
    captured_at: datetime = START,
) -> PlayerStats:
    return PlayerStats(
        tetrio_id=tetrio_id,
        username=username or f"user_{tetrio_id}",
        rank=rank,
        games_played=games_played,
        rating=rating,
        rating_deviation=rating_deviation,
        captured_at=captured_at,
    )


class FakeSource:
    """Player data source serving canned stats, keyed by id and username."""

    def __init__(self, players: Iterable[PlayerStats] = ()) -> None:
        self.players: dict[str, PlayerStats] = {}
        self.player_calls: list[str] = []
        self.leaderboard_calls = 0
        self.status = "ok"
        for stats in players:
            self.add(stats)

    def add(self, stats: PlayerStats) -> None:
        self.players[stats.tetrio_id] = stats

    def _find(self, lookup: str) -> PlayerStats | None:
        lookup = lookup.strip().lower()
        if lookup in self.players:
            return self.players[lookup]
        for stats in self.players.values():
            if stats.username.lower() == lookup:
                return stats
        return None

    def fetch_player(self, tetrio_id: str) -> PlayerFetchResult:
        self.player_calls.append(tetrio_id)
        if self.status != "ok":
            return PlayerFetchResult(status=self.status, error="source down")  # type: ignore[arg-type]
        stats = self._find(tetrio_id)
        if stats is None:
            return PlayerFetchResult(status="not_found", error="No such user")
        return PlayerFetchResult(status="ok", player=stats)

    def fetch_leaderboard(self) -> LeaderboardFetchResult:
        self.leaderboard_calls += 1
        if self.status != "ok":
            return LeaderboardFetchResult(status="error", error="source down")
        ranked = [stats for stats in self.players.values() if stats.rank is not Rank.UNRANKED]
        return LeaderboardFetchResult(status="ok", players=ranked)


@pytest.fixture
def table() -> FakeTable:
    return FakeTable()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage(table: FakeTable) -> RegistryStorage:
    return RegistryStorage(table)


@pytest.fixture
def source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def players(storage: RegistryStorage, source: FakeSource, clock: FakeClock) -> PlayerRegistry:
    return PlayerRegistry(storage, source, clock=clock)


@pytest.fixture
def tournaments(storage: RegistryStorage, clock: FakeClock) -> TournamentRegistry:
    return TournamentRegistry(storage, clock=clock)


@pytest.fixture
def checkins(storage: RegistryStorage, clock: FakeClock) -> CheckInLog:
    return CheckInLog(storage, clock=clock)
