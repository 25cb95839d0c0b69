from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest

from conftest import START, make_stats
from uc_helper.errors import (
    AlreadyLinkedError,
    DuplicateDiscordEntryError,
    DuplicateTetrioEntryError,
    ExternalFetchFailedError,
    FieldNotSetError,
    IdentityConflictError,
    NotFoundError,
)
from uc_helper.models import DiscordLink
from uc_helper.players import STALE_CLAIM_AGE, PlayerRegistry
from uc_helper.ranks import Rank


def test_refresh_creates_then_caches(players, source):
    source.add(make_stats("p1", "osk"))

    first = players.refresh("osk")
    assert first.outcome == "created"
    assert first.record.tetrio_id == "p1"

    second = players.refresh("p1")
    assert second.outcome == "cached"
    assert source.player_calls == ["osk"]


def test_refresh_after_cache_window(players, source, clock):
    source.add(make_stats("p1", "osk"))
    players.refresh("p1")
    clock.advance(timedelta(minutes=46))
    source.add(make_stats("p1", "osk", rank=Rank.S))

    result = players.refresh("osk")
    assert result.outcome == "refreshed"
    assert result.record.latest_stats.rank is Rank.S
    # Cached username resolves to the id before going to the API
    assert source.player_calls == ["p1", "p1"]


def test_custom_cache_window(storage, source, clock):
    registry = PlayerRegistry(storage, source, cache_window=timedelta(0), clock=clock)
    source.add(make_stats("p1"))
    registry.refresh("p1")
    assert registry.refresh("p1").outcome == "refreshed"


def test_refresh_unknown_player(players):
    with pytest.raises(ExternalFetchFailedError):
        players.refresh_one("ghost")


def test_refresh_when_source_fails(players, source):
    source.status = "error"
    with pytest.raises(ExternalFetchFailedError):
        players.refresh_one("p1")


def test_lookups(players, source):
    source.add(make_stats("p1", "Osk"))
    players.refresh_one("p1")
    assert players.get_by_external_id("p1").username == "Osk"
    assert players.get_by_username("OSK").tetrio_id == "p1"
    assert players.get_by_username("nobody") is None
    assert players.resolve(" osk ").tetrio_id == "p1"
    assert players.get_by_discord_id(42) is None


def test_username_collision_prefers_freshest(players, source, clock, storage):
    storage.save_player_stats(make_stats("old", "osk"), START)
    storage.save_player_stats(make_stats("new", "osk"), START + timedelta(days=1))
    assert players.get_by_username("osk").tetrio_id == "new"


def test_refresh_from_leaderboard_upserts_everyone(players, source, storage, clock):
    source.add(make_stats("p1", rank=Rank.S))
    source.add(make_stats("p2", rank=Rank.D))
    source.add(make_stats("p3", rank=Rank.UNRANKED))
    storage.save_player_stats(make_stats("p9"), START)

    fetched = players.refresh_from_leaderboard()

    assert {stats.tetrio_id for stats in fetched} == {"p1", "p2"}
    assert players.get_by_external_id("p1").latest_stats.rank is Rank.S
    assert players.get_by_external_id("p3") is None
    # Players missing from the leaderboard are not pruned
    assert players.get_by_external_id("p9") is not None


def test_refresh_from_leaderboard_ignores_cache(players, source, clock):
    source.add(make_stats("p1", rank=Rank.S))
    players.refresh_one("p1")
    source.add(make_stats("p1", rank=Rank.SS))
    players.refresh_from_leaderboard()
    assert players.get_by_external_id("p1").latest_stats.rank is Rank.SS


def test_refresh_from_leaderboard_failure(players, source):
    source.status = "error"
    with pytest.raises(ExternalFetchFailedError):
        players.refresh_from_leaderboard()


def test_link_new_player(players, source):
    source.add(make_stats("p1", "osk"))
    record = players.link(42, "osk")
    assert record.discord_id == 42
    assert record.link_timestamp is not None
    assert players.get_by_discord_id(42).tetrio_id == "p1"


def test_link_same_pair_twice(players, source):
    source.add(make_stats("p1", "osk"))
    players.link(42, "osk")
    with pytest.raises(AlreadyLinkedError):
        players.link(42, "p1")


def test_link_discord_user_to_second_account(players, source):
    source.add(make_stats("p1", "osk"))
    source.add(make_stats("p2", "other"))
    players.link(42, "p1")
    with pytest.raises(DuplicateDiscordEntryError):
        players.link(42, "p2")
    assert players.get_by_external_id("p2").discord_id is None


def test_link_account_owned_by_other_user(players, source):
    source.add(make_stats("p1", "osk"))
    players.link(42, "p1")
    with pytest.raises(DuplicateTetrioEntryError):
        players.link(43, "p1")
    assert players.get_by_discord_id(43) is None


def test_link_unknown_account(players):
    with pytest.raises(ExternalFetchFailedError):
        players.link(42, "ghost")


def test_identity_errors_share_a_base():
    for error in (AlreadyLinkedError, DuplicateDiscordEntryError, DuplicateTetrioEntryError):
        assert issubclass(error, IdentityConflictError)


def test_stale_claim_is_reclaimed(players, source, storage, clock):
    source.add(make_stats("p1"))
    source.add(make_stats("p2"))
    # A link that died after claiming the Discord id
    storage.claim_discord(DiscordLink(discord_id=42, tetrio_id="p2", linked_at=clock.now))
    clock.advance(STALE_CLAIM_AGE + timedelta(seconds=1))

    record = players.link(42, "p1")
    assert record.discord_id == 42
    assert storage.get_discord_link(42).tetrio_id == "p1"


def test_fresh_claim_blocks_link(players, source, storage, clock):
    source.add(make_stats("p1"))
    storage.claim_discord(DiscordLink(discord_id=42, tetrio_id="p2", linked_at=clock.now))
    with pytest.raises(DuplicateDiscordEntryError):
        players.link(42, "p1")


def test_concurrent_links_to_same_account(players, source):
    source.add(make_stats("p1"))
    players.refresh_one("p1")

    def attempt(discord_id: int):
        try:
            players.link(discord_id, "p1")
        except IdentityConflictError as exc:
            return exc
        return None

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(attempt, range(100, 108)))

    assert results.count(None) == 1
    owner = players.get_by_external_id("p1").discord_id
    assert owner in range(100, 108)
    for discord_id in range(100, 108):
        linked = players.get_by_discord_id(discord_id)
        assert (linked is not None) == (discord_id == owner)


def test_concurrent_links_from_same_discord_user(players, source):
    accounts = [f"p{n}" for n in range(8)]
    for tetrio_id in accounts:
        source.add(make_stats(tetrio_id))
        players.refresh_one(tetrio_id)

    def attempt(tetrio_id: str):
        try:
            players.link(42, tetrio_id)
        except DuplicateDiscordEntryError as exc:
            return exc
        return None

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(attempt, accounts))

    assert results.count(None) == 1
    assert all(isinstance(result, DuplicateDiscordEntryError) for result in results if result)
    winner = accounts[results.index(None)]
    assert players.get_by_discord_id(42).tetrio_id == winner
    linked = [t for t in accounts if players.get_by_external_id(t).discord_id == 42]
    assert linked == [winner]


def test_unlink_by_discord(players, source):
    source.add(make_stats("p1"))
    players.link(42, "p1")
    players.unlink_by_discord(42)
    assert players.get_by_discord_id(42) is None
    assert players.get_by_external_id("p1").discord_id is None
    with pytest.raises(NotFoundError):
        players.unlink_by_discord(42)


def test_unlink_then_relink_to_other_user(players, source):
    source.add(make_stats("p1"))
    players.link(42, "p1")
    players.unlink_by_discord(42)
    assert players.link(43, "p1").discord_id == 43


def test_unlink_by_external(players, source):
    source.add(make_stats("p1", "osk"))
    with pytest.raises(NotFoundError):
        players.unlink_by_external("osk")
    players.refresh_one("p1")
    with pytest.raises(FieldNotSetError):
        players.unlink_by_external("osk")
    players.link(42, "p1")
    players.unlink_by_external("OSK")
    assert players.get_by_discord_id(42) is None
