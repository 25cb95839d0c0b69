from datetime import timedelta
from decimal import Decimal

import pytest

from conftest import START, make_stats
from uc_helper.models import (
    CheckInEvent,
    PlayerRecord,
    PlayerStats,
    TournamentRecord,
    TournamentRestrictions,
    format_timestamp,
    parse_timestamp,
)
from uc_helper.ranks import Rank


def test_timestamp_format_keeps_utc_and_microseconds():
    value = START + timedelta(microseconds=1234)
    raw = format_timestamp(value)
    assert raw == "2024-05-01T12:00:00.001234Z"
    assert parse_timestamp(raw) == value


def test_player_stats_reject_negative_games():
    with pytest.raises(ValueError):
        make_stats("p1", games_played=-1)


def test_player_stats_store_floats_as_decimal():
    stats = PlayerStats(
        tetrio_id="p1",
        username="osk",
        rank=Rank.X,
        games_played=1000,
        rating=24990.12,
        rating_deviation=None,
        captured_at=START,
        country="jp",
        apm=180.5,
    )
    data = stats.to_dict()
    assert data["rating"] == Decimal("24990.12")
    assert data["apm"] == Decimal("180.5")
    assert "rating_deviation" not in data
    assert PlayerStats.from_dict(data) == stats


def test_player_record_cache_window():
    record = PlayerRecord(tetrio_id="p1", latest_stats=make_stats("p1"), fetched_at=START)
    assert record.is_cached(START + timedelta(minutes=44))
    assert not record.is_cached(START + timedelta(minutes=45))
    assert not PlayerRecord(tetrio_id="p2").is_cached(START)


def test_player_record_item_layout():
    record = PlayerRecord(
        tetrio_id="p1",
        discord_id=1234,
        link_timestamp=START,
        latest_stats=make_stats("p1", "Osk"),
        fetched_at=START,
    )
    item = record.to_item()
    assert item["pk"] == "PLAYER#p1"
    assert item["sk"] == "PROFILE"
    assert item["discord_id"] == "1234"
    assert item["username_lower"] == "osk"
    assert PlayerRecord.from_item(item) == record
    assert record.username == "Osk"
    assert record.is_linked


def test_tournament_record_round_trip_leaves_out_derived_fields():
    record = TournamentRecord(
        name="Underdogs Cup 11",
        shorthand="UC11",
        restrictions=TournamentRestrictions(Rank.S_PLUS, 100.0, 10),
        created_at=START,
        check_in_message_id=987654321,
    )
    item = record.to_item()
    assert "registered" not in item
    assert "active" not in item
    restored = TournamentRecord.from_item(item)
    assert restored == record
    assert not restored.has_snapshot


def test_restrictions_grace_tier():
    assert TournamentRestrictions(Rank.S_PLUS).max_current_rank is Rank.SS
    assert TournamentRestrictions(Rank.X).max_current_rank is Rank.X


def test_check_in_event_sort_key_is_chronological():
    event = CheckInEvent(
        shorthand="UC11", discord_id=42, action="remove", at=START, event_id="abc"
    )
    item = event.to_item()
    assert item["pk"] == "CHECKIN#UC11"
    assert item["sk"].startswith("2024-05-01T12:00:00")
    assert CheckInEvent.from_item(item) == event
