"""Tests for the TETR.IO client's response handling.

The HTTP session is mocked so these cover parsing and the mapping of API
failures to fetch statuses, not the network.
"""

from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest
import requests

from tetrio_api import TetrioClient, stats_from_api
from tetrio_api.client import LEADERBOARD_TIMEOUT
from uc_helper.ranks import Rank

CACHE = {"status": "hit", "cached_at": 1714564800000, "cached_until": 1714564860000}


def user_payload(**league):
    data = {
        "_id": "5e32fc85ab319c2ab1beb07c",
        "username": "osk",
        "country": "JP",
        "league": {
            "gamesplayed": 120,
            "gameswon": 80,
            "rating": 24000.5,
            "rank": "x",
            "rd": 62.1,
            "apm": 150.2,
            "pps": 3.1,
            "vs": 300.4,
            **league,
        },
    }
    return data


def response(status_code=200, payload=None, json_error=False):
    resp = MagicMock()
    resp.status_code = status_code
    if json_error:
        resp.json.side_effect = ValueError("bad json")
    else:
        resp.json.return_value = payload
    return resp


@pytest.fixture
def session():
    mock = MagicMock(spec=requests.Session)
    mock.headers = {}
    return mock


class TestStatsFromApi:
    def test_parses_league_data(self):
        captured = datetime(2024, 5, 1, tzinfo=UTC)
        stats = stats_from_api(user_payload(), captured)
        assert stats.tetrio_id == "5e32fc85ab319c2ab1beb07c"
        assert stats.rank is Rank.X
        assert stats.games_played == 120
        assert stats.rating_deviation == pytest.approx(62.1)
        assert stats.games_won == 80
        assert stats.captured_at == captured

    def test_missing_rd_and_unranked(self):
        data = user_payload(rank="z", rd=None)
        stats = stats_from_api(data, datetime(2024, 5, 1, tzinfo=UTC))
        assert stats.rank is Rank.UNRANKED
        assert stats.rating_deviation is None


class TestTetrioClient:
    def test_session_header_is_set(self, session):
        TetrioClient("session-123", session=session)
        assert session.headers["X-Session-ID"] == "session-123"

    def test_fetch_player_ok(self, session):
        session.get.return_value = response(
            payload={"success": True, "data": {"user": user_payload()}, "cache": CACHE}
        )
        client = TetrioClient(session=session)

        result = client.fetch_player(" OSK ")

        assert result.status == "ok"
        assert result.player.username == "osk"
        assert result.cache.status == "hit"
        assert result.player.captured_at == datetime.fromtimestamp(1714564800, tz=UTC)
        url = session.get.call_args.args[0]
        assert url == "https://ch.tetr.io/api/users/osk"

    def test_fetch_player_unknown_user(self, session):
        session.get.return_value = response(payload={"success": False, "error": "No such user!"})
        result = TetrioClient(session=session).fetch_player("ghost")
        assert result.status == "not_found"

    def test_fetch_player_http_404(self, session):
        session.get.return_value = response(status_code=404)
        assert TetrioClient(session=session).fetch_player("ghost").status == "not_found"

    def test_fetch_player_api_error(self, session):
        session.get.return_value = response(
            status_code=500, payload={"success": False, "error": "Internal error"}
        )
        result = TetrioClient(session=session).fetch_player("osk")
        assert result.status == "error"
        assert result.error == "Internal error"

    def test_fetch_player_network_error(self, session):
        session.get.side_effect = requests.ConnectionError("down")
        assert TetrioClient(session=session).fetch_player("osk").status == "error"

    def test_fetch_player_invalid_json(self, session):
        session.get.return_value = response(json_error=True)
        assert TetrioClient(session=session).fetch_player("osk").status == "error"

    def test_fetch_leaderboard_skips_malformed_entries(self, session):
        users = [user_payload(), {"username": "no_id"}]
        session.get.return_value = response(
            payload={"success": True, "data": {"users": users}, "cache": CACHE}
        )
        client = TetrioClient(session=session)

        result = client.fetch_leaderboard()

        assert result.status == "ok"
        assert [p.username for p in result.players] == ["osk"]
        assert session.get.call_args.kwargs["timeout"] == LEADERBOARD_TIMEOUT

    def test_fetch_leaderboard_error(self, session):
        session.get.side_effect = requests.Timeout("slow")
        result = TetrioClient(session=session).fetch_leaderboard()
        assert result.status == "error"
        assert result.players == []

    def test_close_closes_session(self, session):
        TetrioClient(session=session).close()
        session.close.assert_called_once()
