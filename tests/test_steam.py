import pytest
import requests

from bizdev.errors import RemoteFetchError
from bizdev.games import GameStore
from bizdev.models import GameDetails
from bizdev.steam import APPDETAILS_URL, STEAMSPY_URL, RateGate, SteamSource


class FakeResponse:
    def __init__(self, payload=None, status=200, text=None):
        self.payload = payload
        self.status_code = status
        self.text = text

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")

    def json(self):
        if self.text is not None:
            raise ValueError("Expecting value")
        return self.payload


class FakeSession:
    def __init__(self, respond):
        self.respond = respond
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, dict(params or {})))
        result = self.respond(url, params or {})
        if isinstance(result, Exception):
            raise result
        return result


def make_source(respond, **kw):
    session = FakeSession(respond)
    return SteamSource(session, rate_gate=RateGate(max_per_min=0), pause=0, **kw), session


SPY_LISTING = {
    "10": {"appid": 10, "name": "Hollow Deep", "developer": "Cave Co", "positive": 900, "negative": 100, "ccu": 321},
    "20": {"appid": 20, "name": " Star Forge ", "developer": None, "positive": "1,000", "negative": 0, "ccu": "12"},
    "30": {"appid": "not-a-number", "name": "Broken"},
    "40": {"appid": 40, "name": ""},
}


def test_fetch_games_parses_listing():
    source, session = make_source(lambda url, params: FakeResponse(SPY_LISTING), tag="Indie", engine="Engine.Unreal")
    games = source.fetch_games()

    assert session.calls == [(STEAMSPY_URL, {"request": "tag", "tag": "Indie"})]
    assert [g.name for g in games] == ["Hollow Deep", "Star Forge"]

    first, second = games
    assert first.steam_app_id == 10
    assert first.developer_name == "Cave Co"
    assert first.engine == "Engine.Unreal"
    assert first.user_rating == 90.0
    assert first.review_count == 1000
    assert first.peak_user_count == 321
    assert first.steam_db_url == "https://steamdb.info/app/10/"
    assert second.developer_name == ""
    assert second.user_rating == 100.0
    assert second.peak_user_count == 12


def test_fetch_details_combines_store_and_reviews():
    def respond(url, params):
        if url == APPDETAILS_URL:
            return FakeResponse({"10": {"success": True, "data": {"header_image": "https://cdn.example/10.jpg"}}})
        if "day_range" in params:
            return FakeResponse({"success": 1, "query_summary": {"total_reviews": 44}})
        return FakeResponse({"success": 1, "query_summary": {"total_reviews": 1234}})

    source, session = make_source(respond)
    details = source.fetch_details(10)

    assert details == GameDetails(
        header_image_url="https://cdn.example/10.jpg", total_review_count=1234, recent_review_count=44,
    )
    assert session.calls[0] == (APPDETAILS_URL, {"appids": 10})
    assert session.calls[1][0] == "https://store.steampowered.com/appreviews/10"
    assert session.calls[2][1]["day_range"] == 30


def test_fetch_details_without_store_page():
    def respond(url, params):
        if url == APPDETAILS_URL:
            return FakeResponse({"10": {"success": False}})
        return FakeResponse({"query_summary": {}})

    source, _ = make_source(respond)
    assert source.fetch_details(10) == GameDetails()


@pytest.mark.parametrize("result", [
    FakeResponse(status=503),
    FakeResponse(status=404),
    FakeResponse(text="<html>"),
    FakeResponse(["not", "an", "object"]),
    requests.ConnectionError("connection refused"),
    requests.Timeout("read timed out"),
])
def test_failures_surface_as_remote_fetch_error(result):
    source, _ = make_source(lambda url, params: result)
    with pytest.raises(RemoteFetchError):
        source.fetch_games()
    with pytest.raises(RemoteFetchError):
        source.fetch_details(10)


def test_rate_gate_sleeps_once_budget_is_spent():
    now = [1000.0]
    slept = []
    gate = RateGate(max_per_min=2, clock=lambda: now[0], sleep=slept.append)

    gate.wait()
    gate.wait()
    assert slept == []

    now[0] += 10
    gate.wait()
    assert slept == [pytest.approx(50.05)]


def test_rate_gate_forgets_old_requests():
    now = [0.0]
    slept = []
    gate = RateGate(max_per_min=1, clock=lambda: now[0], sleep=slept.append)
    gate.wait()
    now[0] += 61
    gate.wait()
    assert slept == []


def test_rows_with_wrong_field_types_are_skipped_or_defaulted():
    listing = {
        "1": {"appid": 1, "name": "A", "developer": 42},
        "2": {"appid": 2, "name": ["not", "a", "name"]},
        "3": "not a row",
        "4": {"appid": 4, "name": "D", "developer": "Dev"},
    }
    source, _ = make_source(lambda url, params: FakeResponse(listing))
    games = source.fetch_games()
    assert [(g.name, g.developer_name) for g in games] == [("A", ""), ("D", "Dev")]


def test_game_store_survives_a_malformed_listing(tmp_path, series_store):
    listing = {"1": {"appid": 1, "name": "A", "developer": 42}, "2": [1, 2]}
    source, _ = make_source(lambda url, params: FakeResponse(listing))
    games = GameStore(series_store, source, tmp_path / "games.json").load_all()
    assert [g.steam_app_id for g in games] == [1]


@pytest.mark.parametrize("store_payload", [
    {"10": {"success": True, "data": []}},
    {"10": {"success": True, "data": {"header_image": 7}}},
    {"10": "gone"},
])
def test_fetch_details_tolerates_odd_shapes(store_payload):
    def respond(url, params):
        if url == APPDETAILS_URL:
            return FakeResponse(store_payload)
        return FakeResponse({"query_summary": ["unexpected"]})

    source, _ = make_source(respond)
    assert source.fetch_details(10) == GameDetails()
