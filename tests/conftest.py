import dataclasses

import pytest

from bizdev.errors import RemoteFetchError
from bizdev.models import Game, GameDetails
from bizdev.series import GameSeriesStore


class FakeSource:
    """Stands in for SteamSource; counts calls and can be told to fail."""

    def __init__(self, games=None, details=None, fail=False):
        self.games = games if games is not None else [
            Game(name="Hollow Deep", steam_app_id=10, developer_name="Cave Co"),
            Game(name="Star Forge", steam_app_id=20, developer_name="Anvil"),
        ]
        self.details = details or GameDetails(
            header_image_url="https://cdn.example/header.jpg",
            total_review_count=1200,
            recent_review_count=45,
        )
        self.fail = fail
        self.fetch_games_calls = 0
        self.fetch_details_calls = []

    def fetch_games(self):
        self.fetch_games_calls += 1
        if self.fail:
            raise RemoteFetchError("listing unavailable")
        return [dataclasses.replace(g) for g in self.games]

    def fetch_details(self, appid):
        self.fetch_details_calls.append(appid)
        if self.fail:
            raise RemoteFetchError("details unavailable")
        return self.details


@pytest.fixture
def series_store(tmp_path):
    store = GameSeriesStore(tmp_path / "series", should_wipe=False)
    yield store
    store.close()


@pytest.fixture
def fake_source():
    return FakeSource()


@pytest.fixture
def make_source():
    return FakeSource
