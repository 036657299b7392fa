# bizdev/models.py
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass

from .codec import SchemaRegistry


def as_utc(value: dt.datetime) -> dt.datetime:
    """Naive datetimes are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


@dataclass
class Game:
    name: str
    steam_app_id: int = 0
    developer_name: str = ""
    engine: str = ""
    year_published: int = 0
    user_rating: float = 0.0
    follower_count: int = 0
    peak_user_count: int = 0
    review_count: int = 0
    steam_db_url: str = ""
    steam_header_image_url: str = ""


@dataclass(frozen=True)
class GameSeries:
    """
    A data point in the time series associated with a specific game.
    """
    app_id: int
    time_generated: dt.datetime
    total_review_count: int = 0
    recent_review_count: int = 0

    def __post_init__(self):
        object.__setattr__(self, "time_generated", as_utc(self.time_generated))


@dataclass(frozen=True)
class GameDetails:
    header_image_url: str = ""
    total_review_count: int = 0
    recent_review_count: int = 0


# Fields that only matter for rendering pages, not for reasoning about a game.
PROMPT_EXCLUDE = frozenset({"steam_db_url", "steam_header_image_url"})


def build_registry() -> SchemaRegistry:
    registry = SchemaRegistry()
    registry.register(Game)
    registry.register(GameSeries, datetime_fields=("time_generated",))
    registry.register(GameDetails)
    return registry


REGISTRY = build_registry()
