# bizdev/games.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, List, Optional, Protocol, Tuple

from . import config as C
from .codec import SchemaRegistry
from .errors import RemoteFetchError
from .models import REGISTRY, Game, GameDetails, GameSeries, utc_now
from .series import GameSeriesStore
from .steam import SteamSource
from .stores import FileStore

log = logging.getLogger(__name__)


class GameSource(Protocol):
    def fetch_games(self) -> List[Game]: ...

    def fetch_details(self, appid: int) -> GameDetails: ...


class GameStore(FileStore[Game]):
    """
    Tracked games, keyed by name and cached in one JSON file. The listing is
    pulled from the source only when the file is missing or empty.

    update_details() changes games in memory only; call save_all() to persist.
    """

    record_type = Game

    def __init__(
        self,
        series_store: GameSeriesStore,
        source: GameSource,
        path: Optional[Path | str] = None,
        *,
        force_remote: bool = False,
        registry: SchemaRegistry = REGISTRY,
        clock: Callable[[], object] = utc_now,
    ):
        super().__init__(
            path if path is not None else C.GAMES_PATH,
            force_remote=force_remote,
            registry=registry,
        )
        self._series_store = series_store
        self._source = source
        self._clock = clock

    def get_key(self, game: Game) -> str:
        return game.name

    def get_remote(self) -> List[Game]:
        return self._source.fetch_games()

    def update_details(self, game: Game) -> Optional[GameSeries]:
        """
        Refresh a game's page details and record today's review counts.
        Returns the snapshot added to the series store, or None if the
        source could not be reached.
        """
        try:
            details = self._source.fetch_details(game.steam_app_id)
        except RemoteFetchError as e:
            log.warning("[games] details for %r (app %s) unavailable: %s", game.name, game.steam_app_id, e)
            return None

        if details.header_image_url:
            game.steam_header_image_url = details.header_image_url
        game.review_count = details.total_review_count

        series = GameSeries(
            app_id=game.steam_app_id,
            time_generated=self._clock(),
            total_review_count=details.total_review_count,
            recent_review_count=details.recent_review_count,
        )
        self._series_store.add(series)
        log.info("[games] adding game series %s", self.registry.dumps(series))
        return series


def build_stores(
    data_dir: Optional[Path | str] = None,
    source: Optional[GameSource] = None,
) -> Tuple[GameSeriesStore, GameStore]:
    """Series store + game store laid out under data_dir (default: config.DATA_DIR)."""
    if data_dir is None:
        series_dir, games_path = C.SERIES_DB_DIR, C.GAMES_PATH
    else:
        data_dir = Path(data_dir)
        series_dir, games_path = data_dir / C.SERIES_DB_DIR.name, data_dir / C.GAMES_PATH.name

    if source is None:
        source = SteamSource()

    series_store = GameSeriesStore(series_dir)
    return series_store, GameStore(series_store, source, games_path)
