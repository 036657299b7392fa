# bizdev/steam.py
"""
Steam / SteamSpy remote source for the game stores.

Public API (used by bizdev/games.py):
- SteamSource.fetch_games()          # SteamSpy tag listing -> [Game]
- SteamSource.fetch_details(appid)   # header image + review counts -> GameDetails

Strategy:
- JSON endpoints only (store appdetails, appreviews query_summary, SteamSpy)
- Polite session: User-Agent, retry adapter for 429/5xx, per-minute rate gate
- Any transport / HTTP / JSON failure surfaces as RemoteFetchError; retrying
  beyond the adapter is left to the caller
"""

from __future__ import annotations

import logging
import time
from collections import deque
from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter, Retry

from . import config as C
from .errors import RemoteFetchError
from .models import Game, GameDetails

log = logging.getLogger(__name__)

APPDETAILS_URL = "https://store.steampowered.com/api/appdetails"
APPREVIEWS_URL = "https://store.steampowered.com/appreviews/{appid}"
STEAMSPY_URL   = "https://steamspy.com/api.php"
STEAMDB_URL    = "https://steamdb.info/app/{appid}/"


def make_session() -> requests.Session:
    session = requests.Session()
    session.headers.update({"User-Agent": C.USER_AGENT})
    retries = Retry(
        total=C.STEAM_RETRIES, connect=3, read=3,
        backoff_factor=C.RETRY_BACKOFF,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=["GET", "HEAD"]
    )
    session.mount("https://", HTTPAdapter(max_retries=retries))
    return session


# ---------- Rate limiting ----------

class RateGate:
    """
    Blocks if we've made >= max_per_min requests in the last 60 seconds.
    Keeps us well below Steam's burst limits.
    """

    def __init__(self, max_per_min: int = C.MAX_REQ_PER_MIN, *, clock=time.monotonic, sleep=time.sleep):
        self.max_per_min = max_per_min
        self._times = deque(maxlen=max(1, max_per_min) * 2)
        self._clock = clock
        self._sleep = sleep

    def wait(self) -> None:
        now = self._clock()
        while self._times and (now - self._times[0]) > 60:
            self._times.popleft()

        if self.max_per_min > 0 and len(self._times) >= self.max_per_min:
            sleep_for = 60 - (now - self._times[0]) + 0.05
            if sleep_for > 0:
                self._sleep(sleep_for)

        self._times.append(self._clock())


def _to_int(x, default=0):
    try:
        return int(str(x).replace(",", ""))
    except Exception:
        return default


def _to_str(x) -> str:
    return x.strip() if isinstance(x, str) else ""


# ---------- Source ----------

class SteamSource:
    def __init__(
        self,
        session: Optional[requests.Session] = None,
        *,
        tag: str = C.STEAMSPY_TAG,
        engine: str = C.GAME_ENGINE,
        timeout: float = C.STEAM_TIMEOUT,
        pause: float = C.STEAM_PAUSE,
        rate_gate: Optional[RateGate] = None,
    ):
        self.session = session or make_session()
        self.tag = tag
        self.engine = engine
        self.timeout = timeout
        self.pause = pause
        self.rate_gate = rate_gate or RateGate()

    def _get_json(self, url: str, *, params: Optional[dict] = None) -> Any:
        self.rate_gate.wait()
        try:
            r = self.session.get(url, params=params, timeout=self.timeout)
            r.raise_for_status()
            data = r.json()
        except requests.RequestException as e:
            raise RemoteFetchError(f"GET {url} failed: {e}") from e
        except ValueError as e:
            raise RemoteFetchError(f"GET {url} returned invalid JSON: {e}") from e
        if self.pause:
            time.sleep(self.pause)
        return data

    def _get_object(self, url: str, *, params: Optional[dict] = None) -> Dict[str, Any]:
        data = self._get_json(url, params=params)
        if not isinstance(data, dict):
            raise RemoteFetchError(f"GET {url} did not return a JSON object")
        return data

    # ---- collection
    def fetch_games(self) -> List[Game]:
        """All apps SteamSpy lists under self.tag, in listing order."""
        data = self._get_object(STEAMSPY_URL, params={"request": "tag", "tag": self.tag})

        games: List[Game] = []
        for row in data.values():
            game = self._parse_game(row)
            if game is not None:
                games.append(game)
        log.info("[steam] %d games parsed for tag %r", len(games), self.tag)
        return games

    def _parse_game(self, row: Any) -> Optional[Game]:
        try:
            appid = int(row["appid"])
            name = _to_str(row.get("name"))
            positive = _to_int(row.get("positive"))
            negative = _to_int(row.get("negative"))
            rated = positive + negative
            game = Game(
                name=name,
                steam_app_id=appid,
                developer_name=_to_str(row.get("developer")),
                engine=self.engine,
                user_rating=round(100.0 * positive / rated, 2) if rated else 0.0,
                peak_user_count=_to_int(row.get("ccu")),
                review_count=rated,
                steam_db_url=STEAMDB_URL.format(appid=appid),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            log.warning("[steam] skipping unparseable row %r: %s", row, e)
            return None
        if not name:
            log.warning("[steam] skipping app %s without a name", appid)
            return None
        return game

    # ---- per-app details
    def fetch_details(self, appid: int) -> GameDetails:
        header = ""
        j = self._get_object(APPDETAILS_URL, params={"appids": appid})
        item = j.get(str(appid))
        if isinstance(item, dict) and item.get("success"):
            data = item.get("data")
            if isinstance(data, dict):
                header = _to_str(data.get("header_image"))
        if not header:
            log.warning("[steam] no header image for app %s", appid)

        total = self._review_total(appid)
        recent = self._review_total(appid, day_range=C.RECENT_REVIEW_DAYS)
        return GameDetails(header_image_url=header, total_review_count=total, recent_review_count=recent)

    def _review_total(self, appid: int, day_range: Optional[int] = None) -> int:
        params = {
            "json": 1,
            "language": "all",
            "purchase_type": "all",
            "filter": "all",
            "num_per_page": 0,
        }
        if day_range:
            params["day_range"] = day_range
        j = self._get_object(APPREVIEWS_URL.format(appid=appid), params=params)
        summary = j.get("query_summary")
        if not isinstance(summary, dict):
            return 0
        return _to_int(summary.get("total_reviews"), 0)
