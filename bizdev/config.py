# bizdev/config.py
import os
from pathlib import Path


def env_flag(name: str, default: bool = False) -> bool:
    val = os.getenv(name, "").strip().lower()
    if val in {"0","false","no","off"}: return False
    if val in {"1","true","yes","on"}:  return True
    return default


# -------- Paths
DATA_DIR        = Path(os.getenv("BIZDEV_DATA_DIR", "data"))
SERIES_DB_DIR   = DATA_DIR / "game_series"
GAMES_PATH      = DATA_DIR / "games.json"
ASSETS_DIR      = Path(os.getenv("BIZDEV_ASSETS_DIR", "assets"))

# -------- Time-series store
# Destructive: discards every persisted bucket when the store opens.
SERIES_WIPE = env_flag("BIZDEV_SERIES_WIPE")

# -------- Steam networking knobs
USER_AGENT      = "BizDevAgentBot/1.0 (contact: bot@example.invalid)"
STEAM_TIMEOUT   = float(os.getenv("BIZDEV_STEAM_TIMEOUT", "20"))
STEAM_RETRIES   = int(os.getenv("BIZDEV_STEAM_RETRIES", "3"))
STEAM_PAUSE     = float(os.getenv("BIZDEV_STEAM_PAUSE", "0.25"))   # small delay after successful call
RETRY_BACKOFF   = 0.8
MAX_REQ_PER_MIN = int(os.getenv("BIZDEV_MAX_REQ_PER_MIN", "15"))

# -------- Game listing
STEAMSPY_TAG = os.getenv("BIZDEV_STEAMSPY_TAG", "Indie")
GAME_ENGINE  = os.getenv("BIZDEV_GAME_ENGINE", "")
RECENT_REVIEW_DAYS = 30
