# bizdev/storage.py
"""
Low-level persistence used by the stores.

- JSON file helpers (atomic replace) for whole-file collections and assets
- KVEngine: embedded, ordered key -> text engine backed by one SQLite file

KVEngine contract:
- put() is committed before it returns (no write-behind)
- get() on an absent key raises NotFoundError; check has_key() first
- one process holds a directory open read-write at a time; opening with
  should_wipe=True while another writer is active is not supported
"""

from __future__ import annotations

import json
import logging
import sqlite3
import tempfile
from pathlib import Path
from typing import Any, Iterator, List, Optional, Tuple

from .errors import DeserializationError, NotFoundError

log = logging.getLogger(__name__)


# --------------------
# Generic JSON helpers
# --------------------
def atomic_write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile("w", delete=False, dir=str(path.parent), encoding="utf-8") as f:
        tmp = Path(f.name)
        f.write(text)
    tmp.replace(path)


def load_json(path: Path, default: Any = None) -> Any:
    """
    Missing file -> default. A file that exists but does not parse is an error.
    """
    if not path.exists():
        return default
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except ValueError as e:
        raise DeserializationError(f"{path}: corrupt JSON: {e}") from e


def read_text(path: Path) -> Optional[str]:
    if not path.exists():
        return None
    return path.read_text(encoding="utf-8")


# -----------------
# Embedded KV engine
# -----------------
class KVEngine:
    FILENAME = "store.sqlite3"

    def __init__(self, path: Path | str, *, should_wipe: bool = False):
        self.path = Path(path)
        self.path.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self.path / self.FILENAME), check_same_thread=False)
        with self._conn:
            self._conn.execute(
                "CREATE TABLE IF NOT EXISTS kv (key TEXT PRIMARY KEY, value TEXT NOT NULL) WITHOUT ROWID"
            )
        if should_wipe:
            removed = self.clear()
            log.warning("[kv] wiped %s (%d keys removed)", self.path, removed)

    @classmethod
    def open(cls, path: Path | str, should_wipe: bool = False) -> "KVEngine":
        return cls(path, should_wipe=should_wipe)

    def has_key(self, key: str) -> bool:
        row = self._conn.execute("SELECT 1 FROM kv WHERE key = ?", (key,)).fetchone()
        return row is not None

    def get(self, key: str) -> str:
        row = self._conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        if row is None:
            raise NotFoundError(key)
        return row[0]

    def put(self, key: str, value: str) -> None:
        with self._conn:
            self._conn.execute("INSERT OR REPLACE INTO kv (key, value) VALUES (?, ?)", (key, value))

    def delete(self, key: str) -> bool:
        with self._conn:
            cur = self._conn.execute("DELETE FROM kv WHERE key = ?", (key,))
        return cur.rowcount > 0

    def keys(self, prefix: Optional[str] = None) -> List[str]:
        """All keys in ascending order, optionally only those starting with prefix."""
        if prefix is None:
            rows = self._conn.execute("SELECT key FROM kv ORDER BY key").fetchall()
        else:
            rows = self._conn.execute(
                "SELECT key FROM kv WHERE substr(key, 1, ?) = ? ORDER BY key",
                (len(prefix), prefix),
            ).fetchall()
        return [r[0] for r in rows]

    def items(self) -> Iterator[Tuple[str, str]]:
        rows = self._conn.execute("SELECT key, value FROM kv ORDER BY key").fetchall()
        return iter([(r[0], r[1]) for r in rows])

    def __len__(self) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM kv").fetchone()[0]

    def clear(self) -> int:
        with self._conn:
            cur = self._conn.execute("DELETE FROM kv")
        return cur.rowcount

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> "KVEngine":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
