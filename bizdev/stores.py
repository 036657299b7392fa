# bizdev/stores.py
"""
Generic keyed stores.

- KeyedStore[T]: one value per derived key, persisted in a KVEngine
- TimeSeriesStore[T]: records partitioned into (entity, year, month) buckets,
  merge-on-write with one record per entity per calendar day
- FileStore[T]: a whole collection cached in one JSON file, fetched from a
  remote source when the file is missing or empty

None of these are safe for concurrent writers. TimeSeriesStore.add() is a
read-modify-write on its bucket: two writers on the same bucket lose updates
unless a bucket_lock is injected (see KeyLocks).
"""

from __future__ import annotations

import contextlib
import logging
import threading
from pathlib import Path
from typing import Callable, ContextManager, Dict, Generic, Iterator, List, Optional, Tuple, Type, TypeVar

from . import storage
from .codec import SchemaRegistry
from .errors import RemoteFetchError
from .models import REGISTRY, as_utc

log = logging.getLogger(__name__)

T = TypeVar("T")


def bucket_key(entity_id: int, year: int, month: int) -> str:
    return f"{entity_id}_{year:04d}_{month:02d}"


def iter_months(start, end) -> Iterator[Tuple[int, int]]:
    """(year, month) pairs from start's month through end's month inclusive."""
    year, month = start.year, start.month
    while (year, month) <= (end.year, end.month):
        yield year, month
        month += 1
        if month > 12:
            year, month = year + 1, 1


class KeyLocks:
    """
    One lock per key, created on first use. Pass an instance as bucket_lock
    when more than one thread writes to the same TimeSeriesStore.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}

    def __call__(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock


def _no_lock(key: str) -> ContextManager:
    return contextlib.nullcontext()


# -----------------
# KeyedStore
# -----------------
class KeyedStore(Generic[T]):
    record_type: Type[T]

    def __init__(
        self,
        path: Path | str,
        *,
        should_wipe: bool = False,
        registry: SchemaRegistry = REGISTRY,
    ):
        # Every entity added or decoded through this instance.
        self.all: List[T] = []
        self.registry = registry
        self._db = storage.KVEngine.open(path, should_wipe=should_wipe)

    def get_key(self, entity: T) -> str:
        raise NotImplementedError

    # ---- raw key/value access
    def has_key(self, key: str) -> bool:
        return self._db.has_key(key)

    def get(self, key: str) -> str:
        return self._db.get(key)

    def put(self, key: str, value: str) -> None:
        self._db.put(key, value)

    def delete(self, key: str) -> bool:
        return self._db.delete(key)

    def keys(self, prefix: Optional[str] = None) -> List[str]:
        return self._db.keys(prefix)

    def items(self) -> Iterator[Tuple[str, str]]:
        return self._db.items()

    def clear(self) -> None:
        self._db.clear()
        self.all.clear()

    # ---- entity access
    def add(self, entity: T, overwrite: bool = False) -> None:
        if entity is None:
            raise ValueError("entity is required")
        key = self.get_key(entity)
        if not key or not key.strip():
            raise ValueError("the key for the entity cannot be blank")

        existing = next((e for e in self.all if self.get_key(e) == key), None)
        if existing is not None:
            if not overwrite:
                raise KeyError(f"an entity with key {key!r} is already loaded")
            self.all.remove(existing)

        if not overwrite and self._db.has_key(key):
            raise KeyError(f"an entity with key {key!r} is already stored")

        self._db.put(key, self.registry.dumps(entity))
        self.all.append(entity)

    def find(self, key: str) -> Optional[T]:
        """Loaded entity for key, else the stored one, else None."""
        for e in self.all:
            if self.get_key(e) == key:
                return e
        if not key or not self._db.has_key(key):
            return None
        entity = self.registry.loads(self._db.get(key), self.record_type)
        self.all.append(entity)
        return entity

    def close(self) -> None:
        self._db.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc) -> None:
        self.close()


# -----------------
# TimeSeriesStore
# -----------------
class TimeSeriesStore(KeyedStore[T]):
    """
    Subclasses name the record type and which attributes hold the entity id
    and the UTC timestamp.
    """

    entity_field: str
    time_field: str

    def __init__(
        self,
        path: Path | str,
        *,
        should_wipe: bool = False,
        registry: SchemaRegistry = REGISTRY,
        bucket_lock: Optional[Callable[[str], ContextManager]] = None,
    ):
        super().__init__(path, should_wipe=should_wipe, registry=registry)
        self._bucket_lock = bucket_lock or _no_lock

    def entity_of(self, record: T) -> int:
        return getattr(record, self.entity_field)

    def time_of(self, record: T):
        return as_utc(getattr(record, self.time_field))

    def get_key(self, record: T) -> str:
        ts = self.time_of(record)
        return bucket_key(self.entity_of(record), ts.year, ts.month)

    def add(self, record: T, overwrite: bool = True) -> None:
        """
        Merge record into its bucket. A same-day record is always replaced,
        so overwrite is accepted for signature parity and otherwise ignored.
        """
        key = self.get_key(record)
        day = self.time_of(record).date()

        with self._bucket_lock(key):
            if self._db.has_key(key):
                bucket = self.load_bucket(key)
                bucket = [r for r in bucket if self.time_of(r).date() != day]
                bucket.append(record)
            else:
                bucket = [record]
            self._db.put(key, self.registry.dumps(bucket))

        self.all.append(record)

    def load_bucket(self, key: str) -> List[T]:
        return self.registry.loads_list(self._db.get(key), self.record_type)

    def find(self, key: str) -> Optional[List[T]]:  # type: ignore[override]
        """The stored bucket under key, or None."""
        if not key or not self._db.has_key(key):
            return None
        return self.load_bucket(key)

    def load(self, entity_id: int, start_time, end_time) -> List[T]:
        """
        Records of entity_id with start_time <= timestamp <= end_time, bucket
        by bucket in month order. Months without a bucket are skipped.
        """
        start, end = as_utc(start_time), as_utc(end_time)
        results: List[T] = []
        if start > end:
            return results

        for year, month in iter_months(start, end):
            key = bucket_key(entity_id, year, month)
            if not self._db.has_key(key):
                continue
            results.extend(r for r in self.load_bucket(key) if start <= self.time_of(r) <= end)
        return results

    def history(self, entity_id: int) -> List[T]:
        """Every stored record of entity_id, oldest bucket first."""
        results: List[T] = []
        for key in self._db.keys(prefix=f"{entity_id}_"):
            results.extend(self.load_bucket(key))
        return results


# -----------------
# FileStore
# -----------------
class FileStore(Generic[T]):
    """
    A data store where all entities are fetched from a remote endpoint but
    cached locally in a single JSON file.
    """

    record_type: Type[T]

    def __init__(
        self,
        path: Path | str,
        *,
        force_remote: bool = False,
        registry: SchemaRegistry = REGISTRY,
    ):
        self.path = Path(path)
        self.force_remote = force_remote
        self.registry = registry
        self.all: List[T] = []

    def get_key(self, entity: T) -> str:
        raise NotImplementedError

    def get_remote(self) -> List[T]:
        raise NotImplementedError

    def load_all(self) -> List[T]:
        if not self.force_remote:
            local = self.get_local()
            if local:
                self.all = local
                return self.all

        try:
            remote = self.get_remote()
        except RemoteFetchError as e:
            log.error("[store] remote fetch for %s failed: %s", self.path.name, e)
            self.all = []
            return self.all

        self.all = list(remote)
        self.save_all()
        log.info("[store] cached %d entities from remote in %s", len(self.all), self.path)
        return self.all

    def get_local(self) -> Optional[List[T]]:
        text = storage.read_text(self.path)
        if text is None or not text.strip():
            return None
        return self.registry.loads_list(text, self.record_type)

    def save_all(self) -> None:
        """Write the whole collection. Entities sharing a key collapse to the last one."""
        by_key: Dict[str, T] = {}
        for entity in self.all:
            by_key[self.get_key(entity)] = entity
        if len(by_key) != len(self.all):
            log.warning("[store] %d duplicate key(s) dropped on save", len(self.all) - len(by_key))
        self.all = list(by_key.values())
        storage.atomic_write(self.path, self.registry.dumps(self.all, indent=2))

    def find(self, key: str) -> Optional[T]:
        for e in self.all:
            if self.get_key(e) == key:
                return e
        return None
