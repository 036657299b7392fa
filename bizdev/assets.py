# bizdev/assets.py
"""
Data store which keeps each top-level asset in its own file under a root
directory. The key is the file name without extension; the extension picks
the factory that turns the file into an Asset.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Tuple, Type, TypeVar

from . import config as C
from . import storage

log = logging.getLogger(__name__)

A = TypeVar("A", bound="Asset")


@dataclass
class Asset:
    key: str = ""

    def dump(self) -> Tuple[str, str]:
        """(file suffix, file text) used when the asset is added to a store."""
        raise NotImplementedError


@dataclass
class TextAsset(Asset):
    text: str = ""

    def dump(self) -> Tuple[str, str]:
        return ".txt", self.text


@dataclass
class JsonAsset(Asset):
    data: Any = None

    def dump(self) -> Tuple[str, str]:
        return ".json", json.dumps(self.data, ensure_ascii=False, indent=2)


class AssetFactory(Protocol):
    def create(self, path: Path) -> Asset: ...


class TextAssetFactory:
    def create(self, path: Path) -> Asset:
        return TextAsset(text=path.read_text(encoding="utf-8"))


class JsonAssetFactory:
    def create(self, path: Path) -> Asset:
        return JsonAsset(data=storage.load_json(path))


class AssetStore:
    def __init__(self, root: Optional[Path | str] = None):
        self.root = Path(root) if root is not None else C.ASSETS_DIR
        self.root.mkdir(parents=True, exist_ok=True)
        self._cache: Dict[str, Asset] = {}
        self._paths: Dict[str, Path] = {}
        self._factories: Dict[str, AssetFactory] = {}
        self._indexed = False

        self.register_factory(".json", JsonAssetFactory())
        self.register_factory(".txt", TextAssetFactory())

    def register_factory(self, extension: str, factory: AssetFactory) -> None:
        self._factories[extension.lower()] = factory

    def on_load(self, asset: Asset) -> None:
        """Hook for subclasses; runs once per asset right after it is read."""

    def get(self, key: str) -> Optional[Asset]:
        if not key or not key.strip():
            raise ValueError("key cannot be blank")

        cached = self._cache.get(key)
        if cached is not None:
            return cached

        if not self._indexed:
            self._build_index()

        path = self._paths.get(key)
        if path is None:
            return None
        factory = self._factories.get(path.suffix.lower())
        if factory is None:
            log.warning("[assets] no factory for %s", path)
            return None

        asset = factory.create(path)
        asset.key = key
        self._cache[key] = asset
        self.on_load(asset)
        return asset

    def get_as(self, key: str, cls: Type[A]) -> Optional[A]:
        asset = self.get(key)
        if asset is not None and not isinstance(asset, cls):
            raise TypeError(f"asset {key!r} is a {type(asset).__name__}, not a {cls.__name__}")
        return asset

    def add(self, asset: Asset, overwrite: bool = False) -> Path:
        key = (asset.key or "").strip()
        if not key:
            raise ValueError("the key for the asset cannot be blank")

        suffix, text = asset.dump()
        path = self.root / f"{key}{suffix}"
        if path.exists() and not overwrite:
            raise KeyError(f"an asset with key {key!r} already exists")

        storage.atomic_write(path, text)
        asset.key = key
        self._cache[key] = asset
        self._paths[key] = path
        return path

    def _build_index(self) -> None:
        for path in sorted(p for p in self.root.rglob("*") if p.is_file()):
            key = path.stem
            # first one wins on duplicate stems
            if key not in self._paths:
                self._paths[key] = path
            else:
                log.debug("[assets] %s shadowed by %s", path, self._paths[key])
        self._indexed = True
