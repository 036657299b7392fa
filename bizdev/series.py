# bizdev/series.py
from __future__ import annotations

from pathlib import Path
from typing import Callable, ContextManager, Optional

from . import config as C
from .codec import SchemaRegistry
from .models import REGISTRY, GameSeries
from .stores import TimeSeriesStore


class GameSeriesStore(TimeSeriesStore[GameSeries]):
    """
    Review-count snapshots per Steam app, one bucket per app and month
    (key "{app_id}_{yyyy}_{mm}"), at most one snapshot per app and UTC day.
    """

    record_type = GameSeries
    entity_field = "app_id"
    time_field = "time_generated"

    def __init__(
        self,
        path: Optional[Path | str] = None,
        *,
        should_wipe: Optional[bool] = None,
        registry: SchemaRegistry = REGISTRY,
        bucket_lock: Optional[Callable[[str], ContextManager]] = None,
    ):
        super().__init__(
            path if path is not None else C.SERIES_DB_DIR,
            should_wipe=C.SERIES_WIPE if should_wipe is None else should_wipe,
            registry=registry,
            bucket_lock=bucket_lock,
        )
