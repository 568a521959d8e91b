"""Row-count backends used for dynamic chart titles."""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import Any, Callable, Mapping, Optional

import duckdb
import pandas as pd

from workbench.services.api_client import ApiClient
from workbench.utils.filter_params import FilterDescriptor

logger = logging.getLogger("workbench.counts")


class RemoteRowCounter:
    """Ask the filtered-count service how many rows match a descriptor."""

    def __init__(self, api: ApiClient, project_id: str, token: Optional[str] = None):
        self.api = api
        self.project_id = project_id
        self.token = token

    def count(self, descriptor: FilterDescriptor) -> int:
        return self.api.filtered_count(self.project_id, descriptor.to_payload(), self.token)


class LocalRowCounter:
    """Count matching rows in an in-memory DuckDB view of the project's rows.

    Rows are loaded lazily on first use through ``loader``.
    """

    TABLE = "workbench_rows"

    def __init__(self, loader: Callable[[], pd.DataFrame]):
        self._loader = loader
        self._df: Optional[pd.DataFrame] = None
        self._con: Optional[duckdb.DuckDBPyConnection] = None
        self._lock = threading.Lock()

    def _connect(self) -> duckdb.DuckDBPyConnection:
        if self._con is None:
            self._df = self._loader()
            self._con = duckdb.connect(":memory:")
            self._con.register(self.TABLE, self._df)
            logger.info("Registered %d row(s) for local counting.", len(self._df))
        return self._con

    def count(self, descriptor: FilterDescriptor) -> int:
        with self._lock:
            con = self._connect()
            clause, params = descriptor.to_sql_where(available_columns=self._df.columns)
            row = con.execute(f"SELECT COUNT(*) FROM {self.TABLE} WHERE {clause};", params).fetchone()
        return int(row[0]) if row else 0

    def close(self) -> None:
        with self._lock:
            if self._con is not None:
                self._con.close()
            self._con = None
            self._df = None


class CountCache:
    """Small LRU of ``descriptor.cache_key() -> count``."""

    def __init__(self, maxsize: int = 256):
        self.maxsize = max(int(maxsize), 1)
        self._items: "OrderedDict[str, int]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[int]:
        with self._lock:
            if key not in self._items:
                return None
            self._items.move_to_end(key)
            return self._items[key]

    def put(self, key: str, value: int) -> None:
        with self._lock:
            self._items[key] = value
            self._items.move_to_end(key)
            while len(self._items) > self.maxsize:
                self._items.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def __len__(self) -> int:
        return len(self._items)


class CachedCounter:
    """Wrap a counter so repeated descriptors reuse the first answer."""

    def __init__(self, counter: Any, cache: CountCache):
        self.counter = counter
        self.cache = cache

    def count(self, descriptor: FilterDescriptor) -> int:
        key = descriptor.cache_key()
        hit = self.cache.get(key)
        if hit is not None:
            logger.debug("Count cache hit for %s", key)
            return hit
        value = self.counter.count(descriptor)
        self.cache.put(key, value)
        return value


def make_counter(
    config: Mapping[str, Any],
    api: ApiClient,
    project_id: str,
    token: Optional[str] = None,
) -> CachedCounter:
    backend = str(config.get("COUNT_BACKEND", "remote")).lower()
    if backend == "local":
        counter: Any = LocalRowCounter(lambda: pd.DataFrame(api.raw_data(project_id, token)))
    else:
        counter = RemoteRowCounter(api, project_id, token)
    return CachedCounter(counter, CountCache(config.get("COUNT_CACHE_SIZE", 256)))


__all__ = ["RemoteRowCounter", "LocalRowCounter", "CountCache", "CachedCounter", "make_counter"]
