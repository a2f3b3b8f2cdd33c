# app/services/stats_cache.py
import threading
from typing import Optional

from app.services.aggregator import AggregationResult


class StatsCache:
    """
    Holds the latest unfiltered aggregation. Populated at startup and replaced
    after every accepted submission; filtered queries never touch it.
    """

    def __init__(self, initial: Optional[AggregationResult] = None):
        self._lock = threading.Lock()
        self._value = initial

    def get(self) -> Optional[AggregationResult]:
        with self._lock:
            return self._value

    def invalidate(self, result: AggregationResult) -> None:
        """Replace the cached aggregation with a freshly computed one."""
        with self._lock:
            self._value = result
