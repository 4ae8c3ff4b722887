"""Per-branch TTL cache for wait-time estimates, with LRU eviction and metrics."""

from collections import OrderedDict
from datetime import datetime


class CacheMetrics:
    """Tracks cache hit/miss statistics."""

    def __init__(self) -> None:
        self.hits = 0
        self.misses = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total


class EstimationCache:
    """Estimates keyed by branch id, valid for ``ttl_seconds``.

    Ages are measured against the caller-supplied time rather than the
    wall clock, so a lookup made "as of" a given instant is deterministic.

    Args:
        ttl_seconds: How long an entry stays valid.
        max_size: Maximum number of branches kept before eviction.
    """

    def __init__(self, ttl_seconds: float = 60.0, max_size: int = 100) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self._store: OrderedDict[str, tuple[datetime, int]] = OrderedDict()
        self.metrics = CacheMetrics()

    def get(self, branch_id: str, now: datetime) -> int | None:
        """Return the cached estimate if it is younger than the TTL at *now*.

        Args:
            branch_id: Cache key.
            now: Reference time of the lookup.

        Returns:
            Cached minutes or None.
        """
        entry = self._store.get(branch_id)
        if entry is None:
            self.metrics.misses += 1
            return None

        computed_at, minutes = entry
        if (now - computed_at).total_seconds() >= self.ttl_seconds:
            del self._store[branch_id]
            self.metrics.misses += 1
            return None

        self._store.move_to_end(branch_id)
        self.metrics.hits += 1
        return minutes

    def set(self, branch_id: str, minutes: int, computed_at: datetime) -> None:
        """Store an estimate, evicting the least recently used branch if full."""
        if branch_id in self._store:
            self._store.move_to_end(branch_id)
            self._store[branch_id] = (computed_at, minutes)
            return

        if len(self._store) >= self.max_size:
            self._store.popitem(last=False)

        self._store[branch_id] = (computed_at, minutes)

