import threading
import time
from collections import OrderedDict


class MatchCache:
    """In-process cache of per designer/brief AI results with expiry."""

    def __init__(self, ttl_seconds=3600, max_size=500, clock=time.monotonic):
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self._clock = clock
        self._store = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def configure(self, ttl_seconds=None, max_size=None):
        if ttl_seconds is not None:
            self.ttl_seconds = ttl_seconds
        if max_size is not None:
            self.max_size = max_size

    @staticmethod
    def cache_key(designer_id, brief_id):
        return f'{designer_id}-{brief_id}'

    def _expired(self, stored_at, now):
        return now - stored_at > self.ttl_seconds

    def get(self, designer_id, brief_id):
        key = self.cache_key(designer_id, brief_id)
        now = self._clock()
        with self._lock:
            item = self._store.get(key)
            if item is None:
                self.misses += 1
                return None
            result, stored_at = item
            if self._expired(stored_at, now):
                del self._store[key]
                self.misses += 1
                return None
            self.hits += 1
            return result

    def set(self, designer_id, brief_id, result):
        key = self.cache_key(designer_id, brief_id)
        with self._lock:
            self._store.pop(key, None)
            # Evict oldest entry when full
            while self.max_size and len(self._store) >= self.max_size:
                self._store.popitem(last=False)
            self._store[key] = (result, self._clock())

    def clear(self):
        with self._lock:
            self._store.clear()
            self.hits = 0
            self.misses = 0

    def clear_expired(self):
        now = self._clock()
        with self._lock:
            expired = [k for k, (_, stored_at) in self._store.items() if self._expired(stored_at, now)]
            for key in expired:
                del self._store[key]
        return len(expired)

    def stats(self):
        now = self._clock()
        with self._lock:
            ages = [now - stored_at for _, stored_at in self._store.values()]
            lookups = self.hits + self.misses
            return {
                'size': len(self._store),
                'hits': self.hits,
                'misses': self.misses,
                'hit_rate': self.hits / lookups if lookups else 0.0,
                'avg_age': sum(ages) / len(ages) if ages else 0.0,
            }

    def __len__(self):
        return len(self._store)
