"""
Tiny TTL cache for computed dashboard payloads.

Process-local and unsynchronized: entries are whole JSON-ready dicts that
are recomputed wholesale on expiry, so a lost race only costs a recompute.
"""
import logging
import time

logger = logging.getLogger(__name__)

class TTLCache:
    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._entries = {}

    def get(self, key):
        item = self._entries.get(key)
        if item is None:
            logger.debug("Cache MISS: %s", key)
            return None
        expires_at, value = item
        if self._clock() >= expires_at:
            self._entries.pop(key, None)
            logger.debug("Cache EXPIRED: %s", key)
            return None
        logger.debug("Cache HIT: %s", key)
        return value

    def set(self, key, value, ttl):
        if ttl <= 0:
            return
        self._entries[key] = (self._clock() + ttl, value)

    def invalidate(self, key=None):
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)


dashboard_cache = TTLCache()
