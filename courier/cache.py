from abc import ABC, abstractmethod
from collections import OrderedDict
import json
import logging
import threading
import time
from typing import Callable, Optional

from .model import CacheEntry
from .util import Params, clamp, normalize_params


logger = logging.getLogger(__name__)


def fingerprint(method: str, url: str, params: Params = None) -> str:
    """
    Derive the cache key for a request.

    Query parameters are sorted so that their order does not matter. The key
    is a canonical JSON encoding rather than a digest, so distinct requests
    can never share a key.
    """
    normalized = sorted(normalize_params(params))
    return json.dumps([method.upper(), url, normalized], separators=(',', ':'))


class Cache(ABC):
    """
    An abstraction of a response cache.

    A response cache has a relatively narrow scope: to remember a response body such that it can be recalled later
    for the same fingerprint. Deciding which requests are cacheable is left to the dispatcher.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[CacheEntry]:
        """
        Retrieve a cached entry.

        @param key
          The fingerprint of the request to look up.
        @return
          The cached entry for `key`, or `None` if there is no valid one.
        """

    @abstractmethod
    def put(self, key: str, entry: CacheEntry) -> None:
        """
        Store an entry, replacing any existing entry for `key`.
        """

    @abstractmethod
    def invalidate(self, key: Optional[str] = None) -> None:
        """
        Drop a single entry, or every entry when `key` is `None`.
        """

    def close(self):
        """
        Close any resources associated with the cache.
        """


class MemoryCache(Cache):
    """
    An in-process, size-bound LRU cache.

    Entries optionally expire `max_age` seconds after being stored. Every
    operation holds a lock, so a single instance can be shared by concurrent
    dispatches. Concurrent puts for the same key are last-write-wins.
    """

    def __init__(self, max_entries: int = 256, max_age: Optional[float] = None,
                 clock: Callable[[], float] = time.monotonic) -> None:
        """
        @param max_entries
          The number of entries to keep before evicting the least recently
          used one. Clamped to be between 1 and 100000.
        @param max_age
          Seconds after which an entry is considered stale. `None` keeps
          entries until they are evicted or invalidated.
        @param clock
          The source of timestamps for `CacheEntry.created`.
        """
        if max_age is not None and max_age <= 0:
            raise ValueError('max_age must be positive, got {}'.format(max_age))
        self.__max_entries = clamp(max_entries, 1, 100000)
        self.__max_age = max_age
        self.__clock = clock
        self.__entries = OrderedDict()
        self.__lock = threading.Lock()

    def __len__(self) -> int:
        with self.__lock:
            return len(self.__entries)

    def get(self, key: str) -> Optional[CacheEntry]:
        with self.__lock:
            entry = self.__entries.get(key)
            if entry is None:
                logger.info('No matching cache entry found.')
                return None

            if self.__max_age is not None and self.__clock() - entry.created >= self.__max_age:
                logger.info('Cache entry is stale. Dropping it.')
                del self.__entries[key]
                return None

            self.__entries.move_to_end(key)
            logger.info('Returning entry from cache.')
            return entry

    def put(self, key: str, entry: CacheEntry) -> None:
        entry.created = self.__clock()
        with self.__lock:
            self.__entries[key] = entry
            self.__entries.move_to_end(key)
            while len(self.__entries) > self.__max_entries:
                evicted, _ = self.__entries.popitem(last=False)
                logger.info('Evicted least recently used cache entry {}'.format(evicted))

    def invalidate(self, key: Optional[str] = None) -> None:
        with self.__lock:
            if key is None:
                logger.info('Clearing all {} cache entries.'.format(len(self.__entries)))
                self.__entries.clear()
            elif self.__entries.pop(key, None) is not None:
                logger.info('Invalidated cache entry {}'.format(key))

    def close(self):
        self.invalidate()


class HttpAwareCache(Cache):
    """
    Augments a cache with HTTP-specific knowledge.

    Only sensible responses are stored (200, 203, 300 and 301, as in cachecontrol), and a `Cache-Control: no-store`
    response header is honoured.
    """

    def __init__(self, implementation: Cache) -> None:
        self.__impl = implementation

    def get(self, key: str) -> Optional[CacheEntry]:
        logger.info('Delegating cache lookup to decorated cache.')
        entry = self.__impl.get(key)
        if entry is None:
            return None

        if not self._is_cachable_status_code(entry.status):
            logger.warning('Decorated cache held an entry with status {}. Ignoring it.'.format(entry.status))
            return None

        return entry

    def put(self, key: str, entry: CacheEntry) -> None:
        if not self._is_cachable_status_code(entry.status):
            logger.info('Refusing to create cache entry. Status code {} is not cachable.'.format(entry.status))
            return
        if self._forbids_storing(entry):
            logger.info('Refusing to create cache entry. Response says no-store.')
            return

        logger.info('Delegating cache entry creation to decorated cache.')
        self.__impl.put(key, entry)

    def invalidate(self, key: Optional[str] = None) -> None:
        logger.info('Delegating cache invalidation to decorated cache.')
        self.__impl.invalidate(key)

    def close(self):
        self.__impl.close()

    def _is_cachable_status_code(self, status: int) -> bool:
        return status in (200, 203, 300, 301,)

    def _forbids_storing(self, entry: CacheEntry) -> bool:
        cache_control = next((value for name, value in entry.headers.items() if name.lower() == 'cache-control'), '')
        directives = {directive.strip().lower() for directive in cache_control.split(',')}
        return 'no-store' in directives
