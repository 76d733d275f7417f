"""
SQLite cache for GitHub API responses and a cache-first GET helper.
Pages are stored by key (e.g. github:issues:owner/repo:page:1:per:100) so a run can be replayed
without touching the network.
"""

import sqlite3
import json
import time
import os
import threading
import logging
from typing import Optional, Any, Dict

from .retry import get_with_retries

logger = logging.getLogger(__name__)

DEFAULT_CACHE_PATH = 'cache.db'
_env_ttl = os.getenv("CONTRIB_CACHE_TTL")
DEFAULT_TTL_SECONDS = float(_env_ttl) if _env_ttl else None

# noinspection SqlResolve
SQL_CREATE = """
CREATE TABLE IF NOT EXISTS http_cache (
    key TEXT PRIMARY KEY,
    response TEXT,
    status INTEGER,
    timestamp REAL
);
"""


class Cache:
    def __init__(self, path: Optional[str] = None, max_entries: Optional[int] = None, ttl_seconds: Optional[float] = DEFAULT_TTL_SECONDS):
        """Open (or create) a cache.

        :param path: SQLite file path; ':memory:' when omitted.
        :param max_entries: keep at most this many rows, dropping the oldest.
        :param ttl_seconds: rows older than this are treated as missing and pruned.
        """
        self.path = path or ':memory:'
        self.conn = sqlite3.connect(self.path, check_same_thread=False)
        self._lock = threading.RLock()
        self.max_entries = int(max_entries) if max_entries is not None else None
        self.ttl_seconds = float(ttl_seconds) if ttl_seconds is not None else None
        with self._lock:
            self.conn.executescript(SQL_CREATE)
            self.conn.commit()

    def close(self):
        with self._lock:
            if self.conn is not None:
                self.conn.close()
                self.conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # noinspection SqlResolve
    def stats(self) -> Dict[str, Any]:
        """Row count plus oldest/newest timestamps."""
        with self._lock:
            cur = self.conn.execute('SELECT COUNT(1), MIN(timestamp), MAX(timestamp) FROM http_cache')
            count, oldest, newest = cur.fetchone()
        return {
            'count': int(count or 0),
            'oldest': float(oldest) if oldest is not None else None,
            'newest': float(newest) if newest is not None else None,
        }

    # noinspection SqlResolve
    def list_keys(self, limit: int = 1000) -> list:
        """Keys with status and timestamp, newest first."""
        with self._lock:
            rows = self.conn.execute('SELECT key, status, timestamp FROM http_cache ORDER BY timestamp DESC LIMIT ?', (limit,)).fetchall()
        return [{'key': k, 'status': int(status or 0), 'timestamp': float(ts or 0)} for k, status, ts in rows]

    # noinspection SqlWithoutWhere
    def clear(self):
        with self._lock:
            self.conn.execute('DELETE FROM http_cache')
            self.conn.commit()

    # noinspection SqlResolve
    def delete_key(self, key: str) -> int:
        with self._lock:
            cur = self.conn.execute('DELETE FROM http_cache WHERE key = ?', (key,))
            self.conn.commit()
            return cur.rowcount

    def _expired(self, timestamp: Optional[float]) -> bool:
        if self.ttl_seconds is None or timestamp is None:
            return False
        return time.time() - float(timestamp) > self.ttl_seconds

    # noinspection SqlResolve
    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            row = self.conn.execute('SELECT response, status, timestamp FROM http_cache WHERE key = ?', (key,)).fetchone()
        if not row:
            return None
        response, status, timestamp = row
        if self._expired(timestamp):
            self.delete_key(key)
            return None
        return {'response': json.loads(response), 'status': status, 'timestamp': timestamp}

    # noinspection SqlResolve
    def _prune(self):
        with self._lock:
            if self.ttl_seconds is not None:
                cutoff = time.time() - self.ttl_seconds
                self.conn.execute('DELETE FROM http_cache WHERE timestamp < ?', (cutoff,))
            if self.max_entries is not None:
                count = self.conn.execute('SELECT COUNT(1) FROM http_cache').fetchone()[0] or 0
                excess = int(count - self.max_entries)
                if excess > 0:
                    self.conn.execute(
                        'DELETE FROM http_cache WHERE key IN (SELECT key FROM http_cache ORDER BY timestamp ASC LIMIT ?)', (excess,)
                    )
            self.conn.commit()

    # noinspection SqlResolve
    def set(self, key: str, response: Any, status: int = 200):
        payload = json.dumps(response)
        with self._lock:
            self.conn.execute(
                'REPLACE INTO http_cache(key, response, status, timestamp) VALUES (?, ?, ?, ?)', (key, payload, status, time.time())
            )
            self.conn.commit()
            self._prune()


def _fresh_entry(cache: Optional[Cache], cache_key: Optional[str], max_age: Optional[float]) -> Optional[Dict[str, Any]]:
    if not cache or not cache_key:
        return None
    cached = cache.get(cache_key)
    if not cached:
        return None
    if max_age is not None and time.time() - float(cached.get('timestamp') or 0) > float(max_age):
        return None
    return cached


def cached_get(
    url: str,
    headers: Optional[Dict[str, str]] = None,
    params: Optional[Dict[str, Any]] = None,
    cache: Optional[Cache] = None,
    cache_key: Optional[str] = None,
    max_age: Optional[float] = None,
    offline: bool = False,
    **retry_kwargs,
) -> Dict[str, Any]:
    """GET through the cache.

    A fresh cached entry is returned without a request. Otherwise the request is made with
    retries and a 200 response is stored. With offline=True the network is never used and a
    miss comes back as status 0.
    """
    cached = _fresh_entry(cache, cache_key, max_age)
    if cached:
        logger.debug("cache hit: %s", cache_key)
        return {'response': cached['response'], 'status': cached['status'], 'headers': {}, 'timestamp': cached['timestamp']}
    if offline:
        return {'response': f"no cached response for {cache_key}", 'status': 0, 'headers': {}, 'timestamp': time.time()}

    result = get_with_retries(url, headers=headers, params=params, **retry_kwargs)
    if cache and cache_key and result.get('status') == 200:
        cache.set(cache_key, result.get('response'), 200)
    return result


__all__ = ["Cache", "cached_get", "DEFAULT_CACHE_PATH"]
