"""
Retry/backoff helper for GitHub GET requests.
Transient failures (connection errors, 429, 502-504, Retry-After) are retried with exponential
backoff; everything else, including an exhausted 403 rate limit, is returned to the caller as-is.
"""

import os
import time
import random
import email.utils
import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any
import requests

logger = logging.getLogger(__name__)

# retry/backoff defaults from environment
DEFAULT_MAX_RETRIES = int(os.getenv("CONTRIB_MAX_RETRIES", "3"))
DEFAULT_BACKOFF_BASE = float(os.getenv("CONTRIB_BACKOFF_BASE", "0.5"))
DEFAULT_MAX_BACKOFF = float(os.getenv("CONTRIB_MAX_BACKOFF", "60.0"))
DEFAULT_TIMEOUT = 30.0

RETRY_STATUSES = (429, 502, 503, 504)

# runtime overrides (set from the CLI)
_runtime_max_retries: Optional[int] = None
_runtime_backoff_base: Optional[float] = None
_runtime_max_backoff: Optional[float] = None


def configure_retry(max_retries: Optional[int] = None, backoff_base: Optional[float] = None, max_backoff: Optional[float] = None):
    """Override retry/backoff defaults at runtime (CLI flags win over environment variables)."""
    global _runtime_max_retries, _runtime_backoff_base, _runtime_max_backoff
    if max_retries is not None:
        _runtime_max_retries = int(max_retries)
    if backoff_base is not None:
        _runtime_backoff_base = float(backoff_base)
    if max_backoff is not None:
        _runtime_max_backoff = float(max_backoff)


def _parse_retry_after(raw: Optional[str]) -> Optional[float]:
    if not raw:
        return None
    try:
        return max(0.0, float(raw))
    except ValueError:
        pass
    try:
        dt = email.utils.parsedate_to_datetime(raw)
    except (TypeError, ValueError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return max(0.0, (dt - datetime.now(timezone.utc)).total_seconds())


def _resolve(max_retries: Optional[int], backoff_base: Optional[float], max_backoff: Optional[float]):
    retries = max_retries if max_retries is not None else (_runtime_max_retries if _runtime_max_retries is not None else DEFAULT_MAX_RETRIES)
    base = backoff_base if backoff_base is not None else (_runtime_backoff_base if _runtime_backoff_base is not None else DEFAULT_BACKOFF_BASE)
    cap = max_backoff if max_backoff is not None else (_runtime_max_backoff if _runtime_max_backoff is not None else DEFAULT_MAX_BACKOFF)
    return max(1, int(retries)), float(base), float(cap)


def _parse_body(resp) -> Any:
    try:
        return resp.json()
    except ValueError:
        return getattr(resp, 'text', None)


def _wait_seconds(attempt: int, base: float, cap: float, retry_after: Optional[float]) -> float:
    if retry_after is not None:
        return min(retry_after, cap)
    return min(base * (2 ** attempt) + random.uniform(0, base), cap)


def get_with_retries(
    url: str,
    headers: Optional[Dict[str, str]] = None,
    params: Optional[Dict[str, Any]] = None,
    max_retries: Optional[int] = None,
    backoff_base: Optional[float] = None,
    max_backoff: Optional[float] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> Dict[str, Any]:
    """Perform a GET and return {'response', 'status', 'headers', 'timestamp'}.

    status is 0 when no HTTP response was received after the last attempt; response then
    holds the exception text.
    """
    retries, base, cap = _resolve(max_retries, backoff_base, max_backoff)
    result: Dict[str, Any] = {'response': None, 'status': 0, 'headers': {}, 'timestamp': time.time()}

    for attempt in range(retries):
        try:
            resp = requests.get(url, headers=headers or {}, params=params or {}, timeout=timeout)
        except requests.RequestException as ex:
            logger.debug("GET %s failed on attempt %d: %s", url, attempt + 1, ex)
            result = {'response': str(ex), 'status': 0, 'headers': {}, 'timestamp': time.time()}
            retry_after = None
        else:
            resp_headers = dict(getattr(resp, 'headers', {}) or {})
            result = {'response': _parse_body(resp), 'status': resp.status_code, 'headers': resp_headers, 'timestamp': time.time()}
            retry_after = _parse_retry_after(resp_headers.get('Retry-After'))
            if resp.status_code < 400 or (resp.status_code not in RETRY_STATUSES and retry_after is None):
                return result
            logger.debug("GET %s returned %s on attempt %d", url, resp.status_code, attempt + 1)

        if attempt + 1 < retries:
            time.sleep(_wait_seconds(attempt, base, cap, retry_after))

    return result


__all__ = ["configure_retry", "get_with_retries"]
