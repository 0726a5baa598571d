"""
Optional API key authentication and rate limiting.

- If DXTREE_API_KEY is set, /api requests must include X-API-Key: <key>
  (or Authorization: Bearer <key>, or ?api_key=<key>).
- Health and metrics are excluded from auth for load balancers.
- Rate limiting: in-memory, per API key or client IP; fixed window. Expired
  windows are evicted once the store reaches RATE_LIMIT_PRUNE_SIZE entries.
"""

import os
import time
from typing import Optional

from fastapi import Request

API_KEY_HEADER = "X-API-Key"
API_KEY_ENV = os.getenv("DXTREE_API_KEY", "").strip()
# Rate limit: max requests per window per identifier (IP or API key); 0 disables
RATE_LIMIT_REQUESTS = int(os.environ.get("DXTREE_RATE_LIMIT_REQUESTS", "0"))
RATE_LIMIT_WINDOW_SEC = int(os.environ.get("DXTREE_RATE_LIMIT_WINDOW_SEC", "60"))
# Expired windows are dropped once the store reaches this many identifiers
RATE_LIMIT_PRUNE_SIZE = 1024

# key -> (window_start_sec, count)
_rate_limit_store: dict[str, tuple[float, int]] = {}


class RateLimitExceeded(Exception):
    """Raised when a client goes over RATE_LIMIT_REQUESTS in the current window."""


def client_id(request: Request, api_key: Optional[str]) -> str:
    """API key if present, else X-Forwarded-For or client host."""
    if api_key:
        return f"key:{api_key[:16]}"
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return f"ip:{forwarded.split(',')[0].strip()}"
    return f"ip:{request.client.host if request.client else 'unknown'}"


def _evict_expired(now: float) -> None:
    for identifier, (start, _) in list(_rate_limit_store.items()):
        if now - start >= RATE_LIMIT_WINDOW_SEC:
            del _rate_limit_store[identifier]


def check_rate_limit(identifier: str, now: Optional[float] = None) -> None:
    if RATE_LIMIT_REQUESTS <= 0:
        return
    now = time.time() if now is None else now
    if len(_rate_limit_store) >= RATE_LIMIT_PRUNE_SIZE:
        _evict_expired(now)
    start, count = _rate_limit_store.get(identifier, (now, 0))
    if now - start >= RATE_LIMIT_WINDOW_SEC:
        start, count = now, 0
    count += 1
    _rate_limit_store[identifier] = (start, count)
    if count > RATE_LIMIT_REQUESTS:
        raise RateLimitExceeded(identifier)


def extract_api_key(request: Request) -> Optional[str]:
    key = request.headers.get(API_KEY_HEADER) or request.query_params.get("api_key")
    auth = request.headers.get("Authorization")
    if not key and auth and auth.startswith("Bearer "):
        key = auth[7:]
    return key


def skip_auth_path(path: str) -> bool:
    """Paths that do not require API key (health, metrics for load balancers)."""
    return path.rstrip("/") in ("/api/health", "/api/metrics")
