"""
Simple Memory-based Rate Limiter.
Counts requests per client IP and route scope inside a fixed window.
"""
import time
from fastapi import Request, HTTPException
from typing import Dict, Tuple

# In-memory storage: {(scope, ip): (window_start, count, window)}
_rate_limit_store: Dict[Tuple[str, str], Tuple[float, int, int]] = {}


def reset_rate_limits():
    """Forget every counter (used by tests and on restart)."""
    _rate_limit_store.clear()


def _evict_expired(now: float):
    """Drop counters whose window has elapsed so idle clients don't accumulate."""
    expired = [key for key, (start, _, window) in _rate_limit_store.items() if now - start > window]
    for key in expired:
        del _rate_limit_store[key]


def rate_limit(requests: int, window: int, scope: str = "default"):
    """
    Dependency for rate limiting.
    Example: Depends(rate_limit(requests=5, window=60, scope="create-order"))
    """
    def limiter(request: Request):
        key = (scope, request.client.host if request.client else "unknown")
        now = time.time()

        _evict_expired(now)
        window_start, count, _ = _rate_limit_store.get(key, (now, 0, window))

        if count >= requests:
            raise HTTPException(
                status_code=429,
                detail=f"Rate limit exceeded. Try again in {int(window - (now - window_start))} seconds."
            )

        _rate_limit_store[key] = (window_start, count + 1, window)
        return True

    return limiter
