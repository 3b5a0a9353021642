"""
api/limiter.py -- Rate-limit dependency shared by every protected route.

Each protected route declares its own endpoint key and limit:

    blacklist_limit = rate_limit("blacklist", lambda: get_settings().blacklist_rate_limit)

    @router.get("/blacklist")
    async def blacklist(rate: RateLimitResult = Depends(blacklist_limit)): ...

The dependency resolves the client id from proxy headers, runs the admission
check against the AdmissionController on app.state, and sets the
X-RateLimit-* headers on the response. A denied request raises a 429
HTTPException that carries the same headers plus Retry-After, so the
headers are present whether or not the handler runs.

Endpoint keys must be distinct per route: counters never bleed across keys.
"""

from collections.abc import Callable
from typing import Union

from fastapi import HTTPException, Request, Response

from core.client_ip import resolve_client_id
from core.errors import RateLimited
from core.models import RateLimitResult
from core.ratelimit import AdmissionController


def client_id(request: Request) -> str:
    """Return the rate-limit bucket key for this request."""
    peer = request.client.host if request.client else None
    return resolve_client_id(request.headers, peer)


def rate_limit(endpoint: str, max_requests: Union[int, Callable[[], int]]):
    """Build a FastAPI dependency enforcing max_requests per window on endpoint.

    max_requests may be a callable so the limit is read from settings at
    request time rather than at import time.
    """

    def dependency(request: Request, response: Response) -> RateLimitResult:
        limit = max_requests() if callable(max_requests) else max_requests
        controller: AdmissionController = request.app.state.admission
        result = controller.check(client_id(request), endpoint, limit)
        response.headers.update(result.headers())
        if not result.allowed:
            exc = RateLimited(result)
            raise HTTPException(
                status_code=429,
                detail=str(exc),
                headers={**result.headers(), "Retry-After": str(exc.retry_after)},
            )
        return result

    dependency.__name__ = f"rate_limit_{endpoint}"
    return dependency
