"""
api/routes/blacklist.py -- DNSBL reputation check endpoint.

GET /blacklist?ip=<literal>

The admission check runs first (as a dependency), so a throttled client gets
429 even when the ip parameter is missing. Every response -- 200, 400 and
429 -- carries the X-RateLimit-* headers.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Request

from api.limiter import rate_limit
from api.models import BlacklistResponse
from core.blacklist import check_all
from core.config import get_settings
from core.errors import InvalidAddressFormat
from core.models import RateLimitResult

router = APIRouter()

ENDPOINT_KEY = "blacklist"

blacklist_limit = rate_limit(ENDPOINT_KEY, lambda: get_settings().blacklist_rate_limit)


@router.get("/blacklist", response_model=BlacklistResponse)
async def get_blacklist(
    request: Request,
    rate: Annotated[RateLimitResult, Depends(blacklist_limit)],
    ip: Optional[str] = None,
) -> BlacklistResponse:
    """Check one address against every configured DNSBL concurrently.

    Query params:
        ip -- IPv4 or IPv6 literal (required)
    """
    if not ip or not ip.strip():
        raise HTTPException(status_code=400, detail="IP address is required", headers=rate.headers())

    try:
        result = await check_all(
            ip.strip(),
            request.app.state.blacklists,
            resolver=request.app.state.resolver,
            timeout=get_settings().dns_timeout_seconds,
        )
    except InvalidAddressFormat as exc:
        raise HTTPException(status_code=400, detail="Invalid IP address format", headers=rate.headers()) from exc

    return BlacklistResponse.from_aggregate(result)
