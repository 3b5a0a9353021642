"""
client_ip.py -- Derive one canonical client identifier from proxy headers.

The identifier is only a rate-limit bucket key. It is not validated as an IP
address: a spoofed X-Forwarded-For moves the caller to another bucket, it does
not bypass the limiter for anyone else.
"""

from collections.abc import Mapping
from typing import Optional

LOCALHOST_ID = "localhost"

_MAPPED_PREFIX = "::ffff:"
_LOOPBACK = {"", "::1", "127.0.0.1"}


def _header(headers: Mapping[str, str], name: str) -> str:
    # Starlette Headers are case-insensitive already; plain dicts may not be.
    value = headers.get(name)
    if value is None:
        for key, candidate in headers.items():
            if key.lower() == name:
                value = candidate
                break
    return value or ""


def resolve_client_id(headers: Mapping[str, str], fallback: Optional[str] = None) -> str:
    """Return the originating client address, or "localhost" for loopback/unknown.

    Order: first entry of X-Forwarded-For (the originating client, not the
    intermediate proxies), then X-Real-IP, then the socket peer address.
    """
    forwarded = _header(headers, "x-forwarded-for")
    if forwarded:
        ip = forwarded.split(",")[0].strip()
    else:
        ip = _header(headers, "x-real-ip").strip() or (fallback or "")

    if ip.lower().startswith(_MAPPED_PREFIX):
        ip = ip[len(_MAPPED_PREFIX):]
    if ip in _LOOPBACK:
        return LOCALHOST_ID
    return ip
