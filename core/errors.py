"""
core/errors.py -- Domain exception taxonomy for ipguard.

Every failure in the core is either a clean rejection (one of the classes
below) or a per-list indeterminate result folded into an otherwise
successful aggregate (ProbeOutcome.is_error). There is no fatal class.

Route handlers map these to HTTP status codes:
  InvalidInput / InvalidAddressFormat -> 400
  RateLimited                         -> 429
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from core.models import RateLimitResult


class IPGuardError(Exception):
    """Base class for all ipguard domain errors."""


class InvalidInput(IPGuardError):
    """Missing or malformed user input. User-correctable."""


class InvalidAddressFormat(InvalidInput):
    """The literal could not be parsed as an IPv4 or IPv6 address."""

    def __init__(self, literal: str) -> None:
        super().__init__(f"Invalid IP address format: {literal[:64]!r}")
        self.literal = literal


class RateLimited(IPGuardError):
    """The admission controller denied the request."""

    def __init__(self, result: RateLimitResult) -> None:
        super().__init__(
            f"Too many requests. Please wait {result.reset_in} seconds before trying again."
        )
        self.result = result

    @property
    def retry_after(self) -> int:
        return self.result.reset_in
