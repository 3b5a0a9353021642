"""
API response models for the ipguard REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in core/models.py, which
own the internal domain representation. Route handlers map between the two.
"""

from pydantic import BaseModel, ConfigDict, Field

from core.models import AggregateResult, ProbeOutcome


class ListCheck(BaseModel):
    """One row of a blacklist response -- the outcome for a single DNSBL."""

    model_config = ConfigDict(frozen=True)

    name: str
    desc: str
    listed: bool
    error: bool

    @classmethod
    def from_outcome(cls, outcome: ProbeOutcome) -> "ListCheck":
        return cls(
            name=outcome.list_name,
            desc=outcome.description,
            listed=outcome.is_listed,
            error=outcome.is_error,
        )


class BlacklistResponse(BaseModel):
    """Response body for GET /blacklist.

    checks -- one entry per configured list, in configuration order.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    checks: list[ListCheck]
    listed_count: int = Field(alias="listedCount")
    total: int

    @classmethod
    def from_aggregate(cls, result: AggregateResult) -> "BlacklistResponse":
        return cls(
            checks=[ListCheck.from_outcome(o) for o in result.outcomes],
            listed_count=result.listed_count,
            total=result.total,
        )


class ErrorResponse(BaseModel):
    """Error envelope returned on every 4xx/5xx response."""

    model_config = ConfigDict(frozen=True)

    error: str


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
    lists: int
