from dataclasses import dataclass, field

# ---------------------------------------------------------------------------
# Admission control
# ---------------------------------------------------------------------------


@dataclass
class RateWindowRecord:
    window_start: float  # clock reading of the first request in the window
    count: int = 1


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_in: int  # whole seconds until the current window ends
    limit: int

    def headers(self) -> dict[str, str]:
        """Return the X-RateLimit-* response headers for this result."""
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_in),
        }


# ---------------------------------------------------------------------------
# Blacklist checking
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BlacklistDefinition:
    name: str
    query_host: str
    description: str


@dataclass(frozen=True)
class ProbeOutcome:
    list_name: str
    description: str
    is_listed: bool = False
    is_error: bool = False  # timeout or unexpected failure; not a clean negative


@dataclass
class AggregateResult:
    outcomes: list[ProbeOutcome] = field(default_factory=list)

    @property
    def listed_count(self) -> int:
        return sum(1 for o in self.outcomes if o.is_listed)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def error_count(self) -> int:
        return sum(1 for o in self.outcomes if o.is_error)


# Queried in this order; response ordering follows it.
DEFAULT_BLACKLISTS: tuple[BlacklistDefinition, ...] = (
    BlacklistDefinition("SpamCop", "bl.spamcop.net", "Known spam sources"),
    BlacklistDefinition("SORBS", "dnsbl.sorbs.net", "Spam & open proxies"),
    BlacklistDefinition("Barracuda", "b.barracudacentral.org", "Email spam"),
    BlacklistDefinition("UCEPROTECT", "dnsbl-1.uceprotect.net", "Spam sources"),
)
