"""
blacklist.py -- DNSBL probing and fan-out aggregation.

A DNSBL lists an address by publishing an A record for the reversed address
under its zone: 1.2.3.4 on bl.spamcop.net is queried as
4.3.2.1.bl.spamcop.net. NXDOMAIN (or an empty answer) is the canonical
"not listed" signal. Anything else that goes wrong -- a timeout, SERVFAIL,
no reachable nameserver -- is indeterminate and reported as an error so it is
never mistaken for a clean result.
"""

import asyncio
import logging
from collections.abc import Sequence
from typing import Optional

import dns.asyncresolver
import dns.exception
import dns.resolver

from core.encoder import encode_for_query
from core.models import DEFAULT_BLACKLISTS, AggregateResult, BlacklistDefinition, ProbeOutcome

logger = logging.getLogger("ipguard.blacklist")

PROBE_TIMEOUT = 5.0  # seconds, per list

# Resolution failures that mean "this name does not exist in the zone".
_CLEAN_NEGATIVE = (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer)


def make_resolver(nameservers: Optional[Sequence[str]] = None, timeout: float = PROBE_TIMEOUT):
    """Build an async resolver. Uses the system configuration unless nameservers are given."""
    if nameservers:
        resolver = dns.asyncresolver.Resolver(configure=False)
        resolver.nameservers = list(nameservers)
    else:
        resolver = dns.asyncresolver.Resolver()
    resolver.timeout = timeout
    resolver.lifetime = timeout
    return resolver


async def probe(
    reversed_address: str,
    definition: BlacklistDefinition,
    resolver,
    timeout: float = PROBE_TIMEOUT,
) -> ProbeOutcome:
    """Query one list for reversed_address. Never raises on DNS failure.

    The resolution is raced against `timeout`; if the deadline wins, the
    pending query is cancelled and its late answer is discarded.
    """
    query = f"{reversed_address}.{definition.query_host}"
    try:
        await asyncio.wait_for(resolver.resolve(query, "A"), timeout=timeout)
    except _CLEAN_NEGATIVE:
        return ProbeOutcome(definition.name, definition.description, is_listed=False, is_error=False)
    except (asyncio.TimeoutError, dns.exception.Timeout):
        logger.warning("DNSBL query timed out after %.1fs: %s", timeout, query)
        return ProbeOutcome(definition.name, definition.description, is_listed=False, is_error=True)
    except Exception as exc:
        logger.warning("DNSBL query failed for %s: %s", query, exc)
        return ProbeOutcome(definition.name, definition.description, is_listed=False, is_error=True)
    return ProbeOutcome(definition.name, definition.description, is_listed=True, is_error=False)


async def check_all(
    ip_literal: str,
    definitions: Sequence[BlacklistDefinition] = DEFAULT_BLACKLISTS,
    resolver=None,
    timeout: float = PROBE_TIMEOUT,
) -> AggregateResult:
    """Check ip_literal against every list concurrently.

    Raises InvalidAddressFormat before any query is sent if the address
    cannot be encoded. Otherwise waits for every probe to settle; one list
    failing never cancels or drops the others. Outcomes follow the order of
    `definitions`, not completion order.
    """
    reversed_address = encode_for_query(ip_literal)
    if resolver is None:
        resolver = make_resolver(timeout=timeout)

    settled = await asyncio.gather(
        *(probe(reversed_address, d, resolver, timeout) for d in definitions),
        return_exceptions=True,
    )

    outcomes = []
    for definition, result in zip(definitions, settled):
        if isinstance(result, BaseException):
            if isinstance(result, asyncio.CancelledError):
                raise result
            logger.warning("DNSBL probe for %s raised unexpectedly: %r", definition.name, result)
            result = ProbeOutcome(definition.name, definition.description, is_listed=False, is_error=True)
        outcomes.append(result)

    aggregate = AggregateResult(outcomes=outcomes)
    logger.info(
        "DNSBL check %s: listed=%d errors=%d total=%d",
        ip_literal,
        aggregate.listed_count,
        aggregate.error_count,
        aggregate.total,
    )
    return aggregate
