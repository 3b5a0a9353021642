"""
encoder.py -- Address to DNSBL query-label encoding.

IPv4 zones are queried with the octets reversed (1.2.3.4 -> 4.3.2.1).
IPv6 zones use the nibble-reversed form: the fully expanded 32 hex digits,
reversed one character at a time and joined with dots (RFC 5782).
"""

import ipaddress

from core.errors import InvalidAddressFormat


def reverse_ipv4(ip: ipaddress.IPv4Address) -> str:
    return ".".join(reversed(ip.exploded.split(".")))


def reverse_ipv6(ip: ipaddress.IPv6Address) -> str:
    # exploded zero-pads every group and expands "::" to the missing groups.
    nibbles = ip.exploded.replace(":", "")
    return ".".join(reversed(nibbles))


def encode_for_query(ip_literal: str) -> str:
    """Return the reversed label string used to query a DNSBL zone.

    Raises InvalidAddressFormat if the literal is neither IPv4 nor IPv6.
    Scoped IPv6 literals (fe80::1%eth0) are rejected: a zone index has no
    meaning in a DNS name.
    """
    try:
        ip = ipaddress.ip_address(ip_literal.strip())
    except (ValueError, AttributeError) as exc:
        raise InvalidAddressFormat(str(ip_literal)) from exc

    if isinstance(ip, ipaddress.IPv4Address):
        return reverse_ipv4(ip)
    if ip.scope_id:
        raise InvalidAddressFormat(ip_literal)
    return reverse_ipv6(ip)
