#!/usr/bin/env python3
"""
ipguard -- Check IP addresses against public DNS blackhole lists.

Usage:
  python main.py 203.0.113.7
  python main.py 203.0.113.7 2001:db8::1
  python main.py --file ips.txt
  python main.py 203.0.113.7 --json
  python main.py 203.0.113.7 --timeout 2

Exit status:
  0  every list answered and no address is listed
  1  at least one address is listed
  2  no valid address was given
  3  nothing is listed but at least one list timed out or failed, so the
     result is indeterminate rather than clean

Environment variables:
  DNS_NAMESERVERS   JSON list of resolvers to query, e.g. '["1.1.1.1"]'.
                    Defaults to the system resolver configuration.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

from api.models import ListCheck
from core.blacklist import check_all, make_resolver
from core.config import get_settings
from core.errors import InvalidAddressFormat
from core.models import DEFAULT_BLACKLISTS, AggregateResult


def _load_file(path: str) -> list[str]:
    """Read addresses from a file -- one per line, # comments and blank lines ignored."""
    file_path = Path(path).resolve()
    if not file_path.is_file():
        print(f"  [!] '{path}' is not a readable file.", file=sys.stderr)
        return []
    try:
        lines = file_path.read_text().splitlines()
    except OSError as e:
        print(f"  [!] Could not read file '{path}': {e}", file=sys.stderr)
        return []
    return [line.strip() for line in lines if line.strip() and not line.strip().startswith("#")]


def _status(listed: bool, error: bool) -> str:
    if error:
        return "ERROR"
    return "LISTED" if listed else "clean"


def format_terminal(ip: str, result: AggregateResult) -> str:
    lines = [f"{ip}  ({result.listed_count}/{result.total} listed)"]
    for o in result.outcomes:
        lines.append(f"  {o.list_name:<12} {_status(o.is_listed, o.is_error):<7} {o.description}")
    return "\n".join(lines)


async def _check_many(ips: list[str], timeout: float, nameservers: Optional[list[str]]) -> dict:
    resolver = make_resolver(nameservers, timeout=timeout)
    results: dict[str, Optional[AggregateResult]] = {}
    for ip in ips:
        try:
            results[ip] = await check_all(ip, DEFAULT_BLACKLISTS, resolver=resolver, timeout=timeout)
        except InvalidAddressFormat:
            print(f"  [!] '{ip}' is not a valid IPv4 or IPv6 address.", file=sys.stderr)
            results[ip] = None
    return results


def main(argv: Optional[list[str]] = None) -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        prog="ipguard",
        description="Check IP addresses against public DNS blackhole lists.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py 203.0.113.7
  python main.py --file ips.txt --json
        """,
    )
    parser.add_argument("ips", nargs="*", metavar="IP", help="One or more IPv4/IPv6 addresses")
    parser.add_argument(
        "--file",
        metavar="PATH",
        help="Path to a text file with one address per line (# comments supported)",
    )
    parser.add_argument("--json", action="store_true", help="Output structured JSON")
    parser.add_argument(
        "--timeout",
        type=float,
        default=settings.dns_timeout_seconds,
        metavar="SECONDS",
        help=f"Per-list DNS timeout (default: {settings.dns_timeout_seconds:g})",
    )
    args = parser.parse_args(argv)
    if args.timeout <= 0:
        parser.error("--timeout must be greater than zero")

    ips = list(args.ips)
    if args.file:
        ips.extend(_load_file(args.file))
    # Deduplicate, preserving order
    ips = list(dict.fromkeys(ips))
    if not ips:
        parser.print_usage(sys.stderr)
        return 2

    results = asyncio.run(_check_many(ips, args.timeout, settings.dns_nameservers or None))
    checked = {ip: r for ip, r in results.items() if r is not None}
    if not checked:
        return 2

    if args.json:
        payload = {
            ip: {
                "checks": [ListCheck.from_outcome(o).model_dump() for o in r.outcomes],
                "listedCount": r.listed_count,
                "total": r.total,
            }
            for ip, r in checked.items()
        }
        print(json.dumps(payload, indent=2))
    else:
        print("\n\n".join(format_terminal(ip, r) for ip, r in checked.items()))

    if any(r.listed_count for r in checked.values()):
        return 1
    if any(r.error_count for r in checked.values()):
        return 3
    return 0


if __name__ == "__main__":
    sys.exit(main())
