"""
tests/test_blacklist_route.py -- Integration tests for GET /blacklist.

These tests exercise the full stack: routing -> rate-limit dependency ->
AdmissionController -> encoder -> concurrent probes (fake resolver) ->
response model serialization -> exception handlers.

Fixtures used (from conftest.py):
  - api_client: (client, resolver) -- fresh app state per test
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from tests.fakes import FakeResolver

RATE_HEADERS = ("X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset")


class TestBlacklistHappyPath:
    def test_all_lists_clean(self, api_client: tuple[TestClient, FakeResolver]) -> None:
        client, _ = api_client
        resp = client.get("/blacklist", params={"ip": "1.2.3.4"})
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert data["total"] == 4
        assert data["listedCount"] == 0
        assert [c["name"] for c in data["checks"]] == ["SpamCop", "SORBS", "Barracuda", "UCEPROTECT"]
        for check in data["checks"]:
            assert check["listed"] is False
            assert check["error"] is False
            assert check["desc"]

    def test_listed_and_error_entries(self, api_client: tuple[TestClient, FakeResolver]) -> None:
        client, resolver = api_client
        resolver.behaviours.update({"bl.spamcop.net": "listed", "dnsbl.sorbs.net": RuntimeError("servfail")})
        data = client.get("/blacklist", params={"ip": "1.2.3.4"}).json()
        assert data["listedCount"] == 1
        assert data["checks"][0] == {"name": "SpamCop", "desc": "Known spam sources", "listed": True, "error": False}
        assert data["checks"][1]["listed"] is False
        assert data["checks"][1]["error"] is True

    def test_ipv6_accepted(self, api_client: tuple[TestClient, FakeResolver]) -> None:
        client, resolver = api_client
        resp = client.get("/blacklist", params={"ip": "2001:db8::1"})
        assert resp.status_code == 200
        assert all(len(q.split(".")) > 32 for q in resolver.queries)

    def test_rate_limit_headers_on_success(self, api_client: tuple[TestClient, FakeResolver]) -> None:
        client, _ = api_client
        resp = client.get("/blacklist", params={"ip": "1.2.3.4"})
        assert resp.headers["X-RateLimit-Limit"] == "20"
        assert resp.headers["X-RateLimit-Remaining"] == "19"
        assert resp.headers["X-RateLimit-Reset"] == "60"


class TestBlacklistBadInput:
    def test_missing_ip(self, api_client: tuple[TestClient, FakeResolver]) -> None:
        client, _ = api_client
        resp = client.get("/blacklist")
        assert resp.status_code == 400
        assert resp.json() == {"error": "IP address is required"}
        for header in RATE_HEADERS:
            assert header in resp.headers

    def test_blank_ip(self, api_client: tuple[TestClient, FakeResolver]) -> None:
        client, _ = api_client
        resp = client.get("/blacklist", params={"ip": "   "})
        assert resp.status_code == 400
        assert resp.json() == {"error": "IP address is required"}

    def test_invalid_ip(self, api_client: tuple[TestClient, FakeResolver]) -> None:
        client, resolver = api_client
        resp = client.get("/blacklist", params={"ip": "not-an-ip"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid IP address format"}
        assert resp.headers["X-RateLimit-Remaining"] == "19"
        assert resolver.queries == []


class TestBlacklistRateLimit:
    def test_twenty_first_request_rejected(self, api_client: tuple[TestClient, FakeResolver]) -> None:
        client, _ = api_client
        for expected_remaining in range(19, -1, -1):
            resp = client.get("/blacklist", params={"ip": "1.2.3.4"})
            assert resp.status_code == 200
            assert resp.headers["X-RateLimit-Remaining"] == str(expected_remaining)

        resp = client.get("/blacklist", params={"ip": "1.2.3.4"})
        assert resp.status_code == 429
        reset = resp.headers["X-RateLimit-Reset"]
        assert resp.json() == {"error": f"Too many requests. Please wait {reset} seconds before trying again."}
        assert resp.headers["X-RateLimit-Remaining"] == "0"
        assert resp.headers["X-RateLimit-Limit"] == "20"
        assert resp.headers["Retry-After"] == reset

    def test_rate_limit_checked_before_ip_validation(self, api_client: tuple[TestClient, FakeResolver]) -> None:
        client, _ = api_client
        for _ in range(20):
            client.get("/blacklist")
        assert client.get("/blacklist").status_code == 429

    def test_clients_limited_independently(self, api_client: tuple[TestClient, FakeResolver]) -> None:
        client, _ = api_client
        first = {"X-Forwarded-For": "203.0.113.7"}
        for _ in range(20):
            client.get("/blacklist", params={"ip": "1.2.3.4"}, headers=first)
        assert client.get("/blacklist", params={"ip": "1.2.3.4"}, headers=first).status_code == 429

        other = client.get("/blacklist", params={"ip": "1.2.3.4"}, headers={"X-Forwarded-For": "198.51.100.9"})
        assert other.status_code == 200
        assert other.headers["X-RateLimit-Remaining"] == "19"

    def test_forwarded_chain_keyed_on_originating_client(self, api_client: tuple[TestClient, FakeResolver]) -> None:
        client, _ = api_client
        client.get("/blacklist", params={"ip": "1.2.3.4"}, headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})
        resp = client.get("/blacklist", params={"ip": "1.2.3.4"}, headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.2"})
        assert resp.headers["X-RateLimit-Remaining"] == "18"


class TestMethodsAndRouting:
    def test_post_not_allowed(self, api_client: tuple[TestClient, FakeResolver]) -> None:
        client, _ = api_client
        resp = client.post("/blacklist", params={"ip": "1.2.3.4"})
        assert resp.status_code == 405
        assert resp.json() == {"error": "Method not allowed"}

    def test_delete_not_allowed(self, api_client: tuple[TestClient, FakeResolver]) -> None:
        client, _ = api_client
        resp = client.delete("/blacklist")
        assert resp.status_code == 405
        assert "error" in resp.json()

    def test_unknown_path(self, api_client: tuple[TestClient, FakeResolver]) -> None:
        client, _ = api_client
        resp = client.get("/nope")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Not found"}
