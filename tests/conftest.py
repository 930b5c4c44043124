"""Shared fixtures: an in-memory Porkbun API behind httpx.MockTransport."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import httpx
import pytest

from porkbun_gateway.client import PorkbunClient

if TYPE_CHECKING:
    from typing import Any


TEST_API_KEY = "pk1_0123456789abcdef"
TEST_SECRET_API_KEY = "sk1_fedcba9876543210"


class FakePorkbun:
    """
    In-memory stand-in for the Porkbun JSON API.

    Records every request (path and decoded body) so tests can assert on
    what went over the wire.
    """

    def __init__(
        self,
        api_key: str = TEST_API_KEY,
        secret_api_key: str = TEST_SECRET_API_KEY,
    ) -> None:
        self.api_key = api_key
        self.secret_api_key = secret_api_key
        self.records: dict[str, dict[str, dict[str, Any]]] = {}
        self.nameservers: dict[str, list[str]] = {}
        self.requests: list[tuple[str, dict[str, Any]]] = []
        self.next_id = 253866000

    def paths(self) -> list[str]:
        return [path for path, _ in self.requests]

    def add_record(self, domain: str, **fields: Any) -> str:
        record_id = str(self.next_id)
        self.next_id += 1
        self.records.setdefault(domain, {})[record_id] = {
            "id": record_id,
            "name": fields.get("name", domain),
            "type": fields.get("type", "A"),
            "content": fields.get("content", "192.0.2.1"),
            "ttl": fields.get("ttl", "600"),
            "prio": fields.get("prio", "0"),
            "notes": fields.get("notes", ""),
        }
        return record_id

    @staticmethod
    def _ok(**fields: Any) -> httpx.Response:
        return httpx.Response(200, json={"status": "SUCCESS", **fields})

    @staticmethod
    def _error(message: str) -> httpx.Response:
        return httpx.Response(200, json={"status": "ERROR", "message": message})

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        path = request.url.path.removeprefix("/api/json/v3")
        self.requests.append((path, body))

        if (
            body.get("apikey") != self.api_key
            or body.get("secretapikey") != self.secret_api_key
        ):
            return self._error("Invalid API key. (002)")

        parts = path.strip("/").split("/")
        match parts:
            case ["ping"]:
                return self._ok(yourIp="198.51.100.7")
            case ["dns", "create", domain]:
                fragment = body.get("name", "")
                record_id = self.add_record(
                    domain,
                    name=f"{fragment}.{domain}" if fragment else domain,
                    type=body["type"],
                    content=body["content"],
                    ttl=body.get("ttl", "600"),
                    prio=body.get("prio", "0"),
                    notes=body.get("notes", ""),
                )
                return self._ok(id=int(record_id))
            case ["dns", "retrieve", domain, record_id]:
                record = self.records.get(domain, {}).get(record_id)
                return self._ok(records=[dict(record)] if record else [])
            case ["dns", "edit", domain, record_id]:
                record = self.records.get(domain, {}).get(record_id)
                if record is None:
                    return self._error("Edit error: We were unable to edit the DNS record.")
                fragment = body.get("name", "")
                record.update(
                    name=f"{fragment}.{domain}" if fragment else domain,
                    type=body["type"],
                    content=body["content"],
                    ttl=body.get("ttl", "600"),
                    prio=body.get("prio", "0"),
                    notes=body.get("notes", ""),
                )
                return self._ok()
            case ["dns", "delete", domain, record_id]:
                if self.records.get(domain, {}).pop(record_id, None) is None:
                    return self._error("Delete error: Invalid record ID.")
                return self._ok()
            case ["domain", "getNs", domain]:
                return self._ok(ns=list(self.nameservers.get(domain, [])))
            case ["domain", "updateNs", domain]:
                self.nameservers[domain] = list(body["ns"])
                return self._ok()
        return httpx.Response(404, text="Not Found")


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def domain() -> str:
    """Domain under test, passed explicitly instead of read from the environment."""
    return "example.com"


@pytest.fixture
def fake_api() -> FakePorkbun:
    return FakePorkbun()


@pytest.fixture
def porkbun_client(fake_api: FakePorkbun) -> PorkbunClient:
    return PorkbunClient(
        TEST_API_KEY,
        TEST_SECRET_API_KEY,
        transport=httpx.MockTransport(fake_api.handler),
    )
