"""Tests for server authentication, reconciliation endpoints, and error handling."""

from __future__ import annotations

import functools

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from starlette import status as st_status

from porkbun_gateway.client import PorkbunClient
from porkbun_gateway.config import (
    API_KEY_ENV,
    SECRET_API_KEY_ENV,
    AuthConfig,
    Config,
    ConfigValidationError,
    HealthConfig,
    PorkbunConfig,
    ServerConfig,
)
from porkbun_gateway.exceptions import CredentialsError, SetupError
from porkbun_gateway.models import DEFAULT_NAMESERVERS
from porkbun_gateway.server import app, connect, lifespan


# Fixtures for config manipulation
@pytest.fixture
def client():
    """Create a test client."""
    return TestClient(app)


def _use_config(monkeypatch, config: Config) -> Config:
    monkeypatch.setattr("porkbun_gateway.server.get_config", lambda: config)
    monkeypatch.setattr("porkbun_gateway.server._config", config)
    return config


@pytest.fixture
def mock_config_auth_enabled(monkeypatch):
    """Mock config with auth enabled and a valid token."""
    config = Config()
    config.auth = AuthConfig(enabled=True, tokens=["valid-token"])
    config.health = HealthConfig(enabled=True)
    return _use_config(monkeypatch, config)


@pytest.fixture
def mock_config_auth_disabled(monkeypatch):
    """Mock config with auth disabled."""
    config = Config()
    config.auth = AuthConfig(enabled=False, tokens=[])
    config.health = HealthConfig(enabled=True)
    return _use_config(monkeypatch, config)


@pytest.fixture
def gateway(monkeypatch, porkbun_client, mock_config_auth_disabled):
    """Install the Porkbun API client backed by the in-memory API."""
    monkeypatch.setattr("porkbun_gateway.server._client", porkbun_client)
    return porkbun_client


def _install_handler(monkeypatch, handler) -> None:
    client = PorkbunClient("key", "secret", transport=httpx.MockTransport(handler))
    monkeypatch.setattr("porkbun_gateway.server._client", client)


RECORD_BODY = {
    "domain": "example.com",
    "name": "home",
    "type": "A",
    "content": "192.0.2.10",
}


class TestAuthMiddleware:
    """Tests for authentication middleware using Authorization header."""

    def test_missing_token_returns_401(self, client, mock_config_auth_enabled):
        """Test that missing Authorization header returns 401."""
        response = client.get("/records/example.com/1")

        assert response.status_code == st_status.HTTP_401_UNAUTHORIZED
        data = response.json()
        assert data["status"] == "error"
        assert data["code"] == st_status.HTTP_401_UNAUTHORIZED
        assert data["message"] == "Missing authentication token"

    def test_invalid_token_returns_403(self, client, mock_config_auth_enabled):
        """Test that invalid Bearer token returns 403."""
        response = client.get(
            "/records/example.com/1",
            headers={"Authorization": "Bearer invalid-token"},
        )

        assert response.status_code == st_status.HTTP_403_FORBIDDEN
        data = response.json()
        assert data["status"] == "error"
        assert data["message"] == "Invalid authentication token"

    def test_valid_token_passes_auth(
        self,
        client,
        monkeypatch,
        porkbun_client,
        mock_config_auth_enabled,
    ):
        """Test that valid Bearer token passes authentication."""
        monkeypatch.setattr("porkbun_gateway.server._client", porkbun_client)
        response = client.get(
            "/records/example.com/1",
            headers={"Authorization": "BEARER valid-token"},
        )

        assert response.status_code == st_status.HTTP_200_OK

    def test_auth_checked_before_body_validation(
        self,
        client,
        mock_config_auth_enabled,
    ):
        """Test that an unauthenticated request never reaches validation."""
        response = client.post("/records", json={})
        assert response.status_code == st_status.HTTP_401_UNAUTHORIZED


class TestRecordEndpoints:
    """Tests for the record lifecycle endpoints."""

    def test_create_and_read(self, client, gateway, fake_api):
        response = client.post("/records", json=RECORD_BODY)

        assert response.status_code == st_status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "success"
        assert data["action"] == "created"
        record = data["record"]
        assert record["id"] == "253866000"
        assert fake_api.records["example.com"]["253866000"]["name"] == "home.example.com"

        response = client.get(f"/records/example.com/{record['id']}")
        data = response.json()
        assert data["action"] == "read"
        assert data["record"] == {
            "id": "253866000",
            "domain": "example.com",
            "name": "home",
            "type": "A",
            "content": "192.0.2.10",
            "ttl": "600",
            "prio": "0",
            "notes": "",
        }

    def test_read_removed_record(self, client, gateway):
        response = client.get("/records/example.com/999")

        assert response.status_code == st_status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "success"
        assert data["action"] == "removed"
        assert "record" not in data

    def test_update(self, client, gateway, fake_api):
        record_id = fake_api.add_record("example.com", name="home.example.com")
        response = client.put(
            f"/records/example.com/{record_id}",
            json={**RECORD_BODY, "content": "192.0.2.20", "ttl": 1200},
        )

        assert response.status_code == st_status.HTTP_200_OK
        data = response.json()
        assert data["action"] == "updated"
        assert data["record"]["ttl"] == "1200"
        assert fake_api.records["example.com"][record_id]["content"] == "192.0.2.20"

    def test_update_domain_change_returns_400(self, client, gateway, fake_api):
        record_id = fake_api.add_record("example.com")
        response = client.put(
            f"/records/example.com/{record_id}",
            json={**RECORD_BODY, "domain": "example.org"},
        )

        assert response.status_code == st_status.HTTP_400_BAD_REQUEST
        assert response.json()["kind"] == "validation"
        assert fake_api.requests == []

    def test_delete(self, client, gateway, fake_api):
        record_id = fake_api.add_record("example.com")
        response = client.delete(f"/records/example.com/{record_id}")

        assert response.status_code == st_status.HTTP_200_OK
        assert response.json()["action"] == "deleted"
        assert fake_api.records["example.com"] == {}

    def test_import(self, client, gateway, fake_api):
        record_id = fake_api.add_record(
            "example.com",
            name="_dmarc.example.com",
            type="TXT",
            content="v=DMARC1; p=none",
        )
        response = client.post("/records/import", json={"id": f"example.com/{record_id}"})

        assert response.status_code == st_status.HTTP_200_OK
        data = response.json()
        assert data["action"] == "imported"
        assert data["record"]["name"] == "_dmarc"

    def test_import_malformed_id(self, client, gateway, fake_api):
        response = client.post("/records/import", json={"id": "example.com"})

        assert response.status_code == st_status.HTTP_400_BAD_REQUEST
        data = response.json()
        assert data["kind"] == "validation"
        assert "domain/record_id" in data["message"]
        assert fake_api.requests == []

    def test_import_missing_record(self, client, gateway):
        response = client.post("/records/import", json={"id": "example.com/999"})
        assert response.status_code == st_status.HTTP_404_NOT_FOUND
        assert response.json()["kind"] == "not_found"

    def test_lookup(self, client, gateway, fake_api):
        record_id = fake_api.add_record("example.com", name="www.example.com")
        response = client.get(f"/lookup/records/example.com/{record_id}")
        assert response.status_code == st_status.HTTP_200_OK
        assert response.json()["record"]["name"] == "www"

    def test_lookup_missing_record(self, client, gateway):
        response = client.get("/lookup/records/example.com/999")
        assert response.status_code == st_status.HTTP_404_NOT_FOUND
        assert response.json()["kind"] == "not_found"


class TestNameserverEndpoints:
    """Tests for the nameserver endpoints."""

    def test_create(self, client, gateway, fake_api):
        response = client.post(
            "/nameservers/example.com",
            json={"nameservers": ["b.ns.example.net", "a.ns.example.net"]},
        )

        assert response.status_code == st_status.HTTP_200_OK
        data = response.json()
        assert data["action"] == "created"
        assert data["nameservers"] == {
            "domain": "example.com",
            "nameservers": ["a.ns.example.net", "b.ns.example.net"],
        }
        assert fake_api.nameservers["example.com"] == [
            "a.ns.example.net",
            "b.ns.example.net",
        ]

    def test_update_and_read(self, client, gateway):
        client.put(
            "/nameservers/example.com",
            json={"nameservers": ["ns1.example.net", "ns2.example.net"]},
        )
        response = client.get("/nameservers/example.com")

        data = response.json()
        assert data["action"] == "read"
        assert data["nameservers"]["nameservers"] == ["ns1.example.net", "ns2.example.net"]

    def test_delete_resets_defaults(self, client, gateway, fake_api):
        response = client.delete("/nameservers/example.com")

        assert response.status_code == st_status.HTTP_200_OK
        assert response.json()["action"] == "reset"
        assert fake_api.nameservers["example.com"] == list(DEFAULT_NAMESERVERS)

    def test_import(self, client, gateway, fake_api):
        fake_api.nameservers["example.com"] = ["ns1.example.net"]
        response = client.post("/nameservers/import", json={"id": "example.com"})

        assert response.status_code == st_status.HTTP_200_OK
        assert response.json()["action"] == "imported"


class TestErrorMapping:
    """Tests for failure kind to HTTP status mapping."""

    def test_api_error_returns_502(self, client, monkeypatch, fake_api, mock_config_auth_disabled):
        client_with_bad_keys = PorkbunClient(
            "pk1_wrong",
            "sk1_wrong",
            transport=httpx.MockTransport(fake_api.handler),
        )
        monkeypatch.setattr("porkbun_gateway.server._client", client_with_bad_keys)
        response = client.post("/records", json=RECORD_BODY)

        assert response.status_code == st_status.HTTP_502_BAD_GATEWAY
        data = response.json()
        assert data["kind"] == "api"
        assert data["message"] == "Unable to create DNS record: Invalid API key. (002)"

    def test_transport_error_returns_502(self, client, monkeypatch, mock_config_auth_disabled):
        _install_handler(monkeypatch, lambda request: httpx.Response(500, text="oops"))
        response = client.delete("/records/example.com/1")

        assert response.status_code == st_status.HTTP_502_BAD_GATEWAY
        assert response.json()["kind"] == "transport"

    def test_read_transport_error_is_not_removed(
        self,
        client,
        monkeypatch,
        mock_config_auth_disabled,
    ):
        _install_handler(monkeypatch, lambda request: httpx.Response(503, text="busy"))
        response = client.get("/records/example.com/1")

        assert response.status_code == st_status.HTTP_502_BAD_GATEWAY
        assert response.json()["status"] == "error"

    @pytest.mark.parametrize("path", ["/records/example.com/1", "/lookup/records/example.com/1"])
    @pytest.mark.parametrize("entry", ["1", None, {"id": "1", "name": 42}])
    def test_malformed_record_returns_502(
        self,
        client,
        monkeypatch,
        mock_config_auth_disabled,
        path,
        entry,
    ):
        _install_handler(
            monkeypatch,
            lambda request: httpx.Response(200, json={"status": "SUCCESS", "records": [entry]}),
        )
        response = client.get(path)

        assert response.status_code == st_status.HTTP_502_BAD_GATEWAY
        assert response.json()["kind"] == "transport"

    def test_timeout_returns_504(self, client, monkeypatch, mock_config_auth_disabled):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        _install_handler(monkeypatch, handler)
        response = client.get("/nameservers/example.com")

        assert response.status_code == st_status.HTTP_504_GATEWAY_TIMEOUT
        assert response.json()["kind"] == "timeout"

    def test_missing_client_returns_503(self, client, monkeypatch, mock_config_auth_disabled):
        monkeypatch.setattr("porkbun_gateway.server._client", None)
        response = client.get("/nameservers/example.com")

        assert response.status_code == st_status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.json()["kind"] == "setup"


class TestValidationErrorHandler:
    """Tests for validation error handling."""

    def test_unknown_record_type_returns_422(self, client, gateway, fake_api):
        """Test that an unsupported type is rejected before any remote call."""
        response = client.post("/records", json={**RECORD_BODY, "type": "BOGUS"})

        assert response.status_code == st_status.HTTP_422_UNPROCESSABLE_CONTENT
        data = response.json()
        assert data["status"] == "error"
        assert data["kind"] == "validation"
        assert "Invalid fields" in data["message"]
        assert "type" in data["message"]
        assert fake_api.requests == []

    def test_missing_fields_returns_422(self, client, gateway):
        """Test that missing fields are listed in the message."""
        response = client.post("/records", json={"domain": "example.com"})

        assert response.status_code == st_status.HTTP_422_UNPROCESSABLE_CONTENT
        message = response.json()["message"]
        assert "Missing required fields" in message
        assert "type" in message
        assert "content" in message


class TestConnect:
    """Tests for client setup at startup."""

    pytestmark = pytest.mark.anyio

    async def test_connect_pings(self, monkeypatch, fake_api):
        monkeypatch.setattr(
            "porkbun_gateway.server.PorkbunClient",
            functools.partial(PorkbunClient, transport=httpx.MockTransport(fake_api.handler)),
        )
        config = Config(
            porkbun=PorkbunConfig(
                api_key=fake_api.api_key,
                secret_api_key=fake_api.secret_api_key,
            ),
        )
        client = await connect(config)

        assert isinstance(client, PorkbunClient)
        assert fake_api.paths() == ["/ping"]

    async def test_connect_rejected_credentials(self, monkeypatch, fake_api):
        monkeypatch.setattr(
            "porkbun_gateway.server.PorkbunClient",
            functools.partial(PorkbunClient, transport=httpx.MockTransport(fake_api.handler)),
        )
        config = Config(
            porkbun=PorkbunConfig(api_key="pk1_wrong", secret_api_key="sk1_wrong"),
        )
        with pytest.raises(SetupError) as exc_info:
            await connect(config)
        assert exc_info.value.message == (
            "Unable to create Porkbun API client: Invalid API key. (002)"
        )

    async def test_connect_missing_credentials(self, monkeypatch):
        monkeypatch.delenv(API_KEY_ENV, raising=False)
        monkeypatch.delenv(SECRET_API_KEY_ENV, raising=False)
        with pytest.raises(CredentialsError) as exc_info:
            await connect(Config())
        assert exc_info.value.missing == ["api_key", "secret_api_key"]

    async def test_lifespan_aborts_on_setup_error(self, monkeypatch):
        monkeypatch.delenv(API_KEY_ENV, raising=False)
        monkeypatch.delenv(SECRET_API_KEY_ENV, raising=False)
        monkeypatch.setattr("porkbun_gateway.server._config", Config())
        monkeypatch.setattr("porkbun_gateway.server._client", None)

        with pytest.raises(SetupError):
            async with lifespan(FastAPI()):
                pass

    async def test_lifespan_aborts_on_bad_config_file(self, monkeypatch, tmp_path):
        missing = tmp_path / "absent.toml"
        monkeypatch.setattr("sys.argv", ["porkbun-gateway", "--config", str(missing)])
        monkeypatch.setattr("porkbun_gateway.server._config", None)
        monkeypatch.setattr("porkbun_gateway.server._client", None)

        with pytest.raises(ConfigValidationError, match="not found"):
            async with lifespan(FastAPI()):
                pass


class TestHealthEndpoint:
    """Tests for health check endpoint.

    Since the /health route is dynamically registered based on config during
    lifespan startup, each test needs to create a fresh FastAPI app instance
    with the lifespan context manager to ensure the route is registered.
    """

    def test_health_bypasses_auth(self, monkeypatch, porkbun_client):
        """Test that health endpoint bypasses authentication."""
        config = Config()
        config.server = ServerConfig()
        config.health = HealthConfig(enabled=True)
        config.auth = AuthConfig(enabled=True, tokens=["valid-token"])

        # Set the config and client before creating the app
        monkeypatch.setattr("porkbun_gateway.server._config", config)
        monkeypatch.setattr("porkbun_gateway.server._client", porkbun_client)

        test_app = FastAPI(lifespan=lifespan)

        # Use context manager to ensure lifespan events are triggered
        with TestClient(test_app) as test_client:
            response = test_client.get("/health")

            assert response.status_code == st_status.HTTP_200_OK
            assert response.json() == {"status": "ok"}

    def test_health_disabled_returns_404(self, monkeypatch, porkbun_client):
        """Test that disabled health endpoint returns 404."""
        config = Config()
        config.server = ServerConfig()
        config.health = HealthConfig(enabled=False)
        config.auth = AuthConfig(enabled=False, tokens=[])

        monkeypatch.setattr("porkbun_gateway.server._config", config)
        monkeypatch.setattr("porkbun_gateway.server._client", porkbun_client)

        test_app = FastAPI(lifespan=lifespan)

        with TestClient(test_app) as test_client:
            response = test_client.get("/health")

            assert response.status_code == st_status.HTTP_404_NOT_FOUND
