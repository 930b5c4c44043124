"""
FastAPI server for Porkbun DNS Gateway.

This module exposes the record and nameserver reconcilers over HTTP so an
orchestration host can drive create/read/update/delete/import operations.
Requests are optionally protected by bearer tokens.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status as st_status
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from porkbun_gateway.client import PorkbunClient
from porkbun_gateway.config import (
    Config,
    ConfigValidationError,
    load_config,
    resolve_credentials,
)
from porkbun_gateway.exceptions import GatewayError, PorkbunError, SetupError
from porkbun_gateway.models import ErrorKind, NameServerSpec, RecordSpec
from porkbun_gateway.reconcilers.nameservers import PorkbunNameServerReconciler
from porkbun_gateway.reconcilers.records import PorkbunRecordReconciler
from porkbun_gateway.responses import ImportRequest, ReconcileResponse

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator
    from typing import Final

    from porkbun_gateway.reconcilers.base import ReconcileResult


logger = logging.getLogger(__name__)

# Global config and API client (set during startup)
_config: Config | None = None
_client: PorkbunClient | None = None

# HTTP status code reported for each failure kind
STATUS_BY_KIND: Final[dict[ErrorKind, int]] = {
    ErrorKind.SETUP: st_status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.VALIDATION: st_status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: st_status.HTTP_404_NOT_FOUND,
    ErrorKind.API: st_status.HTTP_502_BAD_GATEWAY,
    ErrorKind.TRANSPORT: st_status.HTTP_502_BAD_GATEWAY,
    ErrorKind.TIMEOUT: st_status.HTTP_504_GATEWAY_TIMEOUT,
}


def get_config() -> Config:
    """Get the current configuration."""
    if _config is None:
        msg = "Configuration not loaded"
        raise RuntimeError(msg)
    return _config


def set_preloaded_config(config: Config) -> None:
    """
    Inject a pre-loaded configuration into the server module.

    This allows the CLI entry point to pass the parsed configuration to the
    server instance, avoiding the need to re-parse command-line arguments
    during application startup (e.g. in the lifespan handler).

    Parameters
    ----------
    config : Config
        The configuration object to set.
    """
    global _config  # noqa: PLW0603
    _config = config


def get_client() -> PorkbunClient:
    """
    Get the Porkbun API client created at startup.

    Raises
    ------
    SetupError
        If the client has not been set up.
    """
    if _client is None:
        msg = "Porkbun API client is not configured"
        raise SetupError(msg)
    return _client


async def connect(config: Config) -> PorkbunClient:
    """
    Create the Porkbun API client and validate its credentials.

    Parameters
    ----------
    config : Config
        Application configuration.

    Returns
    -------
    PorkbunClient
        A client whose credentials were accepted by the API.

    Raises
    ------
    SetupError
        If credentials are missing or the ping fails.
    """
    api_key, secret_api_key = resolve_credentials(config.porkbun)
    client = PorkbunClient(
        api_key,
        secret_api_key,
        base_url=config.porkbun.base_url,
        timeout=config.porkbun.timeout,
    )

    try:
        await client.ping()
    except GatewayError as e:
        msg = f"Unable to create Porkbun API client: {e.message}"
        raise SetupError(msg) from e

    logger.info('Porkbun API credentials verified against "%s".', client.base_url)
    return client


class AuthMiddleware(BaseHTTPMiddleware):
    """
    Middleware for bearer token authentication.

    Every path except /health requires a valid token when authentication is
    enabled: 401 if the token is missing, 403 if it is invalid.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process the request through authentication."""
        if request.url.path == "/health":
            return await call_next(request)

        # Config may not be loaded during startup
        try:
            config = get_config()
        except RuntimeError:
            return await call_next(request)

        # Skip auth check if disabled
        if not config.auth.enabled:
            return await call_next(request)

        # Extract Bearer token from Authorization header
        auth_header = request.headers.get("authorization", "")
        server_token: str | None = None
        if auth_header.lower().startswith("bearer "):
            server_token = auth_header[7:].strip()

        # Validate token
        if not server_token:
            return JSONResponse(
                status_code=st_status.HTTP_401_UNAUTHORIZED,
                content={
                    "status": "error",
                    "code": st_status.HTTP_401_UNAUTHORIZED,
                    "message": "Missing authentication token",
                },
            )
        if server_token not in config.auth.tokens:
            return JSONResponse(
                status_code=st_status.HTTP_403_FORBIDDEN,
                content={
                    "status": "error",
                    "code": st_status.HTTP_403_FORBIDDEN,
                    "message": "Invalid authentication token",
                },
            )

        return await call_next(request)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    global _config, _client  # noqa: PLW0603

    # If config was not set by CLI (e.g., running via uvicorn directly),
    # load it here
    if _config is None:
        try:
            _config = load_config()
        except ConfigValidationError as e:
            logger.critical("%s", e)
            raise

    # Credentials and the ping are checked once; failure aborts startup.
    if _client is None:
        try:
            _client = await connect(_config)
        except SetupError as e:
            logger.critical("%s", e.message)
            raise

    # Dynamically register "/health"  endpoint (GET method) if enabled
    if _config.health.enabled:
        _app.add_api_route("/health", health, methods=["GET"])

    logger.info(
        'Porkbun DNS Gateway starting on "%s:%d".',
        _config.server.host,
        _config.server.port,
    )

    yield

    logger.info("Porkbun DNS Gateway shutting down.")


app = FastAPI(
    title="Porkbun DNS Gateway",
    description="Reconcile DNS records and domain name servers on Porkbun",
    version="0.1.0",
    lifespan=lifespan,
)

# Add middleware for authentication
app.add_middleware(AuthMiddleware)


@app.exception_handler(HTTPException)
async def http_exception_handler(_request: Request, exc: HTTPException) -> Response:
    """
    Handle HTTP exceptions with consistent JSON responses.

    Convert FastAPI's default {"detail": "..."} format to the unified
    API response format {"status": "error", "code": ..., "message": "..."}.
    """
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "status": "error",
            "code": exc.status_code,
            "message": exc.detail,
        },
    )


@app.exception_handler(PorkbunError)
async def porkbun_exception_handler(_request: Request, exc: PorkbunError) -> Response:
    """Handle classified errors raised outside of the reconcilers."""
    code = STATUS_BY_KIND[exc.kind]
    response = ReconcileResponse.error(code=code, message=exc.message, kind=exc.kind)
    return JSONResponse(
        content=response.model_dump(mode="json", exclude_none=True),
        status_code=code,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    _request: Request,
    exc: RequestValidationError,
) -> Response:
    """
    Handle validation errors with consistent JSON responses.

    Convert FastAPI's validation error format to the unified API response format,
    listing all missing or invalid fields in the message.
    """
    errors = exc.errors()
    missing_fields: list[str] = []
    invalid_fields: list[str] = []

    for error in errors:
        field_path = ".".join(
            str(loc) for loc in error["loc"] if loc not in {"body", "path"}
        )
        if error["type"] == "missing":
            missing_fields.append(field_path)
        else:
            invalid_fields.append(f"{field_path}: {error['msg']}")

    # Build message
    messages: list[str] = []
    if missing_fields:
        messages.append(f"Missing required fields: {', '.join(missing_fields)}")
    if invalid_fields:
        messages.append(f"Invalid fields: {'; '.join(invalid_fields)}")

    message = ". ".join(messages) if messages else "Validation error"

    return JSONResponse(
        status_code=st_status.HTTP_422_UNPROCESSABLE_CONTENT,
        content={
            "status": "error",
            "code": st_status.HTTP_422_UNPROCESSABLE_CONTENT,
            "message": message,
            "kind": ErrorKind.VALIDATION.value,
        },
    )


def build_response(
    operation: str,
    result: ReconcileResult,
    start_time: float,
) -> Response:
    """
    Convert a reconciliation result into the unified JSON response.

    Parameters
    ----------
    operation : str
        Operation label for logging (e.g., "record.create").
    result : ReconcileResult
        The reconciliation result.
    start_time : float
        Monotonic time the request started at.

    Returns
    -------
    Response
        The JSON response to send to the host.
    """
    duration = time.monotonic() - start_time

    if result.success:
        logger.info(
            "[response] %s status=success action=%s duration=%.2fs",
            operation,
            result.action,
            duration,
        )
        response = ReconcileResponse.success(
            message=result.message,
            action=result.action or operation,
            record=result.record,
            nameservers=result.nameservers,
        )
    else:
        logger.warning(
            "[response] %s status=error kind=%s message=%s duration=%.2fs",
            operation,
            result.kind,
            result.message,
            duration,
        )
        code = (
            STATUS_BY_KIND[result.kind]
            if result.kind is not None
            else st_status.HTTP_400_BAD_REQUEST
        )
        response = ReconcileResponse.error(
            code=code,
            message=result.message,
            kind=result.kind,
        )

    return JSONResponse(
        content=response.model_dump(mode="json", exclude_none=True),
        status_code=response.code,
    )


@app.post("/records")
async def create_record(spec: RecordSpec) -> Response:
    """Create a DNS record; the response carries the id assigned by Porkbun."""
    start_time = time.monotonic()
    logger.info(
        "[request] record.create domain=%s name=%s type=%s",
        spec.domain,
        spec.name,
        spec.record_type,
    )
    result = await PorkbunRecordReconciler(get_client()).create(spec)
    return build_response("record.create", result, start_time)


@app.post("/records/import")
async def import_record(body: ImportRequest) -> Response:
    """Import an existing DNS record from a ``"<domain>/<record-id>"`` id."""
    start_time = time.monotonic()
    logger.info("[request] record.import id=%s", body.id)
    result = await PorkbunRecordReconciler(get_client()).import_state(body.id)
    return build_response("record.import", result, start_time)


@app.get("/records/{domain}/{record_id}")
async def read_record(domain: str, record_id: str) -> Response:
    """
    Refresh a DNS record.

    A record deleted outside of the gateway is reported with the "removed"
    action (HTTP 200) so the host can drop it from its state.
    """
    start_time = time.monotonic()
    logger.info("[request] record.read domain=%s id=%s", domain, record_id)
    result = await PorkbunRecordReconciler(get_client()).read(domain, record_id)
    return build_response("record.read", result, start_time)


@app.put("/records/{domain}/{record_id}")
async def update_record(domain: str, record_id: str, spec: RecordSpec) -> Response:
    """Edit a DNS record in place."""
    start_time = time.monotonic()
    logger.info(
        "[request] record.update domain=%s id=%s name=%s type=%s",
        domain,
        record_id,
        spec.name,
        spec.record_type,
    )
    result = await PorkbunRecordReconciler(get_client()).update(domain, record_id, spec)
    return build_response("record.update", result, start_time)


@app.delete("/records/{domain}/{record_id}")
async def delete_record(domain: str, record_id: str) -> Response:
    """Delete a DNS record."""
    start_time = time.monotonic()
    logger.info("[request] record.delete domain=%s id=%s", domain, record_id)
    result = await PorkbunRecordReconciler(get_client()).delete(domain, record_id)
    return build_response("record.delete", result, start_time)


@app.get("/lookup/records/{domain}/{record_id}")
async def lookup_record(domain: str, record_id: str) -> Response:
    """Fetch a DNS record read-only; a missing record is a 404 error."""
    start_time = time.monotonic()
    logger.info("[request] record.lookup domain=%s id=%s", domain, record_id)
    result = await PorkbunRecordReconciler(get_client()).lookup(domain, record_id)
    return build_response("record.lookup", result, start_time)


@app.post("/nameservers/import")
async def import_nameservers(body: ImportRequest) -> Response:
    """Import the name servers of the domain named by the import id."""
    start_time = time.monotonic()
    logger.info("[request] nameservers.import id=%s", body.id)
    result = await PorkbunNameServerReconciler(get_client()).import_state(body.id)
    return build_response("nameservers.import", result, start_time)


@app.post("/nameservers/{domain}")
async def create_nameservers(domain: str, spec: NameServerSpec) -> Response:
    """Start managing the name servers of a domain."""
    start_time = time.monotonic()
    logger.info("[request] nameservers.create domain=%s", domain)
    result = await PorkbunNameServerReconciler(get_client()).create(
        domain,
        spec.nameservers,
    )
    return build_response("nameservers.create", result, start_time)


@app.put("/nameservers/{domain}")
async def update_nameservers(domain: str, spec: NameServerSpec) -> Response:
    """Replace the name servers of a domain."""
    start_time = time.monotonic()
    logger.info("[request] nameservers.update domain=%s", domain)
    result = await PorkbunNameServerReconciler(get_client()).update(
        domain,
        spec.nameservers,
    )
    return build_response("nameservers.update", result, start_time)


@app.get("/nameservers/{domain}")
async def read_nameservers(domain: str) -> Response:
    """Read the name servers of a domain."""
    start_time = time.monotonic()
    logger.info("[request] nameservers.read domain=%s", domain)
    result = await PorkbunNameServerReconciler(get_client()).read(domain)
    return build_response("nameservers.read", result, start_time)


@app.delete("/nameservers/{domain}")
async def delete_nameservers(domain: str) -> Response:
    """Stop managing the name servers of a domain (reset to Porkbun defaults)."""
    start_time = time.monotonic()
    logger.info("[request] nameservers.delete domain=%s", domain)
    result = await PorkbunNameServerReconciler(get_client()).delete(domain)
    return build_response("nameservers.delete", result, start_time)


# Note: Unlike the routes above, this endpoint is dynamically registered
# in lifespan() based on config.health.enabled.
async def health() -> Response:
    """Health check endpoint."""
    return JSONResponse(content={"status": "ok"})
