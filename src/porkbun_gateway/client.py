"""
Porkbun API client.

This module implements the Porkbun JSON API v3 calls used to manage DNS
records and domain name servers. Every call is an HTTPS POST whose JSON body
carries the API key pair; failures are raised as typed exceptions.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import httpx

from porkbun_gateway.exceptions import (
    ApiError,
    RecordNotFoundError,
    RequestTimeoutError,
    TransportError,
)

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from typing import Any, Final


# Porkbun API base URL
PORKBUN_API_BASE: Final[str] = "https://api.porkbun.com/api/json/v3"

# HTTP timeout in seconds
HTTP_TIMEOUT: Final[float] = 30.0

API_STATUS_SUCCESS: Final[str] = "SUCCESS"


logger = logging.getLogger(__name__)


def _check_record_fields(record: dict[str, Any]) -> None:
    """Reject retrieved record fields that cannot map to canonical state."""
    name = record.get("name")
    if name is not None and not isinstance(name, str):
        msg = "Failed to parse response: record name is not a string"
        raise TransportError(msg)
    for field in ("type", "content", "ttl", "prio", "notes"):
        value = record.get(field)
        if value is None or isinstance(value, str):
            continue
        if isinstance(value, bool) or not isinstance(value, int | float):
            msg = f"Failed to parse response: record {field} is not a scalar"
            raise TransportError(msg)


class PorkbunClient:
    """
    Porkbun API client.

    The credential pair and endpoint are fixed at construction. A new HTTP
    client is opened for each call, so no connection outlives an operation.

    Parameters
    ----------
    api_key : str
        Porkbun API key.
    secret_api_key : str
        Porkbun secret API key.
    base_url : str, optional
        API base URL.
    timeout : float, optional
        Upper bound in seconds for each remote call.
    transport : httpx.AsyncBaseTransport | None, optional
        Custom transport (used by tests to stand in for the remote API).
    """

    def __init__(
        self,
        api_key: str,
        secret_api_key: str,
        *,
        base_url: str = PORKBUN_API_BASE,
        timeout: float = HTTP_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._secret_api_key = secret_api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    @property
    def base_url(self) -> str:
        """Get the API base URL."""
        return self._base_url

    async def _post(
        self,
        endpoint: str,
        fields: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Send an authenticated request and decode the response.

        Parameters
        ----------
        endpoint : str
            API path relative to the base URL (e.g., "/ping").
        fields : Mapping[str, Any] | None, optional
            Operation-specific body fields.

        Returns
        -------
        dict[str, Any]
            The decoded response body of a successful call.

        Raises
        ------
        RequestTimeoutError
            If the call exceeded the timeout.
        TransportError
            On connection errors, non-2xx statuses or malformed bodies.
        ApiError
            If the body status is not "SUCCESS".
        """
        url = f"{self._base_url}{endpoint}"
        payload: dict[str, Any] = {
            "secretapikey": self._secret_api_key,
            "apikey": self._api_key,
        }
        if fields:
            payload.update(fields)

        # Deadline covers the whole call, not each httpx phase
        try:
            async with (
                asyncio.timeout(self._timeout),
                httpx.AsyncClient(
                    timeout=self._timeout,
                    transport=self._transport,
                ) as client,
            ):
                response = await client.post(url, json=payload)
        except (httpx.TimeoutException, TimeoutError) as e:
            logger.error("[porkbun] Request to %s timed out: '%s'", endpoint, e)  # noqa: TRY400
            msg = f"Request to {endpoint} timed out after {self._timeout:g}s"
            raise RequestTimeoutError(msg) from e
        except httpx.RequestError as e:
            logger.error("[porkbun] Network request failed: '%s'", e)  # noqa: TRY400
            msg = f"Failed to execute request: {e}"
            raise TransportError(msg) from e

        logger.debug("[porkbun] POST %s -> %d", endpoint, response.status_code)

        if not response.is_success:
            logger.error(
                "[porkbun] %s returned status %d: '%s'",
                endpoint,
                response.status_code,
                response.text,
            )
            msg = f"API returned status {response.status_code}: {response.text}"
            raise TransportError(msg, status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            msg = f"Failed to parse response: {e}"
            raise TransportError(msg, status_code=response.status_code) from e

        logger.debug("[porkbun] Response: %s", response.text)

        if not isinstance(data, dict) or "status" not in data:
            msg = "Failed to parse response: missing status field"
            raise TransportError(msg, status_code=response.status_code)

        if data["status"] != API_STATUS_SUCCESS:
            raise ApiError(str(data.get("message") or "Unknown error"))

        return data

    async def ping(self) -> None:
        """
        Validate the credentials against the API.

        Raises
        ------
        GatewayError
            If the API rejects the credentials or cannot be reached.
        """
        await self._post("/ping")

    async def create_record(self, domain: str, record: Mapping[str, str]) -> str:
        """
        Create a DNS record.

        Parameters
        ----------
        domain : str
            The parent domain.
        record : Mapping[str, str]
            Record fields (name, type, content, ttl, prio, notes).

        Returns
        -------
        str
            The id assigned by Porkbun.
        """
        data = await self._post(f"/dns/create/{domain}", record)
        record_id = data.get("id")
        if record_id is None:
            msg = "Failed to parse response: missing record id"
            raise TransportError(msg)
        return str(record_id)

    async def get_record(self, domain: str, record_id: str) -> dict[str, Any]:
        """
        Retrieve a single DNS record by id.

        Parameters
        ----------
        domain : str
            The parent domain.
        record_id : str
            The record id.

        Returns
        -------
        dict[str, Any]
            The record as reported by the API (fully qualified ``name``).

        Raises
        ------
        RecordNotFoundError
            If the API returned an empty record list.
        TransportError
            If the first record is not an object or has non-scalar fields.
        """
        data = await self._post(f"/dns/retrieve/{domain}/{record_id}")
        records = data.get("records") or []
        if not isinstance(records, list):
            msg = "Failed to parse response: records is not a list"
            raise TransportError(msg)
        if not records:
            msg = f"DNS record {record_id} not found in {domain}"
            raise RecordNotFoundError(msg)
        record = records[0]
        if not isinstance(record, dict):
            kind = type(record).__name__
            msg = f"Failed to parse response: record is {kind}, not an object"
            raise TransportError(msg)
        _check_record_fields(record)
        return dict(record)

    async def edit_record(
        self,
        domain: str,
        record_id: str,
        record: Mapping[str, str],
    ) -> None:
        """Edit a DNS record in place."""
        await self._post(f"/dns/edit/{domain}/{record_id}", record)

    async def delete_record(self, domain: str, record_id: str) -> None:
        """Delete a DNS record."""
        await self._post(f"/dns/delete/{domain}/{record_id}")

    async def get_nameservers(self, domain: str) -> list[str]:
        """
        Get the authoritative name servers of a domain.

        Parameters
        ----------
        domain : str
            The domain.

        Returns
        -------
        list[str]
            Name server hostnames in the order reported by the API.
        """
        data = await self._post(f"/domain/getNs/{domain}")
        nameservers = data.get("ns") or []
        if not isinstance(nameservers, list):
            msg = "Failed to parse response: ns is not a list"
            raise TransportError(msg)
        return [str(ns) for ns in nameservers]

    async def update_nameservers(
        self,
        domain: str,
        nameservers: Sequence[str],
    ) -> None:
        """Replace the complete name server list of a domain."""
        await self._post(f"/domain/updateNs/{domain}", {"ns": list(nameservers)})
