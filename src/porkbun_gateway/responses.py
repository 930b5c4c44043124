"""
Request and response bodies of the HTTP adapter.

These models belong to the FastAPI layer only; the reconcilers report their
outcome as ``ReconcileResult`` and never build these envelopes themselves.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel
from starlette import status as st_status

from porkbun_gateway.models import DNSRecord, ErrorKind, NameServerSet


class ImportRequest(BaseModel):
    """
    Import request body.

    Attributes
    ----------
    id : str
        Composite import id (``"<domain>/<record-id>"`` or ``"<domain>"``).
    """

    id: str


class ReconcileResponse(BaseModel):
    """
    Response envelope returned by the HTTP adapter.

    Attributes
    ----------
    status : Literal["success", "error"]
        The overall status of the operation.
    code : int
        HTTP status code of the response.
    message : str
        Human-readable message describing the result.
    action : str | None
        The action taken (None for errors).
    kind : ErrorKind | None
        Failure kind (None for successes).
    record : DNSRecord | None
        The canonical record, when the operation yields one.
    nameservers : NameServerSet | None
        The nameserver set, when the operation yields one.
    """

    status: Literal["success", "error"]
    code: int
    message: str
    action: str | None = None
    kind: ErrorKind | None = None
    record: DNSRecord | None = None
    nameservers: NameServerSet | None = None

    @classmethod
    def success(
        cls,
        message: str,
        action: str,
        record: DNSRecord | None = None,
        nameservers: NameServerSet | None = None,
    ) -> ReconcileResponse:
        """Create a successful (HTTP 200) response."""
        return cls(
            status="success",
            code=st_status.HTTP_200_OK,
            message=message,
            action=action,
            record=record,
            nameservers=nameservers,
        )

    @classmethod
    def error(
        cls,
        code: int,
        message: str,
        kind: ErrorKind | None = None,
    ) -> ReconcileResponse:
        """
        Create an error response.

        Parameters
        ----------
        code : int
            HTTP status code.
        message : str
            Human-readable error message.
        kind : ErrorKind | None, optional
            Failure kind.

        Returns
        -------
        ReconcileResponse
            An error response instance.
        """
        return cls(status="error", code=code, message=message, kind=kind)
