"""
Exception hierarchy for Porkbun DNS Gateway.

Every exception carries an ``ErrorKind`` so callers can classify failures
structurally instead of inspecting message text.
"""

from __future__ import annotations

from typing import ClassVar

from porkbun_gateway.models import ErrorKind


class PorkbunError(Exception):
    """
    Base class for all gateway and reconciliation failures.

    Attributes
    ----------
    kind : ErrorKind
        Failure classification.
    message : str
        Human-readable detail (remote messages are kept verbatim).
    """

    kind: ClassVar[ErrorKind]

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class SetupError(PorkbunError):
    """Session setup failed; no operation may proceed."""

    kind = ErrorKind.SETUP


class CredentialsError(SetupError):
    """
    Raised when the API key or secret API key cannot be resolved.

    Attributes
    ----------
    missing : list[str]
        Names of the missing configuration keys.
    """

    def __init__(self, message: str, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(message)


class InvalidInputError(PorkbunError):
    """Local input was rejected before any remote call."""

    kind = ErrorKind.VALIDATION


class ImportIdError(InvalidInputError):
    """Malformed composite import identifier."""


class GatewayError(PorkbunError):
    """Base class for failures raised by the remote API gateway."""


class RecordNotFoundError(GatewayError):
    """The record retrieval returned an empty record list."""

    kind = ErrorKind.NOT_FOUND


class ApiError(GatewayError):
    """The API answered with a non-"SUCCESS" status."""

    kind = ErrorKind.API


class TransportError(GatewayError):
    """
    HTTP-layer failure: bad status, connection error or undecodable body.

    Attributes
    ----------
    status_code : int | None
        HTTP status code, when a response was received.
    """

    kind = ErrorKind.TRANSPORT

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class RequestTimeoutError(TransportError):
    """The remote call did not complete within the configured timeout."""

    kind = ErrorKind.TIMEOUT
