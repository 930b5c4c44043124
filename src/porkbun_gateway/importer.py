"""Parsing of composite import identifiers."""

from __future__ import annotations

from porkbun_gateway.exceptions import ImportIdError


def parse_record_import_id(raw: str) -> tuple[str, str]:
    """
    Split a record import id of the form ``"<domain>/<record-id>"``.

    Parameters
    ----------
    raw : str
        The composite import id.

    Returns
    -------
    tuple[str, str]
        ``(domain, record_id)``.

    Raises
    ------
    ImportIdError
        Unless the id splits into exactly two non-empty parts.
    """
    parts = raw.split("/")
    if len(parts) != 2 or not all(parts):  # noqa: PLR2004
        msg = f"Expected import ID in format 'domain/record_id', got: {raw}"
        raise ImportIdError(msg)
    return parts[0], parts[1]


def parse_nameserver_import_id(raw: str) -> str:
    """
    Validate a nameserver import id, which is the domain itself.

    Raises
    ------
    ImportIdError
        If the id is empty.
    """
    if not raw.strip():
        msg = "Expected import ID in format 'domain', got an empty value"
        raise ImportIdError(msg)
    return raw
