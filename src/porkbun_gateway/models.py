"""
Data models for Porkbun DNS Gateway.

This module defines the core data structures used throughout the application,
including the desired and observed record/nameserver models and the
enumerations for record types and failure kinds. Nothing here depends on the
HTTP adapter.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field, field_serializer, field_validator

if TYPE_CHECKING:
    from typing import Final


DEFAULT_TTL: Final[str] = "600"
DEFAULT_PRIORITY: Final[str] = "0"

# Porkbun's own name servers, restored when a managed set is destroyed
DEFAULT_NAMESERVERS: Final[tuple[str, ...]] = (
    "curitiba.ns.porkbun.com",
    "fortaleza.ns.porkbun.com",
    "maceio.ns.porkbun.com",
    "salvador.ns.porkbun.com",
)


class RecordType(StrEnum):
    """
    Supported DNS record types.

    Attributes
    ----------
    A : str
        IPv4 address record.
    MX : str
        Mail exchange record.
    CNAME : str
        Canonical name (alias) record.
    ALIAS : str
        Apex-capable alias record.
    TXT : str
        Text record.
    NS : str
        Name server delegation record.
    AAAA : str
        IPv6 address record.
    SRV : str
        Service locator record.
    TLSA : str
        TLS certificate association record.
    CAA : str
        Certification authority authorization record.
    HTTPS : str
        HTTPS service binding record.
    SVCB : str
        General service binding record.
    """

    A = "A"
    MX = "MX"
    CNAME = "CNAME"
    ALIAS = "ALIAS"
    TXT = "TXT"
    NS = "NS"
    AAAA = "AAAA"
    SRV = "SRV"
    TLSA = "TLSA"
    CAA = "CAA"
    HTTPS = "HTTPS"
    SVCB = "SVCB"


class ErrorKind(StrEnum):
    """
    Failure classification shared by the gateway, reconcilers and adapter.

    Attributes
    ----------
    SETUP : str
        Missing/invalid credentials or a failed startup ping.
    VALIDATION : str
        Local input rejected before any remote call.
    NOT_FOUND : str
        The remote record lookup returned no records.
    API : str
        The remote API answered with a non-"SUCCESS" status.
    TRANSPORT : str
        HTTP status, connection or response decoding failure.
    TIMEOUT : str
        The remote call exceeded the configured time limit.
    """

    SETUP = "setup"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    API = "api"
    TRANSPORT = "transport"
    TIMEOUT = "timeout"


class RecordSpec(BaseModel):
    """
    Desired state of a single DNS record.

    Attributes
    ----------
    domain : str
        The parent zone (e.g., "example.com"). Changing it requires replacement.
    name : str
        Subdomain fragment; empty for the apex, "*" for a wildcard.
    record_type : RecordType
        The record type.
    content : str
        The answer content for the record.
    ttl : str
        Time to live in seconds, as sent to the API.
    prio : str
        Priority for record types that support it (e.g., MX, SRV).
    notes : str
        Freeform notes.
    """

    domain: str = Field(..., min_length=1, description="Parent domain")
    name: str = Field(default="", description="Subdomain, empty for apex")
    record_type: RecordType = Field(..., alias="type")
    content: str = Field(..., description="Record content")
    ttl: str = Field(default=DEFAULT_TTL, description="TTL in seconds")
    prio: str = Field(default=DEFAULT_PRIORITY, description="Record priority")
    notes: str = Field(default="", description="Record notes")

    model_config = {"populate_by_name": True, "coerce_numbers_to_str": True}

    def to_payload(self) -> dict[str, str]:
        """
        Build the create/edit request fields for the Porkbun API.

        Empty optional values are left out of the payload.

        Returns
        -------
        dict[str, str]
            Operation-specific fields (without credentials).
        """
        payload = {
            "name": self.name,
            "type": self.record_type.value,
            "content": self.content,
            "ttl": self.ttl,
            "prio": self.prio,
            "notes": self.notes,
        }
        return {
            k: v for k, v in payload.items() if v or k in {"type", "content"}
        }


class DNSRecord(BaseModel):
    """
    Observed (canonical) state of a DNS record.

    Attributes
    ----------
    id : str
        Remote record id, assigned by Porkbun at creation.
    domain : str
        The parent zone.
    name : str
        Subdomain fragment relative to ``domain``.
    type : str
        The record type as reported by the API.
    content : str
        The answer content.
    ttl : str
        Time to live in seconds.
    prio : str
        Record priority.
    notes : str
        Record notes.
    """

    id: str
    domain: str
    name: str = ""
    type: str
    content: str
    ttl: str = DEFAULT_TTL
    prio: str = DEFAULT_PRIORITY
    notes: str = ""

    model_config = {"coerce_numbers_to_str": True}

    @field_validator("ttl", mode="before")
    @classmethod
    def _default_ttl(cls, value: Any) -> Any:
        return DEFAULT_TTL if value is None else value

    @field_validator("prio", mode="before")
    @classmethod
    def _default_prio(cls, value: Any) -> Any:
        return DEFAULT_PRIORITY if value is None else value

    @field_validator("name", "notes", mode="before")
    @classmethod
    def _default_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class NameServerSpec(BaseModel):
    """
    Desired nameserver set of a domain.

    Attributes
    ----------
    nameservers : set[str]
        The complete set of nameserver hostnames.
    """

    nameservers: set[str]


class NameServerSet(BaseModel):
    """
    Observed nameserver set of a domain.

    Attributes
    ----------
    domain : str
        The domain; also the identity of the set.
    nameservers : frozenset[str]
        Nameserver hostnames (unordered).
    """

    domain: str
    nameservers: frozenset[str]

    def sorted_nameservers(self) -> list[str]:
        """Return the nameservers in canonical (lexicographic) order."""
        return sorted(self.nameservers)

    @field_serializer("nameservers")
    def _serialize_nameservers(self, value: frozenset[str]) -> list[str]:
        return sorted(value)

