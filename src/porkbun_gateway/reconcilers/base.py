"""
Base classes for reconcilers.

This module defines the result object returned by every reconciliation
operation and the capability interfaces an adapter binds to its host.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from porkbun_gateway.exceptions import PorkbunError
    from porkbun_gateway.models import (
        DNSRecord,
        ErrorKind,
        NameServerSet,
        RecordSpec,
    )


class ReconcileResult:
    """
    Result of a reconciliation operation.

    Attributes
    ----------
    success : bool
        Whether the operation was successful.
    message : str
        Human-readable message.
    action : str | None
        The action taken ("created", "read", "updated", "deleted", "removed",
        "imported", "reset").
    kind : ErrorKind | None
        Failure classification (None on success).
    record : DNSRecord | None
        Canonical record state after the operation.
    nameservers : NameServerSet | None
        Nameserver set after the operation.
    """

    def __init__(
        self,
        *,
        success: bool,
        message: str,
        action: str | None = None,
        kind: ErrorKind | None = None,
        record: DNSRecord | None = None,
        nameservers: NameServerSet | None = None,
    ) -> None:
        """
        Initialize a ReconcileResult.

        Parameters
        ----------
        success : bool
            Whether the operation was successful.
        message : str
            Human-readable message.
        action : str | None, optional
            The action taken.
        kind : ErrorKind | None, optional
            Failure classification.
        record : DNSRecord | None, optional
            Canonical record state.
        nameservers : NameServerSet | None, optional
            Nameserver set.
        """
        self.success = success
        self.message = message
        self.action = action
        self.kind = kind
        self.record = record
        self.nameservers = nameservers

    @property
    def removed(self) -> bool:
        """Whether the entity should be dropped from tracked state."""
        return self.success and self.action == "removed"

    @classmethod
    def failure(cls, context: str, error: PorkbunError) -> ReconcileResult:
        """
        Build a failed result from a classified error.

        Parameters
        ----------
        context : str
            What was being attempted (e.g., "Unable to create DNS record").
        error : PorkbunError
            The classified error.

        Returns
        -------
        ReconcileResult
            A failed result carrying the error kind.
        """
        return cls(
            success=False,
            message=f"{context}: {error.message}",
            kind=error.kind,
        )


class RecordReconciler(ABC):
    """Capability interface for managing a single DNS record."""

    @abstractmethod
    async def create(self, desired: RecordSpec) -> ReconcileResult:
        """Create the record and return its canonical state with the new id."""
        ...

    @abstractmethod
    async def read(self, domain: str, record_id: str) -> ReconcileResult:
        """
        Refresh the record from the remote source of truth.

        A record that no longer exists yields a successful result with the
        "removed" action instead of a failure.
        """
        ...

    @abstractmethod
    async def update(
        self,
        domain: str,
        record_id: str,
        desired: RecordSpec,
    ) -> ReconcileResult:
        """Edit the record in place; identity fields never change."""
        ...

    @abstractmethod
    async def delete(self, domain: str, record_id: str) -> ReconcileResult:
        """Delete the record."""
        ...

    @abstractmethod
    async def import_state(self, import_id: str) -> ReconcileResult:
        """Adopt an existing record from a ``"<domain>/<record-id>"`` id."""
        ...


class NameServerReconciler(ABC):
    """Capability interface for managing the nameserver set of a domain."""

    @abstractmethod
    async def create(self, domain: str, nameservers: Iterable[str]) -> ReconcileResult:
        """Replace the domain's nameservers with the desired set."""
        ...

    @abstractmethod
    async def read(self, domain: str) -> ReconcileResult:
        """Read the current nameserver set."""
        ...

    @abstractmethod
    async def update(self, domain: str, nameservers: Iterable[str]) -> ReconcileResult:
        """Replace the domain's nameservers with the desired set."""
        ...

    @abstractmethod
    async def delete(self, domain: str) -> ReconcileResult:
        """Reset the domain's nameservers to the registrar defaults."""
        ...

    @abstractmethod
    async def import_state(self, import_id: str) -> ReconcileResult:
        """Adopt the nameserver set of the domain named by ``import_id``."""
        ...
