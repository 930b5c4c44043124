"""
DNS record reconciler.

This module drives the lifecycle of a single Porkbun DNS record: it turns
desired record fields into create/edit calls, maps retrieved records back
into canonical state and absorbs the "record vanished" case on refresh.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from porkbun_gateway.exceptions import (
    GatewayError,
    ImportIdError,
    InvalidInputError,
    RecordNotFoundError,
)
from porkbun_gateway.importer import parse_record_import_id
from porkbun_gateway.models import DNSRecord, ErrorKind
from porkbun_gateway.names import to_relative
from porkbun_gateway.reconcilers.base import ReconcileResult, RecordReconciler

if TYPE_CHECKING:
    from typing import Any

    from porkbun_gateway.client import PorkbunClient
    from porkbun_gateway.models import RecordSpec


logger = logging.getLogger(__name__)


def record_from_spec(record_id: str, desired: RecordSpec) -> DNSRecord:
    """
    Build the canonical record for desired fields stored under ``record_id``.

    Parameters
    ----------
    record_id : str
        The remote record id.
    desired : RecordSpec
        Desired record fields.

    Returns
    -------
    DNSRecord
        Canonical record state.
    """
    return DNSRecord(
        id=record_id,
        domain=desired.domain,
        name=desired.name,
        type=desired.record_type.value,
        content=desired.content,
        ttl=desired.ttl,
        prio=desired.prio,
        notes=desired.notes,
    )


def record_from_remote(
    domain: str,
    record_id: str,
    remote: dict[str, Any],
) -> DNSRecord:
    """
    Map a record returned by the API into canonical state.

    The fully qualified remote name is converted back to the fragment
    relative to ``domain``.

    Parameters
    ----------
    domain : str
        The parent domain.
    record_id : str
        The id the record was requested by.
    remote : dict[str, Any]
        Record as returned by the retrieve endpoint.

    Returns
    -------
    DNSRecord
        Canonical record state.
    """
    return DNSRecord(
        id=str(remote.get("id") or record_id),
        domain=domain,
        name=to_relative(domain, remote.get("name") or ""),
        type=remote.get("type") or "",
        content=remote.get("content") or "",
        ttl=remote.get("ttl"),
        prio=remote.get("prio"),
        notes=remote.get("notes"),
    )


class PorkbunRecordReconciler(RecordReconciler):
    """
    Record reconciler backed by the Porkbun API.

    Parameters
    ----------
    client : PorkbunClient
        The API client.
    """

    def __init__(self, client: PorkbunClient) -> None:
        self._client = client

    async def create(self, desired: RecordSpec) -> ReconcileResult:
        """
        Create a DNS record from desired fields.

        Nothing is assumed to exist locally when the call fails, even if the
        remote side partially succeeded.

        Parameters
        ----------
        desired : RecordSpec
            Desired record fields.

        Returns
        -------
        ReconcileResult
            The created record (with its new id) or the failure.
        """
        payload = desired.to_payload()
        logger.info(
            "Creating DNS record: domain=%s name=%s type=%s content=%s",
            desired.domain,
            desired.name,
            desired.record_type,
            desired.content,
        )

        try:
            record_id = await self._client.create_record(desired.domain, payload)
        except GatewayError as e:
            logger.error("Unable to create DNS record: %s", e.message)  # noqa: TRY400
            return ReconcileResult.failure("Unable to create DNS record", e)

        logger.debug("Created DNS record: id=%s", record_id)
        return ReconcileResult(
            success=True,
            message=f"DNS record created for {desired.name or '@'} in {desired.domain}",
            action="created",
            record=record_from_spec(record_id, desired),
        )

    async def read(self, domain: str, record_id: str) -> ReconcileResult:
        """
        Refresh a DNS record.

        Parameters
        ----------
        domain : str
            The parent domain.
        record_id : str
            The record id.

        Returns
        -------
        ReconcileResult
            The canonical record, a "removed" result when the record no
            longer exists, or the failure.
        """
        try:
            remote = await self._client.get_record(domain, record_id)
        except RecordNotFoundError:
            logger.warning(
                "DNS record %s in %s no longer exists, dropping it from state.",
                record_id,
                domain,
            )
            return ReconcileResult(
                success=True,
                message=f"DNS record {record_id} no longer exists in {domain}",
                action="removed",
            )
        except GatewayError as e:
            logger.error("Unable to read DNS record: %s", e.message)  # noqa: TRY400
            return ReconcileResult.failure("Unable to read DNS record", e)

        return ReconcileResult(
            success=True,
            message=f"DNS record {record_id} read from {domain}",
            action="read",
            record=record_from_remote(domain, record_id, remote),
        )

    async def lookup(self, domain: str, record_id: str) -> ReconcileResult:
        """
        Fetch a DNS record without managing it.

        Unlike ``read``, a missing record is reported as a failure.

        Parameters
        ----------
        domain : str
            The parent domain.
        record_id : str
            The record id.

        Returns
        -------
        ReconcileResult
            The canonical record or the failure.
        """
        logger.debug("Reading DNS record: id=%s domain=%s", record_id, domain)
        try:
            remote = await self._client.get_record(domain, record_id)
        except GatewayError as e:
            logger.error("Unable to read DNS record: %s", e.message)  # noqa: TRY400
            return ReconcileResult.failure("Unable to read DNS record", e)

        return ReconcileResult(
            success=True,
            message=f"DNS record {record_id} read from {domain}",
            action="read",
            record=record_from_remote(domain, record_id, remote),
        )

    async def update(
        self,
        domain: str,
        record_id: str,
        desired: RecordSpec,
    ) -> ReconcileResult:
        """
        Edit a DNS record in place.

        The edit payload is built exactly as for ``create``. The identity
        (domain and id) is never part of the payload.

        Parameters
        ----------
        domain : str
            The tracked parent domain.
        record_id : str
            The tracked record id.
        desired : RecordSpec
            Desired record fields.

        Returns
        -------
        ReconcileResult
            The updated record or the failure.
        """
        if desired.domain != domain:
            error = InvalidInputError(
                f'domain cannot change from "{domain}" to "{desired.domain}"; '
                "the record must be replaced (delete, then create)",
            )
            return ReconcileResult.failure("Unable to update DNS record", error)

        payload = desired.to_payload()
        logger.info(
            "Updating DNS record: id=%s domain=%s name=%s type=%s content=%s",
            record_id,
            domain,
            desired.name,
            desired.record_type,
            desired.content,
        )

        try:
            await self._client.edit_record(domain, record_id, payload)
        except GatewayError as e:
            logger.error("Unable to update DNS record: %s", e.message)  # noqa: TRY400
            return ReconcileResult.failure("Unable to update DNS record", e)

        return ReconcileResult(
            success=True,
            message=f"DNS record {record_id} updated in {domain}",
            action="updated",
            record=record_from_spec(record_id, desired),
        )

    async def delete(self, domain: str, record_id: str) -> ReconcileResult:
        """
        Delete a DNS record.

        Parameters
        ----------
        domain : str
            The parent domain.
        record_id : str
            The record id.

        Returns
        -------
        ReconcileResult
            The outcome of the delete call.
        """
        logger.info("Deleting DNS record: id=%s domain=%s", record_id, domain)

        try:
            await self._client.delete_record(domain, record_id)
        except GatewayError as e:
            logger.error("Unable to delete DNS record: %s", e.message)  # noqa: TRY400
            return ReconcileResult.failure("Unable to delete DNS record", e)

        return ReconcileResult(
            success=True,
            message=f"DNS record {record_id} deleted from {domain}",
            action="deleted",
        )

    async def import_state(self, import_id: str) -> ReconcileResult:
        """
        Import an existing DNS record.

        Parameters
        ----------
        import_id : str
            Composite id ``"<domain>/<record-id>"``.

        Returns
        -------
        ReconcileResult
            The record read from the API or the failure.
        """
        try:
            domain, record_id = parse_record_import_id(import_id)
        except ImportIdError as e:
            return ReconcileResult.failure("Invalid Import ID", e)

        result = await self.read(domain, record_id)
        if result.removed:
            return ReconcileResult(
                success=False,
                message=f"Cannot import non-existent DNS record {record_id} in {domain}",
                kind=ErrorKind.NOT_FOUND,
            )
        if result.success:
            result.action = "imported"
        return result
