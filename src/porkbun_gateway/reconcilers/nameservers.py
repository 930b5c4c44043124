"""
Domain nameserver reconciler.

Every write replaces the complete nameserver list of the domain; there is
no incremental add/remove. Destroying the managed set restores Porkbun's
default name servers.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from porkbun_gateway.exceptions import GatewayError, ImportIdError
from porkbun_gateway.importer import parse_nameserver_import_id
from porkbun_gateway.models import DEFAULT_NAMESERVERS, NameServerSet
from porkbun_gateway.reconcilers.base import NameServerReconciler, ReconcileResult

if TYPE_CHECKING:
    from collections.abc import Iterable

    from porkbun_gateway.client import PorkbunClient


logger = logging.getLogger(__name__)


class PorkbunNameServerReconciler(NameServerReconciler):
    """
    Nameserver reconciler backed by the Porkbun API.

    Parameters
    ----------
    client : PorkbunClient
        The API client.
    """

    def __init__(self, client: PorkbunClient) -> None:
        self._client = client

    async def _replace(
        self,
        domain: str,
        nameservers: Iterable[str],
        action: str,
    ) -> ReconcileResult:
        # Sorted so the wire order does not depend on input order.
        ordered = sorted(set(nameservers))
        logger.info(
            "Updating domain name servers: domain=%s nameservers=%s",
            domain,
            ordered,
        )

        try:
            await self._client.update_nameservers(domain, ordered)
        except GatewayError as e:
            logger.error("Unable to update name servers: %s", e.message)  # noqa: TRY400
            return ReconcileResult.failure("Unable to update name servers", e)

        return ReconcileResult(
            success=True,
            message=f"Name servers updated for {domain}",
            action=action,
            nameservers=NameServerSet(domain=domain, nameservers=frozenset(ordered)),
        )

    async def create(self, domain: str, nameservers: Iterable[str]) -> ReconcileResult:
        """Set the domain's nameservers; the domain becomes the set's id."""
        return await self._replace(domain, nameservers, "created")

    async def update(self, domain: str, nameservers: Iterable[str]) -> ReconcileResult:
        """Replace the domain's nameservers with the desired set."""
        return await self._replace(domain, nameservers, "updated")

    async def read(self, domain: str) -> ReconcileResult:
        """
        Read the current nameserver set of a domain.

        Parameters
        ----------
        domain : str
            The domain.

        Returns
        -------
        ReconcileResult
            The nameserver set or the failure.
        """
        try:
            nameservers = await self._client.get_nameservers(domain)
        except GatewayError as e:
            logger.error("Unable to read name servers: %s", e.message)  # noqa: TRY400
            return ReconcileResult.failure("Unable to read name servers", e)

        return ReconcileResult(
            success=True,
            message=f"Name servers read for {domain}",
            action="read",
            nameservers=NameServerSet(domain=domain, nameservers=frozenset(nameservers)),
        )

    async def delete(self, domain: str) -> ReconcileResult:
        """
        Reset the domain's nameservers to Porkbun's defaults.

        Parameters
        ----------
        domain : str
            The domain.

        Returns
        -------
        ReconcileResult
            The default nameserver set or the failure.
        """
        logger.info("Resetting domain name servers to Porkbun defaults: domain=%s", domain)

        try:
            await self._client.update_nameservers(domain, list(DEFAULT_NAMESERVERS))
        except GatewayError as e:
            logger.error("Unable to reset name servers: %s", e.message)  # noqa: TRY400
            return ReconcileResult.failure("Unable to reset name servers", e)

        return ReconcileResult(
            success=True,
            message=f"Name servers reset to defaults for {domain}",
            action="reset",
            nameservers=NameServerSet(
                domain=domain,
                nameservers=frozenset(DEFAULT_NAMESERVERS),
            ),
        )

    async def import_state(self, import_id: str) -> ReconcileResult:
        """
        Import the nameserver set of a domain.

        Parameters
        ----------
        import_id : str
            The domain name.

        Returns
        -------
        ReconcileResult
            The nameserver set or the failure.
        """
        try:
            domain = parse_nameserver_import_id(import_id)
        except ImportIdError as e:
            return ReconcileResult.failure("Invalid Import ID", e)

        result = await self.read(domain)
        if result.success:
            result.action = "imported"
        return result
