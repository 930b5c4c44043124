"""
Conversion between subdomain fragments and fully qualified names.

The Porkbun API always reports the fully qualified name of a record
(``sub.example.com`` or ``example.com`` for the apex) while the declared
state uses the fragment relative to the domain.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


def to_absolute(domain: str, fragment: str) -> str:
    """
    Build the fully qualified name of a record.

    Parameters
    ----------
    domain : str
        The parent domain.
    fragment : str
        The subdomain fragment; empty (or "@") for the apex.

    Returns
    -------
    str
        The fully qualified name.
    """
    if fragment in {"@", ""}:
        return domain
    return f"{fragment}.{domain}"


def to_relative(domain: str, full_name: str) -> str:
    """
    Strip the parent domain from a fully qualified name.

    The split is made on the domain suffix, so fragments that contain dots
    themselves (``"a.b"`` in ``"a.b.example.com"``) are recovered intact.

    Parameters
    ----------
    domain : str
        The parent domain.
    full_name : str
        The name reported by the API.

    Returns
    -------
    str
        The fragment; empty for the apex. A name outside of ``domain`` is
        returned unchanged.
    """
    if full_name == domain:
        return ""

    suffix = f".{domain}"
    if full_name.endswith(suffix):
        return full_name.removesuffix(suffix)

    logger.debug(
        'Record name "%s" does not belong to domain "%s", keeping it as is.',
        full_name,
        domain,
    )
    return full_name
