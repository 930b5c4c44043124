"""
Porkbun DNS Gateway - reconcile DNS records and nameservers on Porkbun.

This package maps declared DNS records and domain nameserver sets onto the
Porkbun JSON API and exposes create/read/update/delete/import operations
for an external orchestration host.
"""

__version__ = "0.1.0"
__author__ = "Porkbun DNS Gateway Contributors"
