"""
Permission Manager

Decides who may decrypt each ciphertext the ledger produces and issues the
grants through the encrypted backend. Grants are additive only.

For every contribution:
- the contract keeps access to all four new values so later homomorphic
  operations on them stay valid
- the contributor gets their own contribution and points entries
- the fundraiser gets the two grand totals
"""

import logging
from typing import NamedTuple

from contracts.confidential_fundraiser.encrypted import EncryptedBackend, Handle
from contracts.confidential_fundraiser.ledger import LedgerUpdate


logger = logging.getLogger(__name__)


class Grant(NamedTuple):
    handle: Handle
    principal: str


class PermissionManager:
    def __init__(self, backend: EncryptedBackend, contract: str):
        self._backend = backend
        self._contract = contract

    def plan(self, update: LedgerUpdate, fundraiser: str) -> list[Grant]:
        """
        List the grants owed for a staged ledger update.

        Args:
            update: Staged ledger update
            fundraiser: Fixed fundraiser address

        Returns:
            Grants in issue order
        """
        grants = [
            Grant(handle, self._contract)
            for handle in (update.contribution, update.points, update.total_raised, update.total_points)
        ]
        grants.append(Grant(update.contribution, update.contributor))
        grants.append(Grant(update.points, update.contributor))
        grants.append(Grant(update.total_raised, fundraiser))
        grants.append(Grant(update.total_points, fundraiser))
        return grants

    def apply(self, grants: list[Grant]) -> None:
        for grant in grants:
            self._backend.grant_access(grant.handle, grant.principal)
        logger.debug("Issued %d grants", len(grants))
