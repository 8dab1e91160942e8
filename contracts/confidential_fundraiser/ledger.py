"""
Confidential Ledger

Encrypted per-contributor contribution and points balances, plus the two
encrypted grand totals. No plaintext amount is ever held here.

Updates are two-phase: `stage_contribution` computes every new ciphertext
without touching the ledger, and `commit` writes all four values at once.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from contracts.confidential_fundraiser.encrypted import EncryptedBackend, Handle, ZERO_HANDLE


logger = logging.getLogger(__name__)

# 10**18 minor units earn 10**6 points
POINTS_DIVISOR = 1_000_000_000_000


@dataclass(frozen=True)
class LedgerUpdate:
    """Staged result of one contribution."""

    contributor: str
    contribution: Handle
    points: Handle
    total_raised: Handle
    total_points: Handle


class ConfidentialLedger:
    """
    Encrypted shadow ledger.

    State Schema:
    - contributions: address -> encrypted running sum of amounts
    - points: address -> encrypted running sum of per-call points
    - total_raised: encrypted sum of all contributions
    - total_points: encrypted sum of all points
    """

    def __init__(self, backend: EncryptedBackend):
        self._backend = backend
        self._contributions: dict[str, Handle] = {}
        self._points: dict[str, Handle] = {}
        self._total_raised: Optional[Handle] = None
        self._total_points: Optional[Handle] = None

    def _or_zero(self, handle: Optional[Handle]) -> Handle:
        if handle is None:
            return self._backend.trivial_encrypt(0)
        return handle

    def stage_contribution(self, contributor: str, amount: Handle) -> LedgerUpdate:
        """
        Compute the ledger state after `contributor` adds `amount`.

        Points are the truncated quotient of this amount alone; they are
        added to the running points, never recomputed from the sum.

        Args:
            contributor: Contributor address
            amount: Trusted (already ingested) encrypted amount

        Returns:
            LedgerUpdate to pass to `commit`
        """
        backend = self._backend
        points = backend.div_floor(amount, POINTS_DIVISOR)

        update = LedgerUpdate(
            contributor=contributor,
            contribution=backend.add(self._or_zero(self._contributions.get(contributor)), amount),
            points=backend.add(self._or_zero(self._points.get(contributor)), points),
            total_raised=backend.add(self._or_zero(self._total_raised), amount),
            total_points=backend.add(self._or_zero(self._total_points), points),
        )
        return update

    def commit(self, update: LedgerUpdate) -> None:
        self._contributions[update.contributor] = update.contribution
        self._points[update.contributor] = update.points
        self._total_raised = update.total_raised
        self._total_points = update.total_points
        logger.debug("Ledger updated for %s", update.contributor)

    # Reads

    def contribution_of(self, contributor: str) -> Handle:
        return self._contributions.get(contributor, ZERO_HANDLE)

    def points_of(self, contributor: str) -> Handle:
        return self._points.get(contributor, ZERO_HANDLE)

    def totals(self) -> tuple[Handle, Handle]:
        return (self._total_raised or ZERO_HANDLE, self._total_points or ZERO_HANDLE)
