"""
Settlement Tracker

Authoritative plaintext total of every accepted contribution's public value,
and the one-time sweep of held funds to the fundraiser.
"""

import logging

from contracts.confidential_fundraiser.custody import Custody
from contracts.confidential_fundraiser.encrypted import UINT128_MAX
from contracts.confidential_fundraiser.errors import AmountOverflow


logger = logging.getLogger(__name__)


class SettlementTracker:
    def __init__(self, custody: Custody):
        self.custody = custody
        self.total_raised = 0

    def stage(self, value: int) -> int:
        """
        Compute the total after accepting `value`, without recording it.

        Raises:
            AmountOverflow: If the total would not fit in 128 bits
        """
        total = self.total_raised + value
        if total > UINT128_MAX:
            raise AmountOverflow("Total raised would exceed 128 bits")
        return total

    def commit(self, total: int) -> None:
        self.total_raised = total

    def record(self, value: int) -> None:
        self.commit(self.stage(value))

    def held_balance(self) -> int:
        return self.custody.balance()

    def sweep(self, destination: str) -> int:
        """
        Transfer every unit held to `destination`.

        Returns:
            Amount transferred
        """
        amount = self.custody.sweep(destination)
        logger.info("Settled %d to %s", amount, destination)
        return amount
