"""
Tests for the Confidential Ledger

Tests cover:
- Staging leaves the ledger untouched until commit
- Homomorphic sums of contributions and totals
- Points truncation per contribution
"""

import pytest

from contracts.confidential_fundraiser.coprocessor import Coprocessor
from contracts.confidential_fundraiser.encrypted import ZERO_HANDLE
from contracts.confidential_fundraiser.ledger import POINTS_DIVISOR, ConfidentialLedger


ETH = 10**18


class TestConfidentialLedger:
    """Unit tests against the simulated coprocessor."""

    @pytest.fixture
    def backend(self) -> Coprocessor:
        return Coprocessor()

    @pytest.fixture
    def ledger(self, backend) -> ConfidentialLedger:
        return ConfidentialLedger(backend)

    @staticmethod
    def plaintext(backend: Coprocessor, handle: bytes) -> int:
        return backend._load(handle)

    def test_empty_ledger(self, ledger):
        assert ledger.contribution_of("A") == ZERO_HANDLE
        assert ledger.points_of("A") == ZERO_HANDLE
        assert ledger.totals() == (ZERO_HANDLE, ZERO_HANDLE)

    def test_stage_does_not_mutate(self, ledger, backend):
        """Nothing is visible until the staged update is committed."""
        # Act
        update = ledger.stage_contribution("A", backend.trivial_encrypt(ETH))

        # Assert
        assert ledger.contribution_of("A") == ZERO_HANDLE
        assert ledger.totals() == (ZERO_HANDLE, ZERO_HANDLE)

        ledger.commit(update)
        assert ledger.contribution_of("A") == update.contribution
        assert ledger.points_of("A") == update.points
        assert ledger.totals() == (update.total_raised, update.total_points)

    def test_totals_are_sum_of_entries(self, ledger, backend):
        """Grand totals equal the sum of every contributor's entries."""
        # Arrange
        amounts = [("A", 3 * ETH), ("B", 1_500_000_000_000), ("A", 7), ("C", ETH + 1)]

        # Act
        for contributor, amount in amounts:
            ledger.commit(ledger.stage_contribution(contributor, backend.trivial_encrypt(amount)))

        # Assert
        total_raised, total_points = ledger.totals()
        contributions = sum(self.plaintext(backend, ledger.contribution_of(c)) for c in "ABC")
        points = sum(self.plaintext(backend, ledger.points_of(c)) for c in "ABC")
        assert self.plaintext(backend, total_raised) == contributions == sum(a for _, a in amounts)
        assert self.plaintext(backend, total_points) == points

    @pytest.mark.parametrize(
        "amount, points",
        [
            (ETH, 1_000_000),
            (POINTS_DIVISOR - 1, 0),
            (POINTS_DIVISOR, 1),
            (2 * POINTS_DIVISOR + POINTS_DIVISOR // 2, 2),
            (0, 0),
        ],
    )
    def test_points_truncate(self, ledger, backend, amount, points):
        """Points for one contribution are floor(amount / 10**12)."""
        # Act
        ledger.commit(ledger.stage_contribution("A", backend.trivial_encrypt(amount)))

        # Assert
        assert self.plaintext(backend, ledger.points_of("A")) == points
        assert self.plaintext(backend, ledger.contribution_of("A")) == amount

    def test_points_sum_of_truncated_quotients(self, ledger, backend):
        """Two contributions earn floor(a1/D) + floor(a2/D), not floor((a1+a2)/D)."""
        # Arrange
        a1 = a2 = POINTS_DIVISOR + POINTS_DIVISOR // 2

        # Act
        for amount in (a1, a2):
            ledger.commit(ledger.stage_contribution("A", backend.trivial_encrypt(amount)))

        # Assert
        points = self.plaintext(backend, ledger.points_of("A"))
        assert points == a1 // POINTS_DIVISOR + a2 // POINTS_DIVISOR == 2
        assert (a1 + a2) // POINTS_DIVISOR == 3
        assert self.plaintext(backend, ledger.totals()[1]) == 2
        assert self.plaintext(backend, ledger.contribution_of("A")) == a1 + a2

    def test_remainders_never_add_up(self, ledger, backend):
        """Sub-divisor amounts never earn points however many there are."""
        # Act
        for _ in range(5):
            ledger.commit(ledger.stage_contribution("A", backend.trivial_encrypt(POINTS_DIVISOR - 1)))

        # Assert
        assert self.plaintext(backend, ledger.points_of("A")) == 0
        assert self.plaintext(backend, ledger.contribution_of("A")) == 5 * (POINTS_DIVISOR - 1)
