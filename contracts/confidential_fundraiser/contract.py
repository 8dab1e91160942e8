"""
Confidential Fundraiser for a single campaign

One fundraiser runs one campaign. Contributors attach a public value and an
encrypted copy of the amount. The public value settles the campaign; the
encrypted copy feeds a shadow ledger of per-contributor balances and reward
points that only the entitled principals can decrypt.

Features:
- Create the campaign once, with name, informational target and deadline
- Contribute with a public value plus an attested encrypted amount
- Encrypted per-contributor contribution and points balances
- Encrypted grand totals readable by the fundraiser only
- End the campaign and sweep every held unit to the fundraiser

Lifecycle:
- UNINITIALIZED -> ACTIVE on create_campaign
- ACTIVE -> ENDED on end_campaign
- No state is re-entered

Every mutating call is serialized and all-or-nothing: checks and fallible
steps run first against staged values, and campaign, ledger and settlement
state is only written once nothing can fail anymore.
"""

import enum
import logging
import threading
import time
from dataclasses import dataclass, replace
from typing import Callable, Optional

from algosdk import encoding, transaction
from algosdk.v2client import algod

from contracts.confidential_fundraiser.config import Settings, get_algod_client
from contracts.confidential_fundraiser.custody import AlgorandCustody, Custody
from contracts.confidential_fundraiser.encrypted import (
    EncryptedBackend,
    Handle,
    UINT64_MAX,
    UINT256_MAX,
)
from contracts.confidential_fundraiser.errors import (
    AlreadyCreated,
    CampaignAlreadyEnded,
    CampaignInactive,
    InvalidConfig,
    SweepPending,
    TransferError,
    Unauthorized,
    WithdrawalFailed,
    ZeroContribution,
)
from contracts.confidential_fundraiser.events import (
    CampaignCreated,
    CampaignEnded,
    ContributionReceived,
    EventLog,
)
from contracts.confidential_fundraiser.ledger import ConfidentialLedger
from contracts.confidential_fundraiser.permissions import PermissionManager
from contracts.confidential_fundraiser.settlement import SettlementTracker


logger = logging.getLogger(__name__)

# Fundraiser reported before any campaign exists
ZERO_ADDRESS = encoding.encode_address(bytes(32))


class CampaignState(enum.Enum):
    UNINITIALIZED = 0
    ACTIVE = 1
    ENDED = 2


@dataclass(frozen=True)
class Campaign:
    name: str
    target_amount: int
    end_timestamp: int
    fundraiser: str
    is_active: bool = True


class ConfidentialFundraiser:
    """
    Campaign engine.

    State Schema:
    - state: lifecycle state
    - campaign: Campaign record, None until created
    - ledger: encrypted contributions, points and totals
    - settlement: plaintext total raised and held funds
    - events: append-only event log
    - sweep_pending: a withdrawal was sent but not confirmed yet
    """

    def __init__(
        self,
        backend: EncryptedBackend,
        custody: Custody,
        address: Optional[str] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Args:
            backend: Encrypted-arithmetic runtime
            custody: Holder of the public value attached to contributions
            address: Identity input proofs are bound to (default: custody address)
            clock: Returns the current unix time (default: time.time)
        """
        self.address = address or custody.address
        self._backend = backend
        self._clock = clock or time.time
        self._lock = threading.RLock()

        self._state = CampaignState.UNINITIALIZED
        self._campaign: Optional[Campaign] = None
        self._sweep_pending = False
        self._ledger = ConfidentialLedger(backend)
        self._permissions = PermissionManager(backend, self.address)
        self._settlement = SettlementTracker(custody)
        self.events = EventLog()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        backend: EncryptedBackend,
        algod_client: Optional[algod.AlgodClient] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> "ConfidentialFundraiser":
        """Build a fundraiser whose funds sit in an Algorand escrow account."""
        if not settings.escrow_mnemonic:
            raise InvalidConfig("ESCROW_MNEMONIC is not set")
        client = algod_client or get_algod_client(settings)
        custody = AlgorandCustody.from_mnemonic(client, settings.escrow_mnemonic)
        return cls(backend, custody, address=settings.contract_address, clock=clock)

    def _now(self) -> int:
        return int(self._clock())

    @property
    def state(self) -> CampaignState:
        return self._state

    # Mutations

    def create_campaign(self, name: str, target_amount: int, end_timestamp: int, sender: str) -> None:
        """
        Create the campaign. Only one campaign can ever exist.

        Args:
            name: Campaign name, non-empty
            target_amount: Informational goal, never enforced
            end_timestamp: Unix deadline, must be in the future
            sender: Creator, becomes the fundraiser

        Raises:
            AlreadyCreated: A campaign already exists
            InvalidConfig: An argument failed validation
        """
        with self._lock:
            if self._state is not CampaignState.UNINITIALIZED:
                raise AlreadyCreated()
            if not isinstance(name, str) or not name.strip():
                raise InvalidConfig("Name must not be empty")
            if not 0 < target_amount <= UINT256_MAX:
                raise InvalidConfig("Target must be positive")
            if not self._now() < end_timestamp <= UINT64_MAX:
                raise InvalidConfig("End time must be future")
            if not encoding.is_valid_address(sender):
                raise InvalidConfig("Fundraiser must be a valid address")

            self._campaign = Campaign(name, target_amount, end_timestamp, sender)
            self._state = CampaignState.ACTIVE

            logger.info("Campaign %r created by %s", name, sender)
            self.events.emit(CampaignCreated(name, target_amount, end_timestamp, sender))

    def contribute(
        self,
        encrypted_amount: Handle,
        proof: bytes,
        value: int,
        sender: str,
        payment: Optional[transaction.SignedTransaction] = None,
    ) -> None:
        """
        Contribute to the campaign.

        `value` is the public transfer taken into custody. The encrypted
        amount is ingested, added to the sender's balance and the totals,
        and converted to points at one point per 10**12 units.

        Args:
            encrypted_amount: Handle of the externally encrypted amount
            proof: Attestation binding the handle to this contract and sender
            value: Public value attached to the contribution
            sender: Contributor address
            payment: Signed payment of `value` to the escrow, for custodies
                that settle on-chain

        Raises:
            CampaignInactive: Campaign not created or withdrawal pending
            CampaignAlreadyEnded: Campaign ended or deadline reached
            ZeroContribution: No value attached
            InvalidInputProof: Encrypted amount rejected
            AmountOverflow: A total would exceed 128 bits
            TransferError: Custody could not take the value
        """
        with self._lock:
            if self._state is CampaignState.UNINITIALIZED:
                raise CampaignInactive()
            campaign = self._campaign
            if self._state is CampaignState.ENDED or self._now() >= campaign.end_timestamp:
                raise CampaignAlreadyEnded()
            if self._sweep_pending:
                raise CampaignInactive("Withdrawal pending")
            if value <= 0:
                raise ZeroContribution()

            amount = self._backend.ingest_external(encrypted_amount, proof, self.address, sender)
            update = self._ledger.stage_contribution(sender, amount)
            total = self._settlement.stage(value)

            grants = self._permissions.plan(update, campaign.fundraiser)

            # Last fallible step
            self._settlement.custody.receive(sender, value, payment)

            self._ledger.commit(update)
            self._settlement.commit(total)
            self._permissions.apply(grants)
            self.events.emit(ContributionReceived(sender, value))

    def end_campaign(self, sender: str) -> None:
        """
        End the campaign and sweep every held unit to the fundraiser.

        Args:
            sender: Must be the fundraiser

        Raises:
            Unauthorized: Sender is not the fundraiser
            CampaignInactive: Campaign not active
            WithdrawalFailed: Sweep failed; the campaign stays active
            SweepPending: Sweep sent but unconfirmed; call again to settle it
        """
        with self._lock:
            campaign = self._campaign
            if campaign is None or sender != campaign.fundraiser:
                raise Unauthorized()
            if self._state is not CampaignState.ACTIVE:
                raise CampaignInactive()

            try:
                amount = self._settlement.sweep(campaign.fundraiser)
            except SweepPending:
                self._sweep_pending = True
                raise
            except TransferError as e:
                self._sweep_pending = False
                logger.warning("Withdrawal to %s failed: %s", campaign.fundraiser, e)
                raise WithdrawalFailed(f"Withdrawal failed: {e}") from e

            self._sweep_pending = False
            self._campaign = replace(campaign, is_active=False)
            self._state = CampaignState.ENDED

            logger.info("Campaign %r ended, %d transferred", campaign.name, amount)
            self.events.emit(CampaignEnded(campaign.fundraiser, amount, self._now()))

    # Reads

    def get_campaign_info(self) -> tuple[str, int, int, str, bool, int]:
        """
        Get campaign details.

        Returns:
            Tuple of (name, target_amount, end_timestamp, fundraiser,
            is_active, total_raised); defaults before creation
        """
        campaign = self._campaign
        total_raised = self._settlement.total_raised
        if campaign is None:
            return ("", 0, 0, ZERO_ADDRESS, False, total_raised)
        return (
            campaign.name,
            campaign.target_amount,
            campaign.end_timestamp,
            campaign.fundraiser,
            campaign.is_active,
            total_raised,
        )

    def get_encrypted_contribution(self, contributor: str) -> Handle:
        return self._ledger.contribution_of(contributor)

    def get_encrypted_points(self, contributor: str) -> Handle:
        return self._ledger.points_of(contributor)

    def get_encrypted_totals(self) -> tuple[Handle, Handle]:
        """
        Returns:
            Tuple of (encrypted total raised, encrypted total points)
        """
        return self._ledger.totals()

    def held_balance(self) -> int:
        return self._settlement.held_balance()
