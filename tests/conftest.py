"""
Shared fixtures for the Confidential Fundraiser tests.
"""

from typing import NamedTuple

import pytest
from algosdk import account, logic

from contracts.confidential_fundraiser.contract import ConfidentialFundraiser
from contracts.confidential_fundraiser.coprocessor import Coprocessor, sign_decryption_request
from contracts.confidential_fundraiser.custody import InMemoryCustody


ETH = 10**18
START_TIME = 1_700_000_000


class Wallet(NamedTuple):
    private_key: str
    address: str


class FakeClock:
    """Settable stand-in for time.time."""

    def __init__(self, now: int = START_TIME):
        self.now = now

    def __call__(self) -> int:
        return self.now


def new_wallet() -> Wallet:
    private_key, address = account.generate_account()
    return Wallet(private_key, address)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def coprocessor() -> Coprocessor:
    return Coprocessor()


@pytest.fixture
def fundraiser_wallet() -> Wallet:
    return new_wallet()


@pytest.fixture
def alice() -> Wallet:
    return new_wallet()


@pytest.fixture
def bob() -> Wallet:
    return new_wallet()


@pytest.fixture
def custody(alice: Wallet, bob: Wallet) -> InMemoryCustody:
    custody = InMemoryCustody(logic.get_application_address(1234))
    custody.fund(alice.address, 10 * ETH)
    custody.fund(bob.address, 10 * ETH)
    return custody


@pytest.fixture
def fundraiser(coprocessor: Coprocessor, custody: InMemoryCustody, clock: FakeClock) -> ConfidentialFundraiser:
    return ConfidentialFundraiser(coprocessor, custody, clock=clock)


@pytest.fixture
def campaign(fundraiser: ConfidentialFundraiser, fundraiser_wallet: Wallet, clock: FakeClock) -> ConfidentialFundraiser:
    """Fundraiser with an active 'Rocket Launch' campaign ending in one hour."""
    fundraiser.create_campaign("Rocket Launch", 5 * ETH, clock.now + 3600, fundraiser_wallet.address)
    return fundraiser


@pytest.fixture
def contribute_as(fundraiser: ConfidentialFundraiser, coprocessor: Coprocessor):
    """Encrypt `amount` for `wallet` and contribute it with `value` attached."""

    def contribute(wallet: Wallet, amount: int, value=None) -> None:
        encrypted = coprocessor.encrypt_input(fundraiser.address, wallet.address, amount)
        fundraiser.contribute(
            encrypted.handle,
            encrypted.proof,
            amount if value is None else value,
            wallet.address,
        )

    return contribute


@pytest.fixture
def decrypt_as(fundraiser: ConfidentialFundraiser, coprocessor: Coprocessor):
    """Run a signed user decryption of `handle` for `wallet`."""

    def decrypt(wallet: Wallet, handle: bytes) -> int:
        authorization = sign_decryption_request(handle, fundraiser.address, wallet.private_key)
        return coprocessor.user_decrypt(handle, fundraiser.address, wallet.address, authorization)

    return decrypt
