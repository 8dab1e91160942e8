"""
Error types for the Confidential Fundraiser.

Every public operation is all-or-nothing: when one of these is raised,
no campaign, ledger, settlement or permission state has changed.
"""


class FundraiserError(Exception):
    """Base class for every error raised by the fundraiser."""


# Configuration errors

class AlreadyCreated(FundraiserError):
    """A campaign already exists for this deployment."""

    def __init__(self, message: str = "Campaign already created"):
        super().__init__(message)


class InvalidConfig(FundraiserError):
    """Campaign arguments failed validation."""


# Lifecycle errors

class CampaignInactive(FundraiserError):
    def __init__(self, message: str = "Campaign not active"):
        super().__init__(message)


class CampaignAlreadyEnded(CampaignInactive):
    """Deadline passed or campaign ended; also a CampaignInactive."""

    def __init__(self, message: str = "Campaign ended"):
        super().__init__(message)


class Unauthorized(FundraiserError):
    def __init__(self, message: str = "Only fundraiser can end campaign"):
        super().__init__(message)


# Input errors

class ZeroContribution(FundraiserError):
    def __init__(self, message: str = "Contribution must be positive"):
        super().__init__(message)


class InvalidInputProof(FundraiserError):
    """An external ciphertext was rejected during ingestion."""


class AmountOverflow(FundraiserError):
    """A value or accumulator would not fit in 128 bits."""


# Transfer errors

class TransferError(FundraiserError):
    """The custody could not move funds."""


class InsufficientFunds(TransferError):
    pass


class WithdrawalFailed(FundraiserError):
    def __init__(self, message: str = "Withdrawal failed"):
        super().__init__(message)


class SweepPending(FundraiserError):
    """A sweep was submitted but is not confirmed yet; it may still settle."""

    def __init__(self, message: str = "Withdrawal pending"):
        super().__init__(message)



# Access errors

class UnknownHandle(FundraiserError):
    """No ciphertext exists for this handle."""


class AccessDenied(FundraiserError):
    """The principal holds no capability on this ciphertext."""
