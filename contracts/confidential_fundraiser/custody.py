"""
Fund Custody for the Confidential Fundraiser

Holds the public value attached to contributions until the fundraiser ends
the campaign, then sweeps everything to the fundraiser in one transfer.

Two custodies are provided:
- InMemoryCustody: wallet balances kept in process (tests, local runs)
- AlgorandCustody: an escrow account on Algorand, funded by payments the
  contributors sign and swept with a closing PaymentTxn so the full
  balance moves in a single transaction
"""

import logging
from typing import Optional, Protocol

from algosdk import account, error, mnemonic, transaction
from algosdk.v2client import algod

from contracts.confidential_fundraiser.errors import InsufficientFunds, SweepPending, TransferError


logger = logging.getLogger(__name__)

ALGOD_ERRORS = (error.AlgodHTTPError, error.AlgodRequestError)


class Custody(Protocol):
    address: str

    def receive(self, sender: str, amount: int, payment: Optional[transaction.SignedTransaction] = None) -> None:
        """Take `amount` from `sender` into custody. All-or-nothing."""
        ...

    def balance(self) -> int:
        """Value currently held."""
        ...

    def sweep(self, destination: str) -> int:
        """Move the entire held balance to `destination`. All-or-nothing."""
        ...


class InMemoryCustody:
    """
    In-process custody with simple wallet balances.

    State Schema:
    - wallets: address -> spendable balance
    - held: value held on behalf of the campaign
    """

    def __init__(self, address: str):
        self.address = address
        self._wallets: dict[str, int] = {}
        self._held = 0
        self._sweep_failure: Optional[str] = None

    def fund(self, owner: str, amount: int) -> None:
        """Credit a wallet, e.g. to give a test contributor spendable value."""
        self._wallets[owner] = self._wallets.get(owner, 0) + amount

    def balance_of(self, owner: str) -> int:
        return self._wallets.get(owner, 0)

    def fail_next_sweep(self, reason: str = "Receiver rejected transfer") -> None:
        """Make the next `sweep` raise TransferError without moving funds."""
        self._sweep_failure = reason

    def receive(self, sender: str, amount: int, payment: Optional[transaction.SignedTransaction] = None) -> None:
        """Move `amount` between in-process wallets; `payment` is not used."""
        available = self._wallets.get(sender, 0)
        if available < amount:
            raise InsufficientFunds(f"{sender} holds {available}, needs {amount}")
        self._wallets[sender] = available - amount
        self._held += amount

    def balance(self) -> int:
        return self._held

    def sweep(self, destination: str) -> int:
        if self._sweep_failure is not None:
            reason, self._sweep_failure = self._sweep_failure, None
            raise TransferError(reason)

        amount = self._held
        self._held = 0
        self._wallets[destination] = self._wallets.get(destination, 0) + amount
        return amount


class AlgorandCustody:
    """
    Escrow account on Algorand.

    Contributions arrive as payments the contributor signs to the escrow;
    `receive` submits one and only returns once it is confirmed. The sweep
    closes the escrow to the destination, which transfers every microALGO
    held.

    State Schema:
    - received: ids of confirmed payments already counted
    - pending_sweep: (txid, last valid round) of an unconfirmed sweep
    """

    def __init__(self, algod_client: algod.AlgodClient, private_key: str, wait_rounds: int = 4):
        self._client = algod_client
        self._private_key = private_key
        self._wait_rounds = wait_rounds
        self.address = account.address_from_private_key(private_key)
        self._received: set[str] = set()
        self._pending_sweep: Optional[tuple[str, int]] = None

    @classmethod
    def from_mnemonic(cls, algod_client: algod.AlgodClient, escrow_mnemonic: str) -> "AlgorandCustody":
        return cls(algod_client, mnemonic.to_private_key(escrow_mnemonic))

    def receive(self, sender: str, amount: int, payment: Optional[transaction.SignedTransaction] = None) -> None:
        """
        Submit the contributor's signed payment and wait for it to confirm.

        Args:
            sender: Contributor address, must be the payment's sender
            amount: Public value, must equal the payment amount
            payment: Signed PaymentTxn from `sender` to the escrow

        Raises:
            TransferError: Payment missing, not matching, already counted,
                rejected or not confirmed
        """
        txn = payment.transaction if isinstance(payment, transaction.SignedTransaction) else None
        if not isinstance(txn, transaction.PaymentTxn):
            raise TransferError("Signed payment required")
        if txn.sender != sender:
            raise TransferError("Payment must come from contributor")
        if txn.receiver != self.address:
            raise TransferError("Payment must go to escrow")
        if txn.amt != amount:
            raise TransferError(f"Payment of {txn.amt} does not match value {amount}")
        if txn.close_remainder_to:
            raise TransferError("Payment must not close sender account")

        tx_id = payment.get_txid()
        if tx_id in self._received:
            raise TransferError(f"Payment {tx_id} already counted")

        try:
            self._client.send_transaction(payment)
            transaction.wait_for_confirmation(self._client, tx_id, self._wait_rounds)
        except (*ALGOD_ERRORS, error.TransactionRejectedError, error.ConfirmationTimeoutError) as e:
            # The wallet may have submitted it already
            if not self._confirmed(tx_id):
                raise TransferError(f"Payment {tx_id} not confirmed: {e}") from e

        self._received.add(tx_id)
        logger.debug("Payment %s of %d from %s confirmed", tx_id, amount, sender)

    def balance(self) -> int:
        """
        Spendable escrow balance.

        Returns:
            Balance in microALGOs above the account's minimum balance
        """
        info = self._client.account_info(self.address)
        return info["amount"] - info.get("min-balance", 0)

    def sweep(self, destination: str) -> int:
        """
        Close the escrow account to `destination`.

        A sweep that times out is remembered. The next call settles it
        instead of submitting a second closing payment, unless its validity
        window has passed.

        Args:
            destination: Receiver of the full balance

        Returns:
            Amount transferred in microALGOs

        Raises:
            TransferError: The transaction was rejected; nothing moved
            SweepPending: The transaction was sent but is not confirmed yet
        """
        if self._pending_sweep is not None:
            tx_id, last_valid = self._pending_sweep
            info = self._lookup(tx_id)
            if info.get("confirmed-round", 0) > 0:
                self._pending_sweep = None
                return self._swept(info, destination, tx_id)
            if not info.get("pool-error") and self._client.status()["last-round"] <= last_valid:
                raise SweepPending(f"Sweep {tx_id} to {destination} not confirmed yet")
            logger.warning("Sweep %s expired or was rejected, resubmitting", tx_id)
            self._pending_sweep = None

        try:
            params = self._client.suggested_params()
            txn = transaction.PaymentTxn(
                sender=self.address,
                sp=params,
                receiver=destination,
                amt=0,
                close_remainder_to=destination,
                note=b"confidential-fundraiser-sweep",
            )
            signed = txn.sign(self._private_key)
            tx_id = self._client.send_transaction(signed)
        except ALGOD_ERRORS as e:
            raise TransferError(f"Sweep to {destination} failed: {e}") from e

        try:
            result = transaction.wait_for_confirmation(self._client, tx_id, self._wait_rounds)
        except error.TransactionRejectedError as e:
            raise TransferError(f"Sweep to {destination} failed: {e}") from e
        except (*ALGOD_ERRORS, error.ConfirmationTimeoutError) as e:
            result = self._lookup(tx_id)
            if result.get("pool-error"):
                raise TransferError(f"Sweep to {destination} failed: {result['pool-error']}") from e
            if result.get("confirmed-round", 0) == 0:
                self._pending_sweep = (tx_id, params.last)
                logger.warning("Sweep %s to %s not confirmed yet", tx_id, destination)
                raise SweepPending(f"Sweep {tx_id} to {destination} not confirmed yet") from e

        return self._swept(result, destination, tx_id)

    def _swept(self, result: dict, destination: str, tx_id: str) -> int:
        amount = result.get("closing-amount", 0)
        logger.info("Swept %d microALGOs to %s in %s", amount, destination, tx_id)
        return amount

    def _lookup(self, tx_id: str) -> dict:
        try:
            return self._client.pending_transaction_info(tx_id)
        except ALGOD_ERRORS:
            return {}

    def _confirmed(self, tx_id: str) -> bool:
        info = self._lookup(tx_id)
        return info.get("confirmed-round", 0) > 0 and not info.get("pool-error")
