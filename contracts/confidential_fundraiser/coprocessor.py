"""
Simulated Encryption Coprocessor

In-process stand-in for the encrypted-arithmetic runtime. It implements the
`EncryptedBackend` primitives and the client-side helpers a wallet would use
(encrypting inputs, requesting a user decryption).

Plaintexts live only inside the coprocessor, keyed by handle. Handles are
SHA-256 digests of the operation, its operands and a nonce, so every result
gets a fresh handle and two principals never share one.

Attestation:
- Input proofs are ed25519 signatures by the coprocessor's attestation key
  over (handle, contract, user), produced with algosdk's `sign_bytes`.
- Decryption requests are signed by the user's own Algorand key and are only
  honoured when the capability table allows both the user and the contract.
"""

import hashlib
import logging
from typing import NamedTuple, Optional

from algosdk import account, encoding, util

from contracts.confidential_fundraiser.acl import AccessControlList
from contracts.confidential_fundraiser.encrypted import Handle, UINT128_MAX, ZERO_HANDLE
from contracts.confidential_fundraiser.errors import (
    AccessDenied,
    AmountOverflow,
    InvalidInputProof,
    UnknownHandle,
)


logger = logging.getLogger(__name__)


class EncryptedInput(NamedTuple):
    """Ciphertext handle plus its proof, as submitted with `contribute`."""

    handle: Handle
    proof: bytes


def _input_message(handle: Handle, contract: str, user: str) -> bytes:
    return b"|".join([b"fhe-input", handle, contract.encode(), user.encode()])


def _decrypt_message(handle: Handle, contract: str) -> bytes:
    return b"|".join([b"fhe-decrypt", handle, contract.encode()])


def sign_decryption_request(handle: Handle, contract: str, private_key: str) -> str:
    """
    Sign a user decryption request.

    Args:
        handle: Ciphertext handle to decrypt
        contract: Address of the contract that owns the value
        private_key: Requesting user's Algorand private key

    Returns:
        Base64 signature to pass to `Coprocessor.user_decrypt`
    """
    return util.sign_bytes(_decrypt_message(handle, contract), private_key)


class Coprocessor:
    """
    Simulated 128-bit encrypted integer runtime.

    State Schema:
    - plaintexts: handle -> value, never exposed without a capability check
    - external_inputs: handles created through `encrypt_input`
    - acl: append-only capability table
    """

    def __init__(self, attestation_key: Optional[str] = None):
        if attestation_key is None:
            attestation_key, _ = account.generate_account()
        self._attestation_key = attestation_key
        self.attestation_address = account.address_from_private_key(attestation_key)
        self._plaintexts: dict[Handle, int] = {}
        self._external_inputs: set[Handle] = set()
        self._nonce = 0
        self.acl = AccessControlList()

    # Internal storage

    def _store(self, op: bytes, value: int, *operands: bytes) -> Handle:
        if value < 0 or value > UINT128_MAX:
            raise AmountOverflow(f"Result of {op.decode()} does not fit in 128 bits")

        self._nonce += 1
        digest = hashlib.sha256()
        digest.update(op)
        for operand in operands:
            digest.update(operand)
        digest.update(self._nonce.to_bytes(8, "big"))
        handle = digest.digest()

        self._plaintexts[handle] = value
        logger.debug("%s -> %s", op.decode(), handle.hex()[:16])
        return handle

    def _load(self, handle: Handle) -> int:
        # Uninitialized values read as zero
        if handle == ZERO_HANDLE:
            return 0
        try:
            return self._plaintexts[handle]
        except KeyError:
            raise UnknownHandle(f"Unknown handle {handle.hex()}") from None

    # Client side

    def encrypt_input(self, contract: str, user: str, value: int) -> EncryptedInput:
        """
        Encrypt a 128-bit value for submission by `user` to `contract`.

        Args:
            contract: Address of the receiving contract
            user: Address of the submitting user
            value: Plaintext amount

        Returns:
            EncryptedInput with the handle and its attestation proof
        """
        handle = self._store(b"input", value, contract.encode(), user.encode())
        self._external_inputs.add(handle)
        signature = util.sign_bytes(_input_message(handle, contract, user), self._attestation_key)
        return EncryptedInput(handle, signature.encode())

    def user_decrypt(self, handle: Handle, contract: str, user: str, authorization: str) -> int:
        """
        Decrypt a value on behalf of `user`.

        Args:
            handle: Ciphertext handle
            contract: Address of the contract that owns the value
            user: Address of the requesting user
            authorization: Signature from `sign_decryption_request`

        Returns:
            Plaintext value

        Raises:
            AccessDenied: Bad signature, or no capability for user or contract
        """
        if handle == ZERO_HANDLE:
            return 0
        if not encoding.is_valid_address(user):
            raise AccessDenied("Invalid user address")
        if not util.verify_bytes(_decrypt_message(handle, contract), authorization, user):
            raise AccessDenied("Invalid decryption authorization")
        if not self.acl.is_allowed(handle, contract):
            raise AccessDenied("Contract is not allowed on this handle")
        if not self.acl.is_allowed(handle, user):
            raise AccessDenied(f"{user} is not allowed on this handle")
        return self._load(handle)

    # EncryptedBackend

    def trivial_encrypt(self, value: int) -> Handle:
        return self._store(b"trivial", value, value.to_bytes(16, "big"))

    def ingest_external(self, handle: Handle, proof: bytes, contract: str, user: str) -> Handle:
        if handle not in self._external_inputs:
            raise InvalidInputProof("Unknown input handle")
        try:
            signature = proof.decode("ascii")
        except UnicodeDecodeError:
            raise InvalidInputProof("Malformed input proof") from None
        if not util.verify_bytes(_input_message(handle, contract, user), signature, self.attestation_address):
            raise InvalidInputProof("Input proof does not match contract and sender")
        return self._store(b"verify", self._plaintexts[handle], handle)

    def add(self, lhs: Handle, rhs: Handle) -> Handle:
        return self._store(b"add", self._load(lhs) + self._load(rhs), lhs, rhs)

    def div_floor(self, value: Handle, divisor: int) -> Handle:
        if divisor <= 0:
            raise ValueError("Divisor must be positive")
        return self._store(b"div", self._load(value) // divisor, value, divisor.to_bytes(16, "big"))

    def grant_access(self, value: Handle, principal: str) -> None:
        self._load(value)
        self.acl.allow(value, principal)

    def is_allowed(self, value: Handle, principal: str) -> bool:
        return self.acl.is_allowed(value, principal)
