"""
Encrypted Value Primitive

Interface to the encrypted-arithmetic runtime consumed by the fundraiser.
Values are opaque 128-bit unsigned integers referenced by 32-byte handles.
A handle reveals nothing about its plaintext and is safe to publish.

Any backend (homomorphic encryption coprocessor, secure enclave, or the
simulated `Coprocessor` used for tests and local runs) can stand behind this
interface without changes to the campaign logic.
"""

from typing import Protocol


Handle = bytes

# Handle returned for ledger entries that were never written
ZERO_HANDLE: Handle = bytes(32)

UINT64_MAX = 2**64 - 1
UINT128_MAX = 2**128 - 1
UINT256_MAX = 2**256 - 1


class EncryptedBackend(Protocol):
    """Primitives the fundraiser needs from the encrypted runtime."""

    def trivial_encrypt(self, value: int) -> Handle:
        """Encrypt a public constant (used for the encrypted zero)."""
        ...

    def ingest_external(
        self,
        handle: Handle,
        proof: bytes,
        contract: str,
        user: str,
    ) -> Handle:
        """
        Convert an externally encrypted value into a trusted internal one.

        Raises:
            InvalidInputProof: If the proof does not bind the handle to
                this contract and this user.
        """
        ...

    def add(self, lhs: Handle, rhs: Handle) -> Handle:
        """Homomorphic addition. Raises AmountOverflow beyond 128 bits."""
        ...

    def div_floor(self, value: Handle, divisor: int) -> Handle:
        """Homomorphic division by a public constant, truncating."""
        ...

    def grant_access(self, value: Handle, principal: str) -> None:
        """Give `principal` a persistent capability over `value`."""
        ...

    def is_allowed(self, value: Handle, principal: str) -> bool:
        ...
