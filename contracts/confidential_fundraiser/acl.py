"""
Access Control List for ciphertext handles.

Append-only capability table mapping (handle, principal) to an allowance.
Entries are only ever added; there is no revoke operation.
"""

import logging

from contracts.confidential_fundraiser.encrypted import Handle


logger = logging.getLogger(__name__)


class AccessControlList:
    """
    Capability table.

    State Schema:
    - grants: set of (handle, principal) pairs
    """

    def __init__(self) -> None:
        self._grants: set[tuple[Handle, str]] = set()

    def allow(self, handle: Handle, principal: str) -> bool:
        """
        Record a capability.

        Args:
            handle: Ciphertext handle
            principal: Address receiving the capability

        Returns:
            True if the grant is new, False if it already existed
        """
        key = (bytes(handle), principal)
        if key in self._grants:
            return False
        self._grants.add(key)
        logger.debug("Granted %s on handle %s", principal, handle.hex()[:16])
        return True

    def is_allowed(self, handle: Handle, principal: str) -> bool:
        return (bytes(handle), principal) in self._grants

    def __len__(self) -> int:
        return len(self._grants)
