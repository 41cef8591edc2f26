"""
Chain-state collaborator interface.

Simulation only needs a handful of primitives from the host environment:
single-slot storage reads/writes, a code query, caller impersonation for the
next call and a way to invoke a contract and observe its return or revert
data. Approval records are written through ``write_approval`` so the
verifier's storage layout stays behind this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from eth_abi import encode
from eth_utils import keccak, to_checksum_address

# Safe v1.3.0 / v1.4.1 storage layout.
OWNERS_SLOT = 2
OWNER_COUNT_SLOT = 3
THRESHOLD_SLOT = 4
NONCE_SLOT = 5
APPROVED_HASHES_SLOT = 8


def mapping_slot(key: bytes, slot: int) -> int:
    """Solidity storage location of ``mapping[key]`` declared at ``slot``."""
    return int.from_bytes(keccak(key.rjust(32, b"\x00") + slot.to_bytes(32, "big")), "big")


def address_key(address: str) -> bytes:
    return encode(["address"], [to_checksum_address(address)])


def approved_hash_slot(owner: str, digest: bytes) -> int:
    """Location of ``approvedHashes[owner][digest]``."""
    outer = mapping_slot(address_key(owner), APPROVED_HASHES_SLOT)
    return mapping_slot(digest, outer)


@dataclass(frozen=True)
class CallResult:
    success: bool
    return_data: bytes = b""


class StateStore(ABC):
    """Mutable chain-state snapshot used by the simulator."""

    @abstractmethod
    def load(self, address: str, slot: int) -> bytes:
        """Read one 32-byte storage word."""
        pass

    @abstractmethod
    def store(self, address: str, slot: int, value: bytes) -> None:
        """Overwrite one 32-byte storage word."""
        pass

    @abstractmethod
    def get_code(self, address: str) -> bytes:
        pass

    @abstractmethod
    def prank(self, caller: str) -> None:
        """Make ``caller`` the sender of the next ``call`` only."""
        pass

    @abstractmethod
    def call(self, to: str, data: bytes, value: int = 0) -> CallResult:
        """Invoke ``to`` and commit its state changes unless it reverts."""
        pass

    def has_code(self, address: str) -> bool:
        return len(self.get_code(address)) > 0

    def write_approval(self, account: str, digest: bytes, owner: str) -> None:
        """Mark ``digest`` as approved by ``owner`` on ``account``."""
        self.store(account, approved_hash_slot(owner, digest), (1).to_bytes(32, "big"))

    def clear_approval(self, account: str, digest: bytes, owner: str) -> None:
        self.store(account, approved_hash_slot(owner, digest), bytes(32))

    def read_nonce(self, account: str) -> int:
        """Current on-chain nonce of ``account``."""
        return int.from_bytes(self.load(account, NONCE_SLOT), "big")
