"""
Safe transaction models and result types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional, Union

from eth_utils import to_checksum_address

from ..errors import SimulationRejected

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class Operation(IntEnum):
    """Call kind executed by the account."""
    CALL = 0
    DELEGATECALL = 1


class ExecutionMode(str, Enum):
    """Whether a run simulates locally or proposes to the coordination service."""
    SIMULATION = "simulation"
    PROPOSAL = "proposal"


class RevertKind(str, Enum):
    RETURNED_FALSE = "returned_false"   # account caught the inner failure
    ERROR = "error"                     # Error(string)
    PANIC = "panic"                     # Panic(uint256)
    RAW = "raw"                         # undecodable payload
    EMPTY = "empty"                     # revert without data


@dataclass(frozen=True)
class SafeTransaction:
    """
    A transaction the account will execute.

    Gas parameters, gas token and refund receiver are always zero and are
    therefore not stored; they only appear in the digest and request body.
    """
    to: str
    value: int = 0
    data: bytes = b""
    operation: Operation = Operation.CALL
    nonce: int = 0

    def __post_init__(self):
        object.__setattr__(self, "to", to_checksum_address(self.to))
        object.__setattr__(self, "operation", Operation(self.operation))
        if self.value < 0:
            raise ValueError("Value must be non-negative")
        if self.nonce < 0:
            raise ValueError("Nonce must be non-negative")

    @property
    def data_hex(self) -> str:
        return "0x" + self.data.hex()


@dataclass(frozen=True)
class Signature:
    """ECDSA-style signature in the verifier's packed layout (r, s, v)."""
    v: int
    r: int
    s: int

    def to_bytes(self) -> bytes:
        return self.r.to_bytes(32, "big") + self.s.to_bytes(32, "big") + bytes([self.v])

    def to_hex(self) -> str:
        return "0x" + self.to_bytes().hex()

    @classmethod
    def from_bytes(cls, raw: bytes) -> "Signature":
        if len(raw) != 65:
            raise ValueError(f"Signature must be 65 bytes, got {len(raw)}")
        return cls(
            v=raw[64],
            r=int.from_bytes(raw[:32], "big"),
            s=int.from_bytes(raw[32:64], "big"),
        )

    @classmethod
    def from_hex(cls, value: str) -> "Signature":
        hex_data = value[2:] if value.startswith("0x") else value
        return cls.from_bytes(bytes.fromhex(hex_data.strip()))


@dataclass(frozen=True)
class SigningRequest:
    """Everything a signer may need to produce a signature for one attempt."""
    chain_id: int
    account: str
    transaction: SafeTransaction
    digest: bytes


@dataclass(frozen=True)
class Success:
    return_data: bytes = b""

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Reverted:
    kind: RevertKind
    reason: Optional[str] = None
    raw: bytes = b""
    panic_code: Optional[int] = None

    @property
    def ok(self) -> bool:
        return False

    def describe(self) -> str:
        if self.kind == RevertKind.RETURNED_FALSE:
            return "execution returned false; enable the debug bypass to see the inner revert"
        if self.reason is not None:
            return self.reason
        if self.raw:
            return "0x" + self.raw.hex()
        return "reverted without data"


@dataclass(frozen=True)
class VerifierRejected:
    code: str
    reason: str

    @property
    def ok(self) -> bool:
        return False

    def describe(self) -> str:
        return f"{self.code}: {self.reason}"


SimulationOutcome = Union[Success, Reverted, VerifierRejected]


class DeploymentStatus(str, Enum):
    SKIPPED = "skipped"       # code existed before the attempt
    VERIFIED = "verified"     # code present after a successful simulation


@dataclass(frozen=True)
class DeploymentCheck:
    address: str
    status: DeploymentStatus
    code_size: int = 0


@dataclass
class RunResult:
    """Uniform result returned by the orchestrator for either mode."""
    mode: ExecutionMode
    account: str
    chain_id: int
    transaction: Optional[SafeTransaction] = None
    digest: Optional[bytes] = None
    outcome: Optional[SimulationOutcome] = None
    proposed: bool = False
    deployment: Optional[DeploymentCheck] = None
    signers: List[str] = field(default_factory=list)

    @property
    def skipped(self) -> bool:
        return self.deployment is not None and self.deployment.status == DeploymentStatus.SKIPPED

    @property
    def ok(self) -> bool:
        if self.skipped or self.proposed:
            return True
        return self.outcome is not None and self.outcome.ok

    @property
    def digest_hex(self) -> Optional[str]:
        return "0x" + self.digest.hex() if self.digest is not None else None

    def raise_for_outcome(self) -> "RunResult":
        """Raise SimulationRejected when a simulated attempt did not succeed."""
        if self.outcome is not None and not self.outcome.ok:
            raise SimulationRejected(self.outcome, digest=self.digest_hex)
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.value,
            "account": self.account,
            "chainId": self.chain_id,
            "nonce": self.transaction.nonce if self.transaction else None,
            "digest": self.digest_hex,
            "proposed": self.proposed,
            "ok": self.ok,
            "outcome": type(self.outcome).__name__ if self.outcome else None,
            "deployment": self.deployment.status.value if self.deployment else None,
        }
