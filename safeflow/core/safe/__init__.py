"""
Safe Transaction Layer

Hashing, signing, batching and local simulation of transactions executed by
a threshold multi-owner account:
- transaction_digest: canonical EIP-712 Safe transaction hash
- encode_batch / decode_batch: MultiSend payloads for atomic batches
- LocalKeySigner, DeviceSigner, SyntheticSigner: signature strategies
- aggregate: owner-ordered signature blob
- ExecutionSimulator: run execTransaction on a StateStore
- DeploymentVerifier: post-condition check for deterministic deployments

Usage:
    from safeflow.core.safe import SafeTransaction, transaction_digest

    tx = SafeTransaction(to="0x...", data=b"", nonce=5)
    digest = transaction_digest(1, safe_address, tx)
"""

from .models import (
    ZERO_ADDRESS,
    Operation,
    ExecutionMode,
    RevertKind,
    SafeTransaction,
    Signature,
    SigningRequest,
    Success,
    Reverted,
    VerifierRejected,
    SimulationOutcome,
    DeploymentStatus,
    DeploymentCheck,
    RunResult,
)

from .digest import (
    transaction_digest,
    domain_separator,
    safe_tx_typed_data,
    encode_exec_transaction,
)

from .multisend import (
    BatchCall,
    encode_batch,
    decode_batch,
)

from .signer import (
    SigningMode,
    DeviceSignerConfig,
    Signer,
    LocalKeySigner,
    DeviceSigner,
    SyntheticSigner,
    build_signer,
)

from .aggregator import aggregate
from .revert import decode_revert
from .nonce import RunNonceTracker
from .mode import ModeDetector, NativeDetector, EnvOverrideDetector, ModeResolver, ModeUnavailable
from .simulator import ExecutionSimulator
from .deployment import DeploymentVerifier, compute_create2_address

__all__ = [
    # Models
    "ZERO_ADDRESS",
    "Operation",
    "ExecutionMode",
    "RevertKind",
    "SafeTransaction",
    "Signature",
    "SigningRequest",
    "Success",
    "Reverted",
    "VerifierRejected",
    "SimulationOutcome",
    "DeploymentStatus",
    "DeploymentCheck",
    "RunResult",
    # Digest
    "transaction_digest",
    "domain_separator",
    "safe_tx_typed_data",
    "encode_exec_transaction",
    # Batch
    "BatchCall",
    "encode_batch",
    "decode_batch",
    # Signing
    "SigningMode",
    "DeviceSignerConfig",
    "Signer",
    "LocalKeySigner",
    "DeviceSigner",
    "SyntheticSigner",
    "build_signer",
    "aggregate",
    # Execution
    "decode_revert",
    "RunNonceTracker",
    "ModeDetector",
    "NativeDetector",
    "EnvOverrideDetector",
    "ModeResolver",
    "ModeUnavailable",
    "ExecutionSimulator",
    "DeploymentVerifier",
    "compute_create2_address",
]
