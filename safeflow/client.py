"""
Safe transaction orchestration.

A Client binds to one or more accounts through a push-only stack of
Instances; every operation acts on the top of the stack. Each attempt is
routed by the run mode:

    simulation:  digest -> synthetic approvals -> aggregate -> execute locally
                 -> optional deployment verification
    proposal:    digest -> primary signer -> coordination service

Usage:
    client = Client.from_settings()            # anvil at RPC_URL, logging configured
    client = Client(state)                     # any StateStore
    client.initialize(safe_address, chain_id=1, signers=[owner_a, owner_b])
    result = client.propose_transaction(target, calldata)
    result.raise_for_outcome()
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import structlog
from eth_utils import to_checksum_address

from .config import Settings, settings as default_settings
from .logging_config import setup_logging
from .core.chains.registry import ChainRegistry
from .core.errors import ConfigurationError, ShapeError
from .core.safe.aggregator import aggregate
from .core.safe.deployment import DeploymentVerifier
from .core.safe.digest import encode_exec_transaction, transaction_digest
from .core.safe.mode import ModeResolver
from .core.safe.models import (
    ExecutionMode,
    Operation,
    RunResult,
    SafeTransaction,
    Signature,
    SigningRequest,
)
from .core.safe.multisend import encode_batch
from .core.safe.nonce import RunNonceTracker
from .core.safe.signer import Signer, build_signer
from .core.safe.simulator import ExecutionSimulator
from .providers.safe_service import SafeServiceProvider, build_proposal_body
from .state.base import StateStore
from .state.rpc import RpcChainState

logger = structlog.stdlib.get_logger(__name__)


@dataclass
class Instance:
    """One account binding and its run-scoped state."""
    account: str
    chain_id: int
    signers: List[str]
    nonces: RunNonceTracker
    request_body: Optional[Dict[str, Any]] = None
    results: List[RunResult] = field(default_factory=list)

    @property
    def primary_signer(self) -> str:
        return self.signers[0]

    @property
    def is_multisig_simulation(self) -> bool:
        return len(self.signers) > 1


class Client:
    def __init__(
        self,
        state: StateStore,
        *,
        registry: Optional[ChainRegistry] = None,
        mode: Optional[ModeResolver] = None,
        signer: Optional[Signer] = None,
        service: Optional[SafeServiceProvider] = None,
        config: Optional[Settings] = None,
        debug_bypass: Optional[bool] = None,
    ):
        self.config = config or default_settings
        self.state = state
        self.registry = registry or ChainRegistry()
        self.mode_resolver = mode or ModeResolver()
        self.service = service or SafeServiceProvider(self.registry)
        self.simulator = ExecutionSimulator(
            state,
            debug_bypass=self.config.debug_bypass if debug_bypass is None else debug_bypass,
        )
        self.verifier = DeploymentVerifier(state)
        self._signer = signer
        self._instances: List[Instance] = []

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None, *, configure_logging: bool = True) -> "Client":
        """
        Build a client for a local dev node from configuration.

        This is the entry point for scripts: logging is configured from
        ``log_level`` and chain state is read through ``rpc_url``.
        """
        config = config or default_settings
        if configure_logging:
            setup_logging(config.log_level)
        return cls(RpcChainState(config.rpc_url), config=config)

    # -- instance stack -----------------------------------------------------

    def initialize(
        self,
        account: str,
        chain_id: int,
        signers: Union[str, Sequence[str]],
    ) -> Instance:
        """Push a new account binding; it stays active until the next push."""
        signer_list = [signers] if isinstance(signers, str) else list(signers)
        if not signer_list:
            raise ShapeError("At least one signer is required")
        self.registry.get(chain_id)

        account = to_checksum_address(account)
        instance = Instance(
            account=account,
            chain_id=chain_id,
            signers=[to_checksum_address(s) for s in signer_list],
            nonces=RunNonceTracker(account, chain_id),
        )
        self._instances.append(instance)
        logger.info(
            "instance_initialized",
            account=account,
            chain_id=chain_id,
            signers=len(instance.signers),
            depth=len(self._instances),
        )
        return instance

    @property
    def instance(self) -> Instance:
        if not self._instances:
            raise ConfigurationError("Client is not initialized; call initialize() first")
        return self._instances[-1]

    @property
    def depth(self) -> int:
        return len(self._instances)

    @property
    def mode(self) -> ExecutionMode:
        return self.mode_resolver.resolve()

    # -- building -----------------------------------------------------------

    def build_transaction(
        self,
        to: str,
        data: bytes = b"",
        value: int = 0,
        operation: Operation = Operation.CALL,
        *,
        nonce: Optional[int] = None,
    ) -> SafeTransaction:
        instance = self.instance
        on_chain = self.state.read_nonce(instance.account)
        return SafeTransaction(
            to=to,
            value=value,
            data=bytes(data),
            operation=operation,
            nonce=instance.nonces.reserve(on_chain, override=nonce),
        )

    def build_batch(
        self,
        targets: Sequence[str],
        datas: Sequence[bytes],
        *,
        nonce: Optional[int] = None,
    ) -> SafeTransaction:
        executor, payload = encode_batch(
            self.instance.chain_id,
            targets,
            datas,
            registry=self.registry,
        )
        return self.build_transaction(executor, payload, 0, Operation.DELEGATECALL, nonce=nonce)

    def digest(self, tx: SafeTransaction) -> bytes:
        instance = self.instance
        return transaction_digest(instance.chain_id, instance.account, tx)

    def exec_transaction_data(self, tx: SafeTransaction, signatures: Mapping[str, Signature]) -> bytes:
        """Calldata an owner would send to execute ``tx`` with collected signatures."""
        return encode_exec_transaction(tx, aggregate(signatures))

    # -- running ------------------------------------------------------------

    def propose_transaction(
        self,
        to: str,
        data: bytes = b"",
        value: int = 0,
        operation: Operation = Operation.CALL,
        *,
        nonce: Optional[int] = None,
        expected_deployment: Optional[str] = None,
    ) -> RunResult:
        tx = self.build_transaction(to, data, value, operation, nonce=nonce)
        return self.run(tx, expected_deployment=expected_deployment)

    def propose_batch(
        self,
        targets: Sequence[str],
        datas: Sequence[bytes],
        *,
        nonce: Optional[int] = None,
        expected_deployment: Optional[str] = None,
    ) -> RunResult:
        tx = self.build_batch(targets, datas, nonce=nonce)
        return self.run(tx, expected_deployment=expected_deployment)

    def run(self, tx: SafeTransaction, *, expected_deployment: Optional[str] = None) -> RunResult:
        """
        Attempt ``tx`` in the current mode.

        When ``expected_deployment`` already has code the attempt is skipped
        before hashing and the run-local nonce is left alone. Otherwise the
        run-local nonce advances after the attempt whatever the outcome,
        including when signing or proposing raises.
        """
        skipped = self._skip_if_deployed(tx, expected_deployment)
        if skipped is not None:
            return skipped

        instance = self.instance
        mode = self.mode
        digest = self.digest(tx)
        request = SigningRequest(
            chain_id=instance.chain_id,
            account=instance.account,
            transaction=tx,
            digest=digest,
        )
        logger.info(
            "transaction_digest",
            account=instance.account,
            chain_id=instance.chain_id,
            nonce=tx.nonce,
            operation=tx.operation.name,
            digest="0x" + digest.hex(),
        )

        result = RunResult(
            mode=mode,
            account=instance.account,
            chain_id=instance.chain_id,
            transaction=tx,
            digest=digest,
            signers=list(instance.signers),
        )
        try:
            if mode == ExecutionMode.SIMULATION:
                result.outcome = self.simulator.simulate_with_approvals(request, instance.signers)
                if expected_deployment is not None and result.outcome.ok:
                    result.deployment = self.verifier.verify(expected_deployment)
            else:
                self._propose(instance, request)
                result.proposed = True
        finally:
            instance.nonces.advance(tx.nonce)

        instance.results.append(result)
        return result

    def _propose(self, instance: Instance, request: SigningRequest) -> None:
        signature = self._live_signer().sign(request)
        body = build_proposal_body(
            request.transaction,
            request.digest,
            instance.primary_signer,
            signature,
        )
        instance.request_body = body
        self.service.submit(instance.chain_id, instance.account, body)

    def _live_signer(self) -> Signer:
        primary = self.instance.primary_signer
        if self._signer is None:
            self._signer = build_signer(self.config, address=primary)
        if self._signer.address is not None and self._signer.address != primary:
            raise ConfigurationError(
                "Signer does not match the primary signer of this account",
                {"expected": primary, "actual": self._signer.address},
            )
        return self._signer

    def _skip_if_deployed(
        self,
        tx: SafeTransaction,
        expected_deployment: Optional[str],
    ) -> Optional[RunResult]:
        if expected_deployment is None:
            return None
        check = self.verifier.already_deployed(expected_deployment)
        if check is None:
            return None
        instance = self.instance
        return RunResult(
            mode=self.mode,
            account=instance.account,
            chain_id=instance.chain_id,
            transaction=tx,
            deployment=check,
            signers=list(instance.signers),
        )
