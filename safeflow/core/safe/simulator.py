"""
Local execution of Safe transactions against a mutable state snapshot.

Outcomes are returned, never raised:

    Success            execTransaction returned true
    Reverted           returned false, or reverted with Error / Panic / raw data
    VerifierRejected   the signature check refused the presented approvals
"""

from __future__ import annotations

from typing import Sequence

import structlog
from eth_abi import decode
from eth_abi.exceptions import DecodingError
from eth_utils import to_checksum_address

from ...state.base import CallResult, StateStore
from ..errors import ShapeError
from .aggregator import aggregate
from .deployment import describe_factory_call
from .digest import encode_exec_transaction
from .models import (
    Operation,
    Reverted,
    RevertKind,
    SafeTransaction,
    SigningRequest,
    SimulationOutcome,
    Success,
)
from .multisend import decode_batch
from .revert import decode_revert
from .signer import SyntheticSigner

logger = structlog.stdlib.get_logger(__name__)


class ExecutionSimulator:
    """
    Drives the account's execute entrypoint on a StateStore.

    With ``debug_bypass`` the account is skipped for CALL transactions: the
    simulator impersonates the account and calls the target directly so the
    real inner revert reason is visible.
    """

    def __init__(self, state: StateStore, *, debug_bypass: bool = False):
        self.state = state
        self.debug_bypass = debug_bypass

    def simulate(
        self,
        account: str,
        tx: SafeTransaction,
        signatures: bytes,
        caller: str,
    ) -> SimulationOutcome:
        account = to_checksum_address(account)
        self._log_deployments(tx)

        if self.debug_bypass:
            if tx.operation == Operation.CALL:
                logger.warning("debug_bypass_engaged", account=account, target=tx.to)
                self.state.prank(account)
                result = self.state.call(tx.to, tx.data, tx.value)
                return self._interpret_direct(result)
            logger.warning("debug_bypass_ignored", account=account, reason="delegatecall batches run through the account")

        self.state.prank(caller)
        result = self.state.call(account, encode_exec_transaction(tx, signatures))
        outcome = self._interpret_exec(result)
        logger.info(
            "simulation_finished",
            account=account,
            nonce=tx.nonce,
            outcome=type(outcome).__name__,
        )
        return outcome

    def simulate_with_approvals(
        self,
        request: SigningRequest,
        owners: Sequence[str],
    ) -> SimulationOutcome:
        """
        Approve ``request`` for every owner, execute, then drop the approvals.

        The first owner presents the transaction.
        """
        if not owners:
            raise ShapeError("At least one owner is required to simulate")
        signers = [SyntheticSigner(self.state, owner) for owner in owners]
        try:
            signatures = aggregate({signer.address: signer.sign(request) for signer in signers})
            return self.simulate(request.account, request.transaction, signatures, caller=signers[0].address)
        finally:
            for signer in signers:
                signer.revoke(request)

    def _interpret_exec(self, result: CallResult) -> SimulationOutcome:
        if not result.success:
            return decode_revert(result.return_data)
        if len(result.return_data) < 32:
            return Reverted(kind=RevertKind.RAW, raw=result.return_data)
        try:
            (executed,) = decode(["bool"], result.return_data[:32])
        except DecodingError:
            return Reverted(kind=RevertKind.RAW, raw=result.return_data)
        if not executed:
            return Reverted(kind=RevertKind.RETURNED_FALSE)
        return Success(return_data=result.return_data)

    def _interpret_direct(self, result: CallResult) -> SimulationOutcome:
        if not result.success:
            return decode_revert(result.return_data)
        return Success(return_data=result.return_data)

    def _log_deployments(self, tx: SafeTransaction) -> None:
        calls = [(tx.to, tx.data)]
        if tx.operation == Operation.DELEGATECALL:
            try:
                calls = [(call.to, call.data) for call in decode_batch(tx.data)]
            except (ShapeError, DecodingError, ValueError):
                # Not a batch; only the outer call is inspected.
                calls = [(tx.to, tx.data)]
        for to, data in calls:
            info = describe_factory_call(to, data)
            if info is not None:
                logger.info("deployment_call_detected", **info)

