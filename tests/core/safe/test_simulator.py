"""
Simulation against the in-memory Safe: approvals, batching, revert
classification and the debug bypass.
"""

import pytest
from eth_abi import encode
from structlog.testing import capture_logs

from safeflow.core.chains.constants import MULTISEND_CALL_ONLY_V130
from safeflow.core.errors import ShapeError
from safeflow.core.safe.digest import transaction_digest
from safeflow.core.safe.models import (
    Operation,
    Reverted,
    RevertKind,
    SafeTransaction,
    SigningRequest,
    Success,
    VerifierRejected,
)
from safeflow.core.safe.multisend import MULTISEND_SELECTOR, BatchCall, encode_batch, pack_calls
from safeflow.core.safe.simulator import ExecutionSimulator
from safeflow.state.base import CallResult, StateStore, approved_hash_slot

from tests.conftest import CHAIN_ID, OTHER_TARGET, REVERTER, SAFE_ADDRESS, TARGET


def _request(tx: SafeTransaction) -> SigningRequest:
    return SigningRequest(
        chain_id=CHAIN_ID,
        account=SAFE_ADDRESS,
        transaction=tx,
        digest=transaction_digest(CHAIN_ID, SAFE_ADDRESS, tx),
    )


def test_threshold_of_synthetic_approvals_executes(chain, owner_a, owner_b, recorded_calls):
    tx = SafeTransaction(to=TARGET, data=b"\xca\xfe", nonce=0)

    outcome = ExecutionSimulator(chain).simulate_with_approvals(_request(tx), [owner_a, owner_b])

    assert isinstance(outcome, Success)
    assert [(sender.lower(), data) for sender, data in recorded_calls] == [(SAFE_ADDRESS, b"\xca\xfe")]
    assert chain.read_nonce(SAFE_ADDRESS) == 1


def test_approvals_are_removed_after_simulation(chain, owner_a, owner_b):
    tx = SafeTransaction(to=TARGET, nonce=0)
    request = _request(tx)

    ExecutionSimulator(chain).simulate_with_approvals(request, [owner_a, owner_b])

    for owner in (owner_a, owner_b):
        assert chain.load(SAFE_ADDRESS, approved_hash_slot(owner, request.digest)) == bytes(32)


def test_below_threshold_is_rejected_by_verifier(chain, owner_a, recorded_calls):
    tx = SafeTransaction(to=TARGET, nonce=0)

    outcome = ExecutionSimulator(chain).simulate_with_approvals(_request(tx), [owner_a])

    assert isinstance(outcome, VerifierRejected)
    assert outcome.code == "GS020"
    assert recorded_calls == []
    assert chain.read_nonce(SAFE_ADDRESS) == 0


def test_non_owner_approval_is_rejected(chain, owner_a, outsider):
    tx = SafeTransaction(to=TARGET, nonce=0)

    outcome = ExecutionSimulator(chain).simulate_with_approvals(_request(tx), [owner_a, outsider])

    assert isinstance(outcome, VerifierRejected)
    assert outcome.code == "GS026"


def test_wrong_nonce_fails_signature_check(chain, owner_a, owner_b):
    tx = SafeTransaction(to=TARGET, nonce=3)

    outcome = ExecutionSimulator(chain).simulate_with_approvals(_request(tx), [owner_a, owner_b])

    # approvals were written for a digest the account does not compute
    assert isinstance(outcome, VerifierRejected)
    assert outcome.code == "GS025"


def test_inner_revert_is_reported_as_account_failure(chain, owner_a, owner_b):
    tx = SafeTransaction(to=REVERTER, nonce=0)

    outcome = ExecutionSimulator(chain).simulate_with_approvals(_request(tx), [owner_a, owner_b])

    assert isinstance(outcome, Reverted)
    assert outcome.kind == RevertKind.ERROR
    assert outcome.reason.startswith("GS013")
    assert chain.read_nonce(SAFE_ADDRESS) == 0


def test_debug_bypass_surfaces_inner_reason(chain, owner_a, owner_b):
    tx = SafeTransaction(to=REVERTER, nonce=0)

    with capture_logs() as logs:
        outcome = ExecutionSimulator(chain, debug_bypass=True).simulate_with_approvals(
            _request(tx), [owner_a, owner_b]
        )

    assert outcome == Reverted(kind=RevertKind.ERROR, reason="boom", raw=outcome.raw)
    assert any(entry["event"] == "debug_bypass_engaged" for entry in logs)


def test_debug_bypass_calls_target_as_account(chain, owner_a, owner_b, recorded_calls):
    tx = SafeTransaction(to=TARGET, data=b"\x01", nonce=0)

    outcome = ExecutionSimulator(chain, debug_bypass=True).simulate_with_approvals(
        _request(tx), [owner_a, owner_b]
    )

    assert outcome.ok
    assert [(sender.lower(), data) for sender, data in recorded_calls] == [(SAFE_ADDRESS, b"\x01")]
    # the account itself was skipped
    assert chain.read_nonce(SAFE_ADDRESS) == 0


def test_batch_runs_every_call_as_the_account(chain, owner_a, owner_b, recorded_calls):
    executor, payload = encode_batch(CHAIN_ID, [TARGET, OTHER_TARGET], [b"\x01", b"\x02"])
    tx = SafeTransaction(to=executor, data=payload, operation=Operation.DELEGATECALL, nonce=0)

    outcome = ExecutionSimulator(chain).simulate_with_approvals(_request(tx), [owner_b, owner_a])

    assert isinstance(outcome, Success)
    assert executor == MULTISEND_CALL_ONLY_V130
    assert [(sender.lower(), data) for sender, data in recorded_calls] == [
        (SAFE_ADDRESS, b"\x01"),
        (SAFE_ADDRESS, b"\x02"),
    ]


def test_failing_batch_entry_fails_the_whole_batch(chain, owner_a, owner_b, recorded_calls):
    executor, payload = encode_batch(CHAIN_ID, [TARGET, REVERTER], [b"\x01", b""])
    tx = SafeTransaction(to=executor, data=payload, operation=Operation.DELEGATECALL, nonce=0)

    with capture_logs() as logs:
        outcome = ExecutionSimulator(chain, debug_bypass=True).simulate_with_approvals(
            _request(tx), [owner_a, owner_b]
        )

    assert isinstance(outcome, Reverted)
    assert outcome.reason.startswith("GS013")
    assert any(entry["event"] == "debug_bypass_ignored" for entry in logs)
    assert chain.read_nonce(SAFE_ADDRESS) == 0


def test_malformed_batch_entry_reverts_and_keeps_nonce(chain, owner_a, owner_b, recorded_calls):
    packed = bytearray(pack_calls([BatchCall(to=TARGET, data=b"\x01")]))
    packed[0] = 2  # neither CALL nor DELEGATECALL
    payload = MULTISEND_SELECTOR + encode(["bytes"], [bytes(packed)])
    tx = SafeTransaction(to=MULTISEND_CALL_ONLY_V130, data=payload, operation=Operation.DELEGATECALL, nonce=0)

    outcome = ExecutionSimulator(chain).simulate_with_approvals(_request(tx), [owner_a, owner_b])

    assert isinstance(outcome, Reverted)
    assert outcome.reason.startswith("GS013")
    assert recorded_calls == []
    assert chain.read_nonce(SAFE_ADDRESS) == 0


def test_truncated_batch_payload_reverts(chain, owner_a, owner_b):
    tx = SafeTransaction(to=MULTISEND_CALL_ONLY_V130, data=MULTISEND_SELECTOR + b"\x00" * 8, operation=Operation.DELEGATECALL, nonce=0)

    outcome = ExecutionSimulator(chain).simulate_with_approvals(_request(tx), [owner_a, owner_b])

    assert isinstance(outcome, Reverted)
    assert chain.read_nonce(SAFE_ADDRESS) == 0


def test_empty_owner_list_is_rejected(chain):
    with pytest.raises(ShapeError):
        ExecutionSimulator(chain).simulate_with_approvals(_request(SafeTransaction(to=TARGET)), [])


class ReturningFalseState(StateStore):
    """Account that swallows the inner failure and returns false."""

    def __init__(self):
        self.words = {}

    def load(self, address, slot):
        return self.words.get((address, slot), bytes(32))

    def store(self, address, slot, value):
        self.words[(address, slot)] = value

    def get_code(self, address):
        return b""

    def prank(self, caller):
        pass

    def call(self, to, data, value=0):
        return CallResult(success=True, return_data=encode(["bool"], [False]))


def test_returned_false_is_a_distinct_outcome(owner_a, owner_b):
    tx = SafeTransaction(to=TARGET, nonce=0)

    outcome = ExecutionSimulator(ReturningFalseState()).simulate_with_approvals(_request(tx), [owner_a, owner_b])

    assert outcome == Reverted(kind=RevertKind.RETURNED_FALSE)
    assert "debug bypass" in outcome.describe()
