"""
Tests for Safe transaction hashing and execTransaction calldata.
"""

from eth_abi import decode
from eth_account.messages import encode_typed_data
from eth_utils import keccak

from safeflow.core.safe.digest import (
    DOMAIN_SEPARATOR_TYPEHASH,
    EXEC_TRANSACTION_SELECTOR,
    EXEC_TRANSACTION_TYPES,
    SAFE_TX_TYPEHASH,
    domain_separator,
    encode_exec_transaction,
    safe_tx_struct_hash,
    safe_tx_typed_data,
    transaction_digest,
)
from safeflow.core.safe.models import Operation, SafeTransaction

from tests.conftest import SAFE_ADDRESS

AAAA = "0xaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa"

# keccak256(abi.encode(...)) values for the account at SAFE_ADDRESS on chain 1
GOLDEN_DOMAIN_SEPARATOR = "a2b46d55401bcfbc6ef9fa7841590c73b3719b593b0d7b2e6b1001a0364282a0"
GOLDEN_STRUCT_HASH = "161947411647d0caf0b290c83564bf3aafc52d33b54966cbf491e1cca5372ee5"
GOLDEN_DIGEST = "9f70dbe25cad5c04f65f47bde36931c1702b1bd328fe1fec2206ad1d3f8cfcf1"


def _reference_digest(chain_id: int, account: str, tx: SafeTransaction) -> bytes:
    """EIP-712 hash computed by eth_account's independent implementation."""
    signable = encode_typed_data(full_message=safe_tx_typed_data(chain_id, account, tx))
    return keccak(b"\x19" + signable.version + signable.header + signable.body)


def test_typehashes_match_verifier_constants():
    assert SAFE_TX_TYPEHASH.hex() == "bb8310d486368db6bd6f849402fdd73ad53d316b5a4b2644ad6efe0f941286d8"
    assert DOMAIN_SEPARATOR_TYPEHASH.hex() == "47e79534a245952e8b16893a336b85a3d9ea9fa8c573f3d803afb92a79469218"


def test_identical_transactions_hash_identically():
    first = SafeTransaction(to=AAAA, value=0, data=b"\x12\x34", nonce=3)
    second = SafeTransaction(to=AAAA.upper().replace("0X", "0x"), value=0, data=b"\x12\x34", nonce=3)

    assert transaction_digest(1, SAFE_ADDRESS, first) == transaction_digest(1, SAFE_ADDRESS, second)
    assert len(transaction_digest(1, SAFE_ADDRESS, first)) == 32


def test_digest_depends_on_every_input():
    tx = SafeTransaction(to=AAAA, nonce=5)
    base = transaction_digest(1, SAFE_ADDRESS, tx)

    assert transaction_digest(10, SAFE_ADDRESS, tx) != base
    assert transaction_digest(1, AAAA, tx) != base
    assert transaction_digest(1, SAFE_ADDRESS, SafeTransaction(to=AAAA, nonce=6)) != base
    assert transaction_digest(1, SAFE_ADDRESS, SafeTransaction(to=AAAA, nonce=5, value=1)) != base
    assert transaction_digest(
        1, SAFE_ADDRESS, SafeTransaction(to=AAAA, nonce=5, operation=Operation.DELEGATECALL)
    ) != base


def test_golden_mainnet_digest():
    """chain 1, to=0xAAAA..., value 0, empty data, CALL, nonce 5, zero gas parameters."""
    tx = SafeTransaction(to=AAAA, value=0, data=b"", operation=Operation.CALL, nonce=5)

    assert domain_separator(1, SAFE_ADDRESS).hex() == GOLDEN_DOMAIN_SEPARATOR
    assert safe_tx_struct_hash(tx).hex() == GOLDEN_STRUCT_HASH
    assert transaction_digest(1, SAFE_ADDRESS, tx).hex() == GOLDEN_DIGEST


def test_golden_digest_matches_reference_eip712():
    tx = SafeTransaction(to=AAAA, value=0, data=b"", operation=Operation.CALL, nonce=5)

    assert transaction_digest(1, SAFE_ADDRESS, tx) == _reference_digest(1, SAFE_ADDRESS, tx)


def test_digest_with_calldata_matches_reference_eip712():
    tx = SafeTransaction(to=AAAA, value=10 ** 18, data=bytes(range(70)), operation=Operation.DELEGATECALL, nonce=42)

    assert transaction_digest(8453, SAFE_ADDRESS, tx) == _reference_digest(8453, SAFE_ADDRESS, tx)


def test_digest_does_not_mutate_transaction():
    tx = SafeTransaction(to=AAAA, data=b"\x01", nonce=1)
    before = (tx.to, tx.value, tx.data, tx.operation, tx.nonce)

    transaction_digest(1, SAFE_ADDRESS, tx)

    assert (tx.to, tx.value, tx.data, tx.operation, tx.nonce) == before


def test_typed_data_describes_all_fields():
    tx = SafeTransaction(to=AAAA, value=7, data=b"\xab", nonce=9)
    typed = safe_tx_typed_data(1, SAFE_ADDRESS, tx)

    assert typed["primaryType"] == "SafeTx"
    assert typed["domain"]["chainId"] == 1
    assert [f["name"] for f in typed["types"]["SafeTx"]] == list(typed["message"].keys())
    assert typed["message"]["data"] == "0xab"
    assert typed["message"]["safeTxGas"] == 0


def test_exec_transaction_calldata_layout():
    tx = SafeTransaction(to=AAAA, value=1, data=b"\xde\xad", nonce=0)
    signatures = b"\x01" * 130

    call_data = encode_exec_transaction(tx, signatures)

    assert EXEC_TRANSACTION_SELECTOR.hex() == "6a761202"
    assert call_data[:4] == EXEC_TRANSACTION_SELECTOR
    decoded = decode(EXEC_TRANSACTION_TYPES, call_data[4:])
    assert decoded[0].lower() == AAAA
    assert decoded[1] == 1
    assert decoded[2] == b"\xde\xad"
    assert decoded[3] == 0
    assert decoded[4:7] == (0, 0, 0)
    assert decoded[9] == signatures
