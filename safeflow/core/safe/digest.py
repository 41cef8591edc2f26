"""
Safe transaction hashing (EIP-712) and execute-entrypoint calldata.

The digest must match the verifier's own ``getTransactionHash`` bit for bit:

    keccak256(0x19 0x01 ‖ domainSeparator ‖ keccak256(abi.encode(SAFE_TX_TYPEHASH, ...)))
"""

from __future__ import annotations

from typing import Any, Dict

from eth_abi import encode
from eth_utils import function_signature_to_4byte_selector, keccak, to_checksum_address

from .models import ZERO_ADDRESS, SafeTransaction

DOMAIN_SEPARATOR_TYPEHASH = keccak(text="EIP712Domain(uint256 chainId,address verifyingContract)")
SAFE_TX_TYPEHASH = keccak(
    text=(
        "SafeTx(address to,uint256 value,bytes data,uint8 operation,uint256 safeTxGas,"
        "uint256 baseGas,uint256 gasPrice,address gasToken,address refundReceiver,uint256 nonce)"
    )
)

EXEC_TRANSACTION_SIGNATURE = (
    "execTransaction(address,uint256,bytes,uint8,uint256,uint256,uint256,address,address,bytes)"
)
EXEC_TRANSACTION_SELECTOR = function_signature_to_4byte_selector(EXEC_TRANSACTION_SIGNATURE)
EXEC_TRANSACTION_TYPES = [
    "address", "uint256", "bytes", "uint8", "uint256",
    "uint256", "uint256", "address", "address", "bytes",
]


def domain_separator(chain_id: int, account: str) -> bytes:
    return keccak(
        encode(
            ["bytes32", "uint256", "address"],
            [DOMAIN_SEPARATOR_TYPEHASH, chain_id, to_checksum_address(account)],
        )
    )


def safe_tx_struct_hash(
    tx: SafeTransaction,
    *,
    safe_tx_gas: int = 0,
    base_gas: int = 0,
    gas_price: int = 0,
    gas_token: str = ZERO_ADDRESS,
    refund_receiver: str = ZERO_ADDRESS,
) -> bytes:
    return keccak(
        encode(
            [
                "bytes32", "address", "uint256", "bytes32", "uint8", "uint256",
                "uint256", "uint256", "address", "address", "uint256",
            ],
            [
                SAFE_TX_TYPEHASH,
                tx.to,
                tx.value,
                keccak(tx.data),
                int(tx.operation),
                safe_tx_gas,
                base_gas,
                gas_price,
                gas_token,
                refund_receiver,
                tx.nonce,
            ],
        )
    )


def transaction_digest(chain_id: int, account: str, tx: SafeTransaction, **gas_params: Any) -> bytes:
    """
    Return the 32-byte Safe transaction hash for ``tx`` against ``account``.

    ``gas_params`` only exist for verifying foreign transactions; everything
    this package builds hashes them as zero.
    """
    struct_hash = safe_tx_struct_hash(tx, **gas_params)
    return keccak(b"\x19\x01" + domain_separator(chain_id, account) + struct_hash)


def safe_tx_typed_data(chain_id: int, account: str, tx: SafeTransaction) -> Dict[str, Any]:
    """
    Full EIP-712 description of a Safe transaction.

    Handed to hardware signers so the device can render the fields instead
    of an opaque hash.
    """
    return {
        "types": {
            "EIP712Domain": [
                {"name": "chainId", "type": "uint256"},
                {"name": "verifyingContract", "type": "address"},
            ],
            "SafeTx": [
                {"name": "to", "type": "address"},
                {"name": "value", "type": "uint256"},
                {"name": "data", "type": "bytes"},
                {"name": "operation", "type": "uint8"},
                {"name": "safeTxGas", "type": "uint256"},
                {"name": "baseGas", "type": "uint256"},
                {"name": "gasPrice", "type": "uint256"},
                {"name": "gasToken", "type": "address"},
                {"name": "refundReceiver", "type": "address"},
                {"name": "nonce", "type": "uint256"},
            ],
        },
        "primaryType": "SafeTx",
        "domain": {
            "chainId": chain_id,
            "verifyingContract": to_checksum_address(account),
        },
        "message": {
            "to": tx.to,
            "value": tx.value,
            "data": tx.data_hex,
            "operation": int(tx.operation),
            "safeTxGas": 0,
            "baseGas": 0,
            "gasPrice": 0,
            "gasToken": ZERO_ADDRESS,
            "refundReceiver": ZERO_ADDRESS,
            "nonce": tx.nonce,
        },
    }


def encode_exec_transaction(tx: SafeTransaction, signatures: bytes) -> bytes:
    """Calldata for ``execTransaction`` with zeroed gas parameters."""
    return EXEC_TRANSACTION_SELECTOR + encode(
        EXEC_TRANSACTION_TYPES,
        [
            tx.to,
            tx.value,
            tx.data,
            int(tx.operation),
            0,
            0,
            0,
            ZERO_ADDRESS,
            ZERO_ADDRESS,
            signatures,
        ],
    )
