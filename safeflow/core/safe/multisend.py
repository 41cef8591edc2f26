"""
Batch encoding for the MultiSend executor.

Each sub-call is packed as:

    operation (1 byte) ‖ to (20 bytes) ‖ value (32 bytes) ‖ data length (32 bytes) ‖ data

and the concatenation is wrapped in ``multiSend(bytes)``. The account runs the
payload with DELEGATECALL so every sub-call is made with the account as sender.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from eth_abi import decode, encode
from eth_utils import function_signature_to_4byte_selector, to_canonical_address, to_checksum_address

from ..chains.registry import ChainRegistry
from ..errors import ShapeError
from .models import Operation

MULTISEND_SELECTOR = function_signature_to_4byte_selector("multiSend(bytes)")

_HEADER_SIZE = 1 + 20 + 32 + 32


@dataclass(frozen=True)
class BatchCall:
    to: str
    data: bytes
    value: int = 0
    operation: Operation = Operation.CALL


def pack_calls(calls: Sequence[BatchCall]) -> bytes:
    packed = b""
    for call in calls:
        packed += (
            bytes([int(call.operation)])
            + to_canonical_address(call.to)
            + call.value.to_bytes(32, "big")
            + len(call.data).to_bytes(32, "big")
            + call.data
        )
    return packed


def unpack_calls(packed: bytes) -> List[BatchCall]:
    calls: List[BatchCall] = []
    offset = 0
    while offset < len(packed):
        if offset + _HEADER_SIZE > len(packed):
            raise ShapeError("Truncated batch entry header", {"offset": offset})
        operation = packed[offset]
        to = packed[offset + 1:offset + 21]
        value = int.from_bytes(packed[offset + 21:offset + 53], "big")
        length = int.from_bytes(packed[offset + 53:offset + 85], "big")
        start = offset + _HEADER_SIZE
        if start + length > len(packed):
            raise ShapeError("Truncated batch entry data", {"offset": offset, "length": length})
        calls.append(
            BatchCall(
                to=to_checksum_address(to),
                data=packed[start:start + length],
                value=value,
                operation=Operation(operation),
            )
        )
        offset = start + length
    return calls


def build_multisend_call_data(calls: Sequence[BatchCall]) -> bytes:
    return MULTISEND_SELECTOR + encode(["bytes"], [pack_calls(calls)])


def encode_batch(
    chain_id: int,
    targets: Sequence[str],
    datas: Sequence[bytes],
    *,
    registry: Optional[ChainRegistry] = None,
) -> Tuple[str, bytes]:
    """
    Pack ``(target, data)`` pairs into one MultiSend payload.

    Returns the executor address for ``chain_id`` and the calldata the
    account should DELEGATECALL it with.
    """
    if len(targets) != len(datas):
        raise ShapeError(
            "Batch targets and data must have the same length",
            {"targets": len(targets), "datas": len(datas)},
        )
    executor = (registry or ChainRegistry()).multisend_address(chain_id)
    calls = [BatchCall(to=target, data=bytes(data)) for target, data in zip(targets, datas)]
    return executor, build_multisend_call_data(calls)


def decode_batch(payload: bytes) -> List[BatchCall]:
    """Reverse of ``encode_batch``: recover the ordered sub-calls."""
    if payload[:4] != MULTISEND_SELECTOR:
        raise ShapeError("Payload is not a multiSend(bytes) call", {"selector": payload[:4].hex()})
    (packed,) = decode(["bytes"], payload[4:])
    return unpack_calls(packed)
