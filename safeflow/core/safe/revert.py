"""
Revert payload decoding.
"""

from __future__ import annotations

from typing import Dict, Union

from eth_abi import decode
from eth_abi.exceptions import DecodingError

from .models import Reverted, RevertKind, VerifierRejected

ERROR_SELECTOR = bytes.fromhex("08c379a0")  # Error(string)
PANIC_SELECTOR = bytes.fromhex("4e487b71")  # Panic(uint256)

PANIC_REASONS: Dict[int, str] = {
    0x00: "generic compiler panic",
    0x01: "assertion failed",
    0x11: "arithmetic overflow or underflow",
    0x12: "division or modulo by zero",
    0x21: "invalid enum value",
    0x22: "invalid storage byte array encoding",
    0x31: "pop on empty array",
    0x32: "array index out of bounds",
    0x41: "out of memory",
    0x51: "call to uninitialized function",
}

SAFE_ERROR_CODES: Dict[str, str] = {
    "GS000": "Could not finish initialization",
    "GS001": "Threshold needs to be defined",
    "GS010": "Not enough gas to execute Safe transaction",
    "GS011": "Could not pay gas costs with ether",
    "GS012": "Could not pay gas costs with token",
    "GS013": "Safe transaction failed when gasPrice and safeTxGas were 0",
    "GS020": "Signatures data too short",
    "GS021": "Invalid contract signature location: inside static part",
    "GS022": "Invalid contract signature location: length not present",
    "GS023": "Invalid contract signature location: data not complete",
    "GS024": "Invalid contract signature provided",
    "GS025": "Hash has not been approved",
    "GS026": "Invalid owner provided",
    "GS030": "Only owners can approve a hash",
}

VERIFIER_REJECTION_CODES = frozenset(
    {"GS001", "GS020", "GS021", "GS022", "GS023", "GS024", "GS025", "GS026"}
)


def decode_revert(data: bytes) -> Union[Reverted, VerifierRejected]:
    """Classify revert data into a structured outcome."""
    if not data:
        return Reverted(kind=RevertKind.EMPTY)

    if data[:4] == ERROR_SELECTOR:
        try:
            (reason,) = decode(["string"], data[4:])
        except (DecodingError, UnicodeDecodeError):
            return Reverted(kind=RevertKind.RAW, raw=data)
        if reason in VERIFIER_REJECTION_CODES:
            return VerifierRejected(code=reason, reason=SAFE_ERROR_CODES[reason])
        if reason == "GS013":
            return Reverted(
                kind=RevertKind.ERROR,
                reason=f"GS013: {SAFE_ERROR_CODES['GS013']} (inner call reverted; "
                       "enable the debug bypass to see why)",
                raw=data,
            )
        if reason in SAFE_ERROR_CODES:
            return Reverted(kind=RevertKind.ERROR, reason=f"{reason}: {SAFE_ERROR_CODES[reason]}", raw=data)
        return Reverted(kind=RevertKind.ERROR, reason=reason, raw=data)

    if data[:4] == PANIC_SELECTOR:
        try:
            (code,) = decode(["uint256"], data[4:])
        except DecodingError:
            return Reverted(kind=RevertKind.RAW, raw=data)
        reason = PANIC_REASONS.get(code, f"unknown panic code 0x{code:02x}")
        return Reverted(kind=RevertKind.PANIC, reason=f"Panic(0x{code:02x}): {reason}", raw=data, panic_code=code)

    return Reverted(kind=RevertKind.RAW, raw=data)
