"""
Multi-signer signature aggregation.

The verifier walks signatures in order and requires each recovered owner to
be strictly greater than the previous one, so the blob must be sorted by
ascending signer address no matter how the signatures were collected.
"""

from typing import Dict, Mapping, Union

from eth_utils import to_checksum_address

from ..errors import ShapeError
from .models import Signature


def aggregate(signatures: Mapping[str, Union[Signature, bytes]]) -> bytes:
    by_signer: Dict[int, bytes] = {}
    for signer, signature in signatures.items():
        key = int(to_checksum_address(signer), 16)
        if key in by_signer:
            raise ShapeError("Duplicate signer in signature set", {"signer": to_checksum_address(signer)})
        raw = signature.to_bytes() if isinstance(signature, Signature) else bytes(signature)
        if len(raw) != 65:
            raise ShapeError("Signatures must be 65 bytes", {"signer": signer, "length": len(raw)})
        by_signer[key] = raw
    return b"".join(by_signer[key] for key in sorted(by_signer))
