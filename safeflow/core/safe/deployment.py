"""
Deterministic deployment helpers and post-execution verification.
"""

from __future__ import annotations

from typing import Dict, Optional

import structlog
from eth_utils import keccak, to_canonical_address, to_checksum_address

from ...state.base import StateStore
from ..errors import VerificationFailed
from .models import DeploymentCheck, DeploymentStatus

logger = structlog.stdlib.get_logger(__name__)

# Arachnid's keyless CREATE2 proxy: calldata is salt (32 bytes) ‖ init code.
DETERMINISTIC_DEPLOYER = "0x4e59b44847b379578588920cA78FbF26c0B4956C"
CREATEX_FACTORY = "0xba5Ed099633D3B313e4D5F7bdc1305d3c28ba5Ed"

KNOWN_FACTORIES: Dict[str, str] = {
    to_checksum_address(DETERMINISTIC_DEPLOYER): "deterministic-deployment-proxy",
    to_checksum_address(CREATEX_FACTORY): "createx",
}


def compute_create2_address(deployer: str, salt: bytes, init_code: bytes) -> str:
    if len(salt) != 32:
        raise ValueError(f"Salt must be 32 bytes, got {len(salt)}")
    digest = keccak(b"\xff" + to_canonical_address(deployer) + salt + keccak(init_code))
    return to_checksum_address(digest[12:])


def factory_name(address: str) -> Optional[str]:
    return KNOWN_FACTORIES.get(to_checksum_address(address))


def describe_factory_call(to: str, data: bytes) -> Optional[Dict[str, str]]:
    """Log-friendly summary of a call into a known deployment factory."""
    name = factory_name(to)
    if name is None:
        return None
    info = {"factory": name, "address": to_checksum_address(to), "selector": "0x" + data[:4].hex()}
    if name == "deterministic-deployment-proxy" and len(data) >= 32:
        # No selector on this proxy; the first word is the salt.
        info["salt"] = "0x" + data[:32].hex()
        info["init_code_hash"] = "0x" + keccak(data[32:]).hex()
    return info


class DeploymentVerifier:
    """
    Confirms that a deterministic deployment left code at its address.

    ``already_deployed`` is checked before an attempt so the orchestrator can
    short-circuit; ``verify`` runs after a successful simulated execution.
    """

    def __init__(self, state: StateStore):
        self.state = state

    def already_deployed(self, expected_address: str) -> Optional[DeploymentCheck]:
        code = self.state.get_code(expected_address)
        if not code:
            return None
        logger.info(
            "deployment_skipped",
            address=to_checksum_address(expected_address),
            code_size=len(code),
        )
        return DeploymentCheck(
            address=to_checksum_address(expected_address),
            status=DeploymentStatus.SKIPPED,
            code_size=len(code),
        )

    def verify(self, expected_address: str) -> DeploymentCheck:
        code = self.state.get_code(expected_address)
        if not code:
            logger.error("deployment_missing", address=to_checksum_address(expected_address))
            raise VerificationFailed(
                to_checksum_address(expected_address),
                "execution succeeded but the address has no code; check the salt, "
                "the init code hash and inner reverts swallowed by the account",
            )
        logger.info(
            "deployment_verified",
            address=to_checksum_address(expected_address),
            code_size=len(code),
        )
        return DeploymentCheck(
            address=to_checksum_address(expected_address),
            status=DeploymentStatus.VERIFIED,
            code_size=len(code),
        )
