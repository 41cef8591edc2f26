"""
Signature strategies.

    LocalKeySigner   signs the digest with a held private key
    DeviceSigner     hardware device through an external process, either the
                     raw digest (personal-message form, v shifted by +4) or
                     the EIP-712 description (signature used as returned)
    SyntheticSigner  simulation only; writes an approval record and returns
                     a pre-approved placeholder (v=1, r=owner, s=0)

The strategy is chosen by configuration, never auto-detected.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import structlog
from eth_account import Account
from eth_utils import to_checksum_address

from ...config import Settings, settings as default_settings
from ...providers.external_signer import ExternalSignerProcess
from ...state.base import StateStore
from ..errors import ConfigurationError
from .digest import safe_tx_typed_data
from .models import Signature, SigningRequest

logger = structlog.stdlib.get_logger(__name__)

# The verifier treats v > 30 as an eth_sign signature over the prefixed hash.
ETH_SIGN_V_OFFSET = 4
APPROVED_HASH_V = 1


class SigningMode(str, Enum):
    HASH = "hash"
    TYPED_DATA = "typed_data"


@dataclass(frozen=True)
class DeviceSignerConfig:
    device: str = "ledger"
    derivation_path: str = "m/44'/60'/0'/0/0"
    mode: SigningMode = SigningMode.HASH
    executable: str = "cast"

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "DeviceSignerConfig":
        config = config or default_settings
        return cls(
            device=config.signer_device,
            derivation_path=config.signer_derivation_path,
            mode=SigningMode(config.signer_mode),
            executable=config.signer_executable,
        )


class Signer(ABC):
    """Produces one signature per transaction attempt."""

    address: Optional[str] = None

    @abstractmethod
    def sign(self, request: SigningRequest) -> Signature:
        pass


class LocalKeySigner(Signer):
    def __init__(self, private_key: str):
        self._account = Account.from_key(private_key)
        self.address = self._account.address

    def sign(self, request: SigningRequest) -> Signature:
        signed = self._account.unsafe_sign_hash(request.digest)
        return Signature(v=signed.v, r=signed.r, s=signed.s)


class DeviceSigner(Signer):
    def __init__(
        self,
        config: DeviceSignerConfig,
        *,
        address: Optional[str] = None,
        process: Optional[ExternalSignerProcess] = None,
    ):
        self.config = config
        self.address = to_checksum_address(address) if address else None
        self._process = process or ExternalSignerProcess(executable=config.executable)

    def sign(self, request: SigningRequest) -> Signature:
        if self.config.mode == SigningMode.TYPED_DATA:
            typed_data = safe_tx_typed_data(request.chain_id, request.account, request.transaction)
            raw = self._process.sign_typed_data(
                typed_data,
                device=self.config.device,
                derivation_path=self.config.derivation_path,
            )
            return Signature.from_bytes(raw)

        raw = self._process.sign_hash(
            request.digest,
            device=self.config.device,
            derivation_path=self.config.derivation_path,
        )
        signature = Signature.from_bytes(raw)
        v = signature.v + 27 if signature.v < 27 else signature.v
        return Signature(v=v + ETH_SIGN_V_OFFSET, r=signature.r, s=signature.s)


class SyntheticSigner(Signer):
    """
    Placeholder approval for simulation.

    The returned signature is not cryptographic: the verifier accepts it only
    because the matching approval record is written into the account first.
    """

    def __init__(self, state: StateStore, owner: str):
        self.state = state
        self.address = to_checksum_address(owner)

    def sign(self, request: SigningRequest) -> Signature:
        self.state.write_approval(request.account, request.digest, self.address)
        logger.debug("synthetic_approval_written", account=request.account, owner=self.address)
        return Signature(v=APPROVED_HASH_V, r=int(self.address, 16), s=0)

    def revoke(self, request: SigningRequest) -> None:
        self.state.clear_approval(request.account, request.digest, self.address)


def build_signer(config: Optional[Settings] = None, *, address: Optional[str] = None) -> Signer:
    """Pick the live-mode signer from settings: a private key wins over a device."""
    config = config or default_settings
    if config.has_private_key:
        signer = LocalKeySigner(config.private_key)
        if address and to_checksum_address(address) != signer.address:
            raise ConfigurationError(
                "Configured private key does not belong to the primary signer",
                {"expected": to_checksum_address(address), "actual": signer.address},
            )
        return signer
    return DeviceSigner(DeviceSignerConfig.from_settings(config), address=address)
