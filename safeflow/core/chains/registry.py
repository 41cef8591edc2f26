"""Static chain registry for coordination endpoints and batch executors."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from eth_utils import to_checksum_address

from ..errors import ConfigurationError
from .constants import CHAIN_METADATA


@dataclass(frozen=True)
class ChainConfig:
    chain_id: int
    name: str
    safe_service_url: str
    multisend_address: str


class ChainRegistry:
    """Per-network configuration keyed by numeric chain id.

    Unknown chain ids raise ConfigurationError; there is no fallback network.

    Usage:
        registry = ChainRegistry()
        registry.service_url(1)         # "https://safe-transaction-mainnet.safe.global"
        registry.multisend_address(1)   # "0x40A2..."
    """

    def __init__(
        self,
        chains: Optional[Mapping[int, Mapping[str, Any]]] = None,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._logger = logger or logging.getLogger(__name__)
        self._chains: Dict[int, ChainConfig] = {}
        for chain_id, meta in (chains if chains is not None else CHAIN_METADATA).items():
            self.register(
                chain_id,
                name=meta.get('name', str(chain_id)),
                safe_service_url=meta['safe_service_url'],
                multisend_address=meta['multisend_address'],
            )

    def register(
        self,
        chain_id: int,
        *,
        safe_service_url: str,
        multisend_address: str,
        name: Optional[str] = None,
    ) -> ChainConfig:
        """Add or replace a network entry (e.g. a local fork)."""
        config = ChainConfig(
            chain_id=int(chain_id),
            name=name or str(chain_id),
            safe_service_url=safe_service_url.rstrip('/'),
            multisend_address=to_checksum_address(multisend_address),
        )
        self._chains[config.chain_id] = config
        self._logger.debug("Registered chain %s (%s)", config.chain_id, config.name)
        return config

    def get(self, chain_id: int) -> ChainConfig:
        config = self._chains.get(int(chain_id))
        if config is None:
            raise ConfigurationError(
                f"No chain registry entry for network {chain_id}",
                {"chain_id": chain_id, "known": sorted(self._chains)},
            )
        return config

    def service_url(self, chain_id: int) -> str:
        return self.get(chain_id).safe_service_url

    def multisend_address(self, chain_id: int) -> str:
        return self.get(chain_id).multisend_address

    @property
    def supported_chain_ids(self) -> List[int]:
        return sorted(self._chains)

    def is_supported(self, chain_id: int) -> bool:
        return int(chain_id) in self._chains
