from .constants import CHAIN_METADATA, MULTISEND_CALL_ONLY_V130
from .registry import ChainConfig, ChainRegistry

__all__ = [
    "CHAIN_METADATA",
    "MULTISEND_CALL_ONLY_V130",
    "ChainConfig",
    "ChainRegistry",
]
