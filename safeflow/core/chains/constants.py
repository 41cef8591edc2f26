"""Per-network endpoints and contract addresses for Safe orchestration."""

from typing import Any, Dict

# Canonical MultiSendCallOnly v1.3.0 deployment (same address on every network
# deployed through the singleton factory).
MULTISEND_CALL_ONLY_V130 = "0x40A2aCCbd92BCA938b02010E17A5b8929b49130D"

CHAIN_METADATA: Dict[int, Dict[str, Any]] = {
    1: {
        'name': 'Ethereum',
        'safe_service_url': 'https://safe-transaction-mainnet.safe.global',
        'multisend_address': MULTISEND_CALL_ONLY_V130,
    },
    10: {
        'name': 'Optimism',
        'safe_service_url': 'https://safe-transaction-optimism.safe.global',
        'multisend_address': MULTISEND_CALL_ONLY_V130,
    },
    56: {
        'name': 'BNB Smart Chain',
        'safe_service_url': 'https://safe-transaction-bsc.safe.global',
        'multisend_address': MULTISEND_CALL_ONLY_V130,
    },
    100: {
        'name': 'Gnosis',
        'safe_service_url': 'https://safe-transaction-gnosis-chain.safe.global',
        'multisend_address': MULTISEND_CALL_ONLY_V130,
    },
    137: {
        'name': 'Polygon',
        'safe_service_url': 'https://safe-transaction-polygon.safe.global',
        'multisend_address': MULTISEND_CALL_ONLY_V130,
    },
    8453: {
        'name': 'Base',
        'safe_service_url': 'https://safe-transaction-base.safe.global',
        'multisend_address': MULTISEND_CALL_ONLY_V130,
    },
    42161: {
        'name': 'Arbitrum',
        'safe_service_url': 'https://safe-transaction-arbitrum.safe.global',
        'multisend_address': MULTISEND_CALL_ONLY_V130,
    },
    43114: {
        'name': 'Avalanche',
        'safe_service_url': 'https://safe-transaction-avalanche.safe.global',
        'multisend_address': MULTISEND_CALL_ONLY_V130,
    },
    84532: {
        'name': 'Base Sepolia',
        'safe_service_url': 'https://safe-transaction-base-sepolia.safe.global',
        'multisend_address': MULTISEND_CALL_ONLY_V130,
    },
    11155111: {
        'name': 'Sepolia',
        'safe_service_url': 'https://safe-transaction-sepolia.safe.global',
        'multisend_address': MULTISEND_CALL_ONLY_V130,
    },
}
