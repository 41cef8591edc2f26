"""
Safe Transaction Service provider.

Posts fully hashed and signed proposals so the remaining owners can confirm
them out of band. Any non-2xx answer is fatal; proposals are never retried.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx
import structlog
from eth_utils import to_checksum_address

from ..config import settings
from ..core.chains.registry import ChainRegistry
from ..core.errors import ProposalRejected
from ..core.safe.models import Signature, SafeTransaction
from .base import Provider

logger = structlog.stdlib.get_logger(__name__)


def build_proposal_body(
    tx: SafeTransaction,
    digest: bytes,
    sender: str,
    signature: Signature,
) -> Dict[str, Any]:
    return {
        "to": tx.to,
        "value": str(tx.value),
        "data": tx.data_hex if tx.data else None,
        "operation": int(tx.operation),
        "contractTransactionHash": "0x" + digest.hex(),
        "sender": to_checksum_address(sender),
        "signature": signature.to_hex(),
        "safeTxGas": 0,
        "baseGas": 0,
        "gasPrice": 0,
        "nonce": tx.nonce,
    }


class SafeServiceProvider(Provider):
    name = "safe_transaction_service"

    def __init__(
        self,
        registry: Optional[ChainRegistry] = None,
        *,
        client: Optional[httpx.Client] = None,
        timeout_s: Optional[float] = None,
    ) -> None:
        self.registry = registry or ChainRegistry()
        self.timeout_s = timeout_s if timeout_s is not None else settings.safe_service_timeout_seconds
        self._client = client

    def ready(self) -> bool:
        return True

    def health_check(self) -> Dict[str, Any]:
        return {"status": "healthy", "chains": len(self.registry.supported_chain_ids)}

    def proposal_url(self, chain_id: int, account: str) -> str:
        base = self.registry.service_url(chain_id)
        return f"{base}/api/v1/safes/{to_checksum_address(account)}/multisig-transactions/"

    def propose(
        self,
        chain_id: int,
        account: str,
        tx: SafeTransaction,
        digest: bytes,
        sender: str,
        signature: Signature,
    ) -> bytes:
        """Submit a proposal and return its digest."""
        return self.submit(chain_id, account, build_proposal_body(tx, digest, sender, signature))

    def submit(self, chain_id: int, account: str, body: Dict[str, Any]) -> bytes:
        """POST an already built proposal body; returns the digest it carries."""
        url = self.proposal_url(chain_id, account)
        response = self._get_client().post(url, json=body)
        if not response.is_success:
            logger.error(
                "proposal_rejected",
                account=to_checksum_address(account),
                nonce=body["nonce"],
                status_code=response.status_code,
                body=response.text,
            )
            raise ProposalRejected(response.status_code, response.text)

        logger.info(
            "proposal_posted",
            account=to_checksum_address(account),
            nonce=body["nonce"],
            digest=body["contractTransactionHash"],
            status_code=response.status_code,
        )
        return bytes.fromhex(body["contractTransactionHash"][2:])

    def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            self._client.close()

    def _get_client(self) -> httpx.Client:
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(timeout=self.timeout_s)
        return self._client

