"""
Run-local nonce tracking.

Proposals do not advance the account's on-chain nonce, so several
proposals in one run need consecutive nonces tracked locally. Simulated
executions do advance it, so the on-chain value is re-read for every attempt
and the larger of the two wins.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

import structlog

logger = structlog.stdlib.get_logger(__name__)


@dataclass
class NonceState:
    """Nonce bookkeeping for one account within a run."""
    account: str
    chain_id: int
    next_nonce: Optional[int] = None            # next nonce this run will use
    attempts: int = 0
    last_updated: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class RunNonceTracker:
    """
    Hands out nonces for successive attempts against one account.

    ``reserve`` is called once per attempt with a fresh on-chain reading;
    ``advance`` is called after the attempt whatever its outcome.
    """

    def __init__(self, account: str, chain_id: int):
        self.state = NonceState(account=account, chain_id=chain_id)

    @property
    def next_nonce(self) -> Optional[int]:
        return self.state.next_nonce

    def reserve(self, on_chain_nonce: int, override: Optional[int] = None) -> int:
        if override is not None:
            return override
        local = self.state.next_nonce
        nonce = on_chain_nonce if local is None else max(on_chain_nonce, local)
        logger.debug(
            "nonce_reserved",
            account=self.state.account,
            on_chain=on_chain_nonce,
            local=local,
            nonce=nonce,
        )
        return nonce

    def advance(self, used_nonce: int) -> None:
        self.state.next_nonce = used_nonce + 1
        self.state.attempts += 1
        self.state.last_updated = datetime.now(timezone.utc)
