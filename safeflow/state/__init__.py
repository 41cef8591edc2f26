"""
Chain-state collaborators.

Import concrete stores from their modules:

    from safeflow.state.memory import MemoryChainState
    from safeflow.state.rpc import RpcChainState
"""

from .base import CallResult, StateStore, approved_hash_slot

__all__ = [
    "CallResult",
    "StateStore",
    "approved_hash_slot",
]
