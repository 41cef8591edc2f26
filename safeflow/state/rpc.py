"""
StateStore backed by a local development node (anvil) over JSON-RPC.

Calls are first run with ``eth_call`` to capture return or revert data, then
committed with an impersonated ``eth_sendTransaction`` so later attempts see
the effects (e.g. the advanced account nonce).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx
from eth_utils import to_checksum_address

from ..config import settings
from .base import CallResult, StateStore

logger = logging.getLogger(__name__)

DEFAULT_CALLER = "0x1804c8AB1F12E6bbf3894d4083f33e07309d1f38"
FUNDING_WEI = 10 ** 21


class RpcError(RuntimeError):
    """JSON-RPC error object returned by the node."""

    def __init__(self, error: Dict[str, Any]):
        super().__init__(f"RPC error: {error}")
        self.code = error.get("code")
        self.rpc_message = error.get("message", "")
        self.data = error.get("data")

    @property
    def revert_data(self) -> bytes:
        data = self.data
        if isinstance(data, dict):
            data = data.get("data")
        if isinstance(data, str) and data.startswith("0x"):
            return bytes.fromhex(data[2:])
        return b""


def _hex_to_bytes(value: Optional[str]) -> bytes:
    if not value:
        return b""
    return bytes.fromhex(value[2:] if value.startswith("0x") else value)


class RpcChainState(StateStore):
    def __init__(
        self,
        rpc_url: Optional[str] = None,
        *,
        client: Optional[httpx.Client] = None,
        timeout_s: float = 30.0,
        default_caller: str = DEFAULT_CALLER,
    ):
        self.rpc_url = rpc_url or settings.rpc_url
        self.default_caller = to_checksum_address(default_caller)
        self._client = client or httpx.Client(timeout=timeout_s)
        self._pranked: Optional[str] = None
        self._request_id = 0

    def _rpc_call(self, method: str, params: List[Any]) -> Any:
        """Make an RPC call to the node."""
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": self._request_id,
        }

        response = self._client.post(self.rpc_url, json=payload)
        response.raise_for_status()
        result = response.json()

        if "error" in result:
            raise RpcError(result["error"])

        return result.get("result")

    def load(self, address: str, slot: int) -> bytes:
        word = self._rpc_call("eth_getStorageAt", [to_checksum_address(address), hex(slot), "latest"])
        return _hex_to_bytes(word).rjust(32, b"\x00")

    def store(self, address: str, slot: int, value: bytes) -> None:
        if len(value) != 32:
            raise ValueError("Storage values must be 32 bytes")
        self._rpc_call(
            "anvil_setStorageAt",
            [to_checksum_address(address), "0x" + slot.to_bytes(32, "big").hex(), "0x" + value.hex()],
        )

    def get_code(self, address: str) -> bytes:
        return _hex_to_bytes(self._rpc_call("eth_getCode", [to_checksum_address(address), "latest"]))

    def prank(self, caller: str) -> None:
        self._pranked = to_checksum_address(caller)

    def call(self, to: str, data: bytes, value: int = 0) -> CallResult:
        sender = self._pranked or self.default_caller
        self._pranked = None
        tx = {
            "from": sender,
            "to": to_checksum_address(to),
            "data": "0x" + data.hex(),
            "value": hex(value),
        }

        try:
            return_data = _hex_to_bytes(self._rpc_call("eth_call", [tx, "latest"]))
        except RpcError as exc:
            logger.debug("eth_call reverted: %s", exc.rpc_message)
            return CallResult(success=False, return_data=exc.revert_data)

        self._fund(sender, value)
        self._rpc_call("anvil_impersonateAccount", [sender])
        try:
            tx_hash = self._rpc_call("eth_sendTransaction", [tx])
            receipt = self._rpc_call("eth_getTransactionReceipt", [tx_hash]) or {}
        finally:
            self._rpc_call("anvil_stopImpersonatingAccount", [sender])

        if receipt.get("status") != "0x1":
            logger.warning("Transaction %s failed after a successful eth_call", tx_hash)
            return CallResult(success=False, return_data=b"")
        return CallResult(success=True, return_data=return_data)

    def _fund(self, address: str, value: int) -> None:
        balance = int(self._rpc_call("eth_getBalance", [address, "latest"]), 16)
        if balance < FUNDING_WEI + value:
            self._rpc_call("anvil_setBalance", [address, hex(FUNDING_WEI + value)])

    def close(self) -> None:
        self._client.close()
