"""
In-memory chain state with Python models of the contracts simulation touches.

``MemoryChainState`` keeps storage words, code and per-address contract
models. Every top-level ``call`` runs against a snapshot that is restored if
the call reverts; nested calls made by models roll back the same way.

Models:
    SafeModel                verifier account (owners, threshold, nonce,
                             approvedHashes, execTransaction, approveHash)
    MultiSendCallOnlyModel   batch executor, meant to be DELEGATECALLed
    Create2FactoryModel      salt ‖ init_code deployer; the init code itself
                             is recorded as the deployed code
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Sequence, Tuple

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_keys import keys
from eth_keys.exceptions import BadSignature, ValidationError
from eth_utils import function_signature_to_4byte_selector, keccak, to_checksum_address

from ..core.errors import ShapeError
from ..core.safe.deployment import compute_create2_address
from ..core.safe.digest import EXEC_TRANSACTION_SELECTOR, EXEC_TRANSACTION_TYPES, transaction_digest
from ..core.safe.models import ZERO_ADDRESS, Operation, SafeTransaction
from ..core.safe.multisend import MULTISEND_SELECTOR, unpack_calls
from ..core.safe.revert import ERROR_SELECTOR
from .base import (
    NONCE_SLOT,
    OWNER_COUNT_SLOT,
    OWNERS_SLOT,
    THRESHOLD_SLOT,
    CallResult,
    StateStore,
    address_key,
    approved_hash_slot,
    mapping_slot,
)

SENTINEL_OWNERS = "0x0000000000000000000000000000000000000001"
DEFAULT_CALLER = "0x1804c8AB1F12E6bbf3894d4083f33e07309d1f38"
PLACEHOLDER_CODE = b"\xfe"

_ADDRESS_MASK = (1 << 160) - 1


class Revert(Exception):
    """Raised by contract models; ``data`` is the revert payload."""

    def __init__(self, data: bytes = b""):
        super().__init__(data.hex())
        self.data = data


def error_data(reason: str) -> bytes:
    return ERROR_SELECTOR + encode(["string"], [reason])


def _word(value: int) -> bytes:
    return value.to_bytes(32, "big")


def _word_to_address(word: bytes) -> str:
    return to_checksum_address((int.from_bytes(word, "big") & _ADDRESS_MASK).to_bytes(20, "big"))


@dataclass(frozen=True)
class CallContext:
    this: str       # account whose storage is in scope
    sender: str
    value: int
    data: bytes


class ContractModel(ABC):
    @abstractmethod
    def handle(self, env: "MemoryChainState", ctx: CallContext) -> bytes:
        """Execute ``ctx.data``; raise Revert to fail."""
        pass


class FunctionModel(ContractModel):
    """Wraps a plain callable; handy for one-off targets in tests."""

    def __init__(self, fn: Callable[["MemoryChainState", CallContext], bytes]):
        self._fn = fn

    def handle(self, env: "MemoryChainState", ctx: CallContext) -> bytes:
        return self._fn(env, ctx) or b""


class MemoryChainState(StateStore):
    def __init__(self, default_caller: str = DEFAULT_CALLER):
        self.default_caller = to_checksum_address(default_caller)
        self._storage: Dict[Tuple[str, int], bytes] = {}
        self._code: Dict[str, bytes] = {}
        self._models: Dict[str, ContractModel] = {}
        self._pranked: Optional[str] = None

    def load(self, address: str, slot: int) -> bytes:
        return self._storage.get((to_checksum_address(address), slot), bytes(32))

    def store(self, address: str, slot: int, value: bytes) -> None:
        if len(value) != 32:
            raise ValueError("Storage values must be 32 bytes")
        self._storage[(to_checksum_address(address), slot)] = value

    def get_code(self, address: str) -> bytes:
        return self._code.get(to_checksum_address(address), b"")

    def set_code(self, address: str, code: bytes, model: Optional[ContractModel] = None) -> str:
        address = to_checksum_address(address)
        self._code[address] = code
        if model is not None:
            self._models[address] = model
        return address

    def prank(self, caller: str) -> None:
        self._pranked = to_checksum_address(caller)

    def call(self, to: str, data: bytes, value: int = 0) -> CallResult:
        sender = self._pranked or self.default_caller
        self._pranked = None
        return self.try_execute(to, data, sender=sender, value=value)

    def execute(
        self,
        to: str,
        data: bytes,
        *,
        sender: str,
        value: int = 0,
        context: Optional[str] = None,
    ) -> bytes:
        """Message call used by models. ``context`` set means DELEGATECALL into ``to``."""
        model = self._models.get(to_checksum_address(to))
        if model is None:
            # Plain accounts and code without a model accept anything.
            return b""
        ctx = CallContext(
            this=to_checksum_address(context or to),
            sender=to_checksum_address(sender),
            value=value,
            data=data,
        )
        return model.handle(self, ctx)

    def try_execute(self, to: str, data: bytes, **kwargs) -> CallResult:
        snapshot = (dict(self._storage), dict(self._code), dict(self._models))
        try:
            return_data = self.execute(to, data, **kwargs)
        except Revert as exc:
            self._storage, self._code, self._models = snapshot
            return CallResult(success=False, return_data=exc.data)
        except Exception:
            # Not a contract-level revert; undo partial writes before propagating.
            self._storage, self._code, self._models = snapshot
            raise
        return CallResult(success=True, return_data=return_data)


def ecrecover(message_hash: bytes, v: int, r: int, s: int) -> str:
    try:
        signature = keys.Signature(vrs=(v - 27, r, s))
        return signature.recover_public_key_from_msg_hash(message_hash).to_checksum_address()
    except (BadSignature, ValidationError):
        return ZERO_ADDRESS


class SafeModel(ContractModel):
    """Owner/threshold account following the verifier's storage layout and checks."""

    NONCE = function_signature_to_4byte_selector("nonce()")
    GET_THRESHOLD = function_signature_to_4byte_selector("getThreshold()")
    IS_OWNER = function_signature_to_4byte_selector("isOwner(address)")
    GET_OWNERS = function_signature_to_4byte_selector("getOwners()")
    APPROVE_HASH = function_signature_to_4byte_selector("approveHash(bytes32)")

    def __init__(self, chain_id: int):
        self.chain_id = chain_id

    @classmethod
    def install(
        cls,
        env: MemoryChainState,
        address: str,
        *,
        chain_id: int,
        owners: Sequence[str],
        threshold: int,
        nonce: int = 0,
    ) -> str:
        if not 1 <= threshold <= len(owners):
            raise ValueError("Threshold must be between 1 and the number of owners")
        address = env.set_code(address, PLACEHOLDER_CODE, cls(chain_id))
        previous = SENTINEL_OWNERS
        for owner in owners:
            env.store(address, mapping_slot(address_key(previous), OWNERS_SLOT), address_key(owner))
            previous = owner
        env.store(address, mapping_slot(address_key(previous), OWNERS_SLOT), address_key(SENTINEL_OWNERS))
        env.store(address, OWNER_COUNT_SLOT, _word(len(owners)))
        env.store(address, THRESHOLD_SLOT, _word(threshold))
        env.store(address, NONCE_SLOT, _word(nonce))
        return address

    def handle(self, env: MemoryChainState, ctx: CallContext) -> bytes:
        try:
            return self._dispatch(env, ctx)
        except (DecodingError, ValueError):
            # malformed ABI arguments or an out-of-range enum revert without data
            raise Revert()

    def _dispatch(self, env: MemoryChainState, ctx: CallContext) -> bytes:
        selector = ctx.data[:4]
        if selector == EXEC_TRANSACTION_SELECTOR:
            return self._exec_transaction(env, ctx)
        if selector == self.NONCE:
            return env.load(ctx.this, NONCE_SLOT)
        if selector == self.GET_THRESHOLD:
            return env.load(ctx.this, THRESHOLD_SLOT)
        if selector == self.IS_OWNER:
            (owner,) = decode(["address"], ctx.data[4:])
            return encode(["bool"], [self._is_owner(env, ctx.this, owner)])
        if selector == self.GET_OWNERS:
            return encode(["address[]"], [self._owners(env, ctx.this)])
        if selector == self.APPROVE_HASH:
            return self._approve_hash(env, ctx)
        # fallback / receive
        return b""

    def _next_owner(self, env: MemoryChainState, this: str, owner: str) -> str:
        return _word_to_address(env.load(this, mapping_slot(address_key(owner), OWNERS_SLOT)))

    def _is_owner(self, env: MemoryChainState, this: str, owner: str) -> bool:
        owner = to_checksum_address(owner)
        return owner != SENTINEL_OWNERS and self._next_owner(env, this, owner) != ZERO_ADDRESS

    def _owners(self, env: MemoryChainState, this: str) -> list:
        owners = []
        current = self._next_owner(env, this, SENTINEL_OWNERS)
        while current not in (SENTINEL_OWNERS, ZERO_ADDRESS):
            owners.append(current)
            current = self._next_owner(env, this, current)
        return owners

    def _approve_hash(self, env: MemoryChainState, ctx: CallContext) -> bytes:
        (digest,) = decode(["bytes32"], ctx.data[4:])
        if not self._is_owner(env, ctx.this, ctx.sender):
            raise Revert(error_data("GS030"))
        env.store(ctx.this, approved_hash_slot(ctx.sender, digest), _word(1))
        return b""

    def _exec_transaction(self, env: MemoryChainState, ctx: CallContext) -> bytes:
        (
            to, value, data, operation, safe_tx_gas,
            base_gas, gas_price, gas_token, refund_receiver, signatures,
        ) = decode(EXEC_TRANSACTION_TYPES, ctx.data[4:])

        nonce = int.from_bytes(env.load(ctx.this, NONCE_SLOT), "big")
        tx = SafeTransaction(to=to, value=value, data=data, operation=Operation(operation), nonce=nonce)
        tx_hash = transaction_digest(
            self.chain_id,
            ctx.this,
            tx,
            safe_tx_gas=safe_tx_gas,
            base_gas=base_gas,
            gas_price=gas_price,
            gas_token=gas_token,
            refund_receiver=refund_receiver,
        )
        env.store(ctx.this, NONCE_SLOT, _word(nonce + 1))
        self._check_signatures(env, ctx, tx_hash, signatures)

        if tx.operation == Operation.DELEGATECALL:
            result = env.try_execute(to, data, sender=ctx.sender, value=0, context=ctx.this)
        else:
            result = env.try_execute(to, data, sender=ctx.this, value=value)

        if not result.success and safe_tx_gas == 0 and gas_price == 0:
            raise Revert(error_data("GS013"))
        return encode(["bool"], [result.success])

    def _check_signatures(self, env: MemoryChainState, ctx: CallContext, data_hash: bytes, signatures: bytes) -> None:
        threshold = int.from_bytes(env.load(ctx.this, THRESHOLD_SLOT), "big")
        if threshold == 0:
            raise Revert(error_data("GS001"))
        if len(signatures) < threshold * 65:
            raise Revert(error_data("GS020"))

        last_owner = 0
        for i in range(threshold):
            chunk = signatures[i * 65:(i + 1) * 65]
            r = int.from_bytes(chunk[:32], "big")
            s = int.from_bytes(chunk[32:64], "big")
            v = chunk[64]

            if v == 0:
                # Contract signatures (EIP-1271) are not modelled.
                raise Revert(error_data("GS024"))
            elif v == 1:
                owner = to_checksum_address((r & _ADDRESS_MASK).to_bytes(20, "big"))
                approved = env.load(ctx.this, approved_hash_slot(owner, data_hash))
                if ctx.sender != owner and not int.from_bytes(approved, "big"):
                    raise Revert(error_data("GS025"))
            elif v > 30:
                prefixed = keccak(b"\x19Ethereum Signed Message:\n32" + data_hash)
                owner = ecrecover(prefixed, v - 4, r, s)
            else:
                owner = ecrecover(data_hash, v, r, s)

            owner_value = int(owner, 16)
            if owner_value <= last_owner or not self._is_owner(env, ctx.this, owner):
                raise Revert(error_data("GS026"))
            last_owner = owner_value


class MultiSendCallOnlyModel(ContractModel):
    def handle(self, env: MemoryChainState, ctx: CallContext) -> bytes:
        if ctx.data[:4] != MULTISEND_SELECTOR:
            raise Revert()
        try:
            (packed,) = decode(["bytes"], ctx.data[4:])
            calls = unpack_calls(packed)
        except (DecodingError, ShapeError, ValueError):
            raise Revert()
        for call in calls:
            if call.operation != Operation.CALL:
                raise Revert()
            result = env.try_execute(call.to, call.data, sender=ctx.this, value=call.value)
            if not result.success:
                raise Revert(result.return_data)
        return b""


class Create2FactoryModel(ContractModel):
    def handle(self, env: MemoryChainState, ctx: CallContext) -> bytes:
        if len(ctx.data) < 32:
            raise Revert()
        salt, init_code = ctx.data[:32], ctx.data[32:]
        address = compute_create2_address(ctx.this, salt, init_code)
        if env.has_code(address):
            raise Revert()
        if init_code:
            env.set_code(address, init_code)
        return bytes.fromhex(address[2:])
