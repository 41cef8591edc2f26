from typing import List, Tuple

import pytest
from eth_account import Account

from safeflow.core.chains.constants import MULTISEND_CALL_ONLY_V130
from safeflow.core.safe.deployment import DETERMINISTIC_DEPLOYER
from safeflow.state.memory import (
    CallContext,
    Create2FactoryModel,
    FunctionModel,
    MemoryChainState,
    MultiSendCallOnlyModel,
    Revert,
    SafeModel,
    error_data,
)

CHAIN_ID = 1
SAFE_ADDRESS = "0x5afe5afe5afe5afe5afe5afe5afe5afe5afe5afe"

OWNER_A_KEY = "0x" + "11" * 32
OWNER_B_KEY = "0x" + "22" * 32
OWNER_C_KEY = "0x" + "33" * 32
OUTSIDER_KEY = "0x" + "44" * 32

TARGET = "0x1111111111111111111111111111111111111111"
OTHER_TARGET = "0x2222222222222222222222222222222222222222"
REVERTER = "0x3333333333333333333333333333333333333333"


@pytest.fixture
def owner_a() -> str:
    return Account.from_key(OWNER_A_KEY).address


@pytest.fixture
def owner_b() -> str:
    return Account.from_key(OWNER_B_KEY).address


@pytest.fixture
def owner_c() -> str:
    return Account.from_key(OWNER_C_KEY).address


@pytest.fixture
def outsider() -> str:
    return Account.from_key(OUTSIDER_KEY).address


@pytest.fixture
def recorded_calls() -> List[Tuple[str, bytes]]:
    return []


@pytest.fixture
def chain(owner_a, owner_b, owner_c, recorded_calls) -> MemoryChainState:
    """Memory state with a 2-of-{A,B,C} Safe, MultiSend, a recorder and a reverter."""
    state = MemoryChainState()
    SafeModel.install(
        state,
        SAFE_ADDRESS,
        chain_id=CHAIN_ID,
        owners=[owner_a, owner_b, owner_c],
        threshold=2,
    )
    state.set_code(MULTISEND_CALL_ONLY_V130, b"\xfe", MultiSendCallOnlyModel())
    state.set_code(DETERMINISTIC_DEPLOYER, b"\xfe", Create2FactoryModel())

    def record(env: MemoryChainState, ctx: CallContext) -> bytes:
        recorded_calls.append((ctx.sender, ctx.data))
        return b""

    def boom(env: MemoryChainState, ctx: CallContext) -> bytes:
        raise Revert(error_data("boom"))

    state.set_code(TARGET, b"\xfe", FunctionModel(record))
    state.set_code(OTHER_TARGET, b"\xfe", FunctionModel(record))
    state.set_code(REVERTER, b"\xfe", FunctionModel(boom))
    return state
