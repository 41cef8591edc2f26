import pytest
from eth_abi import decode

from safeflow.core.chains.constants import MULTISEND_CALL_ONLY_V130
from safeflow.core.chains.registry import ChainRegistry
from safeflow.core.errors import ConfigurationError, ShapeError
from safeflow.core.safe.models import Operation
from safeflow.core.safe.multisend import (
    MULTISEND_SELECTOR,
    BatchCall,
    decode_batch,
    encode_batch,
    pack_calls,
    unpack_calls,
)

A = "0x1111111111111111111111111111111111111111"
B = "0x2222222222222222222222222222222222222222"


def test_selector_is_multisend_bytes():
    assert MULTISEND_SELECTOR.hex() == "8d80ff0a"


def test_encode_batch_uses_registry_executor():
    executor, payload = encode_batch(1, [A], [b"\x01\x02"])

    assert executor == MULTISEND_CALL_ONLY_V130
    assert payload[:4] == MULTISEND_SELECTOR


def test_packed_entry_layout():
    _, payload = encode_batch(1, [A, B], [b"\xaa\xbb", b""])
    (packed,) = decode(["bytes"], payload[4:])

    # op ‖ to ‖ value ‖ len ‖ data, no padding between entries
    assert len(packed) == (85 + 2) + 85
    assert packed[0] == 0
    assert packed[1:21] == bytes.fromhex(A[2:])
    assert int.from_bytes(packed[21:53], "big") == 0
    assert int.from_bytes(packed[53:85], "big") == 2
    assert packed[85:87] == b"\xaa\xbb"
    assert packed[87 + 1:87 + 21] == bytes.fromhex(B[2:])
    assert int.from_bytes(packed[87 + 53:87 + 85], "big") == 0


def test_decode_recovers_calls_in_order():
    _, payload = encode_batch(1, [B, A, B], [b"\x01", b"", b"\x02\x03"])

    calls = decode_batch(payload)

    assert [(c.to, c.data) for c in calls] == [(B, b"\x01"), (A, b""), (B, b"\x02\x03")]
    assert all(c.operation == Operation.CALL and c.value == 0 for c in calls)


def test_empty_batch_is_valid():
    _, payload = encode_batch(1, [], [])

    assert decode_batch(payload) == []


def test_length_mismatch_is_rejected():
    with pytest.raises(ShapeError):
        encode_batch(1, [A, B], [b"\x01"])


def test_unknown_network_is_rejected():
    with pytest.raises(ConfigurationError):
        encode_batch(999999, [A], [b""])


def test_custom_registry_entry():
    registry = ChainRegistry(chains={})
    registry.register(31337, safe_service_url="http://localhost:8000/", multisend_address=B)

    executor, _ = encode_batch(31337, [A], [b""], registry=registry)

    assert executor == B


def test_decode_rejects_foreign_selector():
    with pytest.raises(ShapeError):
        decode_batch(b"\xde\xad\xbe\xef" + bytes(64))


def test_unpack_rejects_truncated_data():
    packed = pack_calls([BatchCall(to=A, data=b"\x01\x02\x03")])

    with pytest.raises(ShapeError):
        unpack_calls(packed[:-1])
    with pytest.raises(ShapeError):
        unpack_calls(packed[:40])


def test_value_is_packed():
    packed = pack_calls([BatchCall(to=A, data=b"", value=5)])

    assert unpack_calls(packed)[0].value == 5
