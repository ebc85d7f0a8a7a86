import pytest

from trafficreplay.protocol import (
    PAYLOAD_SEPARATOR,
    REPLAYED_RESPONSE_PAYLOAD,
    REQUEST_PAYLOAD,
    RESPONSE_PAYLOAD,
    is_origin_payload,
    is_request_payload,
    new_uuid,
    payload_body,
    payload_header,
    payload_id,
    payload_meta,
    payload_meta_with_body,
    rand_hex,
    split_payloads,
)

HEX_DIGITS = set(b"0123456789abcdef")


def test_payload_header_documented_example():
    header = payload_header(
        REPLAYED_RESPONSE_PAYLOAD,
        b"f45590522cd1838b4a0d5c5aab80b77929dea3b3",
        13923489726487326,
        1231,
    )
    assert header == b"3 f45590522cd1838b4a0d5c5aab80b77929dea3b3 13923489726487326 1231\n"


def test_new_uuid_is_hex_of_fixed_length():
    uid = new_uuid()
    assert len(uid) == 24
    assert set(uid) <= HEX_DIGITS


def test_uuids_differ():
    assert len({new_uuid() for _ in range(50)}) == 50


@pytest.mark.parametrize("length", [2, 4, 24, 40])
def test_rand_hex_length(length):
    value = rand_hex(length)
    assert len(value) == length
    assert set(value) <= HEX_DIGITS


def test_meta_round_trip():
    uid = new_uuid()
    header = payload_header(REQUEST_PAYLOAD, uid, 5, -1)
    assert payload_meta(header + b"GET / HTTP/1.1\r\n\r\n") == [b"1", uid, b"5", b"-1"]


def test_payload_id_and_body():
    uid = new_uuid()
    data = b"GET / HTTP/1.1\r\n\r\n"
    payload = payload_header(RESPONSE_PAYLOAD, uid, 1, 2) + data
    assert payload_id(payload) == uid
    assert payload_body(payload) == data


def test_payload_meta_without_newline_is_empty():
    assert payload_meta(b"1 abc 3") == []
    assert payload_id(b"1 abc 3") == b""


def test_payload_id_missing_field():
    assert payload_id(b"1\nbody") == b""


def test_payload_meta_with_body_splits():
    meta, rest = payload_meta_with_body(b"1 2 3\nGET / HTTP1.1\r\n\r\n")
    assert meta == b"1 2 3\n"
    assert rest == b"GET / HTTP1.1\r\n\r\n"


@pytest.mark.parametrize("payload", [b"no meta at all", b"1 2 3\n", b"\nbody"])
def test_payload_meta_with_body_without_meta(payload):
    assert payload_meta_with_body(payload) == (b"", payload)


def test_split_payloads():
    data = b"first" + PAYLOAD_SEPARATOR + b"second" + PAYLOAD_SEPARATOR
    assert list(split_payloads(data)) == [b"first", b"second"]


def test_split_payloads_keeps_trailing_data_and_empty_tokens():
    data = b"a" + PAYLOAD_SEPARATOR + PAYLOAD_SEPARATOR + b"tail"
    assert list(split_payloads(data)) == [b"a", b"", b"tail"]


def test_split_payloads_empty():
    assert list(split_payloads(b"")) == []


def test_payload_kinds():
    assert is_origin_payload(b"1 x 1\n")
    assert is_origin_payload(b"2 x 1\n")
    assert not is_origin_payload(b"3 x 1\n")
    assert is_request_payload(b"1 x 1\n")
    assert not is_request_payload(b"2 x 1\n")
    assert not is_request_payload(b"")