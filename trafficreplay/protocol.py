"""Framing of recorded payloads: the meta header line and the payload separator.

Every payload starts with a single meta line::

    <type> <id> <timing> <latency>\\n

followed by the raw data. Payloads in a stream are separated by
:data:`PAYLOAD_SEPARATOR`.
"""

from __future__ import annotations

import secrets
from collections.abc import Iterator

REQUEST_PAYLOAD = b"1"
RESPONSE_PAYLOAD = b"2"
REPLAYED_RESPONSE_PAYLOAD = b"3"

PAYLOAD_SEPARATOR = "\n🐵🙈🙉\n".encode("utf-8")


def rand_hex(length: int) -> bytes:
    """Random lowercase hex digits, ``length`` of them (rounded down to even)."""
    return secrets.token_hex(length // 2).encode("ascii")


def new_uuid() -> bytes:
    """A fresh 24-character hex payload id."""
    return rand_hex(24)


def split_payloads(data: bytes) -> Iterator[bytes]:
    """Yield the payloads of a separator-delimited stream.

    Every separator closes a payload, empty ones included; data after the
    last separator is yielded only when it is not empty.
    """
    *complete, rest = data.split(PAYLOAD_SEPARATOR)
    yield from complete
    if rest:
        yield rest


def payload_header(payload_type: bytes, uuid: bytes, timing: int, latency: int) -> bytes:
    """Build a meta line.

    ``timing`` is the request start or the round-trip time, depending on the
    payload type.
    """
    return b"%s %s %d %d\n" % (payload_type, uuid, timing, latency)


def payload_body(payload: bytes) -> bytes:
    """Everything after the meta line."""
    return payload[payload.find(b"\n") + 1:]


def payload_meta(payload: bytes) -> list[bytes]:
    """Fields of the meta line; empty if the payload has no line break."""
    end = payload.find(b"\n")
    if end < 0:
        return []
    return payload[:end].split(b" ")


def payload_meta_with_body(payload: bytes) -> tuple[bytes, bytes]:
    """Split a payload into its meta line (with newline) and its body.

    A payload without a meta line followed by data gives an empty meta and
    the whole payload as body.
    """
    end = payload.find(b"\n")
    if end > 0 and len(payload) > end + 1:
        return payload[:end + 1], payload[end + 1:]
    return b"", payload


def payload_id(payload: bytes) -> bytes:
    """Id field of the meta line; empty if there is none."""
    meta = payload_meta(payload)
    if len(meta) < 2:
        return b""
    return meta[1]


def is_origin_payload(payload: bytes) -> bool:
    """Whether the payload is an original request or response."""
    return payload[:1] in (REQUEST_PAYLOAD, RESPONSE_PAYLOAD)


def is_request_payload(payload: bytes) -> bool:
    """Whether the payload is an original request."""
    return payload[:1] == REQUEST_PAYLOAD