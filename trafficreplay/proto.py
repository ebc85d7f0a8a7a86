"""Byte-level inspection and editing of raw HTTP/1 payloads.

A payload looks like::

    POST /upload HTTP/1.1\\r\\n
    User-Agent: Gor\\r\\n
    Content-Length: 11\\r\\n
    \\r\\n
    Hello world
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

CRLF = b"\r\n"
EMPTY_LINE = b"\r\n\r\n"
HEADER_DELIM = b": "

METHODS = (
    b"CONNECT",
    b"DELETE",
    b"GET",
    b"HEAD",
    b"OPTIONS",
    b"PATCH",
    b"POST",
    b"PUT",
    b"TRACE",
)

# "GET / HTTP/1.1\r\n"
MIN_REQUEST_COUNT = 16
# "HTTP/1.1 200\r\n"
MIN_RESPONSE_COUNT = 14
# "HTTP/1.1"
VERSION_LEN = 8

_KNOWN_STATUS_CODES = frozenset(
    {
        100, 101, 102, 103,
        200, 201, 202, 203, 204, 205, 206, 207, 208, 226,
        300, 301, 302, 303, 304, 305, 307, 308,
        400, 401, 402, 403, 404, 405, 406, 407, 408, 409, 410, 411, 412,
        413, 414, 415, 416, 417, 418, 421, 422, 423, 424, 425, 426, 428,
        429, 431, 451,
        500, 501, 502, 503, 504, 505, 506, 507, 508, 510, 511,
    }
)

_HEX_VALUES = {ord(ch): int(ch, 16) for ch in "0123456789abcdefABCDEF"}

_TOKEN_BYTES = frozenset(
    b"abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789!#$%&'*+-.^_`|~"
)

_DECIMAL = re.compile(rb"[+-]?[0-9]+")
_VERSION_BIG = 1_000_000


@dataclass(frozen=True)
class HeaderSpan:
    """A header located in a payload; positions are -1 when it is absent."""

    value: bytes
    header_start: int
    header_end: int
    value_start: int
    value_end: int

    @property
    def found(self) -> bool:
        return self.header_start != -1


_NOT_FOUND = HeaderSpan(b"", -1, -1, -1, -1)


@dataclass
class HTTPState:
    """Parsing progress kept between calls of :func:`has_full_payload`."""

    body: int = 0
    header_start: int = 0
    header_end: int = 0
    header_parsed: bool = False
    has_full_payload: bool = False
    is_chunked: bool = False
    body_len: int = 0
    has_trailer: bool = False
    continue100: bool = False


def _atoi(digits: bytes, base: int) -> tuple[int, bool]:
    """Parse a non-negative number; on failure the digits read so far are returned."""
    num = 0
    for c in digits:
        if c > 127:
            return num, False
        v = _HEX_VALUES.get(c, 0)
        if v >= base or (v == 0 and c != 0x30):
            return num, False
        num = num * base + v
    return num, True


def _parse_http_version(version: bytes) -> Optional[tuple[int, int]]:
    if version == b"HTTP/1.1":
        return 1, 1
    if version == b"HTTP/1.0":
        return 1, 0
    if not version.startswith(b"HTTP/"):
        return None
    dot = version.find(b".")
    if dot < 0:
        return None
    parts = (version[5:dot], version[dot + 1:])
    numbers = []
    for part in parts:
        if not _DECIMAL.fullmatch(part):
            return None
        number = int(part)
        if number < 0 or number > _VERSION_BIG:
            return None
        numbers.append(number)
    return numbers[0], numbers[1]


def _is_http1(version: bytes) -> bool:
    parsed = _parse_http_version(version)
    return parsed is not None and parsed[0] == 1 and parsed[1] in (0, 1)


def mime_headers_end_pos(payload: bytes) -> int:
    """Position just past the blank line closing the headers, or -1."""
    pos = payload.find(EMPTY_LINE)
    if pos < 0:
        return -1
    return pos + 4


def mime_headers_start_pos(payload: bytes) -> int:
    """Position of the second line (first header), or -1."""
    pos = payload.find(CRLF)
    if pos < 0:
        return -1
    return pos + 2


def find_header(payload: bytes, name: bytes) -> HeaderSpan:
    """Locate header ``name`` (case-insensitive). Multi-line headers are not supported."""
    if has_title(payload):
        start = mime_headers_start_pos(payload)
        if start < 0:
            return _NOT_FOUND
    else:
        start = 0

    wanted = name.lower()
    found = False
    end = value_start = value_end = -1
    while start < len(payload):
        end = payload.find(b"\n", start)
        if end == -1:
            break
        colon = payload.find(b":", start, end)
        if colon == -1:
            # malformed line, most likely a packet with partial headers
            start = end + 1
            continue
        if payload[start:colon].lower() == wanted:
            value_start = colon + 1
            value_end = end - 2
            found = True
            break
        start = end + 1

    if not found:
        return _NOT_FOUND

    while value_start < value_end and payload[value_start] < 0x21:
        value_start += 1
    while value_end > value_start and payload[value_end] < 0x21:
        value_end -= 1

    return HeaderSpan(payload[value_start:value_end + 1], start, end, value_start, value_end)


def header(payload: bytes, name: bytes) -> bytes:
    """Value of header ``name``; empty when it is absent."""
    return find_header(payload, name).value


def _canonical_key(key: bytes) -> str:
    if any(c not in _TOKEN_BYTES for c in key):
        return key.decode("utf-8", "replace")
    out = bytearray()
    upper = True
    for c in key:
        if upper and 0x61 <= c <= 0x7A:
            c -= 0x20
        elif not upper and 0x41 <= c <= 0x5A:
            c += 0x20
        out.append(c)
        upper = c == 0x2D
    return out.decode("ascii")


def get_headers(payload: bytes) -> Optional[dict[str, list[str]]]:
    """Parse a MIME header block ending in a blank line; None if it is malformed."""
    lines = payload.split(b"\n")
    if lines and lines[-1] == b"":
        lines.pop()
    lines = [line[:-1] if line.endswith(b"\r") else line for line in lines]

    if lines and lines[0][:1] in (b" ", b"\t"):
        return None

    headers: dict[str, list[str]] = {}
    pending = iter(lines)
    line = next(pending, None)
    while True:
        if line is None:
            return None
        if not line:
            return headers
        if b":" not in line:
            return None
        kv = line.strip(b" \t\r\n")
        line = next(pending, None)
        while line is not None and line[:1] in (b" ", b"\t"):
            kv += b" " + line.strip(b" \t\r\n")
            line = next(pending, None)

        colon = kv.find(b":")
        key = _canonical_key(kv[:colon])
        if not key:
            continue
        value = kv[colon + 1:].lstrip(b" \t")
        headers.setdefault(key, []).append(value.decode("utf-8", "replace"))


def parse_headers(payload: bytes) -> Optional[dict[str, list[str]]]:
    """Parse the headers of a request or response payload."""
    if has_title(payload):
        start = mime_headers_start_pos(payload)
        if start > len(payload) - 1:
            return None
        payload = payload[start:]
    end = mime_headers_end_pos(payload)
    if end > 1:
        payload = payload[:end]
    return get_headers(payload)


def set_header(payload: bytes, name: bytes, value: bytes) -> bytes:
    """Replace the value of ``name``, adding the header when it is absent."""
    span = find_header(payload, name)
    if span.found:
        return payload[:span.value_start] + value + payload[span.value_end + 1:]
    return add_header(payload, name, value)


def add_header(payload: bytes, name: bytes, value: bytes) -> bytes:
    """Insert a header at the start of the headers section."""
    start = mime_headers_start_pos(payload)
    if start < 1:
        return payload
    line = name + HEADER_DELIM + value + CRLF
    return payload[:start] + line + payload[start:]


def delete_header(payload: bytes, name: bytes) -> bytes:
    """Remove header ``name`` if present."""
    span = find_header(payload, name)
    if span.found:
        return payload[:span.header_start] + payload[span.header_end + 1:]
    return payload


def body(payload: bytes) -> bytes:
    """Body following the headers; empty if there is none."""
    pos = mime_headers_end_pos(payload)
    if pos == -1 or len(payload) <= pos:
        return b""
    return payload[pos:]


def path(payload: bytes) -> bytes:
    """Request path from the title line; empty if the payload is not a request."""
    if not has_request_title(payload):
        return b""
    start = payload.find(b" ") + 1
    end = payload.find(b" ", start)
    return payload[start:end]


def set_path(payload: bytes, new_path: bytes) -> bytes:
    """Replace the path in the title line; empty if there is no title."""
    if not has_title(payload):
        return b""
    start = payload.find(b" ") + 1
    end = payload.find(b" ", start)
    if end == -1:
        raise ValueError("payload title has no path")
    return payload[:start] + new_path + payload[end:]


def path_param(payload: bytes, name: bytes) -> tuple[bytes, int, int]:
    """Query parameter value with its start and end inside the path; (b"", -1, -1) if absent."""
    request_path = path(payload)
    start = request_path.find(b"&" + name + b"=")
    if start == -1:
        start = request_path.find(b"?" + name + b"=")
        if start == -1:
            return b"", -1, -1
    value_start = start + len(name) + 2
    end = request_path.find(b"&", value_start)
    if end == -1:
        end = len(request_path)
    return request_path[value_start:end], value_start, end


def set_path_param(payload: bytes, name: bytes, value: bytes) -> bytes:
    """Set a query parameter, appending it when absent."""
    request_path = path(payload)
    _, start, end = path_param(payload, name)
    if start != -1:
        return set_path(payload, request_path[:start] + value + request_path[end:])
    separator = b"&" if b"?" in request_path else b"?"
    return set_path(payload, request_path + separator + name + b"=" + value)


def set_host(payload: bytes, url: Optional[bytes], host: bytes) -> bytes:
    """Point the request at a new host.

    Absolute request paths (HTTP/1.0 or proxy traffic) have their scheme and
    host replaced by ``url``; otherwise the Host header is set to ``host``.
    """
    request_path = path(payload)
    if request_path.startswith(b"http"):
        host_start = request_path.find(b":") + 3
        host_end = request_path.find(b"/", host_start)
        if host_end == -1:
            host_end = len(request_path)
        return set_path(payload, (url or b"") + request_path[host_end:])
    return set_header(payload, b"Host", host)


def method(payload: bytes) -> bytes:
    """HTTP method: everything before the first space; empty if there is none."""
    end = payload.find(b" ")
    if end == -1:
        return b""
    return payload[:end]


def status(payload: bytes) -> bytes:
    """Three-digit status of a response; empty if the payload is not a response."""
    if not has_response_title(payload):
        return b""
    start = payload.find(b" ") + 1
    return payload[start:start + 3]


def has_response_title(payload: bytes) -> bool:
    """Whether the payload starts with an HTTP/1.0 or HTTP/1.1 status line."""
    if len(payload) < MIN_RESPONSE_COUNT:
        return False
    if payload.find(CRLF) == -1:
        return False
    if not _is_http1(payload[:VERSION_LEN]):
        return False
    if payload[VERSION_LEN] != 0x20:
        return False
    code, ok = _atoi(payload[VERSION_LEN + 1:VERSION_LEN + 4], 10)
    if not ok or code not in _KNOWN_STATUS_CODES:
        return False
    return payload[VERSION_LEN + 4] in (0x20, 0x0D)


def has_request_title(payload: bytes) -> bool:
    """Whether the payload starts with an HTTP/1.0 or HTTP/1.1 request line."""
    if len(payload) < MIN_REQUEST_COUNT:
        return False
    title_len = payload.find(CRLF)
    if title_len == -1:
        return False
    if payload[:title_len].count(b" ") != 2:
        return False
    request_method = method(payload)
    if request_method not in METHODS:
        return False
    path_end = payload.find(b" ", len(request_method) + 1)
    if path_end == -1:
        return False
    return _is_http1(payload[path_end + 1:title_len])


def has_title(payload: bytes) -> bool:
    """Whether the payload starts with an HTTP/1 request or status line."""
    return has_request_title(payload) or has_response_title(payload)


def check_chunked(buf: bytes) -> tuple[int, bool]:
    """Scan chunked body data.

    Returns the length of the valid chunks scanned (sizes, extensions and
    CRLFs included) and whether the terminating zero-size chunk was reached.
    """
    chunk_end = 0
    full = False
    while chunk_end < len(buf):
        cr = buf.find(b"\r", chunk_end)
        if cr - chunk_end < 1:
            break
        size_field = buf[chunk_end:cr]
        chunk_len, ok = _atoi(size_field, 16)
        # chunk extensions are not parsed, only tolerated after the size
        if not ok and size_field.find(b";") < 1:
            break
        lf = cr + 1
        last = lf + chunk_len + 2
        if (
            last >= len(buf)
            or (buf[lf] & buf[last]) != 0x0A
            or buf[last - 1] != 0x0D
        ):
            break
        chunk_end = last + 1
        if chunk_len == 0:
            full = True
            break
    return chunk_end, full


def has_full_payload(state: Optional[HTTPState], *payloads: bytes) -> bool:
    """Whether the payload pieces form a complete HTTP message.

    ``state`` may carry progress between calls while more pieces arrive;
    pass None for a one-off check.
    """
    if state is None:
        state = HTTPState()

    if not payloads:
        return False
    first = payloads[0]
    if not has_request_title(first) and not has_response_title(first):
        return False

    if state.header_start < 1:
        state.header_start = mime_headers_start_pos(first)
        if state.header_start < 0:
            return False

    if state.body < 1 or state.header_end < 1:
        pos = 0
        for data in payloads:
            end_pos = mime_headers_end_pos(data)
            if end_pos < 0:
                pos += len(data)
            else:
                pos += end_pos
                state.header_end = pos
            if end_pos > 0:
                state.body = pos
                break

    if state.header_end < 1:
        return False

    if not state.header_parsed:
        pos = 0
        for data in payloads:
            if header(data, b"Transfer-Encoding") and data.find(b"chunked") > 0:
                state.is_chunked = True
                state.has_trailer = bool(header(data, b"Trailer"))
            else:
                state.body_len, _ = _atoi(header(data, b"Content-Length"), 10)
            pos += len(data)
            if header(data, b"Expect") == b"100-continue":
                state.continue100 = True
            if state.body_len > 0 or pos >= state.body:
                state.header_parsed = True
                break

    body_len = sum(len(data) for data in payloads) - state.body

    if state.is_chunked:
        if body_len < 1:
            return False
        last = payloads[-1]
        if state.has_trailer:
            if last.endswith(b"\r\n\r\n"):
                return True
        elif last.endswith(b"0\r\n\r\n"):
            state.has_full_payload = True
            return True
        return False

    return state.body_len == body_len