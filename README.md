# trafficreplay

Building blocks for working with recorded HTTP traffic: inspecting and
rewriting raw HTTP/1.x messages, reading and writing the recording format,
and sending raw payloads to a server over TCP.

The package has four modules:

* **`trafficreplay.proto`** – byte-level helpers for raw HTTP/1.x payloads.
  They read and rewrite headers, paths and query parameters without building
  a request object, and tell whether a captured message is complete.
* **`trafficreplay.protocol`** – the recording format. Every message carries a
  one-line meta header (payload type, id, timing, latency) in front of the
  raw HTTP data, and recorded messages are joined by a fixed separator.
* **`trafficreplay.tcp_client`** – `TCPClient`, which sends a payload over a
  reusable TCP (optionally TLS) connection and reads back the response.
* **`trafficreplay.debug`** – verbosity-gated diagnostic output on standard
  error.

There are no runtime dependencies beyond the standard library. The `test`
extra adds `pytest`.

## Working with raw HTTP payloads

```python
from trafficreplay import proto

request = (
    b"POST /post?user_id=1 HTTP/1.1\r\n"
    b"Content-Length: 7\r\n"
    b"Host: www.w3.org\r\n"
    b"\r\n"
    b"a=1&b=2"
)

proto.method(request)                 # b"POST"
proto.path(request)                   # b"/post?user_id=1"
proto.header(request, b"host")        # b"www.w3.org" (case-insensitive)
proto.body(request)                   # b"a=1&b=2"

request = proto.set_header(request, b"User-Agent", b"replayer")
request = proto.set_path_param(request, b"user_id", b"2")
request = proto.delete_header(request, b"Content-Length")
```

Lookups return empty bytes when there is nothing to find. `find_header`
returns a `HeaderSpan` with the value and its positions, and
`parse_headers` turns the header block into a `dict` of canonical header
names to lists of values (or `None` if the block is malformed).
`status` gives the three-digit code of a response, and `has_request_title`,
`has_response_title` and `has_title` check the first line.

`has_full_payload` tells whether a message split over several captured
packets is complete. It handles `Content-Length` bodies, chunked transfer
encoding and trailers. An `HTTPState` may be passed to keep progress between
calls, or `None` for a one-off check:

```python
proto.has_full_payload(
    None,
    b"HTTP/1.1 200 OK\r\nContent-Type: text/plain\r\n",
    b"Transfer-Encoding: chunked\r\n\r\n",
    b"7\r\nMozilla\r\n9\r\nDeveloper\r\n",
    b"7\r\nNetwork\r\n0\r\n\r\n",
)  # True
```

`check_chunked` scans chunked body data and returns how many bytes of valid
chunks it read and whether the final zero-size chunk was reached.

## The recording format

```python
from trafficreplay.protocol import (
    PAYLOAD_SEPARATOR, REQUEST_PAYLOAD, new_uuid, payload_header, payload_id, split_payloads,
)

meta = payload_header(REQUEST_PAYLOAD, new_uuid(), 1_700_000_000_000_000_000, -1)
record = meta + b"GET / HTTP/1.1\r\n\r\n"

payload_id(meta)                      # the 24-character hex id
stream = record + PAYLOAD_SEPARATOR + record
list(split_payloads(stream))          # [record, record]
```

`payload_meta` splits the meta line into its fields, `payload_body` and
`payload_meta_with_body` separate the meta line from the data, and
`is_request_payload` / `is_origin_payload` check the payload type.

## Sending a raw payload

```python
from trafficreplay.tcp_client import TCPClient, TCPClientConfig

with TCPClient("127.0.0.1:8080", TCPClientConfig(timeout=2.0)) as client:
    response = client.send(b"GET / HTTP/1.1\r\nHost: localhost\r\nConnection: close\r\n\r\n")
```

`send` connects on first use and reconnects when the server has closed the
connection. It reads until the server closes the connection and returns at
most `response_buffer_size` bytes (100 KiB by default). Timeouts are in
seconds and default to 5. Connection, write and read failures are raised as
`OSError`. With `secure=True` the connection uses TLS without certificate
verification.

## Diagnostics

```python
from trafficreplay.debug import debug, set_verbosity

set_verbosity(1)
debug(1, "connected to", "127.0.0.1:8080")
```

Each message is prefixed with the time elapsed since the previous one.

## What the package does not do

It has no command-line program, no capture of live traffic, no reading or
writing of recording files, and no plugins that forward messages to HTTP,
TCP or WebSocket targets. It provides the parsing, framing and sending
pieces such tools are built from.