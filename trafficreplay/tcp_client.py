"""A plain TCP client that sends a request and reads the whole response."""

from __future__ import annotations

import socket
import ssl
from dataclasses import dataclass
from typing import Optional

from .debug import debug

READ_CHUNK_SIZE = 64 * 1024
MAX_RESPONSE_SIZE = 1_073_741_824

_DEFAULT_TIMEOUT = 5.0
_DEFAULT_RESPONSE_BUFFER = 100 * 1024
_ALIVE_PROBE_TIMEOUT = 0.001


@dataclass
class TCPClientConfig:
    """Client settings; timeouts are in seconds, zero means the default."""

    debug: bool = False
    connection_timeout: float = 0.0
    timeout: float = 0.0
    response_buffer_size: int = 0
    secure: bool = False


def _split_address(address: str) -> tuple[str, int]:
    """Split ``host:port``; an empty host means the local machine."""
    host, sep, port = address.rpartition(":")
    if not sep:
        raise ValueError(f"address {address!r}: missing port")
    host = host.strip("[]") or "localhost"
    try:
        return host, int(port)
    except ValueError:
        raise ValueError(f"address {address!r}: invalid port") from None


class TCPClient:
    """Sends raw payloads over one reusable connection."""

    def __init__(self, addr: str, config: Optional[TCPClientConfig] = None) -> None:
        config = config if config is not None else TCPClientConfig()
        if config.timeout == 0:
            config.timeout = _DEFAULT_TIMEOUT
        config.connection_timeout = config.timeout
        if config.response_buffer_size == 0:
            config.response_buffer_size = _DEFAULT_RESPONSE_BUFFER
        self.addr = addr
        self.config = config
        self._conn: Optional[socket.socket] = None
        self._resp_buf = bytearray(config.response_buffer_size)

    def __enter__(self) -> "TCPClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.disconnect()

    def connect(self) -> None:
        """Open a fresh connection, closing any previous one."""
        self.disconnect()
        host, port = _split_address(self.addr)
        sock = socket.create_connection((host, port), timeout=self.config.connection_timeout)
        if self.config.secure:
            context = ssl.create_default_context()
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
            try:
                sock = context.wrap_socket(sock, server_hostname=host)
            except OSError:
                sock.close()
                raise
        self._conn = sock

    def disconnect(self) -> None:
        """Close the connection if one is open."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            debug(1, "[TCPClient] Disconnected: ", self.addr)

    def _is_alive(self) -> bool:
        conn = self._conn
        assert conn is not None
        conn.settimeout(_ALIVE_PROBE_TIMEOUT)
        try:
            data = conn.recv(1)
        except BrokenPipeError as err:
            debug(1, "Detected broken pipe.", err)
            return False
        except OSError:
            return True
        if not data:
            debug(1, "[TCPClient] connection closed, reconnecting")
            return False
        return True

    def send(self, data: bytes) -> bytes:
        """Send ``data`` and return the response, cut to the response buffer size.

        Raises OSError when connecting, writing or reading fails.
        """
        if self._conn is None or not self._is_alive():
            debug(1, "[TCPClient] Connecting:", self.addr)
            try:
                self.connect()
            except OSError as err:
                debug(1, "[TCPClient] Connection error:", err)
                raise
        conn = self._conn
        assert conn is not None

        conn.settimeout(self.config.timeout)
        if self.config.debug:
            debug(1, "[TCPClient] Sending:", data.decode("utf-8", "replace"))
        try:
            conn.sendall(data)
        except OSError as err:
            debug(1, "[TCPClient] Write error:", err, self.addr)
            raise

        buf = self._resp_buf
        view = memoryview(buf)
        read_bytes = 0
        chunk: Optional[bytearray] = None
        error: Optional[OSError] = None
        while True:
            try:
                if read_bytes < len(buf):
                    n = conn.recv_into(view[read_bytes:])
                else:
                    if chunk is None:
                        chunk = bytearray(READ_CHUNK_SIZE)
                    n = conn.recv_into(chunk)
            except OSError as err:
                if read_bytes >= len(buf):
                    debug(1, "[TCPClient] Read the whole body error:", err, self.addr)
                error = err
                break
            if n == 0:
                break
            read_bytes += n
            if read_bytes >= MAX_RESPONSE_SIZE:
                debug(1, "[TCPClient] Body is more than the max size", MAX_RESPONSE_SIZE, self.addr)
                break
            # following chunks are expected sooner
            conn.settimeout(self.config.timeout / 5)

        if error is not None:
            debug(1, "[TCPClient] Response read error", error, read_bytes)
            raise error

        payload = bytes(buf[:min(read_bytes, len(buf))])
        if self.config.debug:
            debug(1, "[TCPClient] Received:", payload.decode("utf-8", "replace"))
        return payload