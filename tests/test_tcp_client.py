import socket
import threading
import time
from contextlib import contextmanager

import pytest

from trafficreplay.tcp_client import TCPClient, TCPClientConfig

REQUEST = b"GET / HTTP/1.1\r\nHost: www.w3.org\r\n\r\n"
RESPONSE = b"HTTP/1.1 200 OK\r\nContent-Length: 2\r\n\r\nok"


@contextmanager
def running_server(handler):
    listener = socket.create_server(("127.0.0.1", 0))
    listener.settimeout(0.1)
    stop = threading.Event()

    def loop():
        while not stop.is_set():
            try:
                conn, _ = listener.accept()
            except socket.timeout:
                continue
            except OSError:
                return
            conn.settimeout(5)
            threading.Thread(target=handler, args=(conn,), daemon=True).start()

    thread = threading.Thread(target=loop, daemon=True)
    thread.start()
    try:
        yield f"127.0.0.1:{listener.getsockname()[1]}"
    finally:
        stop.set()
        thread.join()
        listener.close()


def responder(response, received=None):
    def handle(conn):
        with conn:
            data = conn.recv(65536)
            if received is not None:
                received.append(data)
            conn.sendall(response)

    return handle


def test_defaults_applied():
    client = TCPClient("127.0.0.1:1", TCPClientConfig())
    assert client.config.timeout == 5.0
    assert client.config.connection_timeout == 5.0
    assert client.config.response_buffer_size == 100 * 1024


def test_explicit_settings_kept():
    client = TCPClient("127.0.0.1:1", TCPClientConfig(timeout=1.5, response_buffer_size=64))
    assert client.config.connection_timeout == 1.5
    assert client.config.response_buffer_size == 64


def test_send_returns_response_and_delivers_request():
    received = []
    with running_server(responder(RESPONSE, received)) as address:
        with TCPClient(address, TCPClientConfig(timeout=2.0)) as client:
            assert client.send(REQUEST) == RESPONSE
    assert received == [REQUEST]


def test_response_cut_to_buffer_size():
    big = b"x" * 100 + b"y" * 200_000
    with running_server(responder(big)) as address:
        with TCPClient(address, TCPClientConfig(timeout=2.0, response_buffer_size=10)) as client:
            assert client.send(REQUEST) == big[:10]


def test_reconnects_after_server_closed_connection():
    connections = []

    def handle(conn):
        connections.append(conn)
        responder(RESPONSE)(conn)

    with running_server(handle) as address:
        with TCPClient(address, TCPClientConfig(timeout=2.0)) as client:
            first = client.send(REQUEST)
            second = client.send(REQUEST)
    assert first == RESPONSE
    assert second == RESPONSE
    assert len(connections) == 2


def test_connection_refused_raises():
    probe = socket.create_server(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()
    client = TCPClient(f"127.0.0.1:{port}", TCPClientConfig(timeout=1.0))
    with pytest.raises(OSError):
        client.send(REQUEST)


def test_read_timeout_raises_when_server_keeps_connection_open():
    def handle(conn):
        with conn:
            conn.recv(65536)
            conn.sendall(RESPONSE)
            time.sleep(1.5)

    with running_server(handle) as address:
        with TCPClient(address, TCPClientConfig(timeout=0.2)) as client:
            with pytest.raises(TimeoutError):
                client.send(REQUEST)


def test_address_without_port_rejected():
    client = TCPClient("localhost", TCPClientConfig())
    with pytest.raises(ValueError):
        client.connect()