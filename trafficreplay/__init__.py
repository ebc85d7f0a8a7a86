"""HTTP/1 payload helpers, a recording format, a raw TCP client and debug output."""

__version__ = "1.3.0"

__all__ = [
    "debug",
    "proto",
    "protocol",
    "tcp_client",
]