"""Verbosity-gated debug output on standard error."""

from __future__ import annotations

import sys
import threading
import time

_lock = threading.Lock()
_verbosity = 0
_previous = time.monotonic_ns()


def set_verbosity(level: int) -> int:
    """Set the verbosity level and return the previous one."""
    global _verbosity
    with _lock:
        previous, _verbosity = _verbosity, level
    return previous


def _fmt_fraction(value: int, unit: int) -> str:
    whole, rest = divmod(value, unit)
    if not rest:
        return str(whole)
    digits = len(str(unit)) - 1
    return f"{whole}.{rest:0{digits}d}".rstrip("0")


def _format_elapsed(nanos: int) -> str:
    if nanos == 0:
        return "0s"
    sign = "-" if nanos < 0 else ""
    nanos = abs(nanos)
    if nanos < 1_000:
        return f"{sign}{nanos}ns"
    if nanos < 1_000_000:
        return f"{sign}{_fmt_fraction(nanos, 1_000)}µs"
    if nanos < 1_000_000_000:
        return f"{sign}{_fmt_fraction(nanos, 1_000_000)}ms"
    hours, rest = divmod(nanos, 3_600_000_000_000)
    minutes, rest = divmod(rest, 60_000_000_000)
    seconds = f"{_fmt_fraction(rest, 1_000_000_000)}s"
    if hours:
        return f"{sign}{hours}h{minutes}m{seconds}"
    if minutes:
        return f"{sign}{minutes}m{seconds}"
    return f"{sign}{seconds}"


def debug(level: int, *args: object) -> None:
    """Print ``args`` to stderr when the verbosity is at least ``level``."""
    global _previous
    if _verbosity < level:
        return
    with _lock:
        now = time.monotonic_ns()
        elapsed = now - _previous
        _previous = now
        stream = sys.stderr
        stream.write(f"[DEBUG][elapsed {_format_elapsed(elapsed)}]: ")
        stream.write(" ".join(str(arg) for arg in args) + "\n")
        stream.flush()