import pytest

from trafficreplay.debug import debug, set_verbosity


@pytest.fixture(autouse=True)
def restore_verbosity():
    previous = set_verbosity(0)
    yield
    set_verbosity(previous)


def test_set_verbosity_returns_previous():
    set_verbosity(3)
    assert set_verbosity(1) == 3
    assert set_verbosity(0) == 1


def test_debug_prints_when_level_allowed(capsys):
    set_verbosity(2)
    debug(1, "hello", 42)
    err = capsys.readouterr().err
    assert err.startswith("[DEBUG][elapsed ")
    assert err.endswith("]: hello 42\n")


def test_debug_level_zero_always_prints(capsys):
    debug(0, "always")
    assert capsys.readouterr().err.endswith(": always\n")


def test_debug_silent_above_verbosity(capsys):
    set_verbosity(1)
    debug(2, "hidden")
    captured = capsys.readouterr()
    assert captured.err == ""
    assert captured.out == ""


def test_each_call_is_one_line(capsys):
    set_verbosity(1)
    debug(1, "a")
    debug(1, "b")
    lines = capsys.readouterr().err.splitlines()
    assert len(lines) == 2
    assert all(line.startswith("[DEBUG][elapsed ") for line in lines)