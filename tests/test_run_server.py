import socket

import pytest

from relaychat.run_server import _parse_bind, _parse_ping_interval, main


@pytest.mark.parametrize(
    "bind,expected",
    [
        ("ws://127.0.0.1:5000", ("127.0.0.1", 5000)),
        ("ws://localhost", ("localhost", 4444)),
        ("localhost:4445", ("localhost", 4445)),
        (":4446", ("0.0.0.0", 4446)),
        ("4447", ("0.0.0.0", 4447)),
    ],
)
def test_parse_bind(bind, expected):
    assert _parse_bind(bind) == expected


def test_parse_ping_interval():
    assert _parse_ping_interval("off") is None
    assert _parse_ping_interval("0") is None
    assert _parse_ping_interval("15") == 15.0


def test_bind_failure_exits_with_status_1():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as taken:
        taken.bind(("127.0.0.1", 0))
        taken.listen()
        port = taken.getsockname()[1]
        with pytest.raises(SystemExit) as exc:
            main(["--bind", f"127.0.0.1:{port}"])
    assert exc.value.code == 1
