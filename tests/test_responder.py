from __future__ import annotations

import errno

import pytest

from udpfetch.responder import Responder


class FailingEndpoint:
    local_address = ("127.0.0.1", 5000)

    def __init__(self, errors):
        self.errors = list(errors)
        self.calls = 0

    def recvfrom(self, bufsize: int = 65535, timeout_ms=None):
        self.calls += 1
        raise self.errors.pop(0)

    def sendto(self, data: bytes, addr) -> None:
        raise AssertionError("nothing should be sent")


def test_serve_forever_survives_receive_errors(root_dir):
    udp = FailingEndpoint([
        ConnectionResetError(errno.ECONNRESET, "reset by peer"),
        ConnectionRefusedError(errno.ECONNREFUSED, "refused"),
        OSError(errno.EBADF, "Bad file descriptor"),
    ])
    responder = Responder(udp, str(root_dir))  # type: ignore[arg-type]

    with pytest.raises(OSError) as exc:
        responder.serve_forever()

    assert exc.value.errno == errno.EBADF
    assert udp.calls == 3

