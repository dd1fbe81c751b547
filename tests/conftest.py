from __future__ import annotations

import threading
import time
from typing import Callable, Optional

import pytest

from udpfetch.net import UdpEndpoint
from udpfetch.responder import Responder
from udpfetch.stats import TransferStats


class FakeEndpoint:
    """Scripted stand-in for UdpEndpoint.

    Each script entry is ``(delay_s, data, addr)``: the datagram becomes
    available ``delay_s`` after the receive call starts. A receive whose
    timeout is shorter than the next delay sleeps for the timeout and raises
    ``TimeoutError``, leaving the entry in place.
    """

    def __init__(self, script=()):
        self.script = list(script)
        self.sent: list[tuple[bytes, tuple[str, int]]] = []

    def sendto(self, data: bytes, addr) -> None:
        self.sent.append((bytes(data), addr))

    def recvfrom(self, bufsize: int = 65535, timeout_ms: Optional[float] = None):
        if not self.script:
            if timeout_ms is None:
                raise AssertionError("blocking receive on an empty script")
            time.sleep(timeout_ms / 1000.0)
            raise TimeoutError
        delay, data, addr = self.script[0]
        if timeout_ms is not None and delay * 1000 > timeout_ms:
            time.sleep(timeout_ms / 1000.0)
            raise TimeoutError
        time.sleep(delay)
        self.script.pop(0)
        return data[:bufsize], addr


class ServerThread:
    def __init__(self, responder: Responder):
        self.responder = responder
        self.results: list[Optional[TransferStats]] = []
        self._thread: Optional[threading.Thread] = None

    def handle(self, count: int = 1) -> "ServerThread":
        def runner():
            for _ in range(count):
                self.results.append(self.responder.handle_one())

        self._thread = threading.Thread(target=runner, daemon=True)
        self._thread.start()
        return self

    def join(self, timeout: float = 5.0) -> list[Optional[TransferStats]]:
        assert self._thread is not None
        self._thread.join(timeout)
        assert not self._thread.is_alive(), "server thread did not finish"
        return self.results


@pytest.fixture
def root_dir(tmp_path):
    d = tmp_path / "root"
    d.mkdir()
    return d


@pytest.fixture
def dest_dir(tmp_path):
    d = tmp_path / "dest"
    d.mkdir()
    return d


@pytest.fixture
def make_server(root_dir) -> Callable[..., ServerThread]:
    endpoints: list[UdpEndpoint] = []

    def factory(**kwargs) -> ServerThread:
        udp = UdpEndpoint.listening("127.0.0.1", 0)
        endpoints.append(udp)
        return ServerThread(Responder(udp, str(root_dir), **kwargs))

    yield factory
    for udp in endpoints:
        udp.close()


@pytest.fixture
def client():
    udp = UdpEndpoint.sending()
    yield udp
    udp.close()
