from __future__ import annotations

import selectors
import socket
import time
from typing import Optional, Tuple

from .constants import RECV_BUFFER_SIZE

Address = Tuple[str, int]

# Linux may report a datagram readable and then discard it (bad checksum), so
# reads after a readiness wait must never block.
_NONBLOCKING_READ = getattr(socket, "MSG_DONTWAIT", 0)


class UdpEndpoint:
    """Thin wrapper over a UDP socket.

    The socket itself is left in blocking mode for its whole life. Receive
    deadlines are passed per call, so waiting for an ack never changes how the
    next top-level receive behaves.
    """

    def __init__(self, sock: socket.socket):
        self.sock = sock

    @classmethod
    def listening(cls, host: str, port: int) -> "UdpEndpoint":
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.bind((host, port))
        except OSError:
            sock.close()
            raise
        return cls(sock)

    @classmethod
    def sending(cls) -> "UdpEndpoint":
        return cls(socket.socket(socket.AF_INET, socket.SOCK_DGRAM))

    @property
    def local_address(self) -> Address:
        host, port = self.sock.getsockname()[:2]
        return host, port

    def sendto(self, data: bytes, addr: Address) -> None:
        self.sock.sendto(data, addr)

    def recvfrom(
        self,
        bufsize: int = RECV_BUFFER_SIZE,
        timeout_ms: Optional[float] = None,
    ) -> Tuple[bytes, Address]:
        """Receive one datagram; ``timeout_ms=None`` blocks indefinitely.

        Raises ``TimeoutError`` when nothing arrives within ``timeout_ms``.
        """
        if timeout_ms is None:
            data, addr = self.sock.recvfrom(bufsize)
            return data, (addr[0], addr[1])

        deadline = time.monotonic() + max(0.0, timeout_ms) / 1000.0
        with selectors.DefaultSelector() as sel:
            sel.register(self.sock, selectors.EVENT_READ)
            while True:
                remaining = max(0.0, deadline - time.monotonic())
                if not sel.select(remaining):
                    break
                try:
                    data, addr = self.sock.recvfrom(bufsize, _NONBLOCKING_READ)
                except BlockingIOError:
                    if time.monotonic() >= deadline:
                        break
                    continue
                return data, (addr[0], addr[1])
        raise TimeoutError(f"no datagram within {timeout_ms:.0f} ms")

    def close(self) -> None:
        self.sock.close()

    def __enter__(self) -> "UdpEndpoint":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
