from __future__ import annotations

import logging
import os
import socket
from dataclasses import dataclass, field
from typing import BinaryIO

from .constants import ACK_TOKEN, DEFAULT_ENCODING, DEFAULT_RECV_TIMEOUT_MS
from .errors import ConfigError, TransferError
from .exchange import Deadline, receive_block
from .net import Address, UdpEndpoint
from .paths import check_directory
from .stats import TransferStats

logger = logging.getLogger(__name__)


def local_target(dest_dir: str, filename: str) -> str:
    name = os.path.basename(filename.rstrip("/\\"))
    if not name or name in (".", ".."):
        raise ConfigError(f"cannot derive a local file name from {filename!r}")
    return os.path.join(dest_dir, name)


@dataclass(slots=True)
class Requestor:
    """Fetch one remote file into ``dest_dir``.

    Every received block is acknowledged; the sender does all of the
    retransmission work, so a receive timeout here ends the transfer.
    """

    udp: UdpEndpoint
    server: Address
    filename: str
    dest_dir: str
    recv_timeout_ms: float = DEFAULT_RECV_TIMEOUT_MS
    stats: TransferStats = field(default_factory=TransferStats)

    def run(self) -> TransferStats:
        root = check_directory(self.dest_dir, writable=True)
        path = local_target(root, self.filename)

        try:
            with open(path, "wb") as out:
                logger.info("created %s", path)
                self._transfer(out)
        except TransferError as e:
            e.stats = self.stats
            raise
        finally:
            self.stats.finish()
            logger.info(
                "received %d blocks, including the final empty one, for a total of %d bytes",
                self.stats.blocks,
                self.stats.bytes,
            )
        return self.stats

    def _transfer(self, out: BinaryIO) -> None:
        peer = resolve_peer(self.server)
        self.udp.sendto(self.filename.encode(DEFAULT_ENCODING), peer)
        logger.debug("requested %r from %s:%d", self.filename, *peer)

        while True:
            block, addr = receive_block(self.udp, peer, Deadline(self.recv_timeout_ms))
            self.stats.record_block(len(block))
            if not block:
                logger.info("transfer complete")
                return
            out.write(block)
            self.udp.sendto(ACK_TOKEN, addr)
            self.stats.acks += 1
            logger.debug("block %d: %d bytes acked", self.stats.blocks, len(block))


def resolve_peer(server: Address) -> Address:
    """Resolve the host part so it compares equal to ``recvfrom`` addresses."""
    host, port = server
    return socket.gethostbyname(host), int(port)
