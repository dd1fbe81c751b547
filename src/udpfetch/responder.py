from __future__ import annotations

import errno
import logging
from dataclasses import dataclass, field
from typing import BinaryIO, Optional

from .constants import (
    DEFAULT_ACK_TIMEOUT_MS,
    DEFAULT_ENCODING,
    MAX_BLOCK_SIZE,
    RECV_BUFFER_SIZE,
)
from .errors import PathRejectedError, TransferError
from .exchange import wait_for_ack
from .net import Address, UdpEndpoint
from .paths import check_directory, resolve_request
from .stats import TransferStats

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TransferSession:
    """Stream one open file to one peer, a block at a time."""

    udp: UdpEndpoint
    peer: Address
    f: BinaryIO
    block_size: int = MAX_BLOCK_SIZE
    ack_timeout_ms: float = DEFAULT_ACK_TIMEOUT_MS
    stats: TransferStats = field(default_factory=TransferStats)

    def run(self) -> TransferStats:
        while True:
            block = self.f.read(self.block_size)
            if block:
                self.stats.record_block(len(block))
            self.udp.sendto(block, self.peer)

            # The empty block ends the session and is never acknowledged.
            if not block:
                return self.stats.finish()

            try:
                noise = wait_for_ack(self.udp, self.peer, self.ack_timeout_ms)
            except TransferError as e:
                e.stats = self.stats.finish()
                raise
            self.stats.acks += 1
            if noise:
                logger.debug("block %d acked after %d stray datagrams", self.stats.blocks, noise)


@dataclass(slots=True)
class Responder:
    """Serve files below ``root``, one request at a time.

    A failed request (rejected path, unreadable file, missing ack, socket
    error while sending) is logged and the responder goes back to waiting
    for the next request. Only a closed socket ends ``serve_forever``.
    """

    udp: UdpEndpoint
    root: str
    block_size: int = MAX_BLOCK_SIZE
    ack_timeout_ms: float = DEFAULT_ACK_TIMEOUT_MS

    def __post_init__(self) -> None:
        self.root = check_directory(self.root)

    def serve_forever(self) -> None:
        logger.info("serving %s on %s:%d", self.root, *self.udp.local_address)
        while True:
            try:
                self.handle_one()
            except OSError as e:
                if e.errno == errno.EBADF:
                    raise
                logger.warning("receive failed, still listening: %s", e)

    def handle_one(self) -> Optional[TransferStats]:
        raw, peer = self.udp.recvfrom(RECV_BUFFER_SIZE)
        try:
            requested = raw.decode(DEFAULT_ENCODING).strip()
        except UnicodeDecodeError:
            logger.warning("ignoring undecodable request from %s:%d", *peer)
            return None
        logger.info("request for %r from %s:%d", requested, *peer)

        try:
            path = resolve_request(self.root, requested)
        except PathRejectedError as e:
            logger.warning("rejected request from %s:%d: %s", *peer, e)
            return None

        try:
            f = open(path, "rb")
        except OSError as e:
            logger.warning("cannot open %s: %s", path, e)
            return None

        with f:
            logger.info("%s opened for reading", path)
            session = TransferSession(self.udp, peer, f, self.block_size, self.ack_timeout_ms)
            try:
                stats = session.run()
            except (TransferError, OSError) as e:
                logger.warning(
                    "transfer of %s to %s:%d aborted after %d blocks: %s",
                    path, *peer, session.stats.blocks, e,
                )
                return None

        logger.info("transfer complete (%d blocks, %d bytes)", stats.blocks, stats.bytes)
        return stats
