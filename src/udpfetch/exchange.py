from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass, field
from typing import Tuple

from .constants import ACK_TOKEN, RECV_BUFFER_SIZE
from .errors import AckTimeoutError, TransferTimeoutError
from .net import Address, UdpEndpoint

logger = logging.getLogger(__name__)


class AckOutcome(enum.Enum):
    ACKED = "acked"
    NOISE = "noise"
    TIMED_OUT = "timed_out"


@dataclass(slots=True)
class Deadline:
    """A fixed budget measured on the monotonic clock from creation."""

    budget_ms: float
    start_ts: float = field(default_factory=time.monotonic)

    def elapsed_ms(self) -> float:
        return (time.monotonic() - self.start_ts) * 1000

    def remaining_ms(self) -> float:
        return max(0.0, self.budget_ms - self.elapsed_ms())

    @property
    def expired(self) -> bool:
        return self.elapsed_ms() >= self.budget_ms


def is_ack(payload: bytes) -> bool:
    return payload.lower() == ACK_TOKEN


def poll_ack(udp: UdpEndpoint, peer: Address, deadline: Deadline) -> AckOutcome:
    if deadline.expired:
        return AckOutcome.TIMED_OUT
    try:
        raw, addr = udp.recvfrom(len(ACK_TOKEN) + 16, timeout_ms=deadline.remaining_ms())
    except TimeoutError:
        return AckOutcome.TIMED_OUT

    if addr != peer:
        logger.debug("discarding datagram from %s:%d while waiting for ack from %s:%d", *addr, *peer)
        return AckOutcome.NOISE
    if not is_ack(raw):
        logger.debug("discarding non-ack payload from %s:%d (%d bytes)", *addr, len(raw))
        return AckOutcome.NOISE
    return AckOutcome.ACKED


def wait_for_ack(udp: UdpEndpoint, peer: Address, timeout_ms: float) -> int:
    """Block until ``peer`` acknowledges, within one overall budget.

    Stray datagrams are dropped and do not extend the budget. Returns how many
    were dropped; raises ``AckTimeoutError`` once the budget is spent.
    """
    deadline = Deadline(timeout_ms)
    noise = 0
    while True:
        outcome = poll_ack(udp, peer, deadline)
        if outcome is AckOutcome.ACKED:
            return noise
        if outcome is AckOutcome.TIMED_OUT:
            raise AckTimeoutError(
                f"no ack from {peer[0]}:{peer[1]} within {timeout_ms:.0f} ms "
                f"({noise} stray datagrams discarded)"
            )
        noise += 1


def receive_block(
    udp: UdpEndpoint,
    peer: Address,
    deadline: Deadline,
    bufsize: int = RECV_BUFFER_SIZE,
) -> Tuple[bytes, Address]:
    """Return the next datagram sent by ``peer`` before ``deadline``.

    Datagrams from any other address are discarded.
    """
    while True:
        try:
            raw, addr = udp.recvfrom(bufsize, timeout_ms=deadline.remaining_ms())
        except TimeoutError:
            raise TransferTimeoutError(
                f"no data from {peer[0]}:{peer[1]} within {deadline.budget_ms:.0f} ms"
            ) from None
        if addr == peer:
            return raw, addr
        logger.debug("discarding datagram from %s:%d (expected %s:%d)", *addr, *peer)
