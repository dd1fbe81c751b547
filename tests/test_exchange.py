from __future__ import annotations

import time

import pytest

from conftest import FakeEndpoint
from udpfetch.errors import AckTimeoutError, TransferTimeoutError
from udpfetch.exchange import AckOutcome, Deadline, poll_ack, receive_block, wait_for_ack
from udpfetch.net import UdpEndpoint

PEER = ("127.0.0.1", 40000)
STRANGER = ("10.0.0.7", 40000)


def test_ack_from_peer():
    udp = FakeEndpoint([(0, b"ack", PEER)])
    assert wait_for_ack(udp, PEER, 200) == 0


def test_ack_token_is_case_insensitive():
    udp = FakeEndpoint([(0, b"AcK", PEER)])
    assert poll_ack(udp, PEER, Deadline(200)) is AckOutcome.ACKED


@pytest.mark.parametrize(
    "data, addr",
    [
        (b"ack", STRANGER),
        (b"ack", (PEER[0], PEER[1] + 1)),
        (b"nak", PEER),
        (b"ack ", PEER),
        (b"", PEER),
    ],
)
def test_mismatched_datagram_is_noise(data, addr):
    udp = FakeEndpoint([(0, data, addr)])
    assert poll_ack(udp, PEER, Deadline(200)) is AckOutcome.NOISE


def test_expired_deadline_times_out_without_receiving():
    udp = FakeEndpoint([(0, b"ack", PEER)])
    deadline = Deadline(0)
    assert poll_ack(udp, PEER, deadline) is AckOutcome.TIMED_OUT
    assert len(udp.script) == 1


def test_noise_then_ack_counts_discarded_datagrams():
    udp = FakeEndpoint([(0, b"ack", STRANGER), (0, b"hello", PEER), (0, b"ACK", PEER)])
    assert wait_for_ack(udp, PEER, 500) == 2


def test_silence_raises_ack_timeout():
    udp = FakeEndpoint()
    start = time.monotonic()
    with pytest.raises(AckTimeoutError):
        wait_for_ack(udp, PEER, 50)
    assert time.monotonic() - start >= 0.045


def test_stray_datagrams_do_not_reset_budget():
    noise = [(0.04, b"ack", STRANGER)] * 10
    udp = FakeEndpoint(noise + [(0, b"ack", PEER)])

    start = time.monotonic()
    with pytest.raises(AckTimeoutError):
        wait_for_ack(udp, PEER, 100)
    elapsed = time.monotonic() - start

    assert 0.09 <= elapsed < 0.3
    # only the strays that fit in the original budget were consumed
    assert 1 < len(udp.script) <= 10
    assert udp.script[-1] == (0, b"ack", PEER)


def test_ack_timeout_is_not_an_os_error():
    with pytest.raises(AckTimeoutError) as exc:
        wait_for_ack(FakeEndpoint(), PEER, 10)
    assert not isinstance(exc.value, OSError)


def test_socket_stays_blocking_after_ack_timeout():
    with UdpEndpoint.listening("127.0.0.1", 0) as udp:
        assert udp.sock.gettimeout() is None
        with pytest.raises(AckTimeoutError):
            wait_for_ack(udp, PEER, 30)
        assert udp.sock.gettimeout() is None


def test_real_socket_ack_from_other_port_is_ignored():
    with UdpEndpoint.listening("127.0.0.1", 0) as server, \
            UdpEndpoint.sending() as peer, UdpEndpoint.sending() as stranger:
        peer.sendto(b"hello", server.local_address)
        _, peer_addr = server.recvfrom(16, timeout_ms=1000)

        stranger.sendto(b"ack", server.local_address)
        with pytest.raises(AckTimeoutError):
            wait_for_ack(server, peer_addr, 100)

        peer.sendto(b"ack", server.local_address)
        assert wait_for_ack(server, peer_addr, 1000) == 0


def test_receive_block_skips_strangers():
    udp = FakeEndpoint([(0, b"junk", STRANGER), (0, b"data", PEER)])
    assert receive_block(udp, PEER, Deadline(200)) == (b"data", PEER)


def test_receive_block_returns_empty_sentinel():
    udp = FakeEndpoint([(0, b"", PEER)])
    assert receive_block(udp, PEER, Deadline(200)) == (b"", PEER)


def test_receive_block_timeout():
    udp = FakeEndpoint([(0.02, b"junk", STRANGER)] * 10)
    with pytest.raises(TransferTimeoutError):
        receive_block(udp, PEER, Deadline(50))
    assert len(udp.script) >= 7
