from __future__ import annotations

import os
import tempfile
import threading
from dataclasses import dataclass

from .constants import DEFAULT_ACK_TIMEOUT_MS, DEFAULT_RECV_TIMEOUT_MS, MAX_BLOCK_SIZE
from .net import UdpEndpoint
from .requestor import Requestor
from .responder import Responder

BENCH_FILENAME = "bench.bin"


@dataclass(frozen=True, slots=True)
class BenchmarkResult:
    blocks: int
    bytes_transferred: int
    duration_s: float
    throughput_mbps: float


def run_benchmark(
    *,
    size_bytes: int,
    block_size: int = MAX_BLOCK_SIZE,
    ack_timeout_ms: float = DEFAULT_ACK_TIMEOUT_MS,
    recv_timeout_ms: float = DEFAULT_RECV_TIMEOUT_MS,
) -> BenchmarkResult:
    with tempfile.TemporaryDirectory() as src_dir, tempfile.TemporaryDirectory() as dst_dir:
        with open(os.path.join(src_dir, BENCH_FILENAME), "wb") as f:
            f.write(os.urandom(size_bytes))

        server_ep = UdpEndpoint.listening("127.0.0.1", 0)
        responder = Responder(server_ep, src_dir, block_size=block_size, ack_timeout_ms=ack_timeout_ms)

        t = threading.Thread(target=responder.handle_one, daemon=True)
        t.start()

        with UdpEndpoint.sending() as client_ep:
            stats = Requestor(
                client_ep,
                server_ep.local_address,
                BENCH_FILENAME,
                dst_dir,
                recv_timeout_ms=recv_timeout_ms,
            ).run()

        t.join(timeout=10.0)
        server_ep.close()

        actual_size = os.path.getsize(os.path.join(dst_dir, BENCH_FILENAME))
        if actual_size != size_bytes:
            raise RuntimeError(f"size mismatch: sent {size_bytes} bytes, received {actual_size}")

    duration_s = max(0.001, stats.duration_s)
    return BenchmarkResult(
        blocks=stats.blocks,
        bytes_transferred=stats.bytes,
        duration_s=duration_s,
        throughput_mbps=(stats.bytes * 8 / 1_000_000) / duration_s,
    )
