from __future__ import annotations

import time
from dataclasses import dataclass, field


@dataclass(slots=True)
class TransferStats:
    blocks: int = 0
    bytes: int = 0
    acks: int = 0
    start_ts: float = field(default_factory=time.monotonic)
    end_ts: float | None = None

    def record_block(self, size: int) -> None:
        self.blocks += 1
        self.bytes += size

    def finish(self) -> "TransferStats":
        if self.end_ts is None:
            self.end_ts = time.monotonic()
        return self

    @property
    def duration_s(self) -> float:
        if self.end_ts is None:
            return 0.0
        return max(0.0, self.end_ts - self.start_ts)

    @property
    def throughput_mbps(self) -> float:
        if self.duration_s <= 0:
            return 0.0
        return (self.bytes * 8 / 1_000_000) / self.duration_s

    def as_dict(self) -> dict[str, float | int]:
        return {
            "blocks": self.blocks,
            "bytes": self.bytes,
            "acks": self.acks,
            "seconds": self.duration_s,
            "mbps": self.throughput_mbps,
        }
