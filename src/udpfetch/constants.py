from __future__ import annotations

MAX_BLOCK_SIZE = 4000
ACK_TOKEN = b"ack"

# Largest UDP datagram; used for every receive so nothing is truncated.
RECV_BUFFER_SIZE = 65535

# All durations are milliseconds.
DEFAULT_ACK_TIMEOUT_MS = 1000
DEFAULT_RECV_TIMEOUT_MS = 1000

DEFAULT_LISTEN_HOST = "0.0.0.0"
DEFAULT_ENCODING = "utf-8"
