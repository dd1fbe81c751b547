from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict

from .bench import run_benchmark
from .constants import (
    DEFAULT_ACK_TIMEOUT_MS,
    DEFAULT_LISTEN_HOST,
    DEFAULT_RECV_TIMEOUT_MS,
    MAX_BLOCK_SIZE,
)
from .errors import ConfigError, FetchError
from .net import UdpEndpoint
from .requestor import Requestor
from .responder import Responder

logger = logging.getLogger("udpfetch")


def _report(args: argparse.Namespace, payload: dict) -> None:
    print(json.dumps(payload, indent=2) if args.json else payload)


def cmd_get(args: argparse.Namespace) -> int:
    with UdpEndpoint.sending() as udp:
        requestor = Requestor(
            udp,
            (args.server_address, args.server_port),
            args.file_to_get.strip(),
            args.local_directory.strip(),
            recv_timeout_ms=args.recv_timeout_ms,
        )
        try:
            requestor.run()
        except ConfigError as e:
            logger.error("%s", e)
            return 2
        except (FetchError, OSError) as e:
            logger.error("transfer failed: %s", e)
            _report(args, {"role": "requestor", "ok": False, **requestor.stats.as_dict()})
            return 1

    _report(args, {"role": "requestor", "ok": True, **requestor.stats.as_dict()})
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    try:
        udp = UdpEndpoint.listening(args.listen_host, args.listening_port)
    except OSError as e:
        logger.error("cannot bind UDP port %d: %s", args.listening_port, e)
        return 1

    with udp:
        try:
            responder = Responder(
                udp,
                args.local_root_directory,
                block_size=args.block_size,
                ack_timeout_ms=args.ack_timeout_ms,
            )
        except ConfigError as e:
            logger.error("%s", e)
            return 2
        try:
            responder.serve_forever()
        except KeyboardInterrupt:
            logger.info("interrupted, shutting down")
        except OSError as e:
            logger.error("socket error: %s", e)
            return 1
    return 0


def cmd_bench(args: argparse.Namespace) -> int:
    r = run_benchmark(
        size_bytes=args.size_bytes,
        block_size=args.block_size,
        ack_timeout_ms=args.ack_timeout_ms,
        recv_timeout_ms=args.recv_timeout_ms,
    )
    _report(args, {"role": "bench", **asdict(r)})
    return 0


def port(value: str) -> int:
    n = int(value)
    if not 0 < n < 65536:
        raise argparse.ArgumentTypeError(f"port must be in 1..65535, got {n}")
    return n


def block_size(value: str) -> int:
    n = int(value)
    if not 0 < n <= 65507:
        raise argparse.ArgumentTypeError(f"block size must be in 1..65507, got {n}")
    return n


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(prog="udpfetch", description="Stop-and-wait file fetch over UDP.")
    p.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    sub = p.add_subparsers(dest="cmd", required=True)

    def add_common(x: argparse.ArgumentParser, *, sends_blocks: bool = True) -> None:
        if sends_blocks:
            x.add_argument("--block-size", type=block_size, default=MAX_BLOCK_SIZE)
        x.add_argument("--json", action="store_true")

    get = sub.add_parser("get", help="fetch a file from a server")
    add_common(get, sends_blocks=False)
    get.add_argument("server_address")
    get.add_argument("server_port", type=port)
    get.add_argument("file_to_get")
    get.add_argument("local_directory")
    get.add_argument("--recv-timeout-ms", type=int, default=DEFAULT_RECV_TIMEOUT_MS)
    get.set_defaults(func=cmd_get)

    serve = sub.add_parser("serve", help="serve files from a directory")
    add_common(serve)
    serve.add_argument("listening_port", type=port)
    serve.add_argument("local_root_directory")
    serve.add_argument("--listen-host", default=DEFAULT_LISTEN_HOST)
    serve.add_argument("--ack-timeout-ms", type=int, default=DEFAULT_ACK_TIMEOUT_MS)
    serve.set_defaults(func=cmd_serve)

    bench = sub.add_parser("bench", help="loopback benchmark")
    add_common(bench)
    bench.add_argument("--size-bytes", type=int, default=5_000_000)
    bench.add_argument("--ack-timeout-ms", type=int, default=DEFAULT_ACK_TIMEOUT_MS)
    bench.add_argument("--recv-timeout-ms", type=int, default=DEFAULT_RECV_TIMEOUT_MS)
    bench.set_defaults(func=cmd_bench)

    args = p.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s [%(levelname)s] %(message)s")
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
