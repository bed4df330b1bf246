from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict

from .bench import run_benchmark
from .constants import DEFAULT_HOST, DEFAULT_MAX_ATTEMPTS, DEFAULT_PORT, DEFAULT_TIMEOUT_MS
from .errors import DigestMismatchError, EncodingError, TransferAborted, TransferCancelled, TransferFatal
from .net import Impairment, UdpEndpoint
from .receiver import Receiver
from .sender import Sender
from .source import FileSource

log = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ABORTED = 1
EXIT_FATAL = 2


def _impairment(args: argparse.Namespace) -> Impairment:
    return Impairment(args.loss_rate, args.delay_ms, args.corrupt_rate)


def _emit(payload: dict, as_json: bool) -> None:
    print(json.dumps(payload, indent=2) if as_json else payload)


def cmd_send(args: argparse.Namespace) -> int:
    source = FileSource.read(args.file, dest_name=args.name)
    log.info("sending %s (%d bytes) to %s:%d as %s", args.file, source.size, args.dest_host, args.dest_port, source.name)

    with UdpEndpoint.sending(timeout_ms=args.timeout_ms, impairment=_impairment(args)) as udp:
        sender = Sender(udp, (args.dest_host, args.dest_port), source, max_attempts=args.max_attempts)
        try:
            metrics = sender.run()
        except TransferFatal as e:
            log.critical("%s", e)
            return EXIT_FATAL
        except (TransferAborted, TransferCancelled, EncodingError) as e:
            log.error("%s", e)
            return EXIT_ABORTED

    _emit(
        {
            "role": "sender",
            "bytes": metrics.bytes_sent,
            "seconds": metrics.duration_s,
            "mbps": metrics.throughput_mbps,
            "timeouts": metrics.timeouts,
            "retransmits": metrics.retransmits,
        },
        args.json,
    )
    return EXIT_OK


def cmd_recv(args: argparse.Namespace) -> int:
    udp = UdpEndpoint.listening(
        args.listen_host,
        args.listen_port,
        timeout_ms=args.timeout_ms,
        impairment=_impairment(args),
    )
    with udp:
        try:
            result = Receiver(udp, out_path=args.out, rate_bps=args.rate_bps).run()
        except DigestMismatchError as e:
            log.error("%s", e)
            return EXIT_ABORTED

    _emit({"role": "receiver", **asdict(result)}, args.json)
    return EXIT_OK


def cmd_bench(args: argparse.Namespace) -> int:
    r = run_benchmark(
        size_bytes=args.size_bytes,
        loss_rate=args.loss_rate,
        delay_ms=args.delay_ms,
        corrupt_rate=args.corrupt_rate,
        timeout_ms=args.timeout_ms,
        max_attempts=args.max_attempts,
        rate_bps=args.rate_bps,
    )
    _emit(
        {
            "role": "bench",
            "bytes": r.bytes_transferred,
            "seconds": r.duration_s,
            "mbps": r.throughput_mbps,
            "retransmits": r.retransmits,
            "timeouts": r.timeouts,
        },
        args.json,
    )
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="crcftp", description="Reliable file transfer over UDP with CRC-32C frames.")
    p.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    sub = p.add_subparsers(dest="cmd", required=True)

    def add_common(x: argparse.ArgumentParser) -> None:
        x.add_argument("--timeout-ms", type=int, default=DEFAULT_TIMEOUT_MS, help="reply wait; 0 blocks forever")
        x.add_argument("--loss-rate", type=float, default=0.0, help="simulate outbound datagram loss")
        x.add_argument("--delay-ms", type=int, default=0, help="simulate outbound send delay")
        x.add_argument("--corrupt-rate", type=float, default=0.0, help="simulate outbound bit flips")
        x.add_argument("--json", action="store_true")

    send = sub.add_parser("send", help="send a file to a receiver")
    add_common(send)
    send.add_argument("--dest-host", default=DEFAULT_HOST)
    send.add_argument("--dest-port", type=int, default=DEFAULT_PORT)
    send.add_argument("--file", required=True)
    send.add_argument("--name", default=None, help="destination path announced to the receiver")
    send.add_argument("--max-attempts", type=int, default=DEFAULT_MAX_ATTEMPTS)
    send.set_defaults(func=cmd_send)

    recv = sub.add_parser("recv", help="receive one file and write it to disk")
    add_common(recv)
    recv.add_argument("--listen-host", default="0.0.0.0")
    recv.add_argument("--listen-port", type=int, default=DEFAULT_PORT)
    recv.add_argument("--out", default=None, help="output path; defaults to the announced file name in the working directory")
    recv.add_argument("--rate-bps", type=int, default=None, help="bandwidth hint sent with data acks")
    recv.set_defaults(func=cmd_recv)

    bench = sub.add_parser("bench", help="local benchmark on loopback")
    add_common(bench)
    bench.add_argument("--size-bytes", type=int, default=1_000_000)
    bench.add_argument("--max-attempts", type=int, default=DEFAULT_MAX_ATTEMPTS)
    bench.add_argument("--rate-bps", type=int, default=None)
    bench.set_defaults(func=cmd_bench)

    return p


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s [%(levelname)s] %(message)s")
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
