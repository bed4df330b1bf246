from __future__ import annotations

import os
import tempfile
import threading
from dataclasses import dataclass

from .constants import DEFAULT_MAX_ATTEMPTS
from .net import Impairment, UdpEndpoint
from .receiver import Receiver
from .sender import Sender
from .source import FileSource


@dataclass(frozen=True, slots=True)
class BenchmarkResult:
    bytes_transferred: int
    duration_s: float
    throughput_mbps: float
    retransmits: int
    timeouts: int


def run_benchmark(
    *,
    size_bytes: int,
    loss_rate: float = 0.0,
    delay_ms: int = 0,
    corrupt_rate: float = 0.0,
    timeout_ms: int = 250,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    rate_bps: int | None = None,
) -> BenchmarkResult:
    payload = os.urandom(size_bytes)
    impair = Impairment(loss_rate=loss_rate, delay_ms=delay_ms, corrupt_rate=corrupt_rate)

    recv_ep = UdpEndpoint.listening("127.0.0.1", 0, timeout_ms=timeout_ms)
    recv_addr = recv_ep.address

    fd, out_path = tempfile.mkstemp()
    os.close(fd)
    recv = Receiver(recv_ep, out_path=out_path, rate_bps=rate_bps)

    recv_errors: list[BaseException] = []

    def recv_runner():
        try:
            recv.run()
        except BaseException as e:
            recv_errors.append(e)
        finally:
            recv_ep.close()

    t = threading.Thread(target=recv_runner, daemon=True)
    t.start()

    try:
        with UdpEndpoint.sending(timeout_ms=timeout_ms, impairment=impair) as send_ep:
            sender = Sender(send_ep, recv_addr, FileSource("bench.bin", payload), max_attempts=max_attempts)
            send_metrics = sender.run()

        t.join(timeout=10.0)
        if recv_errors:
            raise recv_errors[0]
        with open(out_path, "rb") as f:
            if f.read() != payload:
                raise AssertionError("received file differs from the sent payload")
    finally:
        recv_ep.close()
        os.unlink(out_path)

    duration_s = max(0.001, send_metrics.duration_s)
    throughput_mbps = (size_bytes * 8 / 1_000_000) / duration_s

    return BenchmarkResult(
        bytes_transferred=size_bytes,
        duration_s=duration_s,
        throughput_mbps=throughput_mbps,
        retransmits=send_metrics.retransmits,
        timeouts=send_metrics.timeouts,
    )
