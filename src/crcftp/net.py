from __future__ import annotations

import logging
import random
import socket
import time
from dataclasses import dataclass
from typing import Tuple

log = logging.getLogger(__name__)

Address = Tuple[str, int]


def resolve(addr: Address) -> Address:
    """Resolve a host name to the IPv4 address replies will come from."""
    host, port = addr
    return socket.gethostbyname(host), port


@dataclass(frozen=True, slots=True)
class Impairment:
    """Simulated channel faults applied to outbound datagrams."""

    loss_rate: float = 0.0
    delay_ms: int = 0
    corrupt_rate: float = 0.0

    def should_drop(self) -> bool:
        return self.loss_rate > 0 and random.random() < self.loss_rate

    def sleep_if_needed(self) -> None:
        if self.delay_ms > 0:
            time.sleep(self.delay_ms / 1000.0)

    def maybe_corrupt(self, data: bytes) -> bytes:
        if not data or self.corrupt_rate <= 0 or random.random() >= self.corrupt_rate:
            return data
        buf = bytearray(data)
        bit = random.randrange(len(buf) * 8)
        buf[bit // 8] ^= 1 << (bit % 8)
        return bytes(buf)


class UdpEndpoint:
    def __init__(self, sock: socket.socket, impairment: Impairment | None = None, name: str = ""):
        self.sock = sock
        self.impairment = impairment or Impairment()
        self.name = name

    @classmethod
    def listening(
        cls,
        host: str,
        port: int,
        timeout_ms: int = 0,
        impairment: Impairment | None = None,
    ) -> "UdpEndpoint":
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        sock.bind((host, port))
        if timeout_ms > 0:
            sock.settimeout(timeout_ms / 1000.0)
        return cls(sock, impairment, name="receiver")

    @classmethod
    def sending(
        cls,
        timeout_ms: int = 0,
        impairment: Impairment | None = None,
    ) -> "UdpEndpoint":
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        if timeout_ms > 0:
            sock.settimeout(timeout_ms / 1000.0)
        return cls(sock, impairment, name="sender")

    @property
    def address(self) -> Address:
        return self.sock.getsockname()

    @property
    def timeout_ms(self) -> int:
        """Reply wait in milliseconds; 0 means recvfrom blocks forever."""
        timeout = self.sock.gettimeout()
        return 0 if timeout is None else int(timeout * 1000)

    def sendto(self, data: bytes, addr: Address) -> None:
        if self.impairment.should_drop():
            log.debug("[%s] dropped outbound %d bytes", self.name, len(data))
            return
        self.impairment.sleep_if_needed()
        self.sock.sendto(self.impairment.maybe_corrupt(data), addr)

    def recvfrom(self, bufsize: int = 65535) -> Tuple[bytes, Address]:
        """Block for one datagram; raises TimeoutError when the socket timeout expires."""
        return self.sock.recvfrom(bufsize)

    def drain(self, wait_ms: int = 0, limit: int | None = None) -> int:
        """Discard datagrams waiting on the socket and return how many.

        With ``wait_ms`` 0 only what is already queued is read. Otherwise each
        read waits up to ``wait_ms`` for one more, stopping after ``limit``.
        """
        timeout = self.sock.gettimeout()
        self.sock.settimeout(wait_ms / 1000.0 if wait_ms > 0 else 0.0)
        drained = 0
        try:
            while limit is None or drained < limit:
                try:
                    self.sock.recvfrom(65535)
                except (BlockingIOError, TimeoutError):
                    break
                except (ConnectionRefusedError, ConnectionResetError):
                    continue
                drained += 1
        finally:
            self.sock.settimeout(timeout)
        if drained:
            log.debug("[%s] discarded %d stale datagrams", self.name, drained)
        return drained

    def close(self) -> None:
        self.sock.close()

    def __enter__(self) -> "UdpEndpoint":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
