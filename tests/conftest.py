from __future__ import annotations

import threading
from typing import Callable, Optional

import pytest

from crcftp.ack import build_nak, build_ok
from crcftp.net import Impairment, UdpEndpoint
from crcftp.packet import Frame
from crcftp.receiver import Receiver

PEER = ("127.0.0.1", 4000)


class FakeEndpoint:
    """Scripted stand-in for UdpEndpoint.

    Replies come from ``responder(datagram)`` when given, else from the
    ``replies`` queue. A reply that is an exception instance is raised from
    recvfrom; an empty queue raises TimeoutError. A ``(data, addr)`` tuple is
    delivered as coming from ``addr`` instead of PEER.

    ``inbox`` holds datagrams already queued on the socket. ``trailing`` holds
    late replies still in flight: a non-blocking drain cannot see them, but
    once one reply has been delivered they reach the next blocking receive
    or a waiting drain.
    """

    timeout_ms = 0
    address = ("127.0.0.1", 0)

    def __init__(self, replies=(), responder: Optional[Callable[[bytes], object]] = None):
        self.replies = list(replies)
        self.responder = responder
        self.sent: list[tuple[bytes, tuple]] = []
        self.inbox: list = []
        self.trailing: list = []
        self.delivered = 0

    def sendto(self, data: bytes, addr) -> None:
        self.sent.append((data, addr))

    def recvfrom(self, bufsize: int = 65535):
        if self.inbox:
            reply = self.inbox.pop(0)
        elif self.trailing and self.delivered:
            reply = self.trailing.pop(0)
        elif self.responder is not None:
            reply = self.responder(self.sent[-1][0])
        elif self.replies:
            reply = self.replies.pop(0)
        else:
            raise TimeoutError
        if isinstance(reply, BaseException):
            raise reply
        self.delivered += 1
        if isinstance(reply, tuple):
            return reply
        return reply, PEER

    def drain(self, wait_ms: int = 0, limit: int | None = None) -> int:
        if wait_ms > 0 and self.delivered:
            self.inbox.extend(self.trailing)
            self.trailing.clear()
        count = len(self.inbox) if limit is None else min(limit, len(self.inbox))
        del self.inbox[:count]
        return count

    @property
    def frames(self) -> list[Frame]:
        return [Frame.from_bytes(data) for data, _ in self.sent]


def always_ok(_datagram: bytes) -> bytes:
    return build_ok()


def nak_when(predicate: Callable[[Frame], bool]) -> Callable[[bytes], bytes]:
    def respond(datagram: bytes) -> bytes:
        return build_nak() if predicate(Frame.from_bytes(datagram)) else build_ok()

    return respond


@pytest.fixture
def fake_peer() -> FakeEndpoint:
    return FakeEndpoint(responder=always_ok)


@pytest.fixture
def loopback_receiver(tmp_path):
    """Start a Receiver thread on an ephemeral loopback port.

    Yields ``start(rate_bps=None, timeout_ms=100, impairment=None)`` returning
    ``(address, out_path, outcome)``; after the thread finishes, ``outcome``
    holds "result" or "error".
    """
    started = []

    def start(rate_bps: int | None = None, timeout_ms: int = 100, impairment: Impairment | None = None):
        udp = UdpEndpoint.listening("127.0.0.1", 0, timeout_ms=timeout_ms, impairment=impairment)
        out_path = str(tmp_path / "received.bin")
        outcome: dict = {}

        def run():
            try:
                outcome["result"] = Receiver(udp, out_path=out_path, rate_bps=rate_bps).run()
            except Exception as e:
                outcome["error"] = e
            finally:
                udp.close()

        t = threading.Thread(target=run, daemon=True)
        t.start()
        started.append(t)
        outcome["thread"] = t
        return udp.address, out_path, outcome

    yield start

    for t in started:
        t.join(timeout=5.0)
