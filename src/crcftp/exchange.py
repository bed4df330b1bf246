from __future__ import annotations

import logging

from .ack import NON_ACK, Ack, classify
from .constants import DEFAULT_MAX_ATTEMPTS
from .errors import ExchangeFailure, TransferCancelled
from .net import Address, UdpEndpoint
from .packet import Frame
from .session import CancelToken, TransferSession

log = logging.getLogger(__name__)


def _await_reply(udp: UdpEndpoint, dest: Address, session: TransferSession) -> Ack:
    while True:
        try:
            reply, addr = udp.recvfrom()
        except TimeoutError:
            session.metrics.timeouts += 1
            log.debug("timeout waiting for %s:%d", *dest)
            return NON_ACK
        except (ConnectionRefusedError, ConnectionResetError) as e:
            log.debug("peer unreachable; err=%s", e)
            return NON_ACK
        if tuple(addr[:2]) != tuple(dest):
            log.debug("ignoring datagram from %s:%d", addr[0], addr[1])
            continue
        return classify(reply)


def send_with_retry(
    udp: UdpEndpoint,
    dest: Address,
    frame: Frame,
    session: TransferSession,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    cancel: CancelToken | None = None,
) -> Ack:
    """Send ``frame`` until the peer acknowledges it or the attempts run out.

    A timeout, a refused datagram and an unrecognized reply all count as one
    non-acknowledged attempt. Every attempt resends the same bytes. A rate
    hint in the successful reply is applied to ``session`` before returning.

    Acks carry no frame identifier, so replies that could belong to an earlier
    attempt are discarded: whatever is queued before each send, datagrams from
    any address but ``dest``, and after a retried success, up to one late
    reply per extra attempt arriving within two reply timeouts.

    Raises ExchangeFailure after ``max_attempts`` consecutive non-acks, and
    TransferCancelled if ``cancel`` is set before an attempt.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")

    raw = frame.to_bytes()
    metrics = session.metrics
    metrics.frames_sent += 1

    for attempt in range(1, max_attempts + 1):
        if cancel is not None and cancel.cancelled:
            raise TransferCancelled("transfer cancelled")
        if attempt > 1:
            metrics.retransmits += 1
        metrics.attempts += 1

        udp.drain()
        udp.sendto(raw, dest)
        ack = _await_reply(udp, dest, session)
        log.debug("reply %s; attempt=%d/%d", ack.kind.value, attempt, max_attempts)

        if ack.ok:
            if attempt > 1:
                udp.drain(wait_ms=2 * udp.timeout_ms, limit=attempt - 1)
            ack.apply(session)
            return ack

        metrics.non_acks += 1
        log.warning("no acknowledgment; attempt=%d/%d", attempt, max_attempts)

    raise ExchangeFailure(max_attempts)
