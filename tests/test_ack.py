from __future__ import annotations

import pytest

from crcftp.ack import AckKind, build_nak, build_ok, build_ok_with_rate, classify, delay_ms_for
from crcftp.constants import ACK_SIZE
from crcftp.session import TransferSession


def test_plain_ok():
    ack = classify(b"OK" + bytes(14))
    assert ack.kind is AckKind.SUCCESS
    assert ack.bps is None
    assert ack.ok


def test_ok_with_rate():
    ack = classify(b"OKSS" + b"\x00\x00\x00\x01" + bytes(8))
    assert ack.kind is AckKind.SUCCESS_WITH_RATE
    assert ack.bps == 1
    assert delay_ms_for(ack.bps, 4096) == 4096000


def test_ok_with_unused_trailing_bytes():
    assert classify(b"OKxy" + bytes(12)).kind is AckKind.SUCCESS


def test_truncated_rate_reply_is_plain_ok():
    assert classify(b"OKSS").kind is AckKind.SUCCESS


@pytest.mark.parametrize("reply", [None, b"", b"O", b"NO" + bytes(14), b"ko" + bytes(14), bytes(16)])
def test_non_ack(reply):
    ack = classify(reply)
    assert ack.kind is AckKind.NON_ACK
    assert not ack.ok


def test_delay_rounding():
    assert delay_ms_for(4096000) == 1
    assert delay_ms_for(8192000) == 1  # 0.5 ms rounds up
    assert delay_ms_for(3) == 1365333
    assert delay_ms_for(100_000_000) == 0


def test_zero_rate_has_no_delay():
    assert delay_ms_for(0) is None


def test_apply_updates_session_delay():
    session = TransferSession(size=10, digest="x")
    classify(build_ok_with_rate(409600)).apply(session)
    assert session.delay_ms == 10
    classify(build_ok()).apply(session)
    assert session.delay_ms == 10


def test_apply_ignores_zero_rate():
    session = TransferSession(size=10, digest="x", delay_ms=25)
    classify(build_ok_with_rate(0)).apply(session)
    assert session.delay_ms == 25


def test_built_replies():
    for reply in (build_ok(), build_ok_with_rate(1234), build_nak()):
        assert len(reply) == ACK_SIZE
    assert classify(build_ok_with_rate(1234)).bps == 1234
    assert classify(build_nak()).kind is AckKind.NON_ACK
