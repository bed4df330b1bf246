from __future__ import annotations

import enum
import logging
import struct
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .constants import ACK_NAK, ACK_OK, ACK_RATE, ACK_SIZE, FRAME_SIZE

if TYPE_CHECKING:
    from .session import TransferSession

log = logging.getLogger(__name__)

_BPS = struct.Struct("!I")


class AckKind(enum.Enum):
    SUCCESS = "success"
    SUCCESS_WITH_RATE = "success_with_rate"
    NON_ACK = "non_ack"


@dataclass(frozen=True, slots=True)
class Ack:
    kind: AckKind
    bps: int | None = None

    @property
    def ok(self) -> bool:
        return self.kind is not AckKind.NON_ACK

    def apply(self, session: "TransferSession") -> None:
        if self.kind is not AckKind.SUCCESS_WITH_RATE:
            return
        delay = delay_ms_for(self.bps)
        if delay is None:
            log.warning("ignoring zero rate hint; delay stays %d ms", session.delay_ms)
            return
        if delay != session.delay_ms:
            log.info("rate hint %d B/s; inter-frame delay %d -> %d ms", self.bps, session.delay_ms, delay)
        session.delay_ms = delay


NON_ACK = Ack(AckKind.NON_ACK)


def classify(reply: bytes | None) -> Ack:
    if not reply:
        return NON_ACK
    if reply[:4] == ACK_RATE and len(reply) >= 8:
        (bps,) = _BPS.unpack_from(reply, 4)
        return Ack(AckKind.SUCCESS_WITH_RATE, bps)
    if reply[:2] == ACK_OK:
        return Ack(AckKind.SUCCESS)
    return NON_ACK


def delay_ms_for(bps: int, frame_size: int = FRAME_SIZE) -> int | None:
    """Milliseconds to send one frame at ``bps``, halves rounded up.

    Returns None for a zero rate, which carries no usable pacing.
    """
    if bps <= 0:
        return None
    return (frame_size * 2000 + bps) // (2 * bps)


def build_ok() -> bytes:
    return ACK_OK.ljust(ACK_SIZE, b"\x00")


def build_ok_with_rate(bps: int) -> bytes:
    return (ACK_RATE + _BPS.pack(bps)).ljust(ACK_SIZE, b"\x00")


def build_nak() -> bytes:
    return ACK_NAK.ljust(ACK_SIZE, b"\x00")
