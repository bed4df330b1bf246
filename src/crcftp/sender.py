from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass, field

from .constants import (
    CHUNK_SIZE,
    CMD_HASH,
    CMD_NAME,
    CMD_SIZE,
    CMD_START,
    CMD_STOP,
    DEFAULT_MAX_ATTEMPTS,
    MAX_OFFSET,
)
from .errors import EncodingError, ExchangeFailure, TransferAborted, TransferCancelled, TransferFatal
from .exchange import send_with_retry
from .net import Address, UdpEndpoint, resolve
from .packet import Frame
from .session import CancelToken, Metrics, TransferSession
from .source import FileSource

log = logging.getLogger(__name__)


def last_chunk_offset(size: int, chunk_size: int = CHUNK_SIZE) -> int:
    """Offset carried by the final data frame of a file of ``size`` bytes."""
    if size <= 0:
        return 0
    return (size - 1) // chunk_size * chunk_size


class TransferState(enum.Enum):
    INIT = "init"
    SEND_NAME = "name"
    SEND_SIZE = "size"
    SEND_HASH = "hash"
    SEND_START = "start"
    STREAM_DATA = "data"
    SEND_STOP = "stop"
    DONE = "done"
    FAILED = "failed"


@dataclass(slots=True)
class Sender:
    """Drives one file transfer through the handshake, the data stream and STOP.

    Control-step failures raise TransferAborted; a data-step failure raises
    TransferFatal, since the peer may already hold part of the file.
    """

    udp: UdpEndpoint
    dest: Address
    source: FileSource
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    cancel: CancelToken = field(default_factory=CancelToken)
    state: TransferState = TransferState.INIT
    history: list[TransferState] = field(default_factory=list)
    session: TransferSession | None = None

    def run(self) -> Metrics:
        self._enter(TransferState.INIT)
        try:
            session = self._new_session()
            self.dest = resolve(self.dest)
            self.session = session

            self._control(session, TransferState.SEND_NAME, Frame.control(CMD_NAME, self.source.name))
            self._control(session, TransferState.SEND_SIZE, Frame.control(CMD_SIZE, session.size))
            self._control(session, TransferState.SEND_HASH, Frame.control(CMD_HASH, session.digest))
            self._control(session, TransferState.SEND_START, Frame.control(CMD_START))
            log.info("handshake done; name=%s size=%d hash=%s", self.source.name, session.size, session.digest)

            self._stream(session)

            self._control(session, TransferState.SEND_STOP, Frame.control(CMD_STOP))
        except EncodingError:
            self._enter(TransferState.FAILED)
            raise
        self._enter(TransferState.DONE)

        metrics = session.metrics
        metrics.end_ts = time.monotonic()
        log.info(
            "done; bytes=%d frames=%d retransmits=%d throughput=%.2f Mbps",
            metrics.bytes_sent,
            metrics.frames_sent,
            metrics.retransmits,
            metrics.throughput_mbps,
        )
        return metrics

    def _new_session(self) -> TransferSession:
        size = self.source.size
        if last_chunk_offset(size) > MAX_OFFSET:
            raise EncodingError(f"file of {size} bytes puts its last chunk beyond the 32-bit offset range")
        return TransferSession(size=size, digest=self.source.digest)

    def _enter(self, state: TransferState) -> None:
        log.debug("state %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    def _exchange(self, session: TransferSession, frame: Frame) -> None:
        try:
            send_with_retry(
                self.udp,
                self.dest,
                frame,
                session,
                max_attempts=self.max_attempts,
                cancel=self.cancel,
            )
        except TransferCancelled:
            self._enter(TransferState.FAILED)
            raise

    def _control(self, session: TransferSession, state: TransferState, frame: Frame) -> None:
        self._enter(state)
        try:
            self._exchange(session, frame)
        except ExchangeFailure as e:
            self._enter(TransferState.FAILED)
            log.error("%s step failed after %d attempts", state.value, e.attempts)
            raise TransferAborted(state.value) from e

    def _stream(self, session: TransferSession) -> None:
        self._enter(TransferState.STREAM_DATA)
        while not session.done:
            if self.cancel.cancelled:
                self._enter(TransferState.FAILED)
                raise TransferCancelled("transfer cancelled")

            chunk = self.source.chunk_at(session.offset, CHUNK_SIZE)
            frame = Frame.data(session.offset, chunk)
            try:
                self._exchange(session, frame)
            except ExchangeFailure as e:
                self._enter(TransferState.FAILED)
                log.critical("data frame at offset=%d lost after %d attempts; transfer must restart", session.offset, e.attempts)
                raise TransferFatal(session.offset) from e

            session.offset += len(chunk)
            session.metrics.bytes_sent += len(chunk)
            log.debug("acked; offset=%d/%d delay_ms=%d", session.offset, session.size, session.delay_ms)

            if session.delay_ms > 0 and self.cancel.wait(session.delay_ms / 1000.0):
                self._enter(TransferState.FAILED)
                raise TransferCancelled("transfer cancelled")
