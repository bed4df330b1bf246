from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from .ack import build_nak, build_ok, build_ok_with_rate
from .constants import CHUNK_SIZE, CMD_HASH, CMD_NAME, CMD_SIZE, CMD_START, CMD_STOP
from .digest import digest
from .errors import ChecksumError, DigestMismatchError
from .net import Address, UdpEndpoint
from .packet import Frame

log = logging.getLogger(__name__)


def local_name(announced: str) -> str:
    """Bare file name of an announced path, for writing into the working directory.

    Returns "" when nothing usable is left.
    """
    name = os.path.basename(announced.replace("\\", "/"))
    return "" if name in ("", ".", "..") else name


def _command(frame: Frame) -> tuple[str, str | None]:
    try:
        return frame.command()
    except UnicodeDecodeError:
        return "", None


@dataclass(frozen=True, slots=True)
class ReceiveResult:
    name: str
    path: str
    size: int
    digest: str
    frames: int
    rejected: int


@dataclass(slots=True)
class Receiver:
    """Reference peer: accepts one transfer and writes it out once the digest matches.

    Frames that fail the checksum, or arrive out of protocol order, get a
    non-ack so the sender retries them. With ``rate_bps`` set, data frames are
    acknowledged with a rate hint. Without ``out_path`` the file is written
    under the bare announced name in the working directory.
    """

    udp: UdpEndpoint
    out_path: str | None = None
    rate_bps: int | None = None
    name: str | None = None
    size: int | None = None
    expected_digest: str | None = None
    started: bool = False
    buffer: bytearray = field(default_factory=bytearray)
    frames: int = 0
    rejected: int = 0

    def run(self) -> ReceiveResult:
        log.info("receiver listening on %s:%d", *self.udp.address)
        while True:
            try:
                raw, addr = self.udp.recvfrom()
            except TimeoutError:
                continue

            try:
                frame = Frame.from_bytes(raw)
            except ChecksumError as e:
                log.debug("rejecting frame from %s: %s", addr, e)
                self._reply(addr, ok=False)
                continue

            if frame.is_data:
                self._reply(addr, ok=self._on_data(frame), data=True)
                continue

            verb, value = _command(frame)
            if verb == CMD_STOP and self.started:
                self._reply(addr, ok=True)
                result = self._finish()
                self._linger()
                return result
            self._reply(addr, ok=self._on_command(verb, value))

    def _linger(self) -> None:
        # re-ack STOP retries until the line goes quiet for one timeout
        if not self.udp.timeout_ms:
            return
        while True:
            try:
                raw, addr = self.udp.recvfrom()
            except TimeoutError:
                return
            try:
                frame = Frame.from_bytes(raw)
            except ChecksumError:
                self._reply(addr, ok=False)
                continue
            self._reply(addr, ok=not frame.is_data and _command(frame)[0] == CMD_STOP)

    def _reply(self, addr: Address, ok: bool, data: bool = False) -> None:
        if ok:
            self.frames += 1
            reply = build_ok_with_rate(self.rate_bps) if data and self.rate_bps else build_ok()
        else:
            self.rejected += 1
            reply = build_nak()
        self.udp.sendto(reply, addr)

    def _on_command(self, verb: str, value: str | None) -> bool:
        if verb == CMD_NAME and value and (self.out_path or local_name(value)):
            self.name = value
        elif verb == CMD_SIZE and value and value.isascii() and value.isdigit():
            self.size = int(value)
            self.buffer = bytearray(self.size)
        elif verb == CMD_HASH and value:
            self.expected_digest = value.lower()
        elif verb == CMD_START and None not in (self.name, self.size, self.expected_digest):
            self.started = True
        else:
            log.warning("unexpected command %r", verb)
            return False
        log.debug("command %s=%s", verb, value)
        return True

    def _on_data(self, frame: Frame) -> bool:
        if not self.started or self.size is None:
            log.warning("data frame before START")
            return False
        offset = frame.data_offset
        if offset >= self.size:
            log.warning("data frame offset=%d beyond size=%d", offset, self.size)
            return False
        payload = frame.data_payload(min(CHUNK_SIZE, self.size - offset))
        self.buffer[offset:offset + len(payload)] = payload
        log.debug("data; offset=%d len=%d", offset, len(payload))
        return True

    def _finish(self) -> ReceiveResult:
        content = bytes(self.buffer)
        actual = digest(content)
        if actual != self.expected_digest:
            raise DigestMismatchError(self.expected_digest or "", actual)

        path = self.out_path or local_name(self.name or "")
        with open(path, "wb") as out:
            out.write(content)
        log.info("receiver done; wrote %d bytes to %s", len(content), path)
        return ReceiveResult(
            name=self.name or "",
            path=path,
            size=len(content),
            digest=actual,
            frames=self.frames,
            rejected=self.rejected,
        )
