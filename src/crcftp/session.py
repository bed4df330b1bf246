from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field


@dataclass(slots=True)
class Metrics:
    frames_sent: int = 0
    attempts: int = 0
    retransmits: int = 0
    timeouts: int = 0
    non_acks: int = 0
    bytes_sent: int = 0
    start_ts: float = field(default_factory=time.monotonic)
    end_ts: float | None = None

    @property
    def duration_s(self) -> float:
        if self.end_ts is None:
            return 0.0
        return max(0.0, self.end_ts - self.start_ts)

    @property
    def throughput_mbps(self) -> float:
        if self.duration_s <= 0:
            return 0.0
        return (self.bytes_sent * 8 / 1_000_000) / self.duration_s


@dataclass(slots=True)
class TransferSession:
    """Mutable state of one transfer, owned by the Sender driving it."""

    size: int
    digest: str
    offset: int = 0
    delay_ms: int = 0
    metrics: Metrics = field(default_factory=Metrics)

    @property
    def remaining(self) -> int:
        return max(0, self.size - self.offset)

    @property
    def done(self) -> bool:
        return self.offset >= self.size


class CancelToken:
    """Set from any thread to stop a transfer at the next attempt or chunk."""

    def __init__(self) -> None:
        self._event = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; return True early if cancelled."""
        if seconds <= 0:
            return self._event.is_set()
        return self._event.wait(seconds)
