import threading
import time
from dataclasses import dataclass
from typing import Callable

@dataclass
class RunningStats:
    """Per-job counters. Owned by exactly one pipeline."""
    start_time: float
    byte_count: int = 0
    throughput: int = 0

class RateSampler:
    """Pass-through stage that counts bytes on their way to the sink.

    Throughput is a running average anchored at job start
    (``byte_count / seconds since start``), not a sliding window. When no
    time has elapsed yet the previous value is kept, so it reads 0 until the
    clock has moved.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._stats = RunningStats(start_time=clock())
        self._lock = threading.Lock()
        self._finished = False

    def observe(self, chunk: bytes) -> bytes:
        with self._lock:
            self._stats.byte_count += len(chunk)
            elapsed = self._clock() - self._stats.start_time
            if elapsed > 0:
                # Half-up, not banker's rounding
                self._stats.throughput = int(self._stats.byte_count / elapsed + 0.5)
        return chunk

    def finish(self):
        self._finished = True

    @property
    def finished(self) -> bool:
        return self._finished

    @property
    def byte_count(self) -> int:
        with self._lock:
            return self._stats.byte_count

    @property
    def throughput(self) -> int:
        with self._lock:
            return self._stats.throughput
