"""Thread-safe progress display with an optional fraction callback."""

from __future__ import annotations

import sys
import threading
from typing import Callable, Optional, TextIO

_SCALE = "0%   10   20   30   40   50   60   70   80   90   100%\n"
_BAR = "|----|----|----|----|----|----|----|----|----|----|\n"
_TICS = 50


class _ProgressDisplay:
    """Text progress bar that prints a row of stars under a 0-100% scale."""

    def __init__(self, expected: int, stream: TextIO) -> None:
        self._stream = stream
        self._count = 0
        self._next_tic_count = 0
        self._tic = 0
        stream.write("\n" + _SCALE + _BAR)
        stream.flush()
        self._expected = expected if expected else 1

    def increment(self) -> int:
        self._count += 1
        if self._count >= self._next_tic_count:
            self._display_tic()
        return self._count

    def _display_tic(self) -> None:
        needed = int(self._count / self._expected * _TICS)
        while True:
            self._stream.write("*")
            self._tic += 1
            if self._tic >= needed:
                break
        self._stream.flush()
        self._next_tic_count = int(self._tic / _TICS * self._expected)
        if self._count == self._expected:
            if self._tic < _TICS + 1:
                self._stream.write("*")
            self._stream.write("\n")
            self._stream.flush()


class ParallelProgress:
    """Progress counter that may be incremented from several threads."""

    def __init__(
        self,
        callback: Optional[Callable[[float], None]] = None,
        stream: Optional[TextIO] = None,
    ) -> None:
        self._callback = callback
        self._stream = stream
        self._lock = threading.Lock()
        self._display: Optional[_ProgressDisplay] = None
        self._count = 0

    def init(self, count: int) -> None:
        """Start a new display expecting ``count`` increments."""
        if count < 0:
            raise ValueError("count must be non-negative")
        with self._lock:
            self._count = count
            stream = self._stream if self._stream is not None else sys.stdout
            self._display = _ProgressDisplay(count, stream)

    def increment(self) -> Optional[int]:
        """Advance by one; return the new value, or None before ``init``."""
        if self._display is None:
            return None
        with self._lock:
            value = self._display.increment()
            if self._callback is not None:
                fraction = value / self._count if self._count else float("inf")
                self._callback(fraction)
            return value