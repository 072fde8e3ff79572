"""Live progress display for batch runs.

Workers bump an :class:`AtomicCounter`; a :class:`ProgressTracker`
thread reads it on a fixed cadence and rewrites a single status line.
The tracker is purely observational: it never takes part in result
ordering and workers never wait on it.
"""

from __future__ import annotations

import sys
import threading
from typing import Optional, TextIO

from . import tuning


class AtomicCounter:
    """Non-decreasing integer shared between worker threads."""

    def __init__(self) -> None:
        self._value = 0
        self._lock = threading.Lock()

    def increment(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    @property
    def value(self) -> int:
        return self._value


class ProgressTracker:
    """Render ``completed/total`` on a timer until told to finish."""

    def __init__(
        self,
        counter: AtomicCounter,
        total: int,
        stream: Optional[TextIO] = None,
        interval: float = tuning.PROGRESS_INTERVAL_SECONDS,
    ) -> None:
        self.counter = counter
        self.total = total
        self.stream = stream if stream is not None else sys.stderr
        self.interval = interval
        self._done = threading.Event()
        self._completed_run = True
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError("progress tracker already started")
        self._thread = threading.Thread(target=self._run, name="audio-probe-progress", daemon=True)
        self._thread.start()

    def finish(self, completed: bool = True) -> None:
        """Stop the ticker and wait for its last line.

        A run that finished prints the 100% line; an aborted one
        (``completed=False``) prints the count actually reached.
        """
        self._completed_run = completed
        self._done.set()
        if self._thread is not None:
            self._thread.join()

    def _render(self, completed: int) -> None:
        percent = completed / self.total * 100 if self.total else 100.0
        self.stream.write(f"\r  [{percent:.0f}%] {completed}/{self.total} files processed")
        self.stream.flush()

    def _render_final(self) -> None:
        self.stream.write(f"\r  [100%] {self.total}/{self.total} files processed ✓      \n")
        self.stream.flush()

    def _run(self) -> None:
        # Event.wait doubles as the ticker; it returns True once finish() is called.
        while not self._done.wait(self.interval):
            self._render(self.counter.value)
        if self._completed_run:
            self._render_final()
        else:
            self._render(self.counter.value)
            self.stream.write("\n")
            self.stream.flush()
