"""Shared progress counters and the stderr status line."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass

from rich.console import Console
from rich.control import Control
from rich.segment import ControlType
from rich.text import Text


def format_duration(seconds: float | None) -> str:
    """Return a compact duration such as ``45s``, ``1m5s`` or ``1h2m3s``."""
    if seconds is None or seconds < 0:
        return "0s"
    remaining = int(seconds)
    hours, remainder = divmod(remaining, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}h{minutes}m{secs}s"
    if minutes:
        return f"{minutes}m{secs}s"
    return f"{secs}s"


def _rate(count: int, elapsed: float) -> float:
    if elapsed <= 0:
        return 0.0
    return count / elapsed


@dataclass(frozen=True)
class ProgressSnapshot:
    total: int
    processed: int
    changed: int
    errored: int
    elapsed: float

    @property
    def rate(self) -> float:
        return _rate(self.processed, self.elapsed)

    @property
    def percentage(self) -> float:
        if self.total <= 0:
            return 100.0
        return self.processed / self.total * 100

    @property
    def eta(self) -> float:
        rate = self.rate
        if rate <= 0:
            return 0.0
        return (self.total - self.processed) / rate


class ProgressReporter:
    """Counts processed, changed and errored files across worker threads.

    Each counter is incremented under a lock so workers never lose updates.
    When ``show_progress`` is set, every update redraws a single status line
    on stderr.
    """

    def __init__(
        self,
        total: int,
        show_progress: bool = False,
        quiet: bool = False,
        *,
        console: Console | None = None,
    ) -> None:
        self.total = total
        self.show_progress = show_progress
        self.quiet = quiet
        self.console = console or Console(stderr=True, highlight=False)
        self.start_time = time.monotonic()
        self._processed = 0
        self._changed = 0
        self._errored = 0
        self._lock = threading.Lock()

    @property
    def processed(self) -> int:
        return self._processed

    @property
    def changed(self) -> int:
        return self._changed

    @property
    def errored(self) -> int:
        return self._errored

    def update(self, changed: bool, errored: bool) -> None:
        with self._lock:
            self._processed += 1
            if changed:
                self._changed += 1
            if errored:
                self._errored += 1

        if self.show_progress:
            self._display(self.snapshot())

    def snapshot(self) -> ProgressSnapshot:
        with self._lock:
            processed, changed, errored = self._processed, self._changed, self._errored
        return ProgressSnapshot(
            total=self.total,
            processed=processed,
            changed=changed,
            errored=errored,
            elapsed=time.monotonic() - self.start_time,
        )

    def _clear_line(self) -> None:
        if self.console.is_terminal:
            self.console.control(
                Control.move_to_column(0), Control((ControlType.ERASE_IN_LINE, 2))
            )

    def _display(self, snapshot: ProgressSnapshot) -> None:
        line = (
            f"[{snapshot.processed}/{snapshot.total}] {snapshot.percentage:.1f}% "
            f"| Changed: {snapshot.changed} | Errors: {snapshot.errored} "
            f"| Rate: {snapshot.rate:.1f}/s | ETA: {format_duration(snapshot.eta)}"
        )
        self._clear_line()
        # Redraw in place on a terminal; otherwise emit one line per update.
        end = "" if self.console.is_terminal else "\n"
        self.console.print(Text(line), end=end, soft_wrap=True)

    def finish(self) -> ProgressSnapshot:
        """Print the final counters when progress display is enabled."""
        snapshot = self.snapshot()
        if not self.show_progress:
            return snapshot

        self._clear_line()
        self.console.print(
            f"Completed: {snapshot.processed} files in "
            f"{format_duration(snapshot.elapsed)} ({snapshot.rate:.1f} files/s)",
            soft_wrap=True,
        )
        if snapshot.changed > 0:
            self.console.print(f"Changed: {snapshot.changed} files")
        if snapshot.errored > 0:
            self.console.print(f"Errors: {snapshot.errored} files")
        return snapshot
