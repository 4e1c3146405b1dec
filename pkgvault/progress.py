"""Progress tracking for the render phase."""

import sys
import time

from pydantic import BaseModel, Field


class ProgressTracker(BaseModel):
    """Track and report progress during long-running operations.

    Only the driver thread calls `increment()`, as partitions complete, so no
    locking is needed.
    """

    total: int
    completed: int = 0
    report_interval: float = 10.0
    unit: str = "packages"
    start_time: float = Field(default_factory=time.time)
    last_report_time: float = Field(default_factory=time.time)

    def increment(self, count: int = 1) -> None:
        """Add `count` to the completed total and report if the interval elapsed."""
        self.completed += count
        now = time.time()
        if (now - self.last_report_time) >= self.report_interval:
            self.report()
            self.last_report_time = now

    def report(self) -> None:
        """Print progress report to stderr."""
        elapsed = time.time() - self.start_time
        pct = (100.0 * self.completed / self.total) if self.total else 0.0
        parts = [f"Progress: {self.completed}/{self.total} ({pct:.1f}%)"]
        if elapsed > 0:
            rate = self.completed / elapsed
            parts.append(f" {rate:.1f} {self.unit}/sec")
        parts.append(f" Elapsed: {elapsed:.1f} s")
        if 0 < self.completed < self.total and elapsed > 0:
            remaining = (elapsed / self.completed) * (self.total - self.completed)
            parts.append(f" ~{remaining:.1f} s remaining")
        print("".join(parts), file=sys.stderr)
