"""
Run bookkeeping for the scheduled automation rules.
"""

from dataclasses import dataclass
from datetime import datetime, time


@dataclass(frozen=True)
class DailyTrigger:
    """Wall-clock time of day (24h) at which a rule fires."""

    hour: int
    minute: int = 0

    def __post_init__(self):
        if not 0 <= self.hour <= 23:
            raise ValueError(f"Trigger hour must be within 0..23, got {self.hour}")
        if not 0 <= self.minute <= 59:
            raise ValueError(f"Trigger minute must be within 0..59, got {self.minute}")

    @classmethod
    def parse(cls, value: str) -> "DailyTrigger":
        """Parse an ``HH:MM`` string such as ``"01:00"``."""
        parts = value.strip().split(":")
        if len(parts) != 2 or not all(p.isdigit() for p in parts):
            raise ValueError(f"Trigger time must look like HH:MM, got {value!r}")
        return cls(hour=int(parts[0]), minute=int(parts[1]))

    def as_time(self) -> time:
        return time(self.hour, self.minute)

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


@dataclass
class RunSummary:
    """
    Outcome of one runner invocation.
    Counters are per batch; a batch whose mutation failed is not counted as listed or tasked.
    """

    rule: str
    started_at: datetime
    finished_at: datetime | None = None
    candidates: int = 0
    processed: int = 0
    promoted: int = 0
    listings_published: int = 0
    tasks_sent: int = 0
    mutation_failures: int = 0
    notification_failures: int = 0
    batch_errors: int = 0
    skipped: bool = False
    aborted: bool = False
    abort_reason: str | None = None

    @property
    def duration_seconds(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    def describe(self) -> str:
        return (
            f"{self.candidates} candidates, {self.processed} processed, "
            f"{self.promoted} promoted, {self.listings_published} listings, "
            f"{self.tasks_sent} tasks, {self.mutation_failures} mutation failures, "
            f"{self.notification_failures} notification failures"
        )
