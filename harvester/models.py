"""
Data models for the progress harvester.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from harvester.utils import subject_identifier


class ResultStatus(str, Enum):
    """Lifecycle of one subject's extraction attempt."""
    PENDING = "pending"
    EXTRACTED = "extracted"
    SKIPPED = "skipped"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not ResultStatus.PENDING


@dataclass(frozen=True)
class SubjectRecord:
    """One roster entry, exactly as read from the roster file."""
    first_name: str
    last_name: str
    grade: str
    period: str
    profile_link: str

    @property
    def identifier(self) -> str:
        """Key used to look the subject up in the delta set."""
        return subject_identifier(self.profile_link)

    @property
    def artifact_stem(self) -> str:
        """Common prefix for artifact keys, e.g. ``5-Lovelace-Ada``."""
        return f"{self.grade}-{self.last_name}-{self.first_name}"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@dataclass
class ExtractionResult:
    """
    Accumulator for one subject's extracted data.

    Fields are filled in as the extraction advances. Once the status
    becomes terminal through finish(), the result is read-only.
    """
    subject: SubjectRecord
    display_name: str = ""
    certificate_url: str = ""
    avatar_url: str = ""
    certificate_asset_ref: str = ""
    avatar_asset_ref: str = ""
    crawled_at: Optional[datetime] = None
    status: ResultStatus = ResultStatus.PENDING
    reason: str = ""

    def __setattr__(self, name, value):
        if getattr(self, "status", ResultStatus.PENDING).is_terminal:
            raise AttributeError(f"result for {self.subject.full_name} is final; cannot set {name}")
        super().__setattr__(name, value)

    def finish(self, status: ResultStatus, reason: str = "", now: Optional[datetime] = None):
        """
        Move the result to its terminal status and stamp crawled_at.

        Args:
            status: EXTRACTED, SKIPPED or FAILED
            reason: Short machine-readable reason for skips and failures
            now: Timestamp override, wall-clock time if None
        """
        if self.is_final:
            raise RuntimeError(f"result for {self.subject.full_name} already {self.status.value}")
        if not status.is_terminal:
            raise ValueError("finish() requires a terminal status")
        stamp = (now or datetime.now()).replace(microsecond=0)
        self.reason = reason
        self.crawled_at = stamp
        # status last: it freezes the result
        self.status = status
        return self

    @property
    def is_final(self) -> bool:
        return self.status.is_terminal


@dataclass(frozen=True)
class CrawlWindow:
    """Inclusive date window for the usage report."""
    start: date
    end: date

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError(f"window start {self.start} is after end {self.end}")


@dataclass(frozen=True)
class IndexBounds:
    """1-based inclusive roster positions eligible for processing."""
    first: int = 0
    last: Optional[int] = None

    def contains(self, position: int) -> bool:
        """
        Check a 1-based roster position against the bounds.

        Args:
            position: 1-based position in the roster

        Returns:
            True if the entry may be processed
        """
        if position < self.first:
            return False
        if self.last is not None and position > self.last:
            return False
        return True


@dataclass
class RunSummary:
    """Outcome of one crawl run."""
    started_at: datetime
    completed_at: Optional[datetime] = None
    results: List[ExtractionResult] = field(default_factory=list)
    window: Optional[CrawlWindow] = None
    delta_size: int = 0
    export_key: Optional[str] = None
    checkpoint_advanced: bool = False
    fatal_error: Optional[str] = None

    def _count(self, status: ResultStatus) -> int:
        return sum(1 for r in self.results if r.status is status)

    @property
    def total_extracted(self) -> int:
        return self._count(ResultStatus.EXTRACTED)

    @property
    def total_skipped(self) -> int:
        return self._count(ResultStatus.SKIPPED)

    @property
    def total_failed(self) -> int:
        return self._count(ResultStatus.FAILED)

    @property
    def success(self) -> bool:
        """True when the run reached export; per-subject failures are allowed."""
        return self.fatal_error is None

    @property
    def duration_seconds(self) -> float:
        if self.completed_at is None:
            return 0.0
        return (self.completed_at - self.started_at).total_seconds()
