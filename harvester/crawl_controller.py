"""
Main orchestrator for the progress harvester.
Coordinates sign-in, roster loading, delta computation, the per-student
extraction loop, export and checkpointing.
"""

import logging
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Callable, List, Optional, Set, Union

from harvester.config import Credentials, HarvesterConfig
from harvester.errors import (
    ConfigurationError,
    DeltaComputationError,
    FatalRunError,
    StorageError,
)
from harvester.export import CrawlExporter, format_log_line
from harvester.extractor import SubjectExtractor
from harvester.models import (
    CrawlWindow,
    ExtractionResult,
    IndexBounds,
    ResultStatus,
    RunSummary,
    SubjectRecord,
)
from harvester.portal_driver import AutomationDriver, login
from harvester.resilience.checkpoint import CheckpointStore
from harvester.resilience.delta_filter import DeltaFilter
from harvester.resilience.rate_limiter import RateLimiter
from harvester.roster import load_roster
from harvester.storage import ArtifactStore
from harvester.utils import format_checkpoint_date, yesterday

logger = logging.getLogger(__name__)

NO_LINK = "no-link"
NOT_IN_DELTA = "not-in-delta"


class CrawlController:
    """Main orchestrator that coordinates all harvester components."""

    def __init__(
        self,
        driver: AutomationDriver,
        store: ArtifactStore,
        credentials: Optional[Credentials],
        config: Optional[HarvesterConfig] = None,
        rate_limiter: Optional[RateLimiter] = None,
        now: Callable[[], datetime] = datetime.now
    ):
        """
        Initialize controller.

        Args:
            driver: Automation driver for the single portal session
            store: Artifact store for screenshots, avatars, exports and the checkpoint
            credentials: Portal credentials; the run refuses to start without them
            config: HarvesterConfig instance, uses defaults if None
            rate_limiter: Throttle between students, built from config if None
            now: Wall-clock source
        """
        self.config = config or HarvesterConfig()
        self.driver = driver
        self.store = store
        self.credentials = credentials
        self._now = now

        self.rate_limiter = rate_limiter or RateLimiter(config=self.config.rate_limit)
        self.extractor = SubjectExtractor(driver, store, self.config, now=now)
        self.delta_filter = DeltaFilter(driver, self.config.portal)
        self.checkpoint = CheckpointStore(store, self.config.checkpoint_key)
        self.exporter = CrawlExporter(store, self.config.export_prefix)

    def run(
        self,
        roster_path: Union[str, Path, None] = None,
        window: Optional[CrawlWindow] = None,
        bounds: Optional[IndexBounds] = None
    ) -> RunSummary:
        """
        Run one incremental crawl.

        Args:
            roster_path: Roster file, config.roster_path if None
            window: Usage report window, [checkpoint, yesterday] if None
            bounds: 1-based inclusive roster positions to process, all if None

        Returns:
            RunSummary; fatal_error is set if the run aborted before processing
        """
        summary = RunSummary(started_at=self._now().replace(microsecond=0))
        bounds = bounds or IndexBounds()

        try:
            try:
                subjects, delta = self._prepare(roster_path or self.config.roster_path, window, summary)
            except FatalRunError as e:
                logger.error("Crawl aborted (%s): %s", type(e).__name__, e)
                summary.fatal_error = f"{type(e).__name__}: {e}"
                summary.completed_at = self._now().replace(microsecond=0)
                return summary

            self._process_roster(subjects, delta, bounds, summary)
            self._finish(summary)
        finally:
            self.driver.close()

        summary.completed_at = self._now().replace(microsecond=0)
        logger.info(
            "Crawl complete: %d extracted, %d skipped, %d failed",
            summary.total_extracted, summary.total_skipped, summary.total_failed
        )
        return summary

    def _prepare(self, roster_path, window: Optional[CrawlWindow], summary: RunSummary):
        """Everything that must succeed before the first student is touched."""
        if self.credentials is None or not self.credentials.username or not self.credentials.password:
            raise ConfigurationError("portal credentials are missing")

        login(self.driver, self.credentials, self.config.portal)
        subjects = load_roster(roster_path)

        summary.window = window or self._default_window(summary.started_at.date())
        delta = self.delta_filter.compute(summary.window)
        summary.delta_size = len(delta)
        return subjects, delta

    def _default_window(self, today: date) -> CrawlWindow:
        """[checkpoint, yesterday], or a lookback window on the first run."""
        end = yesterday(today)
        try:
            last_crawl = self.checkpoint.load()
        except StorageError as e:
            raise DeltaComputationError(f"cannot read checkpoint: {e}") from e

        if last_crawl is None:
            start = today - timedelta(days=self.config.initial_lookback_days)
        else:
            start = last_crawl
        return CrawlWindow(start=min(start, end), end=end)

    def _process_roster(
        self,
        subjects: List[SubjectRecord],
        delta: Set[str],
        bounds: IndexBounds,
        summary: RunSummary
    ):
        """Core loop: one terminal result per in-bounds roster entry."""
        total = len(subjects)
        for position, subject in enumerate(subjects, 1):
            if not bounds.contains(position):
                continue

            if not subject.profile_link:
                result = ExtractionResult(subject=subject).finish(
                    ResultStatus.SKIPPED, NO_LINK, now=self._now()
                )
            elif subject.identifier not in delta:
                result = ExtractionResult(subject=subject).finish(
                    ResultStatus.SKIPPED, NOT_IN_DELTA, now=self._now()
                )
            else:
                result = self._attempt(subject)

            summary.results.append(result)
            logger.info("[%d/%d] %s", position, total, format_log_line(result))
            self._flush_partial(summary)

    def _attempt(self, subject: SubjectRecord) -> ExtractionResult:
        """Extract one student behind the rate limiter."""
        self.rate_limiter.wait()
        try:
            return self.extractor.extract(subject)
        except Exception as e:
            logger.exception("Unexpected error crawling %s", subject.full_name)
            return ExtractionResult(subject=subject).finish(
                ResultStatus.FAILED, f"unexpected error: {e}", now=self._now()
            )
        finally:
            self.rate_limiter.record_attempt()

    def _flush_partial(self, summary: RunSummary):
        every = self.config.flush_every
        if every <= 0 or len(summary.results) % every:
            return
        try:
            self.exporter.write(summary)
        except StorageError as e:
            logger.warning("Could not write partial export: %s", e)

    def _finish(self, summary: RunSummary):
        """Write the export, then advance the checkpoint if the export landed."""
        try:
            summary.export_key = self.exporter.write(summary)
        except StorageError as e:
            logger.error("Export failed, checkpoint left unchanged: %s", e)
            return
        logger.info("Exported %d rows to %s", len(summary.results), summary.export_key)

        covered_through = yesterday(summary.started_at.date())
        if summary.window is not None:
            covered_through = min(covered_through, summary.window.end)

        try:
            summary.checkpoint_advanced = self.checkpoint.advance(covered_through)
        except StorageError as e:
            logger.error(
                "Could not advance checkpoint to %s: %s",
                format_checkpoint_date(covered_through), e
            )
