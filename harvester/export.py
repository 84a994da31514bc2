"""
CSV export of crawl results.
"""

import csv
import io
import logging
from typing import List

from harvester.models import ExtractionResult, RunSummary
from harvester.storage import ArtifactStore
from harvester.utils import run_timestamp

logger = logging.getLogger(__name__)

# identity fields, then extracted fields, then outcome
EXPORT_COLUMNS = [
    'first_name',
    'last_name',
    'grade',
    'period',
    'profile_link',
    'display_name',
    'certificate_url',
    'avatar_url',
    'certificate_asset_ref',
    'avatar_asset_ref',
    'status',
    'reason',
    'crawled_at',
]


def result_row(result: ExtractionResult) -> List[str]:
    """Flatten one result into export column order."""
    subject = result.subject
    return [
        subject.first_name,
        subject.last_name,
        subject.grade,
        subject.period,
        subject.profile_link,
        result.display_name,
        result.certificate_url,
        result.avatar_url,
        result.certificate_asset_ref,
        result.avatar_asset_ref,
        result.status.value,
        result.reason,
        result.crawled_at.isoformat() if result.crawled_at else "",
    ]


def render_csv(results: List[ExtractionResult]) -> str:
    """
    Render results as CSV text with a header row.

    Fields containing commas, quotes or newlines are quoted.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator='\r\n')
    writer.writerow(EXPORT_COLUMNS)
    for result in results:
        writer.writerow(result_row(result))
    return buffer.getvalue()


def format_log_line(result: ExtractionResult) -> str:
    """Single-line CSV rendering of a result, for the run log."""
    buffer = io.StringIO()
    csv.writer(buffer, lineterminator='\n').writerow(result_row(result))
    return buffer.getvalue()[:-1]


class CrawlExporter:
    """Writes a run's results to the artifact store."""

    def __init__(self, store: ArtifactStore, prefix: str = "crawl-logs"):
        self.store = store
        self.prefix = prefix

    def export_key(self, summary: RunSummary) -> str:
        """Key of the run's export, e.g. ``crawl-logs/crawl-log-20261019T083000.csv``."""
        return f"{self.prefix}/crawl-log-{run_timestamp(summary.started_at)}.csv"

    def write(self, summary: RunSummary) -> str:
        """
        Write the export for a run. Called again as results accumulate,
        each call replacing the previous file.

        Args:
            summary: Run whose results are exported

        Returns:
            Key the export was written under

        Raises:
            StorageError: If the export cannot be written
        """
        rows = summary.results
        key = self.export_key(summary)
        self.store.write(key, render_csv(rows))
        logger.debug("Wrote %d rows to %s", len(rows), key)
        return key
