"""
Delta computation from the portal's usage report.
Finds the students with new certificates in a date window, so only they
get the full profile walk.
"""

import logging
from typing import Optional, Set

from bs4 import BeautifulSoup

from harvester.config import PortalConfig
from harvester.errors import DeltaComputationError, ExtractionError
from harvester.models import CrawlWindow
from harvester.portal_driver import AutomationDriver
from harvester.utils import subject_identifier

logger = logging.getLogger(__name__)

PAGE_SOURCE_SCRIPT = "return document.documentElement.outerHTML;"


def parse_activity_count(text: str) -> int:
    """
    Read an activity cell as a count.

    Args:
        text: Cell text (e.g., "3", " 1,204 ")

    Returns:
        The count, or 0 if the cell is not a whole number
    """
    cleaned = (text or "").strip().replace(',', '')
    if not cleaned.isdigit():
        return 0
    return int(cleaned)


class DeltaFilter:
    """Turns one usage-report page into the set of active subject identifiers."""

    def __init__(self, driver: AutomationDriver, portal: Optional[PortalConfig] = None):
        """
        Initialize with the session's driver.

        Args:
            driver: Signed-in automation driver
            portal: Portal selectors and URLs, defaults if None
        """
        self.driver = driver
        self.portal = portal or PortalConfig()

    def report_url(self, window: CrawlWindow) -> str:
        """Build the usage report URL for a window."""
        return self.portal.report_url_template.format(
            start=window.start.isoformat(),
            end=window.end.isoformat()
        )

    def compute(self, window: CrawlWindow) -> Set[str]:
        """
        Fetch the usage report and collect identifiers with activity.

        Args:
            window: Inclusive date window to report on

        Returns:
            Identifiers whose activity count is strictly positive

        Raises:
            DeltaComputationError: If the report does not load or has no rows
        """
        url = self.report_url(window)
        logger.info("Fetching usage report for %s to %s", window.start, window.end)

        try:
            self.driver.navigate(url)
            self.driver.await_selector(self.portal.report_row_selector, self.portal.report_timeout)
            page_source = self.driver.evaluate_in_page(PAGE_SOURCE_SCRIPT)
        except ExtractionError as e:
            raise DeltaComputationError(f"usage report unavailable: {e}") from e

        if not page_source:
            raise DeltaComputationError("usage report page was empty")

        active = self.parse_report(page_source)
        logger.info("Usage report lists %d students with new activity", len(active))
        return active

    def parse_report(self, page_source: str) -> Set[str]:
        """
        Extract active identifiers from report HTML.

        Args:
            page_source: Full HTML of the report page

        Returns:
            Identifiers whose activity count is strictly positive
        """
        soup = BeautifulSoup(page_source, 'html.parser')
        active: Set[str] = set()

        for row in soup.select(self.portal.report_row_selector):
            link = row.select_one(self.portal.report_link_selector)
            count_cell = row.select_one(self.portal.report_count_selector)
            if link is None or count_cell is None:
                continue

            identifier = subject_identifier(link.get('href', ''))
            if not identifier:
                continue

            if parse_activity_count(count_cell.get_text()) > 0:
                active.add(identifier)

        return active
