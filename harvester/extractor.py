"""
Per-student extraction sequence.

Walks one student through profile -> certificate list -> certificate
detail -> avatar, advancing a named state at each page-ready signal.
A student with no certificate is skipped; any later failure is recorded
as failed together with a diagnostic screenshot.
"""

import json
import logging
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional

from harvester.config import HarvesterConfig
from harvester.errors import (
    ExtractionError,
    ExtractionMissingData,
    ExtractionTimeout,
    StorageError,
)
from harvester.models import ExtractionResult, ResultStatus, SubjectRecord
from harvester.portal_driver import AutomationDriver
from harvester.storage import ArtifactStore

logger = logging.getLogger(__name__)

NO_CERTIFICATE = "no-certificate"


class ExtractionState(str, Enum):
    """Steps of the extraction sequence, in order."""
    NOT_STARTED = "not-started"
    PROFILE_LOADED = "profile-loaded"
    CERTIFICATE_LIST_FOUND = "certificate-list-found"
    CERTIFICATE_DETAIL_LOADED = "certificate-detail-loaded"
    NAME_EXTRACTED = "name-extracted"
    AVATAR_LOCATED = "avatar-located"
    AVATAR_FETCHED = "avatar-fetched"
    DONE = "done"


def select_most_recent(links: List[str]) -> str:
    """
    Pick the most recent certificate from the page's link list.

    The profile page lists certificates oldest first, so the last link
    is the newest.

    Raises:
        ExtractionMissingData: If there are no links
    """
    if not links:
        raise ExtractionMissingData("no certificate links on profile page")
    return links[-1]


def _links_script(selector: str) -> str:
    return (
        f"return Array.from(document.querySelectorAll({json.dumps(selector)}))"
        ".map(function (a) { return a.href; });"
    )


def _text_script(selector: str) -> str:
    return (
        f"var el = document.querySelector({json.dumps(selector)});"
        " return el ? el.textContent.trim() : null;"
    )


def _attribute_script(selector: str, attribute: str) -> str:
    return (
        f"var el = document.querySelector({json.dumps(selector)});"
        f" return el ? el[{json.dumps(attribute)}] : null;"
    )


def _outer_html_script(selector: str) -> str:
    return (
        f"var el = document.querySelector({json.dumps(selector)});"
        " return el ? el.outerHTML : null;"
    )


class SubjectExtractor:
    """Runs the extraction sequence for one student at a time."""

    def __init__(
        self,
        driver: AutomationDriver,
        store: ArtifactStore,
        config: Optional[HarvesterConfig] = None,
        now: Callable[[], datetime] = datetime.now
    ):
        """
        Initialize extractor.

        Args:
            driver: Signed-in automation driver
            store: Artifact store for screenshots and avatars
            config: HarvesterConfig instance, uses defaults if None
            now: Wall-clock source for crawled_at stamps
        """
        self.driver = driver
        self.store = store
        self.config = config or HarvesterConfig()
        self.portal = self.config.portal
        self._now = now
        self.state = ExtractionState.NOT_STARTED

    def certificate_key(self, subject: SubjectRecord) -> str:
        return f"{self.config.certificate_prefix}/{subject.artifact_stem}-certificate.png"

    def avatar_key(self, subject: SubjectRecord) -> str:
        return f"{self.config.avatar_prefix}/{subject.artifact_stem}-avatar.svg"

    def error_key(self, subject: SubjectRecord) -> str:
        return f"{self.config.error_screenshot_prefix}/{subject.artifact_stem}-error.png"

    def extract(self, subject: SubjectRecord) -> ExtractionResult:
        """
        Run the full sequence for one student.

        Args:
            subject: Roster entry with a non-empty profile link

        Returns:
            Terminal ExtractionResult (extracted, skipped or failed)
        """
        result = ExtractionResult(subject=subject)
        self.state = ExtractionState.NOT_STARTED

        try:
            self._load_profile(subject)

            try:
                links = self._find_certificates()
            except (ExtractionTimeout, ExtractionMissingData) as e:
                logger.info("No certificate yet for %s (%s)", subject.full_name, e)
                return result.finish(ResultStatus.SKIPPED, NO_CERTIFICATE, now=self._now())

            result.certificate_url = select_most_recent(links)
            self._advance(ExtractionState.CERTIFICATE_LIST_FOUND)

            self._load_certificate(result.certificate_url)
            result.display_name = self._extract_name()
            self._advance(ExtractionState.NAME_EXTRACTED)

            certificate_png = self.driver.capture_region(self.portal.certificate_region_selector)
            result.certificate_asset_ref = self._save_artifact(
                self.certificate_key(subject), certificate_png, subject
            )

            result.avatar_url = self._locate_avatar()
            self._advance(ExtractionState.AVATAR_LOCATED)

            avatar_svg = self._fetch_avatar(result.avatar_url)
            self._advance(ExtractionState.AVATAR_FETCHED)
            result.avatar_asset_ref = self._save_artifact(
                self.avatar_key(subject), avatar_svg, subject
            )

            self._advance(ExtractionState.DONE)
        except ExtractionError as e:
            reason = f"{type(e).__name__} after {self.state.value}: {e}"
            logger.error("Error crawling profile for %s: %s", subject.full_name, reason)
            self._capture_diagnostic(subject)
            return result.finish(ResultStatus.FAILED, reason, now=self._now())

        logger.info("Extracted %s (%s)", subject.full_name, result.display_name)
        return result.finish(ResultStatus.EXTRACTED, now=self._now())

    def _advance(self, state: ExtractionState):
        logger.debug("-> %s", state.value)
        self.state = state

    def _load_profile(self, subject: SubjectRecord):
        self.driver.navigate(subject.profile_link)
        self._advance(ExtractionState.PROFILE_LOADED)

    def _find_certificates(self) -> List[str]:
        self.driver.await_selector(
            self.portal.certificate_link_selector, self.portal.certificate_list_timeout
        )
        links = self.driver.evaluate_in_page(_links_script(self.portal.certificate_link_selector))
        links = [link for link in (links or []) if link]
        if not links:
            raise ExtractionMissingData("certificate list is empty")
        return links

    def _load_certificate(self, url: str):
        self.driver.navigate(url)
        self.driver.await_selector(self.portal.name_selector, self.portal.name_timeout)
        self._advance(ExtractionState.CERTIFICATE_DETAIL_LOADED)

    def _extract_name(self) -> str:
        name = self.driver.evaluate_in_page(_text_script(self.portal.name_selector))
        if not name:
            raise ExtractionMissingData("certificate has no student name")
        return name

    def _locate_avatar(self) -> str:
        self.driver.await_selector(self.portal.avatar_image_selector, self.portal.avatar_timeout)
        src = self.driver.evaluate_in_page(
            _attribute_script(self.portal.avatar_image_selector, 'src')
        )
        if not src:
            raise ExtractionMissingData("certificate has no avatar image source")
        return src

    def _fetch_avatar(self, url: str) -> str:
        self.driver.navigate(url)
        self.driver.await_selector(self.portal.avatar_svg_selector, self.portal.avatar_svg_timeout)
        svg = self.driver.evaluate_in_page(_outer_html_script(self.portal.avatar_svg_selector))
        if not svg:
            raise ExtractionMissingData("avatar page has no SVG markup")
        return svg

    def _save_artifact(self, key: str, data, subject: SubjectRecord) -> str:
        """Best-effort artifact write; returns the reference or "" on failure."""
        try:
            ref = self.store.write(key, data)
        except StorageError as e:
            logger.warning("Could not save %s for %s: %s", key, subject.full_name, e)
            return ""
        logger.info("Saved %s", key)
        return ref

    def _capture_diagnostic(self, subject: SubjectRecord):
        try:
            screenshot = self.driver.capture_page()
            self.store.write(self.error_key(subject), screenshot)
        except (ExtractionError, StorageError) as e:
            logger.warning("Could not capture error screenshot for %s: %s", subject.full_name, e)
