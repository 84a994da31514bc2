from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Set

import pytest

from harvester.config import Credentials, HarvesterConfig, PortalConfig
from harvester.errors import ArtifactNotFound, DriverCommandError, ExtractionTimeout, StorageError

PORTAL = PortalConfig()
PROFILE_BASE = "https://math.imaginelearning.com/students/progress/"
CERT_BASE = "https://math.imaginelearning.com/certificates/"
AVATAR_BASE = "https://cdn.imaginelearning.com/avatars/"
REPORT_BASE = PORTAL.report_url_template.split('?')[0]

FIXED_NOW = datetime(2026, 10, 19, 8, 30, 15, 987654)


def profile_link(identifier: str) -> str:
    return f"{PROFILE_BASE}{identifier}"


def report_html(rows) -> str:
    """Usage report page; rows are (href, count text) pairs."""
    body = "".join(
        f'<tr><td><a href="{href}">student</a></td><td class="certificates-earned">{count}</td></tr>'
        for href, count in rows
    )
    return (
        '<html><body><table class="usage-report"><thead><tr><th>Student</th>'
        f'<th>Certificates</th></tr></thead><tbody>{body}</tbody></table></body></html>'
    )


@dataclass
class FakePage:
    selectors: Set[str] = field(default_factory=set)
    links: List[str] = field(default_factory=list)
    name: Optional[str] = None
    avatar_src: Optional[str] = None
    svg: Optional[str] = None
    html: Optional[str] = None


class FakeDriver:
    """Scripted AutomationDriver; pages are keyed by URL without query string."""

    def __init__(self):
        self.pages: Dict[str, FakePage] = {}
        self.broken_urls: Set[str] = set()
        self.calls: List[tuple] = []
        self.navigated: List[str] = []
        self.current: Optional[FakePage] = None
        self.capture_error: Optional[Exception] = None
        self.region_error: Optional[Exception] = None
        self.closed = False

    def add_page(self, url: str, **kwargs) -> FakePage:
        page = FakePage(**kwargs)
        self.pages[url.split('?')[0]] = page
        return page

    def navigate(self, url):
        self.calls.append(('navigate', url))
        self.navigated.append(url)
        if url in self.broken_urls:
            raise DriverCommandError(f"navigate to {url}: net::ERR_CONNECTION_RESET")
        self.current = self.pages.get(url.split('?')[0], FakePage())

    def fill_field(self, field_id, value):
        self.calls.append(('fill_field', field_id, value))

    def click_element(self, selector):
        self.calls.append(('click_element', selector))

    def await_selector(self, selector, timeout):
        self.calls.append(('await_selector', selector))
        if self.current is None or selector not in self.current.selectors:
            raise ExtractionTimeout(selector, timeout)

    def evaluate_in_page(self, script):
        self.calls.append(('evaluate_in_page', script))
        page = self.current or FakePage()
        if 'documentElement' in script:
            return page.html
        if 'querySelectorAll' in script:
            return list(page.links)
        if 'textContent' in script:
            return page.name
        if '["src"]' in script:
            return page.avatar_src
        if 'outerHTML' in script:
            return page.svg
        raise AssertionError(f"unexpected script: {script}")

    def capture_region(self, selector):
        self.calls.append(('capture_region', selector))
        if self.region_error:
            raise self.region_error
        return b"\x89PNG-region"

    def capture_page(self):
        self.calls.append(('capture_page',))
        if self.capture_error:
            raise self.capture_error
        return b"\x89PNG-page"

    def close(self):
        self.calls.append(('close',))
        self.closed = True

    def add_login_page(self):
        self.add_page(PORTAL.base_url, selectors={PORTAL.login_ready_selector})

    def add_report(self, rows):
        """Report page; the row selector only matches when there are rows."""
        self.add_page(
            REPORT_BASE,
            selectors={PORTAL.report_row_selector} if rows else set(),
            html=report_html(rows)
        )

    def add_student(self, identifier: str, certificates=1, name="Ada Lovelace", svg='<svg id="a"></svg>'):
        """Profile, certificate and avatar pages for one student."""
        links = [f"{CERT_BASE}{identifier}-{i}" for i in range(1, certificates + 1)]
        profile_selectors = {PORTAL.certificate_link_selector} if links else set()
        self.add_page(profile_link(identifier), selectors=profile_selectors, links=links)
        if links:
            avatar_url = f"{AVATAR_BASE}{identifier}.svg"
            self.add_page(
                links[-1],
                selectors={PORTAL.name_selector, PORTAL.avatar_image_selector},
                name=name,
                avatar_src=avatar_url
            )
            self.add_page(avatar_url, selectors={PORTAL.avatar_svg_selector}, svg=svg)
        return links

    def calls_touching(self, fragment: str) -> List[tuple]:
        return [c for c in self.calls if any(fragment in str(part) for part in c[1:])]


class MemoryStore:
    """In-memory ArtifactStore that can be told to fail for key prefixes."""

    def __init__(self):
        self.blobs: Dict[str, bytes] = {}
        self.writes: List[str] = []
        self.fail_prefixes: Set[str] = set()

    def write(self, key, data):
        if any(key.startswith(p) for p in self.fail_prefixes):
            raise StorageError(f"disk full writing {key}")
        if isinstance(data, str):
            data = data.encode('utf-8')
        self.blobs[key] = data
        self.writes.append(key)
        return f"mem://{key}"

    def read(self, key):
        if key not in self.blobs:
            raise ArtifactNotFound(key)
        return self.blobs[key]

    def text(self, key) -> str:
        return self.blobs[key].decode('utf-8')


@pytest.fixture
def driver():
    return FakeDriver()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def config():
    return HarvesterConfig()


@pytest.fixture
def credentials():
    return Credentials(username="teacher", password="s3cret")


@pytest.fixture
def fixed_now():
    return lambda: FIXED_NOW
