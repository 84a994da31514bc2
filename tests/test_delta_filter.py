from datetime import date

import pytest

from conftest import PORTAL, REPORT_BASE, profile_link, report_html
from harvester.errors import DeltaComputationError
from harvester.models import CrawlWindow
from harvester.resilience.delta_filter import DeltaFilter, parse_activity_count

WINDOW = CrawlWindow(start=date(2026, 10, 1), end=date(2026, 10, 18))


@pytest.mark.parametrize("text, expected", [
    ("3", 3),
    (" 12 ", 12),
    ("1,204", 1204),
    ("0", 0),
    ("", 0),
    ("n/a", 0),
    ("-2", 0),
    ("2.5", 0),
])
def test_parse_activity_count(text, expected):
    assert parse_activity_count(text) == expected


def test_report_url_uses_window_dates(driver):
    url = DeltaFilter(driver, PORTAL).report_url(WINDOW)

    assert url == f"{REPORT_BASE}?start=2026-10-01&end=2026-10-18"


def test_compute_keeps_only_positive_counts(driver):
    driver.add_report([
        (profile_link("stu00001"), "2"),
        (profile_link("stu00002"), "0"),
        (profile_link("stu00003"), "abc"),
        (profile_link("stu00004") + "/", "1"),
    ])

    active = DeltaFilter(driver, PORTAL).compute(WINDOW)

    assert active == {"stu00001", "stu00004"}
    assert driver.navigated == [f"{REPORT_BASE}?start=2026-10-01&end=2026-10-18"]


def test_compute_is_idempotent(driver):
    driver.add_report([
        (profile_link("stu00001"), "1"),
        (profile_link("stu00002"), "5"),
    ])
    delta = DeltaFilter(driver, PORTAL)

    assert delta.compute(WINDOW) == delta.compute(WINDOW)


def test_rows_without_link_or_count_are_ignored(driver):
    html = report_html([(profile_link("stu00001"), "1")]).replace(
        "</tbody>",
        "<tr><td>no link</td><td class='certificates-earned'>4</td></tr>"
        f"<tr><td><a href='{profile_link('stu00009')}'>x</a></td></tr></tbody>"
    )
    driver.add_page(REPORT_BASE, selectors={PORTAL.report_row_selector}, html=html)

    assert DeltaFilter(driver, PORTAL).compute(WINDOW) == {"stu00001"}


def test_rows_never_appearing_is_fatal(driver):
    driver.add_page(REPORT_BASE, selectors=set(), html="<html></html>")

    with pytest.raises(DeltaComputationError, match="usage report unavailable"):
        DeltaFilter(driver, PORTAL).compute(WINDOW)


def test_report_navigation_failure_is_fatal(driver):
    driver.broken_urls.add(f"{REPORT_BASE}?start=2026-10-01&end=2026-10-18")

    with pytest.raises(DeltaComputationError):
        DeltaFilter(driver, PORTAL).compute(WINDOW)


def test_empty_page_source_is_fatal(driver):
    driver.add_page(REPORT_BASE, selectors={PORTAL.report_row_selector}, html=None)

    with pytest.raises(DeltaComputationError, match="empty"):
        DeltaFilter(driver, PORTAL).compute(WINDOW)


def test_report_without_rows_is_fatal(driver):
    driver.add_report([])

    with pytest.raises(DeltaComputationError, match="usage report unavailable"):
        DeltaFilter(driver, PORTAL).compute(WINDOW)
