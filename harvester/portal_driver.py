"""
Browser automation for the Imagine Math portal.
Uses SeleniumBase (UC mode) to drive one authenticated Chrome session.
"""

import logging
from contextlib import contextmanager
from typing import Any, Optional, Protocol

from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.common.by import By
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait
from seleniumbase import Driver

from harvester.config import Credentials, PortalConfig
from harvester.errors import DriverCommandError, ExtractionError, ExtractionTimeout, LoginError

logger = logging.getLogger(__name__)


class AutomationDriver(Protocol):
    """
    The browser capabilities the crawler relies on.

    Every method blocks until the browser has finished the command.
    Failures surface as ExtractionError subclasses.
    """

    def navigate(self, url: str) -> None: ...

    def fill_field(self, field_id: str, value: str) -> None: ...

    def click_element(self, selector: str) -> None: ...

    def await_selector(self, selector: str, timeout: float) -> None: ...

    def evaluate_in_page(self, script: str) -> Any: ...

    def capture_region(self, selector: str) -> bytes: ...

    def capture_page(self) -> bytes: ...

    def close(self) -> None: ...


@contextmanager
def _browser_command(action: str):
    """Translate Selenium errors into DriverCommandError."""
    try:
        yield
    except WebDriverException as e:
        message = (e.msg or type(e).__name__).strip().splitlines()[0]
        raise DriverCommandError(f"{action}: {message}") from e


class SeleniumBaseDriver:
    """AutomationDriver backed by a SeleniumBase Chrome session."""

    def __init__(self, headless: bool = True, window_width: int = 1280, window_height: int = 800):
        self.headless = headless
        self.window_width = window_width
        self.window_height = window_height
        self.driver = None

    def _init_driver(self):
        """Initialize SeleniumBase Driver with UC mode"""
        if self.driver is None:
            logger.info("Starting browser (headless=%s)", self.headless)
            with _browser_command("start browser"):
                self.driver = Driver(uc=True, headless=self.headless)
                self.driver.set_window_size(self.window_width, self.window_height)

    def _ensure_driver(self):
        """Ensure driver is alive"""
        if self.driver is None:
            self._init_driver()

    def _close_driver(self):
        """Close WebDriver"""
        if self.driver:
            try:
                self.driver.quit()
            except WebDriverException as e:
                logger.warning("Error closing browser: %s", e)
            self.driver = None

    def navigate(self, url: str) -> None:
        self._ensure_driver()
        with _browser_command(f"navigate to {url}"):
            self.driver.get(url)

    def fill_field(self, field_id: str, value: str) -> None:
        self._ensure_driver()
        with _browser_command(f"fill #{field_id}"):
            element = self.driver.find_element(By.ID, field_id)
            element.clear()
            element.send_keys(value)

    def click_element(self, selector: str) -> None:
        self._ensure_driver()
        with _browser_command(f"click {selector}"):
            self.driver.find_element(By.CSS_SELECTOR, selector).click()

    def await_selector(self, selector: str, timeout: float) -> None:
        """
        Block until an element matching selector is present.

        Raises:
            ExtractionTimeout: If the element does not appear within timeout
        """
        self._ensure_driver()
        try:
            WebDriverWait(self.driver, timeout).until(
                EC.presence_of_element_located((By.CSS_SELECTOR, selector))
            )
        except TimeoutException as e:
            raise ExtractionTimeout(selector, timeout) from e
        except WebDriverException as e:
            raise DriverCommandError(f"wait for {selector}: {e.msg or type(e).__name__}") from e

    def evaluate_in_page(self, script: str) -> Any:
        self._ensure_driver()
        with _browser_command("run page script"):
            return self.driver.execute_script(script)

    def capture_region(self, selector: str) -> bytes:
        self._ensure_driver()
        with _browser_command(f"screenshot {selector}"):
            return self.driver.find_element(By.CSS_SELECTOR, selector).screenshot_as_png

    def capture_page(self) -> bytes:
        self._ensure_driver()
        with _browser_command("screenshot page"):
            return self.driver.get_screenshot_as_png()

    def close(self):
        """Close the browser"""
        self._close_driver()


def login(driver: AutomationDriver, credentials: Credentials, portal: Optional[PortalConfig] = None):
    """
    Sign in to the portal with the student sign-in form.

    Args:
        driver: Automation driver holding the session
        credentials: Portal username and password
        portal: Portal selectors and URLs, defaults if None

    Raises:
        LoginError: If any step of the sign-in flow fails
    """
    portal = portal or PortalConfig()
    logger.info("Signing in to %s as %s", portal.base_url, credentials.username)
    try:
        driver.navigate(portal.base_url)
        driver.fill_field(portal.username_field, credentials.username)
        driver.fill_field(portal.password_field, credentials.password)
        driver.click_element(portal.sign_in_button)
        driver.await_selector(portal.login_ready_selector, portal.login_timeout)
    except ExtractionError as e:
        raise LoginError(f"sign-in did not complete: {e}") from e
    logger.info("Signed in")
