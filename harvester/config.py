"""
Configuration for the progress harvester.

Dataclasses hold the crawl tuning knobs and portal selectors.
HarvesterSettings reads deployment settings and credentials from the
environment (or a .env file).
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from harvester.errors import ConfigurationError


@dataclass
class RateLimitConfig:
    """Configuration for the per-subject throttle."""
    min_interval: float = 10.0
    jitter_percent: float = 0.0


@dataclass
class PortalConfig:
    """URLs, selectors and wait budgets for the Imagine Math portal."""
    base_url: str = "https://math.imaginelearning.com/"
    report_url_template: str = (
        "https://math.imaginelearning.com/reports/usage?start={start}&end={end}"
    )

    # Sign-in form
    username_field: str = "student_username"
    password_field: str = "student_password"
    sign_in_button: str = "#btn_student_sign_in"
    login_ready_selector: str = "#student-dashboard"
    login_timeout: float = 30.0

    # Usage report
    report_row_selector: str = "table.usage-report tbody tr"
    report_link_selector: str = "a[href]"
    report_count_selector: str = "td.certificates-earned"
    report_timeout: float = 60.0

    # Extraction sequence
    certificate_link_selector: str = ".lessonActivity--certificate > a"
    certificate_list_timeout: float = 20.0
    name_selector: str = ".name"
    name_timeout: float = 10.0
    certificate_region_selector: str = ".certificate"
    avatar_image_selector: str = "div.avatar > img"
    avatar_timeout: float = 10.0
    avatar_svg_selector: str = "svg"
    avatar_svg_timeout: float = 10.0

    # Browser window
    window_width: int = 1280
    window_height: int = 800


@dataclass
class HarvesterConfig:
    """Main configuration for a crawl run."""
    roster_path: str = "student-profile-data/student-profile-links.json"

    # Browser settings
    headless: bool = True

    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    portal: PortalConfig = field(default_factory=PortalConfig)

    # Artifact keys
    certificate_prefix: str = "crawled-certificates"
    avatar_prefix: str = "crawled-avatars"
    error_screenshot_prefix: str = "error-screenshots"
    export_prefix: str = "crawl-logs"
    checkpoint_key: str = "state/last-crawl-date.txt"

    # Rewrite the export after every N subjects (0 = only at the end)
    flush_every: int = 1

    # Lower bound of the first run's window when no checkpoint exists
    initial_lookback_days: int = 365


class HarvesterSettings(BaseSettings):
    """Deployment settings read from HARVESTER_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="HARVESTER_",
        extra="ignore",
    )

    username: str = ""
    password: str = ""

    environment: str = "development"
    log_dir: str = "logs"
    headless: bool = True

    # Artifact storage
    storage_backend: str = "local"
    artifact_dir: str = "artifacts"
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_bucket: str = "harvester"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def artifact_path(self) -> Path:
        return Path(self.artifact_dir)


def load_settings() -> HarvesterSettings:
    """
    Read HarvesterSettings from the environment.

    Raises:
        ConfigurationError: If a variable has a value of the wrong type
    """
    try:
        return HarvesterSettings()
    except ValidationError as e:
        raise ConfigurationError(f"invalid environment settings: {e}") from e


@dataclass(frozen=True)
class Credentials:
    """Portal sign-in credentials."""
    username: str
    password: str

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, password='***')"


def resolve_credentials(
    settings: HarvesterSettings,
    username: Optional[str] = None,
    password: Optional[str] = None
) -> Credentials:
    """
    Pick credentials, letting the environment win over positional values.

    Args:
        settings: Environment-backed settings
        username: Username given on the command line, if any
        password: Password given on the command line, if any

    Returns:
        Credentials with both fields non-empty

    Raises:
        ConfigurationError: If either value is missing from both sources
    """
    resolved_user = settings.username or (username or "")
    resolved_password = settings.password or (password or "")
    if not resolved_user or not resolved_password:
        raise ConfigurationError(
            "Portal username and password are required: pass them as arguments "
            "or set HARVESTER_USERNAME and HARVESTER_PASSWORD"
        )
    return Credentials(username=resolved_user, password=resolved_password)
