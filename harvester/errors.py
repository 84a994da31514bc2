"""
Exception types for the progress harvester.

Fatal errors abort a run before any subject is processed.
Extraction errors are caught at the subject boundary and recorded.
Storage errors are logged and never change a subject's outcome.
"""


class HarvesterError(Exception):
    """Base class for all harvester errors."""


class FatalRunError(HarvesterError):
    """An error that aborts the whole run and leaves the checkpoint alone."""


class ConfigurationError(FatalRunError):
    """Required configuration (credentials, storage settings) is missing."""


class LoginError(FatalRunError):
    """The portal sign-in flow did not complete."""


class RosterFormatError(FatalRunError):
    """The roster file could not be parsed into subject records."""


class DeltaComputationError(FatalRunError):
    """The usage report could not be loaded or read."""


class ExtractionError(HarvesterError):
    """A per-subject failure inside the extraction sequence."""


class ExtractionTimeout(ExtractionError):
    """An expected page element never appeared within its timeout."""

    def __init__(self, selector: str, timeout: float):
        super().__init__(f"timed out after {timeout:g}s waiting for '{selector}'")
        self.selector = selector
        self.timeout = timeout


class ExtractionMissingData(ExtractionError):
    """The page loaded but the expected data was absent."""


class DriverCommandError(ExtractionError):
    """The browser rejected a command (navigation, click, script, capture)."""


class StorageError(HarvesterError):
    """An artifact could not be written or read."""


class ArtifactNotFound(StorageError):
    """No artifact exists under the requested key."""

    def __init__(self, key: str):
        super().__init__(f"artifact not found: {key}")
        self.key = key
