"""
Crawl checkpoint persistence.
Stores the "last successful crawl" date that bounds the next run's window.
"""

import logging
from datetime import date
from typing import Optional

from harvester.errors import ArtifactNotFound, StorageError
from harvester.storage import ArtifactStore
from harvester.utils import format_checkpoint_date, parse_checkpoint_date

logger = logging.getLogger(__name__)


class CheckpointStore:
    """Reads and advances the last-successful-crawl date."""

    def __init__(self, store: ArtifactStore, key: str = "state/last-crawl-date.txt"):
        """
        Initialize checkpoint store.

        Args:
            store: Artifact store holding the checkpoint file
            key: Artifact key of the checkpoint file
        """
        self.store = store
        self.key = key

    def load(self) -> Optional[date]:
        """
        Read the checkpoint.

        Returns:
            Last successful crawl date, or None if no checkpoint exists yet

        Raises:
            StorageError: If the checkpoint exists but cannot be read
        """
        try:
            raw = self.store.read(self.key)
        except ArtifactNotFound:
            logger.info("No checkpoint at %s, treating as first run", self.key)
            return None

        try:
            text = raw.decode('utf-8').strip()
            return parse_checkpoint_date(text)
        except ValueError as e:
            raise StorageError(f"checkpoint {self.key} is corrupted: {raw!r}") from e

    def advance(self, new_date: date) -> bool:
        """
        Move the checkpoint forward to new_date.

        A date earlier than the stored one is ignored so the checkpoint
        never moves backwards.

        Args:
            new_date: Date of the last fully covered day

        Returns:
            True if the checkpoint was written

        Raises:
            StorageError: If the checkpoint cannot be read or written
        """
        current = self.load()
        if current is not None and new_date < current:
            logger.warning(
                "Not moving checkpoint back from %s to %s",
                format_checkpoint_date(current), format_checkpoint_date(new_date)
            )
            return False

        self.store.write(self.key, format_checkpoint_date(new_date))
        logger.info("Checkpoint advanced to %s", format_checkpoint_date(new_date))
        return True
