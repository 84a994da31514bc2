"""
Storage factory choosing the artifact backend from settings.
"""

import logging

from harvester.config import HarvesterSettings
from harvester.errors import ConfigurationError
from harvester.storage import ArtifactStore, LocalArtifactStore, SupabaseArtifactStore

logger = logging.getLogger(__name__)


def create_artifact_store(settings: HarvesterSettings) -> ArtifactStore:
    """
    Create the artifact store named by settings.storage_backend.

    Args:
        settings: Environment-backed settings

    Returns:
        LocalArtifactStore or SupabaseArtifactStore

    Raises:
        ConfigurationError: If the backend is unknown or Supabase settings are missing
    """
    backend = settings.storage_backend.lower()

    if backend == "supabase":
        if not settings.supabase_url or not settings.supabase_key:
            raise ConfigurationError(
                "HARVESTER_SUPABASE_URL and HARVESTER_SUPABASE_KEY must be set "
                "for the supabase storage backend"
            )
        logger.info("Using Supabase storage bucket '%s'", settings.supabase_bucket)
        return SupabaseArtifactStore(
            settings.supabase_url,
            settings.supabase_key,
            settings.supabase_bucket
        )

    if backend == "local":
        logger.info("Using local artifact directory %s", settings.artifact_path.resolve())
        return LocalArtifactStore(settings.artifact_path)

    raise ConfigurationError(f"Unknown storage backend: {settings.storage_backend!r}")
