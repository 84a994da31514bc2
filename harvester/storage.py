"""
Artifact storage backends.

Artifacts (screenshots, avatar SVGs, CSV exports, the checkpoint file)
are addressed by slash-separated keys such as
``crawled-avatars/5-Lovelace-Ada-avatar.svg``.
"""

import logging
import os
from pathlib import Path
from typing import Protocol, Union
from urllib.parse import quote

import requests

from harvester.errors import ArtifactNotFound, StorageError

logger = logging.getLogger(__name__)

ArtifactData = Union[bytes, str]

CONTENT_TYPES = {
    '.png': 'image/png',
    '.svg': 'image/svg+xml',
    '.csv': 'text/csv',
    '.txt': 'text/plain',
}


class ArtifactStore(Protocol):
    """Key-addressed blob storage used by the crawler."""

    def write(self, key: str, data: ArtifactData) -> str:
        """Store data under key and return a reference to it."""
        ...

    def read(self, key: str) -> bytes:
        """Return the bytes stored under key."""
        ...


def _as_bytes(data: ArtifactData) -> bytes:
    if isinstance(data, str):
        return data.encode('utf-8')
    return data


def content_type_for(key: str) -> str:
    """Guess a content type from the key's extension."""
    return CONTENT_TYPES.get(Path(key).suffix.lower(), 'application/octet-stream')


class LocalArtifactStore:
    """Stores artifacts as files below a base directory."""

    def __init__(self, base_path: Union[str, Path] = "artifacts"):
        """
        Initialize storage with base path.

        Args:
            base_path: Directory that holds every artifact
        """
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _path_for(self, key: str) -> Path:
        parts = [p for p in key.split('/') if p]
        if not parts or any(p in ('.', '..') for p in parts):
            raise StorageError(f"invalid artifact key: {key!r}")
        return self.base_path.joinpath(*parts)

    def write(self, key: str, data: ArtifactData) -> str:
        """
        Atomically write an artifact to disk.

        Args:
            key: Artifact key
            data: Bytes, or text stored as UTF-8

        Returns:
            Path of the written file as a string

        Raises:
            StorageError: If the file cannot be written
        """
        path = self._path_for(key)
        temp_file = path.with_name(path.name + '.tmp')
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_file, 'wb') as f:
                f.write(_as_bytes(data))
                f.flush()
                os.fsync(f.fileno())
            temp_file.replace(path)
        except OSError as e:
            if temp_file.exists():
                try:
                    temp_file.unlink()
                except OSError:
                    logger.warning("Could not remove temp file %s", temp_file)
            raise StorageError(f"failed to write {key}: {e}") from e
        return str(path)

    def read(self, key: str) -> bytes:
        """
        Read an artifact from disk.

        Raises:
            ArtifactNotFound: If no file exists for key
            StorageError: If the file cannot be read
        """
        path = self._path_for(key)
        if not path.exists():
            raise ArtifactNotFound(key)
        try:
            return path.read_bytes()
        except OSError as e:
            raise StorageError(f"failed to read {key}: {e}") from e


class SupabaseArtifactStore:
    """
    Supabase Storage-backed artifact store.
    Uses the Storage REST API directly over HTTPS.
    """

    def __init__(self, url: str, key: str, bucket: str, timeout: float = 30.0):
        """
        Initialize Supabase artifact storage.

        Args:
            url: Supabase project URL (e.g., https://xxx.supabase.co)
            key: Supabase API key (service role key for private buckets)
            bucket: Storage bucket name
            timeout: Per-request timeout in seconds
        """
        self.url = (url or '').rstrip('/')
        self.key = key or ''

        if not self.url or not self.key:
            raise ValueError("Supabase URL and key must be set")

        self.bucket = bucket
        self.timeout = timeout
        self.headers = {
            'apikey': self.key,
            'Authorization': f'Bearer {self.key}',
        }
        self.base_url = f"{self.url}/storage/v1/object"

    def _object_url(self, key: str) -> str:
        return f"{self.base_url}/{quote(self.bucket)}/{quote(key.lstrip('/'))}"

    def write(self, key: str, data: ArtifactData) -> str:
        """
        Upload an artifact, overwriting any existing object.

        Returns:
            ``<bucket>/<key>`` reference

        Raises:
            StorageError: On network failure or non-2xx response
        """
        headers = {
            **self.headers,
            'Content-Type': content_type_for(key),
            'x-upsert': 'true',
        }
        try:
            response = requests.post(
                self._object_url(key),
                headers=headers,
                data=_as_bytes(data),
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise StorageError(f"failed to upload {key}: {e}") from e

        if response.status_code not in (200, 201):
            raise StorageError(
                f"failed to upload {key}: HTTP {response.status_code} {response.text[:200]}"
            )
        return f"{self.bucket}/{key}"

    def read(self, key: str) -> bytes:
        """
        Download an artifact.

        Raises:
            ArtifactNotFound: If the object does not exist
            StorageError: On network failure or other non-2xx response
        """
        try:
            response = requests.get(
                self._object_url(key),
                headers=self.headers,
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise StorageError(f"failed to download {key}: {e}") from e

        # Supabase reports missing objects as 400 with a not_found body on some versions
        if response.status_code == 404 or (
            response.status_code == 400 and 'not_found' in response.text.lower()
        ):
            raise ArtifactNotFound(key)
        if response.status_code != 200:
            raise StorageError(
                f"failed to download {key}: HTTP {response.status_code} {response.text[:200]}"
            )
        return response.content
