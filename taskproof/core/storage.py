import logging
import re
from pathlib import Path
from typing import Optional, Protocol

from supabase import Client, create_client

from taskproof.core.config import Settings
from taskproof.core.errors import StorageError

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = "jpg"
_EXTENSION_RE = re.compile(r"^[A-Za-z0-9]{1,16}$")


class ObjectStore(Protocol):
    def upload(self, path: str, content: bytes, content_type: Optional[str]) -> None:
        """Write *content* at *path*; never overwrites an existing object."""


def file_extension(filename: Optional[str]) -> str:
    if not filename:
        return DEFAULT_EXTENSION
    suffix = Path(filename).suffix.lstrip(".").lower()
    if not _EXTENSION_RE.match(suffix):
        return DEFAULT_EXTENSION
    return suffix


def build_proof_path(user_id: str, task_id: str, filename: Optional[str], epoch_ms: int) -> str:
    """``{user_id}/{task_id}_{epoch_ms}.{ext}``"""
    return f"{user_id}/{task_id}_{epoch_ms}.{file_extension(filename)}"


def get_storage_client(settings: Settings) -> Client:
    key = settings.supabase_service_role_key or settings.supabase_key
    if not settings.supabase_url or not key:
        raise StorageError("Storage credentials are not configured")
    return create_client(settings.supabase_url, key)


class SupabaseObjectStore:
    """Write-once proof storage in a Supabase bucket."""

    def __init__(self, settings: Settings, *, bucket: Optional[str] = None, client: Optional[Client] = None) -> None:
        self._settings = settings
        self._bucket = bucket or settings.proof_bucket
        self._client = client

    @property
    def bucket(self) -> str:
        return self._bucket

    def _get_client(self) -> Client:
        if self._client is None:
            self._client = get_storage_client(self._settings)
        return self._client

    def upload(self, path: str, content: bytes, content_type: Optional[str]) -> None:
        options = {"upsert": "false"}
        if content_type:
            options["content-type"] = content_type
        try:
            result = self._get_client().storage.from_(self._bucket).upload(path, content, options)
        except StorageError:
            raise
        except Exception as exc:
            logger.warning("Proof upload to %s/%s failed", self._bucket, path, exc_info=True)
            raise StorageError(f"Upload failed: {exc}") from exc

        if isinstance(result, dict):
            error = result.get("error")
        else:
            error = getattr(result, "error", None)
        if error:
            logger.warning("Proof upload to %s/%s rejected: %s", self._bucket, path, error)
            raise StorageError(f"Upload failed: {error}")
