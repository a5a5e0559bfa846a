"""Source PDF retrieval from local uploads or Supabase storage."""

from pathlib import Path
from typing import Optional

import httpx

from ideagraph.core.config import settings
from ideagraph.core.exceptions import SourceFileError
from ideagraph.utils.logging import get_logger

LOGGER = get_logger(__name__)


class StorageService:
    """Fetches the bytes behind a document's ``source_handle``.

    With the ``local`` backend the handle is a path relative to the upload
    root; with ``supabase`` it is an object path inside the configured bucket.
    """

    def __init__(
        self,
        backend: Optional[str] = None,
        upload_root: Optional[str] = None,
    ):
        self.backend = backend or settings.storage.backend
        self.upload_root = Path(upload_root or settings.storage.upload_root)
        self.url = settings.storage.supabase_url
        self.service_role_key = settings.storage.supabase_service_role_key
        self.bucket = settings.storage.supabase_bucket
        self.base_api_url = f"{self.url}/storage/v1"
        self.headers = {
            "Authorization": f"Bearer {self.service_role_key}",
            "apikey": self.service_role_key,
        }

    async def fetch(self, source_handle: str) -> bytes:
        """Return the file content for a handle.

        Raises:
            SourceFileError: If the file is missing or cannot be downloaded.
        """
        if not source_handle:
            raise SourceFileError("Document has no source file")
        if self.backend == "supabase":
            return await self._download(source_handle)
        return self._read_local(source_handle)

    def _read_local(self, source_handle: str) -> bytes:
        root = self.upload_root.resolve()
        path = (root / source_handle).resolve()
        if root not in path.parents:
            raise SourceFileError(f"Invalid source path: {source_handle}")
        try:
            return path.read_bytes()
        except OSError as e:
            LOGGER.error(
                f"Missing local file for {source_handle}",
                extra={"path": str(path), "error": str(e)}
            )
            raise SourceFileError(f"Missing local file for {source_handle}", original_error=e)

    async def _download(self, source_handle: str) -> bytes:
        download_url = f"{self.base_api_url}/object/{self.bucket}/{source_handle}"
        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(
                    download_url,
                    headers=self.headers,
                    timeout=settings.http_timeout,
                )
        except httpx.HTTPError as e:
            LOGGER.error(f"Error downloading file from Supabase: {str(e)}", exc_info=True)
            raise SourceFileError(f"Storage download error: {str(e)}", original_error=e)

        if response.status_code != 200:
            LOGGER.error(
                f"Failed to download file from Supabase: {response.text}",
                extra={"bucket": self.bucket, "path": source_handle, "status_code": response.status_code}
            )
            raise SourceFileError(f"Could not fetch {source_handle} (HTTP {response.status_code})")

        return response.content
