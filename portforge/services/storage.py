"""Upload portfolio archives to Supabase Storage."""
from pathlib import Path
from urllib.parse import quote

import requests

from portforge.core.logger import get_logger
from portforge.services.http import ProviderError, error_message

logger = get_logger(__name__)


class StorageUploadError(ProviderError):
    """Raised when the object store rejects an upload or delete."""

    provider = "Supabase Storage"


class SupabaseStorage:
    """Minimal client for the Supabase Storage REST API."""

    def __init__(
        self,
        url: str,
        key: str,
        bucket: str = "portfolios",
        prefix: str = "generated",
        timeout: int = 30,
        mock: bool = False,
    ):
        self.url = (url or "").rstrip("/")
        self.key = key
        self.bucket = bucket
        self.prefix = prefix.strip("/")
        self.timeout = timeout
        self.mock = mock

    def object_path(self, file_name: str) -> str:
        """Storage path of file_name inside the bucket."""
        return f"{self.prefix}/{file_name}" if self.prefix else file_name

    def _object_url(self, file_name: str) -> str:
        path = quote(self.object_path(file_name))
        return f"{self.url}/storage/v1/object/{self.bucket}/{path}"

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.key}",
            "apikey": self.key,
        }

    def upload(self, archive_path: Path, file_name: str) -> str:
        """Upload an archive, replacing any object already at that key.

        Args:
            archive_path: Local zip file
            file_name: Object name below the configured prefix

        Returns:
            Storage path of the uploaded object

        Raises:
            OSError: The archive cannot be read
            StorageUploadError: The provider rejected the upload
        """
        data = Path(archive_path).read_bytes()
        storage_path = self.object_path(file_name)
        logger.info(f"Uploading {file_name} ({len(data)} bytes) to bucket '{self.bucket}'")

        if self.mock:
            logger.info(f"MOCK: Would upload {archive_path} to {self.bucket}/{storage_path}")
            return storage_path

        headers = self._headers()
        headers.update({
            "Content-Type": "application/zip",
            "x-upsert": "true",
        })

        response = requests.post(
            self._object_url(file_name),
            headers=headers,
            data=data,
            timeout=self.timeout,
        )
        if not response.ok:
            raise StorageUploadError(
                f"Failed to upload: {error_message(response)}",
                status_code=response.status_code,
            )

        logger.info(f"Uploaded to storage at: {storage_path}")
        return storage_path

    def public_url(self, file_name: str) -> str:
        """Public download URL for an object in a public bucket."""
        path = quote(self.object_path(file_name))
        return f"{self.url}/storage/v1/object/public/{self.bucket}/{path}"

    def delete(self, file_name: str) -> None:
        """Remove an uploaded object."""
        if self.mock:
            logger.info(f"MOCK: Would delete {self.bucket}/{self.object_path(file_name)}")
            return

        response = requests.delete(
            f"{self.url}/storage/v1/object/{self.bucket}",
            headers=self._headers(),
            json={"prefixes": [self.object_path(file_name)]},
            timeout=self.timeout,
        )
        if not response.ok:
            raise StorageUploadError(
                f"Failed to delete: {error_message(response)}",
                status_code=response.status_code,
            )
        logger.info(f"Deleted {self.bucket}/{self.object_path(file_name)}")
