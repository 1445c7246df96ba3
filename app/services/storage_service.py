"""Supabase Storage access over its REST API."""

from typing import Any, Dict, List

import httpx

from app.core.config import settings
from app.core.exceptions import StorageError
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class StorageService:
    """Upload, download, remove and sign objects in Supabase storage buckets."""

    def __init__(self):
        self.url = settings.supabase_url
        self.service_role_key = settings.supabase_service_role_key
        self.base_api_url = f"{self.url}/storage/v1"
        self.headers = {
            "Authorization": f"Bearer {self.service_role_key}",
            "apikey": self.service_role_key,
        }

    async def upload_file(
        self,
        content: bytes,
        bucket: str,
        path: str,
        content_type: str = "application/octet-stream",
        upsert: bool = False,
    ) -> Dict[str, Any]:
        """Upload raw bytes to ``bucket/path``.

        Raises:
            StorageError: If the upload fails.
        """
        headers = {**self.headers, "Content-Type": content_type}
        if upsert:
            headers["x-upsert"] = "true"

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    f"{self.base_api_url}/object/{bucket}/{path}",
                    headers=headers,
                    content=content,
                    timeout=settings.http_timeout,
                )
        except httpx.HTTPError as e:
            LOGGER.error(f"Error uploading file to Supabase: {e}", exc_info=True)
            raise StorageError(f"Storage upload error: {e}", original_error=e) from e

        if response.status_code != 200:
            LOGGER.error(
                f"Failed to upload file to Supabase: {response.text}",
                extra={"bucket": bucket, "path": path, "status_code": response.status_code},
            )
            raise StorageError(f"Upload failed: {response.text}")

        return response.json()

    async def download_file(self, bucket: str, path: str) -> bytes:
        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(
                    f"{self.base_api_url}/object/{bucket}/{path}",
                    headers=self.headers,
                    timeout=settings.http_timeout,
                )
        except httpx.HTTPError as e:
            LOGGER.error(f"Error downloading file from Supabase: {e}", exc_info=True)
            raise StorageError(f"Storage download error: {e}", original_error=e) from e

        if response.status_code != 200:
            LOGGER.error(
                "Failed to download file",
                extra={"bucket": bucket, "path": path, "status_code": response.status_code},
            )
            raise StorageError(f"Download failed: {response.text}")

        return response.content

    async def remove_files(self, bucket: str, paths: List[str]) -> None:
        try:
            async with httpx.AsyncClient() as client:
                response = await client.request(
                    "DELETE",
                    f"{self.base_api_url}/object/{bucket}",
                    headers=self.headers,
                    json={"prefixes": paths},
                    timeout=settings.http_timeout,
                )
        except httpx.HTTPError as e:
            raise StorageError(f"Storage remove error: {e}", original_error=e) from e

        if response.status_code != 200:
            raise StorageError(f"Remove failed: {response.text}")

    async def get_signed_url(self, bucket: str, path: str, expires_in: int = 3600) -> str:
        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    f"{self.base_api_url}/object/sign/{bucket}/{path}",
                    headers=self.headers,
                    json={"expiresIn": expires_in},
                    timeout=settings.http_timeout,
                )
        except httpx.HTTPError as e:
            raise StorageError(f"Signed URL error: {e}", original_error=e) from e

        if response.status_code != 200:
            LOGGER.error(
                f"Failed to generate signed URL: {response.text}",
                extra={"bucket": bucket, "path": path, "status_code": response.status_code},
            )
            raise StorageError(f"Signed URL generation failed: {response.text}")

        signed_path = response.json().get("signedURL")
        if not signed_path:
            raise StorageError("Supabase response did not contain signedURL")

        # Supabase answers with a path relative to /storage/v1
        if signed_path.startswith("/"):
            return f"{self.base_api_url}{signed_path}"
        return signed_path

    def get_public_url(self, bucket: str, path: str) -> str:
        return f"{self.base_api_url}/object/public/{bucket}/{path}"
