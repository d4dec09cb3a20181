"""
Object store: private avatar storage on Supabase Storage (REST over httpx).

Objects are written to a private bucket and only ever read through signed,
expiring URLs.
"""
import time

import httpx

from safespace.config import settings
from safespace.exceptions import StorageError
from safespace.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_EXTENSION = "jpg"
CACHE_CONTROL_SECONDS = 3600


def file_extension(filename: str | None) -> str:
    """Lower-cased extension of ``filename``; jpg when there is none."""
    parts = (filename or "").split(".")
    ext = parts[-1] if len(parts) > 1 else ""
    return ext.lower() or DEFAULT_EXTENSION


def avatar_object_path(owner_id: str, filename: str | None, now_ms: int | None = None) -> str:
    """``{owner_id}/avatar-{epoch_ms}.{ext}``, a new key per upload."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{owner_id}/avatar-{now_ms}.{file_extension(filename)}"


class ObjectStore:
    """Thin client for the Supabase Storage API."""

    def __init__(
        self,
        base_url: str,
        service_key: str,
        bucket: str,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.bucket = bucket
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(30.0, connect=10.0))
        self._headers = {
            "Authorization": f"Bearer {service_key}",
            "apikey": service_key,
        }

    @property
    def storage_url(self) -> str:
        return f"{self.base_url}/storage/v1"

    async def put_private_object(
        self,
        owner_id: str,
        data: bytes,
        filename: str | None = None,
        content_type: str | None = None,
    ) -> str:
        """Upload ``data`` under the owner's prefix. Returns the object path."""
        path = avatar_object_path(owner_id, filename)
        headers = {
            **self._headers,
            "x-upsert": "true",
            "cache-control": f"max-age={CACHE_CONTROL_SECONDS}",
            "content-type": content_type or "application/octet-stream",
        }
        response = await self._request(
            "POST",
            f"{self.storage_url}/object/{self.bucket}/{path}",
            headers=headers,
            content=data,
        )
        logger.info("object_uploaded", bucket=self.bucket, path=path, size=len(data), status=response.status_code)
        return path

    async def get_signed_read_url(self, path: str, ttl: int | None = None) -> str:
        """Signed GET URL for ``path``, valid for ``ttl`` seconds."""
        if ttl is None:
            ttl = settings.avatar_url_ttl_seconds
        response = await self._request(
            "POST",
            f"{self.storage_url}/object/sign/{self.bucket}/{path}",
            headers=self._headers,
            json={"expiresIn": ttl},
        )
        signed = response.json().get("signedURL") or response.json().get("signedUrl")
        if not signed:
            raise StorageError("Storage response did not include a signed URL", response.status_code)
        if signed.startswith("http"):
            return signed
        return f"{self.storage_url}/{signed.lstrip('/')}"

    async def delete_object(self, path: str) -> None:
        await self._request(
            "DELETE",
            f"{self.storage_url}/object/{self.bucket}/{path}",
            headers=self._headers,
        )
        logger.info("object_deleted", bucket=self.bucket, path=path)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.RequestError as e:
            logger.error("storage_request_error", exc_info=e, method=method, url=url)
            raise StorageError(f"Storage connection error: {e}")

        if response.status_code >= 400:
            logger.warning("storage_request_failed", method=method, url=url, status=response.status_code)
            raise StorageError(
                f"Storage request failed with status {response.status_code}",
                response.status_code,
            )
        return response


def create_object_store() -> ObjectStore:
    return ObjectStore(
        base_url=settings.supabase_url,
        service_key=settings.supabase_service_key,
        bucket=settings.avatar_bucket,
    )
