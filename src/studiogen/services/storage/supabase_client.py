"""Supabase Storage client for generated artifacts."""

from urllib.parse import quote

import httpx
import structlog

from studiogen.services.exceptions import StorageError

logger = structlog.get_logger()


class SupabaseStorageClient:
    """Object storage client using the Supabase Storage REST API."""

    def __init__(self, base_url: str, service_key: str, http_client: httpx.AsyncClient):
        """Initialize storage client.

        Args:
            base_url: Supabase project URL (e.g., "https://abc.supabase.co")
            service_key: Service role key (from SUPABASE_SERVICE_KEY env var)
            http_client: Shared async HTTP client
        """
        self.base_url = base_url.rstrip("/")
        self.storage_url = f"{self.base_url}/storage/v1"
        self.http_client = http_client
        self.headers = {
            "Authorization": f"Bearer {service_key}",
            "apikey": service_key,
        }

    def _object_url(self, *parts: str) -> str:
        return "/".join([self.storage_url, "object", *(quote(p, safe="/") for p in parts)])

    async def upload(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        """Upload bytes to a bucket.

        Args:
            bucket: Target bucket (e.g., "user-uploads")
            path: Object path inside the bucket
            data: Object content
            content_type: MIME type stored with the object

        Returns:
            The stored object path

        Raises:
            StorageError: Network failure or non-2xx response
        """
        headers = {**self.headers, "Content-Type": content_type, "x-upsert": "false"}
        response = await self._send("POST", self._object_url(bucket, path), headers, content=data)
        self._raise_for_status(response, "upload", bucket, path)
        return path

    async def get_signed_url(self, bucket: str, path: str, expires_in: int = 3600) -> str:
        """Create a time-limited URL for a private object.

        Raises:
            StorageError: Network failure, non-2xx response, or missing URL in response
        """
        response = await self._send(
            "POST",
            self._object_url("sign", bucket, path),
            self.headers,
            json={"expiresIn": expires_in},
        )
        self._raise_for_status(response, "sign", bucket, path)
        try:
            signed = response.json().get("signedURL")
        except (ValueError, AttributeError) as e:
            raise StorageError(detail=f"unreadable sign response for {bucket}/{path}") from e
        if not signed:
            raise StorageError(detail=f"sign response for {bucket}/{path} had no signedURL")
        if signed.startswith("http"):
            return signed
        return f"{self.storage_url}/{signed.lstrip('/')}"

    async def delete(self, bucket: str, paths: list[str]) -> None:
        """Delete objects from a bucket.

        Raises:
            StorageError: Network failure or non-2xx response
        """
        response = await self._send(
            "DELETE", self._object_url(bucket), self.headers, json={"prefixes": paths}
        )
        self._raise_for_status(response, "delete", bucket, ",".join(paths))
        logger.info("storage.deleted", bucket=bucket, count=len(paths))

    async def _send(self, method: str, url: str, headers: dict[str, str], **kwargs) -> httpx.Response:
        try:
            return await self.http_client.request(method, url, headers=headers, **kwargs)
        except httpx.TimeoutException as e:
            raise StorageError(detail=f"storage request timed out: {e}") from e
        except httpx.TransportError as e:
            raise StorageError(detail=f"storage request failed: {e}") from e

    def _raise_for_status(
        self, response: httpx.Response, operation: str, bucket: str, path: str
    ) -> None:
        if response.is_success:
            return
        message = _user_message(response)
        raise StorageError(
            message,
            detail=f"{operation} {bucket}/{path} failed ({response.status_code}): {response.text}",
            status_code=response.status_code,
        )


def _user_message(response: httpx.Response) -> str | None:
    """User-facing message for a failed storage call, or None for the default."""
    status = response.status_code
    if status == 403:
        return "You do not have permission to save files."
    if status == 413:
        return "The generated file is too large to save."
    if status == 429:
        return "Too many uploads. Please wait a moment and try again."
    if status >= 500:
        return "Server error. Please try again later."
    body = response.text.lower()
    if "quota" in body or "limit" in body:
        return "Storage limit reached. Please contact support."
    return None
