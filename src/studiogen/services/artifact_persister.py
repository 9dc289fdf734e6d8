"""Artifact persistence: provider URL → application storage.

Downloads a generated result, derives image dimensions with Pillow, and uploads
it under a path scoped to the owning user.
"""

import time
from io import BytesIO
from typing import Callable, Protocol

import httpx
import structlog
from PIL import Image

from studiogen.models.generation import Artifact, ArtifactNaming, MediaKind
from studiogen.services.exceptions import (
    ArtifactDecodeError,
    DownloadError,
    PathValidationError,
    StorageError,
)

logger = structlog.get_logger()


class ObjectStorage(Protocol):
    async def upload(self, bucket: str, path: str, data: bytes, content_type: str) -> str: ...


def current_time_ms() -> int:
    return int(time.time() * 1000)


def build_storage_path(naming: ArtifactNaming, timestamp_ms: int) -> str:
    """Build ``{user_id}/{project_id}/{prefix}-{timestamp_ms}.{ext}``."""
    return (
        f"{naming.user_id}/{naming.project_id}/"
        f"{naming.prefix}-{timestamp_ms}.{naming.extension}"
    )


def validate_storage_path(user_id: str, path: str) -> None:
    """Ensure a storage path stays inside the user's own prefix.

    Raises:
        PathValidationError: Path outside ``{user_id}/`` or containing traversal
            sequences. The reason goes to ``detail``; the message stays generic.
    """
    if not user_id:
        raise PathValidationError(detail="empty user id")
    if path.startswith("/") or not path.startswith(f"{user_id}/"):
        raise PathValidationError(detail="path must start with the user id")
    if ".." in path or "//" in path or "\\" in path:
        raise PathValidationError(detail="path contains invalid sequences")


def read_image_size(data: bytes) -> tuple[int, int]:
    """Return (width, height) of encoded image bytes.

    Raises:
        ArtifactDecodeError: Bytes are not a readable image
    """
    try:
        with Image.open(BytesIO(data)) as img:
            width, height = img.size
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise ArtifactDecodeError(detail=f"image decode failed: {e}") from e
    return width, height


class ArtifactPersister:
    """Moves generated media from a provider URL into application storage."""

    def __init__(
        self,
        storage: ObjectStorage,
        http_client: httpx.AsyncClient,
        image_bucket: str = "user-uploads",
        video_bucket: str = "generated-videos",
        clock: Callable[[], int] = current_time_ms,
    ):
        """Initialize persister.

        Args:
            storage: Object storage collaborator exposing ``upload``
            http_client: Async HTTP client used to download provider output
            image_bucket: Bucket for edited images
            video_bucket: Bucket for generated videos
            clock: Millisecond timestamp source for path names
        """
        self.storage = storage
        self.http_client = http_client
        self.buckets = {MediaKind.IMAGE: image_bucket, MediaKind.VIDEO: video_bucket}
        self.clock = clock

    async def persist(self, remote_url: str, naming: ArtifactNaming) -> Artifact:
        """Download ``remote_url`` and store it for ``naming.user_id``.

        Steps run in order and stop at the first failure, so nothing is uploaded
        for a rejected path or an undecodable image.

        Returns:
            Artifact describing the stored object

        Raises:
            DownloadError: Fetch failed or returned non-2xx
            PathValidationError: Computed path escapes the user's prefix
            ArtifactDecodeError: Image bytes could not be decoded
            StorageError: Upload rejected
        """
        data = await self.download(remote_url)

        path = build_storage_path(naming, self.clock())
        try:
            validate_storage_path(naming.user_id, path)
        except PathValidationError as e:
            logger.error(
                "artifact.path_rejected",
                security_event=True,
                user_id=naming.user_id,
                project_id=naming.project_id,
                path=path,
                reason=e.detail,
            )
            raise

        width = height = None
        if naming.media_kind == MediaKind.IMAGE:
            width, height = read_image_size(data)

        bucket = self.buckets[naming.media_kind]
        try:
            await self.storage.upload(bucket, path, data, naming.content_type)
        except StorageError as e:
            logger.error(
                "artifact.upload_failed",
                bucket=bucket,
                path=path,
                status_code=e.status_code,
                detail=e.detail,
            )
            raise

        logger.info(
            "artifact.uploaded",
            bucket=bucket,
            path=path,
            size_bytes=len(data),
            media_kind=naming.media_kind.value,
        )
        return Artifact(
            bucket=bucket,
            storage_path=path,
            media_kind=naming.media_kind,
            content_type=naming.content_type,
            size_bytes=len(data),
            width=width,
            height=height,
        )

    async def download(self, url: str) -> bytes:
        """Fetch the generated result.

        Raises:
            DownloadError: Network failure, non-2xx status, or empty body
        """
        try:
            response = await self.http_client.get(url, follow_redirects=True)
        except httpx.HTTPError as e:
            raise DownloadError(detail=f"download of {url} failed: {e}") from e

        if not response.is_success:
            raise DownloadError(detail=f"download of {url} returned {response.status_code}")
        if not response.content:
            raise DownloadError(detail=f"download of {url} returned an empty body")
        return response.content
