"""ArtifactPersister tests."""

import httpx
import pytest

from studiogen.models.generation import ArtifactNaming, MediaKind
from studiogen.services.artifact_persister import (
    ArtifactPersister,
    build_storage_path,
    validate_storage_path,
)
from studiogen.services.exceptions import (
    ArtifactDecodeError,
    DownloadError,
    ErrorKind,
    PathValidationError,
    StorageError,
)

FIXED_MS = 1_700_000_000_000


class FakeStorage:
    def __init__(self, fail: bool = False):
        self.uploads = []
        self.fail = fail

    async def upload(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        self.uploads.append((bucket, path, data, content_type))
        if self.fail:
            raise StorageError(detail="bucket unavailable", status_code=503)
        return path


def http_returning(response: httpx.Response) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(lambda request: response))


def naming(user_id="user-1", project_id="proj-1", media_kind=MediaKind.IMAGE) -> ArtifactNaming:
    return ArtifactNaming(user_id=user_id, project_id=project_id, media_kind=media_kind)


def test_build_storage_path():
    assert build_storage_path(naming(), FIXED_MS) == f"user-1/proj-1/edited-{FIXED_MS}.png"
    assert (
        build_storage_path(naming(media_kind=MediaKind.VIDEO), FIXED_MS)
        == f"user-1/proj-1/video-{FIXED_MS}.mp4"
    )


@pytest.mark.parametrize(
    "path",
    [
        "user-2/proj-1/edited-1.png",
        "/user-1/proj-1/edited-1.png",
        "user-1/../user-2/edited-1.png",
        "user-1//edited-1.png",
        "user-1/proj\\edited-1.png",
        "user-10/proj-1/edited-1.png",
    ],
)
def test_validate_storage_path_rejects_escapes(path):
    with pytest.raises(PathValidationError) as exc_info:
        validate_storage_path("user-1", path)

    # The user-facing message never contains the path
    assert path not in exc_info.value.message
    assert exc_info.value.kind == ErrorKind.PATH_VALIDATION


def test_validate_storage_path_accepts_own_prefix():
    validate_storage_path("user-1", "user-1/proj-1/edited-1.png")


@pytest.mark.asyncio
async def test_persist_image_uploads_with_dimensions(png_bytes):
    storage = FakeStorage()
    persister = ArtifactPersister(
        storage, http_returning(httpx.Response(200, content=png_bytes)), clock=lambda: FIXED_MS
    )

    artifact = await persister.persist("https://x/out.png", naming())

    assert artifact.storage_path == f"user-1/proj-1/edited-{FIXED_MS}.png"
    assert artifact.bucket == "user-uploads"
    assert (artifact.width, artifact.height) == (64, 48)
    assert artifact.content_type == "image/png"
    assert artifact.size_bytes == len(png_bytes)
    assert storage.uploads == [
        ("user-uploads", artifact.storage_path, png_bytes, "image/png"),
    ]


@pytest.mark.asyncio
async def test_persist_video_skips_decoding():
    storage = FakeStorage()
    persister = ArtifactPersister(
        storage, http_returning(httpx.Response(200, content=b"\x00\x00\x00\x18ftypmp42")), clock=lambda: FIXED_MS
    )

    artifact = await persister.persist("https://x/v.mp4", naming(media_kind=MediaKind.VIDEO))

    assert artifact.bucket == "generated-videos"
    assert artifact.storage_path.endswith(".mp4")
    assert artifact.width is None
    assert len(storage.uploads) == 1


@pytest.mark.asyncio
async def test_path_escape_fails_before_upload(png_bytes):
    storage = FakeStorage()
    persister = ArtifactPersister(storage, http_returning(httpx.Response(200, content=png_bytes)))

    with pytest.raises(PathValidationError):
        await persister.persist("https://x/out.png", naming(project_id="../user-2"))

    assert storage.uploads == []


@pytest.mark.asyncio
async def test_download_failure(png_bytes):
    storage = FakeStorage()
    persister = ArtifactPersister(storage, http_returning(httpx.Response(404)))

    with pytest.raises(DownloadError) as exc_info:
        await persister.persist("https://x/missing.png", naming())

    assert exc_info.value.kind == ErrorKind.DOWNLOAD
    assert storage.uploads == []


@pytest.mark.asyncio
async def test_download_transport_failure():
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    persister = ArtifactPersister(
        FakeStorage(), httpx.AsyncClient(transport=httpx.MockTransport(handler))
    )

    with pytest.raises(DownloadError):
        await persister.persist("https://x/out.png", naming())


@pytest.mark.asyncio
async def test_undecodable_image_is_not_uploaded():
    storage = FakeStorage()
    persister = ArtifactPersister(
        storage, http_returning(httpx.Response(200, content=b"<html>not an image</html>"))
    )

    with pytest.raises(ArtifactDecodeError) as exc_info:
        await persister.persist("https://x/out.png", naming())

    assert exc_info.value.kind == ErrorKind.DOWNLOAD
    assert storage.uploads == []


@pytest.mark.asyncio
async def test_upload_failure_raises_storage_error(png_bytes):
    storage = FakeStorage(fail=True)
    persister = ArtifactPersister(storage, http_returning(httpx.Response(200, content=png_bytes)))

    with pytest.raises(StorageError) as exc_info:
        await persister.persist("https://x/out.png", naming())

    assert exc_info.value.kind == ErrorKind.STORAGE
    assert len(storage.uploads) == 1
