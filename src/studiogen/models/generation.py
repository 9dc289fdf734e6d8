"""Domain values for generation runs: requests, remote jobs, statuses, artifacts."""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator

from studiogen.services.exceptions import ErrorKind, InvalidRequestError


class GenerationKind(str, Enum):
    """What the provider is asked to produce."""

    IMAGE_EDIT = "image-edit"
    IMAGE_TO_VIDEO = "image-to-video"


class MediaKind(str, Enum):
    IMAGE = "image"
    VIDEO = "video"


class CameraMovement(str, Enum):
    """Camera movement presets offered for image-to-video."""

    STATIC = "static"
    ZOOM_IN = "zoom-in"
    ZOOM_OUT = "zoom-out"
    PAN_LEFT = "pan-left"
    PAN_RIGHT = "pan-right"
    ROTATE_AROUND = "rotate-around"
    DYNAMIC = "dynamic"


class SourceRef(BaseModel):
    """Reference to the artifact a generation starts from.

    Either a URL the provider can fetch directly, or a storage path that must be
    signed before submission. ``lineage_id`` and ``parent_id`` describe the
    source's place in an edit chain, when it has one.
    """

    model_config = ConfigDict(frozen=True)

    url: Optional[str] = None
    storage_path: Optional[str] = None
    source_type: Literal["media_asset", "edited_image"] = "media_asset"
    source_id: Optional[UUID] = None
    lineage_id: Optional[UUID] = None
    parent_id: Optional[UUID] = None

    @model_validator(mode="after")
    def require_location(self) -> "SourceRef":
        if not self.url and not self.storage_path:
            raise ValueError("source requires either url or storage_path")
        return self


class _RequestBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str = Field(min_length=1)
    project_id: str = Field(min_length=1)
    source: SourceRef
    model: Optional[str] = None
    aspect_ratio: Optional[str] = None


class ImageEditRequest(_RequestBase):
    """Transform a product image; ``prompt`` is the product name."""

    kind: Literal["image-edit"] = "image-edit"
    prompt: str = Field(min_length=1, max_length=1000)


class ImageToVideoRequest(_RequestBase):
    """Synthesize a short video from a still image."""

    kind: Literal["image-to-video"] = "image-to-video"
    prompt: str = Field(default="", max_length=1000)
    camera_movement: CameraMovement = CameraMovement.DYNAMIC
    name: Optional[str] = None
    aspect_ratio: Optional[str] = "16:9"

    @property
    def display_name(self) -> str:
        return self.name or self.prompt.strip() or "Untitled Video"


GenerationRequest = Annotated[
    Union[ImageEditRequest, ImageToVideoRequest], Field(discriminator="kind")
]

_request_adapter: TypeAdapter[Any] = TypeAdapter(GenerationRequest)


def parse_generation_request(data: dict[str, Any]) -> Union[ImageEditRequest, ImageToVideoRequest]:
    """Build a typed request from UI input.

    Raises:
        InvalidRequestError: With one ``field: reason`` entry per problem
    """
    try:
        return _request_adapter.validate_python(data)
    except ValidationError as e:
        problems = ", ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise InvalidRequestError(f"Invalid request: {problems}", detail=str(e)) from e


class RemoteJob(BaseModel):
    """One provider-side unit of work, identified by an opaque id."""

    model_config = ConfigDict(frozen=True)

    provider_job_id: str
    kind: GenerationKind
    provider: str
    submitted_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class JobState(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"


TERMINAL_JOB_STATES = frozenset({JobState.SUCCEEDED, JobState.FAILED, JobState.CANCELED})


class JobStatus(BaseModel):
    """Result of one status poll. Never persisted."""

    model_config = ConfigDict(frozen=True)

    state: JobState
    progress: Optional[float] = None
    output_url: Optional[str] = None
    reason: Optional[str] = None
    raw_status: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_JOB_STATES


class ClassifiedError(BaseModel):
    """Provider failure reduced to one of a closed set of kinds."""

    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    message: str
    status_code: Optional[int] = None


class ArtifactNaming(BaseModel):
    """Inputs for the deterministic storage path of a generated artifact."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    project_id: str
    media_kind: MediaKind

    @property
    def prefix(self) -> str:
        return "edited" if self.media_kind == MediaKind.IMAGE else "video"

    @property
    def extension(self) -> str:
        return "png" if self.media_kind == MediaKind.IMAGE else "mp4"

    @property
    def content_type(self) -> str:
        return "image/png" if self.media_kind == MediaKind.IMAGE else "video/mp4"


class Artifact(BaseModel):
    """Generated media stored in the application's own bucket."""

    model_config = ConfigDict(frozen=True)

    bucket: str
    storage_path: str
    media_kind: MediaKind
    content_type: str
    size_bytes: int
    width: Optional[int] = None
    height: Optional[int] = None


class Lineage(BaseModel):
    """Where a new record sits in its derivation chain."""

    model_config = ConfigDict(frozen=True)

    lineage_id: UUID
    parent_id: Optional[UUID] = None
    is_new: bool = False
