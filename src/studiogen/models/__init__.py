"""SQLModel database entities and generation domain values.

Table models are imported here to ensure they're registered with SQLModel metadata.
"""

from studiogen.models.edited_image import EditedImage
from studiogen.models.generated_video import GeneratedVideo, VideoStatus
from studiogen.models.generation import (
    Artifact,
    ArtifactNaming,
    CameraMovement,
    ClassifiedError,
    GenerationKind,
    GenerationRequest,
    ImageEditRequest,
    ImageToVideoRequest,
    JobState,
    JobStatus,
    Lineage,
    MediaKind,
    RemoteJob,
    SourceRef,
    parse_generation_request,
)
from studiogen.models.run import (
    GenerationOutcome,
    GenerationRecord,
    GenerationRun,
    InvalidStateTransition,
    RunError,
    RunState,
)

__all__ = [
    "EditedImage",
    "GeneratedVideo",
    "VideoStatus",
    "Artifact",
    "ArtifactNaming",
    "CameraMovement",
    "ClassifiedError",
    "GenerationKind",
    "GenerationRequest",
    "ImageEditRequest",
    "ImageToVideoRequest",
    "JobState",
    "JobStatus",
    "Lineage",
    "MediaKind",
    "RemoteJob",
    "SourceRef",
    "parse_generation_request",
    "GenerationOutcome",
    "GenerationRecord",
    "GenerationRun",
    "InvalidStateTransition",
    "RunError",
    "RunState",
]
