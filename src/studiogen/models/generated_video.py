"""GeneratedVideo entity - a video synthesized from a product image."""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel


class VideoStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class GeneratedVideo(SQLModel, table=True):
    """GeneratedVideo is the persisted result of a successful image-to-video run.

    Rows are only written once the video is in storage, so ``status`` is
    ``completed`` for everything this package creates.
    """

    __tablename__ = "generated_videos"  # type: ignore[assignment]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    project_id: str = Field(index=True, max_length=255)
    user_id: str = Field(index=True, max_length=255)
    name: str = Field(max_length=255)
    prompt: str = Field(default="")
    ai_model: str = Field(max_length=255)
    aspect_ratio: str = Field(max_length=16)
    camera_movement: Optional[str] = Field(default=None, max_length=32)
    storage_path: str
    status: VideoStatus = Field(default=VideoStatus.COMPLETED)
    provider_task_id: Optional[str] = Field(default=None, max_length=255)
    version: int = Field(default=1)
    parent_id: Optional[UUID] = Field(default=None, index=True)
    lineage_id: Optional[UUID] = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = Field(default=None)
