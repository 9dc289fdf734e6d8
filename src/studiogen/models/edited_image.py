"""EditedImage entity - an AI-edited product image."""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


class EditedImage(SQLModel, table=True):
    """EditedImage is the persisted result of a successful image-edit run."""

    __tablename__ = "edited_images"  # type: ignore[assignment]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    project_id: str = Field(index=True, max_length=255)
    user_id: str = Field(index=True, max_length=255)
    prompt: str
    ai_model: str = Field(max_length=255)
    storage_path: str
    width: int = Field(ge=1)
    height: int = Field(ge=1)
    context: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    version: int = Field(default=1)
    parent_id: Optional[UUID] = Field(default=None, index=True)
    lineage_id: Optional[UUID] = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
