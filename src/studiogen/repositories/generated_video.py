"""GeneratedVideo repository.

Provides data access methods for GeneratedVideo entities.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studiogen.models.generated_video import GeneratedVideo


class GeneratedVideoRepository:
    """Repository for GeneratedVideo entities."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def create(self, video: GeneratedVideo) -> GeneratedVideo:
        """Persist new generated video to database.

        Args:
            video: GeneratedVideo entity to persist

        Returns:
            Persisted video with generated ID
        """
        self.session.add(video)
        await self.session.flush()
        return video

    async def get_by_id(self, video_id: UUID) -> GeneratedVideo | None:
        result = await self.session.execute(
            select(GeneratedVideo).where(GeneratedVideo.id == video_id)  # type: ignore[arg-type]
        )
        return result.scalar_one_or_none()

    async def get_by_provider_task(self, provider_task_id: str) -> GeneratedVideo | None:
        """Retrieve the video produced by a provider task, if it was saved."""
        result = await self.session.execute(
            select(GeneratedVideo).where(
                GeneratedVideo.provider_task_id == provider_task_id  # type: ignore[arg-type]
            )
        )
        return result.scalar_one_or_none()

    async def list_by_project(self, project_id: str, user_id: str) -> list[GeneratedVideo]:
        """Retrieve a user's videos for a project.

        Args:
            project_id: Owning project
            user_id: Owning user

        Returns:
            List of videos ordered by creation time (newest first)
        """
        result = await self.session.execute(
            select(GeneratedVideo)
            .where(GeneratedVideo.project_id == project_id)  # type: ignore[arg-type]
            .where(GeneratedVideo.user_id == user_id)  # type: ignore[arg-type]
            .order_by(GeneratedVideo.created_at.desc())  # type: ignore[attr-defined]
        )
        return list(result.scalars().all())

    async def list_by_lineage(self, lineage_id: UUID, user_id: str) -> list[GeneratedVideo]:
        result = await self.session.execute(
            select(GeneratedVideo)
            .where(GeneratedVideo.lineage_id == lineage_id)  # type: ignore[arg-type]
            .where(GeneratedVideo.user_id == user_id)  # type: ignore[arg-type]
            .order_by(GeneratedVideo.created_at.desc())  # type: ignore[attr-defined]
        )
        return list(result.scalars().all())
