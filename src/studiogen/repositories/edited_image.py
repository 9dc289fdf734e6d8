"""EditedImage repository.

Provides data access methods for EditedImage entities.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studiogen.models.edited_image import EditedImage


class EditedImageRepository:
    """Repository for EditedImage entities.

    All list queries are scoped by ``user_id`` as well as the grouping key, so a
    user never sees another user's edits.
    """

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def create(self, image: EditedImage) -> EditedImage:
        """Persist new edited image to database.

        Args:
            image: EditedImage entity to persist

        Returns:
            Persisted image with generated ID
        """
        self.session.add(image)
        await self.session.flush()
        return image

    async def get_by_id(self, image_id: UUID) -> EditedImage | None:
        result = await self.session.execute(
            select(EditedImage).where(EditedImage.id == image_id)  # type: ignore[arg-type]
        )
        return result.scalar_one_or_none()

    async def list_by_project(self, project_id: str, user_id: str) -> list[EditedImage]:
        """Retrieve a user's edited images for a project.

        Args:
            project_id: Owning project
            user_id: Owning user

        Returns:
            List of images ordered by creation time (newest first)
        """
        result = await self.session.execute(
            select(EditedImage)
            .where(EditedImage.project_id == project_id)  # type: ignore[arg-type]
            .where(EditedImage.user_id == user_id)  # type: ignore[arg-type]
            .order_by(EditedImage.created_at.desc())  # type: ignore[attr-defined]
        )
        return list(result.scalars().all())

    async def list_by_lineage(self, lineage_id: UUID, user_id: str) -> list[EditedImage]:
        """Retrieve every edit in a lineage, newest first."""
        result = await self.session.execute(
            select(EditedImage)
            .where(EditedImage.lineage_id == lineage_id)  # type: ignore[arg-type]
            .where(EditedImage.user_id == user_id)  # type: ignore[arg-type]
            .order_by(EditedImage.created_at.desc())  # type: ignore[attr-defined]
        )
        return list(result.scalars().all())
