"""Unit of Work pattern tests.

Tests focus on transaction management:
- Successful commits persist changes
- Exceptions trigger rollback
- Multiple repository operations are atomic
"""

import pytest

from studiogen.models.edited_image import EditedImage
from studiogen.models.generated_video import GeneratedVideo


def make_image(**overrides) -> EditedImage:
    data = dict(
        project_id="proj-1",
        user_id="user-1",
        prompt="red sneakers",
        ai_model="black-forest-labs/flux-kontext-pro",
        storage_path="user-1/proj-1/edited-1.png",
        width=64,
        height=48,
    )
    data.update(overrides)
    return EditedImage(**data)


@pytest.mark.asyncio
async def test_uow_commits_on_successful_exit(uow_factory):
    """Changes made within the context persist after the context exits."""
    async with await uow_factory() as uow:
        image = await uow.edited_images.create(make_image())
        image_id = image.id

    async with await uow_factory() as uow:
        found = await uow.edited_images.get_by_id(image_id)
        assert found is not None
        assert found.prompt == "red sneakers"


@pytest.mark.asyncio
async def test_uow_rollback_on_exception(uow_factory):
    """An exception inside the context rolls back and propagates."""
    with pytest.raises(ValueError, match="Simulated error"):
        async with await uow_factory() as uow:
            image = await uow.edited_images.create(make_image())
            image_id = image.id
            raise ValueError("Simulated error")

    async with await uow_factory() as uow:
        assert await uow.edited_images.get_by_id(image_id) is None, (
            "Image should not exist after rollback"
        )


@pytest.mark.asyncio
async def test_uow_atomic_multi_repository_operation(uow_factory):
    """Writes through both repositories commit together."""
    async with await uow_factory() as uow:
        image = await uow.edited_images.create(make_image())
        video = await uow.generated_videos.create(
            GeneratedVideo(
                project_id="proj-1",
                user_id="user-1",
                name="Launch teaser",
                ai_model="veo3.1_fast",
                aspect_ratio="16:9",
                storage_path="user-1/proj-1/video-1.mp4",
                parent_id=image.id,
            )
        )
        image_id, video_id = image.id, video.id

    async with await uow_factory() as uow:
        found_image = await uow.edited_images.get_by_id(image_id)
        found_video = await uow.generated_videos.get_by_id(video_id)

        assert found_image is not None
        assert found_video is not None
        assert found_video.parent_id == found_image.id
