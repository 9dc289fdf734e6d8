"""Result commit: database record plus view-cache reconciliation."""

from datetime import datetime
from typing import Any, Optional, Union
from uuid import uuid4

import structlog
from sqlalchemy.exc import SQLAlchemyError

from studiogen.cache import (
    EDITED_IMAGES,
    GENERATED_VIDEOS,
    SIGNED_URL_KEY,
    CacheEvent,
    ViewCache,
    lineage_list_key,
    project_list_key,
    timeline_key,
    timelines_key,
)
from studiogen.models.edited_image import EditedImage
from studiogen.models.generated_video import GeneratedVideo, VideoStatus
from studiogen.models.generation import (
    Artifact,
    ImageEditRequest,
    ImageToVideoRequest,
    Lineage,
    MediaKind,
    RemoteJob,
)
from studiogen.services.exceptions import CommitError

logger = structlog.get_logger()

Request = Union[ImageEditRequest, ImageToVideoRequest]
Record = Union[EditedImage, GeneratedVideo]


def resolve_lineage(request: Request) -> Lineage:
    """Place a new record in its source's lineage, or start a new one.

    The source itself becomes the parent when it is a known record.
    """
    source = request.source
    parent_id = source.source_id or source.parent_id
    if source.lineage_id is not None:
        return Lineage(lineage_id=source.lineage_id, parent_id=parent_id)
    return Lineage(lineage_id=uuid4(), parent_id=parent_id, is_new=True)


class ResultCommitter:
    """Writes generation records and keeps cached views consistent with them."""

    def __init__(self, uow_factory, cache: ViewCache):
        """Initialize committer.

        Args:
            uow_factory: Factory from ``create_uow_factory``
            cache: View cache to reconcile after each write
        """
        self.uow_factory = uow_factory
        self.cache = cache

    resolve_lineage = staticmethod(resolve_lineage)

    async def commit(
        self,
        artifact: Artifact,
        request: Request,
        lineage: Lineage,
        *,
        remote_job: Optional[RemoteJob] = None,
        ai_model: Optional[str] = None,
    ) -> Record:
        """Create the record for a stored artifact, then reconcile caches.

        Args:
            artifact: Object already uploaded to storage
            request: Request that produced the artifact
            lineage: Lineage placement from ``resolve_lineage``
            remote_job: Provider job, recorded on videos
            ai_model: Model identifier to store (defaults to ``request.model``)

        Returns:
            The persisted EditedImage or GeneratedVideo

        Raises:
            CommitError: Database rejected the write; carries the artifact
        """
        model_name = ai_model or request.model or "unknown"
        try:
            async with await self.uow_factory() as uow:
                if artifact.media_kind == MediaKind.IMAGE:
                    repo = uow.edited_images
                    record: Record = self._build_image(artifact, request, lineage, model_name)
                else:
                    repo = uow.generated_videos
                    record = self._build_video(artifact, request, lineage, model_name, remote_job)
                if not lineage.is_new:
                    siblings = await repo.list_by_lineage(lineage.lineage_id, request.user_id)
                    record.version = len(siblings) + 1
                record = await repo.create(record)
        except SQLAlchemyError as e:
            logger.error(
                "commit.failed",
                project_id=request.project_id,
                storage_path=artifact.storage_path,
                error=str(e),
            )
            raise CommitError(artifact, detail=str(e)) from e

        logger.info(
            "commit.succeeded",
            record_id=str(record.id),
            project_id=request.project_id,
            media_kind=artifact.media_kind.value,
        )
        self.reconcile(artifact.media_kind, record)
        return record

    def reconcile(self, media_kind: MediaKind, record: Record) -> None:
        """Apply one committed record to the view cache.

        1. Prepend it to cached project and lineage lists.
        2. Invalidate those lists plus timelines and signed URLs; observed keys
           refetch in the background.
        3. Publish a CacheEvent for subscribers.
        """
        entity = EDITED_IMAGES if media_kind == MediaKind.IMAGE else GENERATED_VIDEOS
        list_keys = [project_list_key(entity, record.project_id, record.user_id)]
        if record.lineage_id is not None:
            list_keys.append(lineage_list_key(entity, record.lineage_id, record.user_id))

        for key in list_keys:
            self.cache.prepend(key, record)

        stale_keys = [*list_keys, timelines_key(record.project_id, record.user_id)]
        if record.lineage_id is not None:
            stale_keys.append(timeline_key(record.lineage_id, record.user_id))
        stale_keys.append(SIGNED_URL_KEY)
        for key in stale_keys:
            self.cache.invalidate(key)

        self.cache.events.publish(
            CacheEvent(
                entity_type=entity,
                project_id=record.project_id,
                record_id=record.id,
                lineage_id=record.lineage_id,
            )
        )

    def _build_image(
        self, artifact: Artifact, request: Request, lineage: Lineage, model_name: str
    ) -> EditedImage:
        context: dict[str, Any] = {
            "source_type": request.source.source_type,
            "aspect_ratio": request.aspect_ratio,
        }
        if request.source.source_id is not None:
            context["source_id"] = str(request.source.source_id)
        return EditedImage(
            project_id=request.project_id,
            user_id=request.user_id,
            prompt=request.prompt,
            ai_model=model_name,
            storage_path=artifact.storage_path,
            width=artifact.width,
            height=artifact.height,
            context=context,
            parent_id=lineage.parent_id,
            lineage_id=lineage.lineage_id,
        )

    def _build_video(
        self,
        artifact: Artifact,
        request: Request,
        lineage: Lineage,
        model_name: str,
        remote_job: Optional[RemoteJob],
    ) -> GeneratedVideo:
        if not isinstance(request, ImageToVideoRequest):
            raise TypeError(f"Video records need an image-to-video request, got {request.kind}")
        return GeneratedVideo(
            project_id=request.project_id,
            user_id=request.user_id,
            name=request.display_name,
            prompt=request.prompt,
            ai_model=model_name,
            aspect_ratio=request.aspect_ratio or "16:9",
            camera_movement=request.camera_movement.value,
            storage_path=artifact.storage_path,
            status=VideoStatus.COMPLETED,
            provider_task_id=remote_job.provider_job_id if remote_job else None,
            parent_id=lineage.parent_id,
            lineage_id=lineage.lineage_id,
            completed_at=datetime.utcnow(),
        )
