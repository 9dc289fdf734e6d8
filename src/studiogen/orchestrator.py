"""Generation orchestrator.

Drives one run through submit → poll → persist → commit and returns a single
GenerationOutcome. Every failure is classified; nothing escapes ``run``.
No stage is retried automatically; ``retry_commit`` re-runs only the commit step
of a run whose artifact is already stored.
"""

import asyncio
from typing import Mapping, Optional, Union

import httpx
import structlog

from studiogen.cache import ViewCache
from studiogen.core.config import Settings
from studiogen.models.generation import (
    ArtifactNaming,
    ClassifiedError,
    GenerationKind,
    ImageEditRequest,
    ImageToVideoRequest,
    JobState,
    MediaKind,
)
from studiogen.models.run import (
    GenerationOutcome,
    GenerationRun,
    InvalidStateTransition,
    RunError,
)
from studiogen.services.artifact_persister import ArtifactPersister, validate_storage_path
from studiogen.services.exceptions import (
    ErrorKind,
    GenerationError,
    InvalidRequestError,
    PathValidationError,
    ProviderAPIError,
)
from studiogen.services.job_poller import JobPoller, ProgressCallback, Sleep
from studiogen.services.providers.base import ProviderClient
from studiogen.services.providers.replicate_client import ReplicateClient
from studiogen.services.providers.runway_client import RunwayClient
from studiogen.services.result_committer import ResultCommitter, resolve_lineage
from studiogen.services.storage.supabase_client import SupabaseStorageClient
from studiogen.uow import create_uow_factory

logger = structlog.get_logger()

Request = Union[ImageEditRequest, ImageToVideoRequest]

CANCELED_MESSAGE = "Generation was canceled."
FAILED_MESSAGE = "Generation failed. Please try again."


class GenerationOrchestrator:
    """Runs generation requests end to end."""

    def __init__(
        self,
        providers: Mapping[GenerationKind, ProviderClient],
        persister: ArtifactPersister,
        committer: ResultCommitter,
        storage: Optional[SupabaseStorageClient] = None,
        *,
        poll_interval_seconds: float = 2.0,
        source_bucket: str = "user-uploads",
        signed_url_ttl_seconds: int = 3600,
        sleep: Sleep = asyncio.sleep,
    ):
        """Initialize orchestrator.

        Args:
            providers: Provider client per generation kind
            persister: Moves provider output into application storage
            committer: Writes records and reconciles the view cache
            storage: Signs ``storage_path`` sources; required only for such sources
            poll_interval_seconds: Delay between status polls
            source_bucket: Bucket holding source images referenced by path
            signed_url_ttl_seconds: Lifetime of signed source URLs
            sleep: Awaitable sleep used by the pollers
        """
        self.providers = dict(providers)
        self.pollers = {kind: JobPoller(p, sleep=sleep) for kind, p in self.providers.items()}
        self.persister = persister
        self.committer = committer
        self.storage = storage
        self.poll_interval_seconds = poll_interval_seconds
        self.source_bucket = source_bucket
        self.signed_url_ttl_seconds = signed_url_ttl_seconds

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        http_client: httpx.AsyncClient,
        session_factory,
        cache: ViewCache,
    ) -> "GenerationOrchestrator":
        """Wire the production collaborators from settings.

        The host calls ``configure_logging(settings)`` once at startup, before
        building the orchestrator.

        Args:
            settings: Application settings
            http_client: Shared async HTTP client for proxies, downloads and storage
            session_factory: Factory from ``setup_db_session``
            cache: View cache shared with the UI layer
        """
        storage = SupabaseStorageClient(
            settings.supabase_url, settings.supabase_service_key, http_client
        )
        providers: dict[GenerationKind, ProviderClient] = {
            GenerationKind.IMAGE_EDIT: ReplicateClient(
                http_client,
                settings.api_base_url,
                path=settings.replicate_predictions_path,
                model=settings.replicate_image_model,
                max_poll_attempts=settings.image_poll_max_attempts,
            ),
            GenerationKind.IMAGE_TO_VIDEO: RunwayClient(
                http_client,
                settings.api_base_url,
                path=settings.runway_jobs_path,
                model=settings.runway_video_model,
                max_poll_attempts=settings.video_poll_max_attempts,
            ),
        }
        persister = ArtifactPersister(
            storage,
            http_client,
            image_bucket=settings.image_bucket,
            video_bucket=settings.video_bucket,
        )
        committer = ResultCommitter(create_uow_factory(session_factory), cache)
        return cls(
            providers,
            persister,
            committer,
            storage,
            poll_interval_seconds=settings.poll_interval_seconds,
            source_bucket=settings.image_bucket,
            signed_url_ttl_seconds=settings.signed_url_ttl_seconds,
        )

    async def run(
        self, request: Request, on_progress: ProgressCallback | None = None
    ) -> GenerationOutcome:
        """Execute one generation run.

        Args:
            request: Image-edit or image-to-video request
            on_progress: Called once per poll attempt with (state, progress)

        Returns:
            Terminal outcome: DONE with the record, or FAILED with a RunError
        """
        run = GenerationRun(request=request)
        log = logger.bind(run_id=str(run.id), kind=request.kind, project_id=request.project_id)
        log.info("generation.started")

        try:
            provider = self._provider_for(request)
            provider.validate(request)

            run.mark_submitting()
            submittable = await self._resolve_source(request)
            job = await provider.submit(submittable)

            run.mark_polling(job)
            status = await self.pollers[provider.kind].poll(
                job.provider_job_id,
                on_progress,
                provider.max_poll_attempts,
                self.poll_interval_seconds,
            )
            if status.state != JobState.SUCCEEDED:
                message = CANCELED_MESSAGE if status.state == JobState.CANCELED else FAILED_MESSAGE
                if status.state == JobState.FAILED and status.reason:
                    message = status.reason
                self._fail(
                    run,
                    RunError(
                        kind=ErrorKind.PROVIDER_ERROR,
                        message=message,
                        stage=run.state,
                        classified=ClassifiedError(kind=ErrorKind.PROVIDER_ERROR, message=message),
                    ),
                    log,
                )
                return run.to_outcome()

            run.mark_persisting(status.output_url or "")
            naming = ArtifactNaming(
                user_id=request.user_id,
                project_id=request.project_id,
                media_kind=_media_kind(request),
            )
            artifact = await self.persister.persist(run.output_url, naming)

            run.mark_committing(artifact)
            record = await self.committer.commit(
                artifact,
                request,
                resolve_lineage(request),
                remote_job=job,
                ai_model=request.model or provider.model,
            )
            run.mark_done(record)
        except GenerationError as e:
            self._fail(run, self._run_error(run, e), log, detail=e.detail)
        except Exception as e:
            log.exception("generation.unexpected_error", stage=run.state.value)
            self._fail(run, self._run_error(run, GenerationError(detail=str(e))), log)
        else:
            log.info("generation.completed", record_id=str(run.record.id) if run.record else None)

        return run.to_outcome()

    async def retry_commit(self, outcome: GenerationOutcome) -> GenerationOutcome:
        """Re-run only the commit step of a run that failed with COMMIT.

        Raises:
            InvalidStateTransition: Outcome is not a commit failure with an artifact
        """
        if not outcome.can_retry_commit or outcome.artifact is None:
            raise InvalidStateTransition("Only runs that failed to save can retry the commit.")

        request = outcome.request
        run = GenerationRun.resume_for_commit(request, outcome.artifact, outcome.remote_job)
        log = logger.bind(run_id=str(run.id), kind=request.kind, retry_of=str(outcome.run_id))
        provider = self.providers.get(GenerationKind(request.kind))

        try:
            run.mark_committing(outcome.artifact)
            record = await self.committer.commit(
                outcome.artifact,
                request,
                resolve_lineage(request),
                remote_job=outcome.remote_job,
                ai_model=request.model or (provider.model if provider else None),
            )
            run.mark_done(record)
        except GenerationError as e:
            self._fail(run, self._run_error(run, e), log, detail=e.detail)
        except Exception as e:
            log.exception("generation.unexpected_error", stage=run.state.value)
            self._fail(run, self._run_error(run, GenerationError(detail=str(e))), log)
        else:
            log.info("generation.commit_retried", record_id=str(run.record.id) if run.record else None)

        return run.to_outcome()

    def _provider_for(self, request: Request) -> ProviderClient:
        provider = self.providers.get(GenerationKind(request.kind))
        if provider is None:
            raise InvalidRequestError(f"No provider configured for {request.kind} requests.")
        return provider

    async def _resolve_source(self, request: Request) -> Request:
        """Return the request with a fetchable source URL.

        Sources given as a storage path are checked against the user's prefix and
        replaced by a signed URL.
        """
        source = request.source
        if source.url:
            return request
        if self.storage is None:
            raise InvalidRequestError("A source image URL is required.")

        path = source.storage_path or ""
        try:
            validate_storage_path(request.user_id, path)
        except PathValidationError as e:
            logger.error(
                "source.path_rejected",
                security_event=True,
                user_id=request.user_id,
                path=path,
                reason=e.detail,
            )
            raise

        signed_url = await self.storage.get_signed_url(
            self.source_bucket, path, self.signed_url_ttl_seconds
        )
        return request.model_copy(update={"source": source.model_copy(update={"url": signed_url})})

    def _run_error(self, run: GenerationRun, error: GenerationError) -> RunError:
        classified = error.classified if isinstance(error, ProviderAPIError) else None
        return RunError(kind=error.kind, message=error.message, stage=run.state, classified=classified)

    def _fail(self, run: GenerationRun, error: RunError, log, detail: str | None = None) -> None:
        run.mark_failed(error)
        log.warning(
            "generation.failed",
            error_kind=error.kind.value,
            stage=error.stage.value,
            message=error.message,
            detail=detail,
        )


def _media_kind(request: Request) -> MediaKind:
    if request.kind == GenerationKind.IMAGE_TO_VIDEO.value:
        return MediaKind.VIDEO
    return MediaKind.IMAGE
