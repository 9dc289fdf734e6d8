"""Bounded status polling for provider jobs."""

import asyncio
from typing import AsyncIterator, Awaitable, Callable, Optional, Protocol

import structlog

from studiogen.models.generation import ClassifiedError, JobState, JobStatus
from studiogen.services.exceptions import ErrorKind, PollingTimeoutError, ProviderAPIError

logger = structlog.get_logger()

# A freshly created job may not be visible to status lookups yet
NOT_FOUND_GRACE_ATTEMPTS = 3
JOB_LOST_MESSAGE = "The generation job was lost. Please try again."

ProgressCallback = Callable[[JobState, Optional[float]], None]
Sleep = Callable[[float], Awaitable[None]]


class StatusProvider(Protocol):
    name: str

    async def get_status(self, job_id: str) -> JobStatus: ...


class JobPoller:
    """Polls one provider until a job reaches a terminal state.

    One status request is made per attempt. Sleeping happens only between
    attempts, never after the last one.
    """

    def __init__(self, provider: StatusProvider, sleep: Sleep = asyncio.sleep):
        """Initialize poller.

        Args:
            provider: Client exposing ``get_status(job_id)``
            sleep: Awaitable sleep, replaceable in tests
        """
        self.provider = provider
        self.sleep = sleep

    async def watch(
        self, job_id: str, max_attempts: int, interval_seconds: float
    ) -> AsyncIterator[JobStatus]:
        """Yield one status per attempt, ending with exactly one terminal status.

        Args:
            job_id: Provider job identifier
            max_attempts: Maximum number of status requests
            interval_seconds: Delay between attempts

        Raises:
            PollingTimeoutError: No terminal status after max_attempts requests
            ProviderAPIError: NOT_FOUND after the grace period, or any other API error
            TransportError: Proxy unreachable
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        for attempt in range(1, max_attempts + 1):
            try:
                status = await self.provider.get_status(job_id)
            except ProviderAPIError as e:
                if e.kind != ErrorKind.NOT_FOUND:
                    raise
                if attempt > NOT_FOUND_GRACE_ATTEMPTS:
                    logger.warning(
                        "generation.job_lost",
                        provider=self.provider.name,
                        job_id=job_id,
                        attempt=attempt,
                    )
                    raise ProviderAPIError(
                        ClassifiedError(
                            kind=ErrorKind.NOT_FOUND,
                            message=JOB_LOST_MESSAGE,
                            status_code=e.classified.status_code,
                        )
                    ) from e
                status = JobStatus(state=JobState.QUEUED, raw_status="not_found")

            logger.debug(
                "generation.poll",
                provider=self.provider.name,
                job_id=job_id,
                attempt=attempt,
                state=status.state.value,
                progress=status.progress,
            )
            yield status

            if status.is_terminal:
                return
            if attempt < max_attempts:
                await self.sleep(interval_seconds)

        logger.warning(
            "generation.poll_timeout",
            provider=self.provider.name,
            job_id=job_id,
            max_attempts=max_attempts,
        )
        raise PollingTimeoutError(detail=f"job {job_id} not terminal after {max_attempts} attempts")

    async def poll(
        self,
        job_id: str,
        on_progress: ProgressCallback | None,
        max_attempts: int,
        interval_seconds: float,
    ) -> JobStatus:
        """Poll until terminal, reporting every attempt to ``on_progress``.

        Returns:
            The first terminal JobStatus (succeeded, failed, or canceled)
        """
        last: JobStatus | None = None
        async for status in self.watch(job_id, max_attempts, interval_seconds):
            if on_progress is not None:
                on_progress(status.state, status.progress)
            last = status
        if last is None or not last.is_terminal:
            raise PollingTimeoutError(detail=f"job {job_id} produced no terminal status")
        return last
