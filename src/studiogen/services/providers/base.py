"""Shared HTTP plumbing for provider proxy clients.

Every non-2xx response is classified here, once, and raised as
``ProviderAPIError``. Network failures become ``TransportError``.
"""

from typing import Any, Union
from urllib.parse import quote

import httpx
import structlog

from studiogen.models.generation import (
    ClassifiedError,
    GenerationKind,
    ImageEditRequest,
    ImageToVideoRequest,
    JobStatus,
    RemoteJob,
)
from studiogen.services.error_classifier import classify
from studiogen.services.exceptions import (
    ErrorKind,
    InvalidRequestError,
    ProviderAPIError,
    TransportError,
)

logger = structlog.get_logger()

Request = Union[ImageEditRequest, ImageToVideoRequest]


def extract_output_url(output: Any) -> str | None:
    """Find the result URL in a provider's ``output`` field.

    Accepts a string, a list of strings, a list of ``{"url": ...}`` objects, or
    an object with ``url`` / ``imageUrl`` / ``image_url``.
    """
    if not output:
        return None
    if isinstance(output, str):
        return output
    if isinstance(output, list):
        first = output[0]
        if isinstance(first, str):
            return first
        if isinstance(first, dict) and isinstance(first.get("url"), str):
            return first["url"]
        return None
    if isinstance(output, dict):
        for key in ("url", "imageUrl", "image_url"):
            if isinstance(output.get(key), str):
                return output[key]
    return None


class ProviderClient:
    """Base for clients that talk to a provider through the same-origin proxy.

    Subclasses set ``name`` and ``kind`` and implement ``build_payload``,
    ``parse_status`` and ``_job_id_from``.
    """

    name: str = "provider"
    kind: GenerationKind

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str,
        path: str,
        model: str,
        max_poll_attempts: int,
    ):
        """Initialize provider client.

        Args:
            http_client: Shared async HTTP client
            base_url: Proxy origin (e.g., "http://localhost:3000")
            path: Collection path of the proxy route (e.g., "/api/runway/jobs")
            model: Provider model identifier used when the request names none
            max_poll_attempts: Poll ceiling for jobs of this provider
        """
        self.http_client = http_client
        self.endpoint = base_url.rstrip("/") + "/" + path.strip("/")
        self.model = model
        self.max_poll_attempts = max_poll_attempts

    def build_payload(self, request: Request) -> dict[str, Any]:
        raise NotImplementedError

    def parse_status(self, data: dict[str, Any]) -> JobStatus:
        raise NotImplementedError

    def _job_id_from(self, data: dict[str, Any]) -> Any:
        raise NotImplementedError

    def validate(self, request: Request) -> None:
        """Reject requests this provider cannot run, before any network call.

        Raises:
            InvalidRequestError: Request of the wrong kind for this provider
        """
        if request.kind != self.kind.value:
            raise InvalidRequestError(
                f"{self.name} handles {self.kind.value} requests, not {request.kind}."
            )

    async def submit(self, request: Request) -> RemoteJob:
        """Create a provider job for the request.

        Raises:
            InvalidRequestError: Request rejected before sending
            TransportError: Proxy unreachable or timed out
            ProviderAPIError: Proxy answered with a non-2xx status
        """
        self.validate(request)
        if not request.source.url:
            raise InvalidRequestError("A source image URL is required.")
        payload = self.build_payload(request)
        data = await self._request("POST", self.endpoint, json=payload)

        job_id = self._job_id_from(data) if isinstance(data, dict) else None
        if not job_id:
            raise ProviderAPIError(
                ClassifiedError(
                    kind=ErrorKind.UNKNOWN,
                    message="The provider did not return a job id.",
                )
            )

        job = RemoteJob(provider_job_id=str(job_id), kind=self.kind, provider=self.name)
        logger.info(
            "generation.submitted",
            provider=self.name,
            job_id=job.provider_job_id,
            kind=self.kind.value,
            project_id=request.project_id,
        )
        return job

    async def get_status(self, job_id: str) -> JobStatus:
        """Fetch and normalize the current status of a job.

        Raises:
            TransportError: Proxy unreachable or timed out
            ProviderAPIError: Non-2xx status (404 is NOT_FOUND)
        """
        data = await self._request("GET", f"{self.endpoint}/{quote(job_id, safe='')}")
        if not isinstance(data, dict):
            raise ProviderAPIError(
                ClassifiedError(
                    kind=ErrorKind.UNKNOWN,
                    message="The provider returned an unexpected status response.",
                )
            )
        return self.parse_status(data)

    async def _request(self, method: str, url: str, json: Any = None) -> Any:
        try:
            response = await self.http_client.request(method, url, json=json)
        except httpx.TimeoutException as e:
            raise TransportError(detail=f"{self.name} request timed out: {e}") from e
        except httpx.TransportError as e:
            raise TransportError(detail=f"{self.name} request failed: {e}") from e

        if response.is_error:
            classified = classify(response.status_code, response.content)
            logger.warning(
                "provider.request_failed",
                provider=self.name,
                status_code=response.status_code,
                error_kind=classified.kind.value,
            )
            raise ProviderAPIError(classified)

        try:
            return response.json()
        except ValueError as e:
            raise ProviderAPIError(
                ClassifiedError(
                    kind=ErrorKind.UNKNOWN,
                    message="The provider returned an unreadable response.",
                    status_code=response.status_code,
                )
            ) from e
