"""Runway task client for image-to-video generation."""

from typing import Any

import httpx
import structlog

from studiogen.models.generation import GenerationKind, ImageToVideoRequest, JobState, JobStatus
from studiogen.services.exceptions import InvalidRequestError
from studiogen.services.providers.base import ProviderClient, Request, extract_output_url
from studiogen.services.providers.prompts import enhance_video_prompt, to_runway_ratio

logger = structlog.get_logger()

DEFAULT_VIDEO_MODEL = "veo3.1_fast"
DEFAULT_MAX_POLL_ATTEMPTS = 60

_STATUS_MAP = {
    "PENDING": JobState.QUEUED,
    "THROTTLED": JobState.QUEUED,
    "PROCESSING": JobState.PROCESSING,
    "RUNNING": JobState.PROCESSING,
    "SUCCEEDED": JobState.SUCCEEDED,
    "FAILED": JobState.FAILED,
    "CANCELLED": JobState.CANCELED,
    "CANCELED": JobState.CANCELED,
}


class RunwayClient(ProviderClient):
    """Image-to-video provider behind ``/api/runway/jobs``."""

    name = "runway"
    kind = GenerationKind.IMAGE_TO_VIDEO

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str,
        path: str = "/api/runway/jobs",
        model: str = DEFAULT_VIDEO_MODEL,
        max_poll_attempts: int = DEFAULT_MAX_POLL_ATTEMPTS,
    ):
        super().__init__(http_client, base_url, path, model, max_poll_attempts)

    def build_payload(self, request: Request) -> dict[str, Any]:
        if not isinstance(request, ImageToVideoRequest):
            raise InvalidRequestError("Runway handles image-to-video requests only.")
        payload: dict[str, Any] = {
            "mode": "image-to-video",
            "promptImage": request.source.url,
            "model": request.model or self.model,
            "ratio": to_runway_ratio(request.aspect_ratio),
        }
        prompt_text = enhance_video_prompt(request.prompt, request.camera_movement)
        if prompt_text:
            payload["promptText"] = prompt_text
        return payload

    def _job_id_from(self, data: dict[str, Any]) -> Any:
        return data.get("taskId") or data.get("id")

    def parse_status(self, data: dict[str, Any]) -> JobStatus:
        """Map a Runway task to a JobStatus.

        ``progress`` is the provider's fraction (0.0 - 1.0), passed through as-is.
        """
        raw = str(data.get("status") or "")
        state = _STATUS_MAP.get(raw.upper())
        if state is None:
            logger.warning("runway.unknown_status", status=raw, job_id=data.get("id"))
            state = JobState.PROCESSING

        progress = data.get("progress")
        if isinstance(progress, bool) or not isinstance(progress, (int, float)):
            progress = None

        if state == JobState.SUCCEEDED:
            output_url = extract_output_url(data.get("output"))
            if not output_url:
                return JobStatus(
                    state=JobState.FAILED,
                    reason="Generation finished without an output.",
                    raw_status=raw,
                )
            return JobStatus(state=state, output_url=output_url, progress=progress, raw_status=raw)

        if state == JobState.FAILED:
            failure = data.get("failure")
            reason = failure if isinstance(failure, str) and failure else "Job failed"
            return JobStatus(state=state, reason=reason, raw_status=raw)

        if state == JobState.CANCELED:
            return JobStatus(state=state, reason="Job was canceled", raw_status=raw)

        return JobStatus(state=state, progress=progress, raw_status=raw)
