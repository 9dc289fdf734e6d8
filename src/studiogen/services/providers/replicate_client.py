"""Replicate prediction client for product image edits (flux-kontext-pro)."""

from typing import Any

import httpx
import structlog

from studiogen.models.generation import GenerationKind, ImageEditRequest, JobState, JobStatus
from studiogen.services.exceptions import InvalidRequestError
from studiogen.services.providers.base import ProviderClient, Request, extract_output_url
from studiogen.services.providers.prompts import enhance_image_prompt, to_replicate_ratio

logger = structlog.get_logger()

DEFAULT_IMAGE_MODEL = "black-forest-labs/flux-kontext-pro"
DEFAULT_MAX_POLL_ATTEMPTS = 120

_STATUS_MAP = {
    "starting": JobState.QUEUED,
    "processing": JobState.PROCESSING,
    "succeeded": JobState.SUCCEEDED,
    "failed": JobState.FAILED,
    "canceled": JobState.CANCELED,
    "aborted": JobState.CANCELED,
}


class ReplicateClient(ProviderClient):
    """Image-edit provider behind ``/api/replicate/predictions``."""

    name = "replicate"
    kind = GenerationKind.IMAGE_EDIT

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str,
        path: str = "/api/replicate/predictions",
        model: str = DEFAULT_IMAGE_MODEL,
        max_poll_attempts: int = DEFAULT_MAX_POLL_ATTEMPTS,
    ):
        super().__init__(http_client, base_url, path, model, max_poll_attempts)

    def validate(self, request: Request) -> None:
        super().validate(request)
        if not request.prompt.strip():
            raise InvalidRequestError("Please enter a product name.")

    def build_payload(self, request: Request) -> dict[str, Any]:
        """Build the ``{version, input}`` body for a flux-kontext-pro prediction.

        Args:
            request: Image-edit request; ``prompt`` is the product name

        Returns:
            Prediction body with enhanced prompt and a provider-native aspect ratio
        """
        if not isinstance(request, ImageEditRequest):
            raise InvalidRequestError("Replicate handles image-edit requests only.")
        return {
            "version": request.model or self.model,
            "input": {
                "prompt": enhance_image_prompt(request.prompt),
                "input_image": request.source.url,
                "aspect_ratio": to_replicate_ratio(request.aspect_ratio),
                "output_format": "png",
            },
        }

    def _job_id_from(self, data: dict[str, Any]) -> Any:
        return data.get("id")

    def parse_status(self, data: dict[str, Any]) -> JobStatus:
        """Map a prediction to a JobStatus.

        Replicate reports no percentage, so ``progress`` is always None.
        """
        raw = str(data.get("status") or "")
        state = _STATUS_MAP.get(raw.lower())
        if state is None:
            logger.warning("replicate.unknown_status", status=raw, job_id=data.get("id"))
            state = JobState.PROCESSING

        if state == JobState.SUCCEEDED:
            output_url = extract_output_url(data.get("output"))
            if not output_url:
                return JobStatus(
                    state=JobState.FAILED,
                    reason="Generation finished without an output.",
                    raw_status=raw,
                )
            return JobStatus(state=state, output_url=output_url, raw_status=raw)

        if state == JobState.FAILED:
            error = data.get("error")
            reason = error if isinstance(error, str) and error else "Prediction failed"
            return JobStatus(state=state, reason=reason, raw_status=raw)

        if state == JobState.CANCELED:
            return JobStatus(state=state, reason="Prediction was canceled", raw_status=raw)

        return JobStatus(state=state, raw_status=raw)
