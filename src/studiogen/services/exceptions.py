"""Error hierarchy for generation runs.

This module defines the exception hierarchy for every stage of a run:
- GenerationError: Base for all run errors, tagged with an ErrorKind
- InvalidRequestError / TransportError / ProviderAPIError: submission and polling
- PollingTimeoutError: attempt budget exhausted
- DownloadError / PathValidationError / StorageError: artifact persistence
- CommitError: database write failed after the artifact was stored

Each error carries a user-facing message. Internal details (paths, raw bodies)
stay in the exception's ``detail`` and in the logs.
"""

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from studiogen.models.generation import Artifact, ClassifiedError


class ErrorKind(str, Enum):
    """Closed set of failure kinds surfaced to the UI layer."""

    VALIDATION = "validation_error"
    TRANSPORT = "transport_error"
    PAYMENT_REQUIRED = "payment_required"
    RATE_LIMITED = "rate_limited"
    LIMIT_REACHED = "limit_reached"
    NOT_FOUND = "not_found"
    PROVIDER_ERROR = "provider_error"
    UNKNOWN = "unknown"
    POLLING_TIMEOUT = "polling_timeout"
    DOWNLOAD = "download_error"
    PATH_VALIDATION = "path_validation_error"
    STORAGE = "storage_error"
    COMMIT = "commit_error"


class GenerationError(Exception):
    """Base exception for all generation run errors."""

    kind: ErrorKind = ErrorKind.UNKNOWN
    default_message: str = "An unexpected error occurred. Please try again."

    def __init__(self, message: str | None = None, *, detail: str | None = None):
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)


class InvalidRequestError(GenerationError):
    """Request is malformed and was rejected before any network call."""

    kind = ErrorKind.VALIDATION
    default_message = "The generation request is invalid."


class TransportError(GenerationError):
    """Provider proxy unreachable (connection refused, DNS, timeout)."""

    kind = ErrorKind.TRANSPORT
    default_message = "Network error. Please check your connection and try again."


class ProviderAPIError(GenerationError):
    """Provider proxy answered with a non-2xx response.

    The classification is built once, where the HTTP response is received.
    """

    def __init__(self, classified: "ClassifiedError"):
        self.classified = classified
        self.kind = classified.kind
        super().__init__(classified.message)


class PollingTimeoutError(GenerationError):
    """Job did not reach a terminal state within the attempt budget."""

    kind = ErrorKind.POLLING_TIMEOUT
    default_message = "Generation is taking too long. Please try again later."


class DownloadError(GenerationError):
    """Generated artifact could not be fetched from the provider."""

    kind = ErrorKind.DOWNLOAD
    default_message = "Failed to retrieve the generated result."


class ArtifactDecodeError(DownloadError):
    """Downloaded bytes are not a decodable image."""

    default_message = "The generated image could not be read."


class PathValidationError(GenerationError):
    """Computed storage path escapes the owning user's prefix."""

    kind = ErrorKind.PATH_VALIDATION
    default_message = "The result could not be saved."


class StorageError(GenerationError):
    """Object storage rejected an upload, sign or delete call."""

    kind = ErrorKind.STORAGE
    default_message = "Failed to save the generated result."

    def __init__(
        self,
        message: str | None = None,
        *,
        detail: str | None = None,
        status_code: int | None = None,
    ):
        self.status_code = status_code
        super().__init__(message, detail=detail)


class CommitError(GenerationError):
    """Database write failed after the artifact was persisted.

    Carries the artifact so the caller can retry the commit step alone.
    """

    kind = ErrorKind.COMMIT
    default_message = "Result generated but not saved. Retry save."

    def __init__(self, artifact: "Artifact", *, detail: str | None = None):
        self.artifact = artifact
        super().__init__(detail=detail)
