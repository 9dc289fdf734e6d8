"""GenerationRun - per-run state machine and the outcome handed to the UI."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union
from uuid import UUID, uuid4

from studiogen.models.edited_image import EditedImage
from studiogen.models.generated_video import GeneratedVideo
from studiogen.models.generation import (
    Artifact,
    ClassifiedError,
    ImageEditRequest,
    ImageToVideoRequest,
    RemoteJob,
)
from studiogen.services.exceptions import ErrorKind

GenerationRecord = Union[EditedImage, GeneratedVideo]


class RunState(str, Enum):
    """Orchestrator run lifecycle status."""

    IDLE = "idle"
    SUBMITTING = "submitting"
    POLLING = "polling"
    PERSISTING = "persisting"
    COMMITTING = "committing"
    DONE = "done"
    FAILED = "failed"


TERMINAL_RUN_STATES = frozenset({RunState.DONE, RunState.FAILED})


class InvalidStateTransition(Exception):
    """Raised when attempting an invalid run state transition."""

    pass


@dataclass(frozen=True)
class RunError:
    """Classified failure of a run, tagged with the stage that failed."""

    kind: ErrorKind
    message: str
    stage: RunState
    classified: Optional[ClassifiedError] = None

    @property
    def retryable_commit(self) -> bool:
        return self.kind == ErrorKind.COMMIT


@dataclass
class GenerationRun:
    """State of one orchestrator run.

    Transitions are strictly ordered:
    idle → submitting → polling → persisting → committing → done,
    with failed reachable from any non-terminal state.
    """

    request: Union[ImageEditRequest, ImageToVideoRequest]
    id: UUID = field(default_factory=uuid4)
    state: RunState = RunState.IDLE
    remote_job: Optional[RemoteJob] = None
    output_url: Optional[str] = None
    artifact: Optional[Artifact] = None
    record: Optional[GenerationRecord] = None
    error: Optional[RunError] = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def resume_for_commit(
        cls,
        request: Union[ImageEditRequest, ImageToVideoRequest],
        artifact: Artifact,
        remote_job: Optional[RemoteJob] = None,
    ) -> "GenerationRun":
        """Start a run whose artifact is already in storage (commit-only retry)."""
        return cls(
            request=request,
            state=RunState.PERSISTING,
            remote_job=remote_job,
            artifact=artifact,
        )

    def _require(self, expected: RunState, target: RunState) -> None:
        if self.state != expected:
            raise InvalidStateTransition(
                f"Cannot mark {target.value} from {self.state.value}. "
                f"Run must be in {expected.value} state."
            )

    def mark_submitting(self) -> None:
        self._require(RunState.IDLE, RunState.SUBMITTING)
        self.state = RunState.SUBMITTING

    def mark_polling(self, remote_job: RemoteJob) -> None:
        self._require(RunState.SUBMITTING, RunState.POLLING)
        self.remote_job = remote_job
        self.state = RunState.POLLING

    def mark_persisting(self, output_url: str) -> None:
        """Transition from polling to persisting.

        Raises:
            InvalidStateTransition: If current status is not polling
            ValueError: If output_url is empty
        """
        self._require(RunState.POLLING, RunState.PERSISTING)
        if not output_url:
            raise ValueError("output_url is required")
        self.output_url = output_url
        self.state = RunState.PERSISTING

    def mark_committing(self, artifact: Artifact) -> None:
        self._require(RunState.PERSISTING, RunState.COMMITTING)
        self.artifact = artifact
        self.state = RunState.COMMITTING

    def mark_done(self, record: GenerationRecord) -> None:
        self._require(RunState.COMMITTING, RunState.DONE)
        self.record = record
        self.state = RunState.DONE

    def mark_failed(self, error: RunError) -> None:
        """Transition from any non-terminal state to failed.

        Raises:
            InvalidStateTransition: If current status is already terminal (done/failed)
        """
        if self.state in TERMINAL_RUN_STATES:
            raise InvalidStateTransition(
                f"Cannot mark failed from terminal state {self.state.value}."
            )
        self.error = error
        self.state = RunState.FAILED

    def to_outcome(self) -> "GenerationOutcome":
        if self.state not in TERMINAL_RUN_STATES:
            raise InvalidStateTransition(
                f"Run {self.id} has no outcome while in {self.state.value} state."
            )
        return GenerationOutcome(
            run_id=self.id,
            state=self.state,
            request=self.request,
            record=self.record,
            error=self.error,
            artifact=self.artifact,
            remote_job=self.remote_job,
        )


@dataclass(frozen=True)
class GenerationOutcome:
    """Single terminal result of a run, as seen by the UI layer."""

    run_id: UUID
    state: RunState
    request: Union[ImageEditRequest, ImageToVideoRequest]
    record: Optional[GenerationRecord] = None
    error: Optional[RunError] = None
    artifact: Optional[Artifact] = None
    remote_job: Optional[RemoteJob] = None

    @property
    def succeeded(self) -> bool:
        return self.state == RunState.DONE

    @property
    def can_retry_commit(self) -> bool:
        """True when generation succeeded and only the database write is missing."""
        return (
            self.state == RunState.FAILED
            and self.error is not None
            and self.error.retryable_commit
            and self.artifact is not None
        )
