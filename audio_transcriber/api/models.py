"""Data model for a transcription run and the service's status responses.

WHY: The service answers with flat JSON objects and free-form status
strings. Typed dataclasses and a closed status enum make the state machine
explicit: a status value outside the four known ones is rejected instead of
being polled forever.

HOW: JobStatus parses wire values; TranscriptStatus maps the status
response; AudioSource, OutputRequest, ProgressEstimate, JobResult and
FormattedFile are the values that flow between the runner's stages.

RULES:
- JobStatus is closed: queued, processing, completed, error
- completed and error are terminal
- OutputRequest subtitle length must be an int in 1..100
- ProgressEstimate percent is clamped to 0..100 at construction
- All run inputs are frozen; they cannot change once a run starts
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from audio_transcriber.api.errors import UnexpectedStatusError
from audio_transcriber.config import MAX_CHARS_PER_LINE, MIN_CHARS_PER_LINE


class JobStatus(str, enum.Enum):
    """Remote job status as reported by GET /transcript/{id}."""

    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.ERROR)

    @classmethod
    def parse(cls, value: object) -> JobStatus:
        """Parse a wire value, raising UnexpectedStatusError for unknown ones."""
        try:
            return cls(value)
        except ValueError:
            raise UnexpectedStatusError(value) from None


@dataclass
class TranscriptStatus:
    """Status response from polling GET /transcript/{id}.

    RULES:
    - text is only present once status is completed
    - error is only present when status is error
    """

    id: str
    status: JobStatus
    text: str | None = None
    error: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> TranscriptStatus:
        return cls(
            id=data.get("id", ""),
            status=JobStatus.parse(data.get("status")),
            text=data.get("text"),
            error=data.get("error"),
        )


@dataclass(frozen=True)
class AudioSource:
    """Audio payload with its declared MIME type and display name."""

    data: bytes
    mime_type: str
    display_name: str


class OutputKind(str, enum.Enum):
    """Output representations a run can produce."""

    TRANSCRIPT = "transcript"
    SUBTITLES = "subtitles"


@dataclass(frozen=True)
class OutputRequest:
    """The output a run should deliver, chosen before the run starts.

    Use the ``transcript()`` and ``subtitles(n)`` constructors; the
    subtitle line length is validated on construction.
    """

    kind: OutputKind
    max_chars_per_line: int | None = None

    def __post_init__(self) -> None:
        if self.kind is OutputKind.SUBTITLES:
            n = self.max_chars_per_line
            if isinstance(n, bool) or not isinstance(n, int):
                raise ValueError("max_chars_per_line must be an integer")
            if not MIN_CHARS_PER_LINE <= n <= MAX_CHARS_PER_LINE:
                raise ValueError(
                    f"max_chars_per_line must be between {MIN_CHARS_PER_LINE} "
                    f"and {MAX_CHARS_PER_LINE}, got {n}"
                )
        elif self.max_chars_per_line is not None:
            raise ValueError("max_chars_per_line only applies to subtitles")

    @classmethod
    def transcript(cls) -> OutputRequest:
        return cls(OutputKind.TRANSCRIPT)

    @classmethod
    def subtitles(cls, max_chars_per_line: int) -> OutputRequest:
        return cls(OutputKind.SUBTITLES, max_chars_per_line)


@dataclass(frozen=True)
class ProgressEstimate:
    """Advisory progress for display; never used to decide termination."""

    percent: int
    stage: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "percent", max(0, min(100, int(self.percent))))


@dataclass(frozen=True)
class JobResult:
    """Terminal outcome of polling: a completed status or a failure reason."""

    status: TranscriptStatus | None = None
    failure_reason: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is not None

    @classmethod
    def completed(cls, status: TranscriptStatus) -> JobResult:
        return cls(status=status)

    @classmethod
    def failed(cls, reason: str) -> JobResult:
        return cls(failure_reason=reason)


@dataclass(frozen=True)
class FormattedFile:
    """One output file ready to hand to a delivery collaborator.

    Attributes:
        content: File body as bytes.
        filename: Derived name, e.g. ``"interview.txt"``.
        media_type: MIME type, e.g. ``"application/x-subrip"``.
    """

    content: bytes
    filename: str
    media_type: str
