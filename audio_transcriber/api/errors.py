"""Error taxonomy for the transcription job runner.

WHY: Every stage of a run can fail, and callers need to tell the stages
apart and to tell a transport failure (the service did not answer
successfully) from a data failure (the service finished the job and
reported an error). One typed exception per stage makes that explicit.

HOW: All errors derive from TranscriptionJobError, which carries a short
human-readable ``reason`` plus the optional HTTP status code and response
body of the failed call.

RULES:
- Transport failures read "<stage> failed (HTTP <code>)"
- Remote-reported failures read "transcription failed: <message>"
- Any of these aborts the whole run; none is retried
"""

from __future__ import annotations


class TranscriptionJobError(Exception):
    """Base class for every failure that aborts a transcription run."""

    def __init__(
        self,
        reason: str,
        status_code: int | None = None,
        detail: str | None = None,
    ) -> None:
        self.reason = reason
        self.status_code = status_code
        self.detail = detail
        message = reason
        if status_code is not None:
            message = f"{reason} (HTTP {status_code})"
        super().__init__(message)


class UploadError(TranscriptionJobError):
    """Raised when the audio payload could not be uploaded."""


class SubmitError(TranscriptionJobError):
    """Raised when the service refused to create a transcription job."""


class PollError(TranscriptionJobError):
    """Raised when a status query fails at the transport level."""


class UnexpectedStatusError(TranscriptionJobError):
    """Raised when the service reports a status outside the known set.

    RULES:
    - ``status`` holds the raw wire value for diagnostics
    """

    def __init__(self, status: object) -> None:
        self.status = status
        super().__init__(f"unexpected job status {status!r}")


class FormatError(TranscriptionJobError):
    """Raised when the requested output could not be produced."""


class TranscriptionFailedError(TranscriptionJobError):
    """Raised when the service finished the job with status "error"."""

    def __init__(self, remote_message: str | None) -> None:
        self.remote_message = remote_message or "no reason given"
        super().__init__(f"transcription failed: {self.remote_message}")


class JobCancelledError(TranscriptionJobError):
    """Raised when a run's cancel event is set while it is polling."""

    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        super().__init__(f"job {job_id} cancelled")
