"""Plain transcript formatter.

WHY: The completed status payload already carries the transcript text, so
delivering it needs no further calls to the service.

RULES:
- Body is status.text encoded as UTF-8
- Missing or non-string text on a completed job is a FormatError
- Media type: "text/plain"
"""

from audio_transcriber.api.client import TranscriptionClient
from audio_transcriber.api.errors import FormatError
from audio_transcriber.api.models import (
    FormattedFile,
    OutputKind,
    OutputRequest,
    TranscriptStatus,
)
from audio_transcriber.core.filenames import output_filename
from audio_transcriber.formatters.base import BaseFormatter


class TranscriptFormatter(BaseFormatter):
    """Formatter that delivers the transcript text of a completed job."""

    @property
    def name(self) -> str:
        return "Plain Text"

    async def format(
        self,
        request: OutputRequest,
        client: TranscriptionClient,
        job_id: str,
        status: TranscriptStatus,
        display_name: str,
    ) -> FormattedFile:
        if status.text is None:
            raise FormatError("transcript missing", detail=f"job {job_id} has no text")
        if not isinstance(status.text, str):
            raise FormatError(
                "transcript malformed",
                detail=f"job {job_id} text is {type(status.text).__name__}, not str",
            )

        return FormattedFile(
            content=status.text.encode("utf-8"),
            filename=output_filename(display_name, OutputKind.TRANSCRIPT),
            media_type="text/plain",
        )
