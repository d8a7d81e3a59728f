"""SRT subtitle formatter, rendered by the service.

WHY: The service renders timed captions itself, so the subtitle body is
fetched rather than generated. The markup is opaque here: whatever the
caption endpoint returns is delivered byte-for-byte.

HOW: One GET to the caption endpoint, parameterised by the requested
maximum characters per caption line.

RULES:
- Exactly one extra service call; a non-success response is a FormatError
- Body is passed through verbatim (UTF-8 encoded)
- Media type: "application/x-subrip"
"""

from audio_transcriber.api.client import TranscriptionClient
from audio_transcriber.api.models import (
    FormattedFile,
    OutputKind,
    OutputRequest,
    TranscriptStatus,
)
from audio_transcriber.core.filenames import output_filename
from audio_transcriber.formatters.base import BaseFormatter


class SRTSubtitleFormatter(BaseFormatter):
    """Formatter that delivers service-rendered SRT captions."""

    @property
    def name(self) -> str:
        return "SRT Subtitles"

    async def format(
        self,
        request: OutputRequest,
        client: TranscriptionClient,
        job_id: str,
        status: TranscriptStatus,
        display_name: str,
    ) -> FormattedFile:
        srt = await client.fetch_subtitles(job_id, request.max_chars_per_line)

        return FormattedFile(
            content=srt.encode("utf-8"),
            filename=output_filename(display_name, OutputKind.SUBTITLES),
            media_type="application/x-subrip",
        )
