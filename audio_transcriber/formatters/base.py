"""Abstract base for result formatters.

WHY: A completed job can be delivered as a plain transcript or as subtitle
captions. Both produce the same kind of thing, a FormattedFile, so the
runner, CLI and server can treat them generically.

HOW: BaseFormatter is an ABC with a ``name`` property and an async
``format()`` method. It receives the run's client because some outputs
need one more call to the service.

RULES:
- format() returns exactly one FormattedFile
- The filename comes from filenames.output_filename()
- Formatters never poll and never retry
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from audio_transcriber.api.client import TranscriptionClient
from audio_transcriber.api.models import FormattedFile, OutputRequest, TranscriptStatus


class BaseFormatter(ABC):
    """Abstract base for all output formatters.

    To add a new output:
    1. Add a value to OutputKind and an extension in core/filenames.py
    2. Subclass BaseFormatter in formatters/
    3. Register it in FORMATTERS in formatters/__init__.py
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable format name, e.g. 'SRT Subtitles'."""

    @abstractmethod
    async def format(
        self,
        request: OutputRequest,
        client: TranscriptionClient,
        job_id: str,
        status: TranscriptStatus,
        display_name: str,
    ) -> FormattedFile:
        """Produce the output file for a completed job.

        Args:
            request: The output chosen before the run started.
            client: The run's open client (for extra service calls).
            job_id: The run's job handle.
            status: The completed status payload returned by the poller.
            display_name: The audio source's display name.

        Returns:
            The file body, derived filename and MIME type.
        """
