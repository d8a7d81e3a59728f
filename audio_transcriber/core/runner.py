"""Transcription job runner: upload → submit → poll → format.

WHY: Callers (CLI, HTTP API, tests) want one call that takes audio and an
output choice and returns a finished file, with progress along the way and
a single typed error when anything goes wrong.

HOW: TranscriptionJobRunner holds connection settings only. Each run()
opens its own TranscriptionClient with the run's credential, executes the
four stages strictly in order, and reports coarse progress around the
poller's own estimates.

RULES:
- Stages run in order; a failed stage ends the run and later stages never run
- A remote "error" status becomes TranscriptionFailedError
- Progress: 10 upload, 30 submit, 50..80 from the poller, 90 format, 100 done
- No state is shared between runs; the credential is never stored
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from audio_transcriber.api.client import ProgressCallback, TranscriptionClient
from audio_transcriber.api.errors import TranscriptionFailedError
from audio_transcriber.api.models import (
    AudioSource,
    FormattedFile,
    OutputRequest,
    ProgressEstimate,
)
from audio_transcriber.formatters import FORMATTERS

logger = logging.getLogger(__name__)


class TranscriptionJobRunner:
    """Runs single-shot transcription jobs against the service.

    RULES:
    - Settings default to config values (see TranscriptionClient)
    - transport is forwarded to httpx, for tests
    """

    def __init__(
        self,
        base_url: str | None = None,
        poll_interval_s: float | None = None,
        max_poll_failures: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url
        self._poll_interval_s = poll_interval_s
        self._max_poll_failures = max_poll_failures
        self._transport = transport

    def _client(self, credential: str) -> TranscriptionClient:
        return TranscriptionClient(
            credential,
            base_url=self._base_url,
            poll_interval_s=self._poll_interval_s,
            max_poll_failures=self._max_poll_failures,
            transport=self._transport,
        )

    async def run(
        self,
        credential: str,
        audio: AudioSource,
        request: OutputRequest,
        on_progress: ProgressCallback | None = None,
        cancel_event: Any = None,
    ) -> FormattedFile:
        """Execute one transcription run end to end.

        Args:
            credential: Opaque API credential, sent with every call.
            audio: The audio payload and its display name.
            request: Transcript or subtitles output.
            on_progress: Optional callback for advisory progress.
            cancel_event: Optional object with ``is_set()``; checked while polling.

        Returns:
            The formatted output file.

        Raises:
            TranscriptionJobError: Any stage failure (see api.errors).
            ValueError: Missing credential.
        """

        def report(percent: int, stage: str) -> None:
            if on_progress:
                on_progress(ProgressEstimate(percent, stage))

        formatter = FORMATTERS[request.kind]()

        async with self._client(credential) as client:
            report(10, "Uploading audio")
            upload_url = await client.upload(audio.data)

            report(30, "Submitting transcription job")
            job_id = await client.submit(upload_url)

            result = await client.poll(job_id, on_progress=on_progress, cancel_event=cancel_event)
            if not result.succeeded:
                raise TranscriptionFailedError(result.failure_reason)

            report(90, "Preparing output")
            formatted = await formatter.format(
                request, client, job_id, result.status, audio.display_name
            )

        logger.info(
            "Job %s delivered %s (%d bytes)", job_id, formatted.filename, len(formatted.content)
        )
        report(100, "Done")
        return formatted
