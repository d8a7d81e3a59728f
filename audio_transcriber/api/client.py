"""Async HTTP client for the remote speech-to-text service.

WHY: A transcription run talks to the service four times over: upload the
audio, create a job, poll it until it settles, and (for subtitles) fetch
rendered captions. This module keeps those HTTP details behind one client
class so the runner, CLI, server and tests never touch raw requests.

HOW: Wraps httpx.AsyncClient with bearer-token auth. The client is an async
context manager scoped to a single run: enter it with the run's credential,
exit to close the connection pool. Each stage is one method:
upload → submit → poll → fetch_subtitles.

RULES:
- Use as: async with TranscriptionClient(credential) as client: ...
- No stage retries; any non-success response aborts with the stage's error
- poll() sleeps before every status query and never busy-spins
- Progress from poll() is advisory: 50 on start, min(80, 50 + 2k) on the
  k-th "processing" observation, nothing on "queued"
- Termination is decided by the reported status only
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

import httpx

from audio_transcriber.api.errors import (
    FormatError,
    JobCancelledError,
    PollError,
    SubmitError,
    UploadError,
)
from audio_transcriber.api.models import (
    JobResult,
    JobStatus,
    ProgressEstimate,
    TranscriptStatus,
)
from audio_transcriber.config import (
    LANGUAGE_CODE,
    MAX_POLL_FAILURES,
    POLL_INTERVAL_S,
    SPEECH_MODEL,
    TRANSCRIBER_BASE_URL,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Progress constants
# ---------------------------------------------------------------------------

POLL_START_PERCENT = 50
POLL_STEP_PERCENT = 2
POLL_CEILING_PERCENT = 80

ProgressCallback = Callable[[ProgressEstimate], None]


def processing_progress(processing_count: int) -> int:
    """Return the estimate after the k-th observed "processing" status."""
    return min(POLL_CEILING_PERCENT, POLL_START_PERCENT + POLL_STEP_PERCENT * processing_count)


class TranscriptionClient:
    """Async client for one transcription run against the service.

    HOW: Holds the run's credential and an httpx.AsyncClient. The
    ``transport`` argument is passed through to httpx so tests can mount
    an httpx.MockTransport in place of the network.

    RULES:
    - credential must be a non-empty string; it is not otherwise inspected
    - base_url, model, language and poll settings default to config values
    """

    def __init__(
        self,
        credential: str,
        base_url: str | None = None,
        language_code: str | None = None,
        speech_model: str | None = None,
        poll_interval_s: float | None = None,
        max_poll_failures: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not credential:
            raise ValueError("A credential is required to contact the transcription service.")
        self._credential = credential
        self._base_url = (base_url or TRANSCRIBER_BASE_URL).rstrip("/")
        self._language_code = language_code or LANGUAGE_CODE
        self._speech_model = speech_model or SPEECH_MODEL
        self._poll_interval_s = POLL_INTERVAL_S if poll_interval_s is None else poll_interval_s
        self._max_poll_failures = (
            MAX_POLL_FAILURES if max_poll_failures is None else max_poll_failures
        )
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> TranscriptionClient:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"Authorization": f"Bearer {self._credential}"},
            timeout=httpx.Timeout(300.0, connect=30.0),
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._client:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        """Return the active httpx client, raising if not in context manager."""
        if self._client is None:
            raise RuntimeError(
                "TranscriptionClient must be used as an async context manager: "
                "async with TranscriptionClient(credential) as client: ..."
            )
        return self._client

    # ------------------------------------------------------------------
    # Step 1: Upload
    # ------------------------------------------------------------------

    async def upload(self, audio_bytes: bytes) -> str:
        """Upload raw audio and return the service's reference URL.

        RULES:
        - Empty payloads are rejected before any request is sent
        - Body is sent as application/octet-stream
        - Raises UploadError on any non-2xx response or missing upload_url

        Args:
            audio_bytes: The audio file content.

        Returns:
            The upload_url to reference the audio in submit().
        """
        if not audio_bytes:
            raise UploadError("upload failed", detail="audio payload is empty")

        client = self._ensure_client()
        logger.info("Uploading %d bytes of audio", len(audio_bytes))
        try:
            resp = await client.post(
                "/upload",
                content=audio_bytes,
                headers={"Content-Type": "application/octet-stream"},
            )
        except httpx.HTTPError as exc:
            raise UploadError("upload failed", detail=str(exc)) from exc

        if resp.status_code not in (200, 201):
            raise UploadError("upload failed", resp.status_code, resp.text)

        upload_url = _json_field(resp, "upload_url")
        if not upload_url:
            raise UploadError("upload failed", resp.status_code, "response has no upload_url")
        return upload_url

    # ------------------------------------------------------------------
    # Step 2: Submit
    # ------------------------------------------------------------------

    async def submit(self, upload_url: str) -> str:
        """Create a transcription job for uploaded audio and return its id.

        The request names the audio reference, the configured language code
        and the configured speech model.
        """
        client = self._ensure_client()
        body = {
            "audio_url": upload_url,
            "language_code": self._language_code,
            "speech_model": self._speech_model,
        }
        try:
            resp = await client.post("/transcript", json=body)
        except httpx.HTTPError as exc:
            raise SubmitError("submit failed", detail=str(exc)) from exc

        if resp.status_code not in (200, 201):
            raise SubmitError("submit failed", resp.status_code, resp.text)

        job_id = _json_field(resp, "id")
        if not job_id:
            raise SubmitError("submit failed", resp.status_code, "response has no job id")
        logger.info("Created transcription job %s", job_id)
        return job_id

    # ------------------------------------------------------------------
    # Step 3: Poll
    # ------------------------------------------------------------------

    async def poll(
        self,
        job_id: str,
        on_progress: ProgressCallback | None = None,
        cancel_event: Any = None,
    ) -> JobResult:
        """Wait for a job to reach a terminal status.

        HOW: Each iteration checks the optional cancel event, sleeps for the
        poll interval, then issues one status query. "queued" and
        "processing" keep the loop going; "completed" and "error" end it.

        RULES:
        - Returns JobResult.completed(status) on "completed"
        - Returns JobResult.failed(remote message) on "error"
        - Raises UnexpectedStatusError on any other status value
        - Raises PollError once more than max_poll_failures consecutive
          status queries fail (default 0: the first failure aborts)
        - Raises JobCancelledError when cancel_event.is_set() is true

        Args:
            job_id: The id returned by submit().
            on_progress: Optional callback receiving ProgressEstimate values.
            cancel_event: Optional object with ``is_set()``, e.g. threading.Event.

        Returns:
            The terminal JobResult.
        """
        client = self._ensure_client()
        percent = POLL_START_PERCENT
        processing_count = 0
        failures = 0
        polls = 0

        if on_progress:
            on_progress(ProgressEstimate(percent, "Waiting for transcription"))

        while True:
            if cancel_event is not None and cancel_event.is_set():
                raise JobCancelledError(job_id)

            await asyncio.sleep(self._poll_interval_s)
            polls += 1

            try:
                resp = await client.get(f"/transcript/{job_id}")
            except httpx.HTTPError as exc:
                failures += 1
                if failures > self._max_poll_failures:
                    raise PollError("status query failed", detail=str(exc)) from exc
                logger.warning("Status query %d for job %s failed: %s", polls, job_id, exc)
                continue

            if resp.status_code != 200:
                failures += 1
                if failures > self._max_poll_failures:
                    raise PollError("status query failed", resp.status_code, resp.text)
                logger.warning(
                    "Status query %d for job %s returned HTTP %d", polls, job_id, resp.status_code
                )
                continue

            failures = 0
            status = TranscriptStatus.from_dict(_json_body(resp, PollError))
            logger.debug("Job %s poll %d: %s", job_id, polls, status.status.value)

            if status.status is JobStatus.COMPLETED:
                logger.info("Job %s completed after %d polls", job_id, polls)
                return JobResult.completed(status)

            if status.status is JobStatus.ERROR:
                logger.info("Job %s reported an error: %s", job_id, status.error)
                return JobResult.failed(status.error or "no reason given")

            if status.status is JobStatus.PROCESSING:
                processing_count += 1
                percent = max(percent, processing_progress(processing_count))
                if on_progress:
                    on_progress(ProgressEstimate(percent, "Transcribing"))

    # ------------------------------------------------------------------
    # Step 4: Captions
    # ------------------------------------------------------------------

    async def fetch_subtitles(self, job_id: str, max_chars_per_line: int) -> str:
        """Fetch SRT captions for a completed job, returned verbatim."""
        client = self._ensure_client()
        try:
            resp = await client.get(
                f"/transcript/{job_id}/srt",
                params={"chars_per_caption": max_chars_per_line},
            )
        except httpx.HTTPError as exc:
            raise FormatError("caption fetch failed", detail=str(exc)) from exc

        if resp.status_code != 200:
            raise FormatError("caption fetch failed", resp.status_code, resp.text)
        return resp.text


# ---------------------------------------------------------------------------
# Response helpers (module-private)
# ---------------------------------------------------------------------------


def _json_body(resp: httpx.Response, error_cls: type) -> dict:
    """Decode a JSON object body, raising ``error_cls`` if it is not one."""
    try:
        data = resp.json()
    except ValueError as exc:
        raise error_cls("malformed response", resp.status_code, resp.text) from exc
    if not isinstance(data, dict):
        raise error_cls("malformed response", resp.status_code, resp.text)
    return data


def _json_field(resp: httpx.Response, key: str) -> str | None:
    try:
        data = resp.json()
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    value = data.get(key)
    return str(value) if value else None
