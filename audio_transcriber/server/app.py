"""FastAPI application exposing transcription runs over HTTP.

WHY: Other tools (web front ends, automation, curl) need to submit audio,
watch progress, and download the finished transcript or subtitles without
embedding the Python runner.

HOW: POST /transcriptions accepts a multipart upload plus the output
choice, creates a job, and executes one TranscriptionJobRunner run as a
background task. The run reports progress into the JobStore, which the
status endpoint reads. The finished file is served by the download endpoint.

RULES:
- Credential comes from "Authorization: Bearer <key>", else load_api_key()
- The credential is passed to the background run only, never stored
- Uploads are sniffed; empty or non-audio payloads are rejected with 400
- DELETE cancels a running poll via the job's cancel event
- Python 3.9+ compatible (no match/case, no PEP 604 unions)
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Annotated, Optional
from urllib.parse import quote

from fastapi import BackgroundTasks, FastAPI, File, Form, Header, HTTPException, UploadFile
from fastapi.responses import Response

from audio_transcriber import __version__
from audio_transcriber.api.errors import JobCancelledError, TranscriptionJobError
from audio_transcriber.api.models import (
    AudioSource,
    OutputKind,
    OutputRequest,
    ProgressEstimate,
)
from audio_transcriber.config import DEFAULT_MAX_CHARS_PER_LINE, load_api_key
from audio_transcriber.core.audio import is_supported_audio, make_audio_source
from audio_transcriber.core.runner import TranscriptionJobRunner
from audio_transcriber.server.jobs import Job, JobStore, RunState
from audio_transcriber.server.models import (
    ErrorResponse,
    HealthResponse,
    JobCreatedResponse,
    JobResponse,
    ProgressInfo,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App and store setup
# ---------------------------------------------------------------------------

job_store = JobStore()
job_runner = TranscriptionJobRunner()


async def _periodic_cleanup() -> None:
    """Run job cleanup every 5 minutes."""
    while True:
        await asyncio.sleep(300)
        job_store.cleanup_expired()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start periodic cleanup on startup, cancel on shutdown."""
    task = asyncio.create_task(_periodic_cleanup())
    yield
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass


app = FastAPI(
    lifespan=lifespan,
    title="Audio Transcriber API",
    description=(
        "Submit an audio file for remote speech-to-text, poll for status and "
        "progress, and download the result as a plain transcript or SRT subtitles."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _job_to_response(job: Job) -> JobResponse:
    """Convert an internal Job dataclass to a JobResponse Pydantic model."""
    progress = None
    if job.progress is not None:
        progress = ProgressInfo(percent=job.progress.percent, stage=job.progress.stage)
    return JobResponse(
        id=job.id,
        status=job.status.value,
        filename=job.filename,
        created_at=job.created_at,
        config=job.config,
        progress=progress,
        error=job.error,
        output_file=job.result.filename if job.result else None,
    )


def _resolve_credential(authorization: Optional[str]) -> str:
    """Return the caller's bearer credential, or the configured key."""
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() == "bearer" and token.strip():
            return token.strip()
        raise HTTPException(status_code=401, detail="Authorization must be 'Bearer <key>'")
    try:
        return load_api_key()
    except ValueError as exc:
        raise HTTPException(status_code=401, detail=str(exc))


def _content_disposition(filename: str) -> str:
    """Build an attachment header value safe for any filename.

    The plain ``filename`` parameter gets an ASCII-only fallback; the exact
    name travels in the RFC 5987 ``filename*`` parameter.
    """
    fallback = "".join(
        c if 32 <= ord(c) < 127 and c not in '"\\' else "_" for c in filename
    )
    return "attachment; filename=\"{}\"; filename*=UTF-8''{}".format(
        fallback, quote(filename, safe="")
    )


def _state_for_progress(percent: int) -> RunState:
    """Map the runner's progress milestones onto API job states."""
    if percent < 30:
        return RunState.UPLOADING
    if percent < 50:
        return RunState.SUBMITTING
    if percent < 90:
        return RunState.TRANSCRIBING
    return RunState.FORMATTING


async def _run_job(
    job_id: str,
    store: JobStore,
    credential: str,
    audio: AudioSource,
    request: OutputRequest,
    runner: Optional[TranscriptionJobRunner] = None,
) -> None:
    """Execute one transcription run for a stored job.

    RULES:
    - Progress updates move the job through uploading → formatting
    - Success stores the FormattedFile and marks the job completed
    - JobCancelledError marks the job cancelled
    - Any other exception marks the job failed, so no job is left unfinished
    """
    job = store.get_job(job_id)
    if job is None:
        return

    def on_progress(progress: ProgressEstimate) -> None:
        store.update_job(job_id, status=_state_for_progress(progress.percent), progress=progress)

    try:
        result = await (runner or job_runner).run(
            credential,
            audio,
            request,
            on_progress=on_progress,
            cancel_event=job.cancel_event,
        )
    except JobCancelledError as exc:
        logger.info("Job %s cancelled", job_id)
        store.update_job(job_id, status=RunState.CANCELLED, error=str(exc))
    except (TranscriptionJobError, ValueError) as exc:
        logger.exception("Transcription run failed for job %s", job_id)
        store.update_job(job_id, status=RunState.FAILED, error=str(exc))
    except Exception as exc:
        logger.exception("Unexpected error in transcription run for job %s", job_id)
        store.update_job(
            job_id,
            status=RunState.FAILED,
            error="internal error: {}: {}".format(type(exc).__name__, exc),
        )
    else:
        store.update_job(job_id, status=RunState.COMPLETED, result=result)


def _run_job_sync(
    job_id: str,
    store: JobStore,
    credential: str,
    audio: AudioSource,
    request: OutputRequest,
) -> None:
    """Synchronous wrapper so BackgroundTasks runs the job in a worker thread."""
    asyncio.run(_run_job(job_id, store, credential, audio, request))


# ---------------------------------------------------------------------------
# Endpoints: Transcriptions
# ---------------------------------------------------------------------------


@app.post(
    "/transcriptions",
    response_model=JobCreatedResponse,
    status_code=201,
    tags=["transcriptions"],
    summary="Submit a transcription job",
    description=(
        "Upload an audio file and choose the output. Returns a job ID "
        "immediately; the transcription runs in the background. "
        "Poll GET /transcriptions/{id} for status and progress."
    ),
    responses={
        400: {"model": ErrorResponse, "description": "Invalid file or output options"},
        401: {"model": ErrorResponse, "description": "No credential available"},
        429: {"model": ErrorResponse, "description": "Too many jobs"},
    },
)
async def create_transcription(
    background_tasks: BackgroundTasks,
    file: Annotated[
        UploadFile,
        File(description="Audio file to transcribe"),
    ],
    output: Annotated[
        str,
        Form(description="Output to produce: 'transcript' or 'subtitles'."),
    ] = OutputKind.TRANSCRIPT.value,
    max_chars_per_line: Annotated[
        str,
        Form(description="Maximum characters per subtitle line (1-100)."),
    ] = str(DEFAULT_MAX_CHARS_PER_LINE),
    authorization: Annotated[
        Optional[str],
        Header(description="Bearer credential for the speech-to-text service."),
    ] = None,
) -> JobCreatedResponse:
    # Sanitize filename to prevent path traversal
    filename = Path(file.filename or "upload").name

    try:
        kind = OutputKind(output)
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail="Unknown output '{}'. Available: transcript, subtitles".format(output),
        )

    try:
        if kind is OutputKind.SUBTITLES:
            try:
                chars = int(max_chars_per_line)
            except ValueError:
                raise ValueError(
                    "max_chars_per_line must be an integer, got '{}'".format(max_chars_per_line)
                )
            request = OutputRequest.subtitles(chars)
        else:
            request = OutputRequest.transcript()
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    credential = _resolve_credential(authorization)

    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")

    audio = make_audio_source(content, filename)
    if not is_supported_audio(audio.mime_type):
        raise HTTPException(
            status_code=400,
            detail="Unsupported file type '{}'".format(audio.mime_type),
        )

    config = {"output": kind.value}
    if request.max_chars_per_line is not None:
        config["max_chars_per_line"] = request.max_chars_per_line

    try:
        job = job_store.create_job(filename=filename, config=config)
    except ValueError as exc:
        raise HTTPException(status_code=429, detail=str(exc))

    background_tasks.add_task(_run_job_sync, job.id, job_store, credential, audio, request)

    return JobCreatedResponse(
        id=job.id,
        status=job.status.value,
        filename=job.filename,
    )


@app.get(
    "/transcriptions/{job_id}",
    response_model=JobResponse,
    tags=["transcriptions"],
    summary="Get transcription job status",
    description="Current status, progress estimate, and output filename when complete.",
    responses={
        404: {"model": ErrorResponse, "description": "Job not found"},
    },
)
async def get_transcription(job_id: str) -> JobResponse:
    job = job_store.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found: {}".format(job_id))
    return _job_to_response(job)


@app.get(
    "/transcriptions/{job_id}/file",
    tags=["transcriptions"],
    summary="Download the output file",
    description="Download the transcript or subtitle file of a completed job.",
    responses={
        404: {"model": ErrorResponse, "description": "Job not found"},
        409: {"model": ErrorResponse, "description": "Job not yet completed"},
    },
)
async def download_transcription_file(job_id: str) -> Response:
    job = job_store.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found: {}".format(job_id))

    if job.status != RunState.COMPLETED or job.result is None:
        raise HTTPException(
            status_code=409,
            detail="Job is not completed (current status: {}).".format(job.status.value),
        )

    return Response(
        content=job.result.content,
        media_type=job.result.media_type,
        headers={"Content-Disposition": _content_disposition(job.result.filename)},
    )


@app.delete(
    "/transcriptions/{job_id}",
    status_code=204,
    tags=["transcriptions"],
    summary="Delete a transcription job",
    description=(
        "Delete a job and its output. A job that is still polling the "
        "service stops at its next poll."
    ),
    responses={
        404: {"model": ErrorResponse, "description": "Job not found"},
    },
)
async def delete_transcription(job_id: str) -> Response:
    if not job_store.delete_job(job_id):
        raise HTTPException(status_code=404, detail="Job not found: {}".format(job_id))
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Endpoints: Health
# ---------------------------------------------------------------------------


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["health"],
    summary="Health check",
    description="Liveness check for load balancers and orchestrators.",
)
async def health_check() -> HealthResponse:
    return HealthResponse(status="ok", version=__version__)


def run_api():
    """Entry point for the audio-transcriber-api console script."""
    import uvicorn
    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host="0.0.0.0", port=8000)
