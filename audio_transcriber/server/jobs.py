"""In-memory job store with progress tracking and TTL cleanup.

WHY: The HTTP API returns a job ID immediately and runs transcription in
the background, since a run can take minutes. The store tracks each run
through its stages so clients can poll status and progress, then download
the result. An in-memory store is enough for a single-process service.

HOW: Three components work together:
  RunState: enum of API-visible job states
  Job: dataclass holding metadata, progress, result and cancel event
  JobStore: thread-safe dict-based store with create/update/get/list/delete
            and TTL cleanup of finished jobs

RULES:
- All store mutations are protected by threading.Lock
- Results are held in memory on the Job (no temp files)
- The credential is never stored on a Job
- delete_job() sets the job's cancel event so a running poll stops
- Progress never moves backwards for a job
- Default TTL is 1 hour (3600 seconds)
"""

from __future__ import annotations

import enum
import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from audio_transcriber.api.models import FormattedFile, ProgressEstimate

logger = logging.getLogger(__name__)

# Default time-to-live for finished jobs (seconds)
DEFAULT_TTL_SECONDS = 3600


class RunState(str, enum.Enum):
    """API-visible states of a transcription job.

    RULES:
    - pending: job created, background run not started
    - uploading / submitting / transcribing / formatting: run stages
    - completed: output file ready for download
    - failed: any stage failed; error holds the reason
    - cancelled: the job was deleted while running
    """

    PENDING = "pending"
    UPLOADING = "uploading"
    SUBMITTING = "submitting"
    TRANSCRIBING = "transcribing"
    FORMATTING = "formatting"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_finished(self) -> bool:
        return self in (RunState.COMPLETED, RunState.FAILED, RunState.CANCELLED)


@dataclass
class Job:
    """Metadata and state for a single transcription job.

    RULES:
    - id: UUID4 hex string, immutable after creation
    - filename: original uploaded filename
    - config: output choice, e.g. {"output": "subtitles", "max_chars_per_line": 32}
    - progress: latest ProgressEstimate, or None before the run starts
    - result: the FormattedFile once status is COMPLETED
    - cancel_event: set when the job is deleted
    """

    id: str
    status: RunState
    filename: str
    created_at: float
    updated_at: float
    completed_at: Optional[float] = None
    error: Optional[str] = None
    progress: Optional[ProgressEstimate] = None
    config: Dict[str, Any] = field(default_factory=dict)
    result: Optional[FormattedFile] = None
    cancel_event: threading.Event = field(default_factory=threading.Event)


class JobStore:
    """Thread-safe in-memory store for transcription jobs.

    RULES:
    - All public methods that mutate state acquire self._lock
    - get_job() returns None for missing job IDs (no exceptions)
    - create_job() raises ValueError once max_jobs jobs are stored
    - cleanup_expired() removes finished jobs older than the TTL
    """

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        max_jobs: int = 100,
    ) -> None:
        self._jobs: Dict[str, Job] = {}
        self._lock = threading.Lock()
        self._ttl_seconds = ttl_seconds
        self.max_jobs = max_jobs

    def create_job(
        self,
        filename: str,
        config: Optional[Dict[str, Any]] = None,
    ) -> Job:
        """Create a new job in PENDING state and return it."""
        with self._lock:
            if len(self._jobs) >= self.max_jobs:
                raise ValueError(
                    "Maximum number of concurrent jobs ({}) reached".format(self.max_jobs)
                )

            now = time.time()
            job = Job(
                id=uuid.uuid4().hex,
                status=RunState.PENDING,
                filename=filename,
                created_at=now,
                updated_at=now,
                config=config or {},
            )
            self._jobs[job.id] = job

        logger.info("Created job %s for file %s", job.id, filename)
        return job

    def get_job(self, job_id: str) -> Optional[Job]:
        with self._lock:
            return self._jobs.get(job_id)

    def list_jobs(self) -> List[Job]:
        """Return all jobs, oldest first."""
        with self._lock:
            return sorted(self._jobs.values(), key=lambda j: j.created_at)

    def update_job(
        self,
        job_id: str,
        status: Optional[RunState] = None,
        error: Optional[str] = None,
        progress: Optional[ProgressEstimate] = None,
        result: Optional[FormattedFile] = None,
    ) -> Optional[Job]:
        """Update a job's mutable fields.

        RULES:
        - Returns the updated Job, or None if job_id not found
        - Only non-None arguments are applied
        - A progress value lower than the current one is ignored
        - A finished job keeps its status; later status updates are ignored
        - completed_at is set when the job first reaches a finished state
        """
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return None

            now = time.time()

            if status is not None and not job.status.is_finished:
                job.status = status
                if status.is_finished:
                    job.completed_at = now
            if error is not None:
                job.error = error
            if progress is not None:
                if job.progress is None or progress.percent >= job.progress.percent:
                    job.progress = progress
            if result is not None:
                job.result = result

            job.updated_at = now
            return job

    def delete_job(self, job_id: str) -> bool:
        """Delete a job, signalling its run to stop if still polling.

        Returns True if the job was found and deleted, False otherwise.
        """
        with self._lock:
            job = self._jobs.pop(job_id, None)

        if job is None:
            return False

        job.cancel_event.set()
        logger.info("Deleted job %s", job_id)
        return True

    def cleanup_expired(self) -> int:
        """Remove finished jobs whose completed_at is older than the TTL.

        Returns the count of removed jobs.
        """
        now = time.time()
        expired_jobs: List[Job] = []

        with self._lock:
            for job_id, job in list(self._jobs.items()):
                if not job.status.is_finished or job.completed_at is None:
                    continue
                if now - job.completed_at > self._ttl_seconds:
                    expired_jobs.append(self._jobs.pop(job_id))

        for job in expired_jobs:
            logger.info("Expired job %s (finished %.0fs ago)", job.id, now - job.completed_at)

        return len(expired_jobs)
