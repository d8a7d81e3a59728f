"""Unit tests for the in-memory job store.

WHY: The job store is the shared state between HTTP requests and
background runs. Lost updates, regressing progress, or finished jobs that
flip back to running would show clients nonsense.

HOW: Tests are organized by class, one per JobStore method or concern:
  - TestJobCreation: create_job basics, defaults and the job limit
  - TestJobRetrieval: get_job and list_jobs
  - TestJobUpdate: status transitions, progress, errors, terminal states
  - TestJobDeletion: delete and cancel signalling
  - TestTTLCleanup: expiry logic and boundary conditions
  - TestThreadSafety: concurrent access doesn't corrupt state

RULES:
- Each test creates its own JobStore instance
- Time-dependent tests use monkeypatch to control time.time()
"""

from __future__ import annotations

import threading
import time

import pytest

from audio_transcriber.api.models import FormattedFile, ProgressEstimate
from audio_transcriber.server.jobs import DEFAULT_TTL_SECONDS, JobStore, RunState


def _make_store(**kwargs) -> JobStore:
    return JobStore(**kwargs)


class TestJobCreation:
    """JobStore.create_job() creates a job in PENDING state."""

    def test_creates_job_with_pending_status(self):
        job = _make_store().create_job("test.mp3")
        assert job.status == RunState.PENDING

    def test_assigns_unique_id(self):
        store = _make_store()
        assert store.create_job("a.mp3").id != store.create_job("b.mp3").id

    def test_stores_filename_and_config(self):
        config = {"output": "subtitles", "max_chars_per_line": 32}
        job = _make_store().create_job("interview.wav", config=config)
        assert job.filename == "interview.wav"
        assert job.config == config

    def test_initial_fields_are_none_or_empty(self):
        job = _make_store().create_job("test.mp3")
        assert job.config == {}
        assert job.completed_at is None
        assert job.error is None
        assert job.progress is None
        assert job.result is None
        assert not job.cancel_event.is_set()

    def test_max_jobs_enforced(self):
        store = _make_store(max_jobs=2)
        store.create_job("a.mp3")
        store.create_job("b.mp3")
        with pytest.raises(ValueError, match="Maximum number"):
            store.create_job("c.mp3")


class TestJobRetrieval:
    """JobStore.get_job() and list_jobs()."""

    def test_get_existing_job(self):
        store = _make_store()
        created = store.create_job("test.mp3")
        assert store.get_job(created.id) is created

    def test_get_missing_job_returns_none(self):
        assert _make_store().get_job("nonexistent-id") is None

    def test_list_jobs_ordered_by_creation_time(self, monkeypatch):
        store = _make_store()
        monkeypatch.setattr(time, "time", lambda: 100.0)
        j1 = store.create_job("first.mp3")
        monkeypatch.setattr(time, "time", lambda: 101.0)
        j2 = store.create_job("second.mp3")
        assert [j.id for j in store.list_jobs()] == [j1.id, j2.id]


class TestJobUpdate:
    """JobStore.update_job() modifies job fields."""

    def test_update_status(self):
        store = _make_store()
        job = store.create_job("test.mp3")
        updated = store.update_job(job.id, status=RunState.UPLOADING)
        assert updated is job
        assert job.status == RunState.UPLOADING

    def test_update_missing_job_returns_none(self):
        assert _make_store().update_job("nonexistent", status=RunState.FAILED) is None

    def test_progress_never_regresses(self):
        store = _make_store()
        job = store.create_job("test.mp3")
        store.update_job(job.id, progress=ProgressEstimate(54, "Transcribing"))
        store.update_job(job.id, progress=ProgressEstimate(50, "Waiting for transcription"))
        assert job.progress.percent == 54

    def test_result_stored(self):
        store = _make_store()
        job = store.create_job("test.mp3")
        result = FormattedFile(b"Hello", "test.txt", "text/plain")
        store.update_job(job.id, status=RunState.COMPLETED, result=result)
        assert job.result is result

    @pytest.mark.parametrize("state", [RunState.COMPLETED, RunState.FAILED, RunState.CANCELLED])
    def test_finished_states_set_completed_at(self, state):
        store = _make_store()
        job = store.create_job("test.mp3")
        store.update_job(job.id, status=state)
        assert job.completed_at is not None

    def test_non_finished_status_does_not_set_completed_at(self):
        store = _make_store()
        job = store.create_job("test.mp3")
        store.update_job(job.id, status=RunState.TRANSCRIBING)
        assert job.completed_at is None

    def test_finished_job_keeps_status(self):
        store = _make_store()
        job = store.create_job("test.mp3")
        store.update_job(job.id, status=RunState.FAILED, error="boom")
        store.update_job(job.id, status=RunState.FORMATTING)
        assert job.status == RunState.FAILED
        assert job.error == "boom"


class TestJobDeletion:
    """JobStore.delete_job() removes jobs and signals cancellation."""

    def test_delete_existing_job(self):
        store = _make_store()
        job = store.create_job("test.mp3")
        assert store.delete_job(job.id) is True
        assert store.get_job(job.id) is None

    def test_delete_sets_cancel_event(self):
        store = _make_store()
        job = store.create_job("test.mp3")
        store.delete_job(job.id)
        assert job.cancel_event.is_set()

    def test_delete_missing_job_returns_false(self):
        assert _make_store().delete_job("nonexistent") is False


class TestTTLCleanup:
    """JobStore.cleanup_expired() removes finished jobs past their TTL."""

    def test_cleanup_removes_expired_completed_job(self, monkeypatch):
        store = _make_store(ttl_seconds=60)
        job = store.create_job("test.mp3")

        monkeypatch.setattr(time, "time", lambda: 100.0)
        store.update_job(job.id, status=RunState.COMPLETED)

        monkeypatch.setattr(time, "time", lambda: 161.0)
        assert store.cleanup_expired() == 1
        assert store.get_job(job.id) is None

    def test_cleanup_keeps_non_expired_job(self, monkeypatch):
        store = _make_store(ttl_seconds=60)
        job = store.create_job("test.mp3")

        monkeypatch.setattr(time, "time", lambda: 100.0)
        store.update_job(job.id, status=RunState.FAILED, error="err")

        monkeypatch.setattr(time, "time", lambda: 159.0)
        assert store.cleanup_expired() == 0
        assert store.get_job(job.id) is not None

    def test_cleanup_ignores_running_jobs(self, monkeypatch):
        store = _make_store(ttl_seconds=1)
        job = store.create_job("test.mp3")
        store.update_job(job.id, status=RunState.TRANSCRIBING)

        far_future = time.time() + 10000
        monkeypatch.setattr(time, "time", lambda: far_future)
        assert store.cleanup_expired() == 0
        assert store.get_job(job.id) is not None

    def test_default_ttl_is_one_hour(self):
        assert DEFAULT_TTL_SECONDS == 3600


class TestThreadSafety:
    """Concurrent access to JobStore doesn't corrupt state."""

    def test_concurrent_creates(self):
        store = _make_store()
        results = []
        errors = []

        def create_job(idx):
            try:
                results.append(store.create_job(f"file_{idx}.mp3").id)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=create_job, args=(i,)) for i in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(set(results)) == 20
        assert len(store.list_jobs()) == 20

    def test_concurrent_progress_updates_keep_maximum(self):
        store = _make_store()
        job = store.create_job("test.mp3")

        def update_progress(idx):
            store.update_job(job.id, progress=ProgressEstimate(50 + idx, "Transcribing"))

        threads = [threading.Thread(target=update_progress, args=(i,)) for i in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert job.progress.percent == 69
