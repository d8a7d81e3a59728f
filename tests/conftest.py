"""Shared test fixtures for the audio_transcriber test suite.

WHY: Client, runner and server tests all need a stand-in for the remote
speech-to-text service that answers the four endpoints and records what
was asked of it.

HOW: FakeService scripts the status sequence and per-endpoint failures,
and exposes an httpx.MockTransport that the client mounts in place of the
network. Every request is recorded for assertions.

RULES:
- No test ever reaches the real service
- Poll interval is 0 in every runner/client built by these fixtures
- The status script repeats its last entry if polled past the end
- Status script entries: a status string, an int HTTP error code, or
  CONNECT_ERROR to raise a transport exception
"""

from __future__ import annotations

import json
from typing import Dict, List, Optional

import httpx
import pytest

from audio_transcriber.api.client import TranscriptionClient
from audio_transcriber.api.models import AudioSource
from audio_transcriber.core.runner import TranscriptionJobRunner

BASE_URL = "https://stt.example.test/v2"
UPLOAD_URL = "https://cdn.example.test/upload/abc123"
JOB_ID = "job-5551"
CREDENTIAL = "secret-key"
SAMPLE_SRT = "1\n00:00:00,000 --> 00:00:01,000\nHello\n"
WAV_BYTES = b"RIFF\x24\x00\x00\x00WAVEfmt " + b"\x00" * 32

# Status script entry that makes the status query raise httpx.ConnectError
CONNECT_ERROR = "connect-error"


class FakeService:
    """Scripted fake of the remote transcription service."""

    def __init__(
        self,
        statuses: Optional[List[object]] = None,
        text: str = "Hello world",
        srt: str = SAMPLE_SRT,
    ) -> None:
        self.statuses = statuses or ["completed"]
        self.text = text
        self.srt = srt
        self.error_message = "audio too short"
        self.fail: Dict[str, int] = {}
        self.requests: List[httpx.Request] = []
        self._polls = 0

    # -- request log helpers -------------------------------------------

    def calls(self, method: str, path_suffix: str) -> List[httpx.Request]:
        return [
            r for r in self.requests
            if r.method == method and r.url.path.endswith(path_suffix)
        ]

    @property
    def status_calls(self) -> List[httpx.Request]:
        return self.calls("GET", "/transcript/{}".format(JOB_ID))

    # -- transport ------------------------------------------------------

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == "POST" and path.endswith("/upload"):
            if "upload" in self.fail:
                return httpx.Response(self.fail["upload"], text="upload rejected")
            return httpx.Response(200, json={"upload_url": UPLOAD_URL})

        if request.method == "POST" and path.endswith("/transcript"):
            if "submit" in self.fail:
                return httpx.Response(self.fail["submit"], text="bad request")
            return httpx.Response(200, json={"id": JOB_ID, "status": "queued"})

        if request.method == "GET" and path.endswith("/srt"):
            if "srt" in self.fail:
                return httpx.Response(self.fail["srt"], text="caption error")
            return httpx.Response(200, text=self.srt)

        if request.method == "GET" and path.endswith("/transcript/{}".format(JOB_ID)):
            index = min(self._polls, len(self.statuses) - 1)
            self._polls += 1
            status = self.statuses[index]
            if status == CONNECT_ERROR:
                raise httpx.ConnectError("connection refused", request=request)
            if isinstance(status, int):
                return httpx.Response(status, text="server error")
            body = {"id": JOB_ID, "status": status}
            if status == "completed":
                body["text"] = self.text
            if status == "error":
                body["error"] = self.error_message
            return httpx.Response(200, content=json.dumps(body).encode("utf-8"))

        return httpx.Response(404, text="not found")


@pytest.fixture
def service():
    return FakeService()


@pytest.fixture
def make_client():
    """Factory for a TranscriptionClient wired to a FakeService."""

    def _make(fake: FakeService, **kwargs) -> TranscriptionClient:
        kwargs.setdefault("poll_interval_s", 0)
        return TranscriptionClient(
            CREDENTIAL,
            base_url=BASE_URL,
            transport=fake.transport,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_runner():
    """Factory for a TranscriptionJobRunner wired to a FakeService."""

    def _make(fake: FakeService, **kwargs) -> TranscriptionJobRunner:
        kwargs.setdefault("poll_interval_s", 0)
        return TranscriptionJobRunner(base_url=BASE_URL, transport=fake.transport, **kwargs)

    return _make


@pytest.fixture
def wav_audio():
    return AudioSource(data=WAV_BYTES, mime_type="audio/wav", display_name="interview.wav")
