"""Tests for the command-line interface.

WHY: The CLI is the delivery collaborator for local use: it must refuse bad
input before contacting the service, save results without overwriting
earlier output, and turn failures into a single error line and exit code.

HOW: TranscriptionJobRunner is patched to one wired to the FakeService;
main() is called with an explicit argv.
"""

from __future__ import annotations

import pytest

from audio_transcriber import cli
from audio_transcriber.api.models import FormattedFile
from audio_transcriber.core.runner import TranscriptionJobRunner
from tests.conftest import BASE_URL, SAMPLE_SRT, WAV_BYTES, FakeService


@pytest.fixture
def audio_file(tmp_path):
    path = tmp_path / "interview.wav"
    path.write_bytes(WAV_BYTES)
    return path


@pytest.fixture
def fake_service(monkeypatch):
    fake = FakeService(statuses=["processing", "completed"], text="Hello world")
    monkeypatch.setenv("TRANSCRIBER_API_KEY", "cli-key")
    monkeypatch.setattr(
        cli,
        "TranscriptionJobRunner",
        lambda: TranscriptionJobRunner(
            base_url=BASE_URL, poll_interval_s=0, transport=fake.transport
        ),
    )
    return fake


class TestResolveOutputPath:
    """Conflict-free output naming."""

    def test_free_name_used_as_is(self, tmp_path):
        assert cli._resolve_output_path("a.txt", tmp_path) == tmp_path / "a.txt"

    def test_conflict_adds_counter(self, tmp_path):
        (tmp_path / "a.txt").write_text("x")
        (tmp_path / "a-2.txt").write_text("x")
        assert cli._resolve_output_path("a.txt", tmp_path) == tmp_path / "a-3.txt"

    def test_conflict_without_extension(self, tmp_path):
        (tmp_path / "notes").write_text("x")
        assert cli._resolve_output_path("notes", tmp_path) == tmp_path / "notes-2"

    def test_save_output_writes_bytes(self, tmp_path):
        path = cli.save_output(FormattedFile(b"Hi", "a.txt", "text/plain"), tmp_path)
        assert path.read_bytes() == b"Hi"


class TestMain:
    """main() end to end against the fake service."""

    def test_transcript_saved_next_to_input(self, fake_service, audio_file):
        cli.main([str(audio_file)])
        assert (audio_file.parent / "interview.txt").read_text() == "Hello world"
        auth = fake_service.requests[0].headers["Authorization"]
        assert auth == "Bearer cli-key"

    def test_subtitles_saved_to_output_dir(self, fake_service, audio_file, tmp_path):
        out_dir = tmp_path / "out"
        out_dir.mkdir()
        cli.main([str(audio_file), "--subtitles", "--chars-per-line", "20", "--output-dir", str(out_dir)])
        assert (out_dir / "interview.srt").read_text() == SAMPLE_SRT
        assert fake_service.calls("GET", "/srt")[0].url.params["chars_per_caption"] == "20"

    def test_progress_goes_to_stderr(self, fake_service, audio_file, capsys):
        cli.main([str(audio_file)])
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "[ 50%] Waiting for transcription" in captured.err
        assert "[100%] Done" in captured.err

    def test_missing_file_exits_1(self, fake_service, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main([str(tmp_path / "missing.wav")])
        assert exc_info.value.code == 1
        assert "File not found" in capsys.readouterr().err
        assert fake_service.requests == []

    def test_non_audio_rejected_before_network(self, fake_service, tmp_path, capsys):
        path = tmp_path / "notes.txt"
        path.write_text("just text")
        with pytest.raises(SystemExit) as exc_info:
            cli.main([str(path)])
        assert exc_info.value.code == 1
        assert "Unsupported file type" in capsys.readouterr().err
        assert fake_service.requests == []

    def test_invalid_caption_length(self, fake_service, audio_file, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main([str(audio_file), "--subtitles", "--chars-per-line", "0"])
        assert exc_info.value.code == 1
        assert fake_service.requests == []

    def test_service_failure_exits_1(self, fake_service, audio_file, capsys):
        fake_service.fail["submit"] = 500
        with pytest.raises(SystemExit) as exc_info:
            cli.main([str(audio_file)])
        assert exc_info.value.code == 1
        assert "Error: submit failed (HTTP 500)" in capsys.readouterr().err
        assert not (audio_file.parent / "interview.txt").exists()
