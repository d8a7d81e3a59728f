"""Output filename derivation.

RULES:
- The stem is everything before the first "." of the display name
  ("meeting.recording.mp3" -> "meeting"); a name without a dot is its own stem
- An empty stem (".hidden", "") falls back to "transcript"
- Transcripts end in ".txt", subtitles in ".srt"
"""

from __future__ import annotations

from audio_transcriber.api.models import OutputKind

FALLBACK_STEM = "transcript"

EXTENSIONS: dict[OutputKind, str] = {
    OutputKind.TRANSCRIPT: ".txt",
    OutputKind.SUBTITLES: ".srt",
}


def derive_stem(display_name: str) -> str:
    stem = display_name.split(".", 1)[0]
    return stem or FALLBACK_STEM


def output_filename(display_name: str, kind: OutputKind) -> str:
    """Return the delivered filename, e.g. ("interview.wav", SUBTITLES) -> "interview.srt"."""
    return derive_stem(display_name) + EXTENSIONS[kind]
