"""Audio source construction and MIME-type sniffing.

WHY: The service accepts opaque audio bytes, but callers should learn that a
file is not audio before a run uploads it. Sniffing the leading bytes is the
only local inspection done; audio is never decoded.

HOW: sniff_mime_type() checks well-known container signatures, falls back to
the filename extension via mimetypes, and finally to
application/octet-stream. load_audio() reads a file into an AudioSource.

RULES:
- Signatures take precedence over the filename extension
- is_supported_audio() checks against config.SUPPORTED_MIME_TYPES
"""

from __future__ import annotations

import mimetypes
from pathlib import Path

from audio_transcriber.api.models import AudioSource
from audio_transcriber.config import SUPPORTED_MIME_TYPES

OCTET_STREAM = "application/octet-stream"


def sniff_mime_type(data: bytes, filename: str = "") -> str:
    """Guess the MIME type of an audio payload.

    Args:
        data: Leading bytes of the file (the whole payload is fine).
        filename: Optional display name used when no signature matches.

    Returns:
        A lowercase MIME type string.
    """
    head = data[:16]

    if head[:4] == b"RIFF" and head[8:12] == b"WAVE":
        return "audio/wav"
    if head[:4] == b"fLaC":
        return "audio/flac"
    if head[:4] == b"OggS":
        return "audio/ogg"
    if head[:4] == b"\x1a\x45\xdf\xa3":
        return "audio/webm"
    if head[:4] == b"FORM" and head[8:12] in (b"AIFF", b"AIFC"):
        return "audio/aiff"
    if head[:6] == b"#!AMR\n":
        return "audio/amr"
    if head[4:8] == b"ftyp":
        # M4A brands are audio-only; anything else is an MP4 container
        if head[8:11] == b"M4A":
            return "audio/mp4"
        return "video/mp4"
    if head[:3] == b"ID3":
        return "audio/mpeg"
    if len(head) >= 2 and head[0] == 0xFF and head[1] & 0xF6 == 0xF0:
        return "audio/aac"
    if len(head) >= 2 and head[0] == 0xFF and head[1] & 0xE0 == 0xE0:
        return "audio/mpeg"

    if filename:
        guessed, _ = mimetypes.guess_type(filename)
        if guessed:
            return guessed.lower()

    return OCTET_STREAM


def is_supported_audio(mime_type: str) -> bool:
    return mime_type.lower() in SUPPORTED_MIME_TYPES


def make_audio_source(data: bytes, display_name: str, mime_type: str | None = None) -> AudioSource:
    """Build an AudioSource, sniffing the MIME type when none is declared."""
    return AudioSource(
        data=data,
        mime_type=mime_type or sniff_mime_type(data, display_name),
        display_name=display_name,
    )


def load_audio(path: Path) -> AudioSource:
    """Read an audio file from disk into an AudioSource."""
    path = Path(path)
    return make_audio_source(path.read_bytes(), path.name)
