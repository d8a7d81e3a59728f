"""Configuration constants, supported audio types, and .env loading.

WHY: Centralizes every tunable value of the transcription workflow so it
is easy to find and override: service endpoint, the fixed language and
model sent with each job, the poll interval, and caption bounds.

HOW: python-dotenv loads the .env file on import. Constants are plain
module-level values read from the environment with sensible defaults.
load_api_key() gives a clear error when no credential is configured.

RULES:
- The core never reads the API key itself; only the CLI and server call
  load_api_key() and hand the credential to the runner
- MAX_POLL_FAILURES defaults to 0 (first failed status query aborts the run)
- Caption length is an integer in MIN_CHARS_PER_LINE..MAX_CHARS_PER_LINE
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()

# ---------------------------------------------------------------------------
# Remote service
# ---------------------------------------------------------------------------

TRANSCRIBER_BASE_URL = os.getenv("TRANSCRIBER_BASE_URL", "https://api.assemblyai.com/v2")
LANGUAGE_CODE = os.getenv("TRANSCRIBER_LANGUAGE_CODE", "en")
SPEECH_MODEL = os.getenv("TRANSCRIBER_SPEECH_MODEL", "best")

# ---------------------------------------------------------------------------
# Polling
# ---------------------------------------------------------------------------

POLL_INTERVAL_S = float(os.getenv("TRANSCRIBER_POLL_INTERVAL_S", "1.0"))
MAX_POLL_FAILURES = int(os.getenv("TRANSCRIBER_MAX_POLL_FAILURES", "0"))
"""Consecutive failed status queries tolerated before the run aborts."""

# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

MIN_CHARS_PER_LINE = 1
MAX_CHARS_PER_LINE = 100
DEFAULT_MAX_CHARS_PER_LINE = int(os.getenv("DEFAULT_MAX_CHARS_PER_LINE", "32"))

# ---------------------------------------------------------------------------
# Supported audio MIME types
# ---------------------------------------------------------------------------

SUPPORTED_MIME_TYPES: set[str] = {
    "audio/wav", "audio/x-wav", "audio/mpeg", "audio/flac", "audio/ogg",
    "audio/webm", "audio/mp4", "audio/x-m4a", "audio/aiff", "audio/x-aiff",
    "audio/amr", "audio/aac", "video/mp4", "video/webm",
}
"""MIME types accepted for upload (lowercase)."""


def load_api_key() -> str:
    """Load the transcription service API key from the environment.

    RULES:
    - Reads TRANSCRIBER_API_KEY (populated by python-dotenv)
    - Raises ValueError if the key is missing or empty
    """
    key = os.getenv("TRANSCRIBER_API_KEY", "").strip()
    if not key:
        raise ValueError(
            "Transcription API key not configured. "
            "Add TRANSCRIBER_API_KEY to the .env file or the environment."
        )
    return key
