"""Speech-to-text service client package.

WHY: A run uploads audio, creates a job, polls it, and optionally fetches
captions. This package keeps all service communication behind one async
client class, with typed status models and a typed error taxonomy.

RULES:
- All HTTP calls go through TranscriptionClient (no direct httpx usage elsewhere)
- Authentication is a bearer credential supplied per run
"""

from audio_transcriber.api.client import TranscriptionClient
from audio_transcriber.api.models import JobStatus, OutputRequest, TranscriptStatus

__all__ = ["JobStatus", "OutputRequest", "TranscriptStatus", "TranscriptionClient"]
