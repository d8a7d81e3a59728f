"""Output formatter registry.

WHY: The runner, CLI and server look up the formatter for a requested
output in one place.

HOW: FORMATTERS maps OutputKind values to formatter *classes* (not
instances). Callers instantiate as needed:
``formatter = FORMATTERS[OutputKind.SUBTITLES]()``.

RULES:
- Every OutputKind has exactly one registered formatter
- Every formatter listed here must be importable without side effects
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from audio_transcriber.api.models import OutputKind
from audio_transcriber.formatters.plain_text import TranscriptFormatter
from audio_transcriber.formatters.srt_captions import SRTSubtitleFormatter

if TYPE_CHECKING:
    from audio_transcriber.formatters.base import BaseFormatter

FORMATTERS: dict[OutputKind, type[BaseFormatter]] = {
    OutputKind.TRANSCRIPT: TranscriptFormatter,
    OutputKind.SUBTITLES: SRTSubtitleFormatter,
}
