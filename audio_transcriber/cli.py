"""Command-line interface for the audio transcriber.

WHY: Users need a simple way to transcribe one audio file from the
terminal and get a transcript or subtitle file next to it.

HOW: argparse accepts the input file, the output choice and an output
directory. The file is sniffed, one run is executed via asyncio.run(), and
the result is written to disk. Status and progress go to stderr.

RULES:
- Positional argument: input audio file path
- Rejects unsupported MIME types before any network call
- --subtitles selects SRT output; --chars-per-line sets the caption width
- Output naming: {stem}.txt / {stem}.srt, numeric suffix on conflict (-2, -3, ...)
- Exit codes: 0 success, 1 any failure, 130 interrupted
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from audio_transcriber.api.errors import TranscriptionJobError
from audio_transcriber.api.models import FormattedFile, OutputRequest, ProgressEstimate
from audio_transcriber.config import DEFAULT_MAX_CHARS_PER_LINE, load_api_key
from audio_transcriber.core.audio import is_supported_audio, load_audio
from audio_transcriber.core.runner import TranscriptionJobRunner


def _status(msg: str) -> None:
    """Print a status message to stderr."""
    print(msg, file=sys.stderr, flush=True)


def _show_progress(progress: ProgressEstimate) -> None:
    _status("[{:>3}%] {}".format(progress.percent, progress.stage))


def _resolve_output_path(filename: str, output_dir: Path) -> Path:
    """Resolve the output path, adding a numeric suffix on conflict.

    RULES:
    - First attempt: {filename} (e.g. interview.txt)
    - Conflict: insert -2, -3, ... before the extension (interview-2.txt)
    """
    base_path = output_dir / filename
    if not base_path.exists():
        return base_path

    dot_idx = filename.rfind(".")
    if dot_idx > 0:
        name, ext = filename[:dot_idx], filename[dot_idx:]
    else:
        name, ext = filename, ""

    counter = 2
    while True:
        candidate = output_dir / "{}-{}{}".format(name, counter, ext)
        if not candidate.exists():
            return candidate
        counter += 1


def save_output(output: FormattedFile, output_dir: Path) -> Path:
    """Write a formatted file into output_dir and return the path used."""
    path = _resolve_output_path(output.filename, output_dir)
    path.write_bytes(output.content)
    return path


async def _run_pipeline(args: argparse.Namespace) -> Path:
    input_path = Path(args.input_file).resolve()
    if not input_path.is_file():
        raise ValueError("File not found: {}".format(input_path))

    output_dir = Path(args.output_dir).resolve() if args.output_dir else input_path.parent
    if not output_dir.is_dir():
        raise ValueError("Output directory does not exist: {}".format(output_dir))

    audio = load_audio(input_path)
    if not is_supported_audio(audio.mime_type):
        raise ValueError(
            "Unsupported file type '{}' ({})".format(audio.mime_type, input_path.name)
        )

    if args.subtitles:
        request = OutputRequest.subtitles(args.chars_per_line)
    else:
        request = OutputRequest.transcript()

    credential = load_api_key()

    _status("Transcribing {} ({})".format(audio.display_name, audio.mime_type))
    runner = TranscriptionJobRunner()
    output = await runner.run(credential, audio, request, on_progress=_show_progress)

    saved = save_output(output, output_dir)
    _status("Saved: {}".format(saved))
    return saved


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="audio_transcriber",
        description="Transcribe an audio file with a remote speech-to-text service "
                    "and save a plain transcript or SRT subtitles.",
    )

    parser.add_argument(
        "input_file",
        help="Path to the audio file to transcribe.",
    )

    parser.add_argument(
        "--subtitles",
        action="store_true",
        help="Produce SRT subtitles instead of a plain transcript.",
    )

    parser.add_argument(
        "--chars-per-line",
        type=int,
        default=DEFAULT_MAX_CHARS_PER_LINE,
        help="Maximum characters per subtitle line, 1-100 (default: %(default)s).",
    )

    parser.add_argument(
        "--output-dir",
        default=None,
        help="Directory to save the output file (default: same as input file).",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log every status query.",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for ``python -m audio_transcriber`` and the console script."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        asyncio.run(_run_pipeline(args))
    except KeyboardInterrupt:
        _status("\nCancelled by user.")
        sys.exit(130)
    except (TranscriptionJobError, ValueError) as e:
        print("Error: {}".format(e), file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
