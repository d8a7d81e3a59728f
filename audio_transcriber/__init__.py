"""Audio Transcriber: submit audio to a speech-to-text service and collect the result.

WHY: Remote transcription is asynchronous. A caller has to upload audio,
create a job, wait for it, and fetch the output in the form it needs.
This package runs that state machine once per file and hands back a
finished transcript or subtitle file.

HOW: Four stages in strict order: upload, submit, poll, format. The
client (api/) speaks HTTP, the runner (core/) sequences the stages, and
formatters turn a completed job into a file.

RULES:
- A run is single-shot; any failure aborts it and a new run starts over
- Progress estimates are advisory and never drive control flow
"""

__version__ = "0.1.0"
