"""Package entry point for ``python -m audio_transcriber``."""

from audio_transcriber.cli import main

if __name__ == "__main__":
    main()
