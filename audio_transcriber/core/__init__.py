"""Run orchestration and helpers: audio sniffing, filenames, the job runner."""
