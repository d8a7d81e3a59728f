"""Pydantic response models for the HTTP API.

WHY: The FastAPI endpoints need typed schemas for response serialization
and automatic OpenAPI documentation.

HOW: One model per response shape. All fields carry Field descriptions so
they show up in the /docs UI.

RULES:
- All models use Field(description=...) for OpenAPI documentation
- Response models never expose the credential or raw service responses
- Python 3.9+ compatible (no PEP 604 unions, use Optional from typing)
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ProgressInfo(BaseModel):
    """Advisory progress of a running job."""

    percent: int = Field(description="Estimated completion, 0-100. Advisory only.")
    stage: str = Field(description="Human-readable stage label.")


class JobResponse(BaseModel):
    """Transcription job status response.

    RULES:
    - error is only set when status is 'failed' or 'cancelled'
    - output_file is only set when status is 'completed'
    """

    id: str = Field(description="Unique job identifier.")
    status: str = Field(description="Current job status.")
    filename: str = Field(description="Original uploaded filename.")
    created_at: float = Field(description="Job creation timestamp (Unix epoch seconds).")
    config: Dict[str, Any] = Field(description="Requested output for this job.")
    progress: Optional[ProgressInfo] = Field(
        default=None,
        description="Latest progress estimate, once the run has started.",
    )
    error: Optional[str] = Field(
        default=None,
        description="Error message, only present when the job did not complete.",
    )
    output_file: Optional[str] = Field(
        default=None,
        description="Output filename, only present when status is 'completed'.",
    )

    model_config = {"json_schema_extra": {
        "examples": [
            {
                "id": "550e8400e29b41d4a716446655440000",
                "status": "transcribing",
                "filename": "interview.wav",
                "created_at": 1739959200.0,
                "config": {"output": "subtitles", "max_chars_per_line": 32},
                "progress": {"percent": 54, "stage": "Transcribing"},
                "error": None,
                "output_file": None,
            }
        ]
    }}


class JobCreatedResponse(BaseModel):
    """Response returned when a new transcription job is submitted."""

    id: str = Field(description="Unique job identifier for polling status.")
    status: str = Field(description="Initial job status (always 'pending').")
    filename: str = Field(description="Original uploaded filename.")


class ErrorResponse(BaseModel):
    """Standard error response body."""

    detail: str = Field(description="Human-readable error description.")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Service health status.", json_schema_extra={"example": "ok"})
    version: str = Field(description="API version string.", json_schema_extra={"example": "0.1.0"})
