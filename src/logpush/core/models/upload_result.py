"""
UploadResult model representing the outcome of uploading one file (ephemeral).
"""

from typing import Literal

from pydantic import BaseModel, Field, field_validator


class UploadResult(BaseModel):
    """
    Outcome of driving one file through the pipeline.

    Note: UploadResult is not persisted; it feeds the per-file status
    line and the metrics.

    Attributes:
        filename: Input file path
        status: "success", "partial" (data committed, post-load step failed) or "failed"
        lines: Lines read from the file
        committed_rows: Rows durably handed to the sink
        duration_seconds: Wall time spent on the file
        error: Error message for partial and failed uploads
        worker: Name of the worker thread that handled the file
    """

    filename: str
    status: Literal["success", "partial", "failed"]
    lines: int = Field(0, ge=0)
    committed_rows: int = Field(0, ge=0)
    duration_seconds: float = Field(0.0, ge=0.0)
    error: str | None = Field(None, validate_default=True)
    worker: str | None = None

    @field_validator("error")
    @classmethod
    def check_error_consistency(cls, v, info):
        """A failed or partial upload must say why."""
        if info.data.get("status") in ("partial", "failed") and not v:
            raise ValueError(f"status={info.data.get('status')} requires an error message")
        return v

    @property
    def succeeded(self) -> bool:
        return self.status == "success"

    @property
    def lines_per_second(self) -> int:
        if self.duration_seconds <= 0:
            return 0
        return int(self.lines / self.duration_seconds)

    def status_line(self) -> str:
        """One-line summary for the error stream."""
        if self.status == "success":
            return (
                f"Successfully uploaded: {self.filename} ({self.lines} lines, "
                f"{self.duration_seconds:f} secs, {self.lines_per_second} lines/sec)"
            )
        if self.status == "partial":
            return (
                f"Uploaded with errors: {self.filename} ({self.committed_rows} rows committed, "
                f"{self.duration_seconds:f} secs): {self.error}"
            )
        return f"Error uploading '{self.filename}': {self.error}"
