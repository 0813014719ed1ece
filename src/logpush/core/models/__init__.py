"""
Core data models for the log ingestion pipeline.

Models describing files and results use Pydantic; row values are plain
Python objects plus the Null and TimeOfDay types.
"""

from .kind import PG_TYPE_NAMES, FieldSpec, Kind
from .upload_result import UploadResult
from .values import Null, TimeOfDay

__all__ = [
    "Kind",
    "FieldSpec",
    "PG_TYPE_NAMES",
    "Null",
    "TimeOfDay",
    "UploadResult",
]
