"""
Batched, pooled upload of log files.
"""

from .dispatcher import upload_files
from .rows import BatchCursor, Row, RowBuffer, RowPool
from .uploader import FileUploader, IdGenerator, UploadState, build_field_specs, make_uploader_factory

__all__ = [
    "BatchCursor",
    "Row",
    "RowBuffer",
    "RowPool",
    "FileUploader",
    "IdGenerator",
    "UploadState",
    "build_field_specs",
    "make_uploader_factory",
    "upload_files",
]
