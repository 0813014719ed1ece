"""
Utility modules for logpush
"""

from .validation import (
    ValidationError,
    sql_identifier,
    validate_es_url,
    validate_file_path,
    validate_pg_uri,
    validate_table_name,
)

__all__ = [
    "ValidationError",
    "sql_identifier",
    "validate_es_url",
    "validate_file_path",
    "validate_pg_uri",
    "validate_table_name",
]
