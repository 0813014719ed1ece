"""
Input validation utilities for logpush.

Sanitizes log field names into PostgreSQL column names and checks the
connection settings before any file is touched.
"""

import re
from urllib.parse import urlsplit

from psycopg import ProgrammingError
from psycopg.conninfo import conninfo_to_dict

from logpush.core.errors import ConfigError

# PostgreSQL truncates longer identifiers
MAX_IDENTIFIER_LENGTH = 63

_INVALID_CHARS = re.compile(r"[^a-z0-9_]")
_REPEATED_UNDERSCORES = re.compile(r"_{2,}")


class ValidationError(ConfigError):
    """Raised when input validation fails."""
    pass


def sql_identifier(name: str) -> str:
    """
    Turn a log field name into a PostgreSQL-compatible column name.

    Lower-cases the name, drops closing parentheses, replaces every other
    non-identifier character with an underscore, then collapses repeated
    underscores, cuts the name to 63 characters and strips trailing
    underscores.

    Examples:
        >>> sql_identifier("cs-uri-stem")
        'cs_uri_stem'
        >>> sql_identifier("cs(User-Agent)")
        'cs_user_agent'
        >>> sql_identifier("time-taken")
        'time_taken'
        >>> sql_identifier("gmttime")
        'gmttime'
    """
    if not name or not isinstance(name, str):
        raise ValidationError("field name must be a non-empty string")

    ident = name.strip().lower().replace(")", "")
    ident = _INVALID_CHARS.sub("_", ident)
    ident = _REPEATED_UNDERSCORES.sub("_", ident)[:MAX_IDENTIFIER_LENGTH].rstrip("_")

    if not ident:
        raise ValidationError(f"field name {name!r} has no usable characters for a column name")

    return ident


def validate_table_name(table: str, field_name: str = "tablename") -> tuple[str, ...]:
    """
    Validate a target table name, optionally schema-qualified.

    Args:
        table: "accesslogs" or "schema.accesslogs"
        field_name: Name of the setting (for error messages)

    Returns:
        The name parts, ready for psycopg.sql.Identifier(*parts)

    Raises:
        ValidationError: If validation fails

    Examples:
        >>> validate_table_name("accesslogs")
        ('accesslogs',)
        >>> validate_table_name("logs.accesslogs")
        ('logs', 'accesslogs')
    """
    if not table or not isinstance(table, str) or not table.strip():
        raise ValidationError(f"{field_name} must be a non-empty string")

    parts = tuple(part.strip() for part in table.strip().split("."))
    if len(parts) > 2 or not all(parts):
        raise ValidationError(f"{field_name} {table!r} must be 'table' or 'schema.table'")
    for part in parts:
        if len(part) > MAX_IDENTIFIER_LENGTH:
            raise ValidationError(
                f"{field_name} part {part!r} exceeds PostgreSQL maximum length of {MAX_IDENTIFIER_LENGTH}"
            )
        if "\x00" in part:
            raise ValidationError(f"{field_name} contains null bytes")
    return parts


def validate_pg_uri(uri: str | None, field_name: str = "uri") -> str:
    """
    Validate a PostgreSQL connection string.

    Accepts URIs (postgresql://...) and key=value strings.

    Returns:
        The stripped connection string

    Raises:
        ValidationError: If the string is empty or psycopg cannot parse it
    """
    uri = (uri or "").strip()
    if not uri:
        raise ValidationError(f"Empty {field_name}")
    try:
        conninfo_to_dict(uri)
    except ProgrammingError as e:
        raise ValidationError(f"Invalid {field_name}: {e}") from e
    return uri


def validate_es_url(url: str | None, field_name: str = "url") -> str:
    """
    Validate an Elasticsearch endpoint URL.

    Examples:
        >>> validate_es_url("http://127.0.0.1:9200")
        'http://127.0.0.1:9200'
    """
    url = (url or "").strip()
    if not url:
        raise ValidationError(f"Empty {field_name}")
    parts = urlsplit(url)
    if parts.scheme not in ("http", "https"):
        raise ValidationError(f"Invalid {field_name} {url!r}: scheme must be http or https")
    if not parts.hostname:
        raise ValidationError(f"Invalid {field_name} {url!r}: missing host")
    try:
        parts.port
    except ValueError as e:
        raise ValidationError(f"Invalid {field_name} {url!r}: {e}") from e
    return url


def validate_file_path(file_path: str, field_name: str = "filename") -> str:
    """
    Validate an input file path.

    Returns:
        The path stripped of surrounding whitespace

    Raises:
        ValidationError: If the path is empty or contains null bytes
    """
    if not file_path or not isinstance(file_path, str):
        raise ValidationError(f"{field_name} must be a non-empty string")

    file_path = file_path.strip()

    if not file_path:
        raise ValidationError(f"{field_name} cannot be empty or whitespace-only")

    if "\x00" in file_path:
        raise ValidationError(f"{field_name} contains null bytes")

    return file_path
