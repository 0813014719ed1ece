"""
Error taxonomy for the ingestion pipeline.

Fatal errors (ConfigError) stop the run before any file is touched.
Everything else is contained to the file that raised it and ends up
in that file's UploadResult.
"""


class LoaderError(Exception):
    """Base class for every error raised by logpush."""


class ConfigError(LoaderError, ValueError):
    """Raised when the run configuration is unusable (fatal, pre-flight)."""


class FileOpenError(LoaderError):
    """Raised when an input file cannot be opened."""

    def __init__(self, filename: str, message: str):
        self.filename = filename
        self.message = message
        super().__init__(f"cannot open '{filename}': {message}")


class ParseError(LoaderError):
    """Raised by readers when the header or a line cannot be parsed."""

    def __init__(self, message: str, line_number: int | None = None):
        self.message = message
        self.line_number = line_number
        if line_number is None:
            super().__init__(message)
        else:
            super().__init__(f"line {line_number}: {message}")


class ConversionError(LoaderError):
    """Raised when a parsed value cannot be converted for its Kind."""

    def __init__(self, kind: str, value: object, message: str):
        self.kind = kind
        self.value = value
        self.message = message
        super().__init__(f"[{kind}] cannot convert {type(value).__name__}: {message}")


class RowCapacityError(LoaderError):
    """Raised when a value is appended to a row that is already full."""

    def __init__(self, capacity: int):
        self.capacity = capacity
        super().__init__(f"too many fields (max {capacity})")


class SchemaMismatchError(LoaderError):
    """Raised when a batch holds a row whose width differs from the column count."""

    def __init__(self, row_index: int, expected: int, actual: int):
        self.row_index = row_index
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"wrong number of fields (for line {row_index}, expected {expected}, got {actual})"
        )


class StaleCursorError(LoaderError):
    """Raised when a cursor is read after its batch was reset."""


class FlushError(LoaderError):
    """Raised when a sink rejects or fails to receive a batch."""


class PostLoadError(LoaderError):
    """
    Raised by the post-load maintenance step (e.g. VACUUM).

    The data has already been committed when this is raised.
    """
