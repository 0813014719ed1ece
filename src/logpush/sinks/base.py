"""
Bulk sink interface.

A sink receives a file's rows one batch at a time. The uploader calls,
in order: prepare() once after the header, flush() once per full batch
and once for the trailing partial batch, then finish() once.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Any, Iterable

from logpush.core.models import FieldSpec


class BulkSink(ABC):
    """
    Abstract base class for bulk sinks.

    Attributes:
        name: Sink label used in logs and metrics
        committed: Rows durably stored so far
    """

    name = "sink"

    def __init__(self) -> None:
        self.committed = 0

    @abstractmethod
    def prepare(self, fields: list[FieldSpec]) -> list[str]:
        """
        Get ready for a file with the given columns.

        Args:
            fields: Column specs in row order

        Returns:
            Column names as the sink expects them, in row order
        """
        pass

    @abstractmethod
    def flush(self, column_names: list[str], cursor: Iterable[list[Any]]) -> int:
        """
        Hand one batch to the sink.

        Args:
            column_names: Names returned by prepare()
            cursor: Single-pass iterator over row values

        Returns:
            Number of rows handed over

        Raises:
            FlushError: If the sink rejects the batch
        """
        pass

    def finish(self) -> None:
        """
        Complete the file after its last flush.

        Raises:
            FlushError: If buffered rows cannot be delivered
            PostLoadError: If post-load maintenance fails
        """


class SinkFactory(ABC):
    """
    Hands out one sink per file.

    Attributes:
        name: Sink label used in logs and metrics
        batch_size: Rows per batch for files written to this sink
    """

    name = "sink"
    batch_size = 5000

    @abstractmethod
    def acquire(self) -> AbstractContextManager[BulkSink]:
        """Context manager holding the sink's resources for one file."""
        pass
