"""
Reader interface between log-format parsers and the upload pipeline.

A reader turns an open binary stream into a header (field names) and a
sequence of parsed lines. Parsers living outside this package only need
the same methods; subclassing BaseReader is optional.
"""

from abc import ABC, abstractmethod
from typing import Any, BinaryIO, Callable, Iterator, Protocol


class ParsedLine(Protocol):
    """One parsed log line."""

    def get(self, name: str) -> Any:
        """Return the typed value of field name, None when absent."""
        ...


class BaseReader(ABC):
    """
    Abstract base class for readers of already-tokenized log records.
    """

    def __init__(self, stream: BinaryIO):
        """
        Initialize reader.

        Args:
            stream: Binary stream positioned at the start of the file
        """
        self.stream = stream

    @abstractmethod
    def parse_header(self) -> None:
        """
        Read the header and learn the field names.

        Raises:
            ParseError: If no usable header is found
        """
        pass

    @abstractmethod
    def field_names(self) -> list[str]:
        """Return field names in file order."""
        pass

    @abstractmethod
    def next_line(self) -> ParsedLine | None:
        """
        Return the next parsed line, None at end of input.

        Raises:
            ParseError: If the line cannot be parsed
        """
        pass

    def has_gmttime(self) -> bool:
        """Whether lines expose a GMT timestamp field themselves."""
        return any(name.lower() == "gmttime" for name in self.field_names())

    def __iter__(self) -> Iterator[ParsedLine]:
        while True:
            line = self.next_line()
            if line is None:
                return
            yield line

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(stream={getattr(self.stream, 'name', '?')})"


ReaderFactory = Callable[[BinaryIO], BaseReader]
