"""
JSON lines reader for already-parsed log records.

Each line holds one JSON object. The first line may instead be a header
object {"#fields": [...]}; without it, field names come from the keys
of the first record. Values are typed according to guess_kind.
"""

import json
from datetime import date, datetime, time
from typing import Any, BinaryIO, Callable

from logpush.core.errors import ParseError
from logpush.core.models import Kind

from .base import BaseReader
from .kinds import guess_kind

HEADER_KEY = "#fields"

# W3C logs write "-" for an empty field
ABSENT_VALUES = ("", "-")

TRUE_VALUES = ("true", "1", "yes")
FALSE_VALUES = ("false", "0", "no")


def _parse_datetime(value: str) -> datetime:
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if not isinstance(value, str):
        raise ValueError(f"expected a boolean, got {type(value).__name__}")
    text = value.lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    raise ValueError(f"cannot parse '{value}' as boolean")


def _parse_int(value: Any) -> int:
    # bool is an int subclass; JSON true is not a number
    if isinstance(value, bool):
        raise ValueError("expected an integer, got bool")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"{value!r} has a fractional part")
        return int(value)
    if isinstance(value, str):
        return int(value)
    raise ValueError(f"expected an integer, got {type(value).__name__}")


def _parse_float(value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError("expected a number, got bool")
    if isinstance(value, (int, float, str)):
        return float(value)
    raise ValueError(f"expected a number, got {type(value).__name__}")


def _as_text(value: Any) -> str:
    return value if isinstance(value, str) else str(value)


COERCERS: dict[Kind, Callable[[Any], Any]] = {
    Kind.DATE: lambda v: date.fromisoformat(_as_text(v)),
    Kind.TIME: lambda v: time.fromisoformat(_as_text(v)),
    Kind.TIMESTAMP: lambda v: _parse_datetime(_as_text(v)),
    Kind.IP: _as_text,
    Kind.URI: _as_text,
    Kind.FLOAT64: _parse_float,
    Kind.INT64: _parse_int,
    Kind.BOOL: _parse_bool,
    Kind.STRING: _as_text,
}


class JsonLine:
    """One JSON record with typed field access."""

    __slots__ = ("record", "kinds", "line_number")

    def __init__(self, record: dict[str, Any], kinds: dict[str, Kind], line_number: int):
        self.record = record
        self.kinds = kinds
        self.line_number = line_number

    def get(self, name: str) -> Any:
        """
        Return the typed value of a field.

        Raises:
            ParseError: If the value does not parse as the field's kind
        """
        value = self.record.get(name)
        if value is None or (isinstance(value, str) and value in ABSENT_VALUES):
            return None
        kind = self.kinds.get(name, Kind.STRING)
        try:
            return COERCERS[kind](value)
        except (TypeError, ValueError) as e:
            raise ParseError(f"field '{name}' is not a valid {kind.value}: {e}", self.line_number) from e


class JsonLinesReader(BaseReader):
    """
    Reads one JSON object per line.

    Bytes that are not valid UTF-8 are kept as surrogateescape code
    points so the charset repair chain still sees the original bytes.
    """

    def __init__(self, stream: BinaryIO, guess: Callable[[str], Kind] = guess_kind):
        super().__init__(stream)
        self.guess = guess
        self._names: list[str] = []
        self._kinds: dict[str, Kind] = {}
        self._pending: JsonLine | None = None
        self._line_number = 0

    def parse_header(self) -> None:
        obj = self._read_object()
        if obj is None:
            raise ParseError("empty input: no header or record found")

        if HEADER_KEY in obj:
            fields = obj[HEADER_KEY]
            if not isinstance(fields, list) or not all(isinstance(f, str) for f in fields):
                raise ParseError(f"'{HEADER_KEY}' must be a list of strings", self._line_number)
            self._names = list(fields)
        else:
            self._names = list(obj.keys())

        if not self._names:
            raise ParseError("header declares no fields", self._line_number)

        self._kinds = {name: self.guess(name) for name in self._names}
        if HEADER_KEY not in obj:
            self._pending = JsonLine(obj, self._kinds, self._line_number)

    def field_names(self) -> list[str]:
        return list(self._names)

    def next_line(self) -> JsonLine | None:
        if self._pending is not None:
            line, self._pending = self._pending, None
            return line
        obj = self._read_object()
        if obj is None:
            return None
        return JsonLine(obj, self._kinds, self._line_number)

    def _read_object(self) -> dict[str, Any] | None:
        for raw in self.stream:
            self._line_number += 1
            text = raw.decode("utf-8", "surrogateescape").strip()
            if not text:
                continue
            try:
                obj = json.loads(text)
            except json.JSONDecodeError as e:
                raise ParseError(f"invalid JSON: {e.msg}", self._line_number) from e
            if not isinstance(obj, dict):
                raise ParseError("expected a JSON object", self._line_number)
            return obj
        return None
