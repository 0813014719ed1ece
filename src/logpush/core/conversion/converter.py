"""
ValueConverter - maps parsed field values to sink-native typed values.
"""

import ipaddress
from datetime import date, datetime, time, timezone
from typing import Any, Callable

from logpush.core.errors import ConversionError
from logpush.core.models import Kind, Null, TimeOfDay

from .charset import CharsetRepair

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address

# Kinds whose absent value is the empty string rather than a typed null
TEXT_KINDS = frozenset({Kind.STRING, Kind.URI})


def is_zero(value: Any) -> bool:
    """
    Report whether a temporal value is the parser's zero value.

    Values may report it themselves through an is_zero() method;
    otherwise date.min and datetime.min are the zero sentinels.
    """
    check = getattr(value, "is_zero", None)
    if callable(check):
        return bool(check())
    if isinstance(value, datetime):
        return value.replace(tzinfo=None) == datetime.min
    if isinstance(value, date):
        return value == date.min
    return False


class ValueConverter:
    """
    Converts a raw parsed value to the value stored in the sink.

    Absent values become the typed null for their Kind (the empty
    string for text kinds). Text always goes through charset repair.
    Numbers and booleans are passed through after a type check.
    """

    def __init__(self, charset: CharsetRepair | None = None):
        """
        Initialize converter.

        Args:
            charset: Charset repair chain applied to text (default UTF-8 / Latin-9 / ASCII)
        """
        self.charset = charset or CharsetRepair()
        self._converters: dict[Kind, Callable[[Kind, Any], Any]] = {
            Kind.DATE: self._convert_date,
            Kind.TIME: self._convert_time,
            Kind.TIMESTAMP: self._convert_timestamp,
            Kind.IP: self._convert_ip,
            Kind.URI: self._convert_text,
            Kind.FLOAT64: self._convert_float,
            Kind.INT64: self._convert_int,
            Kind.BOOL: self._convert_bool,
            Kind.STRING: self._convert_text,
        }

    def default_value(self, kind: Kind) -> Any:
        """Return the sink's null representation for kind."""
        if kind in TEXT_KINDS or kind not in self._converters:
            return ""
        return Null(kind)

    def convert(self, kind: Kind, value: Any) -> Any:
        """
        Convert one parsed value.

        Args:
            kind: Type guess for the field
            value: Parsed value, None when absent

        Returns:
            Sink-native value

        Raises:
            ConversionError: If value does not fit kind
        """
        if value is None:
            return self.default_value(kind)
        converter = self._converters.get(kind, self._convert_text)
        return converter(kind, value)

    def _convert_date(self, kind: Kind, value: Any) -> Any:
        if is_zero(value):
            return self.default_value(kind)
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        raise ConversionError(kind.value, value, "expected a date")

    def _convert_time(self, kind: Kind, value: Any) -> Any:
        if is_zero(value):
            return self.default_value(kind)
        if isinstance(value, TimeOfDay):
            return value
        if isinstance(value, time):
            return TimeOfDay.from_time(value)
        raise ConversionError(kind.value, value, "expected a time of day")

    def _convert_timestamp(self, kind: Kind, value: Any) -> Any:
        if is_zero(value):
            return self.default_value(kind)
        if not isinstance(value, datetime):
            raise ConversionError(kind.value, value, "expected a datetime")
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def _convert_ip(self, kind: Kind, value: Any) -> IPAddress:
        if isinstance(value, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
            return value
        if isinstance(value, (str, bytes)):
            try:
                return ipaddress.ip_address(value)
            except ValueError as e:
                raise ConversionError(kind.value, value, str(e)) from e
        raise ConversionError(kind.value, value, "expected an IP address")

    def _convert_text(self, kind: Kind, value: Any) -> str:
        if isinstance(value, (str, bytes, bytearray)):
            return self.charset.repair(value)
        raise ConversionError(kind.value, value, "expected text")

    def _convert_float(self, kind: Kind, value: Any) -> float:
        # bool is an int subclass but never a valid number here
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConversionError(kind.value, value, "expected a float")
        return float(value)

    def _convert_int(self, kind: Kind, value: Any) -> int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConversionError(kind.value, value, "expected an integer")
        return value

    def _convert_bool(self, kind: Kind, value: Any) -> bool:
        if not isinstance(value, bool):
            raise ConversionError(kind.value, value, "expected a boolean")
        return value


_default_converter = ValueConverter()


def convert(kind: Kind, value: Any) -> Any:
    """Convert value with the default converter."""
    return _default_converter.convert(kind, value)
