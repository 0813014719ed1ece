"""
Sink-native value types produced by the converter.

Null is the typed null marker: one cached instance per Kind, so a row
full of absent values allocates nothing. TimeOfDay carries a
time-of-day with nanosecond precision and knows how to write itself
as PostgreSQL's binary time (microseconds since midnight).
"""

import struct
from datetime import time
from typing import NamedTuple

from .kind import Kind

USECS_PER_HOUR = 3_600_000_000
USECS_PER_MINUTE = 60_000_000
USECS_PER_SEC = 1_000_000
NANOSECS_PER_USEC = 1000

_INT64 = struct.Struct("!q")


class Null:
    """Typed null marker for a Kind."""

    __slots__ = ("kind",)

    _instances: dict[Kind, "Null"] = {}

    def __new__(cls, kind: Kind) -> "Null":
        instance = cls._instances.get(kind)
        if instance is None:
            instance = super().__new__(cls)
            instance.kind = kind
            cls._instances[kind] = instance
        return instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return f"Null({self.kind.value})"


class TimeOfDay(NamedTuple):
    """Time of day with nanosecond precision."""

    hour: int
    minute: int
    second: int
    nanosecond: int = 0

    @classmethod
    def from_time(cls, value: time) -> "TimeOfDay":
        return cls(value.hour, value.minute, value.second, value.microsecond * NANOSECS_PER_USEC)

    @property
    def microseconds(self) -> int:
        """Microseconds since midnight."""
        return (
            self.hour * USECS_PER_HOUR
            + self.minute * USECS_PER_MINUTE
            + self.second * USECS_PER_SEC
            + self.nanosecond // NANOSECS_PER_USEC
        )

    def encode_binary(self, buf: bytearray) -> bytearray:
        """
        Append the binary time encoding to buf.

        Args:
            buf: Output buffer, extended in place

        Returns:
            The same buffer
        """
        buf += _INT64.pack(self.microseconds)
        return buf

    def isoformat(self) -> str:
        text = f"{self.hour:02d}:{self.minute:02d}:{self.second:02d}"
        micros = self.nanosecond // NANOSECS_PER_USEC
        if micros:
            text += f".{micros:06d}"
        return text
