"""
psycopg adapters for logpush value types.

TimeOfDay knows how to write its own binary form; the dumpers here only
hand it a buffer. Registered on every pooled connection.
"""

from datetime import time

from psycopg import postgres
from psycopg.abc import AdaptContext
from psycopg.adapt import Dumper
from psycopg.pq import Format

from logpush.core.models import TimeOfDay

TIME_OID = postgres.types["time"].oid


def _as_time_of_day(obj: TimeOfDay | time) -> TimeOfDay:
    if isinstance(obj, TimeOfDay):
        return obj
    return TimeOfDay.from_time(obj)


class TimeOfDayDumper(Dumper):
    """Text dumper: HH:MM:SS[.ffffff]."""

    oid = TIME_OID

    def dump(self, obj):
        return _as_time_of_day(obj).isoformat().encode()


class TimeOfDayBinaryDumper(Dumper):
    """Binary dumper: int64 microseconds since midnight."""

    format = Format.BINARY
    oid = TIME_OID

    def dump(self, obj):
        return _as_time_of_day(obj).encode_binary(bytearray())


def register_adapters(context: AdaptContext) -> None:
    """
    Register logpush dumpers on a connection or adapters map.

    Also replaces the by-oid time dumpers used by COPY set_types(),
    which is why the dumpers accept datetime.time as well.
    """
    context.adapters.register_dumper(TimeOfDay, TimeOfDayDumper)
    context.adapters.register_dumper(TimeOfDay, TimeOfDayBinaryDumper)
