"""
FileUploader - drives one log file from open to the last flush.

States:
    OPENING -> HEADER_PARSED -> STREAMING <-> FLUSHING -> FINALIZING -> DONE
    any of the above -> FAILED

Rows are flushed every `batch_size` lines and once more for the trailing
partial batch. Batches flushed before a failure stay in the sink.
"""

import threading
import time
import uuid
from datetime import date, datetime, timezone
from datetime import time as dt_time
from enum import Enum
from typing import Any, Callable

from logpush.core.conversion import ValueConverter, is_zero
from logpush.core.errors import ConversionError, FileOpenError, LoaderError, PostLoadError
from logpush.core.models import FieldSpec, Kind, TimeOfDay, UploadResult
from logpush.observability.logger import get_logger
from logpush.observability.metrics import (
    flush_duration_seconds,
    record_conversion_error,
    record_flush,
    record_upload,
    track_duration,
)
from logpush.readers.base import ParsedLine, ReaderFactory
from logpush.readers.kinds import guess_kind
from logpush.sinks.base import BulkSink, SinkFactory

from .rows import Row, RowBuffer, RowPool

logger = get_logger(__name__)

ID_FIELD = "id"
GMTTIME_FIELD = "gmttime"


class UploadState(str, Enum):
    OPENING = "opening"
    HEADER_PARSED = "header_parsed"
    STREAMING = "streaming"
    FLUSHING = "flushing"
    FINALIZING = "finalizing"
    DONE = "done"
    FAILED = "failed"


class IdGenerator:
    """
    Time-ordered unique row ids (UUID version 1).

    Shared by all workers; generation is serialized so two threads can
    never draw the same clock sequence.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def next_id(self) -> uuid.UUID:
        with self._lock:
            return uuid.uuid1()


def build_field_specs(
    field_names: list[str],
    has_gmttime: bool,
    guess: Callable[[str], Kind] = guess_kind,
) -> list[FieldSpec]:
    """
    Column layout for a file: id, then gmttime when the parser lacks it,
    then the parsed fields in header order.
    """
    specs = [FieldSpec(name=ID_FIELD, kind=Kind.STRING, synthetic=True)]
    if not has_gmttime:
        specs.append(FieldSpec(name=GMTTIME_FIELD, kind=Kind.TIMESTAMP, synthetic=True))
    specs.extend(FieldSpec(name=name, kind=guess(name)) for name in field_names)
    return specs


def derive_gmttime(line: ParsedLine) -> datetime | None:
    """
    UTC timestamp from a line's date and time fields.

    Returns None when either is missing or zero.
    """
    day = line.get("date")
    tod = line.get("time")
    if day is None or tod is None or is_zero(day) or is_zero(tod):
        return None
    if isinstance(day, datetime):
        day = day.date()
    if isinstance(tod, dt_time):
        tod = TimeOfDay.from_time(tod)
    if not isinstance(day, date) or not isinstance(tod, TimeOfDay):
        raise ConversionError(
            Kind.TIMESTAMP.value, (day, tod), "gmttime needs a date and a time of day"
        )
    return datetime(
        day.year, day.month, day.day,
        tod.hour, tod.minute, tod.second, tod.nanosecond // 1000,
        tzinfo=timezone.utc,
    )


class FileUploader:
    """
    Uploads one file to one sink.

    Attributes:
        filename: Input file path
        state: Current UploadState
        lines: Lines read so far
        committed_rows: Rows the sink reports as durably stored
        flushes: Number of non-empty flushes performed
    """

    def __init__(
        self,
        filename: str,
        sink_factory: SinkFactory,
        reader_factory: ReaderFactory,
        converter: ValueConverter | None = None,
        pool: RowPool | None = None,
        ids: IdGenerator | None = None,
        guess: Callable[[str], Kind] = guess_kind,
    ):
        """
        Initialize file uploader.

        Args:
            filename: Input file path
            sink_factory: Hands out the sink for this file
            reader_factory: Builds a reader over the opened binary stream
            converter: Value converter (default charset chain)
            pool: Row pool, usually shared by every uploader of a run
            ids: Row id generator, shared by every uploader of a run
            guess: Type-guess function for field names
        """
        self.filename = filename.strip()
        self.sink_factory = sink_factory
        self.reader_factory = reader_factory
        self.converter = converter or ValueConverter()
        self.pool = pool or RowPool()
        self.ids = ids or IdGenerator()
        self.guess = guess

        self.state = UploadState.OPENING
        self.lines = 0
        self.committed_rows = 0
        self.flushes = 0
        self._sink: BulkSink | None = None

    def run(self) -> UploadResult:
        """
        Upload the file and report the outcome.

        Never raises for per-file problems; they end up in the result.
        """
        start = time.perf_counter()
        status = "success"
        error = None

        try:
            self._upload()
            self.state = UploadState.DONE
        except PostLoadError as e:
            # every batch is in, only the maintenance step failed
            self.state = UploadState.FAILED
            status, error = "partial", str(e)
        except LoaderError as e:
            self.state = UploadState.FAILED
            status, error = "failed", str(e)
        except Exception as e:
            self.state = UploadState.FAILED
            status, error = "failed", f"{type(e).__name__}: {e}"
            logger.error(f"Unexpected error uploading '{self.filename}'", exc_info=True)
        finally:
            if self._sink is not None:
                self.committed_rows = self._sink.committed

        result = UploadResult(
            filename=self.filename,
            status=status,
            lines=self.lines,
            committed_rows=self.committed_rows,
            duration_seconds=time.perf_counter() - start,
            error=error,
            worker=threading.current_thread().name,
        )
        self._report(result)
        return result

    def _upload(self) -> None:
        try:
            stream = open(self.filename, "rb")
        except OSError as e:
            raise FileOpenError(self.filename, e.strerror or str(e)) from e

        logger.info(f"Uploading: {self.filename}")
        with stream, self.sink_factory.acquire() as sink:
            self._sink = sink
            reader = self.reader_factory(stream)
            reader.parse_header()
            fields = build_field_specs(reader.field_names(), reader.has_gmttime(), self.guess)
            self.state = UploadState.HEADER_PARSED

            columns = sink.prepare(fields)
            buffer = RowBuffer(self.sink_factory.batch_size, len(fields), self.pool)
            try:
                self._stream_lines(reader, sink, columns, fields, buffer)
                self.state = UploadState.FINALIZING
                self._flush(sink, columns, buffer)
                sink.finish()
            finally:
                buffer.reset()

    def _stream_lines(self, reader, sink: BulkSink, columns: list[str], fields: list[FieldSpec], buffer: RowBuffer) -> None:
        self.state = UploadState.STREAMING
        while True:
            line = reader.next_line()
            if line is None:
                return
            row, full = buffer.checkout()
            if full:
                self._flush(sink, columns, buffer)
                row, _ = buffer.checkout()
            self.lines += 1
            self._fill_row(buffer, row, fields, line)

    def _fill_row(self, buffer: RowBuffer, row: Row, fields: list[FieldSpec], line: ParsedLine) -> None:
        for spec in fields:
            if spec.synthetic and spec.name == ID_FIELD:
                buffer.append_field(row, self.ids.next_id())
                continue
            raw = derive_gmttime(line) if spec.synthetic and spec.name == GMTTIME_FIELD else line.get(spec.name)
            buffer.append_field(row, self._convert(spec, raw))

    def _convert(self, spec: FieldSpec, raw: Any) -> Any:
        try:
            return self.converter.convert(spec.kind, raw)
        except ConversionError as e:
            record_conversion_error(spec.kind.value)
            raise ConversionError(
                spec.kind.value, raw, f"field '{spec.name}' on line {self.lines}: {e.message}"
            ) from e

    def _flush(self, sink: BulkSink, columns: list[str], buffer: RowBuffer) -> None:
        if buffer.size() == 0:
            return
        previous = self.state
        self.state = UploadState.FLUSHING
        cursor = buffer.materialize_cursor()
        with track_duration(flush_duration_seconds, sink=sink.name):
            count = sink.flush(columns, cursor)
        buffer.reset()
        record_flush(sink.name, count)
        self.flushes += 1
        self.committed_rows = sink.committed
        self.state = previous

    def _report(self, result: UploadResult) -> None:
        record_upload(self.sink_factory.name, result.status, result.duration_seconds, result.lines)
        extra = {
            "input_file": result.filename,
            "lines": result.lines,
            "committed_rows": result.committed_rows,
            "duration_seconds": round(result.duration_seconds, 3),
            "status": result.status,
        }
        if result.succeeded:
            logger.info(result.status_line(), extra=extra)
        else:
            logger.error(result.status_line(), extra=extra)


def make_uploader_factory(
    sink_factory: SinkFactory,
    reader_factory: ReaderFactory,
    converter: ValueConverter | None = None,
    guess: Callable[[str], Kind] = guess_kind,
) -> Callable[[str], FileUploader]:
    """
    Build the filename -> FileUploader factory for one run.

    Uploaders made by the factory share one converter, one row pool and
    one id generator.
    """
    converter = converter or ValueConverter()
    pool = RowPool()
    ids = IdGenerator()

    def factory(filename: str) -> FileUploader:
        return FileUploader(
            filename,
            sink_factory,
            reader_factory,
            converter=converter,
            pool=pool,
            ids=ids,
            guess=guess,
        )

    return factory
