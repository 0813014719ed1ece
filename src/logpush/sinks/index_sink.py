"""
Elasticsearch sink.

Rows become documents keyed by field name; the synthetic id becomes the
document _id and gmttime is copied into @timestamp. Absent values are
left out of the document.
"""

import threading
import uuid
from contextlib import contextmanager
from datetime import date, datetime
from ipaddress import IPv4Address, IPv6Address
from typing import Any, Iterable

from elasticsearch import ApiError, BadRequestError, Elasticsearch, TransportError

from logpush.core.errors import FlushError
from logpush.core.models import FieldSpec, Null, TimeOfDay
from logpush.core.schema.mapping import TIMESTAMP_FIELD, build_index_options
from logpush.core.schema.mapping_config import MappingConfig
from logpush.observability.logger import get_logger, log_operation

from .base import BulkSink, SinkFactory
from .bulk_processor import DEFAULT_BULK_ACTIONS, DEFAULT_WORKERS, BulkProcessor

logger = get_logger(__name__)

ID_FIELD = "id"
GMTTIME_FIELD = "gmttime"


def to_json_value(value: Any) -> Any:
    """
    Convert a sink value to its JSON form.

    Examples:
        >>> to_json_value(date(2024, 3, 1))
        '2024-03-01'
        >>> to_json_value(TimeOfDay(8, 30, 0))
        '08:30:00'
        >>> to_json_value(IPv4Address("10.0.0.1"))
        '10.0.0.1'
    """
    if isinstance(value, (datetime, date, TimeOfDay)):
        return value.isoformat()
    if isinstance(value, (IPv4Address, IPv6Address, uuid.UUID)):
        return str(value)
    return value


def to_document(column_names: list[str], values: list[Any]) -> tuple[str | None, dict[str, Any]]:
    """
    Build (document id, document source) from one row.

    Null markers and empty strings are omitted.
    """
    doc_id = None
    doc: dict[str, Any] = {}
    for name, value in zip(column_names, values):
        if value.__class__ is Null or value == "":
            continue
        if name == ID_FIELD:
            doc_id = str(value)
            continue
        doc[name] = to_json_value(value)
    if GMTTIME_FIELD in doc:
        doc[TIMESTAMP_FIELD] = doc[GMTTIME_FIELD]
    return doc_id, doc


class IndexSink(BulkSink):
    """
    Bulk sink writing documents into one Elasticsearch index.
    """

    name = "elasticsearch"

    def __init__(self, factory: "IndexSinkFactory", processor: BulkProcessor):
        super().__init__()
        self.factory = factory
        self.processor = processor
        self.index = factory.index
        self.doc_type = factory.doc_type

    def prepare(self, fields: list[FieldSpec]) -> list[str]:
        names = [field.name for field in fields]
        self.factory.ensure_index([name for name in names if name != ID_FIELD])
        return names

    def flush(self, column_names: list[str], cursor: Iterable[list[Any]]) -> int:
        count = 0
        for values in cursor:
            doc_id, doc = to_document(column_names, values)
            self.processor.add(doc, self.index, self.doc_type, doc_id)
            count += 1
        self.committed = self.processor.committed
        return count

    def finish(self) -> None:
        self.processor.flush()
        self.committed = self.processor.committed


class IndexSinkFactory(SinkFactory):
    """
    Shares one client and one index; each file gets its own BulkProcessor.

    The index is created on first use with settings and mappings built
    from that file's field names.
    """

    name = IndexSink.name

    def __init__(
        self,
        client: Elasticsearch,
        index: str = "accesslogs",
        batch_size: int = DEFAULT_BULK_ACTIONS,
        bulk_actions: int = DEFAULT_BULK_ACTIONS,
        bulk_workers: int = DEFAULT_WORKERS,
        mapping_config: MappingConfig | None = None,
        shards: int = 1,
        replicas: int = 0,
        check_on_startup: bool = False,
        refresh_interval: float = 1,
        doc_type: str | None = None,
    ):
        self.client = client
        self.index = index
        self.batch_size = batch_size
        self.bulk_actions = bulk_actions
        self.bulk_workers = bulk_workers
        self.mapping_config = mapping_config or MappingConfig()
        self.shards = shards
        self.replicas = replicas
        self.check_on_startup = check_on_startup
        self.refresh_interval = refresh_interval
        self.doc_type = doc_type
        self._index_ready = False
        self._lock = threading.Lock()

    def index_options(self, field_names: list[str]) -> dict[str, Any]:
        return build_index_options(
            field_names,
            excludes=self.mapping_config.exclude,
            shards=self.shards,
            replicas=self.replicas,
            check_on_startup=self.check_on_startup,
            refresh_interval=self.refresh_interval,
            overrides=self.mapping_config.overrides,
            doc_type=self.doc_type,
        )

    def ensure_index(self, field_names: list[str]) -> None:
        """
        Create the index unless it already exists.

        Raises:
            FlushError: If the cluster cannot be reached or refuses the index
        """
        with self._lock:
            if self._index_ready:
                return
            try:
                if not self.client.indices.exists(index=self.index):
                    options = self.index_options(field_names)
                    with log_operation("Creating index", logger=logger, index=self.index):
                        self.client.indices.create(
                            index=self.index,
                            settings=options["settings"],
                            mappings=options["mappings"],
                        )
            except BadRequestError as e:
                # another process created it between exists() and create()
                if e.error != "resource_already_exists_exception":
                    raise FlushError(f"cannot create index {self.index}: {e}") from e
            except (ApiError, TransportError) as e:
                raise FlushError(f"cannot create index {self.index}: {e}") from e
            self._index_ready = True

    @contextmanager
    def acquire(self):
        processor = BulkProcessor(
            self.client,
            bulk_actions=self.bulk_actions,
            workers=self.bulk_workers,
            name=f"{self.index}-bulk",
        )
        yield IndexSink(self, processor)
