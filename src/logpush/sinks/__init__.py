"""
Bulk sinks: PostgreSQL COPY and Elasticsearch bulk indexing.
"""

from .base import BulkSink, SinkFactory
from .bulk_processor import BulkProcessor
from .copy_sink import CopySink, CopySinkFactory
from .index_sink import IndexSink, IndexSinkFactory, to_document

__all__ = [
    "BulkSink",
    "SinkFactory",
    "BulkProcessor",
    "CopySink",
    "CopySinkFactory",
    "IndexSink",
    "IndexSinkFactory",
    "to_document",
]
