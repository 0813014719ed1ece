"""
Readers for already-tokenized log records.
"""

from .base import BaseReader, ParsedLine, ReaderFactory
from .jsonl_reader import JsonLinesReader
from .kinds import guess_kind
from .registry import READER_REGISTRY, get_reader_factory

__all__ = [
    "BaseReader",
    "ParsedLine",
    "ReaderFactory",
    "JsonLinesReader",
    "READER_REGISTRY",
    "get_reader_factory",
    "guess_kind",
]
