"""
Pytest configuration and fixtures for logpush tests

This module provides shared fixtures for unit, integration, and E2E tests.
Unit tests run against in-memory readers and recording sinks; integration
tests start PostgreSQL with testcontainers.
"""
import json
from contextlib import contextmanager
from typing import Any, Generator

import psycopg
import pytest
from testcontainers.postgres import PostgresContainer

from logpush.core.errors import FlushError, PostLoadError
from logpush.core.models import FieldSpec
from logpush.sinks.base import BulkSink, SinkFactory


# =======================
# PYTEST CONFIGURATION
# =======================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests that don't require external services"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that require Docker containers"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests that test the full pipeline"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take more than 5 seconds to run"
    )


# =======================
# RECORDING SINK
# =======================

class RecordingSink(BulkSink):
    """
    In-memory sink that keeps a copy of every flushed row.

    Rows are copied because the batch hands out pooled storage.
    """

    name = "recording"

    def __init__(self, factory: "RecordingSinkFactory"):
        super().__init__()
        self.factory = factory
        self.fields: list[FieldSpec] = []
        self.columns: list[str] = []
        self.flush_sizes: list[int] = []
        self.rows: list[list[Any]] = []
        self.finished = False

    def prepare(self, fields):
        self.fields = list(fields)
        self.columns = [field.name for field in fields]
        return self.columns

    def flush(self, column_names, cursor):
        if self.factory.fail_on_flush == len(self.flush_sizes) + 1:
            raise FlushError(f"flush {self.factory.fail_on_flush} rejected")
        batch = [list(values) for values in cursor]
        self.flush_sizes.append(len(batch))
        self.rows.extend(batch)
        self.committed += len(batch)
        return len(batch)

    def finish(self):
        if self.factory.fail_finish:
            raise PostLoadError("VACUUM accesslogs failed: lock timeout")
        self.finished = True


class RecordingSinkFactory(SinkFactory):
    """Hands out RecordingSinks and remembers them."""

    name = "recording"

    def __init__(self, batch_size: int = 5000, fail_on_flush: int | None = None, fail_finish: bool = False):
        self.batch_size = batch_size
        self.fail_on_flush = fail_on_flush
        self.fail_finish = fail_finish
        self.sinks: list[RecordingSink] = []
        self.released = 0

    @contextmanager
    def acquire(self):
        sink = RecordingSink(self)
        self.sinks.append(sink)
        try:
            yield sink
        finally:
            self.released += 1


@pytest.fixture
def recording_factory():
    """
    Build RecordingSinkFactory instances

    Returns:
        The RecordingSinkFactory class
    """
    return RecordingSinkFactory


# =======================
# INPUT FILE FIXTURES
# =======================

@pytest.fixture
def write_jsonl(tmp_path):
    """
    Write JSON lines input files

    Returns:
        Function (name, records, fields=None) -> path; fields adds a header line
    """
    def _write(name: str, records: list[dict[str, Any]], fields: list[str] | None = None) -> str:
        path = tmp_path / name
        with open(path, "w", encoding="utf-8") as f:
            if fields is not None:
                f.write(json.dumps({"#fields": fields}) + "\n")
            for record in records:
                f.write(json.dumps(record) + "\n")
        return str(path)

    return _write


@pytest.fixture
def access_records():
    """
    Build W3C-style access log records

    Returns:
        Function (count) -> list of records
    """
    def _records(count: int) -> list[dict[str, Any]]:
        return [
            {
                "date": "2024-03-01",
                "time": f"12:{(i // 60) % 60:02d}:{i % 60:02d}",
                "c-ip": f"10.0.{(i // 256) % 256}.{i % 256}",
                "cs-method": "GET",
                "cs-uri-stem": f"/page/{i}",
                "sc-status": 200,
                "sc-bytes": 512 + i,
                "time-taken": 0.25,
            }
            for i in range(count)
        ]

    return _records


# =======================
# DATABASE FIXTURES (Testcontainers)
# =======================

@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    """
    Start PostgreSQL container for integration tests

    Yields:
        PostgresContainer instance
    """
    with PostgresContainer(
        image="postgres:16.2-alpine",
        username="test_logpush",
        password="test_password",
        dbname="test_accesslogs",
        driver=None,
    ) as postgres:
        # Wait for container to be ready
        postgres.get_connection_url()
        yield postgres


@pytest.fixture(scope="session")
def postgres_uri(postgres_container) -> str:
    """Plain postgresql:// URI for the test container"""
    return postgres_container.get_connection_url()


@pytest.fixture(scope="function")
def accesslogs_table(postgres_uri) -> Generator[str, None, None]:
    """
    Create an empty accesslogs table matching the access_records columns

    Yields:
        Table name
    """
    ddl = """
        CREATE TABLE accesslogs (
            id uuid PRIMARY KEY,
            gmttime timestamptz,
            date date,
            time time,
            c_ip inet,
            cs_method text,
            cs_uri_stem text,
            sc_status int8,
            sc_bytes int8,
            time_taken float8
        )
    """
    with psycopg.connect(postgres_uri, autocommit=True) as conn:
        conn.execute("DROP TABLE IF EXISTS accesslogs")
        conn.execute(ddl)

    yield "accesslogs"

    with psycopg.connect(postgres_uri, autocommit=True) as conn:
        conn.execute("DROP TABLE IF EXISTS accesslogs")
