"""
Unit tests for the upload dispatcher.
"""

import io
import json
import threading
import time
from collections import Counter

import pytest

from logpush.batch.dispatcher import upload_files
from logpush.batch.uploader import make_uploader_factory
from logpush.core.errors import ConfigError
from logpush.core.models import UploadResult
from logpush.observability.logger import ROOT_LOGGER, setup_logger
from logpush.readers import JsonLinesReader


@pytest.mark.unit
class TestUploadFiles:
    """Tests for upload_files"""

    def test_each_file_exactly_once(self, write_jsonl, access_records, recording_factory):
        """Test 2 workers and 4 files: every file handled once by one worker"""
        files = [write_jsonl(f"f{i}.jsonl", access_records(50 + i)) for i in range(4)]
        factory = recording_factory(batch_size=16)

        results = upload_files(files, make_uploader_factory(factory, JsonLinesReader), workers=2)

        assert Counter(result.filename for result in results) == Counter(files)
        assert all(result.status == "success" for result in results)
        assert sorted(result.lines for result in results) == [50, 51, 52, 53]
        assert len(factory.sinks) == 4
        assert factory.released == 4
        assert {result.worker for result in results} <= {f"uploader_{i}" for i in range(2)}

    def test_failure_does_not_stop_others(self, tmp_path, write_jsonl, access_records, recording_factory):
        """Test a missing file is reported while the rest upload"""
        good = write_jsonl("good.jsonl", access_records(5))
        missing = str(tmp_path / "missing.jsonl")
        factory = recording_factory()

        results = upload_files([missing, good], make_uploader_factory(factory, JsonLinesReader), workers=2)

        by_name = {result.filename: result for result in results}
        assert by_name[missing].status == "failed"
        assert by_name[good].status == "success"

    def test_at_most_workers_in_flight(self, tmp_path):
        """Test no more than `workers` uploads run at the same time"""
        lock = threading.Lock()
        state = {"running": 0, "peak": 0}

        class SlowUploader:
            def __init__(self, filename):
                self.filename = filename

            def run(self):
                with lock:
                    state["running"] += 1
                    state["peak"] = max(state["peak"], state["running"])
                time.sleep(0.02)
                with lock:
                    state["running"] -= 1
                return UploadResult(filename=self.filename, status="success")

        results = upload_files([f"f{i}" for i in range(8)], SlowUploader, workers=3)

        assert len(results) == 8
        assert state["peak"] <= 3

    def test_unexpected_exception_becomes_failed_result(self):
        """Test an uploader crash is contained to its file"""
        class Exploding:
            def __init__(self, filename):
                self.filename = filename

            def run(self):
                raise RuntimeError("boom")

        results = upload_files(["a"], Exploding, workers=1)

        assert results[0].status == "failed"
        assert results[0].error == "boom"

    def test_workers_must_be_positive(self):
        """Test zero workers is a configuration error"""
        with pytest.raises(ConfigError):
            upload_files(["a"], lambda name: None, workers=0)

    def test_status_lines_logged_at_info(self, write_jsonl, access_records, recording_factory):
        """Test status lines with structured fields do not fail the upload"""
        stream = io.StringIO()
        setup_logger(ROOT_LOGGER, level="INFO", format_type="json", stream=stream)
        try:
            files = [write_jsonl(f"f{i}.jsonl", access_records(3)) for i in range(2)]
            results = upload_files(files, make_uploader_factory(recording_factory(), JsonLinesReader), workers=2)
        finally:
            setup_logger(ROOT_LOGGER)

        assert [result.status for result in results] == ["success", "success"]
        records = [json.loads(line) for line in stream.getvalue().splitlines()]
        status_records = [record for record in records if record["message"].startswith("Successfully uploaded")]
        assert sorted(record["input_file"] for record in status_records) == sorted(files)
        assert all(record["lines"] == 3 for record in status_records)
