"""
Unit tests for the command-line interface.

Only paths that stop before any connection is made are covered here.
"""

import json

import pytest

from logpush.cli.main import build_parser, main
from logpush.config import ENV_PG_URI


@pytest.mark.unit
class TestParser:
    """Tests for argument parsing"""

    def test_push2pg_defaults(self):
        """Test push2pg defaults"""
        args = build_parser().parse_args(["push2pg", "--filename", "a", "--filename", "b"])
        assert args.filename == ["a", "b"]
        assert args.tablename == "accesslogs"
        assert args.parallel == 1
        assert args.batchsize == 5000
        assert args.no_vacuum is False
        assert args.parser == "jsonl"

    def test_push2es_defaults(self):
        """Test push2es defaults"""
        args = build_parser().parse_args(["push2es", "--filename", "a"])
        assert args.index == "accesslogs"
        assert args.url is None
        assert args.bulk_workers == 2


@pytest.mark.unit
class TestMain:
    """Tests for main()"""

    def test_no_command(self):
        """Test running without a command exits 1"""
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 1

    def test_push2pg_without_files(self, monkeypatch):
        """Test missing input files exit 1 before connecting"""
        monkeypatch.setenv(ENV_PG_URI, "postgresql://localhost/logs")
        with pytest.raises(SystemExit) as exc_info:
            main(["push2pg"])
        assert exc_info.value.code == 1

    def test_push2pg_empty_uri(self, monkeypatch):
        """Test an empty URI exits 1 before connecting"""
        monkeypatch.delenv(ENV_PG_URI, raising=False)
        with pytest.raises(SystemExit) as exc_info:
            main(["push2pg", "--filename", "a.jsonl", "--uri", " "])
        assert exc_info.value.code == 1

    def test_push2pg_bad_parallel(self):
        """Test zero workers exits 1"""
        with pytest.raises(SystemExit) as exc_info:
            main(["push2pg", "--filename", "a.jsonl", "--uri", "postgresql://localhost/logs", "--parallel", "0"])
        assert exc_info.value.code == 1

    def test_mapping_command(self, capsys):
        """Test the mapping command prints the index payload"""
        main(["mapping", "--field", "cs-host", "--field", "sc-status", "--field", "x-custom",
              "--exclude", "x-custom", "--refresh-interval", "30"])

        payload = json.loads(capsys.readouterr().out)
        properties = payload["mappings"]["properties"]
        assert properties["sc-status"]["type"] == "long"
        assert "x-custom" not in properties
        assert payload["settings"]["refresh_interval"] == "30s"

    def test_mapping_without_fields(self):
        """Test the mapping command needs fields"""
        with pytest.raises(SystemExit) as exc_info:
            main(["mapping"])
        assert exc_info.value.code == 1
