"""
Unit tests for run configuration and input validation.
"""

import pytest

from logpush.config import (
    ENV_ES_PASSWORD,
    ENV_ES_URL,
    ENV_ES_USERNAME,
    ENV_PG_URI,
    load_copy_target,
    load_index_target,
    load_loader_config,
)
from logpush.core.errors import ConfigError
from logpush.utils.validation import (
    ValidationError,
    sql_identifier,
    validate_es_url,
    validate_pg_uri,
    validate_table_name,
)


@pytest.mark.unit
class TestSqlIdentifier:
    """Tests for column name sanitizing"""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("date", "date"),
            ("c-ip", "c_ip"),
            ("cs-uri-stem", "cs_uri_stem"),
            ("cs(User-Agent)", "cs_user_agent"),
            ("cs(Referer)", "cs_referer"),
            ("x--odd..name", "x_odd_name"),
            ("trailing-", "trailing"),
        ],
    )
    def test_sanitize(self, name, expected):
        """Test field names become PostgreSQL column names"""
        assert sql_identifier(name) == expected

    def test_unusable_name(self):
        """Test a name made only of separators is rejected"""
        with pytest.raises(ValidationError):
            sql_identifier("()")

    def test_truncated_to_postgres_limit(self):
        """Test long names are cut at 63 characters"""
        assert len(sql_identifier("x" * 100)) == 63

    def test_no_trailing_underscore_after_cut(self):
        """Test a separator landing on the 63rd character is stripped"""
        ident = sql_identifier("x" * 62 + "-suffix")
        assert ident == "x" * 62
        assert not ident.endswith("_")


@pytest.mark.unit
class TestConnectionValidation:
    """Tests for URI, URL and table validation"""

    def test_pg_uri(self):
        """Test URIs and key=value strings are accepted"""
        assert validate_pg_uri("  postgresql://logs@localhost/logs ") == "postgresql://logs@localhost/logs"
        assert validate_pg_uri("host=localhost dbname=logs") == "host=localhost dbname=logs"

    @pytest.mark.parametrize("uri", ["", "   ", None, "host", "postgresql://host/db?x"])
    def test_bad_pg_uri(self, uri):
        """Test empty and unparsable connection strings are rejected"""
        with pytest.raises(ConfigError):
            validate_pg_uri(uri)

    @pytest.mark.parametrize("url", ["", "127.0.0.1:9200", "ftp://host", "http://", "http://host:port"])
    def test_bad_es_url(self, url):
        """Test Elasticsearch URLs need a http(s) scheme and a host"""
        with pytest.raises(ConfigError):
            validate_es_url(url)

    def test_table_names(self):
        """Test plain and schema-qualified table names"""
        assert validate_table_name("accesslogs") == ("accesslogs",)
        assert validate_table_name("logs.accesslogs") == ("logs", "accesslogs")
        with pytest.raises(ConfigError):
            validate_table_name("a.b.c")
        with pytest.raises(ConfigError):
            validate_table_name("")


@pytest.mark.unit
class TestLoaderConfig:
    """Tests for files and workers"""

    def test_defaults(self):
        """Test one worker by default and stripped paths"""
        config = load_loader_config([" a.jsonl "])
        assert config.filenames == ["a.jsonl"]
        assert config.workers == 1

    def test_no_files(self):
        """Test an empty file list is fatal"""
        with pytest.raises(ConfigError) as exc_info:
            load_loader_config([])
        assert "specify the files" in str(exc_info.value)

    def test_workers_must_be_positive(self):
        """Test zero workers is fatal"""
        with pytest.raises(ConfigError):
            load_loader_config(["a"], workers=0)


@pytest.mark.unit
class TestCopyTarget:
    """Tests for the PostgreSQL target"""

    def test_defaults(self):
        """Test table, batch size and vacuum defaults"""
        target = load_copy_target("postgresql://localhost/logs")
        assert target.table == "accesslogs"
        assert target.batch_size == 5000
        assert target.vacuum is True

    def test_uri_from_environment(self, monkeypatch):
        """Test the URI falls back to the environment"""
        monkeypatch.setenv(ENV_PG_URI, "postgresql://env-host/logs")
        assert load_copy_target().uri == "postgresql://env-host/logs"

    def test_empty_uri(self, monkeypatch):
        """Test a missing URI is fatal"""
        monkeypatch.delenv(ENV_PG_URI, raising=False)
        with pytest.raises(ConfigError) as exc_info:
            load_copy_target()
        assert "Empty uri" in str(exc_info.value)

    def test_batch_size_must_be_positive(self):
        """Test zero batch size is fatal"""
        with pytest.raises(ConfigError):
            load_copy_target("postgresql://localhost/logs", batch_size=0)


@pytest.mark.unit
class TestIndexTarget:
    """Tests for the Elasticsearch target"""

    def test_defaults(self, monkeypatch):
        """Test default URL, index and bulk settings"""
        for name in (ENV_ES_URL, ENV_ES_USERNAME, ENV_ES_PASSWORD):
            monkeypatch.delenv(name, raising=False)
        target = load_index_target()
        assert target.url == "http://127.0.0.1:9200"
        assert target.index == "accesslogs"
        assert target.bulk_actions == 1000
        assert target.bulk_workers == 2
        assert target.basic_auth is None

    def test_basic_auth_needs_both(self, monkeypatch):
        """Test credentials are used only when both are set"""
        monkeypatch.delenv(ENV_ES_PASSWORD, raising=False)
        assert load_index_target(username="elastic").basic_auth is None
        assert load_index_target(username="elastic", password="secret").basic_auth == ("elastic", "secret")

    def test_environment(self, monkeypatch):
        """Test settings fall back to the environment"""
        monkeypatch.setenv(ENV_ES_URL, "https://es.example:9243")
        monkeypatch.setenv(ENV_ES_USERNAME, "writer")
        monkeypatch.setenv(ENV_ES_PASSWORD, "pw")
        target = load_index_target()
        assert target.url == "https://es.example:9243"
        assert target.basic_auth == ("writer", "pw")

    def test_uppercase_index(self):
        """Test index names must be lowercase"""
        with pytest.raises(ConfigError):
            load_index_target("http://localhost:9200", "AccessLogs")
