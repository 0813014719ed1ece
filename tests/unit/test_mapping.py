"""
Unit tests for index mapping generation and mapping configuration.
"""

from datetime import timedelta

import pytest

from logpush.core.errors import ConfigError
from logpush.core.models import Kind
from logpush.core.schema.mapping import (
    DATETIME_FORMAT,
    TIME_FORMAT,
    build_index_options,
    build_mappings,
    build_settings,
    descriptor_for,
)
from logpush.core.schema.mapping_config import MappingConfig, MappingConfigLoader


@pytest.mark.unit
class TestBuildMappings:
    """Tests for build_mappings"""

    def test_hand_tuned_and_excluded_fields(self):
        """Test multi-field, typed field, exclusion and implicit fields together"""
        properties = build_mappings(
            ["cs-host", "sc-status", "x-custom"], excludes={"x-custom"}
        )["properties"]

        assert properties["cs-host"] == {
            "type": "text",
            "store": True,
            "fields": {"raw": {"type": "keyword"}},
            "copy_to": "fulltext",
        }
        assert properties["sc-status"] == {"type": "long", "store": True}
        assert "x-custom" not in properties
        assert properties["@timestamp"]["format"] == DATETIME_FORMAT
        assert properties["fulltext"] == {"type": "text", "store": False}

    def test_declared_order_then_implicit_fields(self):
        """Test fields keep header order with @timestamp and fulltext last"""
        properties = build_mappings(["date", "time", "c-ip"])["properties"]
        assert list(properties) == ["date", "time", "c-ip", "@timestamp", "fulltext"]

    def test_excludes_are_case_insensitive(self):
        """Test exclusion compares lower-cased names"""
        properties = build_mappings(["CS-Cookie", "date"], excludes={"cs-cookie"})["properties"]
        assert "CS-Cookie" not in properties

    @pytest.mark.parametrize("name", ["cs(User-Agent)", "CS-Host", "cs-URI-Query"])
    def test_hand_tuned_fields_any_case(self, name):
        """Test hand-tuned descriptors apply whatever the header casing"""
        assert descriptor_for(name) == descriptor_for(name.lower())
        assert descriptor_for(name)["type"] == "text"

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("date", {"type": "date", "format": "strict_date", "store": True}),
            ("time", {"type": "date", "format": TIME_FORMAT, "store": True}),
            ("gmttime", {"type": "date", "format": DATETIME_FORMAT, "store": True}),
            ("c-ip", {"type": "ip", "store": True}),
            ("time-taken", {"type": "double", "store": True}),
            ("sc-bytes", {"type": "long", "store": True}),
            ("cs-uri-stem", {"type": "keyword", "store": True}),
            ("cs-method", {"type": "keyword", "store": True, "copy_to": "fulltext"}),
            ("cs(user-agent)", {"type": "text", "store": True, "copy_to": "fulltext"}),
        ],
    )
    def test_descriptor_by_field(self, name, expected):
        """Test descriptors for hand-tuned fields and each kind"""
        assert descriptor_for(name) == expected

    def test_bool_descriptor(self):
        """Test boolean kind maps to boolean"""
        assert descriptor_for("x-is-bot", guess=lambda name: Kind.BOOL) == {"type": "boolean", "store": True}

    def test_every_field_is_stored(self):
        """Test all explicit fields set store"""
        names = ["date", "time", "c-ip", "cs-host", "cs-uri-query", "sc-status", "x-thing"]
        properties = build_mappings(names)["properties"]
        assert all(properties[name]["store"] is True for name in names)

    def test_override_wins_over_guess(self):
        """Test configured overrides replace the guessed descriptor"""
        properties = build_mappings(
            ["cs(referer)", "x-request-id"],
            overrides={"cs(Referer)": "multi", "x-request-id": "keyword_nocopy"},
        )["properties"]
        assert properties["cs(referer)"]["fields"] == {"raw": {"type": "keyword"}}
        assert properties["x-request-id"] == {"type": "keyword", "store": True}

    def test_override_with_kind_name(self):
        """Test kinds can be used as override values"""
        assert descriptor_for("x-duration", overrides={"x-duration": "float64"}) == {
            "type": "double",
            "store": True,
        }

    def test_unknown_override(self):
        """Test an unknown descriptor name is a configuration error"""
        with pytest.raises(ConfigError):
            build_mappings(["a"], overrides={"a": "bogus"})


@pytest.mark.unit
class TestIndexOptions:
    """Tests for settings and the full payload"""

    def test_settings(self):
        """Test settings layout and refresh interval rendering"""
        assert build_settings(3, 1, True, 30) == {
            "number_of_shards": 3,
            "number_of_replicas": 1,
            "shard": {"check_on_startup": True},
            "refresh_interval": "30s",
        }

    def test_refresh_interval_whole_seconds(self):
        """Test fractional intervals are truncated to whole seconds"""
        assert build_settings(refresh_interval=timedelta(seconds=2.9))["refresh_interval"] == "2s"

    def test_payload_has_settings_and_mappings(self):
        """Test top-level keys of the index creation payload"""
        options = build_index_options(["date"], shards=2)
        assert set(options) == {"settings", "mappings"}
        assert options["settings"]["number_of_shards"] == 2
        assert "date" in options["mappings"]["properties"]

    def test_doc_type_wraps_mappings(self):
        """Test legacy mapping type nesting"""
        options = build_index_options(["date"], doc_type="accesslogs")
        assert "properties" in options["mappings"]["accesslogs"]

    def test_each_call_builds_fresh_documents(self):
        """Test built documents do not share state"""
        first = build_mappings(["cs-host"])
        first["properties"]["cs-host"]["type"] = "keyword"
        assert build_mappings(["cs-host"])["properties"]["cs-host"]["type"] == "text"


@pytest.mark.unit
class TestMappingConfigLoader:
    """Tests for YAML mapping configuration"""

    def test_load(self, tmp_path):
        """Test exclusions and overrides are normalized"""
        path = tmp_path / "mapping.yaml"
        path.write_text(
            "exclude:\n"
            "  - X-Custom\n"
            "overrides:\n"
            "  CS-Referer: multi\n"
        )

        config = MappingConfigLoader(path).load()

        assert config.exclude == ["x-custom"]
        assert config.overrides == {"cs-referer": "multi"}

    def test_empty_file(self, tmp_path):
        """Test an empty file means no exclusions and no overrides"""
        path = tmp_path / "mapping.yaml"
        path.write_text("")
        assert MappingConfigLoader(path).load() == MappingConfig()

    def test_missing_file(self, tmp_path):
        """Test a missing file is a configuration error"""
        with pytest.raises(ConfigError):
            MappingConfigLoader(tmp_path / "nope.yaml")

    def test_unknown_section(self, tmp_path):
        """Test unexpected top-level keys are rejected"""
        path = tmp_path / "mapping.yaml"
        path.write_text("rules: {}\n")
        with pytest.raises(ConfigError) as exc_info:
            MappingConfigLoader(path).load()
        assert "rules" in str(exc_info.value)

    def test_unknown_descriptor(self, tmp_path):
        """Test an invalid override value is rejected when loading"""
        path = tmp_path / "mapping.yaml"
        path.write_text("overrides:\n  cs-host: nested\n")
        with pytest.raises(ConfigError):
            MappingConfigLoader(path).load()

    def test_invalid_yaml(self, tmp_path):
        """Test malformed YAML is a configuration error"""
        path = tmp_path / "mapping.yaml"
        path.write_text("exclude: [unclosed\n")
        with pytest.raises(ConfigError):
            MappingConfigLoader(path).load()

    def test_merged_adds_command_line_excludes(self):
        """Test extra exclusions are appended and lower-cased"""
        config = MappingConfig(exclude=["a"]).merged(["B"])
        assert config.exclude == ["a", "b"]
