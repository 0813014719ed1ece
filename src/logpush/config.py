"""
Run configuration models.

Every setting is checked before the first file is opened; any problem
surfaces as ConfigError.
"""

import os
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from logpush.core.errors import ConfigError
from logpush.utils.validation import (
    validate_es_url,
    validate_file_path,
    validate_pg_uri,
    validate_table_name,
)

DEFAULT_TABLE = "accesslogs"
DEFAULT_INDEX = "accesslogs"
DEFAULT_ES_URL = "http://127.0.0.1:9200"
DEFAULT_BATCH_SIZE = 5000

# Environment variables consulted when a setting is not given explicitly
ENV_PG_URI = "LOGPUSH_PG_URI"
ENV_ES_URL = "LOGPUSH_ES_URL"
ENV_ES_USERNAME = "LOGPUSH_ES_USERNAME"
ENV_ES_PASSWORD = "LOGPUSH_ES_PASSWORD"


class LoaderConfig(BaseModel):
    """
    Input files and worker count.

    Attributes:
        filenames: Files to upload, each exactly once
        workers: Files uploaded concurrently
    """

    model_config = ConfigDict(frozen=True)

    filenames: list[str]
    workers: int = Field(1, ge=1)

    @field_validator("filenames")
    @classmethod
    def check_filenames(cls, v: list[str]) -> list[str]:
        """At least one file; paths stripped."""
        filenames = [validate_file_path(name) for name in v]
        if not filenames:
            raise ValueError("specify the files to be parsed")
        return filenames


class CopyTargetConfig(BaseModel):
    """
    PostgreSQL target.

    Attributes:
        uri: Connection URI or key=value string
        table: Target table, optionally schema-qualified
        batch_size: Rows per COPY
        vacuum: Run VACUUM on the table after each file
    """

    model_config = ConfigDict(frozen=True)

    uri: str
    table: str = DEFAULT_TABLE
    batch_size: int = Field(DEFAULT_BATCH_SIZE, ge=1)
    vacuum: bool = True

    @field_validator("uri")
    @classmethod
    def check_uri(cls, v: str) -> str:
        return validate_pg_uri(v)

    @field_validator("table")
    @classmethod
    def check_table(cls, v: str) -> str:
        validate_table_name(v)
        return v.strip()


class IndexTargetConfig(BaseModel):
    """
    Elasticsearch target.

    Attributes:
        url: Endpoint URL (http or https)
        index: Index name
        username: Basic auth user (used only together with password)
        password: Basic auth password
        shards: number_of_shards for a new index
        replicas: number_of_replicas for a new index
        check_on_startup: shard.check_on_startup for a new index
        refresh_interval: Seconds between index refreshes
        bulk_actions: Pending actions that trigger a bulk request
        bulk_workers: Threads per bulk request
        doc_type: Mapping type name for pre-7 clusters
    """

    model_config = ConfigDict(frozen=True)

    url: str = DEFAULT_ES_URL
    index: str = DEFAULT_INDEX
    username: str | None = None
    password: str | None = None
    shards: int = Field(1, ge=1)
    replicas: int = Field(0, ge=0)
    check_on_startup: bool = False
    refresh_interval: float = Field(1.0, ge=0)
    bulk_actions: int = Field(1000, ge=1)
    bulk_workers: int = Field(2, ge=1)
    doc_type: str | None = None

    @field_validator("url")
    @classmethod
    def check_url(cls, v: str) -> str:
        return validate_es_url(v)

    @field_validator("index")
    @classmethod
    def check_index(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("index must be a non-empty string")
        if v != v.lower():
            raise ValueError(f"index name '{v}' must be lowercase")
        return v

    @property
    def basic_auth(self) -> tuple[str, str] | None:
        if self.username and self.password:
            return (self.username, self.password)
        return None


def _build(model: type[BaseModel], values: dict[str, Any]) -> Any:
    # None means "not given": fall back to the model default
    try:
        return model(**{k: v for k, v in values.items() if v is not None})
    except ValidationError as e:
        messages = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or model.__name__}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigError(f"Invalid configuration: {messages}") from e


def load_loader_config(filenames: list[str] | None, workers: int | None = None) -> LoaderConfig:
    """
    Raises:
        ConfigError: If no file is given or workers < 1
    """
    return _build(LoaderConfig, {"filenames": filenames or [], "workers": workers})


def load_copy_target(
    uri: str | None = None,
    table: str | None = None,
    batch_size: int | None = None,
    vacuum: bool | None = None,
) -> CopyTargetConfig:
    """
    Build the PostgreSQL target, taking the URI from $LOGPUSH_PG_URI if not given.

    Raises:
        ConfigError: If the URI is empty or malformed, or batch_size < 1
    """
    return _build(
        CopyTargetConfig,
        {
            "uri": uri if uri is not None else os.getenv(ENV_PG_URI, ""),
            "table": table,
            "batch_size": batch_size,
            "vacuum": vacuum,
        },
    )


def load_index_target(
    url: str | None = None,
    index: str | None = None,
    username: str | None = None,
    password: str | None = None,
    **options: Any,
) -> IndexTargetConfig:
    """
    Build the Elasticsearch target, falling back to $LOGPUSH_ES_* variables.

    Raises:
        ConfigError: If a setting is invalid
    """
    return _build(
        IndexTargetConfig,
        {
            "url": url if url is not None else os.getenv(ENV_ES_URL),
            "index": index,
            "username": username if username is not None else os.getenv(ENV_ES_USERNAME),
            "password": password if password is not None else os.getenv(ENV_ES_PASSWORD),
            **options,
        },
    )
