"""
Elasticsearch index options built from log field names.

Each field gets a descriptor chosen from its name: a few well-known
W3C fields are hand-tuned, the rest follow their guessed Kind. Text-ish
fields are copied into a catch-all "fulltext" field. Two fields are
always present: "@timestamp" and "fulltext".

Example:
    >>> opts = build_index_options(["date", "cs-host"], excludes=set())
    >>> opts["mappings"]["properties"]["cs-host"]["fields"]
    {'raw': {'type': 'keyword'}}
    >>> opts["settings"]["refresh_interval"]
    '1s'
"""

from datetime import timedelta
from typing import Any, Callable, Collection, Mapping

from logpush.core.errors import ConfigError
from logpush.core.models import Kind
from logpush.readers.kinds import guess_kind

FULLTEXT_FIELD = "fulltext"
TIMESTAMP_FIELD = "@timestamp"

DATE_FORMAT = "strict_date"
TIME_FORMAT = (
    "strict_time_no_millis||strict_time||strict_hour_minute_second||strict_hour_minute_second_fraction"
)
DATETIME_FORMAT = "strict_date_time_no_millis||strict_date_time"

Descriptor = dict[str, Any]


def _typed(es_type: str) -> Descriptor:
    return {"type": es_type, "store": True}


def date_field() -> Descriptor:
    return {"type": "date", "format": DATE_FORMAT, "store": True}


def time_field() -> Descriptor:
    return {"type": "date", "format": TIME_FORMAT, "store": True}


def datetime_field() -> Descriptor:
    return {"type": "date", "format": DATETIME_FORMAT, "store": True}


def keyword_field(copy_to_fulltext: bool = True) -> Descriptor:
    descriptor = _typed("keyword")
    if copy_to_fulltext:
        descriptor["copy_to"] = FULLTEXT_FIELD
    return descriptor


def text_field(copy_to_fulltext: bool = True) -> Descriptor:
    descriptor = _typed("text")
    if copy_to_fulltext:
        descriptor["copy_to"] = FULLTEXT_FIELD
    return descriptor


def multi_field() -> Descriptor:
    """Analyzed text with an exact-match "raw" keyword sub-field."""
    return {
        "type": "text",
        "store": True,
        "fields": {"raw": {"type": "keyword"}},
        "copy_to": FULLTEXT_FIELD,
    }


def fulltext_field() -> Descriptor:
    return {"type": "text", "store": False}


KIND_DESCRIPTORS: dict[Kind, Callable[[], Descriptor]] = {
    Kind.DATE: date_field,
    Kind.TIME: time_field,
    Kind.TIMESTAMP: datetime_field,
    Kind.IP: lambda: _typed("ip"),
    Kind.URI: lambda: keyword_field(copy_to_fulltext=False),
    Kind.FLOAT64: lambda: _typed("double"),
    Kind.INT64: lambda: _typed("long"),
    Kind.BOOL: lambda: _typed("boolean"),
    Kind.STRING: keyword_field,
}

# Hand-tuned descriptors for well-known fields
SPECIAL_FIELDS: dict[str, Callable[[], Descriptor]] = {
    "cs(user-agent)": text_field,
    "cs-host": multi_field,
    "cs-uri-path": multi_field,
    "cs-uri-query": multi_field,
}

# Descriptor names accepted in mapping overrides, besides Kind values
NAMED_DESCRIPTORS: dict[str, Callable[[], Descriptor]] = {
    "multi": multi_field,
    "text": text_field,
    "keyword": keyword_field,
    "keyword_nocopy": lambda: keyword_field(copy_to_fulltext=False),
}


def resolve_descriptor(name: str) -> Callable[[], Descriptor]:
    """
    Look up an override descriptor by name.

    Args:
        name: One of NAMED_DESCRIPTORS or a Kind value ("int64", "ip", ...)

    Raises:
        ConfigError: If the name is unknown
    """
    key = name.strip().lower()
    if key in NAMED_DESCRIPTORS:
        return NAMED_DESCRIPTORS[key]
    try:
        return KIND_DESCRIPTORS[Kind(key)]
    except ValueError:
        choices = sorted(NAMED_DESCRIPTORS) + [kind.value for kind in Kind]
        raise ConfigError(f"Unknown mapping descriptor '{name}'. Must be one of {choices}") from None


def descriptor_for(
    name: str,
    overrides: Mapping[str, str] | None = None,
    guess: Callable[[str], Kind] = guess_kind,
) -> Descriptor:
    """
    Descriptor for one field: override, then hand-tuned, then by Kind.
    """
    if overrides:
        override = overrides.get(name.lower())
        if override is not None:
            return resolve_descriptor(override)()
    special = SPECIAL_FIELDS.get(name.lower())
    if special is not None:
        return special()
    return KIND_DESCRIPTORS.get(guess(name), keyword_field)()


def build_mappings(
    field_names: list[str],
    excludes: Collection[str] = (),
    overrides: Mapping[str, str] | None = None,
    guess: Callable[[str], Kind] = guess_kind,
) -> dict[str, Any]:
    """
    Build the "mappings" section for the given fields.

    Args:
        field_names: Field names in declared order
        excludes: Field names to leave out (compared lower-cased)
        overrides: Lower-cased field name -> descriptor name
        guess: Type-guess function

    Returns:
        {"properties": {field: descriptor, ..., "@timestamp": ..., "fulltext": ...}}
    """
    excluded = {name.lower() for name in excludes}
    lowered_overrides = {k.lower(): v for k, v in overrides.items()} if overrides else None

    properties: dict[str, Descriptor] = {}
    for name in field_names:
        if name.lower() in excluded:
            continue
        properties[name] = descriptor_for(name, lowered_overrides, guess)

    properties[TIMESTAMP_FIELD] = datetime_field()
    properties[FULLTEXT_FIELD] = fulltext_field()
    return {"properties": properties}


def format_refresh_interval(refresh_interval: float | timedelta) -> str:
    """
    Render a refresh interval as whole seconds.

    Examples:
        >>> format_refresh_interval(30)
        '30s'
        >>> format_refresh_interval(timedelta(minutes=1, milliseconds=500))
        '60s'
    """
    if isinstance(refresh_interval, timedelta):
        refresh_interval = refresh_interval.total_seconds()
    return f"{int(refresh_interval)}s"


def build_settings(
    shards: int = 1,
    replicas: int = 0,
    check_on_startup: bool = False,
    refresh_interval: float | timedelta = 1,
) -> dict[str, Any]:
    """Build the "settings" section."""
    return {
        "number_of_shards": shards,
        "number_of_replicas": replicas,
        "shard": {"check_on_startup": check_on_startup},
        "refresh_interval": format_refresh_interval(refresh_interval),
    }


def build_index_options(
    field_names: list[str],
    excludes: Collection[str] = (),
    shards: int = 1,
    replicas: int = 0,
    check_on_startup: bool = False,
    refresh_interval: float | timedelta = 1,
    overrides: Mapping[str, str] | None = None,
    guess: Callable[[str], Kind] = guess_kind,
    doc_type: str | None = None,
) -> dict[str, Any]:
    """
    Build the full index creation payload.

    Args:
        field_names: Field names in declared order
        excludes: Field names to leave out
        shards: number_of_shards
        replicas: number_of_replicas
        check_on_startup: shard.check_on_startup
        refresh_interval: Seconds (or timedelta) between refreshes
        overrides: Field name -> descriptor name
        guess: Type-guess function
        doc_type: Wrap the mappings under this type name (pre-7 clusters)

    Returns:
        {"settings": {...}, "mappings": {...}}
    """
    mappings = build_mappings(field_names, excludes, overrides, guess)
    if doc_type:
        mappings = {doc_type: mappings}
    return {
        "settings": build_settings(shards, replicas, check_on_startup, refresh_interval),
        "mappings": mappings,
    }
