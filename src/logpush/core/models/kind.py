"""
Kind and FieldSpec models describing the columns of one input file.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Kind(str, Enum):
    """Closed set of type tags a log field can carry."""

    DATE = "date"
    TIME = "time"
    TIMESTAMP = "timestamp"
    IP = "ip"
    URI = "uri"
    FLOAT64 = "float64"
    INT64 = "int64"
    BOOL = "bool"
    STRING = "string"


# PostgreSQL type used for each kind in a binary COPY
PG_TYPE_NAMES = {
    Kind.DATE: "date",
    Kind.TIME: "time",
    Kind.TIMESTAMP: "timestamptz",
    Kind.IP: "inet",
    Kind.URI: "text",
    Kind.FLOAT64: "float8",
    Kind.INT64: "int8",
    Kind.BOOL: "bool",
    Kind.STRING: "text",
}


class FieldSpec(BaseModel):
    """
    One column of a file: its parser name and its type guess.

    Built once per file from the parser header. Immutable for the
    lifetime of the file.

    Attributes:
        name: Field name as reported by the parser (e.g. "cs-uri-stem")
        kind: Type guess for the field
        synthetic: True for columns the pipeline adds itself (id, gmttime)
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    kind: Kind = Kind.STRING
    synthetic: bool = False

    @property
    def pg_type(self) -> str:
        if self.name == "id" and self.synthetic:
            return "uuid"
        return PG_TYPE_NAMES.get(self.kind, "text")
