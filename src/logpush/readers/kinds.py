"""
Type guessing from W3C extended log field names.

The same guess is used to convert values for storage and to build the
index mapping, so both sinks agree on every field's type.
"""

import re

from logpush.core.models import Kind

EXACT_KINDS = {
    "date": Kind.DATE,
    "time": Kind.TIME,
    "gmttime": Kind.TIMESTAMP,
    "localtime": Kind.TIMESTAMP,
    "timestamp": Kind.TIMESTAMP,
    "time-taken": Kind.FLOAT64,
    "cs(referer)": Kind.URI,
    "cs(referrer)": Kind.URI,
}

# Checked in order, first match wins
PATTERN_KINDS = [
    (re.compile(r"-ip$|^x-forwarded-for$"), Kind.IP),
    (re.compile(r"^cs-uri(-stem|-path|-query|-scheme)?$|^x-.*-uri$"), Kind.URI),
    (re.compile(r"-(bytes|status|substatus|win32-status|port|count|length)$"), Kind.INT64),
    (re.compile(r"-(duration|ratio|time-taken)$"), Kind.FLOAT64),
    (re.compile(r"-(cached|hit|is-.+)$|^x-is-"), Kind.BOOL),
    (re.compile(r"-date$"), Kind.DATE),
    (re.compile(r"-timestamp$"), Kind.TIMESTAMP),
]


def guess_kind(name: str) -> Kind:
    """
    Guess the Kind of a field from its name.

    Args:
        name: Field name from the log header (case-insensitive)

    Returns:
        Kind, STRING when nothing matches

    Examples:
        >>> guess_kind("sc-status")
        <Kind.INT64: 'int64'>
        >>> guess_kind("c-ip")
        <Kind.IP: 'ip'>
    """
    key = name.strip().lower()
    kind = EXACT_KINDS.get(key)
    if kind is not None:
        return kind
    for pattern, pattern_kind in PATTERN_KINDS:
        if pattern.search(key):
            return pattern_kind
    return Kind.STRING
