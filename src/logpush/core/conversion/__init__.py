"""
Value conversion from parsed log fields to sink-native values.
"""

from .charset import CharsetRepair, repair_text
from .converter import ValueConverter, convert, is_zero

__all__ = [
    "CharsetRepair",
    "ValueConverter",
    "convert",
    "is_zero",
    "repair_text",
]
