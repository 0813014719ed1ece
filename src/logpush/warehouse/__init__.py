"""
PostgreSQL connection management and type adapters.
"""

from .adapters import TimeOfDayBinaryDumper, TimeOfDayDumper, register_adapters
from .connection import DatabaseConnectionPool

__all__ = [
    "DatabaseConnectionPool",
    "TimeOfDayDumper",
    "TimeOfDayBinaryDumper",
    "register_adapters",
]
