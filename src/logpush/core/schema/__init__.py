"""
Index mapping and settings generation.
"""

from .mapping import (
    FULLTEXT_FIELD,
    TIMESTAMP_FIELD,
    build_index_options,
    build_mappings,
    build_settings,
    descriptor_for,
)
from .mapping_config import MappingConfig, MappingConfigLoader

__all__ = [
    "FULLTEXT_FIELD",
    "TIMESTAMP_FIELD",
    "build_index_options",
    "build_mappings",
    "build_settings",
    "descriptor_for",
    "MappingConfig",
    "MappingConfigLoader",
]
