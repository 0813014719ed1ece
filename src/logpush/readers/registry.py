"""
Reader lookup by short name or dotted path.
"""

import importlib

from logpush.core.errors import ConfigError

from .base import ReaderFactory
from .jsonl_reader import JsonLinesReader

READER_REGISTRY: dict[str, ReaderFactory] = {
    "jsonl": JsonLinesReader,
}


def get_reader_factory(name: str) -> ReaderFactory:
    """
    Resolve a reader factory.

    Args:
        name: Registered short name ("jsonl") or "package.module:Factory"

    Returns:
        Callable taking a binary stream and returning a reader

    Raises:
        ConfigError: If the name cannot be resolved
    """
    name = name.strip()
    factory = READER_REGISTRY.get(name.lower())
    if factory is not None:
        return factory

    module_name, sep, attr = name.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigError(
            f"Unknown reader '{name}'. Use one of {sorted(READER_REGISTRY)} "
            "or a dotted path like 'package.module:Factory'."
        )
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigError(f"Cannot import reader module '{module_name}': {e}") from e

    factory = getattr(module, attr, None)
    if factory is None or not callable(factory):
        raise ConfigError(f"'{attr}' in '{module_name}' is not a callable reader factory")
    return factory
