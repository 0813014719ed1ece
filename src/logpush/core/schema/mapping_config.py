"""
Mapping configuration management.

Loads field exclusions and descriptor overrides for the index mapping
from YAML files.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from logpush.core.errors import ConfigError

from .mapping import resolve_descriptor


class MappingConfig(BaseModel):
    """
    Field exclusions and descriptor overrides.

    Attributes:
        exclude: Field names left out of the mapping
        overrides: Field name -> descriptor name (multi, text, keyword,
            keyword_nocopy or a kind name)
    """

    exclude: list[str] = Field(default_factory=list)
    overrides: dict[str, str] = Field(default_factory=dict)

    @field_validator("exclude")
    @classmethod
    def lower_excludes(cls, v: list[str]) -> list[str]:
        return [name.strip().lower() for name in v if name.strip()]

    @field_validator("overrides")
    @classmethod
    def check_overrides(cls, v: dict[str, str]) -> dict[str, str]:
        """Every override must name a known descriptor."""
        for descriptor in v.values():
            resolve_descriptor(descriptor)
        return {name.strip().lower(): descriptor for name, descriptor in v.items()}

    def merged(self, exclude: list[str] | None = None) -> "MappingConfig":
        """Copy with extra exclusions (e.g. from the command line)."""
        if not exclude:
            return self
        return MappingConfig(exclude=self.exclude + list(exclude), overrides=self.overrides)


class MappingConfigLoader:
    """
    Loads mapping configuration from YAML files.

    Expected YAML format:
    ```yaml
    exclude:
      - x-custom
      - cs(cookie)

    overrides:
      cs-referer: multi
      x-request-id: keyword_nocopy
      x-duration: float64
    ```
    """

    def __init__(self, config_path: str | Path):
        """
        Initialize the mapping config loader.

        Args:
            config_path: Path to the YAML configuration file

        Raises:
            ConfigError: If the file does not exist
        """
        self.config_path = Path(config_path)
        if not self.config_path.exists():
            raise ConfigError(f"Mapping configuration file not found: {config_path}")

    def load(self) -> MappingConfig:
        """
        Load and validate the mapping configuration.

        Raises:
            ConfigError: If the YAML is invalid or has unknown sections or values
        """
        try:
            with open(self.config_path) as f:
                config: Any = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {self.config_path}: {e}") from e

        if config is None:
            return MappingConfig()
        if not isinstance(config, dict):
            raise ConfigError(f"{self.config_path} must contain a mapping at the top level")

        unknown = set(config) - {"exclude", "overrides"}
        if unknown:
            raise ConfigError(
                f"Unknown section(s) {sorted(unknown)} in {self.config_path}. "
                "Expected 'exclude' and 'overrides'"
            )

        try:
            return MappingConfig(
                exclude=config.get("exclude") or [],
                overrides=config.get("overrides") or {},
            )
        except ValidationError as e:
            raise ConfigError(f"Invalid mapping configuration in {self.config_path}: {e}") from e
