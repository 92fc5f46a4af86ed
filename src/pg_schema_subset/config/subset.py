"""Subset run configuration loading and validation.

Loads optional YAML configuration for a subsetting run, with environment
overrides.
"""
from __future__ import annotations
import os
import yaml
from pathlib import Path
from typing import Literal
from pydantic import BaseModel, Field, ValidationError, field_validator

CONFIG_ENV_VAR = "SCHEMA_SUBSET_CONFIG"
OUTPUT_ENV_VAR = "SCHEMA_SUBSET_OUTPUT"
LOG_LEVEL_ENV_VAR = "SCHEMA_SUBSET_LOG_LEVEL"


class SubsetConfig(BaseModel):
    """Complete subset run configuration."""
    prefix: str | None = Field(None, description="Table prefix, without trailing underscore")
    whitelist: list[str] = Field(
        default_factory=list,
        description="Related tables to emit in full instead of as stubs"
    )
    output_path: Path = Field(Path("filtered_tables.sql"), description="Output SQL file")
    default_schema: str = Field("public", description="Schema for unqualified tables")
    dialect: str = Field("postgres", description="sqlglot dialect for column parsing")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field("WARNING", description="Log level")

    @field_validator("prefix")
    @classmethod
    def validate_prefix(cls, v: str | None) -> str | None:
        """Normalize blank prefixes to None."""
        if v is None or not v.strip():
            return None
        return v

    @field_validator("whitelist")
    @classmethod
    def validate_whitelist(cls, v: list[str]) -> list[str]:
        return [name.strip() for name in v if name and name.strip()]

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        return v.upper() if isinstance(v, str) else v

    @classmethod
    def from_yaml(cls, path: str | Path) -> SubsetConfig:
        """Load configuration from YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            Validated SubsetConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If configuration is invalid
        """
        config_path = Path(path)

        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, 'r') as f:
            data = yaml.safe_load(f)

        if not data:
            raise ValueError(f"Empty configuration file: {config_path}")

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ValueError(f"Invalid configuration in {config_path}: {e}") from e

    def with_env_overrides(self) -> SubsetConfig:
        """Apply SCHEMA_SUBSET_OUTPUT / SCHEMA_SUBSET_LOG_LEVEL if set."""
        updates = {}
        if os.getenv(OUTPUT_ENV_VAR):
            updates["output_path"] = os.environ[OUTPUT_ENV_VAR]
        if os.getenv(LOG_LEVEL_ENV_VAR):
            updates["log_level"] = os.environ[LOG_LEVEL_ENV_VAR]
        if not updates:
            return self
        return self.model_validate({**self.model_dump(), **updates})


def load_config(config_path: str | Path | None = None) -> SubsetConfig:
    """Load subset configuration from file, environment, or defaults.

    Args:
        config_path: Optional explicit path to config file

    Returns:
        Validated SubsetConfig instance

    Raises:
        FileNotFoundError: If an explicit or env-provided file doesn't exist
        ValueError: If configuration is invalid
    """
    config_path = config_path or os.getenv(CONFIG_ENV_VAR)
    if config_path:
        config = SubsetConfig.from_yaml(config_path)
    else:
        config = SubsetConfig()

    return config.with_env_overrides()
