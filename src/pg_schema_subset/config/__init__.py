"""Configuration management for pg-schema-subset."""
from .subset import (
    SubsetConfig,
    load_config,
)

__all__ = [
    "SubsetConfig",
    "load_config",
]
