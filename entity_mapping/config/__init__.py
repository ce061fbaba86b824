"""
Configuration management for entity_mapping.

Loads settings from environment variables and an optional .env file.
Exposes a single source of truth for every pipeline threshold.
"""

from entity_mapping.config.settings import (  # noqa: F401
    ClassifierConfig,
    PipelineConfig,
    get_settings,
)

__all__ = ["ClassifierConfig", "PipelineConfig", "get_settings"]
