"""
Core utilities: domain exceptions shared by ingestion, analysis engine and tools.
"""

from entity_mapping.core.exceptions import (
    ConfigError,
    EntityMappingError,
    InputSchemaError,
)

__all__ = ["ConfigError", "EntityMappingError", "InputSchemaError"]
