"""
Application-level exceptions.

Only fatal conditions are exceptions. Zero denominators, missing join
matches and the chain depth bound are handled locally by the stages
(absent values, shorter chains) and never raise.
"""

from __future__ import annotations


class EntityMappingError(Exception):
    """Base class for errors that abort a pipeline run."""


class InputSchemaError(EntityMappingError):
    """
    A required relation or column is missing or has the wrong type.

    Raised before any stage executes. relation/column name the offender.
    """

    def __init__(self, relation: str, column: str | None, reason: str) -> None:
        self.relation = relation
        self.column = column
        self.reason = reason
        where = f"{relation}.{column}" if column else relation
        super().__init__(f"invalid input schema at {where}: {reason}")


class ConfigError(EntityMappingError):
    """A configuration value is out of range or of the wrong kind."""

    def __init__(self, setting: str, reason: str) -> None:
        self.setting = setting
        self.reason = reason
        super().__init__(f"invalid setting {setting}: {reason}")
