"""
Structured logging for entity_mapping.

JSON logs with timestamp, event_type and stage fields.
Use get_logger() in all modules for aggregation-friendly output.
"""

from entity_mapping.entity_logging.logger import bind_run, get_logger

__all__ = ["bind_run", "get_logger"]
