"""
Result export: CSV tables for the downstream reporting service and stage checkpoints.
"""

from entity_mapping.storage.csv_store import rows_to_frame, write_table, write_tables

__all__ = ["rows_to_frame", "write_table", "write_tables"]
