"""
Snapshot ingestion: validate the four ledger relations and index them for the stages.
"""

from entity_mapping.ingestion.schema import RELATIONS, validate_relations
from entity_mapping.ingestion.snapshot import LedgerSnapshot, load_snapshot

__all__ = ["RELATIONS", "LedgerSnapshot", "load_snapshot", "validate_relations"]
