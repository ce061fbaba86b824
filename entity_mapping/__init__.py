"""
entity_mapping: cluster ledger addresses into entities and classify them.
"""

__version__ = "0.1.0"
