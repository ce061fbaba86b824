"""
Row types for the ledger snapshot and every derived table.

Input rows mirror the external relations. Derived rows are frozen: each
stage builds new rows from the previous stage's output and never mutates
them. Optional fields hold None when a value is undefined (zero
denominator, missing join match) and stay None all the way to the export.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from datetime import datetime
from typing import Any

COINBASE_PREVOUT = -1

ENTITY_TYPE_PROFESSIONAL_SERVICE = "Professional Service"
ENTITY_TYPE_BUSINESS = "Business Entity"
ENTITY_TYPE_EXCHANGE = "Exchange"
ENTITY_TYPE_MINING_POOL = "Mining Pool"
ENTITY_TYPE_INDIVIDUAL = "Individual"

ENTITY_TYPES = (
    ENTITY_TYPE_PROFESSIONAL_SERVICE,
    ENTITY_TYPE_BUSINESS,
    ENTITY_TYPE_EXCHANGE,
    ENTITY_TYPE_MINING_POOL,
    ENTITY_TYPE_INDIVIDUAL,
)


class _Row:
    """Shared helpers for table rows."""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)  # type: ignore[call-overload]

    @classmethod
    def column_names(cls) -> list[str]:
        return [f.name for f in fields(cls)]  # type: ignore[arg-type]


@dataclass(frozen=True)
class TxInput(_Row):
    tx_id: int
    prevout_tx_id: int
    input_index: int

    @property
    def is_coinbase(self) -> bool:
        return self.prevout_tx_id == COINBASE_PREVOUT


@dataclass(frozen=True)
class TxOutput(_Row):
    tx_id: int
    address: str
    amount: float
    is_spent: bool


@dataclass(frozen=True)
class ChainEdge(_Row):
    """
    One hop of a spend chain joined with one output of the hop's current_tx.

    start_tx is the seed the chain was grown from; current_tx the transaction
    being expanded; prev_tx its ancestor through input input_index.
    block_id and time are None when the transaction or block is not in the snapshot.
    """

    start_tx: int
    current_tx: int
    prev_tx: int | None
    input_index: int
    address: str
    amount: float
    is_spent: bool
    block_id: int | None
    time: datetime | None
    chain_length: int


@dataclass(frozen=True)
class EntityFeature(_Row):
    """Statistical summary of every chain edge that touches one address."""

    entity_id: int
    address: str
    num_transactions: int
    num_chains: int
    max_chain_length: int
    unique_input_positions: int
    total_volume: float
    avg_transaction_size: float
    max_transaction_size: float
    min_transaction_size: float
    std_transaction_size: float | None
    median_tx_size: float | None
    variance_tx_size: float
    num_unique_inputs: int
    num_unique_outputs: int
    unspent_balance: float
    spent_balance: float
    spent_ratio: float | None
    io_ratio: float | None
    activity_density: float | None
    avg_value_per_tx: float | None
    first_seen: datetime | None
    last_seen: datetime | None


@dataclass(frozen=True)
class BehavioralProfile(_Row):
    entity_id: int
    business_hours_txs: int
    large_tx_ratio: float | None
    micro_tx_ratio: float | None
    address_reuse_ratio: float | None


@dataclass(frozen=True)
class VelocityProfile(_Row):
    entity_id: int
    peak_tx_rate: int
    avg_tx_rate: float
    peak_volume_rate: float
    avg_volume_rate: float


@dataclass(frozen=True)
class EntityRelationship(_Row):
    """Funds moved from source_entity's addresses into target_entity's root transaction."""

    source_entity: int
    target_entity: int
    interaction_count: int
    total_flow: float
    avg_flow_size: float


@dataclass(frozen=True)
class EntityRecord(_Row):
    """Final output row: one per entity_id."""

    entity_id: int
    address_count: int
    num_transactions: int
    num_chains: int
    max_chain_length: int
    unique_input_positions: int
    total_volume: float
    avg_transaction_size: float
    max_transaction_size: float
    min_transaction_size: float
    std_transaction_size: float | None
    median_tx_size: float | None
    variance_tx_size: float
    num_unique_inputs: int
    num_unique_outputs: int
    unspent_balance: float
    spent_balance: float
    spent_ratio: float | None
    io_ratio: float | None
    activity_density: float | None
    avg_value_per_tx: float | None
    first_seen: datetime | None
    last_seen: datetime | None
    business_hours_txs: int | None
    large_tx_ratio: float | None
    micro_tx_ratio: float | None
    address_reuse_ratio: float | None
    peak_tx_rate: int | None
    avg_tx_rate: float | None
    peak_volume_rate: float | None
    avg_volume_rate: float | None
    out_degree: int
    in_degree: int
    total_outflow: float
    total_inflow: float
    entity_type: str
