"""
Rule-based entity type classification.

Rules are evaluated in order and the first match wins; a later rule never
overrides an earlier one even when both hold. A missing (None) operand makes
its comparison false, so entities with incomplete features fall through to
Individual instead of raising.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from entity_mapping.analysis_engine.models import (
    ENTITY_TYPE_BUSINESS,
    ENTITY_TYPE_EXCHANGE,
    ENTITY_TYPE_INDIVIDUAL,
    ENTITY_TYPE_MINING_POOL,
    ENTITY_TYPE_PROFESSIONAL_SERVICE,
    BehavioralProfile,
    EntityRecord,
    VelocityProfile,
)
from entity_mapping.config.settings import ClassifierConfig, PipelineConfig
from entity_mapping.entity_logging import get_logger

logger = get_logger(__name__)

_BEHAVIOR_COLUMNS = ("business_hours_txs", "large_tx_ratio", "micro_tx_ratio", "address_reuse_ratio")
_VELOCITY_COLUMNS = ("peak_tx_rate", "avg_tx_rate", "peak_volume_rate", "avg_volume_rate")


def _gt(value: Any, threshold: float) -> bool:
    return value is not None and value > threshold


def _lt(value: Any, threshold: float) -> bool:
    return value is not None and value < threshold


def classify_entity(metrics: Mapping[str, Any], config: ClassifierConfig | None = None) -> str:
    """
    Label one entity from its merged feature, behavioral, velocity and degree columns.

    Returns one of: Professional Service, Business Entity, Exchange, Mining Pool, Individual.
    Missing keys are treated like None.
    """
    c = config or ClassifierConfig()
    get = metrics.get

    if _gt(get("peak_tx_rate"), c.professional_min_peak_tx_rate) and _lt(
        get("address_reuse_ratio"), c.professional_max_address_reuse_ratio
    ):
        return ENTITY_TYPE_PROFESSIONAL_SERVICE

    if _gt(get("business_hours_txs"), c.business_min_business_hours_txs) and _gt(
        get("avg_transaction_size"), c.business_min_avg_transaction_size
    ):
        return ENTITY_TYPE_BUSINESS

    if _gt(get("num_transactions"), c.exchange_min_num_transactions) and _gt(
        get("io_ratio"), c.exchange_min_io_ratio
    ):
        return ENTITY_TYPE_EXCHANGE

    if _lt(get("in_degree"), c.mining_max_in_degree) and _gt(
        get("avg_transaction_size"), c.mining_min_avg_transaction_size
    ):
        return ENTITY_TYPE_MINING_POOL

    return ENTITY_TYPE_INDIVIDUAL


def build_entity_records(
    rollups: Mapping[int, Mapping[str, Any]],
    behavior: Iterable[BehavioralProfile],
    velocity: Iterable[VelocityProfile],
    degrees: Mapping[int, Mapping[str, Any]],
    config: PipelineConfig,
) -> list[EntityRecord]:
    """
    Merge the entity rollups with behavioral, velocity and degree columns and label each entity.

    Profiles are matched on start_tx == entity_id; an entity without a matching
    profile keeps None in those columns.
    """
    behavior_by_id = {p.entity_id: p for p in behavior}
    velocity_by_id = {p.entity_id: p for p in velocity}
    records: list[EntityRecord] = []
    for entity_id in sorted(rollups):
        row: dict[str, Any] = {"entity_id": entity_id, **rollups[entity_id]}
        b = behavior_by_id.get(entity_id)
        for col in _BEHAVIOR_COLUMNS:
            row[col] = getattr(b, col) if b is not None else None
        v = velocity_by_id.get(entity_id)
        for col in _VELOCITY_COLUMNS:
            row[col] = getattr(v, col) if v is not None else None
        d = degrees.get(entity_id) or {}
        row["out_degree"] = d.get("out_degree", 0)
        row["in_degree"] = d.get("in_degree", 0)
        row["total_outflow"] = d.get("total_outflow", 0.0)
        row["total_inflow"] = d.get("total_inflow", 0.0)
        row["entity_type"] = classify_entity(row, config.classifier)
        records.append(EntityRecord(**row))
    counts: dict[str, int] = {}
    for r in records:
        counts[r.entity_type] = counts.get(r.entity_type, 0) + 1
    logger.info("entities_classified", entities=len(records), entity_types=counts)
    return records
