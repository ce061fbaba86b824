"""
Behavioral ratios per chain root (start_tx).

The start_tx key is joined to EntityFeature.entity_id when records are
assembled. address_reuse_ratio is distinct addresses / edges: a higher value
means more distinct addresses per unit of activity, i.e. less reuse. The
name is kept for compatibility with downstream consumers.
"""

from __future__ import annotations

from entity_mapping.analysis_engine.models import BehavioralProfile, ChainEdge
from entity_mapping.analysis_engine.partitions import group_by, run_partitioned, safe_ratio
from entity_mapping.config.settings import PipelineConfig
from entity_mapping.entity_logging import get_logger

logger = get_logger(__name__)


def is_business_hours(edge: ChainEdge, config: PipelineConfig) -> bool:
    """True when the edge's local hour falls in the inclusive business-hours window."""
    if edge.time is None:
        return False
    hour = edge.time.astimezone(config.business_tz).hour
    return config.business_hours_start <= hour <= config.business_hours_end


def profile_start_tx(start_tx: int, edges: list[ChainEdge], config: PipelineConfig) -> BehavioralProfile | None:
    if not edges:
        return None
    n = len(edges)
    return BehavioralProfile(
        entity_id=start_tx,
        business_hours_txs=sum(1 for e in edges if is_business_hours(e, config)),
        large_tx_ratio=safe_ratio(sum(1 for e in edges if e.amount > config.large_tx_threshold), n),
        micro_tx_ratio=safe_ratio(sum(1 for e in edges if e.amount < config.micro_tx_threshold), n),
        address_reuse_ratio=safe_ratio(len({e.address for e in edges}), n),
    )


def analyze_behavior(edges: list[ChainEdge], config: PipelineConfig) -> list[BehavioralProfile]:
    """One BehavioralProfile per start_tx, ordered by start_tx."""
    groups = group_by(edges, lambda e: e.start_tx)
    profiles = run_partitioned(
        groups,
        lambda start_tx, rows: profile_start_tx(start_tx, rows, config),
        config.concurrency,
    )
    logger.info(
        "behavioral_profiles_built",
        profiles=len(profiles),
        business_hours=f"{config.business_hours_start}-{config.business_hours_end}",
        timezone=config.business_hours_timezone,
    )
    return profiles
