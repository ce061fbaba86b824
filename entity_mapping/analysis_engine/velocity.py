"""
Hourly transaction and volume rates per chain root (start_tx).

Edges are bucketed by (start_tx, UTC hour). Only hours with at least one
edge form a bucket; gaps are not zero-filled, so averages are over active
hours. Edges without a timestamp are not bucketed.
"""

from __future__ import annotations

import math
from datetime import datetime

from entity_mapping.analysis_engine.models import ChainEdge, VelocityProfile
from entity_mapping.analysis_engine.partitions import group_by, run_partitioned
from entity_mapping.config.settings import PipelineConfig
from entity_mapping.entity_logging import get_logger

logger = get_logger(__name__)


def truncate_to_hour(ts: datetime) -> datetime:
    return ts.replace(minute=0, second=0, microsecond=0)


def hourly_buckets(edges: list[ChainEdge]) -> dict[datetime, tuple[int, float]]:
    """hour -> (edge count, volume) for one start_tx."""
    by_hour = group_by((e for e in edges if e.time is not None), lambda e: truncate_to_hour(e.time))
    return {
        hour: (len(rows), math.fsum(sorted(e.amount for e in rows)))
        for hour, rows in sorted(by_hour.items())
    }


def profile_velocity(start_tx: int, edges: list[ChainEdge], config: PipelineConfig) -> VelocityProfile | None:
    buckets = hourly_buckets(edges)
    if not buckets:
        return None
    counts = [c for c, _ in buckets.values()]
    volumes = sorted(v for _, v in buckets.values())
    return VelocityProfile(
        entity_id=start_tx,
        peak_tx_rate=max(counts),
        avg_tx_rate=sum(counts) / len(counts),
        peak_volume_rate=volumes[-1],
        avg_volume_rate=math.fsum(volumes) / len(volumes),
    )


def analyze_velocity(edges: list[ChainEdge], config: PipelineConfig) -> list[VelocityProfile]:
    """One VelocityProfile per start_tx with at least one timestamped edge."""
    groups = group_by(edges, lambda e: e.start_tx)
    profiles = run_partitioned(
        groups,
        lambda start_tx, rows: profile_velocity(start_tx, rows, config),
        config.concurrency,
    )
    logger.info("velocity_profiles_built", profiles=len(profiles))
    return profiles
