"""
Per-address feature aggregation over chain edges.

Groups ChainEdge rows by address. The group's entity_id is the smallest
start_tx among its edges, so every address lands in exactly one entity
while one entity may own many addresses.

Volume statistics are computed in one of two modes (PipelineConfig.statistics_mode):

- two_pass: amounts are materialized and sorted; the sum uses math.fsum,
  variance a second pass over deviations, median is exact.
- single_pass: Welford's running mean/variance over the sorted amounts;
  median is not available and is reported as None.

Sums use math.fsum over sorted values, which makes every aggregate
bit-for-bit reproducible regardless of edge order or worker count.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import numpy as np

from entity_mapping.analysis_engine.models import ChainEdge, EntityFeature
from entity_mapping.analysis_engine.partitions import group_by, run_partitioned, safe_ratio
from entity_mapping.config.settings import STATISTICS_SINGLE_PASS, PipelineConfig
from entity_mapping.entity_logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class VolumeStats:
    count: int
    total: float
    mean: float
    maximum: float
    minimum: float
    std: float | None
    """Sample standard deviation; None for a single value."""
    median: float | None
    variance: float
    """Population variance."""


@dataclass
class WelfordAccumulator:
    """Running count/mean/M2 (Welford). Feed values in a canonical order for reproducibility."""

    count: int = 0
    mean: float = 0.0
    m2: float = 0.0

    def add(self, value: float) -> None:
        self.count += 1
        delta = value - self.mean
        self.mean += delta / self.count
        self.m2 += delta * (value - self.mean)

    @property
    def population_variance(self) -> float:
        return self.m2 / self.count if self.count else 0.0

    @property
    def sample_std(self) -> float | None:
        if self.count < 2:
            return None
        return math.sqrt(self.m2 / (self.count - 1))


def volume_stats(amounts: list[float], mode: str) -> VolumeStats:
    """Summary statistics of a non-empty list of amounts."""
    values = sorted(amounts)
    n = len(values)
    total = math.fsum(values)
    if mode == STATISTICS_SINGLE_PASS:
        acc = WelfordAccumulator()
        for v in values:
            acc.add(v)
        return VolumeStats(
            count=n,
            total=total,
            mean=acc.mean,
            maximum=values[-1],
            minimum=values[0],
            std=acc.sample_std,
            median=None,
            variance=acc.population_variance,
        )
    mean = total / n
    squared_dev = math.fsum((v - mean) ** 2 for v in values)
    return VolumeStats(
        count=n,
        total=total,
        mean=mean,
        maximum=values[-1],
        minimum=values[0],
        std=math.sqrt(squared_dev / (n - 1)) if n > 1 else None,
        median=float(np.median(np.asarray(values, dtype=np.float64))),
        variance=squared_dev / n,
    )


def summarize_edges(edges: list[ChainEdge], config: PipelineConfig) -> dict[str, Any]:
    """
    Feature columns shared by EntityFeature and EntityRecord for a non-empty edge group.

    Returned keys match the EntityFeature fields other than entity_id and address.
    """
    stats = volume_stats([e.amount for e in edges], config.statistics_mode)
    n = stats.count
    spent = [e.amount for e in edges if e.is_spent]
    unspent = [e.amount for e in edges if not e.is_spent]
    num_unique_inputs = len({e.prev_tx for e in edges if e.prev_tx is not None})
    num_unique_outputs = len({e.current_tx for e in edges})

    times = [e.time for e in edges if e.time is not None]
    first_seen = min(times) if times else None
    last_seen = max(times) if times else None
    activity_density = None
    if first_seen is not None and last_seen is not None:
        blocks = {e.block_id for e in edges if e.block_id is not None and e.time is not None}
        elapsed = (last_seen - first_seen).total_seconds()
        activity_density = safe_ratio(len(blocks), elapsed)

    return {
        "num_transactions": n,
        "num_chains": len({e.start_tx for e in edges}),
        "max_chain_length": max(e.chain_length for e in edges),
        "unique_input_positions": len({e.input_index for e in edges}),
        "total_volume": stats.total,
        "avg_transaction_size": stats.mean,
        "max_transaction_size": stats.maximum,
        "min_transaction_size": stats.minimum,
        "std_transaction_size": stats.std,
        "median_tx_size": stats.median,
        "variance_tx_size": stats.variance,
        "num_unique_inputs": num_unique_inputs,
        "num_unique_outputs": num_unique_outputs,
        "unspent_balance": math.fsum(sorted(unspent)),
        "spent_balance": math.fsum(sorted(spent)),
        "spent_ratio": safe_ratio(len(spent), n),
        "io_ratio": safe_ratio(num_unique_inputs, n),
        "activity_density": activity_density,
        "avg_value_per_tx": safe_ratio(stats.total, num_unique_outputs),
        "first_seen": first_seen,
        "last_seen": last_seen,
    }


def summarize_address(address: str, edges: list[ChainEdge], config: PipelineConfig) -> EntityFeature | None:
    """Reduce one address partition; None for an empty partition."""
    if not edges:
        return None
    return EntityFeature(
        entity_id=min(e.start_tx for e in edges),
        address=address,
        **summarize_edges(edges, config),
    )


def aggregate_entity_features(edges: list[ChainEdge], config: PipelineConfig) -> list[EntityFeature]:
    """One EntityFeature per address seen in edges, ordered by address."""
    groups = group_by(edges, lambda e: e.address)
    features = run_partitioned(
        groups,
        lambda address, rows: summarize_address(address, rows, config),
        config.concurrency,
    )
    logger.info(
        "entity_features_aggregated",
        addresses=len(features),
        entities=len({f.entity_id for f in features}),
        statistics_mode=config.statistics_mode,
    )
    return features


def address_to_entity(features: list[EntityFeature]) -> dict[str, int]:
    """address -> entity_id mapping from the aggregated features."""
    return {f.address: f.entity_id for f in features}


def rollup_entity_features(
    edges: list[ChainEdge],
    entity_of: Mapping[str, int],
    config: PipelineConfig,
) -> dict[int, dict[str, Any]]:
    """
    Entity-level feature columns over the union of each entity's address edges.

    Returns entity_id -> summarize_edges() columns plus address_count.
    """
    groups = group_by((e for e in edges if e.address in entity_of), lambda e: entity_of[e.address])

    def _reduce(entity_id: int, rows: list[ChainEdge]) -> tuple[int, dict[str, Any]]:
        summary = summarize_edges(rows, config)
        summary["address_count"] = len({e.address for e in rows})
        return entity_id, summary

    return dict(run_partitioned(groups, _reduce, config.concurrency))
