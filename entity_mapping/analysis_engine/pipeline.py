"""
Entity mapping pipeline: chains -> features -> behavior -> velocity -> relationships -> records.

Each stage finishes completely before the next starts. Stages only read
earlier outputs, so run_pipeline is a pure function of the snapshot and
config. When config.checkpoint_dir is set, each stage's table is written
there as soon as the stage completes.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from entity_mapping.analysis_engine.behavior import analyze_behavior
from entity_mapping.analysis_engine.chain_builder import build_chain_edges
from entity_mapping.analysis_engine.classifier import build_entity_records
from entity_mapping.analysis_engine.features import (
    address_to_entity,
    aggregate_entity_features,
    rollup_entity_features,
)
from entity_mapping.analysis_engine.models import (
    BehavioralProfile,
    ChainEdge,
    EntityFeature,
    EntityRecord,
    EntityRelationship,
    VelocityProfile,
)
from entity_mapping.analysis_engine.relationship_graph import build_relationships, entity_degrees
from entity_mapping.analysis_engine.velocity import analyze_velocity
from entity_mapping.config.settings import PipelineConfig
from entity_mapping.entity_logging import bind_run
from entity_mapping.storage.csv_store import write_table

if TYPE_CHECKING:
    from entity_mapping.ingestion.snapshot import LedgerSnapshot


@dataclass(frozen=True)
class PipelineResult:
    chain_edges: list[ChainEdge]
    entity_features: list[EntityFeature]
    behavioral_profiles: list[BehavioralProfile]
    velocity_profiles: list[VelocityProfile]
    relationships: list[EntityRelationship]
    entity_records: list[EntityRecord]

    def tables(self) -> dict[str, tuple[type, list]]:
        """Table name -> (row type, rows), in export order."""
        return {
            "chain_edges": (ChainEdge, self.chain_edges),
            "entity_features": (EntityFeature, self.entity_features),
            "behavioral_profiles": (BehavioralProfile, self.behavioral_profiles),
            "velocity_profiles": (VelocityProfile, self.velocity_profiles),
            "entity_relationships": (EntityRelationship, self.relationships),
            "entity_records": (EntityRecord, self.entity_records),
        }


def _checkpoint(config: PipelineConfig, name: str, row_type: type, rows: list) -> None:
    if config.checkpoint_dir is None:
        return
    write_table(rows, config.checkpoint_dir / f"{name}.csv", row_type)


def _stage_done(run_logger: Any, stage: str, started: float, rows: int) -> None:
    run_logger.info(
        "pipeline_stage_done",
        stage=stage,
        rows=rows,
        duration_sec=round(time.monotonic() - started, 3),
    )


def run_pipeline(
    snapshot: LedgerSnapshot,
    config: PipelineConfig | None = None,
    run_id: str | None = None,
) -> PipelineResult:
    """
    Run all stages over an immutable snapshot and return every derived table.

    Stage events are logged with run_id bound (a fresh uuid4 hex when not given).
    """
    config = config or PipelineConfig()
    run_id = run_id or uuid.uuid4().hex
    run_logger = bind_run(run_id)
    run_started = time.monotonic()
    run_logger.info(
        "pipeline_start",
        max_chain_depth=config.max_chain_depth,
        statistics_mode=config.statistics_mode,
        concurrency=config.concurrency,
    )

    started = time.monotonic()
    edges = build_chain_edges(snapshot, config)
    _checkpoint(config, "chain_edges", ChainEdge, edges)
    _stage_done(run_logger, "chain_builder", started, len(edges))

    started = time.monotonic()
    features = aggregate_entity_features(edges, config)
    _checkpoint(config, "entity_features", EntityFeature, features)
    _stage_done(run_logger, "feature_aggregator", started, len(features))

    started = time.monotonic()
    behavior = analyze_behavior(edges, config)
    _checkpoint(config, "behavioral_profiles", BehavioralProfile, behavior)
    _stage_done(run_logger, "behavioral_analyzer", started, len(behavior))

    started = time.monotonic()
    velocity = analyze_velocity(edges, config)
    _checkpoint(config, "velocity_profiles", VelocityProfile, velocity)
    _stage_done(run_logger, "velocity_analyzer", started, len(velocity))

    started = time.monotonic()
    relationships = build_relationships(snapshot, features, config)
    _checkpoint(config, "entity_relationships", EntityRelationship, relationships)
    _stage_done(run_logger, "relationship_graph", started, len(relationships))

    started = time.monotonic()
    entity_of = address_to_entity(features)
    rollups = rollup_entity_features(edges, entity_of, config)
    degrees = entity_degrees(relationships, rollups.keys())
    records = build_entity_records(rollups, behavior, velocity, degrees, config)
    _checkpoint(config, "entity_records", EntityRecord, records)
    _stage_done(run_logger, "entity_classifier", started, len(records))

    run_logger.info(
        "pipeline_done",
        entities=len(records),
        duration_sec=round(time.monotonic() - run_started, 3),
    )
    return PipelineResult(
        chain_edges=edges,
        entity_features=features,
        behavioral_profiles=behavior,
        velocity_profiles=velocity,
        relationships=relationships,
        entity_records=records,
    )
