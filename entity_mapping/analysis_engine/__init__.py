"""
Analysis engine package: address clustering, entity features and classification.

Consumes an immutable LedgerSnapshot, grows bounded spend chains, clusters
addresses into entities, computes volumetric, behavioral and velocity
features, builds the entity flow graph and labels every entity.
"""

from entity_mapping.analysis_engine.behavior import analyze_behavior
from entity_mapping.analysis_engine.chain_builder import (
    build_chain_edges,
    build_chain_edges_for_seeds,
)
from entity_mapping.analysis_engine.classifier import build_entity_records, classify_entity
from entity_mapping.analysis_engine.features import (
    aggregate_entity_features,
    rollup_entity_features,
    summarize_edges,
)
from entity_mapping.analysis_engine.models import (
    BehavioralProfile,
    ChainEdge,
    EntityFeature,
    EntityRecord,
    EntityRelationship,
    VelocityProfile,
)
from entity_mapping.analysis_engine.pipeline import PipelineResult, run_pipeline
from entity_mapping.analysis_engine.relationship_graph import build_relationships, entity_degrees
from entity_mapping.analysis_engine.velocity import analyze_velocity

__all__ = [
    "BehavioralProfile",
    "ChainEdge",
    "EntityFeature",
    "EntityRecord",
    "EntityRelationship",
    "PipelineResult",
    "VelocityProfile",
    "aggregate_entity_features",
    "analyze_behavior",
    "analyze_velocity",
    "build_chain_edges",
    "build_chain_edges_for_seeds",
    "build_entity_records",
    "build_relationships",
    "classify_entity",
    "entity_degrees",
    "rollup_entity_features",
    "run_pipeline",
    "summarize_edges",
]
