"""
Entity-to-entity flow graph.

A relationship e1 -> e2 is recorded each time an output paying one of e1's
addresses is spent by an input of a transaction that is the root
(entity_id) of e2. Matches are aggregated per (e1, e2) pair. Self-loops
(e1 == e2) are kept unless PipelineConfig.drop_self_relationships is set.

entity_degrees() loads the relationships into a networkx DiGraph to derive
per-entity degree and flow totals for the final records.
"""

from __future__ import annotations

import math
from collections import defaultdict
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

import networkx as nx

from entity_mapping.analysis_engine.models import EntityFeature, EntityRelationship, TxOutput
from entity_mapping.analysis_engine.partitions import group_by, run_partitioned
from entity_mapping.config.settings import PipelineConfig
from entity_mapping.entity_logging import get_logger

if TYPE_CHECKING:
    from entity_mapping.ingestion.snapshot import LedgerSnapshot

logger = get_logger(__name__)


def _outputs_by_address(snapshot: LedgerSnapshot, addresses: set[str]) -> dict[str, list[TxOutput]]:
    out: dict[str, list[TxOutput]] = defaultdict(list)
    for tx_id in sorted(snapshot.outputs_by_tx):
        for txout in snapshot.outputs_by_tx[tx_id]:
            if txout.address in addresses:
                out[txout.address].append(txout)
    return dict(out)


def relationships_for_source(
    source_entity: int,
    features: list[EntityFeature],
    snapshot: LedgerSnapshot,
    outputs_by_address: dict[str, list[TxOutput]],
    roots: set[int],
    config: PipelineConfig,
) -> list[EntityRelationship]:
    """Aggregate every flow leaving one source entity's addresses."""
    flows: dict[int, list[float]] = defaultdict(list)
    for feature in features:
        for txout in outputs_by_address.get(feature.address, ()):
            for consumer in snapshot.consumers_by_prevout.get(txout.tx_id, ()):
                if consumer not in roots:
                    continue
                if config.drop_self_relationships and consumer == source_entity:
                    continue
                flows[consumer].append(txout.amount)
    relationships = []
    for target in sorted(flows):
        amounts = sorted(flows[target])
        total = math.fsum(amounts)
        relationships.append(
            EntityRelationship(
                source_entity=source_entity,
                target_entity=target,
                interaction_count=len(amounts),
                total_flow=total,
                avg_flow_size=total / len(amounts),
            )
        )
    return relationships


def build_relationships(
    snapshot: LedgerSnapshot,
    features: list[EntityFeature],
    config: PipelineConfig,
) -> list[EntityRelationship]:
    """All entity relationships, ordered by (source_entity, target_entity)."""
    roots = {f.entity_id for f in features}
    outputs_by_address = _outputs_by_address(snapshot, {f.address for f in features})
    by_source = group_by(features, lambda f: f.entity_id)
    per_source = run_partitioned(
        by_source,
        lambda source, rows: relationships_for_source(
            source, rows, snapshot, outputs_by_address, roots, config
        ),
        config.concurrency,
    )
    relationships = [rel for rels in per_source for rel in rels]
    logger.info(
        "entity_relationships_built",
        relationships=len(relationships),
        self_loops=sum(1 for r in relationships if r.source_entity == r.target_entity),
        drop_self_relationships=config.drop_self_relationships,
    )
    return relationships


def build_flow_graph(relationships: Iterable[EntityRelationship], entity_ids: Iterable[int]) -> nx.DiGraph:
    """Directed entity graph; every entity is a node, edges carry the flow aggregates."""
    graph = nx.DiGraph()
    graph.add_nodes_from(sorted(entity_ids))
    for rel in relationships:
        graph.add_edge(
            rel.source_entity,
            rel.target_entity,
            interaction_count=rel.interaction_count,
            total_flow=rel.total_flow,
        )
    return graph


def entity_degrees(
    relationships: list[EntityRelationship],
    entity_ids: Iterable[int],
) -> dict[int, dict[str, Any]]:
    """
    entity_id -> out_degree, in_degree, total_outflow, total_inflow.

    Degrees count distinct counterpart entities; a self-loop adds one to each
    direction. Entities without relationships get zeros.
    """
    graph = build_flow_graph(relationships, entity_ids)
    out: dict[int, dict[str, Any]] = {}
    for node in graph.nodes:
        out[node] = {
            "out_degree": int(graph.out_degree(node)),
            "in_degree": int(graph.in_degree(node)),
            "total_outflow": math.fsum(
                sorted(d["total_flow"] for _, _, d in graph.out_edges(node, data=True))
            ),
            "total_inflow": math.fsum(
                sorted(d["total_flow"] for _, _, d in graph.in_edges(node, data=True))
            ),
        }
    return out
