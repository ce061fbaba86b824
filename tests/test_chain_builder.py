"""
Tests for bounded spend-chain traversal (chain_builder).
"""

from __future__ import annotations

from entity_mapping.analysis_engine.chain_builder import (
    build_chain_edges,
    build_chain_edges_for_seeds,
)
from entity_mapping.analysis_engine.features import aggregate_entity_features
from entity_mapping.analysis_engine.models import ChainEdge
from entity_mapping.config.settings import PipelineConfig


def _hops(edges: list[ChainEdge]) -> set[tuple[int, int, int | None, int]]:
    return {(e.start_tx, e.current_tx, e.prev_tx, e.chain_length) for e in edges}


def test_single_spend_yields_one_seed_edge(make_snapshot, config):
    """A spends B (coinbase): exactly one depth-1 edge from A."""
    snapshot = make_snapshot(
        [
            {"tx_id": 20, "block_id": 1, "inputs": [-1], "outputs": [("addrB", 12.5)]},
            {"tx_id": 30, "block_id": 2, "inputs": [20], "outputs": [("addrA", 12.0)]},
        ]
    )
    edges = build_chain_edges(snapshot, config)
    assert len(edges) == 1
    edge = edges[0]
    assert (edge.start_tx, edge.current_tx, edge.prev_tx, edge.chain_length) == (30, 30, 20, 1)
    assert edge.address == "addrA"
    assert edge.amount == 12.0
    assert edge.block_id == 2


def test_entity_id_is_min_start_tx_for_shared_address(make_snapshot, config):
    """addrB is reached from its own seed B and from A's chain; entity_id is the smaller start_tx."""
    snapshot = make_snapshot(
        [
            {"tx_id": 5, "block_id": 1, "inputs": [-1], "outputs": [("addrC", 50.0)]},
            {"tx_id": 20, "block_id": 2, "inputs": [5], "outputs": [("addrB", 40.0)]},
            {"tx_id": 30, "block_id": 3, "inputs": [20], "outputs": [("addrA", 39.0)]},
        ]
    )
    edges = build_chain_edges(snapshot, config)
    assert (30, 30, 20, 1) in _hops(edges)
    b_edges = [e for e in edges if e.address == "addrB"]
    assert {e.start_tx for e in b_edges} == {20, 30}
    features = {f.address: f for f in aggregate_entity_features(edges, config)}
    assert features["addrB"].entity_id == 20
    assert features["addrA"].entity_id == 30


def test_coinbase_never_seeds(chain_snapshot, config):
    """The coinbase transaction is never a start_tx."""
    edges = build_chain_edges(chain_snapshot, config)
    assert 1 not in {e.start_tx for e in edges}
    assert "addrA" not in {e.address for e in edges}
    assert chain_snapshot.seed_transactions() == [2, 3, 4, 5]


def test_default_depth_emits_three_hops(chain_snapshot, config):
    """Default max_chain_depth=2 gives chain_length in {1, 2, 3} and stops there."""
    edges = build_chain_edges(chain_snapshot, config)
    assert len(edges) == 12
    assert {e.chain_length for e in edges} == {1, 2, 3}
    assert all(1 <= e.chain_length <= config.max_chain_depth + 1 for e in edges)
    from_five = _hops([e for e in edges if e.start_tx == 5])
    assert from_five == {(5, 5, 4, 1), (5, 4, 3, 2), (5, 3, 2, 3)}


def test_zero_depth_keeps_only_seed_hops(chain_snapshot):
    cfg = PipelineConfig(max_chain_depth=0, concurrency=1)
    edges = build_chain_edges(chain_snapshot, cfg)
    assert len(edges) == 5
    assert {e.chain_length for e in edges} == {1}
    assert all(e.start_tx == e.current_tx for e in edges)


def test_deeper_limit_follows_chain_until_coinbase(chain_snapshot):
    """With a generous depth the chain ends at the coinbase, not at the limit."""
    cfg = PipelineConfig(max_chain_depth=5, concurrency=1)
    edges = build_chain_edges(chain_snapshot, cfg)
    assert len(edges) == 14
    assert max(e.chain_length for e in edges) == 4
    assert all(e.chain_length <= cfg.max_chain_depth + 1 for e in edges)


def test_fan_out_emits_edge_per_input_and_output(make_snapshot, config):
    """Two inputs x two outputs -> four seed edges; ancestors expanded per input."""
    snapshot = make_snapshot(
        [
            {"tx_id": 1, "block_id": 1, "inputs": [-1], "outputs": [("a1", 10.0)]},
            {"tx_id": 2, "block_id": 1, "inputs": [-1], "outputs": [("a2", 10.0)]},
            {"tx_id": 3, "block_id": 2, "inputs": [1, 2], "outputs": [("x", 15.0), ("y", 5.0)]},
        ]
    )
    edges = build_chain_edges(snapshot, config)
    assert len(edges) == 4
    assert {(e.prev_tx, e.input_index, e.address) for e in edges} == {
        (1, 0, "x"),
        (1, 0, "y"),
        (2, 1, "x"),
        (2, 1, "y"),
    }


def test_multiple_inputs_into_one_ancestor_do_not_duplicate_expansion(make_snapshot, config):
    """Two inputs spending the same ancestor give two seed edges but one ancestor expansion."""
    snapshot = make_snapshot(
        [
            {"tx_id": 1, "block_id": 1, "inputs": [-1], "outputs": [("a", 10.0)]},
            {"tx_id": 2, "block_id": 2, "inputs": [1], "outputs": [("b", 4.0), ("c", 5.0)]},
            {"tx_id": 3, "block_id": 3, "inputs": [2, 2], "outputs": [("d", 9.0)]},
        ]
    )
    edges = [e for e in build_chain_edges(snapshot, config) if e.start_tx == 3]
    assert sorted((e.chain_length, e.address, e.input_index) for e in edges) == [
        (1, "d", 0),
        (1, "d", 1),
        (2, "b", 0),
        (2, "c", 0),
    ]


def test_missing_transaction_row_leaves_block_absent(make_snapshot, config):
    """No Transaction row for current_tx: edge kept with block_id/time None."""
    snapshot = make_snapshot(
        [
            {"tx_id": 1, "block_id": 1, "inputs": [-1], "outputs": [("a", 10.0)]},
            {"tx_id": 2, "block_id": None, "inputs": [1], "outputs": [("b", 9.0)]},
        ]
    )
    edges = build_chain_edges(snapshot, config)
    assert len(edges) == 1
    assert edges[0].block_id is None
    assert edges[0].time is None


def test_seed_partitions_union_equals_full_run(chain_snapshot, config):
    """Per-partition traversal can be checkpointed and recombined."""
    full = build_chain_edges(chain_snapshot, config)
    parts = build_chain_edges_for_seeds(chain_snapshot, [2, 3], config) + build_chain_edges_for_seeds(
        chain_snapshot, [4, 5], config
    )
    assert sorted(full, key=repr) == sorted(parts, key=repr)


def test_parallel_traversal_matches_sequential(chain_snapshot):
    sequential = build_chain_edges(chain_snapshot, PipelineConfig(concurrency=1))
    parallel = build_chain_edges(chain_snapshot, PipelineConfig(concurrency=4))
    assert sequential == parallel
