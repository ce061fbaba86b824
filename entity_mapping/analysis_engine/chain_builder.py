"""
Bounded spend-chain traversal.

Grows chains backwards from every transaction with a non-coinbase input:
the seed hop links start_tx to the transaction it spends, and each further
hop follows prev_tx to its own inputs, keeping start_tx fixed. Expansion is
breadth-first over a frontier of (start_tx, current_tx, chain_length)
triples and stops at chain_length == max_chain_depth + 1 or when only
coinbase inputs remain. Every hop is joined with each output of its
current_tx, so one hop yields one ChainEdge per output.
"""

from __future__ import annotations

from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING

from entity_mapping.analysis_engine.models import ChainEdge
from entity_mapping.config.settings import PipelineConfig
from entity_mapping.entity_logging import get_logger

if TYPE_CHECKING:
    from entity_mapping.ingestion.snapshot import LedgerSnapshot

logger = get_logger(__name__)

# Seeds per traversal task; chains never cross seeds so any split is valid.
SEED_BATCH_SIZE = 512

Frontier = set[tuple[int, int]]


def _edges_for_hop(
    snapshot: LedgerSnapshot,
    start_tx: int,
    current_tx: int,
    prev_tx: int,
    input_index: int,
    chain_length: int,
) -> list[ChainEdge]:
    block_id, ts = snapshot.block_and_time(current_tx)
    return [
        ChainEdge(
            start_tx=start_tx,
            current_tx=current_tx,
            prev_tx=prev_tx,
            input_index=input_index,
            address=out.address,
            amount=out.amount,
            is_spent=out.is_spent,
            block_id=block_id,
            time=ts,
            chain_length=chain_length,
        )
        for out in snapshot.outputs_by_tx.get(current_tx, ())
    ]


def build_chain_edges_for_seeds(
    snapshot: LedgerSnapshot,
    seeds: Iterable[int],
    config: PipelineConfig,
) -> list[ChainEdge]:
    """
    Grow chains for the given start_tx seeds only.

    Coinbase-only seeds yield nothing. The union over any partition of the
    seeds equals build_chain_edges for all of them.
    """
    max_length = config.max_chain_length
    edges: list[ChainEdge] = []
    # (start_tx, current_tx) pairs to expand at the current chain_length
    frontier: Frontier = {(tx, tx) for tx in seeds}
    chain_length = 1
    while frontier and chain_length <= max_length:
        next_frontier: Frontier = set()
        for start_tx, current_tx in sorted(frontier):
            for txin in snapshot.inputs_by_tx.get(current_tx, ()):
                if txin.is_coinbase:
                    continue
                edges.extend(
                    _edges_for_hop(
                        snapshot,
                        start_tx,
                        current_tx,
                        txin.prevout_tx_id,
                        txin.input_index,
                        chain_length,
                    )
                )
                next_frontier.add((start_tx, txin.prevout_tx_id))
        frontier = next_frontier
        chain_length += 1
    if frontier:
        logger.debug(
            "chain_depth_limit_reached",
            pending_hops=len(frontier),
            max_chain_length=max_length,
        )
    return edges


def build_chain_edges(snapshot: LedgerSnapshot, config: PipelineConfig) -> list[ChainEdge]:
    """
    Build every ChainEdge of the snapshot.

    Seeds are split into batches traversed on config.concurrency threads;
    batches are concatenated in seed order so the result does not depend on
    the worker count.
    """
    seeds = snapshot.seed_transactions()
    batches = [seeds[i : i + SEED_BATCH_SIZE] for i in range(0, len(seeds), SEED_BATCH_SIZE)]
    edges: list[ChainEdge] = []
    if config.concurrency == 1 or len(batches) <= 1:
        for batch in batches:
            edges.extend(build_chain_edges_for_seeds(snapshot, batch, config))
    else:
        with ThreadPoolExecutor(max_workers=config.concurrency) as executor:
            for batch_edges in executor.map(
                lambda batch: build_chain_edges_for_seeds(snapshot, batch, config), batches
            ):
                edges.extend(batch_edges)
    logger.info(
        "chain_edges_built",
        seeds=len(seeds),
        edges=len(edges),
        max_chain_length=config.max_chain_length,
    )
    return edges
