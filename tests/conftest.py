"""
Pytest fixtures for entity_mapping tests. Builds small in-memory ledger snapshots.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import pandas as pd
import pytest

from entity_mapping.config.settings import PipelineConfig
from entity_mapping.ingestion.snapshot import LedgerSnapshot

BASE_TIME = datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)


def _frames(txs: list[dict[str, Any]], block_times: dict[int, datetime] | None = None) -> dict[str, pd.DataFrame]:
    """
    txs: [{"tx_id", "block_id", "inputs": [prevout_tx_id, ...], "outputs": [(address, amount), ...]}].

    input_index is the position in "inputs"; an output is spent when another tx spends its tx.
    Blocks default to BASE_TIME + block_id hours. A tx with "block_id": None has no Transaction row.
    """
    spent = {p for tx in txs for p in tx.get("inputs", []) if p != -1}
    inputs, outputs, transactions = [], [], []
    blocks: dict[int, datetime] = {}
    for tx in txs:
        for idx, prevout in enumerate(tx.get("inputs", [])):
            inputs.append({"tx_id": tx["tx_id"], "prevout_tx_id": prevout, "input_index": idx})
        for address, amount in tx.get("outputs", []):
            outputs.append(
                {"tx_id": tx["tx_id"], "address": address, "amount": amount, "is_spent": tx["tx_id"] in spent}
            )
        block_id = tx.get("block_id")
        if block_id is not None:
            transactions.append({"tx_id": tx["tx_id"], "block_id": block_id})
            blocks[block_id] = (block_times or {}).get(block_id, BASE_TIME + timedelta(hours=block_id))
    return {
        "tx_inputs": pd.DataFrame(inputs, columns=["tx_id", "prevout_tx_id", "input_index"]),
        "tx_outputs": pd.DataFrame(outputs, columns=["tx_id", "address", "amount", "is_spent"]),
        "transactions": pd.DataFrame(transactions, columns=["tx_id", "block_id"]).astype("int64"),
        "blocks": pd.DataFrame(
            [{"block_id": b, "time": t} for b, t in sorted(blocks.items())],
            columns=["block_id", "time"],
        ),
    }


@pytest.fixture
def ledger_frames():
    """Factory: tx dicts -> dict of the four relation DataFrames."""
    return _frames


@pytest.fixture
def make_snapshot():
    """Factory: tx dicts -> validated LedgerSnapshot."""

    def _make(txs: list[dict[str, Any]], block_times: dict[int, datetime] | None = None) -> LedgerSnapshot:
        return LedgerSnapshot.from_frames(**_frames(txs, block_times))

    return _make


@pytest.fixture
def chain_txs() -> list[dict[str, Any]]:
    """
    Linear chain 1 <- 2 <- 3 <- 4 <- 5 (tx 1 is coinbase), one block per tx.

    Entities with default depth: 2 (addrB, addrC), 3 (addrD), 4 (addrE), 5 (addrF).
    """
    return [
        {"tx_id": 1, "block_id": 1, "inputs": [-1], "outputs": [("addrA", 50.0)]},
        {"tx_id": 2, "block_id": 2, "inputs": [1], "outputs": [("addrB", 30.0), ("addrC", 20.0)]},
        {"tx_id": 3, "block_id": 3, "inputs": [2], "outputs": [("addrD", 25.0)]},
        {"tx_id": 4, "block_id": 4, "inputs": [3], "outputs": [("addrE", 10.0)]},
        {"tx_id": 5, "block_id": 5, "inputs": [4], "outputs": [("addrF", 5.0)]},
    ]


@pytest.fixture
def chain_snapshot(make_snapshot, chain_txs) -> LedgerSnapshot:
    return make_snapshot(chain_txs)


@pytest.fixture
def config() -> PipelineConfig:
    """Default thresholds, single worker."""
    return PipelineConfig(concurrency=1)
