#!/usr/bin/env python3
"""
Generate a small synthetic ledger snapshot for smoke runs.

Each block has one coinbase transaction plus a few transactions spending
outputs of earlier transactions, so chains of every depth appear. Output is
deterministic for a given --seed.

Usage:
  python -m entity_mapping.tools.generate_sample_snapshot --output-dir data/sample --blocks 48
"""

from __future__ import annotations

import argparse
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path

import numpy as np
import pandas as pd

from entity_mapping.analysis_engine.models import COINBASE_PREVOUT
from entity_mapping.entity_logging import get_logger
from entity_mapping.ingestion.snapshot import CSV_FILES

logger = get_logger(__name__)

GENESIS_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)
BLOCK_INTERVAL = timedelta(minutes=10)
COINBASE_REWARD = 50.0


def generate_snapshot(
    blocks: int = 48,
    txs_per_block: int = 4,
    addresses: int = 40,
    seed: int = 7,
) -> dict[str, pd.DataFrame]:
    """Return the four relations as DataFrames keyed by relation name."""
    rng = np.random.default_rng(seed)
    pool = [str(uuid.UUID(bytes=rng.bytes(16))) for _ in range(addresses)]

    inputs: list[dict] = []
    outputs: list[dict] = []
    transactions: list[dict] = []
    block_rows: list[dict] = []
    spendable: list[tuple[int, float]] = []
    spent_tx: set[int] = set()
    next_tx = 1

    for block_id in range(blocks):
        block_rows.append({"block_id": block_id, "time": GENESIS_TIME + block_id * BLOCK_INTERVAL})

        tx_id = next_tx
        next_tx += 1
        transactions.append({"tx_id": tx_id, "block_id": block_id})
        inputs.append({"tx_id": tx_id, "prevout_tx_id": COINBASE_PREVOUT, "input_index": 0})
        outputs.append({"tx_id": tx_id, "address": pool[int(rng.integers(len(pool)))], "amount": COINBASE_REWARD})
        spendable.append((tx_id, COINBASE_REWARD))

        for _ in range(int(rng.integers(1, txs_per_block + 1))):
            if not spendable:
                break
            tx_id = next_tx
            next_tx += 1
            transactions.append({"tx_id": tx_id, "block_id": block_id})
            n_in = min(len(spendable), int(rng.integers(1, 3)))
            picks = sorted(rng.choice(len(spendable), size=n_in, replace=False).tolist(), reverse=True)
            value = 0.0
            for idx, pick in enumerate(picks):
                prev_tx, amount = spendable.pop(pick)
                spent_tx.add(prev_tx)
                inputs.append({"tx_id": tx_id, "prevout_tx_id": prev_tx, "input_index": idx})
                value += amount
            n_out = int(rng.integers(1, 4))
            shares = rng.dirichlet(np.ones(n_out)) * value
            for share in shares:
                amount = round(float(share), 8)
                outputs.append({"tx_id": tx_id, "address": pool[int(rng.integers(len(pool)))], "amount": amount})
            spendable.append((tx_id, value))

    out_frame = pd.DataFrame(outputs)
    out_frame["is_spent"] = out_frame["tx_id"].isin(spent_tx)
    return {
        "tx_inputs": pd.DataFrame(inputs),
        "tx_outputs": out_frame,
        "transactions": pd.DataFrame(transactions),
        "blocks": pd.DataFrame(block_rows),
    }


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Write a synthetic ledger snapshot as CSV files.")
    parser.add_argument("--output-dir", type=Path, default=Path("data") / "sample")
    parser.add_argument("--blocks", type=int, default=48)
    parser.add_argument("--txs-per-block", type=int, default=4)
    parser.add_argument("--addresses", type=int, default=40)
    parser.add_argument("--seed", type=int, default=7)
    args = parser.parse_args(argv)

    frames = generate_snapshot(args.blocks, args.txs_per_block, args.addresses, args.seed)
    args.output_dir.mkdir(parents=True, exist_ok=True)
    for name, frame in frames.items():
        frame.to_csv(args.output_dir / CSV_FILES[name], index=False)
    logger.info(
        "sample_snapshot_written",
        path=str(args.output_dir),
        **{name: len(frame) for name, frame in frames.items()},
    )
    print(f"[generate_sample_snapshot] Written to {args.output_dir}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
