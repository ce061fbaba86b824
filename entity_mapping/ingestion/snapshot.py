"""
Immutable ledger snapshot: the four input relations plus lookup indexes.

Built once per run from DataFrames (LedgerSnapshot.from_frames) or from a
directory of CSV files (load_snapshot). Indexes are plain dicts of tuples,
keyed and ordered deterministically, and are only read by the stages.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import pandas as pd
from pandas.api import types as ptypes

from entity_mapping.analysis_engine.models import TxInput, TxOutput
from entity_mapping.core.exceptions import InputSchemaError
from entity_mapping.entity_logging import get_logger
from entity_mapping.ingestion.schema import (
    BLOCKS,
    RELATIONS,
    TRANSACTIONS,
    TX_INPUTS,
    TX_OUTPUTS,
    validate_relations,
)

logger = get_logger(__name__)

CSV_FILES: dict[str, str] = {name: f"{name}.csv" for name in RELATIONS}


@dataclass(frozen=True)
class LedgerSnapshot:
    """
    Validated input relations and the indexes the stages join through.

    inputs_by_tx: tx_id -> inputs of that transaction, sorted by input_index.
    outputs_by_tx: tx_id -> outputs of that transaction, in relation order.
    consumers_by_prevout: prevout_tx_id -> tx_ids of the inputs spending it (one per input row).
    block_by_tx / time_by_block: Transaction and Block relations.
    """

    tx_inputs: pd.DataFrame
    tx_outputs: pd.DataFrame
    transactions: pd.DataFrame
    blocks: pd.DataFrame
    inputs_by_tx: Mapping[int, tuple[TxInput, ...]]
    outputs_by_tx: Mapping[int, tuple[TxOutput, ...]]
    consumers_by_prevout: Mapping[int, tuple[int, ...]]
    block_by_tx: Mapping[int, int]
    time_by_block: Mapping[int, datetime]

    @classmethod
    def from_frames(
        cls,
        tx_inputs: pd.DataFrame | None,
        tx_outputs: pd.DataFrame | None,
        transactions: pd.DataFrame | None,
        blocks: pd.DataFrame | None,
    ) -> LedgerSnapshot:
        """Validate the relations and build indexes. Raises InputSchemaError."""
        frames = {
            TX_INPUTS: tx_inputs,
            TX_OUTPUTS: tx_outputs,
            TRANSACTIONS: transactions,
            BLOCKS: blocks,
        }
        frames = {name: _coerce_time(name, frame) for name, frame in frames.items()}
        validate_relations(frames)
        tx_inputs = frames[TX_INPUTS]
        tx_outputs = frames[TX_OUTPUTS]
        transactions = frames[TRANSACTIONS]
        blocks = frames[BLOCKS]

        inputs: dict[int, list[TxInput]] = defaultdict(list)
        consumers: dict[int, list[int]] = defaultdict(list)
        for row in tx_inputs.itertuples(index=False):
            txin = TxInput(
                tx_id=int(row.tx_id),
                prevout_tx_id=int(row.prevout_tx_id),
                input_index=int(row.input_index),
            )
            inputs[txin.tx_id].append(txin)
            if not txin.is_coinbase:
                consumers[txin.prevout_tx_id].append(txin.tx_id)

        amounts = pd.to_numeric(tx_outputs["amount"], errors="raise").astype(float)
        outputs: dict[int, list[TxOutput]] = defaultdict(list)
        for row, amount in zip(tx_outputs.itertuples(index=False), amounts):
            txout = TxOutput(
                tx_id=int(row.tx_id),
                address=str(row.address),
                amount=float(amount),
                is_spent=bool(row.is_spent),
            )
            outputs[txout.tx_id].append(txout)

        block_by_tx = {
            int(tx_id): int(block_id)
            for tx_id, block_id in zip(transactions["tx_id"], transactions["block_id"])
        }
        time_by_block = {
            int(block_id): ts.to_pydatetime()
            for block_id, ts in zip(blocks["block_id"], blocks["time"])
        }

        snapshot = cls(
            tx_inputs=tx_inputs,
            tx_outputs=tx_outputs,
            transactions=transactions,
            blocks=blocks,
            inputs_by_tx={
                tx: tuple(sorted(rows, key=lambda r: (r.input_index, r.prevout_tx_id)))
                for tx, rows in inputs.items()
            },
            outputs_by_tx={tx: tuple(rows) for tx, rows in outputs.items()},
            consumers_by_prevout={tx: tuple(sorted(rows)) for tx, rows in consumers.items()},
            block_by_tx=block_by_tx,
            time_by_block=time_by_block,
        )
        logger.info(
            "ledger_snapshot_built",
            tx_inputs=len(tx_inputs),
            tx_outputs=len(tx_outputs),
            transactions=len(transactions),
            blocks=len(blocks),
        )
        return snapshot

    def seed_transactions(self) -> list[int]:
        """Transactions with at least one non-coinbase input, ascending."""
        return sorted(
            tx for tx, rows in self.inputs_by_tx.items() if any(not r.is_coinbase for r in rows)
        )

    def block_and_time(self, tx_id: int) -> tuple[int | None, datetime | None]:
        block_id = self.block_by_tx.get(tx_id)
        if block_id is None:
            return None, None
        return block_id, self.time_by_block.get(block_id)


def _coerce_time(name: str, frame: pd.DataFrame | None) -> pd.DataFrame | None:
    """Normalize blocks.time to tz-aware UTC; leave everything else to validation."""
    if name != BLOCKS or frame is None or not isinstance(frame, pd.DataFrame):
        return frame
    if "time" not in frame.columns:
        return frame
    if ptypes.is_numeric_dtype(frame["time"]):
        # bare numbers would be read as nanoseconds since 1970
        raise InputSchemaError(
            BLOCKS, "time", f"expected timestamps or ISO strings, got dtype {frame['time'].dtype}"
        )
    try:
        times = pd.to_datetime(frame["time"], utc=True)
    except (TypeError, ValueError) as e:
        raise InputSchemaError(BLOCKS, "time", f"cannot parse timestamps: {e}") from e
    out = frame.copy()
    out["time"] = times
    return out


def load_snapshot(directory: str | Path) -> LedgerSnapshot:
    """
    Read tx_inputs.csv, tx_outputs.csv, transactions.csv and blocks.csv from directory.

    A missing file is reported as a missing relation (InputSchemaError).
    """
    directory = Path(directory)
    frames: dict[str, pd.DataFrame] = {}
    for name, filename in CSV_FILES.items():
        path = directory / filename
        if not path.exists():
            raise InputSchemaError(name, None, f"file not found: {path}")
        frames[name] = pd.read_csv(path)
        logger.debug("relation_loaded", relation=name, path=str(path), rows=len(frames[name]))
    return LedgerSnapshot.from_frames(
        tx_inputs=frames[TX_INPUTS],
        tx_outputs=frames[TX_OUTPUTS],
        transactions=frames[TRANSACTIONS],
        blocks=frames[BLOCKS],
    )
