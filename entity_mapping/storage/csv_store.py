"""
CSV export of pipeline tables.

Rows are written with pandas in the row type's column order. None values
(undefined ratios, missing join matches) become empty cells; they are never
coerced to zero.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import pandas as pd

from entity_mapping.entity_logging import get_logger

logger = get_logger(__name__)


def rows_to_frame(rows: Sequence[Any], row_type: type) -> pd.DataFrame:
    """DataFrame with one column per row_type field, in declaration order."""
    return pd.DataFrame.from_records(
        [r.to_dict() for r in rows],
        columns=row_type.column_names(),
    )


def write_table(rows: Sequence[Any], path: str | Path, row_type: type) -> Path:
    """Write rows to path as CSV (header always present). Returns the path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    frame = rows_to_frame(rows, row_type)
    frame.to_csv(path, index=False)
    logger.info("table_written", path=str(path), rows=len(frame))
    return path


def write_tables(
    tables: Mapping[str, tuple[type, Sequence[Any]]],
    directory: str | Path,
) -> list[Path]:
    """Write each name -> (row_type, rows) table to directory/<name>.csv."""
    directory = Path(directory)
    return [
        write_table(rows, directory / f"{name}.csv", row_type)
        for name, (row_type, rows) in tables.items()
    ]
