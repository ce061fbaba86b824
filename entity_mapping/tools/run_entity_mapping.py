#!/usr/bin/env python3
"""
Run the entity mapping pipeline over a ledger snapshot directory.

Reads tx_inputs.csv, tx_outputs.csv, transactions.csv and blocks.csv from
SNAPSHOT_DIR, runs chain building, feature aggregation, behavior, velocity,
relationship graph and classification, and writes entity_records.csv to
--output-dir (plus every intermediate table with --export-intermediate).

Settings come from ENTITY_MAPPING_* environment variables / .env; flags override them.

Usage:
  python -m entity_mapping.tools.run_entity_mapping data/snapshot --output-dir output
  python -m entity_mapping.tools.run_entity_mapping data/snapshot --max-chain-depth 3 --export-intermediate
"""

from __future__ import annotations

import argparse
import sys
import uuid
from collections import Counter
from pathlib import Path

from entity_mapping.analysis_engine.models import EntityRecord
from entity_mapping.analysis_engine.pipeline import run_pipeline
from entity_mapping.config.settings import STATISTICS_MODES, get_settings
from entity_mapping.core.exceptions import EntityMappingError
from entity_mapping.entity_logging import bind_run
from entity_mapping.ingestion.snapshot import load_snapshot
from entity_mapping.storage.csv_store import write_table, write_tables

DEFAULT_OUTPUT_DIR = Path("output")
ENTITY_RECORDS_CSV = "entity_records.csv"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Cluster ledger addresses into entities and classify them."
    )
    parser.add_argument("snapshot_dir", type=Path, help="Directory holding the four input CSV relations.")
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=DEFAULT_OUTPUT_DIR,
        help=f"Where entity_records.csv is written (default: {DEFAULT_OUTPUT_DIR}).",
    )
    parser.add_argument(
        "--export-intermediate",
        action="store_true",
        help="Also write chain edges, features, profiles and relationships.",
    )
    parser.add_argument("--max-chain-depth", type=int, help="Hops followed beyond the seed hop.")
    parser.add_argument("--large-tx-threshold", type=float, help="Amount above which an edge is large.")
    parser.add_argument("--micro-tx-threshold", type=float, help="Amount below which an edge is micro.")
    parser.add_argument("--business-hours-start", type=int, help="First business hour (inclusive).")
    parser.add_argument("--business-hours-end", type=int, help="Last business hour (inclusive).")
    parser.add_argument("--timezone", dest="business_hours_timezone", help="Timezone for business hours.")
    parser.add_argument("--statistics-mode", choices=STATISTICS_MODES, help="Volume statistics mode.")
    parser.add_argument("--concurrency", type=int, help="Worker threads per stage.")
    parser.add_argument(
        "--drop-self-relationships",
        action="store_true",
        default=None,
        help="Filter entity relationships whose source and target are the same entity.",
    )
    parser.add_argument("--checkpoint-dir", type=Path, help="Write every stage output here as it completes.")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    run_id = uuid.uuid4().hex
    run_logger = bind_run(run_id)
    try:
        config = get_settings().with_overrides(
            max_chain_depth=args.max_chain_depth,
            large_tx_threshold=args.large_tx_threshold,
            micro_tx_threshold=args.micro_tx_threshold,
            business_hours_start=args.business_hours_start,
            business_hours_end=args.business_hours_end,
            business_hours_timezone=args.business_hours_timezone,
            statistics_mode=args.statistics_mode,
            concurrency=args.concurrency,
            drop_self_relationships=args.drop_self_relationships,
            checkpoint_dir=args.checkpoint_dir,
        )
        snapshot = load_snapshot(args.snapshot_dir)
        result = run_pipeline(snapshot, config, run_id=run_id)
        if args.export_intermediate:
            write_tables(result.tables(), args.output_dir)
        else:
            write_table(result.entity_records, args.output_dir / ENTITY_RECORDS_CSV, EntityRecord)
    except EntityMappingError as e:
        run_logger.error("run_entity_mapping_failed", error=str(e))
        print(f"[run_entity_mapping] ERROR: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        run_logger.error("run_entity_mapping_io_failed", error=str(e))
        print(f"[run_entity_mapping] ERROR: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        run_logger.exception("run_entity_mapping_crashed", error=str(e))
        return 1

    types = Counter(r.entity_type for r in result.entity_records)
    print(f"[run_entity_mapping] {len(result.entity_records)} entities -> {args.output_dir / ENTITY_RECORDS_CSV}")
    for entity_type, count in sorted(types.items()):
        print(f"  {entity_type}: {count}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
