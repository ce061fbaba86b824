"""
Pipeline settings.

Every threshold the stages use lives here so it can be tuned through the
environment (ENTITY_MAPPING_*), a .env file, or CLI flags without code changes.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import pytz

from entity_mapping.config.env import (
    env_bool,
    env_float,
    env_int,
    env_path,
    env_str,
    load_entity_mapping_env,
)
from entity_mapping.core.exceptions import ConfigError

DEFAULT_MAX_CHAIN_DEPTH = 2
DEFAULT_LARGE_TX_THRESHOLD = 100.0
DEFAULT_MICRO_TX_THRESHOLD = 0.1
DEFAULT_BUSINESS_HOURS_START = 9
DEFAULT_BUSINESS_HOURS_END = 17
DEFAULT_BUSINESS_HOURS_TZ = "UTC"
DEFAULT_CONCURRENCY = 8

STATISTICS_TWO_PASS = "two_pass"
STATISTICS_SINGLE_PASS = "single_pass"
STATISTICS_MODES = (STATISTICS_TWO_PASS, STATISTICS_SINGLE_PASS)


@dataclass(frozen=True)
class ClassifierConfig:
    """
    Thresholds for the ordered entity classification rules.

    Rule 1 (Professional Service): peak_tx_rate > professional_min_peak_tx_rate
        and address_reuse_ratio < professional_max_address_reuse_ratio.
    Rule 2 (Business Entity): business_hours_txs > business_min_business_hours_txs
        and avg_transaction_size > business_min_avg_transaction_size.
    Rule 3 (Exchange): num_transactions > exchange_min_num_transactions
        and io_ratio > exchange_min_io_ratio.
    Rule 4 (Mining Pool): in_degree < mining_max_in_degree
        and avg_transaction_size > mining_min_avg_transaction_size.
    """

    professional_min_peak_tx_rate: float = 10.0
    professional_max_address_reuse_ratio: float = 0.1
    business_min_business_hours_txs: int = 0
    business_min_avg_transaction_size: float = 10.0
    exchange_min_num_transactions: int = 100
    exchange_min_io_ratio: float = 0.8
    mining_max_in_degree: int = 3
    mining_min_avg_transaction_size: float = 50.0


@dataclass(frozen=True)
class PipelineConfig:
    """
    Configuration for one pipeline run.

    max_chain_depth: hops followed beyond the seed hop; chain_length <= max_chain_depth + 1.
    large_tx_threshold / micro_tx_threshold: strict bounds for large (>) and micro (<) edges.
    business_hours_start / business_hours_end: inclusive local hour window.
    business_hours_timezone: tz database name used to localize edge timestamps.
    statistics_mode: "two_pass" (exact median) or "single_pass" (Welford, no median).
    concurrency: worker threads per partitioned stage.
    drop_self_relationships: filter source_entity == target_entity flow edges.
    checkpoint_dir: when set, every stage output is written there as CSV.
    """

    max_chain_depth: int = DEFAULT_MAX_CHAIN_DEPTH
    large_tx_threshold: float = DEFAULT_LARGE_TX_THRESHOLD
    micro_tx_threshold: float = DEFAULT_MICRO_TX_THRESHOLD
    business_hours_start: int = DEFAULT_BUSINESS_HOURS_START
    business_hours_end: int = DEFAULT_BUSINESS_HOURS_END
    business_hours_timezone: str = DEFAULT_BUSINESS_HOURS_TZ
    statistics_mode: str = STATISTICS_TWO_PASS
    concurrency: int = DEFAULT_CONCURRENCY
    drop_self_relationships: bool = False
    checkpoint_dir: Path | None = None
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)

    def __post_init__(self) -> None:
        if self.max_chain_depth < 0:
            raise ConfigError("max_chain_depth", "must be >= 0")
        if self.micro_tx_threshold < 0 or self.large_tx_threshold < 0:
            raise ConfigError("large_tx_threshold/micro_tx_threshold", "must be >= 0")
        for name in ("business_hours_start", "business_hours_end"):
            hour = getattr(self, name)
            if not 0 <= hour <= 23:
                raise ConfigError(name, f"hour must be in [0, 23], got {hour}")
        if self.business_hours_start > self.business_hours_end:
            raise ConfigError(
                "business_hours_start",
                f"window [{self.business_hours_start}, {self.business_hours_end}] is inverted",
            )
        try:
            pytz.timezone(self.business_hours_timezone)
        except pytz.UnknownTimeZoneError:
            raise ConfigError(
                "business_hours_timezone", f"unknown timezone {self.business_hours_timezone!r}"
            ) from None
        if self.statistics_mode not in STATISTICS_MODES:
            raise ConfigError(
                "statistics_mode",
                f"expected one of {', '.join(STATISTICS_MODES)}, got {self.statistics_mode!r}",
            )
        if self.concurrency < 1:
            raise ConfigError("concurrency", "must be >= 1")

    @property
    def max_chain_length(self) -> int:
        """Largest chain_length the traversal may emit."""
        return self.max_chain_depth + 1

    @property
    def business_tz(self) -> Any:
        return pytz.timezone(self.business_hours_timezone)

    def with_overrides(self, **overrides: Any) -> PipelineConfig:
        """Return a copy with non-None overrides applied (used by the CLI)."""
        values = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **values) if values else self


def _classifier_from_env() -> ClassifierConfig:
    d = ClassifierConfig()
    return ClassifierConfig(
        professional_min_peak_tx_rate=env_float(
            "CLASSIFIER_PROFESSIONAL_MIN_PEAK_TX_RATE", d.professional_min_peak_tx_rate
        ),
        professional_max_address_reuse_ratio=env_float(
            "CLASSIFIER_PROFESSIONAL_MAX_ADDRESS_REUSE_RATIO", d.professional_max_address_reuse_ratio
        ),
        business_min_business_hours_txs=env_int(
            "CLASSIFIER_BUSINESS_MIN_BUSINESS_HOURS_TXS", d.business_min_business_hours_txs
        ),
        business_min_avg_transaction_size=env_float(
            "CLASSIFIER_BUSINESS_MIN_AVG_TRANSACTION_SIZE", d.business_min_avg_transaction_size
        ),
        exchange_min_num_transactions=env_int(
            "CLASSIFIER_EXCHANGE_MIN_NUM_TRANSACTIONS", d.exchange_min_num_transactions
        ),
        exchange_min_io_ratio=env_float("CLASSIFIER_EXCHANGE_MIN_IO_RATIO", d.exchange_min_io_ratio),
        mining_max_in_degree=env_int("CLASSIFIER_MINING_MAX_IN_DEGREE", d.mining_max_in_degree),
        mining_min_avg_transaction_size=env_float(
            "CLASSIFIER_MINING_MIN_AVG_TRANSACTION_SIZE", d.mining_min_avg_transaction_size
        ),
    )


def get_settings() -> PipelineConfig:
    """
    Build the pipeline configuration from the environment (and .env).

    Unset variables keep their defaults. Raises ConfigError on malformed values.
    """
    load_entity_mapping_env()
    return PipelineConfig(
        max_chain_depth=env_int("MAX_CHAIN_DEPTH", DEFAULT_MAX_CHAIN_DEPTH),
        large_tx_threshold=env_float("LARGE_TX_THRESHOLD", DEFAULT_LARGE_TX_THRESHOLD),
        micro_tx_threshold=env_float("MICRO_TX_THRESHOLD", DEFAULT_MICRO_TX_THRESHOLD),
        business_hours_start=env_int("BUSINESS_HOURS_START", DEFAULT_BUSINESS_HOURS_START),
        business_hours_end=env_int("BUSINESS_HOURS_END", DEFAULT_BUSINESS_HOURS_END),
        business_hours_timezone=env_str("BUSINESS_HOURS_TZ", DEFAULT_BUSINESS_HOURS_TZ),
        statistics_mode=env_str("STATISTICS_MODE", STATISTICS_TWO_PASS),
        concurrency=env_int("CONCURRENCY", DEFAULT_CONCURRENCY),
        drop_self_relationships=env_bool("DROP_SELF_RELATIONSHIPS", False),
        checkpoint_dir=env_path("CHECKPOINT_DIR"),
        classifier=_classifier_from_env(),
    )
