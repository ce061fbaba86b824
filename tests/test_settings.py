"""
Tests for PipelineConfig validation and environment-driven settings.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from entity_mapping.config.settings import (
    STATISTICS_SINGLE_PASS,
    ClassifierConfig,
    PipelineConfig,
    get_settings,
)
from entity_mapping.core.exceptions import ConfigError

ENV_NAMES = (
    "MAX_CHAIN_DEPTH",
    "LARGE_TX_THRESHOLD",
    "MICRO_TX_THRESHOLD",
    "BUSINESS_HOURS_START",
    "BUSINESS_HOURS_END",
    "BUSINESS_HOURS_TZ",
    "STATISTICS_MODE",
    "CONCURRENCY",
    "DROP_SELF_RELATIONSHIPS",
    "CHECKPOINT_DIR",
    "CLASSIFIER_EXCHANGE_MIN_NUM_TRANSACTIONS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(f"ENTITY_MAPPING_{name}", raising=False)


def test_defaults():
    cfg = PipelineConfig()
    assert cfg.max_chain_depth == 2
    assert cfg.max_chain_length == 3
    assert cfg.large_tx_threshold == 100.0
    assert cfg.micro_tx_threshold == 0.1
    assert (cfg.business_hours_start, cfg.business_hours_end) == (9, 17)
    assert cfg.drop_self_relationships is False
    assert cfg.checkpoint_dir is None
    assert cfg.classifier == ClassifierConfig()


@pytest.mark.parametrize(
    "kwargs, setting",
    [
        ({"max_chain_depth": -1}, "max_chain_depth"),
        ({"business_hours_start": 24}, "business_hours_start"),
        ({"business_hours_start": 18, "business_hours_end": 9}, "business_hours_start"),
        ({"business_hours_timezone": "Mars/Olympus_Mons"}, "business_hours_timezone"),
        ({"statistics_mode": "three_pass"}, "statistics_mode"),
        ({"concurrency": 0}, "concurrency"),
    ],
)
def test_invalid_config_rejected(kwargs, setting):
    with pytest.raises(ConfigError) as exc:
        PipelineConfig(**kwargs)
    assert exc.value.setting == setting


def test_with_overrides_ignores_none():
    cfg = PipelineConfig()
    assert cfg.with_overrides(max_chain_depth=None) is cfg
    changed = cfg.with_overrides(max_chain_depth=4, concurrency=None)
    assert changed.max_chain_depth == 4
    assert changed.concurrency == cfg.concurrency


def test_get_settings_reads_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("ENTITY_MAPPING_MAX_CHAIN_DEPTH", "4")
    monkeypatch.setenv("ENTITY_MAPPING_BUSINESS_HOURS_TZ", "Europe/Berlin")
    monkeypatch.setenv("ENTITY_MAPPING_STATISTICS_MODE", STATISTICS_SINGLE_PASS)
    monkeypatch.setenv("ENTITY_MAPPING_DROP_SELF_RELATIONSHIPS", "yes")
    monkeypatch.setenv("ENTITY_MAPPING_CHECKPOINT_DIR", str(tmp_path))
    monkeypatch.setenv("ENTITY_MAPPING_CLASSIFIER_EXCHANGE_MIN_NUM_TRANSACTIONS", "50")
    cfg = get_settings()
    assert cfg.max_chain_depth == 4
    assert cfg.business_hours_timezone == "Europe/Berlin"
    assert cfg.statistics_mode == STATISTICS_SINGLE_PASS
    assert cfg.drop_self_relationships is True
    assert cfg.checkpoint_dir == Path(str(tmp_path))
    assert cfg.classifier.exchange_min_num_transactions == 50


def test_blank_env_value_keeps_default(monkeypatch):
    monkeypatch.setenv("ENTITY_MAPPING_CONCURRENCY", "  ")
    assert get_settings().concurrency == PipelineConfig().concurrency


@pytest.mark.parametrize(
    "name, value",
    [
        ("MAX_CHAIN_DEPTH", "two"),
        ("LARGE_TX_THRESHOLD", "lots"),
        ("DROP_SELF_RELATIONSHIPS", "maybe"),
    ],
)
def test_malformed_env_value(monkeypatch, name, value):
    monkeypatch.setenv(f"ENTITY_MAPPING_{name}", value)
    with pytest.raises(ConfigError) as exc:
        get_settings()
    assert exc.value.setting == f"ENTITY_MAPPING_{name}"
