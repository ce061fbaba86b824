"""
Test that entity_logging can be imported without circular import and logger works.
"""

from __future__ import annotations


def test_logging_import():
    """Import get_logger from entity_logging and use the logger."""
    from entity_mapping.entity_logging import get_logger

    logger = get_logger("test")
    assert logger is not None
    assert hasattr(logger, "info")
    assert hasattr(logger, "debug")
    assert hasattr(logger, "warning")
    assert hasattr(logger, "error")
    # Smoke test: call info (should not raise)
    logger.info("test_message", key="value")


def test_bind_run():
    """bind_run returns a logger carrying the run id."""
    from entity_mapping.entity_logging import bind_run

    logger = bind_run("run-42")
    logger.info("run_started", stage="chain_builder")
