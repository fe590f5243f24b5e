"""Shared pytest fixtures."""

from __future__ import annotations

import logging
from collections.abc import Generator
from typing import Any

import pytest

from upbank_proxy.config import Settings


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        up_token="test-token",
        up_page_delay_seconds=0.0,
        log_dir=str(tmp_path / "logs"),
        local_transactions_file=str(tmp_path / "transactions.json"),
    )


@pytest.fixture(autouse=True)
def _reset_service_logger() -> Generator[None, Any, None]:
    """Drop handlers setup_logging attaches so log files are released."""
    yield
    service_logger = logging.getLogger("upbank_proxy")
    for handler in service_logger.handlers:
        handler.close()
    service_logger.handlers = []
