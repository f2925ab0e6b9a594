"""Shared utilities for the work registry services."""

from shared.utils.db import get_db_session, init_db, run_in_transaction
from shared.utils.logging import configure_logging, get_correlation_id, set_correlation_id
from shared.utils.metrics import create_counter, create_histogram

__all__ = [
    "configure_logging",
    "get_correlation_id",
    "set_correlation_id",
    "get_db_session",
    "init_db",
    "run_in_transaction",
    "create_counter",
    "create_histogram",
]
