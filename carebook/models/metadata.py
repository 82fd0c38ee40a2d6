"""Shared table metadata and column helpers."""

from datetime import UTC, datetime

from sqlalchemy import MetaData

# Metadata for all tables
metadata = MetaData()


def utc_now() -> datetime:
    """Timestamp default for audit columns."""
    return datetime.now(UTC)
