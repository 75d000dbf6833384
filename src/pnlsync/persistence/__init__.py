"""Pluggable persistence backends behind Protocol interfaces."""

from __future__ import annotations

from pnlsync.core.config import AppSettings, require_store
from pnlsync.persistence.dynamodb_backend import DynamoDBRecordStore


def create_store(settings: AppSettings | None = None) -> DynamoDBRecordStore:
    """Create the production record store from application settings."""
    if settings is None:
        settings = AppSettings()

    cfg = require_store(settings)
    return DynamoDBRecordStore(
        table_suffix=cfg.table_suffix,
        region=cfg.region,
        endpoint_url=cfg.endpoint_url,
    )
