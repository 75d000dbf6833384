"""Application configuration using pydantic-settings with grouped env prefixes."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings

from pnlsync.core.exceptions import ConfigurationError


class SourceConfig(BaseSettings):
    """External payments source (monthly summary API) configuration."""

    model_config = {"env_prefix": "PNLSYNC_SOURCE_"}

    base_url: str = ""
    clients_url: str = ""
    api_key: str = ""
    timeout: float | None = None  # None = transport default
    max_retries: int = 0
    backoff_factor: float = 2.0
    max_backoff: float = 30.0


class DownstreamConfig(BaseSettings):
    """Downstream consumer of forwarded events."""

    model_config = {"env_prefix": "PNLSYNC_DOWNSTREAM_"}

    mode: Literal["local", "http"] = "local"
    webhook_url: str = ""
    token: str = ""
    timeout: float | None = None


class DynamoDBConfig(BaseSettings):
    """DynamoDB configuration."""

    model_config = {"env_prefix": "PNLSYNC_DYNAMO_"}

    table_suffix: str = ""  # "-dev", "-uat", or "" for prod
    region: str = "us-east-1"
    endpoint_url: str | None = None  # LocalStack override


class SyncConfig(BaseSettings):
    """Reconciliation defaults."""

    model_config = {"env_prefix": "PNLSYNC_SYNC_"}

    company: str = "Спасение"
    owner_user_id: str | None = None
    carry_over_bonuses: bool = False


class AppSettings(BaseSettings):
    """Root application settings aggregating all sub-configs."""

    model_config = {"env_prefix": "PNLSYNC_"}

    environment: Literal["dev", "uat", "prod"] = "dev"
    log_level: str = "INFO"
    log_json: bool = False

    source: SourceConfig = SourceConfig()
    downstream: DownstreamConfig = DownstreamConfig()
    dynamodb: DynamoDBConfig = DynamoDBConfig()
    sync: SyncConfig = SyncConfig()


def require_source(settings: AppSettings) -> SourceConfig:
    """Return the source config, failing if its credentials are not set."""
    missing = [name for name in ("base_url", "api_key") if not getattr(settings.source, name)]
    if missing:
        env = ", ".join(f"PNLSYNC_SOURCE_{name.upper()}" for name in missing)
        raise ConfigurationError(f"Missing source configuration: {env}")
    return settings.source


def require_store(settings: AppSettings) -> DynamoDBConfig:
    if not settings.dynamodb.region:
        raise ConfigurationError("Missing store configuration: PNLSYNC_DYNAMO_REGION")
    return settings.dynamodb


def require_downstream(settings: AppSettings) -> DownstreamConfig:
    """Return the downstream config; HTTP mode needs a URL and a token."""
    cfg = settings.downstream
    if cfg.mode == "http":
        missing = [name for name in ("webhook_url", "token") if not getattr(cfg, name)]
        if missing:
            env = ", ".join(f"PNLSYNC_DOWNSTREAM_{name.upper()}" for name in missing)
            raise ConfigurationError(f"Missing downstream configuration: {env}")
    return cfg
