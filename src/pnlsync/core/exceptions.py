"""pnlsync exception hierarchy."""

from __future__ import annotations


class PnlSyncError(Exception):
    """Base exception for all pnlsync errors."""


class ConfigurationError(PnlSyncError):
    """Required runtime configuration is missing."""


class NormalizationError(PnlSyncError):
    """A month/date input could not be turned into a period."""

    def __init__(self, value: object, reason: str = "unrecognized period") -> None:
        self.value = value
        super().__init__(f"Cannot normalize period {value!r}: {reason}")


class SourceUnavailable(PnlSyncError):
    """External source returned non-2xx, a bad body, or could not be reached."""

    def __init__(self, period: str, detail: str, status_code: int | None = None) -> None:
        self.period = period
        self.status_code = status_code
        super().__init__(f"Source unavailable for period {period}: {detail}")


class RecordNotResolvable(PnlSyncError):
    """No owning entity could be found for a record."""


class ClientNotFound(RecordNotResolvable):
    """No client row carries the given name."""


class StoreError(PnlSyncError):
    """Persistent store request failed."""


class ReconcileWriteFailure(PnlSyncError):
    """The store rejected an update or insert for one record."""

    def __init__(self, table: str, key: dict, detail: str) -> None:
        self.table = table
        self.key = key
        super().__init__(f"Write to {table} failed for key {key}: {detail}")


class ForwardFailure(PnlSyncError):
    """Downstream consumer rejected a forwarded event."""

    def __init__(self, event_type: str | None, detail: str, status_code: int | None = None) -> None:
        self.event_type = event_type
        self.status_code = status_code
        super().__init__(f"Forwarding {event_type or 'event'} failed: {detail}")


class UnsupportedEventError(PnlSyncError):
    """Webhook received an event type it has no handler for."""
