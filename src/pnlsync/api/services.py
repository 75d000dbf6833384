"""Builds service objects for request handlers from settings.

Collaborators can be injected (tests pass in-memory fakes); anything not
injected is constructed on first use, which is when missing credentials
surface as ConfigurationError.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Callable

from fastapi import Request

from pnlsync.core.config import AppSettings, require_downstream, require_source
from pnlsync.core.protocols import IClientsSource, IDownstream, IRecordStore, ISourceClient
from pnlsync.integrations.downstream import HttpDownstream, LocalDownstream
from pnlsync.integrations.source_client import PaymentsSourceClient
from pnlsync.persistence import create_store
from pnlsync.services.clients_sync import ClientBook, ClientsSync
from pnlsync.services.daily_summary import DailySummarySync
from pnlsync.services.event_forwarder import EventForwarder
from pnlsync.services.monthly_sync import MonthlySyncDriver
from pnlsync.services.owner_resolver import OwnerResolver
from pnlsync.services.salary_rollover import SalaryRollover
from pnlsync.services.summary_webhook import SummaryWebhook


class ServiceFactory:
    def __init__(
        self,
        settings: AppSettings,
        *,
        store: IRecordStore | None = None,
        source: ISourceClient | None = None,
        clients_source: IClientsSource | None = None,
        downstream: IDownstream | None = None,
        now: Callable[[], datetime] = datetime.now,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.settings = settings
        self._store = store
        self._source = source
        self._clients_source = clients_source
        self._downstream = downstream
        self._now = now
        self._today = today

    def store(self) -> IRecordStore:
        if self._store is None:
            self._store = create_store(self.settings)
        return self._store

    def source(self) -> ISourceClient:
        if self._source is None:
            self._source = PaymentsSourceClient.from_config(require_source(self.settings))
        return self._source

    def clients_source(self) -> IClientsSource:
        if self._clients_source is None:
            self._clients_source = PaymentsSourceClient.from_config(require_source(self.settings))
        return self._clients_source

    def owners(self) -> OwnerResolver:
        return OwnerResolver(self.store(), self.settings.sync.owner_user_id)

    def webhook(self) -> SummaryWebhook:
        return SummaryWebhook(self.store(), self.owners(), company=self.settings.sync.company, now=self._now)

    def downstream(self) -> IDownstream:
        if self._downstream is not None:
            return self._downstream
        cfg = require_downstream(self.settings)
        if cfg.mode == "http":
            return HttpDownstream(webhook_url=cfg.webhook_url, token=cfg.token, timeout=cfg.timeout)
        return LocalDownstream(self.webhook().handle)

    def forwarder(self) -> EventForwarder:
        return EventForwarder(self.downstream(), now=self._now)

    def monthly_sync(self) -> MonthlySyncDriver:
        return MonthlySyncDriver(
            source=self.source(),
            forwarder=self.forwarder(),
            owners=self.owners(),
            company=self.settings.sync.company,
            api_key=self.settings.source.api_key or None,
            today=self._today,
        )

    def salary_rollover(self) -> SalaryRollover:
        return SalaryRollover(
            self.store(),
            default_company=self.settings.sync.company,
            carry_over_bonuses=self.settings.sync.carry_over_bonuses,
        )

    def daily_summary(self) -> DailySummarySync:
        return DailySummarySync(self.store(), self.forwarder(), company=self.settings.sync.company, now=self._now)

    def clients_sync(self) -> ClientsSync:
        return ClientsSync(
            self.clients_source(),
            ClientBook(self.store(), self.owners(), now=self._now),
            api_key=self.settings.source.api_key or None,
            now=self._now,
        )


def get_services(request: Request) -> ServiceFactory:
    return request.app.state.services
