"""External payments source connector.

One GET per period against the source's summary endpoint:

    GET <base_url>?month=YYYY-MM
    x-api-key: <key>

and a lenient decode of ``{"data": {"total_payments_sum": <number>}}``:
a missing field means no activity that month and decodes as 0.

The client roster for a month comes from a second endpoint:

    POST <clients_url>  {"month": "YYYY-MM", "include_terminated": false, ...}

whose body is a list of clients, bare or under ``clients`` or ``data``.
"""

from __future__ import annotations

import math
import time
from typing import Any, Callable

import requests
import structlog

from pnlsync.core.config import SourceConfig
from pnlsync.core.exceptions import ConfigurationError, SourceUnavailable
from pnlsync.models.records import SourceSummary

logger = structlog.get_logger(__name__)


class PaymentsSourceClient:
    """Production ISourceClient and IClientsSource backed by ``requests``."""

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str,
        clients_url: str = "",
        timeout: float | None = None,
        max_retries: int = 0,
        backoff_factor: float = 2.0,
        max_backoff: float = 30.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._base_url = base_url
        self._clients_url = clients_url
        self._api_key = api_key
        self._timeout = timeout
        self._max_retries = max_retries
        self._backoff_factor = backoff_factor
        self._max_backoff = max_backoff
        self._sleep = sleep

    @classmethod
    def from_config(cls, config: SourceConfig) -> PaymentsSourceClient:
        return cls(
            base_url=config.base_url,
            api_key=config.api_key,
            clients_url=config.clients_url,
            timeout=config.timeout,
            max_retries=config.max_retries,
            backoff_factor=config.backoff_factor,
            max_backoff=config.max_backoff,
        )

    def _with_retry(self, api_period: str, send: Callable[[], requests.Response]) -> requests.Response:
        """Call ``send`` with bounded exponential backoff on network errors and 5xx."""
        attempt = 0
        backoff = self._backoff_factor
        while True:
            try:
                resp = send()
            except requests.RequestException as exc:
                if attempt >= self._max_retries:
                    raise SourceUnavailable(api_period, f"request failed: {exc}") from exc
                detail = str(exc)
            else:
                if resp.status_code < 500 or attempt >= self._max_retries:
                    return resp
                detail = f"HTTP {resp.status_code}"

            logger.warning("source_fetch_retry", period=api_period, attempt=attempt + 1, detail=detail)
            self._sleep(min(self._max_backoff, backoff))
            attempt += 1
            backoff = min(self._max_backoff, backoff * self._backoff_factor)

    def _decode(self, api_period: str, resp: requests.Response) -> Any:
        if not 200 <= resp.status_code < 300:
            raise SourceUnavailable(
                api_period, f"HTTP {resp.status_code}: {resp.text[:200]}", status_code=resp.status_code,
            )
        try:
            return resp.json()
        except ValueError as exc:
            raise SourceUnavailable(api_period, "response is not JSON", status_code=resp.status_code) from exc

    def fetch(self, api_period: str, api_key: str | None = None) -> SourceSummary:
        """Fetch the payments total for one ``YYYY-MM`` period.

        Raises:
            SourceUnavailable: non-2xx status, network failure, or a body
                that is not JSON / carries a non-numeric or non-finite total.
        """
        key = api_key or self._api_key
        resp = self._with_retry(api_period, lambda: requests.get(
            self._base_url,
            params={"month": api_period},
            headers={"x-api-key": key, "Accept": "application/json"},
            timeout=self._timeout,
        ))
        payload = self._decode(api_period, resp)

        total = _extract_total(payload)
        if total is None:
            logger.info("source_total_missing", period=api_period)
            return SourceSummary(total_amount=0.0)
        if isinstance(total, bool):
            raise SourceUnavailable(api_period, f"non-numeric total {total!r}")
        try:
            amount = float(total)
        except (TypeError, ValueError) as exc:
            raise SourceUnavailable(api_period, f"non-numeric total {total!r}") from exc
        if not math.isfinite(amount):
            raise SourceUnavailable(api_period, f"non-numeric total {total!r}")
        return SourceSummary(total_amount=amount)

    def fetch_clients(self, api_period: str, api_key: str | None = None) -> list[dict[str, Any]]:
        """Fetch the active clients with contracts in one ``YYYY-MM`` period.

        Raises:
            ConfigurationError: no clients endpoint is configured.
            SourceUnavailable: non-2xx status, network failure, or a body
                that is not JSON / not a list of objects.
        """
        if not self._clients_url:
            raise ConfigurationError("Missing source configuration: PNLSYNC_SOURCE_CLIENTS_URL")
        key = api_key or self._api_key
        resp = self._with_retry(api_period, lambda: requests.post(
            self._clients_url,
            json={"month": api_period, "include_terminated": False, "include_suspended": False},
            headers={"Authorization": f"Bearer {key}", "apikey": key, "Accept": "application/json"},
            timeout=self._timeout,
        ))
        payload = self._decode(api_period, resp)

        clients = payload
        if isinstance(payload, dict):
            clients = payload.get("clients") or payload.get("data") or []
        if not isinstance(clients, list) or not all(isinstance(c, dict) for c in clients):
            raise SourceUnavailable(api_period, "clients response is not a list of objects")
        logger.info("source_clients_fetched", period=api_period, count=len(clients))
        return clients


def _extract_total(payload: Any) -> Any:
    if not isinstance(payload, dict):
        return None
    data = payload.get("data")
    if not isinstance(data, dict):
        return None
    return data.get("total_payments_sum")
