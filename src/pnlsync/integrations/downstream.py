"""Downstream consumers for forwarded sync events."""

from __future__ import annotations

from typing import Any, Callable

import requests

from pnlsync.core.exceptions import ForwardFailure, PnlSyncError
from pnlsync.models.events import ForwardResult


class HttpDownstream:
    """POSTs events as JSON to a remote webhook."""

    def __init__(self, *, webhook_url: str, token: str, timeout: float | None = None) -> None:
        self._webhook_url = webhook_url
        self._token = token
        self._timeout = timeout

    def send(self, event: dict[str, Any]) -> ForwardResult:
        event_type = event.get("event_type")
        try:
            resp = requests.post(
                self._webhook_url,
                json=event,
                headers={
                    "Authorization": f"Bearer {self._token}",
                    "Accept": "application/json",
                },
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise ForwardFailure(event_type, str(exc)) from exc

        if not 200 <= resp.status_code < 300:
            raise ForwardFailure(
                event_type, f"HTTP {resp.status_code}: {resp.text[:200]}", status_code=resp.status_code,
            )
        try:
            data = resp.json()
        except ValueError:
            data = resp.text
        return ForwardResult(success=True, data=data)


class LocalDownstream:
    """Calls an in-process handler, e.g. ``SummaryWebhook.handle``."""

    def __init__(self, handler: Callable[[dict[str, Any]], Any]) -> None:
        self._handler = handler

    def send(self, event: dict[str, Any]) -> ForwardResult:
        try:
            data = self._handler(dict(event))
        except PnlSyncError as exc:
            raise ForwardFailure(event.get("event_type"), str(exc)) from exc
        return ForwardResult(success=True, data=data)
