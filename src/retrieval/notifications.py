"""Desktop notifications via the capture service's notifier. Fire-and-forget."""
from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

log = logging.getLogger("notifications")


class Notifier(Protocol):
    async def send_desktop_notification(
        self, title: str, body: str, actions: list[dict[str, Any]] | None = None
    ) -> None: ...


class DesktopNotifier:
    def __init__(self, notify_url: str, timeout: float = 5.0, transport: httpx.AsyncBaseTransport | None = None):
        self.notify_url = notify_url
        self.timeout = timeout
        self._transport = transport

    async def send_desktop_notification(
        self, title: str, body: str, actions: list[dict[str, Any]] | None = None
    ) -> None:
        payload: dict[str, Any] = {"title": title, "body": body}
        if actions:
            payload["actions"] = actions
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                r = await client.post(self.notify_url, json=payload)
            if r.status_code >= 400:
                log.warning("notification %r rejected: HTTP %s", title, r.status_code)
        except httpx.HTTPError as e:
            log.warning("notification %r failed: %s", title, e)
