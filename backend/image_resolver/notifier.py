"""
Operational Notifications

Posts short events (new search, quota hit, failures) to an ntfy-style
endpoint. Delivery is best-effort: dispatch never blocks the response
and a failed POST is only logged.
"""

import asyncio
import logging
from typing import Optional, Set

import httpx
from fastapi import BackgroundTasks

from .models import Notification

logger = logging.getLogger(__name__)


def normalize_endpoint(url: Optional[str]) -> Optional[str]:
    """Add https:// when the configured URL has no scheme."""
    if not url:
        return None
    url = url.strip()
    if not url:
        return None
    return url if url.startswith("http") else f"https://{url}"


class Notifier:
    """Fire-and-forget notification sender."""

    def __init__(self, endpoint: Optional[str], http_client: httpx.AsyncClient, timeout: float = 10.0):
        self.endpoint = normalize_endpoint(endpoint)
        self.http_client = http_client
        self.timeout = timeout
        # Strong references keep detached tasks alive until they finish
        self._pending: Set[asyncio.Task] = set()

    @property
    def enabled(self) -> bool:
        return self.endpoint is not None

    async def send(self, notification: Notification) -> None:
        """POST one notification. Never raises."""
        if not self.endpoint:
            return

        try:
            response = await self.http_client.post(
                self.endpoint,
                content=notification.message.encode("utf-8"),
                headers={
                    "Title": notification.title,
                    "Tags": notification.tags,
                    "Priority": str(notification.priority),
                },
                timeout=self.timeout,
            )
            if not response.is_success:
                logger.warning(f"[Notifier] HTTP {response.status_code} for '{notification.title}'")
        except Exception as e:
            logger.error(f"[Notifier] Notification failed: {e}")

    def dispatch(
        self,
        notification: Notification,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> None:
        """
        Schedule a notification without waiting for it.

        With BackgroundTasks the POST runs after the response is sent;
        otherwise it runs as a detached task on the current event loop.
        """
        if not self.enabled:
            return

        if background_tasks is not None:
            background_tasks.add_task(self.send, notification)
            return

        task = asyncio.get_running_loop().create_task(self.send(notification))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
