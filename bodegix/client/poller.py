# bodegix/client/poller.py
"""
Status polling while a QR code is on screen.

Polls every `interval` seconds until the server reports a terminal status
or the local countdown runs out. The countdown is only a UI hint; the
server's expires_at is what counts, so a cancelled poller does not need to
tell anyone.
"""
import asyncio
import logging
import time
from typing import Callable, Optional

import httpx

from bodegix.client.api import BodegixApi

logger = logging.getLogger(__name__)

PENDING = "pending"
USED = "used"
EXPIRED = "expired"
UNKNOWN = "unknown"
TERMINAL_STATUSES = {USED, EXPIRED, UNKNOWN}

DEFAULT_INTERVAL = 1.5


class StatusPoller:
    def __init__(
        self,
        api: BodegixApi,
        code: str,
        ttl_seconds: float,
        interval: float = DEFAULT_INTERVAL,
        on_status: Optional[Callable[[str], None]] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.api = api
        self.code = code
        self.ttl_seconds = ttl_seconds
        self.interval = interval
        self.on_status = on_status
        self.clock = clock

        self.last_status = PENDING
        self._task: Optional[asyncio.Task] = None

    def _set_status(self, status: str) -> None:
        if status != self.last_status and self.on_status:
            self.on_status(status)
        self.last_status = status

    async def poll_once(self) -> Optional[str]:
        """
        One tick. None when the request failed in a way worth retrying
        (network, 5xx). A 4xx (bad token, gone route) is raised.
        """
        try:
            status = await self.api.session_status(self.code)
        except httpx.TransportError as e:
            logger.debug("status poll failed for %s: %s", self.code, e)
            return None
        except httpx.HTTPStatusError as e:
            if e.response.status_code < 500:
                raise
            logger.debug("status poll failed for %s: %s", self.code, e)
            return None

        self._set_status(status)
        return status

    async def run(self) -> str:
        """Returns the final status: used, expired or unknown."""
        deadline = self.clock() + self.ttl_seconds

        while True:
            status = await self.poll_once()
            if status in TERMINAL_STATUSES:
                return status

            remaining = deadline - self.clock()
            if remaining <= 0:
                # countdown over: give up whatever the server says
                self._set_status(USED if self.last_status == USED else EXPIRED)
                return self.last_status

            await asyncio.sleep(min(self.interval, remaining))

    # =============================
    # scheduled-task form
    # =============================

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run(), name=f"qr-status-{self.code[:8]}")
        return self._task

    def cancel(self) -> None:
        """Stop polling (view closed). The session just expires server-side."""
        if self._task is not None and not self._task.done():
            self._task.cancel()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()
