"""Online/offline signal consumed by the sync engine.

The monitor owns a single boolean. Status is pushed either explicitly through
:meth:`ConnectivityMonitor.set_online` or by :meth:`ConnectivityMonitor.probe`,
which a background task started with :meth:`ConnectivityMonitor.start` calls on
a fixed interval. Listeners only hear about real transitions.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable

import httpx

logger = logging.getLogger(__name__)

ConnectivityListener = Callable[[bool], Awaitable[None] | None]


class ConnectivityMonitor:
    def __init__(
        self,
        probe_url: str,
        *,
        poll_interval: float = 15.0,
        timeout: float = 5.0,
        initial: bool = True,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._probe_url = probe_url
        self._poll_interval = poll_interval
        self._timeout = timeout
        self._online = initial
        self._listeners: list[ConnectivityListener] = []
        self._http = http_client
        self._task: asyncio.Task[None] | None = None

    def current(self) -> bool:
        return self._online

    def on_change(self, callback: ConnectivityListener) -> Callable[[], None]:
        """Register ``callback`` and return a function that unregisters it."""

        self._listeners.append(callback)

        def _unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _unsubscribe

    async def set_online(self, online: bool) -> None:
        """Record the new status and notify listeners when it actually changed."""

        if online == self._online:
            return
        self._online = online
        logger.info("Connectivity changed: %s", "online" if online else "offline")
        for listener in list(self._listeners):
            result = listener(online)
            if inspect.isawaitable(result):
                await result

    async def probe(self) -> bool:
        """Issue one HTTP request against the probe URL and record the outcome.

        Any HTTP response, whatever its status, proves the network is reachable.
        """

        try:
            if self._http is not None:
                await self._http.get(self._probe_url, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    await client.get(self._probe_url)
            online = True
        except httpx.HTTPError as exc:
            logger.debug("Connectivity probe to %s failed: %s", self._probe_url, exc)
            online = False
        await self.set_online(online)
        return online

    async def _poll(self) -> None:
        while True:
            await self.probe()
            await asyncio.sleep(self._poll_interval)

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._poll(), name="connectivity-poll")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None


__all__ = ["ConnectivityListener", "ConnectivityMonitor"]
