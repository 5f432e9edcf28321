"""Best-effort backend reachability indicator."""

import asyncio
import logging
from contextlib import suppress
from enum import Enum
from typing import Callable, Optional, Sequence

from .exceptions import BackendUnavailableError
from .stationery_client import StationeryClient

logger = logging.getLogger(__name__)


class ConnectionStatus(str, Enum):
    CHECKING = "checking"
    ONLINE = "online"
    OFFLINE = "offline"


class ConnectionProber:
    """
    Periodically checks whether the backend answers.

    The status never gates anything; it only feeds indicators and the
    decision to fall back to sample data. Use it as an async context manager
    to bind the probe loop to the lifetime of a view.
    """

    def __init__(
        self,
        client: StationeryClient,
        endpoints: Sequence[str] = ("/product/get",),
        method: str = "HEAD",
        timeout: float = 5.0,
        interval: float = 30.0,
        accept_client_errors: bool = False,
    ) -> None:
        """
        Initialize the prober.

        Args:
            client: Backend client used for the probe requests
            endpoints: Paths tried in order until one answers
            method: HTTP method of the probe request
            timeout: Per-request timeout in seconds
            interval: Seconds between probes while running
            accept_client_errors: Count any status below 500 as reachable,
                instead of 2xx only
        """
        self.client = client
        self.endpoints = tuple(endpoints)
        self.method = method
        self.timeout = timeout
        self.interval = interval
        self.accept_client_errors = accept_client_errors
        self.status = ConnectionStatus.CHECKING
        self._listeners: list[Callable[[ConnectionStatus], None]] = []
        self._task: Optional[asyncio.Task] = None

    def subscribe(self, listener: Callable[[ConnectionStatus], None]) -> None:
        self._listeners.append(listener)

    def _set_status(self, status: ConnectionStatus) -> None:
        if status == self.status:
            return
        logger.debug(f"Connection status: {self.status.value} -> {status.value}")
        self.status = status
        for listener in self._listeners:
            listener(status)

    def mark_online(self) -> None:
        self._set_status(ConnectionStatus.ONLINE)

    def mark_offline(self) -> None:
        self._set_status(ConnectionStatus.OFFLINE)

    def _is_reachable(self, status_code: int) -> bool:
        if self.accept_client_errors:
            return status_code < 500
        return 200 <= status_code < 300

    async def probe(self) -> ConnectionStatus:
        """Run one probe cycle and return the resulting status."""
        self._set_status(ConnectionStatus.CHECKING)
        for endpoint in self.endpoints:
            try:
                response = await self.client.probe(endpoint, method=self.method, timeout=self.timeout)
            except BackendUnavailableError as e:
                logger.debug(f"Probe of {endpoint} failed: {e}")
                continue
            if self._is_reachable(response.status_code):
                self._set_status(ConnectionStatus.ONLINE)
                return self.status
            logger.debug(f"Probe of {endpoint} answered {response.status_code}")
        self._set_status(ConnectionStatus.OFFLINE)
        return self.status

    async def _run(self, immediate: bool) -> None:
        if not immediate:
            await asyncio.sleep(self.interval)
        while True:
            await self.probe()
            await asyncio.sleep(self.interval)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, immediate: bool = True) -> None:
        """
        Start the probe loop on the running event loop.

        Args:
            immediate: Probe right away instead of waiting one interval first
        """
        if self.running:
            return
        logger.info(f"Starting connection prober for {', '.join(self.endpoints)}")
        self._task = asyncio.create_task(self._run(immediate))

    async def stop(self) -> None:
        """Cancel the probe loop and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        with suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Connection prober stopped")

    async def __aenter__(self) -> "ConnectionProber":
        self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()
