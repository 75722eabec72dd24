"""
Page handles and their lifecycle.

Every scenario gets its own driver (a fresh browser context). The handle is
exclusively owned by that scenario, released on every exit path, and never
reused: once released, any use raises ``InfrastructureError``.
"""
from __future__ import annotations

import itertools
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional

import anyio

from golobe_e2e.browser import Driver
from golobe_e2e.errors import InfrastructureError

logger = logging.getLogger(__name__)

DriverFactory = Callable[[], Awaitable[Driver]]

_handle_ids = itertools.count(1)


@dataclass
class PageHandle:
    """Live browsing context owned by one scenario."""

    handle_id: int
    scenario_id: str
    _driver: Driver
    released: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def driver(self) -> Driver:
        """The underlying driver; refuses access once released."""
        if self.released:
            raise InfrastructureError(
                "Page handle used after release",
                {"handle_id": self.handle_id, "scenario": self.scenario_id},
            )
        if self._driver.is_closed:
            raise InfrastructureError(
                "Page closed underneath the scenario",
                {"handle_id": self.handle_id, "scenario": self.scenario_id},
            )
        return self._driver

    @property
    def url(self) -> str:
        return self.driver.url

    async def release(self) -> None:
        if self.released:
            return
        self.released = True
        try:
            await self._driver.close()
        finally:
            logger.debug("Released %r", self)

    def __repr__(self) -> str:
        return f"PageHandle(id={self.handle_id}, scenario={self.scenario_id}, released={self.released})"


class SessionManager:
    """
    Hands out isolated page handles and tracks the ones still open.

    Usage:
        manager = SessionManager(client.open_driver)
        async with manager.page("login") as handle:
            await handle.driver.navigate(...)
    """

    def __init__(self, driver_factory: DriverFactory) -> None:
        self._driver_factory = driver_factory
        self._open: Dict[int, PageHandle] = {}

    async def open(self, scenario_id: str) -> PageHandle:
        try:
            driver = await self._driver_factory()
        except InfrastructureError:
            raise
        except Exception as exc:
            raise InfrastructureError(f"Could not allocate a browsing context: {exc}") from exc
        handle = PageHandle(handle_id=next(_handle_ids), scenario_id=scenario_id, _driver=driver)
        self._open[handle.handle_id] = handle
        logger.debug("Opened %r", handle)
        return handle

    async def close(self, handle: PageHandle) -> None:
        self._open.pop(handle.handle_id, None)
        try:
            # Shielded so a cancelled suite still closes the context.
            with anyio.CancelScope(shield=True):
                await handle.release()
        except Exception as e:
            logger.warning(f"Error closing page handle {handle.handle_id}: {e}")

    @asynccontextmanager
    async def page(self, scenario_id: str) -> AsyncIterator[PageHandle]:
        """Scoped acquisition: the handle is released however the block exits."""
        handle = await self.open(scenario_id)
        try:
            yield handle
        finally:
            await self.close(handle)

    async def close_all(self) -> None:
        """Close every open handle; pending driver calls then fail fast."""
        for handle in list(self._open.values()):
            await self.close(handle)

    @property
    def open_count(self) -> int:
        return len(self._open)

    def get(self, handle_id: int) -> Optional[PageHandle]:
        return self._open.get(handle_id)
