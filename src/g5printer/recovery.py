"""
Connection recovery for the G5 printer.

The link can drop on its own (printer walked out of range, went to
sleep) or go stale silently between jobs. The supervisor validates the
link before each job, reconnects with backoff when needed and reacts to
unsolicited disconnects in the background. One lock serializes every
reconnect and every job so two of them never write into the printer's
buffer at the same time.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from .config import PrinterSettings
from .connection import BLEConnection, ConnectionHandle, ConnectionState
from .errors import ExhaustedError, NotConnectedError

LOGGER = logging.getLogger(__name__)


class RecoverySupervisor:
    """Validates and restores the connection owned by a BLEConnection."""

    def __init__(self, connection: BLEConnection, settings: Optional[PrinterSettings] = None):
        self.connection = connection
        self.settings = settings or connection.settings
        self.lock = asyncio.Lock()
        self._recovery_task: Optional[asyncio.Task] = None
        connection.on_unsolicited_disconnect = self._on_unsolicited_disconnect

    def validate(self, handle: Optional[ConnectionHandle]) -> bool:
        """True if the link is up and the characteristic still takes writes."""
        if handle is None:
            return False
        if not handle.is_linked:
            LOGGER.debug("Validation failed: link to %s is down", handle.name)
            return False
        if not handle.is_writable:
            LOGGER.debug("Validation failed: characteristic lost write capability")
            return False
        return True

    async def reconnect(self, max_attempts: Optional[int] = None) -> ConnectionHandle:
        """
        Reconnect to the last printer, waiting for any job in progress.

        Raises:
            ExhaustedError: If every attempt failed
        """
        async with self.lock:
            return await self._reconnect(max_attempts or self.settings.reconnect_attempts)

    async def _reconnect(self, max_attempts: int) -> ConnectionHandle:
        """Reconnect loop. Caller must hold the lock."""
        self.connection.transition(ConnectionState.RECOVERING)
        last_error: Optional[Exception] = None

        for attempt in range(1, max_attempts + 1):
            if attempt > 1:
                wait = self.settings.backoff(attempt - 1)
                LOGGER.info("Waiting %.1fs before reconnect attempt %d", wait, attempt)
                await asyncio.sleep(wait)

            LOGGER.info("Reconnect attempt %d/%d", attempt, max_attempts)
            try:
                await self.connection.close_link()
                await asyncio.sleep(self.settings.reconnect_settle)
                handle = await self.connection.relink(strict_probe=True)
            except Exception as e:
                last_error = e
                LOGGER.warning("Reconnect attempt %d/%d failed: %s", attempt, max_attempts, e)
                continue

            self.connection.transition(ConnectionState.CONNECTED)
            LOGGER.info("Reconnected to %s", handle.name)
            return handle

        await self.connection.close_link()
        self.connection.transition(ConnectionState.DISCONNECTED)
        raise ExhaustedError(
            f"Unable to restore printer connection after {max_attempts} attempt(s): {last_error}"
        ) from last_error

    async def ensure_ready(self, max_attempts: Optional[int] = None) -> ConnectionHandle:
        """
        Return a valid handle, reconnecting if the current one went stale.

        Caller must hold the lock.

        Raises:
            NotConnectedError: If there was never a connection (or it was closed)
            ExhaustedError: If the stale link could not be restored
        """
        handle = self.connection.handle
        if handle is None:
            raise NotConnectedError("Printer not connected - please connect first")
        if self.validate(handle):
            return handle

        LOGGER.warning("Printer connection is stale, attempting recovery...")
        return await self._reconnect(max_attempts or self.settings.reconnect_attempts)

    @asynccontextmanager
    async def session(self, max_attempts: Optional[int] = None) -> AsyncIterator[ConnectionHandle]:
        """Hold the lock with a validated connection for the duration of a job."""
        async with self.lock:
            yield await self.ensure_ready(max_attempts)

    # --- Background recovery ---

    def _on_unsolicited_disconnect(self, handle: ConnectionHandle):
        if self._recovery_task is not None and not self._recovery_task.done():
            LOGGER.debug("Recovery already scheduled")
            return
        loop = asyncio.get_running_loop()
        self._recovery_task = loop.create_task(self._recover_in_background())

    async def _recover_in_background(self):
        await asyncio.sleep(self.settings.background_reconnect_delay)
        async with self.lock:
            if self.validate(self.connection.handle):
                LOGGER.debug("Connection already restored, skipping background recovery")
                return
            if self.connection.state is not ConnectionState.RECOVERING:
                LOGGER.debug("Connection closed meanwhile, skipping background recovery")
                return
            LOGGER.info("Attempting automatic reconnection...")
            try:
                await self._reconnect(self.settings.background_reconnect_attempts)
            except ExhaustedError as e:
                LOGGER.error("Automatic reconnection failed: %s", e)

    @property
    def recovery_task(self) -> Optional[asyncio.Task]:
        """The background recovery task, if one was started."""
        return self._recovery_task

    async def wait_for_recovery(self):
        """Wait until any background recovery has finished."""
        if self._recovery_task is not None:
            await self._recovery_task

    async def cancel_recovery(self):
        """Stop a pending background recovery (used on disconnect)."""
        task = self._recovery_task
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._recovery_task = None
