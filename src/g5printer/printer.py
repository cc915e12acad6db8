"""
High-Level G5 Printer Interface.

Provides a simple API for printing bag labels on the G5 printer. Each
physical label is built as a canvas (init, fields, footer, advance) and
streamed command by command, pausing after each field so the printer's
buffer can drain.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from PIL import Image

from .canvas import LabelCanvas
from .commands import G5Commands
from .config import PrinterSettings
from .connection import (
    DEFAULT_IDENTITY,
    BLEConnection,
    ConnectionHandle,
    ConnectionState,
    PeripheralIdentity,
    PrinterInfo,
    ServiceInfo,
)
from .errors import NotConnectedError, ValidationError
from .label import LabelField, LabelJob, build_label_job
from .recovery import RecoverySupervisor

LOGGER = logging.getLogger(__name__)

PACKAGE_LOGGER = "g5printer"

TEST_LABEL_LINES = (
    "12345678901234567890123456789012",
    "CUSTOMER: JOHN SMITH DOE",
    "ORDER: #123456",
    "PHONE: 555-123-4567",
)


@dataclass
class PrinterStatus:
    """Snapshot of the printer connection.

    Attributes:
        connected: True if the link is up and writable
        device_name: Name of the connected (or last known) printer
        supported: True if this platform has a BLE backend
        state: Current connection state
    """
    connected: bool
    device_name: Optional[str]
    supported: bool
    state: ConnectionState


def build_canvas(
    fields: list[LabelField],
    settings: PrinterSettings,
) -> LabelCanvas:
    """Lay out one physical label: init, fields, footer separator, advance."""
    canvas = LabelCanvas(settings).start()
    for label_field in fields:
        canvas.text(
            label_field.text,
            scale=label_field.scale,
            align=label_field.align,
            settle=label_field.settle,
        )
    canvas.separator()
    return canvas.end()


class G5Printer:
    """
    High-level interface to the G5 label printer.

    One instance owns one connection. Every job runs under the recovery
    supervisor's lock, so jobs never interleave with each other or with a
    reconnect.
    """

    def __init__(
        self,
        settings: Optional[PrinterSettings] = None,
        identity: PeripheralIdentity = DEFAULT_IDENTITY,
        connection: Optional[BLEConnection] = None,
    ):
        """
        Initialize printer interface.

        Args:
            settings: Driver tuning (defaults match the G5)
            identity: How to recognise the printer during discovery
            connection: Pre-built connection, mainly for tests
        """
        self.settings = (settings or PrinterSettings()).validate()
        self.connection = connection or BLEConnection(identity, self.settings)
        self.supervisor = RecoverySupervisor(self.connection, self.settings)
        self._debug = False

    def set_debug(self, enabled: bool):
        """Enable/disable debug logging for the whole driver."""
        self._debug = enabled
        logging.getLogger(PACKAGE_LOGGER).setLevel(
            logging.DEBUG if enabled else logging.NOTSET
        )

    async def scan(self, timeout: Optional[float] = None) -> list[PrinterInfo]:
        """Scan for nearby G5 printers."""
        return await self.connection.scan(timeout)

    async def connect(self, address: Optional[str] = None) -> ConnectionHandle:
        """
        Connect to a printer.

        Args:
            address: Bluetooth address (or macOS UUID). Scans if omitted.

        Returns:
            The live connection handle

        Raises:
            PrinterConnectionError: If no printer was found or linked
        """
        async with self.supervisor.lock:
            return await self.connection.connect(address)

    async def disconnect(self):
        """Disconnect from the printer, stopping any background recovery."""
        await self.supervisor.cancel_recovery()
        async with self.supervisor.lock:
            await self.connection.disconnect()

    def status(self) -> PrinterStatus:
        return PrinterStatus(
            connected=self.supervisor.validate(self.connection.handle),
            device_name=self.connection.device_name,
            supported=BLEConnection.is_supported(),
            state=self.connection.state,
        )

    @property
    def is_connected(self) -> bool:
        """Check if connected to printer."""
        return self.connection.is_connected

    # --- Label printing ---

    def build_job(self, order: Any, quantity: int = 1, now: Optional[datetime] = None) -> LabelJob:
        """Build a validated label job from an order record."""
        return build_label_job(order, quantity, self.settings, now)

    def canvases_for_job(self, job: LabelJob) -> list[LabelCanvas]:
        """One finished canvas per physical copy."""
        job.validate()
        return [
            build_canvas(job.fields_for_copy(copy), self.settings)
            for copy in range(1, job.quantity + 1)
        ]

    async def print_label(self, order: Any, quantity: int = 1) -> int:
        """
        Print bag labels for an order.

        Args:
            order: Order mapping (orderId, customerName, ...) or OrderData
            quantity: Number of bags, 1-10. With more than one, each label
                carries a "BAG i OF n" line.

        Returns:
            Number of labels printed

        Raises:
            ValidationError: If the order or quantity is invalid
            NotConnectedError: If connect() was never called (or the
                connection was lost and could not be restored)
            TransportError: If a write fails mid-label
        """
        return await self.print_job(self.build_job(order, quantity))

    async def print_job(self, job: LabelJob) -> int:
        """
        Print every copy of a job.

        The link is validated (and reconnected if stale) once before the
        first copy. A failure aborts the current copy; copies already
        printed stay printed.
        """
        canvases = self.canvases_for_job(job)

        async with self.supervisor.session():
            for copy, canvas in enumerate(canvases, start=1):
                LOGGER.info("Printing label %d of %d", copy, job.quantity)
                await self._send_canvas(canvas)

        LOGGER.info("Printed %d label(s)", job.quantity)
        return job.quantity

    async def print_canvas(self, canvas: LabelCanvas):
        """
        Print a custom label built with LabelCanvas.

        Raises:
            ValidationError: If the canvas holds no commands
        """
        if not canvas.steps:
            raise ValidationError("Canvas is empty - call start() and draw something first")
        async with self.supervisor.session():
            await self._send_canvas(canvas)

    async def print_test_label(self):
        """Print a fixed four-line label to check width and alignment."""
        canvas = LabelCanvas(self.settings).start(top_margin_dots=8)
        for text in TEST_LABEL_LINES:
            canvas.text(text, scale=2)
        canvas.raw(G5Commands.form_feed())
        canvas.raw(G5Commands.feed_lines(5))
        await self.print_canvas(canvas)

    async def _send_canvas(self, canvas: LabelCanvas):
        """Stream a canvas. Caller must hold the supervisor lock."""
        total = 0
        for step in canvas.steps:
            await self.connection.send(step.command)
            total += len(step.command)
            if step.settle > 0:
                await asyncio.sleep(step.settle)
        LOGGER.debug("Label sent: %d commands, %d bytes", len(canvas.steps), total)

    def preview_label(self, order: Any, quantity: int = 1) -> list[Image.Image]:
        """Render the labels an order would print, without a printer."""
        job = self.build_job(order, quantity)
        return [canvas.preview() for canvas in self.canvases_for_job(job)]

    # --- Low level ---

    async def send_raw(self, data: bytes) -> int:
        """
        Send raw bytes to the printer (for debugging).

        Returns:
            Number of chunks written
        """
        if not data:
            raise ValidationError("No data to send")
        async with self.supervisor.session():
            return await self.connection.send(bytes(data))

    async def discover_services(self) -> list[ServiceInfo]:
        """Discover all BLE services and characteristics."""
        if not self.connection.is_connected:
            raise NotConnectedError("Not connected to printer")
        return await self.connection.get_services()
