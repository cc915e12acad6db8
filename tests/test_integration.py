"""
Integration tests for the G5 printer.

These tests require real hardware to run and are skipped unless a
printer address is given:

    pytest tests/ -m hardware --address=XX:XX:XX:XX:XX:XX

They print real labels.
"""

import pytest

from g5printer import ConnectionState, G5Printer, LabelCanvas

# Fixtures (printer_address, connected_printer) are defined in conftest.py


class TestConnection:
    """Tests for printer connection functionality."""

    @pytest.mark.hardware
    @pytest.mark.asyncio
    async def test_scan_finds_printer(self, printer_address):
        """Test that the given printer shows up in a scan."""
        printer = G5Printer()
        printers = await printer.scan(timeout=5.0)
        assert printer_address.upper() in {p.address.upper() for p in printers}

    @pytest.mark.hardware
    @pytest.mark.asyncio
    async def test_connect_disconnect(self, printer_address):
        """Test connecting and disconnecting from printer."""
        printer = G5Printer()

        await printer.connect(printer_address)
        assert printer.is_connected
        assert printer.status().state is ConnectionState.CONNECTED

        await printer.disconnect()
        assert not printer.is_connected

    @pytest.mark.hardware
    @pytest.mark.asyncio
    async def test_discover_services(self, connected_printer):
        """Test that the selected characteristic is among the services."""
        services = await connected_printer.discover_services()
        assert services
        selected = connected_printer.connection.handle.char_uuid
        assert any(
            char["uuid"] == selected for svc in services for char in svc.characteristics
        )


class TestPrinting:
    """Tests that print real labels."""

    @pytest.mark.hardware
    @pytest.mark.asyncio
    async def test_print_test_label(self, connected_printer):
        await connected_printer.print_test_label()

    @pytest.mark.hardware
    @pytest.mark.asyncio
    async def test_print_two_bags(self, connected_printer):
        printed = await connected_printer.print_label(
            {
                "orderId": "ORD0001",
                "customerName": "Test Customer",
                "customerPhone": "555-0100",
                "address": "1 Test Street",
            },
            quantity=2,
        )
        assert printed == 2

    @pytest.mark.hardware
    @pytest.mark.asyncio
    async def test_print_canvas(self, connected_printer):
        canvas = LabelCanvas(connected_printer.settings).start()
        canvas.text("CANVAS TEST", scale=2)
        canvas.separator()
        canvas.end()
        await connected_printer.print_canvas(canvas)
