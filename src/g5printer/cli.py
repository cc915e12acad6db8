"""
Command-Line Interface for the G5 Printer.

Usage:
    g5 scan                 - Scan for printers
    g5 discover             - Discover services on a printer
    g5 print --order-id ... - Print bag labels for an order
    g5 preview --order-id ... - Render labels to PNG without a printer
    g5 test                 - Print the test label
    g5 calibrate            - Print the test label with other pacing
    g5 raw HEX              - Send raw bytes (debugging)
    g5 forget               - Forget the saved printer
"""

import asyncio
import json
import logging
import re
import sys
from pathlib import Path
from typing import Any, Optional

import click

from .cache import clear_cache, load_cached_printer, save_printer
from .config import PrinterSettings, load_settings, save_settings
from .errors import PrinterConnectionError, PrinterError, ValidationError
from .label import MAX_QUANTITY, MIN_QUANTITY
from .printer import G5Printer

# Bluetooth MAC address format: XX:XX:XX:XX:XX:XX (hex pairs separated by colons)
BLUETOOTH_MAC_PATTERN = re.compile(r"^([0-9A-Fa-f]{2}:){5}[0-9A-Fa-f]{2}$")

# macOS CoreBluetooth UUID format: XXXXXXXX-XXXX-XXXX-XXXX-XXXXXXXXXXXX
MACOS_UUID_PATTERN = re.compile(
    r"^[0-9A-Fa-f]{8}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{12}$"
)

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def validate_bluetooth_address(ctx, param, value):
    """Validate Bluetooth address format.

    Accepts:
        - MAC address format: XX:XX:XX:XX:XX:XX (Linux/Windows)
        - UUID format: XXXXXXXX-XXXX-XXXX-XXXX-XXXXXXXXXXXX (macOS)

    Returns:
        The validated address (uppercased for consistency)

    Raises:
        click.BadParameter: If the address format is invalid
    """
    if value is None:
        return None
    if BLUETOOTH_MAC_PATTERN.match(value) or MACOS_UUID_PATTERN.match(value):
        return value.upper()
    raise click.BadParameter(
        f"Invalid Bluetooth address format: '{value}'. "
        "Expected MAC format XX:XX:XX:XX:XX:XX or "
        "macOS UUID format XXXXXXXX-XXXX-XXXX-XXXX-XXXXXXXXXXXX"
    )


address_option = click.option(
    "--address",
    "-a",
    callback=validate_bluetooth_address,
    help="Printer Bluetooth address (if omitted, uses the saved printer or scans)",
)


def order_options(func):
    """Options describing the order a label is printed for."""
    options = [
        click.option("--order-id", help="Order number (an ORD prefix is dropped)"),
        click.option("--name", "customer_name", help="Customer name"),
        click.option("--phone", help="Customer phone number"),
        click.option("--customer-address", help="Delivery address"),
        click.option("--notes", help="Special instructions"),
        click.option("--pickup", help="Pickup time, ISO format (default: now)"),
        click.option(
            "--order-file",
            type=click.Path(exists=True, dir_okay=False, path_type=Path),
            help="JSON file with the order; other options override its values",
        ),
        click.option(
            "--copies",
            type=click.IntRange(MIN_QUANTITY, MAX_QUANTITY),
            default=1,
            help=f"Number of bags ({MIN_QUANTITY}-{MAX_QUANTITY})",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def build_order(
    order_file: Optional[Path] = None,
    **values: Optional[str],
) -> dict[str, Any]:
    """Merge an order file with command-line values.

    Raises:
        click.BadParameter: If the order file is not a JSON object
    """
    order: dict[str, Any] = {}
    if order_file is not None:
        try:
            order = json.loads(order_file.read_text())
        except json.JSONDecodeError as e:
            raise click.BadParameter(f"{order_file}: {e}", param_hint="--order-file")
        if not isinstance(order, dict):
            raise click.BadParameter(
                f"{order_file} must hold a JSON object", param_hint="--order-file"
            )

    overrides = {
        "order_id": values.get("order_id"),
        "customer_name": values.get("customer_name"),
        "phone": values.get("phone"),
        "address": values.get("customer_address"),
        "notes": values.get("notes"),
        "pickup_time": values.get("pickup"),
    }
    order.update({key: value for key, value in overrides.items() if value is not None})
    return order


async def scan_and_select(printer: G5Printer, timeout: Optional[float] = None) -> Optional[str]:
    """Scan for printers and let user select one interactively.

    Returns:
        Selected printer address, or None if no printer selected
    """
    timeout = timeout or printer.settings.scan_timeout
    click.echo(f"Scanning for printers ({timeout}s)...")
    printers = await printer.scan(timeout=timeout)

    if not printers:
        click.echo("No printers found.", err=True)
        return None

    # Auto-select when exactly one printer found
    if len(printers) == 1:
        found = printers[0]
        click.echo(f"Found 1 printer: {found.name} - using automatically")
        click.echo(f"Address: {found.address}")
        return found.address

    click.echo(f"\nFound {len(printers)} printer(s):\n")
    for i, p in enumerate(printers, 1):
        click.echo(f"  [{i}] {p}")

    click.echo()
    while True:
        try:
            choice = click.prompt(f"Select printer (1-{len(printers)})", type=int)
            if 1 <= choice <= len(printers):
                selected = printers[choice - 1]
                click.echo(f"Selected: {selected.name}")
                return selected.address
            click.echo(f"Please enter a number between 1 and {len(printers)}", err=True)
        except click.Abort:
            return None


async def resolve_address(printer: G5Printer, address: Optional[str]) -> Optional[str]:
    """Use the given address, else the saved printer, else scan and ask."""
    if address is not None:
        return address

    cached = load_cached_printer()
    if cached is not None:
        click.echo(f"Using saved printer {cached.name} [{cached.address}]")
        return cached.address

    return await scan_and_select(printer)


async def connect_printer(printer: G5Printer, address: Optional[str]):
    """Connect and remember the printer for next time.

    Raises:
        PrinterConnectionError: If the connection fails
    """
    address = await resolve_address(printer, address)
    if address is None:
        click.echo("No printer selected.", err=True)
        sys.exit(1)

    click.echo(f"Connecting to {address}...")
    handle = await printer.connect(address)
    save_printer(handle.address, handle.name)
    click.echo(f"Connected to {handle.name}")
    return handle


def make_printer(ctx, settings: Optional[PrinterSettings] = None) -> G5Printer:
    printer = G5Printer(settings or ctx.obj["settings"])
    printer.set_debug(ctx.obj["debug"])
    return printer


def report_error(e: PrinterError):
    """Print a printer error the way every command does."""
    if isinstance(e, PrinterConnectionError):
        click.echo(f"Connection error: {e}", err=True)
    elif isinstance(e, ValidationError):
        click.echo(f"Invalid input: {e}", err=True)
    else:
        click.echo(f"Printer error: {e}", err=True)


@click.group()
@click.option("--debug/--no-debug", default=False, help="Enable debug output")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Settings file (default ~/.config/g5printer/settings.json)",
)
@click.pass_context
def main(ctx, debug, config_path):
    """G5 Label Printer CLI."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format=LOG_FORMAT,
    )
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = config_path
    try:
        ctx.obj["settings"] = load_settings(config_path)
    except ValidationError as e:
        click.echo(f"Invalid settings: {e}", err=True)
        sys.exit(1)


@main.command()
@click.option("--timeout", type=float, default=None, help="Scan timeout in seconds")
@click.pass_context
def scan(ctx, timeout):
    """Scan for G5 printers.

    Printers matched by name are listed first, then devices that only
    advertise a known printer service.
    """

    async def _scan():
        printer = make_printer(ctx)
        scan_timeout = timeout or printer.settings.scan_timeout
        click.echo(f"Scanning for printers ({scan_timeout}s)...")
        printers = await printer.scan(timeout=scan_timeout)

        if not printers:
            click.echo("No printers found.")
            return

        click.echo(f"\nFound {len(printers)} printer(s):\n")
        for p in printers:
            click.echo(f"  {p}")

    asyncio.run(_scan())


@main.command()
@address_option
@click.pass_context
def discover(ctx, address):
    """Discover GATT services on a printer."""

    async def _discover():
        printer = make_printer(ctx)
        try:
            handle = await connect_printer(printer, address)
            services = await printer.discover_services()

            click.echo("\nGATT Services:\n")
            for svc in services:
                click.echo(f"Service: {svc.service_uuid}")
                for char in svc.characteristics:
                    props = ", ".join(char["properties"])
                    marker = "  <- selected" if char["uuid"] == handle.char_uuid else ""
                    click.echo(f"  Char: {char['uuid']}{marker}")
                    click.echo(f"        Properties: [{props}]")
                click.echo()
        except PrinterError as e:
            report_error(e)
            sys.exit(1)
        finally:
            await printer.disconnect()

    asyncio.run(_discover())


@main.command("print")
@address_option
@order_options
@click.pass_context
def print_label(ctx, address, copies, order_file, **values):
    """Print bag labels for an order.

    With --copies above 1, each label is marked "BAG i OF n".
    """
    order = build_order(order_file, **values)

    async def _print():
        printer = make_printer(ctx)
        try:
            # Reject a bad order before touching the radio
            printer.build_job(order, copies)
            await connect_printer(printer, address)
            click.echo(f"Printing {copies} label(s)...")
            printed = await printer.print_label(order, quantity=copies)
            click.echo(f"Printed {printed} label(s)")
        except PrinterError as e:
            report_error(e)
            sys.exit(1)
        finally:
            await printer.disconnect()

    asyncio.run(_print())


@main.command()
@order_options
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=Path("label.png"),
    show_default=True,
    help="PNG file to write; copies get a -N suffix",
)
@click.pass_context
def preview(ctx, copies, order_file, output, **values):
    """Render the labels for an order to PNG, without a printer."""
    order = build_order(order_file, **values)
    printer = make_printer(ctx)
    try:
        images = printer.preview_label(order, quantity=copies)
    except ValidationError as e:
        report_error(e)
        sys.exit(1)

    for index, image in enumerate(images, 1):
        path = output if len(images) == 1 else output.with_name(
            f"{output.stem}-{index}{output.suffix}"
        )
        image.save(path)
        click.echo(f"Wrote {path} ({image.width}x{image.height})")


@main.command()
@address_option
@click.pass_context
def test(ctx, address):
    """Print the test label (four lines at double size)."""

    async def _test():
        printer = make_printer(ctx)
        try:
            await connect_printer(printer, address)
            click.echo("Printing test label...")
            await printer.print_test_label()
            click.echo("Test print complete!")
        except PrinterError as e:
            report_error(e)
            sys.exit(1)
        finally:
            await printer.disconnect()

    asyncio.run(_test())


@main.command()
@address_option
@click.option("--chunk-size", type=click.IntRange(1, 512), default=None, help="Bytes per write")
@click.option("--delay", type=click.FloatRange(0), default=None, help="Pause between writes in ms")
@click.option("--save", is_flag=True, help="Store the values in the settings file")
@click.pass_context
def calibrate(ctx, address, chunk_size, delay, save):
    """Print the test label with a different chunk size or pacing.

    Garbled or missing rows mean the printer's buffer overflowed: lower
    the chunk size or raise the delay until the label prints cleanly.
    """
    overrides: dict[str, Any] = {}
    if chunk_size is not None:
        overrides["chunk_size"] = chunk_size
    if delay is not None:
        overrides["chunk_delay_ms"] = delay
    settings = ctx.obj["settings"].with_overrides(**overrides)
    click.echo(f"Chunk size {settings.chunk_size} bytes, delay {settings.chunk_delay_ms} ms")

    async def _calibrate():
        printer = make_printer(ctx, settings)
        try:
            await connect_printer(printer, address)
            await printer.print_test_label()
            click.echo("Calibration label printed.")
        except PrinterError as e:
            report_error(e)
            sys.exit(1)
        finally:
            await printer.disconnect()

    asyncio.run(_calibrate())

    if save:
        path = save_settings(settings, ctx.obj["config_path"])
        click.echo(f"Saved settings to {path}")


@main.command()
@click.argument("hex_data")
@address_option
@click.option(
    "--force",
    is_flag=True,
    help="Acknowledge risks and skip warning prompt",
)
@click.pass_context
def raw(ctx, hex_data, address, force):
    """Send raw hex data to printer (for debugging/testing).

    WARNING: This bypasses the label layout entirely. Only use if you
    understand the printer's command set.
    """
    try:
        data = bytes.fromhex(hex_data)
    except ValueError:
        click.echo("Invalid hex data!", err=True)
        sys.exit(1)

    if not force:
        click.echo(
            "WARNING: Raw mode sends arbitrary data directly to the printer.",
            err=True,
        )
        if not click.confirm("Do you want to continue?"):
            click.echo("Aborted.")
            return

    async def _raw():
        printer = make_printer(ctx)
        try:
            await connect_printer(printer, address)
            click.echo(f"Sending: {data.hex()}")
            chunks = await printer.send_raw(data)
            click.echo(f"Sent {len(data)} byte(s) in {chunks} chunk(s)")
        except PrinterError as e:
            report_error(e)
            sys.exit(1)
        finally:
            await printer.disconnect()

    asyncio.run(_raw())


@main.command()
def forget():
    """Forget the saved printer."""
    if clear_cache():
        click.echo("Saved printer forgotten.")
    else:
        click.echo("No saved printer.")


if __name__ == "__main__":
    main()
