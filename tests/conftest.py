"""
Pytest configuration for G5 printer tests.

Provides an in-memory BLE peripheral shaped like bleak's scanner and
client, fast settings with every pause at zero, and the command-line
option for hardware tests.
"""

from dataclasses import dataclass, field
from typing import Optional

import pytest
import pytest_asyncio

from g5printer import G5Printer
from g5printer.config import PrinterSettings
from g5printer.connection import PRIMARY_SERVICE, BLEConnection

WRITE_CHAR_UUID = "49535343-8841-43f4-a8d4-ecbe34729bb3"
NOTIFY_CHAR_UUID = "49535343-1e4d-4bd9-ba61-23c647249616"
FALLBACK_SERVICE = "0000ffe0-0000-1000-8000-00805f9b34fb"


@dataclass
class FakeCharacteristic:
    uuid: str
    properties: list[str]
    handle: int = 0


@dataclass
class FakeService:
    uuid: str
    characteristics: list[FakeCharacteristic]


@dataclass
class FakeDevice:
    name: Optional[str]
    address: str


@dataclass
class FakeAdvertisement:
    local_name: Optional[str]
    rssi: Optional[int]
    service_uuids: list[str] = field(default_factory=list)


@dataclass
class FakePeripheral:
    """A printer in range. Records every write that reaches it."""
    device: FakeDevice
    advertisement: FakeAdvertisement
    services: list[FakeService]
    writes: list[bytes] = field(default_factory=list)
    responses: list[bool] = field(default_factory=list)
    connect_failures: int = 0
    write_failures: int = 0
    fail_writes_after: Optional[int] = None
    clients: list["FakeClient"] = field(default_factory=list)

    @property
    def client(self) -> "FakeClient":
        return self.clients[-1]

    def drop(self):
        """Simulate the printer going out of range."""
        self.client.drop()


class FakeClient:
    """Stands in for BleakClient."""

    def __init__(self, peripheral: FakePeripheral, disconnected_callback=None):
        self.peripheral = peripheral
        self.disconnected_callback = disconnected_callback
        self.is_connected = False
        self.services = []
        peripheral.clients.append(self)

    async def connect(self):
        if self.peripheral.connect_failures > 0:
            self.peripheral.connect_failures -= 1
            raise OSError("Device not responding")
        self.is_connected = True
        self.services = self.peripheral.services

    async def disconnect(self):
        if self.is_connected:
            self.is_connected = False
            if self.disconnected_callback is not None:
                self.disconnected_callback(self)

    async def write_gatt_char(self, characteristic, data, response=False):
        if not self.is_connected:
            raise OSError("Not connected")
        if self.peripheral.write_failures > 0:
            self.peripheral.write_failures -= 1
            raise OSError("GATT write failed")
        limit = self.peripheral.fail_writes_after
        if limit is not None and len(self.peripheral.writes) >= limit:
            raise OSError("GATT write failed")
        self.peripheral.writes.append(bytes(data))
        self.peripheral.responses.append(response)

    def drop(self):
        self.is_connected = False
        if self.disconnected_callback is not None:
            self.disconnected_callback(self)


class FakeBLE:
    """Radio environment: the scanner and client factory BLEConnection uses."""

    def __init__(self):
        self.peripherals: dict[str, FakePeripheral] = {}
        self.scan_count = 0

    def add_printer(
        self,
        name: Optional[str] = "G5-40280365",
        address: str = "AA:BB:CC:DD:EE:01",
        rssi: Optional[int] = -60,
        advertised_services: Optional[list[str]] = None,
        services: Optional[list[FakeService]] = None,
    ) -> FakePeripheral:
        if services is None:
            services = [
                FakeService(PRIMARY_SERVICE, [
                    FakeCharacteristic(NOTIFY_CHAR_UUID, ["notify"]),
                    FakeCharacteristic(WRITE_CHAR_UUID, ["write", "write-without-response"]),
                ]),
            ]
        peripheral = FakePeripheral(
            device=FakeDevice(name, address),
            advertisement=FakeAdvertisement(name, rssi, list(advertised_services or [])),
            services=services,
        )
        self.peripherals[address] = peripheral
        return peripheral

    # BleakScanner surface

    async def discover(self, timeout=5.0, return_adv=False):
        self.scan_count += 1
        return {
            address: (p.device, p.advertisement)
            for address, p in self.peripherals.items()
        }

    async def find_device_by_address(self, address, timeout=10.0):
        peripheral = self.peripherals.get(address)
        return peripheral.device if peripheral is not None else None

    # BleakClient surface

    def client_factory(self, device, disconnected_callback=None):
        return FakeClient(self.peripherals[device.address], disconnected_callback)


def pytest_addoption(parser):
    """Add command-line options for hardware tests."""
    parser.addoption(
        "--address",
        action="store",
        default=None,
        help="Bluetooth address of the printer for hardware tests",
    )


@pytest.fixture
def printer_address(request):
    """Get the printer address from command line."""
    address = request.config.getoption("--address")
    if address is None:
        pytest.skip("No printer address provided (use --address=XX:XX:XX:XX:XX:XX)")
    return address


@pytest.fixture
def fast_settings():
    """Default tuning with every pause removed."""
    return PrinterSettings(
        chunk_delay_ms=0,
        link_retry_delay=0,
        background_reconnect_delay=0,
        reconnect_settle=0,
        backoff_base=0,
        backoff_cap=0,
        settle_large=0,
        settle_phone=0,
        settle_pickup=0,
        settle_header=0,
        settle_body=0,
        settle_spacing=0,
        settle_form_feed=0,
    )


@pytest.fixture
def ble():
    return FakeBLE()


@pytest.fixture
def connection(ble, fast_settings):
    return BLEConnection(
        settings=fast_settings,
        scanner=ble,
        client_factory=ble.client_factory,
    )


@pytest.fixture
def printer(connection, fast_settings):
    return G5Printer(settings=fast_settings, connection=connection)


@pytest_asyncio.fixture
async def connected_printer(printer_address):
    """Provide a connected printer instance for hardware tests."""
    printer = G5Printer()
    printer.set_debug(True)
    await printer.connect(printer_address)

    yield printer

    await printer.disconnect()
