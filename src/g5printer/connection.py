"""
BLE Connection Handler for the G5 Printer.

Finds the printer, opens the GATT link and picks the characteristic to
write to, using the Bleak library. The printer's published UUIDs are not
exposed the same way on every firmware and OS, so the writable
characteristic is found by scanning rather than hard-coded.
"""

import asyncio
import logging
import platform
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

from bleak import BleakClient, BleakScanner

from . import transport
from .commands import G5Commands
from .config import PrinterSettings
from .errors import (
    LinkError,
    NoWritableCharacteristicError,
    NotConnectedError,
    NotFoundError,
    PrinterError,
    ProbeError,
    TransportError,
)

LOGGER = logging.getLogger(__name__)

WRITE_PROPERTIES = ("write", "write-without-response")


class ConnectionState(Enum):
    """Lifecycle of the printer link."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECOVERING = "recovering"


StateListener = Callable[[ConnectionState, ConnectionState], None]


@dataclass(frozen=True)
class PeripheralIdentity:
    """How to recognise the printer among nearby devices.

    Attributes:
        exact_names: Advertised names that match exactly
        name_prefixes: Advertised name prefixes
        service_uuids: Candidate services, most likely first. Writable
            characteristics in these services are preferred.
        fallback_service_uuids: Services that identify a printer when no
            advertised name matched
    """
    exact_names: tuple[str, ...] = ()
    name_prefixes: tuple[str, ...] = ()
    service_uuids: tuple[str, ...] = ()
    fallback_service_uuids: tuple[str, ...] = ()
    _name_pattern: Optional[re.Pattern] = field(
        init=False, repr=False, compare=False, default=None
    )

    def __post_init__(self):
        object.__setattr__(self, "service_uuids", tuple(u.lower() for u in self.service_uuids))
        object.__setattr__(
            self, "fallback_service_uuids", tuple(u.lower() for u in self.fallback_service_uuids)
        )
        parts = [re.escape(name) + r"\Z" for name in self.exact_names]
        parts += [re.escape(prefix) for prefix in self.name_prefixes]
        pattern = re.compile("|".join(parts)) if parts else None
        object.__setattr__(self, "_name_pattern", pattern)

    def matches_name(self, name: Optional[str]) -> bool:
        if not name or self._name_pattern is None:
            return False
        return self._name_pattern.match(name) is not None

    def advertises_fallback(self, service_uuids: Optional[list[str]]) -> bool:
        advertised = {u.lower() for u in service_uuids or ()}
        return any(u in advertised for u in self.fallback_service_uuids)

    def service_priority(self, service_uuid: str) -> int:
        """Sort key: listed services by position, unknown services last."""
        try:
            return self.service_uuids.index(service_uuid.lower())
        except ValueError:
            return len(self.service_uuids)


# Microchip transparent UART service used by the G5
PRIMARY_SERVICE = "49535343-fe7d-4ae5-8fa9-9fafd205e455"

KNOWN_SERVICE_UUIDS = (
    PRIMARY_SERVICE,
    "000018f0-0000-1000-8000-00805f9b34fb",  # Generic thermal printer service
    "0000ffe0-0000-1000-8000-00805f9b34fb",  # Common serial-over-BLE service
    "6e400001-b5a3-f393-e0a9-e50e24dcca9e",  # Nordic UART Service
)

DEFAULT_IDENTITY = PeripheralIdentity(
    exact_names=("G5-40280365", "Netum G5"),
    name_prefixes=("G5-", "Netum", "NT-", "G5", "Printer", "Thermal", "POS"),
    service_uuids=KNOWN_SERVICE_UUIDS,
    fallback_service_uuids=KNOWN_SERVICE_UUIDS,
)


@dataclass
class PrinterInfo:
    """Information about a discovered printer.

    Attributes:
        name: Device advertised name (e.g., "G5-40280365")
        address: MAC address on Linux/Windows, CoreBluetooth UUID on macOS
        rssi: Signal strength in dB
        matched_by: "name" or "service", whichever identified the printer,
            or "any" for an unmatched device tried as a last resort
    """
    name: str
    address: str
    rssi: int
    matched_by: str = "name"

    def __str__(self) -> str:
        suffix = " (by service)" if self.matched_by == "service" else ""
        return f"{self.name or '<unnamed>'} [{self.address}] RSSI: {self.rssi} dB{suffix}"


@dataclass
class ServiceInfo:
    """Information about a GATT service and its characteristics."""
    service_uuid: str
    characteristics: list[dict]


@dataclass
class ConnectionHandle:
    """The one link to one physical printer.

    Created by discovery, linked by ``establish_link`` and completed by
    ``select_writable_characteristic``. ``closing`` marks a link the driver
    is shutting down itself, so its disconnect event is not a drop.
    """
    device: Any
    client: Optional[Any] = None
    service_uuid: Optional[str] = None
    characteristic: Optional[Any] = None
    closing: bool = False

    @property
    def name(self) -> str:
        return getattr(self.device, "name", None) or self.address

    @property
    def address(self) -> str:
        return getattr(self.device, "address", None) or str(self.device)

    @property
    def char_uuid(self) -> Optional[str]:
        return self.characteristic.uuid if self.characteristic is not None else None

    @property
    def is_linked(self) -> bool:
        return self.client is not None and bool(self.client.is_connected)

    @property
    def is_writable(self) -> bool:
        return self.characteristic is not None and is_writable(self.characteristic)


def is_writable(characteristic: Any) -> bool:
    """True if a characteristic accepts either kind of write."""
    props = getattr(characteristic, "properties", None) or ()
    return any(p in props for p in WRITE_PROPERTIES)


class BLEConnection:
    """Manages the BLE link to a G5 printer.

    ``scanner`` and ``client_factory`` default to Bleak's classes and can be
    replaced with anything shaped the same way.
    """

    def __init__(
        self,
        identity: PeripheralIdentity = DEFAULT_IDENTITY,
        settings: Optional[PrinterSettings] = None,
        scanner: Any = BleakScanner,
        client_factory: Callable[..., Any] = BleakClient,
    ):
        self.identity = identity
        self.settings = settings or PrinterSettings()
        self.handle: Optional[ConnectionHandle] = None
        self.device: Optional[Any] = None
        self.state = ConnectionState.DISCONNECTED
        self.on_unsolicited_disconnect: Optional[Callable[[ConnectionHandle], None]] = None
        self._scanner = scanner
        self._client_factory = client_factory
        self._state_listeners: list[StateListener] = []
        self._last_scan: dict[str, Any] = {}

    @staticmethod
    def is_supported() -> bool:
        """Check whether this platform has a Bleak backend."""
        return platform.system() in ("Linux", "Darwin", "Windows")

    # --- State ---

    def add_state_listener(self, listener: StateListener):
        """Call ``listener(old, new)`` on every state change."""
        self._state_listeners.append(listener)

    def transition(self, new_state: ConnectionState):
        old_state = self.state
        if new_state is old_state:
            return
        self.state = new_state
        LOGGER.info("Printer connection %s -> %s", old_state.value, new_state.value)
        for listener in list(self._state_listeners):
            listener(old_state, new_state)

    # --- Discovery ---

    async def _scan_candidates(self, timeout: float, permissive: bool = False) -> list[PrinterInfo]:
        found = await self._scanner.discover(timeout=timeout, return_adv=True)
        by_name = []
        by_service = []
        others = []

        for device, adv_data in found.values():
            name = device.name or adv_data.local_name or ""
            rssi = adv_data.rssi if adv_data.rssi is not None else -100
            if self.identity.matches_name(name):
                by_name.append((PrinterInfo(name, device.address, rssi, "name"), device))
            elif self.identity.advertises_fallback(adv_data.service_uuids):
                by_service.append((PrinterInfo(name, device.address, rssi, "service"), device))
            elif permissive:
                others.append((PrinterInfo(name, device.address, rssi, "any"), device))

        self._last_scan = {info.address: device for info, device in by_name + by_service + others}
        for group in (by_name, by_service, others):
            group.sort(key=lambda pair: pair[0].rssi, reverse=True)
        return [info for info, _ in by_name + by_service + others]

    async def scan(self, timeout: Optional[float] = None) -> list[PrinterInfo]:
        """Scan for printers, name matches first, strongest signal first."""
        return await self._scan_candidates(timeout or self.settings.scan_timeout)

    def exposes_fallback_service(self, handle: ConnectionHandle) -> bool:
        """True if an open link has a writable characteristic in a fallback service."""
        if not handle.is_linked:
            return False
        for service in handle.client.services:
            if service.uuid.lower() not in self.identity.fallback_service_uuids:
                continue
            if any(is_writable(char) for char in service.characteristics):
                return True
        return False

    async def discover(self, address: Optional[str] = None) -> ConnectionHandle:
        """
        Locate the printer and return a handle for it.

        Matching by advertised name is tried first. Some OS and firmware
        combinations hide the name, so if nothing matched every nearby
        device is tried, those advertising a fallback service first, then
        strongest signal first. Such a device is only accepted once its open
        link shows a writable characteristic in one of the fallback
        services; the handle is returned already linked.

        Args:
            address: Connect to this exact device instead of scanning

        Raises:
            NotFoundError: If no printer was found
        """
        timeout = self.settings.scan_timeout

        if address:
            LOGGER.info("Looking for printer at %s...", address)
            device = await self._scanner.find_device_by_address(address, timeout=timeout)
            if device is None:
                raise NotFoundError(f"No printer found at {address}")
            return ConnectionHandle(device=device)

        LOGGER.info("Scanning for printers (%.1fs)...", timeout)
        candidates = await self._scan_candidates(timeout, permissive=True)

        if candidates and candidates[0].matched_by == "name":
            LOGGER.info("Selected %s", candidates[0])
            return ConnectionHandle(device=self._last_scan[candidates[0].address])

        if candidates:
            LOGGER.info(
                "No printer matched by name, checking %d nearby device(s) for a printer service",
                len(candidates),
            )
        for info in candidates:
            handle = ConnectionHandle(device=self._last_scan[info.address])
            try:
                await self.establish_link(handle, attempts=1)
            except LinkError as e:
                LOGGER.debug("Skipping %s: %s", info, e)
                continue
            if self.exposes_fallback_service(handle):
                LOGGER.info("Selected %s", info)
                return handle
            LOGGER.debug("Skipping %s: no writable printer service", info)
            await self._close(handle)

        raise NotFoundError("No printer found. Is it switched on and in range?")

    # --- Link ---

    async def establish_link(
        self, handle: ConnectionHandle, attempts: Optional[int] = None
    ) -> ConnectionHandle:
        """
        Open the GATT link for a handle, reusing it if already open.

        Args:
            handle: Handle whose device to connect to
            attempts: Tries before giving up, ``link_attempts`` by default

        Raises:
            LinkError: If the link cannot be opened after all attempts
        """
        if handle.is_linked:
            LOGGER.debug("Link to %s already open, reusing it", handle.name)
            return handle

        attempts = attempts or self.settings.link_attempts
        last_error: Optional[Exception] = None

        for attempt in range(1, attempts + 1):
            if attempt > 1:
                await asyncio.sleep(self.settings.link_retry_delay)

            LOGGER.info("Connecting to %s (attempt %d/%d)...", handle.name, attempt, attempts)
            try:
                client = self._client_factory(
                    handle.device, disconnected_callback=self._handle_disconnect
                )
                await client.connect()
            except Exception as e:
                last_error = e
                LOGGER.warning("Connection attempt %d/%d failed: %s", attempt, attempts, e)
                continue

            if not client.is_connected:
                last_error = LinkError("link closed right after connecting")
                LOGGER.warning("Connection attempt %d/%d dropped immediately", attempt, attempts)
                continue

            handle.client = client
            handle.closing = False
            return handle

        raise LinkError(
            f"Failed to connect to {handle.name} after {attempts} attempt(s): {last_error}"
        ) from last_error

    async def select_writable_characteristic(self, handle: ConnectionHandle) -> tuple[str, str]:
        """
        Pick the first characteristic that accepts writes.

        Services from the identity's candidate list are searched first, in
        priority order, then every other service in discovery order.

        Returns:
            (service_uuid, characteristic_uuid)

        Raises:
            NotConnectedError: If the handle has no open link
            NoWritableCharacteristicError: If nothing on the device is writable
        """
        if not handle.is_linked:
            raise NotConnectedError(f"No open link to {handle.name}")

        services = sorted(
            handle.client.services,
            key=lambda service: self.identity.service_priority(service.uuid),
        )
        for service in services:
            for char in service.characteristics:
                LOGGER.debug(
                    "Service %s char %s [%s]",
                    service.uuid, char.uuid, ", ".join(char.properties),
                )
                if is_writable(char):
                    handle.service_uuid = service.uuid
                    handle.characteristic = char
                    LOGGER.info("Using characteristic %s in service %s", char.uuid, service.uuid)
                    return service.uuid, char.uuid

        available = ", ".join(service.uuid for service in services) or "none"
        raise NoWritableCharacteristicError(
            f"{handle.name} has no writable characteristic (services: {available})"
        )

    async def probe(self, handle: ConnectionHandle):
        """
        Write a reset command to check the link carries data.

        Raises:
            ProbeError: If the reset could not be written
        """
        if not handle.is_linked or handle.characteristic is None:
            raise ProbeError(f"Cannot probe {handle.name}: link not ready")
        try:
            await transport.send(
                handle.client,
                handle.characteristic,
                G5Commands.reset(),
                chunk_size=self.settings.chunk_size,
                delay_ms=0,
            )
        except TransportError as e:
            raise ProbeError(f"Liveness probe failed: {e}") from e

    # --- Lifecycle ---

    async def connect(self, address: Optional[str] = None) -> ConnectionHandle:
        """
        Discover, link, select a characteristic and probe.

        A probe failure is only logged: some firmware ignores it and still
        prints. Any other failure closes the link and leaves the state
        DISCONNECTED before the error is raised.
        """
        if self.handle is not None:
            await self.close_link()
        self.transition(ConnectionState.DISCONNECTED)

        self.transition(ConnectionState.CONNECTING)
        handle: Optional[ConnectionHandle] = None
        try:
            handle = await self.discover(address)
            self.device = handle.device
            await self.establish_link(handle)
            self.handle = handle
            await self.select_writable_characteristic(handle)
        except Exception as e:
            if handle is not None:
                await self._close(handle)
            self.handle = None
            self.transition(ConnectionState.DISCONNECTED)
            if isinstance(e, PrinterError):
                raise
            raise LinkError(f"Connection failed: {e}") from e

        try:
            await self.probe(handle)
        except ProbeError as e:
            LOGGER.warning("%s (continuing anyway)", e)

        self.transition(ConnectionState.CONNECTED)
        LOGGER.info("Connected to %s", handle.name)
        return handle

    async def relink(self, strict_probe: bool = True) -> ConnectionHandle:
        """
        Open a fresh handle to the last known device.

        If the known device cannot be linked, the printer is looked up again
        by its address and then by name and service. The new handle replaces the current one; the caller is
        expected to have closed the old link first. With ``strict_probe`` a
        probe failure fails the relink.
        """
        if self.device is None:
            handle = await self.discover()
        else:
            handle = ConnectionHandle(device=self.device)
            try:
                await self.establish_link(handle)
            except LinkError as e:
                LOGGER.warning("Known printer unreachable (%s), scanning again", e)
                handle = await self._rediscover(handle.address)

        await self.establish_link(handle)
        self.device = handle.device
        self.handle = handle
        try:
            await self.select_writable_characteristic(handle)
            await self.probe(handle)
        except ProbeError as e:
            if strict_probe:
                await self.close_link()
                raise
            LOGGER.warning("%s (continuing anyway)", e)
        except PrinterError:
            await self.close_link()
            raise
        return handle

    async def _rediscover(self, address: str) -> ConnectionHandle:
        try:
            return await self.discover(address)
        except NotFoundError:
            LOGGER.info("Printer not seen at %s, searching by name and service", address)
            return await self.discover()

    async def _close(self, handle: ConnectionHandle):
        handle.closing = True
        client = handle.client
        if client is not None and client.is_connected:
            try:
                await client.disconnect()
            except Exception as e:
                LOGGER.warning("Error while closing link to %s: %s", handle.name, e)

    async def close_link(self):
        """Close the current link without changing the state."""
        handle, self.handle = self.handle, None
        if handle is not None:
            await self._close(handle)

    async def disconnect(self):
        """Disconnect from the printer."""
        await self.close_link()
        self.transition(ConnectionState.DISCONNECTED)
        LOGGER.info("Disconnected")

    def _handle_disconnect(self, client: Any):
        """Bleak disconnect callback."""
        handle = self.handle
        if handle is None or handle.client is not client or handle.closing:
            LOGGER.debug("Link closed by request")
            return

        LOGGER.warning("Printer %s disconnected unexpectedly", handle.name)
        if self.state is ConnectionState.CONNECTED:
            self.transition(ConnectionState.RECOVERING)
            if self.on_unsolicited_disconnect is not None:
                self.on_unsolicited_disconnect(handle)

    # --- Data ---

    async def send(self, data: bytes) -> int:
        """
        Send bytes over the active characteristic.

        Raises:
            NotConnectedError: If there is no usable link
            TransportError: If a chunk write fails
        """
        handle = self.handle
        if handle is None or not handle.is_linked or handle.characteristic is None:
            raise NotConnectedError("Not connected to printer")
        return await transport.send(
            handle.client,
            handle.characteristic,
            data,
            chunk_size=self.settings.chunk_size,
            delay_ms=self.settings.chunk_delay_ms,
        )

    async def get_services(self) -> list[ServiceInfo]:
        """Get all services and characteristics (for discovery)."""
        if self.handle is None or not self.handle.is_linked:
            return []

        services = []
        for service in self.handle.client.services:
            chars = []
            for char in service.characteristics:
                chars.append({
                    "uuid": char.uuid,
                    "properties": list(char.properties),
                    "handle": getattr(char, "handle", None),
                })
            services.append(ServiceInfo(
                service_uuid=service.uuid,
                characteristics=chars
            ))

        return services

    @property
    def is_connected(self) -> bool:
        """Check if currently connected."""
        return self.handle is not None and self.handle.is_linked

    @property
    def device_name(self) -> Optional[str]:
        if self.handle is not None:
            return self.handle.name
        if self.device is not None:
            return getattr(self.device, "name", None)
        return None
