"""
Saved printer for the G5 driver.

Remembers the last printer that connected successfully so the CLI can
reconnect without a fresh scan.
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Optional

from .config import CONFIG_DIR

LOGGER = logging.getLogger(__name__)

# Default cache TTL: 24 hours
DEFAULT_TTL_SECONDS = 24 * 60 * 60

CACHE_FILE = CONFIG_DIR / "last_printer"


@dataclass
class CachedPrinter:
    """Cached printer information."""

    address: str
    name: str
    last_used: float  # Unix timestamp


def load_cached_printer(ttl_seconds: int = DEFAULT_TTL_SECONDS) -> Optional[CachedPrinter]:
    """Load the cached printer if it exists and hasn't expired.

    Args:
        ttl_seconds: Maximum age of cache in seconds. Default 24 hours.

    Returns:
        CachedPrinter if valid cache exists, None otherwise.
    """
    if not CACHE_FILE.exists():
        return None

    try:
        data = json.loads(CACHE_FILE.read_text())
        cached = CachedPrinter(
            address=data["address"],
            name=data["name"],
            last_used=float(data["last_used"]),
        )
    except (json.JSONDecodeError, KeyError, TypeError, ValueError):
        LOGGER.warning("Ignoring unreadable printer cache at %s", CACHE_FILE)
        return None

    if time.time() - cached.last_used > ttl_seconds:
        LOGGER.debug("Cached printer %s expired", cached.address)
        return None

    return cached


def save_printer(address: str, name: Optional[str]) -> None:
    """Remember a printer after a successful connect.

    Args:
        address: Printer Bluetooth address (MAC or macOS UUID)
        name: Advertised device name, if any
    """
    CACHE_FILE.parent.mkdir(parents=True, exist_ok=True)

    data = {
        "address": address,
        "name": name or address,
        "last_used": time.time(),
    }
    CACHE_FILE.write_text(json.dumps(data, indent=2))


def clear_cache() -> bool:
    """Forget the saved printer.

    Returns:
        True if cache was cleared, False if no cache existed.
    """
    if CACHE_FILE.exists():
        CACHE_FILE.unlink()
        return True
    return False
