"""
Chunked BLE transmission for the G5 printer.

The printer has a small receive buffer and no flow control, so payloads
are cut into small pieces and written one after another with a fixed
pause. Nothing is acknowledged and nothing is retried here: a failed
write would leave a half-sent raster row in the printer's buffer, so the
error goes straight back to the caller.
"""

import asyncio
import logging
from typing import Any, Iterator, Optional

from .errors import TransportError

LOGGER = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 100
DEFAULT_CHUNK_DELAY_MS = 5.0


def iter_chunks(data: bytes, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
    """Yield consecutive slices of at most ``chunk_size`` bytes."""
    if chunk_size < 1:
        raise ValueError(f"Chunk size must be >= 1, got {chunk_size}")
    for i in range(0, len(data), chunk_size):
        yield bytes(data[i:i + chunk_size])


def supports_write_without_response(characteristic: Any) -> bool:
    return "write-without-response" in getattr(characteristic, "properties", ())


async def send(
    client: Any,
    characteristic: Any,
    data: bytes,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    delay_ms: float = DEFAULT_CHUNK_DELAY_MS,
    response: Optional[bool] = None,
) -> int:
    """
    Write data to a characteristic in paced chunks.

    Chunks go out strictly in order, each write awaited before the next
    starts. The pause is applied between chunks, not after the last one.
    Write-without-response is used when the characteristic offers it,
    otherwise a plain write.

    Args:
        client: Connected BleakClient (or anything with write_gatt_char)
        characteristic: Target BleakGATTCharacteristic
        data: Payload to send
        chunk_size: Maximum bytes per write
        delay_ms: Pause between chunks in milliseconds
        response: Force acknowledged (True) or unacknowledged (False)
            writes; by default chosen from the characteristic

    Returns:
        Number of chunks written

    Raises:
        TransportError: If any chunk write fails
    """
    if response is None:
        response = not supports_write_without_response(characteristic)
    total_chunks = (len(data) + chunk_size - 1) // chunk_size if chunk_size > 0 else 0
    sent = 0

    for chunk in iter_chunks(data, chunk_size):
        if sent and delay_ms > 0:
            await asyncio.sleep(delay_ms / 1000.0)

        try:
            await client.write_gatt_char(characteristic, chunk, response=response)
        except Exception as e:
            raise TransportError(
                f"Write failed at chunk {sent + 1}/{total_chunks}: {e}"
            ) from e
        sent += 1

    LOGGER.debug("Sent %d bytes in %d chunk(s)", len(data), sent)
    return sent
