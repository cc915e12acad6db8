"""
Bitmap Text Rasterizer for the G5 Printer.

Turns one line of text into device raster-row commands using the built-in
8x8 font, and renders command streams back into images for previews.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from PIL import Image

from .commands import G5Commands
from .glyphs import DEFAULT_GLYPH_TABLE, GLYPH_SIZE, GlyphTable

# 57mm label, 384 dots across the print head
DEFAULT_LABEL_WIDTH_BYTES = 48


class Align(Enum):
    """Horizontal placement of a text line on the label."""

    LEFT = "left"
    CENTER = "center"


@dataclass
class RasterLine:
    """Result of rasterizing one line of text.

    Attributes:
        text: The text that was drawn, after newline removal
        commands: Raster-row commands, top row first, in scale-step order
        substitutions: Unsupported characters that were drawn blank,
            in order of first appearance
    """
    text: str
    commands: list[bytes] = field(default_factory=list)
    substitutions: list[str] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.commands)


def text_width_bits(char_count: int, scale: int) -> int:
    """Width of a run of characters in dots."""
    return char_count * GLYPH_SIZE * scale


def text_start_bit(char_count: int, scale: int, align: Align,
                   label_width_bytes: int = DEFAULT_LABEL_WIDTH_BYTES) -> int:
    """
    First dot column of the text.

    Centered text that is wider than the label gets a negative start so
    the overflow is clipped evenly from both edges.
    """
    if align is Align.LEFT:
        return 0
    return (label_width_bytes * 8 - text_width_bits(char_count, scale)) // 2


def chars_per_line(scale: int, label_width_bytes: int = DEFAULT_LABEL_WIDTH_BYTES) -> int:
    """Number of whole characters that fit across the label at a scale."""
    return (label_width_bytes * 8) // (GLYPH_SIZE * scale)


def raster_row_command(row: bytes) -> bytes:
    """Frame a row with zero leading blanks so it always starts at dot 0."""
    return G5Commands.raster_row(row, leading_blanks=0)


def rasterize_line(
    text: str,
    scale: int = 1,
    align: Align = Align.CENTER,
    label_width_bytes: int = DEFAULT_LABEL_WIDTH_BYTES,
    glyphs: Optional[GlyphTable] = None,
) -> RasterLine:
    """
    Rasterize a line of text into raster-row commands.

    Produces ``8 * scale`` rows of exactly ``label_width_bytes`` bytes.
    Each glyph bit is repeated ``scale`` times horizontally and each glyph
    row ``scale`` times vertically. Dots falling outside the label are
    dropped. Output depends only on the arguments.

    Args:
        text: Text to draw; newlines are removed
        scale: Integer magnification (1 = 8x8 dots per character)
        align: LEFT starts at dot 0, CENTER centers on the label
        label_width_bytes: Raster width of the device in bytes
        glyphs: Font to use (defaults to the built-in table)

    Returns:
        RasterLine with the commands and any substituted characters

    Raises:
        ValueError: If scale or label width is out of range
    """
    if scale < 1:
        raise ValueError(f"Scale must be >= 1, got {scale}")
    if not 1 <= label_width_bytes <= G5Commands.MAX_ROW_BYTES:
        raise ValueError(
            f"Label width must be 1-{G5Commands.MAX_ROW_BYTES} bytes, got {label_width_bytes}"
        )

    table = glyphs or DEFAULT_GLYPH_TABLE
    clean = text.replace("\r", "").replace("\n", "")
    result = RasterLine(text=clean)
    if not clean:
        return result

    for char in clean:
        if not table.supports(char) and char not in result.substitutions:
            result.substitutions.append(char)

    bitmaps = [table.lookup(char) for char in clean]
    width_bits = label_width_bytes * 8
    start = text_start_bit(len(clean), scale, align, label_width_bytes)

    for glyph_row in range(GLYPH_SIZE):
        row = bytearray(label_width_bytes)
        position = start

        for bitmap in bitmaps:
            row_byte = bitmap[glyph_row]
            for bit in range(7, -1, -1):
                on = (row_byte >> bit) & 1
                for _ in range(scale):
                    if on and 0 <= position < width_bits:
                        row[position // 8] |= 1 << (7 - position % 8)
                    position += 1

        command = raster_row_command(bytes(row))
        result.commands.extend([command] * scale)

    return result


def render_preview(
    commands: Iterable[bytes],
    label_width_bytes: int = DEFAULT_LABEL_WIDTH_BYTES,
) -> Image.Image:
    """
    Render a command stream into a 1-bit image of what the printer burns.

    Raster rows become pixel rows and ``ESC J n`` becomes n blank rows.
    Everything else (reset, heat, form feed) leaves no mark.

    Returns:
        PIL Image in mode "1" (black = burned dot)
    """
    width = label_width_bytes * 8
    rows: list[bytes] = []
    blank = bytes(label_width_bytes)
    feed_prefix = G5Commands.feed_dots(0)[:2]

    for command in commands:
        if command[:2] == G5Commands.RASTER_ROW and len(command) >= 4:
            length = command[3]
            row = bytes(command[4:4 + length])
            blanks = bytes(command[2])
            row = (blanks + row)[:label_width_bytes]
            rows.append(row.ljust(label_width_bytes, b"\x00"))
        elif command[:2] == feed_prefix and len(command) == 3:
            rows.extend([blank] * command[2])

    if not rows:
        return Image.new("1", (width, 1), color=255)

    # Mode "1" packs 1 = white, the printer uses 1 = black
    data = bytes(b ^ 0xFF for row in rows for b in row)
    return Image.frombytes("1", (width, len(rows)), data)
