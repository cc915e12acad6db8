"""
Built-in 8x8 bitmap font for the G5 printer.

The printer has no font stack reachable over BLE, so text is drawn from
this table and sent as raster rows. Each glyph is 8 row bytes, top row
first, with the most significant bit as the leftmost pixel.
"""

from typing import Mapping, Optional

GLYPH_SIZE = 8

BLANK_GLYPH = bytes(GLYPH_SIZE)

# fmt: off
DEFAULT_GLYPHS: dict[str, bytes] = {
    " ": BLANK_GLYPH,
    "A": bytes([0x18, 0x3C, 0x66, 0x66, 0x7E, 0x66, 0x66, 0x00]),
    "B": bytes([0x7C, 0x66, 0x66, 0x7C, 0x66, 0x66, 0x7C, 0x00]),
    "C": bytes([0x3C, 0x66, 0x60, 0x60, 0x60, 0x66, 0x3C, 0x00]),
    "D": bytes([0x78, 0x6C, 0x66, 0x66, 0x66, 0x6C, 0x78, 0x00]),
    "E": bytes([0x7E, 0x60, 0x60, 0x7C, 0x60, 0x60, 0x7E, 0x00]),
    "F": bytes([0x7E, 0x60, 0x60, 0x7C, 0x60, 0x60, 0x60, 0x00]),
    "G": bytes([0x3C, 0x66, 0x60, 0x6E, 0x66, 0x66, 0x3C, 0x00]),
    "H": bytes([0x66, 0x66, 0x66, 0x7E, 0x66, 0x66, 0x66, 0x00]),
    "I": bytes([0x3C, 0x18, 0x18, 0x18, 0x18, 0x18, 0x3C, 0x00]),
    "J": bytes([0x1E, 0x0C, 0x0C, 0x0C, 0x0C, 0x6C, 0x38, 0x00]),
    "K": bytes([0x66, 0x6C, 0x78, 0x70, 0x78, 0x6C, 0x66, 0x00]),
    "L": bytes([0x60, 0x60, 0x60, 0x60, 0x60, 0x60, 0x7E, 0x00]),
    "M": bytes([0x63, 0x77, 0x7F, 0x6B, 0x63, 0x63, 0x63, 0x00]),
    "N": bytes([0x66, 0x76, 0x7E, 0x7E, 0x6E, 0x66, 0x66, 0x00]),
    "O": bytes([0x3C, 0x66, 0x66, 0x66, 0x66, 0x66, 0x3C, 0x00]),
    "P": bytes([0x7C, 0x66, 0x66, 0x7C, 0x60, 0x60, 0x60, 0x00]),
    "Q": bytes([0x3C, 0x66, 0x66, 0x66, 0x66, 0x3C, 0x0E, 0x00]),
    "R": bytes([0x7C, 0x66, 0x66, 0x7C, 0x78, 0x6C, 0x66, 0x00]),
    "S": bytes([0x3C, 0x66, 0x60, 0x3C, 0x06, 0x66, 0x3C, 0x00]),
    "T": bytes([0x7E, 0x18, 0x18, 0x18, 0x18, 0x18, 0x18, 0x00]),
    "U": bytes([0x66, 0x66, 0x66, 0x66, 0x66, 0x66, 0x3C, 0x00]),
    "V": bytes([0x66, 0x66, 0x66, 0x66, 0x66, 0x3C, 0x18, 0x00]),
    "W": bytes([0x63, 0x63, 0x63, 0x6B, 0x7F, 0x77, 0x63, 0x00]),
    "X": bytes([0x66, 0x66, 0x3C, 0x18, 0x3C, 0x66, 0x66, 0x00]),
    "Y": bytes([0x66, 0x66, 0x66, 0x3C, 0x18, 0x18, 0x18, 0x00]),
    "Z": bytes([0x7E, 0x06, 0x0C, 0x18, 0x30, 0x60, 0x7E, 0x00]),
    "0": bytes([0x3C, 0x66, 0x6E, 0x76, 0x66, 0x66, 0x3C, 0x00]),
    "1": bytes([0x18, 0x18, 0x38, 0x18, 0x18, 0x18, 0x7E, 0x00]),
    "2": bytes([0x3C, 0x66, 0x06, 0x0C, 0x30, 0x60, 0x7E, 0x00]),
    "3": bytes([0x3C, 0x66, 0x06, 0x1C, 0x06, 0x66, 0x3C, 0x00]),
    "4": bytes([0x06, 0x0E, 0x1E, 0x66, 0x7F, 0x06, 0x06, 0x00]),
    "5": bytes([0x7E, 0x60, 0x7C, 0x06, 0x06, 0x66, 0x3C, 0x00]),
    "6": bytes([0x3C, 0x66, 0x60, 0x7C, 0x66, 0x66, 0x3C, 0x00]),
    "7": bytes([0x7E, 0x66, 0x0C, 0x18, 0x18, 0x18, 0x18, 0x00]),
    "8": bytes([0x3C, 0x66, 0x66, 0x3C, 0x66, 0x66, 0x3C, 0x00]),
    "9": bytes([0x3C, 0x66, 0x66, 0x3E, 0x06, 0x66, 0x3C, 0x00]),
    ":": bytes([0x00, 0x00, 0x18, 0x00, 0x00, 0x18, 0x00, 0x00]),
    "#": bytes([0x36, 0x36, 0x7F, 0x36, 0x7F, 0x36, 0x36, 0x00]),
    ".": bytes([0x00, 0x00, 0x00, 0x00, 0x00, 0x18, 0x18, 0x00]),
    ",": bytes([0x00, 0x00, 0x00, 0x00, 0x18, 0x18, 0x30, 0x00]),
    "-": bytes([0x00, 0x00, 0x00, 0x7E, 0x00, 0x00, 0x00, 0x00]),
    "/": bytes([0x00, 0x03, 0x06, 0x0C, 0x18, 0x30, 0x60, 0x00]),
    "\\": bytes([0x00, 0x60, 0x30, 0x18, 0x0C, 0x06, 0x03, 0x00]),
    "_": bytes([0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x7F, 0x00]),
    "(": bytes([0x0C, 0x18, 0x30, 0x30, 0x30, 0x18, 0x0C, 0x00]),
    ")": bytes([0x30, 0x18, 0x0C, 0x0C, 0x0C, 0x18, 0x30, 0x00]),
    "+": bytes([0x00, 0x18, 0x18, 0x7E, 0x18, 0x18, 0x00, 0x00]),
    "=": bytes([0x00, 0x00, 0x7E, 0x00, 0x7E, 0x00, 0x00, 0x00]),
    "&": bytes([0x1C, 0x36, 0x1C, 0x6E, 0x3B, 0x33, 0x6E, 0x00]),
    "*": bytes([0x00, 0x66, 0x3C, 0xFF, 0x3C, 0x66, 0x00, 0x00]),
    "@": bytes([0x3E, 0x63, 0x7B, 0x7B, 0x7B, 0x03, 0x1E, 0x00]),
    "%": bytes([0x63, 0x63, 0x06, 0x0C, 0x18, 0x63, 0x63, 0x00]),
    "!": bytes([0x18, 0x18, 0x18, 0x18, 0x00, 0x18, 0x18, 0x00]),
    "?": bytes([0x3C, 0x66, 0x06, 0x0C, 0x18, 0x00, 0x18, 0x00]),
    ";": bytes([0x00, 0x00, 0x18, 0x00, 0x18, 0x18, 0x30, 0x00]),
    "'": bytes([0x06, 0x0C, 0x18, 0x00, 0x00, 0x00, 0x00, 0x00]),
    '"': bytes([0x66, 0x66, 0x66, 0x00, 0x00, 0x00, 0x00, 0x00]),
    "[": bytes([0x3C, 0x30, 0x30, 0x30, 0x30, 0x30, 0x3C, 0x00]),
    "]": bytes([0x3C, 0x0C, 0x0C, 0x0C, 0x0C, 0x0C, 0x3C, 0x00]),
    "{": bytes([0x0E, 0x18, 0x18, 0x70, 0x18, 0x18, 0x0E, 0x00]),
    "}": bytes([0x70, 0x18, 0x18, 0x0E, 0x18, 0x18, 0x70, 0x00]),
    "|": bytes([0x18, 0x18, 0x18, 0x00, 0x18, 0x18, 0x18, 0x00]),
    "~": bytes([0x00, 0x00, 0x71, 0x8E, 0x00, 0x00, 0x00, 0x00]),
    "`": bytes([0x30, 0x18, 0x0C, 0x00, 0x00, 0x00, 0x00, 0x00]),
    "<": bytes([0x06, 0x0C, 0x18, 0x30, 0x18, 0x0C, 0x06, 0x00]),
    ">": bytes([0x60, 0x30, 0x18, 0x0C, 0x18, 0x30, 0x60, 0x00]),
    "$": bytes([0x18, 0x3E, 0x60, 0x3C, 0x06, 0x7C, 0x18, 0x00]),
}
# fmt: on


class GlyphTable:
    """Character to 8x8 bitmap lookup.

    Lower-case letters fall back to their upper-case glyph. Characters
    with no glyph resolve to the blank glyph; use ``supports`` to find out
    whether a substitution happened.
    """

    def __init__(self, glyphs: Optional[Mapping[str, bytes]] = None):
        source = DEFAULT_GLYPHS if glyphs is None else glyphs
        for char, bitmap in source.items():
            if len(bitmap) != GLYPH_SIZE:
                raise ValueError(
                    f"Glyph {char!r} has {len(bitmap)} rows, expected {GLYPH_SIZE}"
                )
        self._glyphs = {char: bytes(bitmap) for char, bitmap in source.items()}

    def _resolve(self, char: str) -> Optional[bytes]:
        glyph = self._glyphs.get(char)
        if glyph is None:
            glyph = self._glyphs.get(char.upper())
        return glyph

    def supports(self, char: str) -> bool:
        """Return True if the character has a glyph (directly or upper-cased)."""
        return char == " " or self._resolve(char) is not None

    def lookup(self, char: str) -> bytes:
        """Return the glyph rows for a character, blank if unsupported."""
        glyph = self._resolve(char)
        return BLANK_GLYPH if glyph is None else glyph

    def __contains__(self, char: str) -> bool:
        return self.supports(char)

    def __len__(self) -> int:
        return len(self._glyphs)


DEFAULT_GLYPH_TABLE = GlyphTable()
