"""
Raw Command Set for the G5 Label Printer.

The G5 speaks a small ESC/POS flavoured vendor protocol. Every command is
a short byte string written to the printer's writable characteristic; the
printer never answers in the steady-state path.
"""


class G5Commands:
    """Byte-level command builders for the G5 printer."""

    ESC = 0x1B
    RASTER_ROW = bytes([0x1F, 0x2B])
    FORM_FEED = bytes([0x0C])

    # Heat and density parameters tuned on the G5 (level 7, 100/100)
    HEAT_LEVEL = 0x07
    HEAT_TIME = 0x64
    HEAT_INTERVAL = 0x64

    MAX_ROW_BYTES = 0xFF

    @staticmethod
    def reset() -> bytes:
        """ESC @: reset the printer. Also used as the liveness probe."""
        return bytes([G5Commands.ESC, 0x40])

    @staticmethod
    def heat() -> bytes:
        """ESC 7: heating dots, heat time and heat interval."""
        return bytes([
            G5Commands.ESC,
            0x37,
            G5Commands.HEAT_LEVEL,
            G5Commands.HEAT_TIME,
            G5Commands.HEAT_INTERVAL,
        ])

    @staticmethod
    def density() -> bytes:
        """ESC 8: print density and break time."""
        return bytes([
            G5Commands.ESC,
            0x38,
            G5Commands.HEAT_LEVEL,
            G5Commands.HEAT_TIME,
            G5Commands.HEAT_INTERVAL,
        ])

    @staticmethod
    def feed_dots(dots: int) -> bytes:
        """
        ESC J n: advance the paper by n dot lines.

        Args:
            dots: Number of dot lines (0-255)
        """
        if not 0 <= dots <= 0xFF:
            raise ValueError(f"Feed must be 0-255 dots, got {dots}")
        return bytes([G5Commands.ESC, 0x4A, dots])

    @staticmethod
    def feed_lines(lines: int) -> bytes:
        """ESC d n: print and feed n text lines."""
        if not 0 <= lines <= 0xFF:
            raise ValueError(f"Feed must be 0-255 lines, got {lines}")
        return bytes([G5Commands.ESC, 0x64, lines])

    @staticmethod
    def raster_row(row: bytes, leading_blanks: int = 0) -> bytes:
        """
        Burn one horizontal strip of a monochrome bitmap.

        Layout: ``1F 2B <leading_blanks> <length> <row bytes...>``.

        Args:
            row: Packed pixel bytes, MSB leftmost, 1 = black
            leading_blanks: Blank bytes the printer inserts before the row
        """
        if len(row) > G5Commands.MAX_ROW_BYTES:
            raise ValueError(
                f"Raster row is {len(row)} bytes, maximum is {G5Commands.MAX_ROW_BYTES}"
            )
        if not 0 <= leading_blanks <= 0xFF:
            raise ValueError(f"Leading blanks must be 0-255, got {leading_blanks}")
        return G5Commands.RASTER_ROW + bytes([leading_blanks, len(row)]) + bytes(row)

    @staticmethod
    def form_feed() -> bytes:
        """FF: advance to the next label boundary."""
        return G5Commands.FORM_FEED

    @staticmethod
    def label_init(top_margin_dots: int) -> list[bytes]:
        """Commands that start every physical label."""
        return [
            G5Commands.reset(),
            G5Commands.heat(),
            G5Commands.density(),
            G5Commands.feed_dots(top_margin_dots),
        ]
