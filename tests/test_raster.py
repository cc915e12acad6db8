"""Tests for the bitmap text rasterizer."""

import pytest

from g5printer.commands import G5Commands
from g5printer.glyphs import GlyphTable
from g5printer.raster import (
    Align,
    chars_per_line,
    rasterize_line,
    render_preview,
    text_start_bit,
)

WIDTH = 48
BLOCK = GlyphTable({"X": bytes([0xFF] * 8)})


def row_bytes(command: bytes) -> bytes:
    """Strip the 1F 2B <blanks> <len> header."""
    assert command[:2] == b"\x1f\x2b"
    assert command[3] == len(command) - 4
    return command[4:]


def margins(row: bytes) -> tuple[int, int]:
    """Blank dots left and right of the inked part of a row."""
    bits = format(int.from_bytes(row, "big"), f"0{len(row) * 8}b")
    return len(bits) - len(bits.lstrip("0")), len(bits) - len(bits.rstrip("0"))


class TestGeometry:
    """Test layout helpers."""

    def test_center_start(self):
        """Test that one 8-dot char starts at (384 - 8) // 2."""
        assert text_start_bit(1, 1, Align.CENTER, WIDTH) == 188

    def test_left_start(self):
        assert text_start_bit(10, 3, Align.LEFT, WIDTH) == 0

    def test_overflow_start_is_negative(self):
        """Test that text wider than the label is clipped from both sides."""
        assert text_start_bit(32, 2, Align.CENTER, WIDTH) == -64

    def test_chars_per_line(self):
        assert chars_per_line(1, WIDTH) == 48
        assert chars_per_line(2, WIDTH) == 24
        assert chars_per_line(3, WIDTH) == 16


class TestRasterizeLine:
    """Test rasterize_line output."""

    @pytest.mark.parametrize("scale", [1, 2, 3])
    def test_row_count_and_width(self, scale):
        """Test 8 * scale rows, each exactly label-width bytes."""
        line = rasterize_line("ORDER: 12", scale=scale)
        assert line.row_count == 8 * scale
        for command in line.commands:
            assert len(row_bytes(command)) == WIDTH
            assert command[2] == 0

    def test_centered_glyph_bits(self):
        """Test the first row of a centered 'A' lands on dots 191 and 192."""
        row = row_bytes(rasterize_line("A").commands[0])
        assert row[23] == 0x01
        assert row[24] == 0x80
        assert sum(row) == 0x81

    def test_left_aligned_glyph_bits(self):
        """Test that left alignment starts at dot 0."""
        row = row_bytes(rasterize_line("A", align=Align.LEFT).commands[0])
        assert row[0] == 0x18
        assert not any(row[1:])

    def test_horizontal_and_vertical_scaling(self):
        """Test each bit doubled across and each row doubled down at scale 2."""
        line = rasterize_line("A", scale=2, align=Align.LEFT)
        first = row_bytes(line.commands[0])
        assert first[:2] == bytes([0x03, 0xC0])
        assert line.commands[0] == line.commands[1]

    @pytest.mark.parametrize("count", [1, 2, 3, 7])
    @pytest.mark.parametrize("scale", [1, 2, 3])
    def test_centered_margins_are_symmetric(self, count, scale):
        """Test that centered text leaves equal blank space on both sides."""
        line = rasterize_line("X" * count, scale=scale, glyphs=BLOCK)
        left, right = margins(row_bytes(line.commands[0]))
        assert abs(left - right) <= 1

    def test_overflow_is_clipped(self):
        """Test that 32 chars at scale 2 fill the row without spilling."""
        line = rasterize_line("X" * 32, scale=2, glyphs=BLOCK)
        for command in line.commands:
            assert row_bytes(command) == b"\xff" * WIDTH

    def test_unsupported_characters_print_blank(self):
        """Test that unknown characters become blanks and are reported once."""
        line = rasterize_line("A€B€")
        assert line.substitutions == ["€"]
        assert line.commands == rasterize_line("A B ").commands

    def test_substitutions_in_first_appearance_order(self):
        line = rasterize_line("é1ñ2é")
        assert line.substitutions == ["é", "ñ"]

    def test_lowercase_matches_uppercase(self):
        assert rasterize_line("pickup").commands == rasterize_line("PICKUP").commands

    def test_newlines_are_removed(self):
        assert rasterize_line("AB\n").commands == rasterize_line("AB").commands
        assert rasterize_line("A\r\nB").commands == rasterize_line("AB").commands

    def test_empty_text_has_no_rows(self):
        """Test that empty or newline-only text produces nothing."""
        assert rasterize_line("").commands == []
        assert rasterize_line("\n").commands == []

    def test_deterministic(self):
        """Test that identical input gives identical bytes."""
        first = rasterize_line("BAG 1 OF 2", scale=3)
        second = rasterize_line("BAG 1 OF 2", scale=3)
        assert first.commands == second.commands

    def test_custom_width(self):
        line = rasterize_line("A", label_width_bytes=16)
        assert all(len(row_bytes(c)) == 16 for c in line.commands)

    @pytest.mark.parametrize("kwargs", [{"scale": 0}, {"label_width_bytes": 0}, {"label_width_bytes": 256}])
    def test_rejects_bad_arguments(self, kwargs):
        with pytest.raises(ValueError):
            rasterize_line("A", **kwargs)


class TestRenderPreview:
    """Test rendering command streams back to images."""

    def test_rows_and_feeds(self):
        """Test raster rows become pixel rows and ESC J n blank rows."""
        commands = rasterize_line("A").commands + [G5Commands.feed_dots(4)]
        image = render_preview(commands)
        assert image.mode == "1"
        assert image.size == (384, 12)
        assert image.getpixel((191, 0)) == 0
        assert image.getpixel((0, 0)) == 255
        assert image.getpixel((191, 11)) == 255

    def test_ignores_non_drawing_commands(self):
        commands = [G5Commands.reset(), G5Commands.heat(), G5Commands.form_feed()]
        assert render_preview(commands).size == (384, 1)

    def test_empty_stream(self):
        """Test that an empty stream gives a one-row white image."""
        image = render_preview([])
        assert image.size == (384, 1)
        assert image.getpixel((0, 0)) == 255
