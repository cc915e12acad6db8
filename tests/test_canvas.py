"""Tests for the label canvas builder."""

import logging

import pytest

from g5printer.canvas import LabelCanvas, PrintStep
from g5printer.commands import G5Commands
from g5printer.config import PrinterSettings
from g5printer.raster import rasterize_line


class TestLabelCanvas:
    """Test building label command streams."""

    def test_start_emits_init(self):
        canvas = LabelCanvas().start()
        assert list(canvas.commands()) == G5Commands.label_init(24)

    def test_custom_top_margin(self):
        canvas = LabelCanvas().start(top_margin_dots=8)
        assert canvas.steps[-1].command == bytes([0x1B, 0x4A, 0x08])

    def test_text_rows_then_spacing_with_settle(self):
        """Test that a line is its raster rows plus ESC J 4 carrying the pause."""
        canvas = LabelCanvas().start()
        before = len(canvas.steps)

        canvas.text("HELLO", scale=2, settle=1.5)

        added = canvas.steps[before:]
        assert [s.command for s in added[:-1]] == rasterize_line("HELLO", scale=2).commands
        assert all(s.settle == 0 for s in added[:-1])
        assert added[-1] == PrintStep(G5Commands.feed_dots(4), 1.5)

    def test_empty_text_adds_nothing(self):
        canvas = LabelCanvas().start()
        before = len(canvas.steps)
        canvas.text("")
        assert len(canvas.steps) == before

    def test_separator(self):
        canvas = LabelCanvas().start()
        canvas.separator()
        rows = rasterize_line("=" * 30, scale=1).commands
        assert [s.command for s in canvas.steps[4:4 + len(rows)]] == rows

    def test_end_advances_to_next_label(self):
        """Test ESC J 6 with 0.3s, then form feed with 0.5s."""
        canvas = LabelCanvas().start().end()
        assert canvas.steps[-2:] == [
            PrintStep(G5Commands.feed_dots(6), 0.3),
            PrintStep(G5Commands.form_feed(), 0.5),
        ]
        assert canvas.finished

    def test_substitutions_logged(self, caplog):
        canvas = LabelCanvas().start()
        with caplog.at_level(logging.WARNING, logger="g5printer.canvas"):
            canvas.text("CAFÉ")
        assert canvas.substitutions == ["É"]
        assert "Unsupported characters" in caplog.text

    def test_draw_before_start(self):
        with pytest.raises(RuntimeError, match="start"):
            LabelCanvas().text("A")

    def test_draw_after_end(self):
        canvas = LabelCanvas().start().end()
        with pytest.raises(RuntimeError, match="finished"):
            canvas.feed(4)

    def test_start_resets(self):
        canvas = LabelCanvas().start().end()
        canvas.start()
        assert len(canvas.steps) == 4
        assert not canvas.finished

    def test_payload_concatenates(self):
        canvas = LabelCanvas().start()
        assert canvas.payload() == b"".join(G5Commands.label_init(24))

    def test_preview_height(self):
        """Test margin, 8 text rows, 4 spacing and 6 trailing dots."""
        settings = PrinterSettings()
        canvas = LabelCanvas(settings).start().text("A").end()
        assert canvas.preview().size == (384, 24 + 8 + 4 + 6)
