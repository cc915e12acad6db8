"""
Label canvas for the G5 printer.

Builds the command stream for one physical label: init, text lines,
separators, trailing feed and the label boundary. Each step carries the
pause the printer needs after it. The same stream is sent by the printer
or rendered into a preview image.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterator, Optional

from PIL import Image

from .commands import G5Commands
from .config import PrinterSettings
from .glyphs import GlyphTable
from .raster import Align, rasterize_line, render_preview

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class PrintStep:
    """One command and the pause to observe after sending it."""
    command: bytes
    settle: float = 0.0


@dataclass
class LabelCanvas:
    """Builder for the commands of one label.

    Usage::

        canvas = LabelCanvas(settings).start()
        canvas.text("ORDER: 1234", scale=3, settle=1.0)
        canvas.separator()
        canvas.end()
        await printer.print_canvas(canvas)
    """
    settings: PrinterSettings = field(default_factory=PrinterSettings)
    glyphs: Optional[GlyphTable] = None
    steps: list[PrintStep] = field(default_factory=list)
    substitutions: list[str] = field(default_factory=list)
    started: bool = False
    finished: bool = False

    def _add(self, command: bytes, settle: float = 0.0):
        if not self.started:
            raise RuntimeError("Call start() before drawing on the canvas")
        if self.finished:
            raise RuntimeError("Canvas already finished with end()")
        self.steps.append(PrintStep(command, settle))

    def start(self, top_margin_dots: Optional[int] = None) -> "LabelCanvas":
        """Reset the printer, set heat and density, and feed the top margin."""
        self.steps = []
        self.substitutions = []
        self.started = True
        self.finished = False
        margin = self.settings.top_margin_dots if top_margin_dots is None else top_margin_dots
        for command in G5Commands.label_init(margin):
            self._add(command)
        return self

    def text(
        self,
        text: str,
        scale: int = 1,
        align: Align = Align.CENTER,
        settle: float = 0.0,
    ) -> "LabelCanvas":
        """Draw one line of text followed by the inter-line spacing."""
        line = rasterize_line(
            text,
            scale=scale,
            align=align,
            label_width_bytes=self.settings.label_width_bytes,
            glyphs=self.glyphs,
        )
        if line.substitutions:
            LOGGER.warning(
                "Unsupported characters [%s] in %r printed as blanks",
                ", ".join(line.substitutions), line.text,
            )
            for char in line.substitutions:
                if char not in self.substitutions:
                    self.substitutions.append(char)
        if not line.commands:
            return self

        for command in line.commands:
            self._add(command)
        self._add(G5Commands.feed_dots(self.settings.field_spacing_dots), settle)
        return self

    def separator(self, char: str = "=", width: Optional[int] = None) -> "LabelCanvas":
        """Draw a full-width separator line at scale 1."""
        count = self.settings.separator_width if width is None else width
        return self.text(char * count, scale=1)

    def feed(self, dots: int, settle: float = 0.0) -> "LabelCanvas":
        return self.raw(G5Commands.feed_dots(dots), settle)

    def raw(self, command: bytes, settle: float = 0.0) -> "LabelCanvas":
        """Append an arbitrary command, e.g. a form or line feed."""
        self._add(bytes(command), settle)
        return self

    def end(self) -> "LabelCanvas":
        """Feed the trailing space and advance to the next label."""
        self._add(
            G5Commands.feed_dots(self.settings.trailing_spacing_dots),
            self.settings.settle_spacing,
        )
        self._add(G5Commands.form_feed(), self.settings.settle_form_feed)
        self.finished = True
        return self

    def commands(self) -> Iterator[bytes]:
        for step in self.steps:
            yield step.command

    def payload(self) -> bytes:
        """All commands concatenated, as the printer receives them."""
        return b"".join(self.commands())

    def preview(self) -> Image.Image:
        """Render what this label would look like on paper."""
        return render_preview(self.commands(), self.settings.label_width_bytes)
