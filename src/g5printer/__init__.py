"""G5 Thermal Label Printer Driver for Linux/macOS/Windows."""

__version__ = "0.1.0"

from .printer import G5Printer, PrinterStatus, build_canvas
from .errors import (
    PrinterError,
    PrinterConnectionError,
    NotFoundError,
    LinkError,
    NoWritableCharacteristicError,
    ExhaustedError,
    NotConnectedError,
    ProbeError,
    TransportError,
    ValidationError,
)
from .canvas import LabelCanvas, PrintStep
from .commands import G5Commands
from .config import PrinterSettings, load_settings, save_settings
from .connection import (
    BLEConnection,
    ConnectionHandle,
    ConnectionState,
    PeripheralIdentity,
    PrinterInfo,
    DEFAULT_IDENTITY,
)
from .glyphs import GlyphTable
from .label import LabelField, LabelJob, OrderData, build_label_job
from .raster import Align, RasterLine, rasterize_line, render_preview
from .recovery import RecoverySupervisor

__all__ = [
    "G5Printer",
    "PrinterStatus",
    "build_canvas",
    "PrinterError",
    "PrinterConnectionError",
    "NotFoundError",
    "LinkError",
    "NoWritableCharacteristicError",
    "ExhaustedError",
    "NotConnectedError",
    "ProbeError",
    "TransportError",
    "ValidationError",
    "LabelCanvas",
    "PrintStep",
    "G5Commands",
    "PrinterSettings",
    "load_settings",
    "save_settings",
    "BLEConnection",
    "ConnectionHandle",
    "ConnectionState",
    "PeripheralIdentity",
    "PrinterInfo",
    "DEFAULT_IDENTITY",
    "GlyphTable",
    "LabelField",
    "LabelJob",
    "OrderData",
    "build_label_job",
    "Align",
    "RasterLine",
    "rasterize_line",
    "render_preview",
    "RecoverySupervisor",
]
