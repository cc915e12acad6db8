"""
Driver settings for the G5 printer.

Chunk size, pacing and settle delays were tuned by trial on one printer
and firmware. They live here so other hardware can be calibrated without
code changes, and can be persisted to ``~/.config/g5printer/settings.json``.
"""

import json
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Optional

from .errors import ValidationError

CONFIG_DIR = Path.home() / ".config" / "g5printer"
SETTINGS_FILE = CONFIG_DIR / "settings.json"


@dataclass(frozen=True)
class PrinterSettings:
    """Tunable driver parameters. Times are in seconds unless noted."""

    # Raster width of the print head (57mm label = 384 dots)
    label_width_bytes: int = 48

    # Transmission: small chunks with fixed pacing stand in for flow control
    chunk_size: int = 100
    chunk_delay_ms: float = 5.0

    # Discovery and link establishment
    scan_timeout: float = 10.0
    link_attempts: int = 3
    link_retry_delay: float = 0.5

    # Recovery
    reconnect_attempts: int = 2
    background_reconnect_attempts: int = 1
    background_reconnect_delay: float = 2.0
    reconnect_settle: float = 0.5
    backoff_base: float = 2.0
    backoff_cap: float = 5.0

    # Label layout
    top_margin_dots: int = 24
    field_spacing_dots: int = 4
    trailing_spacing_dots: int = 6
    address_line_chars: int = 20
    separator_width: int = 30

    # Settle delays after each field class, proportional to data volume
    settle_large: float = 1.0
    settle_phone: float = 1.5
    settle_pickup: float = 0.8
    settle_header: float = 0.6
    settle_body: float = 0.0
    settle_spacing: float = 0.3
    settle_form_feed: float = 0.5

    def validate(self) -> "PrinterSettings":
        """Check value ranges, returning self so calls can be chained."""
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValidationError(f"{f.name} must be a number, got {value!r}")
            if f.type is int and not isinstance(value, int):
                raise ValidationError(f"{f.name} must be a whole number, got {value!r}")
            if value < 0:
                raise ValidationError(f"{f.name} must not be negative")
        if not 1 <= self.label_width_bytes <= 255:
            raise ValidationError("label_width_bytes must be between 1 and 255")
        if self.chunk_size < 1:
            raise ValidationError("chunk_size must be at least 1")
        for name in ("link_attempts", "reconnect_attempts", "background_reconnect_attempts"):
            if getattr(self, name) < 1:
                raise ValidationError(f"{name} must be at least 1")
        for name in ("top_margin_dots", "field_spacing_dots", "trailing_spacing_dots"):
            if not 0 <= getattr(self, name) <= 255:
                raise ValidationError(f"{name} must be between 0 and 255")
        if self.address_line_chars < 1 or self.separator_width < 0:
            raise ValidationError("address_line_chars and separator_width must be positive")
        return self

    def with_overrides(self, **overrides: Any) -> "PrinterSettings":
        """Return a copy with some values changed, validated."""
        unknown = set(overrides) - {f.name for f in fields(self)}
        if unknown:
            raise ValidationError(f"Unknown setting(s): {', '.join(sorted(unknown))}")
        return replace(self, **overrides).validate()

    def backoff(self, attempt: int) -> float:
        """Wait before reconnect attempt ``attempt + 1`` (2s, 4s, capped)."""
        return min(self.backoff_base * attempt, self.backoff_cap)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def load_settings(path: Optional[Path] = None) -> PrinterSettings:
    """Load settings from JSON, falling back to defaults if the file is missing.

    Raises:
        ValidationError: If the file is unreadable JSON or holds bad values
    """
    path = path or SETTINGS_FILE
    if not path.exists():
        return PrinterSettings()

    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid settings file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValidationError(f"Settings file {path} must hold a JSON object")

    return PrinterSettings().with_overrides(**data)


def save_settings(settings: PrinterSettings, path: Optional[Path] = None) -> Path:
    """Write settings as JSON, creating the config directory if needed."""
    path = path or SETTINGS_FILE
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(settings.to_dict(), indent=2))
    return path
