"""Error types raised by the G5 printer driver."""


class PrinterError(Exception):
    """Base exception for all printer errors."""

    pass


class PrinterConnectionError(PrinterError):
    """Error connecting to the printer or keeping the link alive."""

    pass


class NotFoundError(PrinterConnectionError):
    """No matching printer was found during discovery."""

    pass


class LinkError(PrinterConnectionError):
    """The BLE link could not be opened after all retries."""

    pass


class NoWritableCharacteristicError(PrinterConnectionError):
    """Connected, but no characteristic on the device accepts writes."""

    pass


class ExhaustedError(PrinterConnectionError):
    """Automatic reconnection gave up after its bounded attempts."""

    pass


class NotConnectedError(PrinterConnectionError):
    """An operation needed a live connection and there was none."""

    pass


class ProbeError(PrinterError):
    """The post-connect liveness probe could not be written."""

    pass


class TransportError(PrinterError):
    """A chunk write failed in the middle of a transmission."""

    pass


class ValidationError(PrinterError, ValueError):
    """Caller supplied an invalid job or setting."""

    pass
