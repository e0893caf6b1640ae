"""Exception hierarchy for driver failures."""

from __future__ import annotations

from smiwatch._types import Status


class SmiError(RuntimeError):
    """Base class for every error raised by smiwatch."""


class DriverCallError(SmiError):
    """A driver call returned a non-success status."""

    def __init__(self, message: str, status: Status) -> None:
        super().__init__(f"{message} Error: {status.name}")
        self.message = message
        self.status = status


class EnumerationError(DriverCallError):
    """Socket or device enumeration failed; no device list is available."""


def check_status(
    status: Status,
    message: str,
    error: type[DriverCallError] = DriverCallError,
) -> None:
    """Raise ``error`` unless ``status`` is SUCCESS."""
    if status != Status.SUCCESS:
        raise error(message, Status.from_code(int(status)))
