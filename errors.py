"""Error kinds raised across the sampling, storage and reporting layers."""

from __future__ import annotations

from typing import Optional


class DiskFreeError(Exception):
    """Base class for all application errors."""


class ConfigurationError(DiskFreeError):
    """Configuration is missing or cannot be interpreted."""


class StorageError(DiskFreeError):
    """A query, insert or delete against the sample store failed."""


class StoreConnectionError(StorageError):
    """The sample store cannot be reached."""


class SamplingError(DiskFreeError):
    """The capacity utility or host name lookup failed for a sampling pass."""


class ParseError(DiskFreeError):
    """A single line of capacity output could not be parsed."""

    def __init__(self, message: str, line: str, line_number: Optional[int] = None) -> None:
        super().__init__(message)
        self.line = line
        self.line_number = line_number


class ReportError(DiskFreeError):
    """A trend report could not be produced."""


class InsufficientData(ReportError):
    """Not enough stored samples exist to build a report."""

    def __init__(self, hostname: str) -> None:
        super().__init__(f"Not enough samples stored for host {hostname!r} to report.")
        self.hostname = hostname
