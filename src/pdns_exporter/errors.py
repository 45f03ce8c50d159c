"""Exceptions raised while talking to the PowerDNS API or reading its stats."""

from __future__ import annotations

from typing import Optional


class ExporterError(Exception):
    """Base class for all exporter errors."""


class FetchError(ExporterError):
    """A request to the PowerDNS API did not produce usable JSON."""


class TransportError(FetchError):
    """Connection refused, DNS failure, timeout and the like."""


class ProtocolError(FetchError):
    """The API answered with something other than 200 OK."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class DecodeError(FetchError):
    """The response body was not the JSON shape we expected."""


class MissingKeyError(ExporterError):
    """An expected statistic was absent from the snapshot."""

    def __init__(self, key: str):
        super().__init__(f"expected PowerDNS stats key not found: {key}")
        self.key = key
