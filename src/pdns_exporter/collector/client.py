"""
Client for the PowerDNS built-in HTTP API. Reads server identity from
servers/localhost and the flat statistics list from
servers/localhost/statistics.

Nothing is retried here. A failed fetch surfaces as a FetchError and the
next scrape simply tries again.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, List, Optional

import httpx

from pdns_exporter.collector.base import StatsSource
from pdns_exporter.errors import DecodeError, ProtocolError, TransportError
from pdns_exporter.metrics import ServerInfo, StatEntry

log = logging.getLogger(__name__)

API_INFO_ENDPOINT = "servers/localhost"
API_STATS_ENDPOINT = "servers/localhost/statistics"

DEFAULT_TIMEOUT_SECONDS = 5.0


class PowerDNSClient(StatsSource):

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self._base_url = base_url
        self._timeout = timeout_seconds
        self._client = httpx.Client(
            base_url=base_url,
            headers={"X-API-Key": api_key},
            timeout=httpx.Timeout(timeout_seconds),
            transport=transport,
        )

    def fetch_json(self, path: str) -> Any:
        """GET one API endpoint and decode the body as JSON.

        The whole round trip shares one deadline: connect, headers and every
        body chunk must arrive within timeout_seconds of the call.
        """
        deadline = time.monotonic() + self._timeout
        try:
            with self._client.stream("GET", path, timeout=httpx.Timeout(self._timeout)) as response:
                body = bytearray()
                for chunk in response.iter_bytes():
                    body.extend(chunk)
                    if time.monotonic() > deadline:
                        raise TransportError(f"GET {path}: no complete response within {self._timeout}s")
        except httpx.TransportError as exc:
            raise TransportError(f"GET {path}: {exc}") from exc

        if time.monotonic() > deadline:
            raise TransportError(f"GET {path}: no complete response within {self._timeout}s")

        text = bytes(body).decode(response.encoding or "utf-8", errors="replace")
        if response.status_code != httpx.codes.OK:
            raise ProtocolError(text.strip(), status_code=response.status_code)

        try:
            return json.loads(text)
        except ValueError as exc:
            raise DecodeError(f"GET {path}: invalid JSON: {exc}") from exc

    def fetch_stats(self) -> List[StatEntry]:
        data = self.fetch_json(API_STATS_ENDPOINT)
        if not isinstance(data, list):
            raise DecodeError(f"expected a JSON array of statistics, got {type(data).__name__}")
        return parse_stats(data)

    def fetch_server_info(self) -> ServerInfo:
        data = self.fetch_json(API_INFO_ENDPOINT)
        if not isinstance(data, dict):
            raise DecodeError(f"expected a JSON object for server info, got {type(data).__name__}")
        return ServerInfo.from_json(data)

    def name(self) -> str:
        return f"PowerDNS API ({self._base_url})"

    def close(self):
        self._client.close()


def parse_stats(records: List[Any]) -> List[StatEntry]:
    """Turn the decoded statistics array into StatEntry values.

    PowerDNS string-encodes the numbers. Newer daemons also return map and
    ring statistics whose value is a list; those have no single number
    and are skipped.
    """
    entries = []
    for record in records:
        if not isinstance(record, dict) or "name" not in record:
            raise DecodeError(f"malformed statistics record: {record!r}")

        raw = record.get("value")
        if isinstance(raw, (list, dict)) or raw is None:
            log.debug("Skipping non-scalar statistic %s", record["name"])
            continue

        try:
            value = float(raw)
        except (TypeError, ValueError) as exc:
            raise DecodeError(f"statistic {record['name']!r} has non-numeric value {raw!r}") from exc

        entries.append(StatEntry(
            name=str(record["name"]),
            value=value,
            kind=str(record.get("type", "StatisticItem")),
        ))
    return entries
