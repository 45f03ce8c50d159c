"""
Stats source backed by the PowerDNS simulator.
Used for local development on machines without a DNS server.
"""

from typing import List

from pdns_exporter.collector.base import StatsSource
from pdns_exporter.collector.client import parse_stats
from pdns_exporter.metrics import ServerInfo, StatEntry
from pdns_exporter.mock.generator import MockPowerDNS


class MockStatsSource(StatsSource):
    """Wraps the mock generator as a standard stats source."""

    def __init__(self, seed: int = 42, daemon_type: str = "recursor"):
        self._server = MockPowerDNS(seed=seed, daemon_type=daemon_type)

    def fetch_stats(self) -> List[StatEntry]:
        return parse_stats(self._server.statistics())

    def fetch_server_info(self) -> ServerInfo:
        return ServerInfo.from_json(self._server.server_info())

    def name(self) -> str:
        return f"Mock PowerDNS {self._server.daemon_type}"
