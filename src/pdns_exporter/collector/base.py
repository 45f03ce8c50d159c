"""
Base stats source interface.

A stats source is anything that can hand back one round of raw PowerDNS
statistics. This keeps the exporter decoupled from where the numbers
actually come from (the live API, the simulator, a test stub).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from pdns_exporter.metrics import ServerInfo, StatEntry


class StatsSource(ABC):
    """Interface for all statistics sources."""

    @abstractmethod
    def fetch_stats(self) -> List[StatEntry]:
        """Fetch one round of statistics. Raises FetchError on failure."""
        ...

    @abstractmethod
    def fetch_server_info(self) -> ServerInfo:
        """Identity and version of the server behind this source."""
        ...

    @abstractmethod
    def name(self) -> str:
        """Human-readable name for this source."""
        ...

    def close(self):
        pass
