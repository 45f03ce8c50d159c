"""
Core data definitions for the exporter.

Raw statistics as PowerDNS reports them at servers/localhost/statistics,
the server identity from servers/localhost, and the declarative metric
definitions that say which raw key feeds which Prometheus metric.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Tuple


@dataclass(frozen=True)
class StatEntry:
    """A single named measurement from the PowerDNS statistics endpoint."""

    name: str
    value: float
    kind: str = "StatisticItem"


@dataclass(frozen=True)
class ServerInfo:
    kind: str
    id: str
    url: str
    daemon_type: str
    version: str
    config_url: str = ""
    zones_url: str = ""

    @classmethod
    def from_json(cls, data: Mapping[str, object]) -> "ServerInfo":
        return cls(
            kind=str(data.get("type", "")),
            id=str(data.get("id", "")),
            url=str(data.get("url", "")),
            daemon_type=str(data.get("daemon_type", "")),
            version=str(data.get("version", "")),
            config_url=str(data.get("config_url", "")),
            zones_url=str(data.get("zones_url", "")),
        )

    def summary(self) -> dict:
        """Return a plain dict for display."""
        return {
            "type": self.kind,
            "id": self.id,
            "url": self.url,
            "daemon_type": self.daemon_type,
            "version": self.version,
            "config_url": self.config_url,
            "zones_url": self.zones_url,
        }


@dataclass(frozen=True)
class GaugeDefinition:
    id: int
    name: str
    description: str
    key: str


@dataclass(frozen=True)
class CounterGroupDefinition:
    """One labeled counter; each raw key becomes one label value."""

    id: int
    name: str
    description: str
    label: str
    label_map: Tuple[Tuple[str, str], ...]

    def __post_init__(self):
        values = [value for _, value in self.label_map]
        if len(values) != len(set(values)):
            raise ValueError(f"duplicate label values in counter group {self.name!r}")

    def keys(self) -> Tuple[str, ...]:
        return tuple(key for key, _ in self.label_map)


@dataclass(frozen=True)
class Registry:
    """The metric tables bound to one server flavor. Chosen once at startup."""

    flavor: str
    gauges: Tuple[GaugeDefinition, ...] = ()
    counter_groups: Tuple[CounterGroupDefinition, ...] = ()
    response_time_histogram: bool = False

    def references(self, key: str) -> int:
        """How many gauge and label definitions read this raw key."""
        count = sum(1 for g in self.gauges if g.key == key)
        for group in self.counter_groups:
            count += sum(1 for k in group.keys() if k == key)
        return count


def to_snapshot(entries: Iterable[StatEntry]) -> Dict[str, float]:
    """Flatten stat entries into name -> value. Later duplicates win."""
    snapshot: Dict[str, float] = {}
    for entry in entries:
        snapshot[entry.name] = entry.value
    return snapshot
