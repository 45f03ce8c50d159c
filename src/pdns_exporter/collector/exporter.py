"""
PowerDNS exporter: a prometheus_client custom collector.

Every call to collect() does one full cycle under a lock:

    scrape -> reset counter groups -> populate from the registry -> publish

Only one cycle runs at a time; concurrent scrapes of /metrics wait their
turn and then fetch fresh stats themselves. Missing stats keys never abort
a cycle, they bump the parse-failure counter and the affected gauge keeps
its previous value (or the label is left out).
"""

from __future__ import annotations

import logging
import re
import threading
from typing import Dict, List, Mapping, Optional

from prometheus_client.core import HistogramMetricFamily, Metric

from pdns_exporter.collector.base import StatsSource
from pdns_exporter.collector.histogram import build_response_time_histogram
from pdns_exporter.collector.instruments import (
    CounterGroupInstrument,
    CounterInstrument,
    GaugeInstrument,
    metric_name,
)
from pdns_exporter.errors import FetchError, MissingKeyError
from pdns_exporter.metrics import Registry, to_snapshot
from pdns_exporter.registry import NAMESPACE

log = logging.getLogger(__name__)

# PowerDNS reports latency averages in microseconds
_MICROSECONDS = 1_000_000

HISTOGRAM_NAME = "response_time_seconds"
HISTOGRAM_HELP = "Histogram of PowerDNS response times in seconds."

_INVALID_NAME_CHARS = re.compile(r"[^a-zA-Z0-9_]")


class PowerDNSExporter:

    def __init__(self, source: StatsSource, registry: Registry, namespace: str = NAMESPACE):
        self._source = source
        self._registry = registry
        self._lock = threading.Lock()

        # daemon_type comes from the remote server; keep the metric names valid
        subsystem = _INVALID_NAME_CHARS.sub("_", registry.flavor)

        def full(name: str) -> str:
            return metric_name(namespace, subsystem, name)

        self.up = GaugeInstrument(full("up"), "Was the last scrape of PowerDNS successful.")
        self.total_scrapes = CounterInstrument(
            full("exporter_total_scrapes"), "Current total PowerDNS scrapes.")
        self.json_parse_failures = CounterInstrument(
            full("exporter_json_parse_failures"), "Number of errors while parsing PowerDNS JSON stats.")

        self.gauges: Dict[int, GaugeInstrument] = {
            d.id: GaugeInstrument(full(d.name), d.description) for d in registry.gauges
        }
        self.counter_groups: Dict[int, CounterGroupInstrument] = {
            d.id: CounterGroupInstrument(full(d.name), d.description, d.label)
            for d in registry.counter_groups
        }
        self._histogram_name = full(HISTOGRAM_NAME)

    @property
    def registry(self) -> Registry:
        return self._registry

    def describe(self) -> List[Metric]:
        """Every family this exporter can emit, without touching the network."""
        families = [
            self.up.describe(),
            self.total_scrapes.describe(),
            self.json_parse_failures.describe(),
        ]
        families.extend(m.describe() for m in self.counter_groups.values())
        families.extend(m.describe() for m in self.gauges.values())
        if self._registry.response_time_histogram:
            families.append(HistogramMetricFamily(self._histogram_name, HISTOGRAM_HELP))
        return families

    def collect(self) -> List[Metric]:
        with self._lock:
            snapshot = self._scrape()
            if snapshot is None:
                return self._publish_health()

            self._reset()
            if snapshot:
                self._populate(snapshot)
            else:
                log.warning("PowerDNS returned no statistics")
            return self._publish(snapshot)

    def _scrape(self) -> Optional[Dict[str, float]]:
        self.total_scrapes.inc()
        try:
            entries = self._source.fetch_stats()
        except FetchError as exc:
            self.up.set(0)
            self.json_parse_failures.inc()
            log.error("Error scraping PowerDNS: %s", exc)
            return None

        self.up.set(1)
        return to_snapshot(entries)

    def _reset(self):
        for group in self.counter_groups.values():
            group.reset()

    def _lookup(self, snapshot: Mapping[str, float], key: str, metric: str) -> Optional[float]:
        value = snapshot.get(key)
        if value is None:
            log.warning("Expected PowerDNS stats key not found: %s (metric %s)", key, metric)
            self.json_parse_failures.inc()
        return value

    def _populate(self, snapshot: Mapping[str, float]):
        for definition in self._registry.gauges:
            gauge = self.gauges[definition.id]
            value = self._lookup(snapshot, definition.key, gauge.name)
            if value is None:
                continue
            if definition.key.endswith("latency"):
                value = value / _MICROSECONDS
            gauge.set(value)

        for definition in self._registry.counter_groups:
            group = self.counter_groups[definition.id]
            for key, label_value in definition.label_map:
                value = self._lookup(snapshot, key, group.name)
                if value is not None:
                    group.set(label_value, value)

    def _publish_health(self) -> List[Metric]:
        return [
            self.up.to_family(),
            self.total_scrapes.to_family(),
            self.json_parse_failures.to_family(),
        ]

    def _publish(self, snapshot: Mapping[str, float]) -> List[Metric]:
        families = self._publish_health()
        families.extend(m.to_family() for m in self.counter_groups.values())
        families.extend(m.to_family() for m in self.gauges.values())

        if self._registry.response_time_histogram:
            try:
                families.append(
                    build_response_time_histogram(snapshot, self._histogram_name, HISTOGRAM_HELP)
                )
            except MissingKeyError as exc:
                log.error("Could not create response time histogram: %s", exc)

        return families
