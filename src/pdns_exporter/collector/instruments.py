"""
Long-lived metric instruments.

The exporter keeps these across scrapes and mutates them in place; at
publish time each one is turned into a prometheus_client metric family.
prometheus_client's own Counter has no set() and no per-label reset, and
PowerDNS already hands us absolute totals, so we hold the values here.
"""

from __future__ import annotations

from typing import Dict

from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily


def metric_name(namespace: str, subsystem: str, name: str) -> str:
    """Join the non-empty parts with underscores, e.g. powerdns_recursor_up."""
    return "_".join(part for part in (namespace, subsystem, name) if part)


class GaugeInstrument:

    def __init__(self, name: str, documentation: str):
        self.name = name
        self.documentation = documentation
        self.value = 0.0

    def set(self, value: float):
        self.value = float(value)

    def describe(self) -> GaugeMetricFamily:
        return GaugeMetricFamily(self.name, self.documentation)

    def to_family(self) -> GaugeMetricFamily:
        return GaugeMetricFamily(self.name, self.documentation, value=self.value)


class CounterInstrument:

    def __init__(self, name: str, documentation: str):
        self.name = name
        self.documentation = documentation
        self.value = 0.0

    def inc(self, amount: float = 1.0):
        if amount < 0:
            raise ValueError("counters can only be incremented by non-negative amounts")
        self.value += amount

    def describe(self) -> CounterMetricFamily:
        return CounterMetricFamily(self.name, self.documentation)

    def to_family(self) -> CounterMetricFamily:
        return CounterMetricFamily(self.name, self.documentation, value=self.value)


class CounterGroupInstrument:
    """A counter with one label; label values are set wholesale each scrape."""

    def __init__(self, name: str, documentation: str, label: str):
        self.name = name
        self.documentation = documentation
        self.label = label
        self._values: Dict[str, float] = {}

    def set(self, label_value: str, value: float):
        self._values[label_value] = float(value)

    def reset(self):
        self._values.clear()

    def values(self) -> Dict[str, float]:
        return dict(self._values)

    def describe(self) -> CounterMetricFamily:
        return CounterMetricFamily(self.name, self.documentation, labels=[self.label])

    def to_family(self) -> CounterMetricFamily:
        family = CounterMetricFamily(self.name, self.documentation, labels=[self.label])
        for label_value, value in self._values.items():
            family.add_metric([label_value], value)
        return family
