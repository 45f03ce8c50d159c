"""
Mock PowerDNS statistics generator.

Produces fake but plausible statistics so we can develop and test without
a running recursor or authoritative server. Counters only ever go up;
gauges wander around a baseline. Output is in the same shape as the
servers/localhost/statistics JSON (string-encoded values).
"""

from __future__ import annotations

import math
import random
from typing import Dict, List

from pdns_exporter.collector.histogram import RESPONSE_TIME_BUCKETS
from pdns_exporter.registry import select_registry

VERSION = "4.8.4"

# Rough share of answers per latency band for a warm recursor cache
_RTIME_SHARE = {
    "answers0-1": 0.55,
    "answers1-10": 0.2,
    "answers10-100": 0.17,
    "answers100-1000": 0.07,
    "answers-slow": 0.01,
}

# Reported by every flavor, read by no metric table
_EXTRA_KEYS = ("user-msec", "sys-msec")


class MockPowerDNS:

    def __init__(self, seed: int = 42, daemon_type: str = "recursor"):
        self._rng = random.Random(seed)
        self._tick = 0
        self.daemon_type = daemon_type
        self._registry = select_registry(daemon_type)
        self._counters: Dict[str, float] = {}

        keys = set()
        for group in self._registry.counter_groups:
            keys.update(group.keys())
        if self._registry.response_time_histogram:
            keys.update(RESPONSE_TIME_BUCKETS)
        for key in sorted(keys):
            self._counters[key] = 0.0

    def server_info(self) -> dict:
        return {
            "type": "Server",
            "id": "localhost",
            "url": "/api/v1/servers/localhost",
            "daemon_type": self.daemon_type,
            "version": VERSION,
            "config_url": "/api/v1/servers/localhost/config{/config_setting}",
            "zones_url": "/api/v1/servers/localhost/zones{/zone}",
        }

    def statistics(self) -> List[dict]:
        """Generate one reading, advancing the simulation clock."""
        self._tick += 1
        t = self._tick

        # Sinusoidal query load with occasional bursts
        load = 200 + 120 * math.sin(t * 0.05)
        if self._rng.random() > 0.9:
            load += self._rng.random() * 300
        queries = max(1, int(load))

        for key in self._counters:
            if key in _RTIME_SHARE:
                step = queries * _RTIME_SHARE[key]
            else:
                step = queries * self._rng.uniform(0.01, 0.6)
            self._counters[key] += int(step)

        gauges = {}
        for definition in self._registry.gauges:
            if definition.key.endswith("latency"):
                # microseconds, like the real thing
                value = max(50, int(2500 + self._rng.gauss(0, 400)))
            else:
                value = max(0, int(queries * self._rng.uniform(0.5, 20)))
            gauges[definition.key] = value

        records = [
            {"name": key, "type": "StatisticItem", "value": str(int(value))}
            for key, value in self._counters.items()
        ]
        records.extend(
            {"name": key, "type": "StatisticItem", "value": str(value)}
            for key, value in gauges.items()
        )
        records.append({"name": "uptime", "type": "StatisticItem", "value": str(t * 2)})
        records.extend(
            {"name": key, "type": "StatisticItem", "value": str(t * self._rng.randint(1, 5))}
            for key in _EXTRA_KEYS
        )
        # Newer daemons mix in map statistics; the exporter has to skip these
        records.append({
            "name": "response-by-qtype",
            "type": "MapStatisticItem",
            "value": [{"name": "A", "value": str(queries)}],
        })
        return records
