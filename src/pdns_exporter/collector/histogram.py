"""
Response-time histogram for the recursor.

The recursor only reports how many answers fell into each of five latency
bands (answers0-1, answers1-10, ...), not individual samples. Prometheus
histograms want cumulative bucket counts, so we sort the bands by upper
bound and keep a running total. The sum is always zero since we never
see the actual latencies.
"""

from __future__ import annotations

import math
from typing import Dict, List, Mapping, Tuple

from prometheus_client.core import HistogramMetricFamily
from prometheus_client.utils import floatToGoString

from pdns_exporter.errors import MissingKeyError

# Raw stats key -> bucket upper bound in seconds
RESPONSE_TIME_BUCKETS: Dict[str, float] = {
    "answers0-1": 0.001,
    "answers1-10": 0.01,
    "answers10-100": 0.1,
    "answers100-1000": 1.0,
    "answers-slow": math.inf,
}


def cumulative_buckets(counts: Mapping[float, float]) -> Tuple[List[Tuple[float, float]], float]:
    """Convert per-bucket counts keyed by upper bound into cumulative ones.

    Returns the finite (bound, cumulative_count) pairs in ascending order,
    plus the total across every bucket including +Inf.
    """
    total = sum(counts.values())
    buckets = []
    running = 0.0
    for bound in sorted(b for b in counts if not math.isinf(b)):
        running += counts[bound]
        buckets.append((bound, running))
    return buckets, total


def build_response_time_histogram(
    snapshot: Mapping[str, float],
    name: str,
    documentation: str,
) -> HistogramMetricFamily:
    """Build the histogram family from a stats snapshot.

    Raises MissingKeyError if any of the five band counters is absent.
    """
    counts: Dict[float, float] = {}
    for key, bound in RESPONSE_TIME_BUCKETS.items():
        if key not in snapshot:
            raise MissingKeyError(key)
        counts[bound] = snapshot[key]

    buckets, total = cumulative_buckets(counts)

    exposed = [(floatToGoString(bound), count) for bound, count in buckets]
    exposed.append(("+Inf", total))
    return HistogramMetricFamily(name, documentation, buckets=exposed, sum_value=0)
