"""
Metric tables per PowerDNS server flavor.

Each table maps raw statistic keys to exported metrics. Keys that are
missing at scrape time are counted as parse failures, so keep these in
line with what the daemon versions we support actually report.
"""

from __future__ import annotations

from typing import Dict

from pdns_exporter.metrics import CounterGroupDefinition, GaugeDefinition, Registry

NAMESPACE = "powerdns"


_RECURSOR = Registry(
    flavor="recursor",
    gauges=(
        GaugeDefinition(1, "latency_average_seconds",
                        "Question-to-answer latency average in seconds.", "qa-latency"),
        GaugeDefinition(2, "concurrent_queries", "Number of concurrent queries.", "concurrent-queries"),
        GaugeDefinition(3, "cache_size", "Number of entries in the cache.", "cache-entries"),
    ),
    counter_groups=(
        CounterGroupDefinition(
            1, "incoming_queries_total", "Total number of incoming queries by network.", "net",
            (("questions", "udp"), ("tcp-questions", "tcp")),
        ),
        CounterGroupDefinition(
            2, "outgoing_queries_total", "Total number of outgoing queries by network.", "net",
            (("all-outqueries", "udp"), ("tcp-outqueries", "tcp")),
        ),
        CounterGroupDefinition(
            3, "cache_lookups_total", "Total number of cache lookups by result.", "result",
            (("cache-hits", "hit"), ("cache-misses", "miss")),
        ),
        CounterGroupDefinition(
            4, "answers_rcodes_total", "Total number of answers by response code.", "rcode",
            (
                ("servfail-answers", "servfail"),
                ("nxdomain-answers", "nxdomain"),
                ("noerror-answers", "noerror"),
            ),
        ),
        CounterGroupDefinition(
            5, "answers_rtime_total", "Total number of answers by response time.", "responsetime",
            (
                ("answers0-1", "0-1ms"),
                ("answers1-10", "1-10ms"),
                ("answers10-100", "10-100ms"),
                ("answers100-1000", "100-1000ms"),
                ("answers-slow", ">1000ms"),
                ("packetcache-hits", "0ms"),
            ),
        ),
        CounterGroupDefinition(
            6, "exceptions_total", "Total number of exceptions by type.", "type",
            (
                ("resource-limits", "resource-limit"),
                ("over-capacity-drops", "over-capacity-drop"),
                ("unreachables", "ns-unreachable"),
                ("outgoing-timeouts", "outgoing-timeout"),
            ),
        ),
    ),
    response_time_histogram=True,
)


_AUTHORITATIVE = Registry(
    flavor="authoritative",
    gauges=(
        GaugeDefinition(1, "latency_average_seconds",
                        "Question-to-answer latency average in seconds.", "latency"),
        GaugeDefinition(2, "packet_cache_size", "Number of entries in the packet cache.", "packetcache-size"),
        GaugeDefinition(3, "signature_cache_size", "Number of entries in the signature cache.",
                        "signature-cache-size"),
        GaugeDefinition(4, "key_cache_size", "Number of entries in the key cache.", "key-cache-size"),
        GaugeDefinition(5, "metadata_cache_size", "Number of entries in the metadata cache.", "meta-cache-size"),
        GaugeDefinition(6, "qsize", "Number of packets waiting for database attention.", "qsize-q"),
    ),
    counter_groups=(
        CounterGroupDefinition(
            1, "queries_total", "Total number of queries by network.", "net",
            (("tcp-queries", "tcp"), ("udp-queries", "udp")),
        ),
        CounterGroupDefinition(
            2, "answers_total", "Total number of answers by network.", "net",
            (("tcp-answers", "tcp"), ("udp-answers", "udp")),
        ),
        CounterGroupDefinition(
            3, "recursive_queries_total", "Total number of recursive queries by status.", "status",
            (
                ("rd-queries", "requested"),
                ("recursing-questions", "processed"),
                ("recursing-answers", "answered"),
                ("recursion-unanswered", "unanswered"),
            ),
        ),
        CounterGroupDefinition(
            4, "update_queries_total", "Total number of DNS update queries by status.", "status",
            (
                ("dnsupdate-answers", "answered"),
                ("dnsupdate-changes", "applied"),
                ("dnsupdate-queries", "requested"),
                ("dnsupdate-refused", "refused"),
            ),
        ),
        CounterGroupDefinition(
            5, "packet_cache_lookups_total", "Total number of packet-cache lookups by result.", "result",
            (("packetcache-hit", "hit"), ("packetcache-miss", "miss")),
        ),
        CounterGroupDefinition(
            6, "query_cache_lookups_total", "Total number of query-cache lookups by result.", "result",
            (("query-cache-hit", "hit"), ("query-cache-miss", "miss")),
        ),
        CounterGroupDefinition(
            7, "exceptions_total", "Total number of exceptions by type.", "type",
            (
                ("servfail-packets", "servfail"),
                ("timedout-questions", "timeout"),
                ("udp-recvbuf-errors", "recvbuf-error"),
                ("udp-sndbuf-errors", "sndbuf-error"),
            ),
        ),
    ),
)


# dnsdist has its own stats layout; nothing mapped yet.
_DNSDIST = Registry(flavor="dnsdist")


REGISTRIES: Dict[str, Registry] = {
    r.flavor: r for r in (_RECURSOR, _AUTHORITATIVE, _DNSDIST)
}

SUPPORTED_FLAVORS = tuple(REGISTRIES)


def select_registry(flavor: str) -> Registry:
    """Tables for a server flavor. Unknown flavors get empty tables."""
    return REGISTRIES.get(flavor, Registry(flavor=flavor))
