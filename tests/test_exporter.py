"""
Tests for the exporter's collection cycle.

Uses an in-memory stats source so every cycle sees exactly the snapshot
the test hands it.
"""

import threading
import time

import pytest
from prometheus_client import CollectorRegistry, generate_latest

from pdns_exporter.collector.base import StatsSource
from pdns_exporter.collector.exporter import PowerDNSExporter
from pdns_exporter.collector.histogram import RESPONSE_TIME_BUCKETS
from pdns_exporter.errors import ProtocolError, TransportError
from pdns_exporter.metrics import ServerInfo, StatEntry
from pdns_exporter.registry import select_registry

PREFIX = "powerdns_recursor_"


class StubSource(StatsSource):

    def __init__(self, stats=None, error=None, delay=0.0):
        self.stats = dict(stats or {})
        self.error = error
        self.delay = delay
        self.calls = 0
        self.active = 0
        self.max_active = 0
        self._guard = threading.Lock()

    def fetch_stats(self):
        with self._guard:
            self.calls += 1
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                time.sleep(self.delay)
            if self.error is not None:
                raise self.error
            return [StatEntry(name, value) for name, value in self.stats.items()]
        finally:
            with self._guard:
                self.active -= 1

    def fetch_server_info(self):
        return ServerInfo("Server", "localhost", "/servers/localhost", "recursor", "4.8.4")

    def name(self):
        return "stub"


def _full_stats(flavor="recursor"):
    registry = select_registry(flavor)
    stats = {}
    value = 1.0
    for gauge in registry.gauges:
        stats[gauge.key] = value
        value += 1
    for group in registry.counter_groups:
        for key in group.keys():
            stats[key] = value
            value += 1
    if registry.response_time_histogram:
        for key in RESPONSE_TIME_BUCKETS:
            stats.setdefault(key, value)
            value += 1
    return stats


def _values(families):
    return {
        (s.name, tuple(sorted(s.labels.items()))): s.value
        for family in families
        for s in family.samples
    }


def _sample(families, name, **labels):
    return _values(families).get((name, tuple(sorted(labels.items()))))


def _exporter(stats=None, flavor="recursor", **kwargs):
    source = StubSource(stats if stats is not None else _full_stats(flavor), **kwargs)
    return PowerDNSExporter(source, select_registry(flavor)), source


def test_successful_scrape_reports_up():
    exporter, _ = _exporter()
    families = exporter.collect()

    assert _sample(families, PREFIX + "up") == 1.0
    assert _sample(families, PREFIX + "exporter_total_scrapes_total") == 1.0
    assert _sample(families, PREFIX + "exporter_json_parse_failures_total") == 0.0


def test_publish_order():
    exporter, _ = _exporter()
    names = [f.name for f in exporter.collect()]

    registry = select_registry("recursor")
    expected = [PREFIX + "up", PREFIX + "exporter_total_scrapes", PREFIX + "exporter_json_parse_failures"]
    expected += [PREFIX + c.name[: -len("_total")] for c in registry.counter_groups]
    expected += [PREFIX + g.name for g in registry.gauges]
    expected.append(PREFIX + "response_time_seconds")
    assert names == expected


def test_counter_group_labels():
    stats = _full_stats()
    stats.update({"questions": 10, "tcp-questions": 2, "cache-hits": 8, "cache-misses": 1})
    exporter, _ = _exporter(stats)
    families = exporter.collect()

    assert _sample(families, PREFIX + "incoming_queries_total", net="udp") == 10
    assert _sample(families, PREFIX + "incoming_queries_total", net="tcp") == 2
    assert _sample(families, PREFIX + "cache_lookups_total", result="hit") == 8
    assert _sample(families, PREFIX + "cache_lookups_total", result="miss") == 1


def test_missing_label_key_is_skipped_and_counted():
    stats = _full_stats()
    stats.update({"cache-hits": 8})
    del stats["cache-misses"]
    exporter, _ = _exporter(stats)
    families = exporter.collect()

    assert _sample(families, PREFIX + "cache_lookups_total", result="hit") == 8
    assert _sample(families, PREFIX + "cache_lookups_total", result="miss") is None
    assert _sample(families, PREFIX + "exporter_json_parse_failures_total") == 1.0
    assert _sample(families, PREFIX + "up") == 1.0


@pytest.mark.parametrize("key", sorted(_full_stats()))
def test_dropping_one_key_only_touches_its_definitions(key):
    registry = select_registry("recursor")
    full = _values(_exporter()[0].collect())

    stats = _full_stats()
    del stats[key]
    exporter, _ = _exporter(stats)
    dropped = _values(exporter.collect())

    failures = (PREFIX + "exporter_json_parse_failures_total", ())
    assert dropped[failures] == registry.references(key)

    skip = {failures[0]}
    skip.update(exporter.gauges[g.id].name for g in registry.gauges if g.key == key)
    for sample, value in dropped.items():
        if sample[0] in skip:
            continue
        assert full[sample] == value, sample


def test_latency_converted_to_seconds():
    stats = _full_stats()
    stats["qa-latency"] = 5_000_000
    exporter, _ = _exporter(stats)

    assert _sample(exporter.collect(), PREFIX + "latency_average_seconds") == 5.0


def test_authoritative_latency_converted_to_seconds():
    stats = _full_stats("authoritative")
    stats["latency"] = 250
    exporter, _ = _exporter(stats, flavor="authoritative")

    families = exporter.collect()
    assert _sample(families, "powerdns_authoritative_latency_average_seconds") == 0.00025
    assert _sample(families, "powerdns_authoritative_qsize") == stats["qsize-q"]


def test_failed_scrape_keeps_previous_values():
    stats = _full_stats()
    exporter, source = _exporter(stats)
    exporter.collect()
    gauges_before = {i: g.value for i, g in exporter.gauges.items()}
    groups_before = {i: g.values() for i, g in exporter.counter_groups.items()}

    source.error = ProtocolError("Unauthorized", status_code=401)
    families = exporter.collect()

    assert [f.name for f in families] == [
        PREFIX + "up", PREFIX + "exporter_total_scrapes", PREFIX + "exporter_json_parse_failures",
    ]
    assert _sample(families, PREFIX + "up") == 0.0
    assert _sample(families, PREFIX + "exporter_total_scrapes_total") == 2.0
    assert _sample(families, PREFIX + "exporter_json_parse_failures_total") == 1.0
    assert {i: g.value for i, g in exporter.gauges.items()} == gauges_before
    assert {i: g.values() for i, g in exporter.counter_groups.items()} == groups_before


def test_recovers_after_transport_error():
    exporter, source = _exporter(error=TransportError("connection refused"))
    assert _sample(exporter.collect(), PREFIX + "up") == 0.0

    source.error = None
    families = exporter.collect()
    assert _sample(families, PREFIX + "up") == 1.0
    assert _sample(families, PREFIX + "exporter_total_scrapes_total") == 2.0


def test_repeated_cycles_are_not_additive():
    exporter, _ = _exporter()
    exporter.collect()
    first = {i: g.values() for i, g in exporter.counter_groups.items()}
    exporter.collect()
    second = {i: g.values() for i, g in exporter.counter_groups.items()}

    assert first == second
    assert first[1] == {"udp": _full_stats()["questions"], "tcp": _full_stats()["tcp-questions"]}


def test_reset_drops_labels_that_disappear():
    stats = _full_stats()
    exporter, source = _exporter(stats)
    exporter.collect()
    assert "miss" in exporter.counter_groups[3].values()

    del source.stats["cache-misses"]
    exporter.collect()
    assert "miss" not in exporter.counter_groups[3].values()


def test_missing_gauge_key_keeps_previous_value():
    stats = _full_stats()
    stats["cache-entries"] = 100
    exporter, source = _exporter(stats)
    exporter.collect()

    del source.stats["cache-entries"]
    families = exporter.collect()

    assert _sample(families, PREFIX + "cache_size") == 100
    assert _sample(families, PREFIX + "exporter_json_parse_failures_total") == 1.0


def test_histogram_published_for_recursor():
    stats = _full_stats()
    stats.update({"answers0-1": 1, "answers1-10": 10, "answers10-100": 100, "answers100-1000": 1000,
                  "answers-slow": 0})
    exporter, _ = _exporter(stats)
    families = exporter.collect()

    name = PREFIX + "response_time_seconds"
    assert _sample(families, name + "_bucket", le="0.001") == 1
    assert _sample(families, name + "_bucket", le="1.0") == 1111
    assert _sample(families, name + "_bucket", le="+Inf") == 1111
    assert _sample(families, name + "_count") == 1111
    assert _sample(families, name + "_sum") == 0


def test_missing_bucket_key_omits_histogram_only():
    stats = _full_stats()
    del stats["answers-slow"]
    exporter, _ = _exporter(stats)
    families = exporter.collect()
    names = [f.name for f in families]

    assert PREFIX + "response_time_seconds" not in names
    assert PREFIX + "answers_rtime" in names
    assert _sample(families, PREFIX + "exporter_json_parse_failures_total") == 1.0


def test_no_histogram_for_authoritative():
    exporter, _ = _exporter(flavor="authoritative")
    names = [f.name for f in exporter.collect()]
    assert not any("response_time" in n for n in names)


def test_empty_snapshot_skips_populate():
    exporter, _ = _exporter(stats={})
    families = exporter.collect()

    assert _sample(families, PREFIX + "up") == 1.0
    assert _sample(families, PREFIX + "exporter_json_parse_failures_total") == 0.0
    assert _sample(families, PREFIX + "incoming_queries_total", net="udp") is None
    assert PREFIX + "response_time_seconds" not in [f.name for f in families]


def test_unknown_flavor_exports_health_only():
    exporter, _ = _exporter(stats={"questions": 1}, flavor="bogus")
    families = exporter.collect()

    assert [f.name for f in families] == [
        "powerdns_bogus_up", "powerdns_bogus_exporter_total_scrapes",
        "powerdns_bogus_exporter_json_parse_failures",
    ]


def test_describe_does_not_scrape():
    exporter, source = _exporter()
    names = [f.name for f in exporter.describe()]

    assert source.calls == 0
    assert names[0] == PREFIX + "up"
    assert PREFIX + "response_time_seconds" in names
    assert PREFIX + "cache_size" in names


def test_registered_exposition():
    exporter, source = _exporter()
    registry = CollectorRegistry()
    registry.register(exporter)
    assert source.calls == 0

    text = generate_latest(registry).decode()
    assert "powerdns_recursor_up 1.0" in text
    assert 'powerdns_recursor_incoming_queries_total{net="udp"}' in text
    assert 'powerdns_recursor_response_time_seconds_bucket{le="+Inf"}' in text


def test_concurrent_collects_run_one_at_a_time():
    exporter, source = _exporter(delay=0.02)
    threads = [threading.Thread(target=exporter.collect) for _ in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert source.calls == 5
    assert source.max_active == 1
    assert exporter.total_scrapes.value == 5


def test_flavor_with_invalid_name_chars_is_sanitized():
    exporter, _ = _exporter(stats={"questions": 1}, flavor="dns-dist")
    families = exporter.collect()

    assert [f.name for f in families] == [
        "powerdns_dns_dist_up", "powerdns_dns_dist_exporter_total_scrapes",
        "powerdns_dns_dist_exporter_json_parse_failures",
    ]
    assert _sample(families, "powerdns_dns_dist_up") == 1.0
