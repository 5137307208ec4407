import pytest

from nvmediscovery.metrics import METRICS, DiscoveryClientMetrics, Gauge, GaugeVec


def test_gauge_set_inc_dec():
    gauge = Gauge()
    gauge.set(5)
    gauge.inc()
    gauge.inc()
    gauge.dec()
    assert gauge.value == 6


def test_labels_returns_same_gauge_for_same_values():
    vec = GaugeVec("g", "help", ["a", "b"])
    first = vec.labels("x", "y")
    assert vec.labels("x", "y") is first
    assert vec.labels("x", "z") is not first


def test_labels_wrong_count_raises():
    vec = GaugeVec("g", "help", ["a", "b"])
    with pytest.raises(ValueError):
        vec.labels("only-one")


def test_collect_reports_values():
    vec = GaugeVec("g", "help", ["hostnqn"])
    vec.labels("h1").inc()
    vec.labels("h2").set(3)
    assert vec.collect() == {("h1",): 1.0, ("h2",): 3.0}


def test_labels_values_are_stringified():
    vec = GaugeVec("g", "help", ["port"])
    vec.labels(8009).set(1)
    assert vec.collect() == {("8009",): 1.0}


def test_discovery_metrics_families():
    metrics = DiscoveryClientMetrics()
    assert metrics.connections.name == "discovery_connections_total"
    assert metrics.connection_state.label_names == ("trtype", "traddr", "trsvcid", "nqn")
    assert metrics.discovery_log_page_count.label_names == ("hostnqn",)
    metrics.entries_total.labels().inc()
    assert metrics.entries_total.collect() == {(): 1.0}


def test_module_instance_is_shared():
    assert METRICS.entries_total.name == "discovery_entries_total"
    labels = ("tcp", "203.0.113.77", 4420, "nqn.test-shared-instance")
    gauge = METRICS.connection_state.labels(*labels)
    gauge.set(1)
    assert METRICS.connection_state.labels(*labels) is gauge
    collected = METRICS.connection_state.collect()
    assert collected[("tcp", "203.0.113.77", "4420", "nqn.test-shared-instance")] == 1.0