import pytest

from pathgate import Gate, StaticRightsOracle


def test_prometheus_counts_decisions():
    prometheus_client = pytest.importorskip("prometheus_client")
    from pathgate.metrics.prometheus import PrometheusMetrics

    registry = prometheus_client.CollectorRegistry()
    gate = Gate.default(StaticRightsOracle(), metrics=PrometheusMetrics(registry=registry))
    gate.reject("/admin/x", None)
    gate.reject("/admin/y", None)
    gate.reject("/login", None)

    sample = registry.get_sample_value
    assert sample("pathgate_decisions_total", {"decision": "reject", "category": "admin"}) == 2.0
    assert sample("pathgate_decisions_total", {"decision": "accept", "category": "public"}) == 1.0
    assert sample("pathgate_decision_seconds_count") == 3.0


class _Instrument:
    def __init__(self):
        self.calls = []

    def add(self, amount, attributes=None):
        self.calls.append((amount, attributes))

    def record(self, value, attributes=None):
        self.calls.append((value, attributes))


class _Meter:
    def __init__(self):
        self.counter = _Instrument()
        self.hist = _Instrument()

    def create_counter(self, name, description=""):
        assert name == "pathgate_decisions_total"
        return self.counter

    def create_histogram(self, name, description="", unit=""):
        assert unit == "s"
        return self.hist


def test_otel_sink_with_injected_meter():
    from pathgate.metrics.otel import OpenTelemetryMetrics

    meter = _Meter()
    gate = Gate.default(StaticRightsOracle(user=True), metrics=OpenTelemetryMetrics(meter))
    gate.reject("/data/1", None)
    assert meter.counter.calls == [(1, {"decision": "accept", "category": "user"})]
    assert len(meter.hist.calls) == 1


def test_otel_sink_with_global_meter():
    pytest.importorskip("opentelemetry")
    from pathgate.metrics.otel import OpenTelemetryMetrics

    sink = OpenTelemetryMetrics()
    sink.inc("pathgate_decisions_total", {"decision": "accept", "category": "root"})
    sink.observe("pathgate_decision_seconds", 0.001)
