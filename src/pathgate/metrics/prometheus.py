from __future__ import annotations

from typing import Any, Dict, Optional

try:
    from prometheus_client import Counter, Histogram  # type: ignore
except Exception:  # pragma: no cover
    Counter = Histogram = None  # type: ignore


class PrometheusMetrics:
    """Prometheus-based metrics sink.

    Exposes:
      - pathgate_decisions_total{decision="accept|reject", category="..."}
      - pathgate_decision_seconds (Histogram)
    """

    _counter: Optional[Any]
    _hist: Optional[Any]

    def __init__(self, *, registry: Any = None) -> None:
        self._counter = None
        self._hist = None

        if Counter is None or Histogram is None:  # pragma: no cover
            return

        kwargs: Dict[str, Any] = {}
        if registry is not None:
            kwargs["registry"] = registry
        self._counter = Counter(
            "pathgate_decisions_total",
            "Total pathgate decisions by outcome and rule category.",
            labelnames=("decision", "category"),
            **kwargs,
        )
        self._hist = Histogram(
            "pathgate_decision_seconds",
            "pathgate decision duration in seconds.",
            **kwargs,
        )

    def inc(self, name: str, labels: Dict[str, str] | None = None) -> None:
        """Increment the decisions counter; *name* is ignored."""
        if self._counter is None:  # pragma: no cover
            return
        labels = labels or {}
        self._counter.labels(
            decision=labels.get("decision", "unknown"),
            category=labels.get("category", "unknown"),
        ).inc()

    def observe(self, name: str, value: float, labels: Dict[str, str] | None = None) -> None:
        if self._hist is None:  # pragma: no cover
            return
        self._hist.observe(float(value))
