from __future__ import annotations

from typing import Any, Dict, Optional

try:
    from opentelemetry.metrics import get_meter  # type: ignore
except Exception:  # pragma: no cover
    get_meter = None  # type: ignore


class OpenTelemetryMetrics:
    """OpenTelemetry-based metrics sink.

    Creates:
      - Counter: pathgate_decisions_total (attributes: decision, category)
      - Histogram: pathgate_decision_seconds (unit: s)
    """

    _counter: Optional[Any]
    _hist: Optional[Any]

    def __init__(self, meter: Any = None) -> None:
        self._counter = None
        self._hist = None

        if meter is None:
            if get_meter is None:  # pragma: no cover
                return
            meter = get_meter("pathgate.metrics")

        self._counter = meter.create_counter(
            name="pathgate_decisions_total",
            description="Total pathgate decisions by outcome and rule category.",
        )
        create_hist = getattr(meter, "create_histogram", None)
        if create_hist is not None:
            self._hist = create_hist(
                name="pathgate_decision_seconds",
                description="pathgate decision duration in seconds.",
                unit="s",
            )

    def inc(self, name: str, labels: Dict[str, str] | None = None) -> None:
        if self._counter is None:  # pragma: no cover
            return
        self._counter.add(1, dict(labels or {}))

    def observe(self, name: str, value: float, labels: Dict[str, str] | None = None) -> None:
        if self._hist is None:
            return
        self._hist.record(float(value), dict(labels or {}))
