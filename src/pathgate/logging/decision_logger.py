from __future__ import annotations

import json
import logging
import random
from typing import Any, Dict


class DecisionLogger:
    """Audit sink: one log record per gate decision on ``pathgate.audit``.

    - ``sample_rate`` in [0, 1] applies to accepted requests only when
      ``always_log_denied`` is set (the default); denials are always kept.
    - ``only_denied`` drops accepted requests entirely.
    - ``as_json`` emits JSON lines instead of ``key=value`` text.
    """

    def __init__(
        self,
        *,
        sample_rate: float = 1.0,
        level: int = logging.INFO,
        as_json: bool = False,
        only_denied: bool = False,
        always_log_denied: bool = True,
        logger_name: str = "pathgate.audit",
    ) -> None:
        self.sample_rate = max(0.0, min(1.0, float(sample_rate)))
        self.level = level
        self.as_json = as_json
        self.only_denied = only_denied
        self.always_log_denied = always_log_denied
        self.logger = logging.getLogger(logger_name)

    def _keep(self, allowed: bool) -> bool:
        if allowed and self.only_denied:
            return False
        if not allowed and self.always_log_denied:
            return True
        return random.random() < self.sample_rate

    def log(self, payload: Dict[str, Any]) -> None:
        allowed = bool(payload.get("allowed", False))
        if not self._keep(allowed):
            return
        if self.as_json:
            msg = json.dumps(payload, sort_keys=True, default=str)
        else:
            msg = "pathgate.decision " + " ".join(f"{k}={payload[k]}" for k in sorted(payload))
        self.logger.log(self.level, msg)
