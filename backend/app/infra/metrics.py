"""Process-local counters for entry and insight activity."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import DefaultDict, Dict

from .logging import get_logger

logger = get_logger(__name__)


class MetricsClient:  # pragma: no cover - interface only
    """Counter/gauge interface used by services and routers."""

    def increment(self, metric: str, value: int = 1) -> None:
        raise NotImplementedError

    def gauge(self, metric: str, value: int) -> None:
        raise NotImplementedError


@dataclass
class InMemoryMetricsClient(MetricsClient):
    """Metrics sink kept in memory and mirrored to debug logs."""

    counters: DefaultDict[str, int] = field(default_factory=lambda: defaultdict(int))
    gauges: Dict[str, int] = field(default_factory=dict)

    def increment(self, metric: str, value: int = 1) -> None:
        self.counters[metric] += value
        logger.debug("metrics_increment", extra={"metric": metric, "value": value})

    def gauge(self, metric: str, value: int) -> None:
        self.gauges[metric] = value
        logger.debug("metrics_gauge", extra={"metric": metric, "value": value})

    def snapshot(self) -> dict[str, Dict[str, int]]:
        """Return a copy of every counter and gauge for health reporting."""

        return {"counters": dict(self.counters), "gauges": dict(self.gauges)}


_metrics_singleton: InMemoryMetricsClient | None = None


def get_metrics_client() -> InMemoryMetricsClient:
    """Return the shared metrics client."""

    global _metrics_singleton
    if _metrics_singleton is None:
        _metrics_singleton = InMemoryMetricsClient()
    return _metrics_singleton
