"""Prometheus gauges for transceiver channel statistics."""

import logging
from typing import Any, Dict, Iterable, Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram

logger = logging.getLogger(__name__)

MEASUREMENTS = {
    "input-power": "Input Power",
    "laser-bias-current": "Laser Bias Current",
    "output-power": "Output Power",
}

# Statistic leaf -> (help suffix, parsed as integer)
STATISTICS = {
    "avg": ("Average", False),
    "instant": ("Instant", False),
    "interval": ("Interval", True),
    "max": ("Max", False),
    "max-time": ("Max Time", True),
    "min": ("Min", False),
    "min-time": ("Min Time", True),
}

REQUEST_LABELS = ["endpoint", "method", "status"]


def metric_name(measurement: str, statistic: str) -> str:
    return f"{measurement}_{statistic}".replace("-", "_")


def parse_number(value: Any, integer: bool = False) -> Optional[float]:
    """Parse a decoded string leaf. Returns None if it is not a number."""
    if not isinstance(value, str):
        return None
    try:
        return float(int(value)) if integer else float(value)
    except ValueError:
        logger.warning(f"Ignoring non-numeric value {value!r}")
        return None


class OpticMetrics:
    """Channel statistics gauges, one per measurement/statistic pair."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry if registry is not None else CollectorRegistry()
        self.gauges: Dict[str, Gauge] = {}

        for measurement, title in MEASUREMENTS.items():
            for statistic, (suffix, _) in STATISTICS.items():
                name = metric_name(measurement, statistic)
                self.gauges[name] = Gauge(
                    name,
                    f"{title} {suffix}",
                    [name],
                    registry=self.registry,
                )

    def update(self, components: Iterable[Dict[str, Any]], host: str) -> int:
        """Set gauges from extracted components.

        Returns:
            Number of samples set.
        """
        updated = 0
        for component in components:
            if component.get("present-state") != "PRESENT":
                continue
            label = f"{component.get('name')} : {host}"

            for channel in component.get("channel", []):
                for measurement in MEASUREMENTS:
                    stats = channel.get(measurement)
                    if not isinstance(stats, dict):
                        continue
                    for statistic, (_, integer) in STATISTICS.items():
                        number = parse_number(stats.get(statistic), integer)
                        if number is None:
                            continue
                        self.gauges[metric_name(measurement, statistic)].labels(label).set(number)
                        updated += 1

        logger.debug(f"Updated {updated} optic samples for {host}")
        return updated


class RequestMetrics:
    """HTTP request count and latency per endpoint, method and status."""

    def __init__(self, registry: CollectorRegistry, namespace: str = "api"):
        self.requests = Counter(
            "http_requests",
            "Total number of HTTP requests",
            REQUEST_LABELS,
            namespace=namespace,
            registry=registry,
        )
        self.duration = Histogram(
            "http_requests_duration_seconds",
            "HTTP request duration in seconds for all requests",
            REQUEST_LABELS,
            namespace=namespace,
            registry=registry,
        )

    def observe(self, endpoint: str, method: str, status: int, seconds: float) -> None:
        labels = (endpoint, method, str(status))
        self.requests.labels(*labels).inc()
        self.duration.labels(*labels).observe(seconds)
