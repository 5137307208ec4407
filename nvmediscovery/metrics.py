"""In-process gauges describing the discovery client's state."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field


class Gauge:
    """A single numeric value that can go up and down."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.value = 0.0

    def set(self, value: float) -> None:
        with self._lock:
            self.value = float(value)

    def inc(self) -> None:
        with self._lock:
            self.value += 1

    def dec(self) -> None:
        with self._lock:
            self.value -= 1


class GaugeVec:
    """A family of gauges keyed by label values."""

    def __init__(self, name: str, help: str, label_names: tuple[str, ...] | list[str]) -> None:
        self.name = name
        self.help = help
        self.label_names = tuple(label_names)
        self._gauges: dict[tuple[str, ...], Gauge] = {}
        self._lock = threading.Lock()

    def labels(self, *args: str) -> Gauge:
        """Return the gauge for the given label values, creating it if needed."""
        if len(args) != len(self.label_names):
            raise ValueError(
                f"{self.name}: expected {len(self.label_names)} label values, got {len(args)}"
            )
        key = tuple(str(arg) for arg in args)
        with self._lock:
            return self._gauges.setdefault(key, Gauge())

    def collect(self) -> dict[tuple[str, ...], float]:
        """Return the current value of every gauge, keyed by label values."""
        with self._lock:
            return {key: gauge.value for key, gauge in self._gauges.items()}


@dataclass
class DiscoveryClientMetrics:
    """The metrics the discovery client exposes."""

    connections: GaugeVec = field(
        default_factory=lambda: GaugeVec(
            "discovery_connections_total",
            "Number of connections to different discovery servers",
            ("trtype", "traddr", "trsvcid", "nqn", "hostnqn"),
        )
    )
    connection_state: GaugeVec = field(
        default_factory=lambda: GaugeVec(
            "discovery_connection_state",
            "Show if a connection to discovery service is working or not",
            ("trtype", "traddr", "trsvcid", "nqn"),
        )
    )
    discovery_log_page_count: GaugeVec = field(
        default_factory=lambda: GaugeVec(
            "discovery_log_page_count",
            "Number of discovery log pages for hostnqn",
            ("hostnqn",),
        )
    )
    entries_total: GaugeVec = field(
        default_factory=lambda: GaugeVec(
            "discovery_entries_total",
            "Number of entries we monitor",
            (),
        )
    )


METRICS = DiscoveryClientMetrics()