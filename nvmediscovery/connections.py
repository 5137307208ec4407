"""Connections to discovery controllers, grouped by cluster and host."""

from __future__ import annotations

import logging
import queue
import random
import threading
from dataclasses import dataclass, field
from typing import Optional

from .hostapi import AENEvent, ConnectionID, DiscoverRequest
from .metrics import METRICS

_log = logging.getLogger("nvmediscovery")


@dataclass(frozen=True)
class ReferralKey:
    """Identifies a referral; carries the datapath subsystem and host nqn it applies to."""

    ip: str
    port: int
    dp_sub_nqn: str = ""
    hostnqn: str = ""


@dataclass(frozen=True)
class TKey:
    """Identifies one connection to a discovery controller."""

    transport: str
    ip: str
    port: int
    nqn: str
    hostnqn: str = ""


@dataclass(frozen=True)
class ClientClusterPair:
    """A subsystem nqn of a cluster together with the host nqn that uses it."""

    cluster_nqn: str = ""
    host_nqn: str = ""

    def is_empty(self) -> bool:
        return not self.cluster_nqn and not self.host_nqn


class Connection:
    """A (possibly not yet established) connection to a discovery controller."""

    def __init__(self, key: TKey, hostnqn: str = "") -> None:
        self.key = key
        self.hostnqn = hostnqn
        self.aen_queue: "queue.Queue[AENEvent]" = queue.Queue()
        self.connection_id = ConnectionID("")
        self.state = False
        self._stopped = threading.Event()
        self.set_state(False)

    @property
    def stopped(self) -> bool:
        """True once ``stop`` was called."""
        return self._stopped.is_set()

    def wait_stopped(self, timeout: Optional[float] = None) -> bool:
        """Block until the connection is stopped or ``timeout`` passes."""
        return self._stopped.wait(timeout)

    def stop(self) -> None:
        """Mark the connection as stopped."""
        self._stopped.set()

    def discovery_request(self, kato: int) -> DiscoverRequest:
        """Return the discover request used to reach this controller."""
        return DiscoverRequest(
            traddr=self.key.ip,
            transport=self.key.transport,
            trsvcid=self.key.port,
            hostnqn=self.hostnqn,
            kato=kato,
            aen_queue=self.aen_queue,
        )

    def set_state(self, new_state: bool) -> None:
        """Record whether the connection is established and update the metric."""
        changed = new_state != self.state
        self.state = new_state
        METRICS.connection_state.labels(
            self.key.transport, self.key.ip, str(self.key.port), self.key.nqn
        ).set(1 if new_state else 0)
        if changed:
            transition = (
                "not-connected ===> connected" if new_state else "connected ===> not-connected"
            )
            _log.debug("%s change state: %s", self, transition)

    def _same_as(self, other: "Connection") -> bool:
        return (
            self.key == other.key
            and self.hostnqn == other.hostnqn
            and self.connection_id == other.connection_id
            and self.state == other.state
        )

    def __str__(self) -> str:
        return (
            f"connection: {self.key.ip}:{self.key.port}, id: {self.connection_id}, "
            f"subsystem nqn: {self.key.nqn}, hostnqn: {self.hostnqn}"
        )


@dataclass
class ClusterConnections:
    """All connections of one client/cluster pair and the one currently in use."""

    connections: dict[TKey, Connection] = field(default_factory=dict)
    active_connection: Optional[Connection] = None

    def random_connection_list(self) -> list[Connection]:
        """Return the connections in random order, to spread clients over targets."""
        conns = list(self.connections.values())
        random.shuffle(conns)
        return conns

    def exists(self, conn: Connection) -> bool:
        """Return True if an equivalent connection is held."""
        return any(c is conn or c._same_as(conn) for c in self.connections.values())


class ConnectionMap(dict):
    """Maps each ClientClusterPair to its ClusterConnections."""

    def add_connection(self, key: TKey, conn: Connection) -> None:
        pair = ClientClusterPair(cluster_nqn=key.nqn, host_nqn=key.hostnqn)
        self.setdefault(pair, ClusterConnections()).connections[key] = conn

    def delete_connection(self, pair: ClientClusterPair, key: TKey) -> None:
        cluster = self.get(pair)
        if cluster is not None:
            cluster.connections.pop(key, None)