"""Requests and results exchanged with an NVMe host discovery backend."""

from __future__ import annotations

import queue
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import NewType, Optional

DISCOVERY_SUBSYS_NAME = "nqn.2014-08.org.nvmexpress.discovery"

ConnectionID = NewType("ConnectionID", str)


@dataclass
class AENEvent:
    """An asynchronous event notification from a discovery controller."""

    aen_change: bool = False
    server_change: Optional[BaseException] = None


@dataclass
class DiscoverRequest:
    """Parameters of a discover call against a discovery controller."""

    transport: str = ""
    traddr: str = ""
    trsvcid: int = 0
    hostnqn: str = ""
    hostaddr: str = ""
    # keep alive timeout; 0 requests a non persistent connection
    kato: int = 0
    aen_queue: Optional["queue.Queue[AENEvent]"] = field(default=None, compare=False, repr=False)
    hostid: str = ""

    def to_options(self) -> str:
        """Return the comma delimited key=value option string for this request."""
        parts = [f"nqn={DISCOVERY_SUBSYS_NAME}"]
        if self.transport:
            parts.append(f"transport={self.transport}")
        if self.traddr:
            parts.append(f"traddr={self.traddr}")
        if self.trsvcid > 0:
            parts.append(f"trsvcid={self.trsvcid}")
        if self.hostnqn:
            parts.append(f"hostnqn={self.hostnqn}")
        if self.hostaddr:
            parts.append(f"host_traddr={self.hostaddr}")
        if self.kato > 0:
            parts.append(f"keep_alive_tmo={self.kato}")
        if self.hostid:
            parts.append(f"hostid={self.hostid}")
        return ",".join(parts)


@dataclass(frozen=True)
class NvmeDiscPageEntry:
    """One entry of a discovery log page."""

    port_id: int = 0
    cntl_id: int = 0
    trsvcid: int = 0
    subnqn: str = ""
    traddr: str = ""
    subtype: int = 0


class HostAPI(ABC):
    """Backend able to run discovery and tear down discovery connections."""

    @abstractmethod
    def discover(
        self, request: DiscoverRequest
    ) -> tuple[Optional[list[NvmeDiscPageEntry]], ConnectionID]:
        """Run discovery and return the log page entries and the connection id."""

    @abstractmethod
    def disconnect(self, connection_id: ConnectionID) -> None:
        """Close the discovery connection identified by ``connection_id``."""