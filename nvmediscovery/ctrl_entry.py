"""Controller entries as written to discovery client configuration files."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable


@dataclass
class ControllerEntry:
    """One discovery service endpoint line of a configuration file."""

    transport: str
    traddr: str
    trsvcid: int
    hostnqn: str
    nqn: str

    def __str__(self) -> str:
        return (
            f"-t {self.transport} -a {self.traddr} -s {self.trsvcid} "
            f"-q {self.hostnqn} -n {self.nqn}\n"
        )


def entries_to_string(entries: Iterable[ControllerEntry]) -> str:
    """Render entries as configuration file content, one entry per block."""
    return "".join(f"{entry}\n" for entry in entries)