"""Parsing of discovery client configuration files and the referrals cache."""

from __future__ import annotations

import dataclasses
import ipaddress
import json
import logging
import os
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional

NVMF_DEF_DISC_TMO = 30
INTERNAL_JSON = "internal.json"

_log = logging.getLogger("nvmediscovery")

_SPLIT = re.compile(r"[\s=]+")
_INT = re.compile(r"[+-]?\d+")
_HOSTNAME_LABEL = re.compile(r"(?!-)[A-Za-z0-9-]{1,63}(?<!-)")


class ParserError(Exception):
    """A configuration file could not be parsed."""

    def __init__(self, msg: str, details: str = "", err: Optional[BaseException] = None):
        super().__init__(msg)
        self.msg = msg
        self.details = details
        self.err = err

    def __str__(self) -> str:
        return self.msg


@dataclass
class Entry:
    """A discovery service endpoint the client should connect to."""

    transport: str = ""
    trsvcid: int = 0
    traddr: str = ""
    hostnqn: str = ""
    subsysnqn: str = ""
    persistent: bool = False
    hostaddr: str = ""

    def compare(self, other: Optional["Entry"]) -> bool:
        """Return True if ``other`` matches on every field but ``hostaddr``."""
        if other is None:
            return False
        return (
            self.traddr == other.traddr
            and self.persistent == other.persistent
            and self.hostnqn == other.hostnqn
            and self.trsvcid == other.trsvcid
            and self.transport == other.transport
            and self.subsysnqn == other.subsysnqn
        )

    def verify(self) -> None:
        """Raise ValueError if a mandatory field is missing."""
        if not self.subsysnqn:
            raise ValueError("Subsysnqn is mandatory")
        if not self.traddr:
            raise ValueError("Traddr is mandatory")
        if self.trsvcid == 0:
            raise ValueError("Trsvcid is mandatory")
        if not self.transport:
            raise ValueError("Transport is mandatory")
        if not self.hostnqn:
            raise ValueError("Hostnqn is mandatory")

    def _to_json_dict(self) -> dict:
        return {
            "Transport": self.transport,
            "Trsvcid": self.trsvcid,
            "Traddr": self.traddr,
            "Hostnqn": self.hostnqn,
            "Subsysnqn": self.subsysnqn,
            "Persistent": self.persistent,
            "Hostaddr": self.hostaddr,
        }

    @classmethod
    def _from_json_dict(cls, data: dict) -> "Entry":
        return cls(
            transport=data.get("Transport", ""),
            trsvcid=int(data.get("Trsvcid", 0)),
            traddr=data.get("Traddr", ""),
            hostnqn=data.get("Hostnqn", ""),
            subsysnqn=data.get("Subsysnqn", ""),
            persistent=bool(data.get("Persistent", False)),
            hostaddr=data.get("Hostaddr", ""),
        )


def _parse_time(text: str) -> datetime:
    text = text.replace("Z", "+00:00")
    text = re.sub(r"(\.\d{6})\d+", r"\1", text)
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class Referrals:
    """The entries the client knows, with the time they were recorded."""

    entries: list[Entry] = field(default_factory=list)
    creation_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_json(self) -> str:
        data: dict = {}
        if self.entries:
            data["entries"] = [e._to_json_dict() for e in self.entries]
        data["creation_time"] = self.creation_time.isoformat()
        return json.dumps(data, indent="\t")

    @classmethod
    def from_json(cls, text: str) -> "Referrals":
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError("referrals must be a JSON object")
        return cls(
            entries=[Entry._from_json_dict(e) for e in data.get("entries") or []],
            creation_time=_parse_time(data.get("creation_time", "0001-01-01T00:00:00Z")),
        )


def entries_to_string(entries: Iterable[Entry]) -> str:
    """Render entries one per line, for diagnostics."""
    return "".join(f"{entry!r}\n" for entry in entries)


def _valid_traddr(value: str) -> bool:
    if not value:
        return False
    try:
        ipaddress.ip_address(value.strip("[]"))
        return True
    except ValueError:
        pass
    host = value[:-1] if value.endswith(".") else value
    if not host or len(host) > 253:
        return False
    return all(_HOSTNAME_LABEL.fullmatch(label) for label in host.split("."))


def _parse_line(line: str) -> Entry:
    entry = Entry()
    fields = iter(token for token in _SPLIT.split(line) if token)

    def value() -> str:
        return next(fields, "").strip()

    for flag in fields:
        if flag in ("-a", "--traddr"):
            addr = value()
            if not _valid_traddr(addr):
                raise ParserError("bad address", f"{addr} is not a valid hostname or IP address")
            entry.traddr = addr
        elif flag in ("-t", "--transport"):
            transport = value()
            if transport != "tcp":
                raise ParserError("bad transport", f"{transport} is not a valid transport")
            entry.transport = transport
        elif flag in ("-s", "--trsvcid"):
            port = value()
            if not _INT.fullmatch(port) or not -(2**31) <= int(port) < 2**31:
                raise ParserError("bad port", f"{port} is not a valid int")
            entry.trsvcid = int(port)
        elif flag in ("-q", "--hostnqn"):
            entry.hostnqn = value()
        elif flag in ("-n", "--subsysnqn"):
            entry.subsysnqn = value()
        elif flag in ("-p", "--persistent"):
            entry.persistent = True
        else:
            raise ParserError("unknown flag", f"{flag} is not a vaild flag")
    return entry


def parse(filename: str | os.PathLike) -> list[Entry]:
    """Parse a configuration file into unique, valid entries.

    Invalid lines are logged and skipped; malformed flags raise ParserError.
    """
    entries: list[Entry] = []
    with open(filename, encoding="utf-8") as handle:
        for raw in handle:
            line = raw.strip().split("#", 1)[0]
            if not line:
                continue
            entry = _parse_line(line)
            try:
                entry.verify()
            except ValueError as exc:
                _log.warning("entry: %s not valid. %s", line, exc)
                continue
            entries.append(entry)
    return remove_dup_entries(entries)


def remove_dup_entries(entries: Iterable[Entry]) -> list[Entry]:
    """Return copies of the distinct entries, in order of first appearance."""
    unique = dict.fromkeys(dataclasses.astuple(e) for e in entries)
    return [Entry(*values) for values in unique]


def last_update(path: str | os.PathLike) -> datetime:
    """Return the modification time of ``path`` as an aware UTC datetime."""
    return datetime.fromtimestamp(os.stat(path).st_mtime, tz=timezone.utc)