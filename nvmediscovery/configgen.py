"""Generation of discovery client configuration files and auto-detected entries."""

from __future__ import annotations

import glob
import logging
import os
import re
import tempfile
from typing import Iterable, Sequence

from .conf_parser import _valid_traddr
from .config import DISCOVERY_CLIENT_RESERVED_PREFIX
from .ctrl_entry import ControllerEntry, entries_to_string

NVME_CTRL_PATH = os.path.join("/sys/class/nvme", "nvme[0-9]")

_ADDRESS = re.compile(r"^traddr=(?P<traddr>[^,]+),trsvcid=(?P<trsvcid>\d+)$")
_PORT = re.compile(r"\d+", re.ASCII)

_log = logging.getLogger("nvmediscovery")


def _split_host_port(address: str) -> tuple[str, str]:
    """Split ``host:port`` or ``[host]:port`` into its two parts."""
    if address.startswith("["):
        end = address.find("]")
        if end < 0:
            raise ValueError(f"address {address}: missing ']' in address")
        host = address[1:end]
        rest = address[end + 1:]
        if not rest:
            raise ValueError(f"address {address}: missing port in address")
        if not rest.startswith(":"):
            raise ValueError(f"address {address}: unexpected characters after ']'")
        port = rest[1:]
        if ":" in port:
            raise ValueError(f"address {address}: too many colons in address")
    else:
        host, sep, port = address.rpartition(":")
        if not sep:
            raise ValueError(f"address {address}: missing port in address")
        if ":" in host:
            raise ValueError(f"address {address}: too many colons in address")
    if "[" in host or "]" in host:
        raise ValueError(f"address {address}: unexpected bracket in address")
    return host, port


def create_entries(
    addresses: Iterable[str], hostnqn: str, nqn: str, transport: str
) -> list[ControllerEntry]:
    """Build one entry per ``host:port`` address; raise ValueError on a bad address."""
    entries = []
    for address in addresses:
        host, port = _split_host_port(address)
        if not _valid_traddr(host):
            raise ValueError(f"{host} is not a valid hostname or IP address")
        if not _PORT.fullmatch(port) or int(port) > 0xFFFF:
            raise ValueError(f"invalid port {port!r} in address {address}")
        entries.append(
            ControllerEntry(
                transport=transport,
                traddr=host,
                trsvcid=int(port),
                hostnqn=hostnqn,
                nqn=nqn,
            )
        )
    return entries


def create_file(filename: str | os.PathLike, entries: Iterable[ControllerEntry]) -> None:
    """Atomically write ``entries`` to ``filename`` via a reserved-prefix temp file."""
    folder = os.path.dirname(os.fspath(filename)) or "."
    content = entries_to_string(entries)
    with tempfile.NamedTemporaryFile(
        "w", dir=folder, prefix=DISCOVERY_CLIENT_RESERVED_PREFIX, delete=False, encoding="utf-8"
    ) as handle:
        tmp_name = handle.name
        try:
            handle.write(content)
        except BaseException:
            handle.close()
            os.remove(tmp_name)
            raise
    try:
        os.replace(tmp_name, filename)
    finally:
        if os.path.exists(tmp_name):
            os.remove(tmp_name)


def _is_directory_empty(name: str | os.PathLike) -> bool:
    """Return True if ``name`` is an empty directory; raise OSError if unreadable."""
    with os.scandir(name) as it:
        return next(it, None) is None


def should_generate_auto_detected_entries(
    client_config_dir: str | os.PathLike, internal_dir: str | os.PathLike
) -> bool:
    """Return True only when neither directory holds anything (or cannot be read)."""

    def empty_or_missing(path: str | os.PathLike) -> bool:
        try:
            return _is_directory_empty(path)
        except OSError:
            return True

    return empty_or_missing(client_config_dir) and empty_or_missing(internal_dir)


def store_entries(filename: str | os.PathLike, entries: Iterable[ControllerEntry]) -> None:
    """Write ``entries`` to ``filename``; raise OSError on failure."""
    try:
        create_file(filename, entries)
    except OSError as exc:
        raise OSError(f"failed to write to file. error: {exc}") from exc


def _value_from_file(filename: str) -> str:
    with open(filename, encoding="utf-8") as handle:
        return handle.read().strip()


def parse_address(address: str) -> tuple[str, str]:
    """Split a ``traddr=X,trsvcid=N`` controller address; raise ValueError if malformed."""
    match = _ADDRESS.match(address)
    if match is None:
        raise ValueError(f"failed extracting traddr from address: {address!r}")
    return match.group("traddr"), match.group("trsvcid")


def detect_entries_by_io_controllers(
    nvme_ctrl_path: str, discovery_service_port: int
) -> list[ControllerEntry]:
    """Derive discovery entries from connected NVMe/TCP IO controllers in sysfs."""
    all_entries: list[ControllerEntry] = []
    for device in sorted(glob.glob(nvme_ctrl_path)):
        try:
            subsys_nqn = _value_from_file(os.path.join(device, "subsysnqn"))
        except OSError:
            continue
        if "com.lightbitslabs" not in subsys_nqn:
            continue
        try:
            transport = _value_from_file(os.path.join(device, "transport"))
        except OSError:
            continue
        if transport != "tcp":
            _log.warning("transport is not of type tcp: %r", transport)
            continue
        try:
            host_nqn = _value_from_file(os.path.join(device, "hostnqn"))
        except OSError as exc:
            _log.warning("failed to read hostnqn: %s", exc)
            continue
        try:
            address = _value_from_file(os.path.join(device, "address"))
        except OSError as exc:
            _log.warning("failed to read address: %s", exc)
            continue
        try:
            traddr, _ = parse_address(address)
        except ValueError as exc:
            _log.warning("failed to parse address: %s", exc)
            continue
        endpoint = f"{traddr}:{discovery_service_port}"
        try:
            entries = create_entries([endpoint], host_nqn, subsys_nqn, transport)
        except ValueError as exc:
            _log.warning("failed to create entries: %s", exc)
            continue
        all_entries.extend(entries)
    return all_entries