"""Application configuration of the discovery client."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from .logsetup import LoggingConfig

DISCOVERY_CLIENT_RESERVED_PREFIX = "tmp.dc."

CONFIG_SEARCH_PATHS = (
    Path("./etc/discovery-client/discovery-client.yaml"),
    Path("/etc/discovery-client/discovery-client.yaml"),
)

ENV_PREFIX = "DC"

DEFAULTS: dict[str, Any] = {
    "logging.filename": "",
    "logging.maxage": "96h",
    "logging.maxsize": 100,
    "logging.reportcaller": True,
    "logging.level": "debug",
    "debug.endpoint": "0.0.0.0:6060",
    "debug.enablepprof": True,
    "debug.metrics": True,
    "clientconfigdir": "/etc/discovery-client/discovery.d",
    "internaldir": "/etc/discovery-client/internal",
    "nvmehostidpath": "/etc/nvme/hostid",
    "pollinginterval": "5s",
    "maxioqueues": 0,
    "kato": 10,
    "autodetectentries.enabled": True,
    "autodetectentries.filename": "detected-io-controllers",
    "autodetectentries.discoveryserviceport": 8009,
}

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9, "us": 1e-6, "µs": 1e-6, "ms": 1e-3, "s": 1.0, "m": 60.0, "h": 3600.0,
}


def _parse_duration(value: Any) -> float:
    """Return a duration in seconds from a number or a string such as ``1h30m``."""
    if isinstance(value, bool):
        raise ValueError(f"not a duration: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip()
    if text in ("", "0"):
        return 0.0
    sign = -1.0 if text.startswith("-") else 1.0
    body = text.lstrip("+-")
    parts = _DURATION_PART.findall(body)
    if not parts or "".join(n + u for n, u in parts) != body:
        raise ValueError(f"not a duration: {value!r}")
    return sign * sum(float(n) * _DURATION_UNITS[u] for n, u in parts)


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "t", "true", "yes", "on")
    return bool(value)


def _lower_keys(data: Mapping[str, Any]) -> dict[str, Any]:
    return {str(k).lower(): v for k, v in data.items()}


@dataclass
class DebugInfo:
    endpoint: str = ""
    enablepprof: bool = False
    metrics: bool = False


@dataclass
class AutoDetectEntries:
    enabled: bool = False
    filename: str = ""
    discovery_service_port: int = 0


@dataclass
class AppConfig:
    """Everything the discovery client service is configured with."""

    cores: list[int] = field(default_factory=list)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    client_config_dir: str = ""
    debug: DebugInfo = field(default_factory=DebugInfo)
    reconnect_interval: float = 0.0
    internal_dir: str = ""
    log_page_pagination_enabled: bool = False
    max_io_queues: int = 0
    auto_detect_entries: AutoDetectEntries = field(default_factory=AutoDetectEntries)
    nvme_host_id_path: str = ""
    kato: int = 0

    def verify(self) -> None:
        """Raise ValueError if the configuration is inconsistent."""
        if self.client_config_dir == self.internal_dir:
            raise ValueError(
                f'Internal dir identical to ClientConfigDir: "{self.client_config_dir}"'
            )
        self.logging.is_valid()

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "AppConfig":
        """Build a configuration from a nested mapping with case-insensitive keys."""
        top = _lower_keys(data)
        log = _lower_keys(top.get("logging") or {})
        dbg = _lower_keys(top.get("debug") or {})
        auto = _lower_keys(top.get("autodetectentries") or {})
        return cls(
            cores=[int(c) for c in (top.get("cores") or [])],
            logging=LoggingConfig(
                filename=str(log.get("filename", "") or ""),
                max_age=_parse_duration(log.get("maxage", 0)),
                max_size=int(log.get("maxsize", 0) or 0),
                report_caller=_to_bool(log.get("reportcaller", False)),
                level=str(log.get("level", "") or ""),
            ),
            client_config_dir=str(top.get("clientconfigdir", "") or ""),
            debug=DebugInfo(
                endpoint=str(dbg.get("endpoint", "") or ""),
                enablepprof=_to_bool(dbg.get("enablepprof", False)),
                metrics=_to_bool(dbg.get("metrics", False)),
            ),
            reconnect_interval=_parse_duration(top.get("reconnectinterval", 0)),
            internal_dir=str(top.get("internaldir", "") or ""),
            log_page_pagination_enabled=_to_bool(top.get("logpagepaginationenabled", False)),
            max_io_queues=int(top.get("maxioqueues", 0) or 0),
            auto_detect_entries=AutoDetectEntries(
                enabled=_to_bool(auto.get("enabled", False)),
                filename=str(auto.get("filename", "") or ""),
                discovery_service_port=int(auto.get("discoveryserviceport", 0) or 0),
            ),
            nvme_host_id_path=str(top.get("nvmehostidpath", "") or ""),
            kato=int(top.get("kato", 0) or 0),
        )


def _set_dotted(target: dict[str, Any], key: str, value: Any) -> None:
    *parents, last = key.lower().split(".")
    node = target
    for part in parents:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[last] = value


def _normalize(data: Mapping[str, Any]) -> dict[str, Any]:
    return {
        str(k).lower(): _normalize(v) if isinstance(v, Mapping) else v
        for k, v in data.items()
    }


def load_app_config(
    config_file: Optional[str] = None, overrides: Optional[Mapping[str, Any]] = None
) -> AppConfig:
    """Load the configuration from defaults, a YAML file, DC_ variables and overrides."""
    merged: dict[str, Any] = {}
    for key, value in DEFAULTS.items():
        _set_dotted(merged, key, value)

    candidates = [Path(config_file)] if config_file else list(CONFIG_SEARCH_PATHS)
    for candidate in candidates:
        if candidate.is_file():
            loaded = yaml.safe_load(candidate.read_text()) or {}
            if not isinstance(loaded, Mapping):
                raise ValueError(f"{candidate}: configuration must be a mapping")
            _merge(merged, _normalize(loaded))
            break

    if not config_file:
        for key in DEFAULTS:
            env_name = f"{ENV_PREFIX}_{key.replace('.', '_').upper()}"
            if env_name in os.environ:
                _set_dotted(merged, key, os.environ[env_name])

    for key, value in (overrides or {}).items():
        _set_dotted(merged, key, value)

    config = AppConfig.from_mapping(merged)
    config.verify()
    return config


def _merge(target: dict[str, Any], source: Mapping[str, Any]) -> None:
    for key, value in source.items():
        if isinstance(value, Mapping) and isinstance(target.get(key), dict):
            _merge(target[key], value)
        else:
            target[key] = value