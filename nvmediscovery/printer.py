"""Rendering of command results as JSON or YAML."""

from __future__ import annotations

import dataclasses
import enum
import json
import sys
from typing import Any

import yaml


class OutputFormat(str, enum.Enum):
    JSON = "json"
    YAML = "yaml"


def _plain(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {k: _plain(v) for k, v in dataclasses.asdict(value).items()}
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, dict):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def format_value(value: Any, output_format: Any = OutputFormat.JSON) -> str:
    """Return ``value`` rendered in ``output_format``; unknown formats give JSON."""
    plain = _plain(value)
    try:
        if output_format == OutputFormat.YAML:
            return yaml.safe_dump(plain, default_flow_style=False, sort_keys=False)
        return json.dumps(plain, indent=2) + "\n"
    except (TypeError, ValueError, yaml.YAMLError) as exc:
        raise ValueError(f"failed marshal. error: {exc}") from exc


def print_value(value: Any, output_format: Any = OutputFormat.JSON) -> None:
    """Write ``value`` rendered in ``output_format`` to standard output."""
    sys.stdout.write(format_value(value, output_format))