import json
from dataclasses import dataclass

import pytest
import yaml

from nvmediscovery.printer import OutputFormat, format_value, print_value


@dataclass
class _Item:
    name: str
    port: int


def test_json_round_trip():
    value = {"name": "/tmp/file", "items": [1, 2]}
    assert json.loads(format_value(value, OutputFormat.JSON)) == value


def test_json_indent_and_newline():
    assert format_value({"name": "x"}, OutputFormat.JSON) == '{\n  "name": "x"\n}\n'


def test_yaml_round_trip_dataclass():
    text = format_value(_Item("a", 8009), OutputFormat.YAML)
    assert yaml.safe_load(text) == {"name": "a", "port": 8009}


def test_unknown_format_defaults_to_json():
    assert json.loads(format_value([_Item("a", 1)], "xml")) == [{"name": "a", "port": 1}]


def test_unserializable_raises():
    with pytest.raises(ValueError, match="failed marshal"):
        format_value({"x": object()}, OutputFormat.JSON)


def test_print_value(capsys):
    print_value({"name": "f"})
    assert json.loads(capsys.readouterr().out) == {"name": "f"}