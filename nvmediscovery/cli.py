"""Command line interface of the discovery client."""

from __future__ import annotations

import argparse
import os
import shutil
import sys
from typing import Optional, Sequence

from .config import DISCOVERY_CLIENT_RESERVED_PREFIX, AppConfig, load_app_config
from .configgen import create_entries, create_file
from .printer import OutputFormat, print_value

EXIT_ERROR = 255


def add_hostnqn(
    config: AppConfig,
    name: Optional[str],
    addresses: Optional[Sequence[str]],
    hostnqn: Optional[str],
    nqn: Optional[str],
    transport: str = "tcp",
) -> str:
    """Write a configuration file for ``hostnqn`` and return its path."""
    if name is None:
        raise ValueError("name must be set")
    if addresses is None:
        raise ValueError("addresses(-a) must be set")
    if hostnqn is None:
        raise ValueError("hostnqn(-q) must be set")
    if nqn is None:
        raise ValueError("nqn(-n) must be set")

    os.makedirs(config.client_config_dir, exist_ok=True)
    if name.startswith(DISCOVERY_CLIENT_RESERVED_PREFIX):
        raise ValueError(f'name can\'t start with prefix: "{DISCOVERY_CLIENT_RESERVED_PREFIX}"')

    entries = create_entries(addresses, hostnqn, nqn, transport)
    filename = os.path.join(config.client_config_dir, name)
    create_file(filename, entries)
    print_value({"name": filename}, OutputFormat.JSON)
    return filename


def remove_hostnqn(config: AppConfig, name: Optional[str]) -> Optional[str]:
    """Delete the named configuration file; return its path, or None if absent."""
    if name is None:
        raise ValueError("name(-n) must be set")
    filename = os.path.join(config.client_config_dir, name)
    if not os.path.lexists(filename):
        return None
    if os.path.isdir(filename) and not os.path.islink(filename):
        shutil.rmtree(filename)
    else:
        os.remove(filename)
    print_value({"name": filename}, OutputFormat.JSON)
    return filename


def _split_addresses(values: Optional[list[str]]) -> Optional[list[str]]:
    if values is None:
        return None
    return [part for value in values for part in value.split(",") if part]


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="discovery-client", description="NVMe/TCP Discovery Client"
    )
    parser.add_argument(
        "--config",
        default="",
        help="config file (default is $HOME/.discovery-client/discovery-client.yaml)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    add = sub.add_parser("add-hostnqn", help="Add hostnqn")
    add.add_argument(
        "--name",
        default=None,
        help=f'name of the file to create. can\'t contain prefix: "{DISCOVERY_CLIENT_RESERVED_PREFIX}"',
    )
    add.add_argument(
        "-a",
        "--addresses",
        action="append",
        default=None,
        help="endpoints of discovery services. format: <hostname|ip-address>:<port>",
    )
    add.add_argument("-q", "--hostnqn", default=None, help="host nqn")
    add.add_argument("-n", "--nqn", default=None, help="subsystem nqn")
    add.add_argument("-t", "--transport", default="tcp", help="transport name - default to tcp")

    remove = sub.add_parser("remove-hostnqn", help="Remove hostnqn")
    remove.add_argument("-n", "--name", default=None, help="name of the file to delete")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the command line and return the process exit status."""
    args = _build_parser().parse_args(argv)
    try:
        config = load_app_config(args.config or None)
        if args.command == "add-hostnqn":
            add_hostnqn(
                config,
                args.name,
                _split_addresses(args.addresses),
                args.hostnqn,
                args.nqn,
                args.transport,
            )
        else:
            remove_hostnqn(config, args.name)
    except (ValueError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_ERROR
    return 0


if __name__ == "__main__":
    sys.exit(main())