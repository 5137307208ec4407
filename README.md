# nvmediscovery

Tools for an NVMe over Fabrics (TCP) discovery client. The package reads
discovery entry files, tracks the discovery-service connections they
describe, and manages the per-host entry files the client watches.

## Installation

```bash
pip install .
```

For running the tests:

```bash
pip install ".[test]"
pytest
```

## Command line

The package installs a `discovery-client` command with two subcommands.

Add a file of discovery entries for a host NQN:

```bash
discovery-client add-hostnqn --name my-volume \
    -a 192.168.1.1:8009 -a 192.168.1.2:8009 \
    -q nqn.2014-08.com.example:host:client-1 \
    -n nqn.2016-01.com.example:subsystem-1
```

`-a/--addresses` may be repeated or given as a comma separated list of
`<hostname|ip-address>:<port>` values. `-t/--transport` defaults to `tcp`.
The file is written atomically into the client configuration directory,
which is created if missing. Names starting with the reserved prefix
`tmp.dc.` are refused.

Remove such a file again:

```bash
discovery-client remove-hostnqn -n my-volume
```

Both commands print the path of the file they touched as JSON
(`{"name": "..."}`); `remove-hostnqn` prints nothing if the file does not
exist. On an error the message goes to standard error and the exit status
is 255.

### Configuration

`--config FILE` names a YAML configuration file. Without it,
`./etc/discovery-client/discovery-client.yaml` and then
`/etc/discovery-client/discovery-client.yaml` are tried, and `DC_`
environment variables (for example `DC_CLIENTCONFIGDIR`,
`DC_LOGGING_LEVEL`) override the file. Keys are case-insensitive. Notable
defaults:

| Key | Default |
| --- | --- |
| `clientConfigDir` | `/etc/discovery-client/discovery.d` |
| `internalDir` | `/etc/discovery-client/internal` |
| `logging.level` | `debug` |
| `kato` | `10` |
| `autoDetectEntries.filename` | `detected-io-controllers` |
| `autoDetectEntries.discoveryServicePort` | `8009` |

Loading fails with `ValueError` if `clientConfigDir` equals `internalDir`
or the logging level is not one of `debug`, `info`, `warn`, `warning`,
`error`, `fatal`. In code, use `nvmediscovery.config.load_app_config`.

## Entry file format

Each non-empty line in a file under the client configuration directory
describes one discovery service:

```
-t tcp -a 192.168.1.1 -s 8009 -q nqn.2014-08.com.example:host:client-1 -n subsysnqn1
```

Recognised flags are `-t/--transport` (only `tcp`), `-a/--traddr`,
`-s/--trsvcid`, `-q/--hostnqn`, `-n/--subsysnqn` and `-p/--persistent`;
`=` may separate a flag from its value. Text after `#` is a comment.
Lines missing a mandatory field are logged and skipped; a bad address,
port, transport or an unknown flag raises
`nvmediscovery.conf_parser.ParserError`. Duplicate lines are collapsed.

## Library use

```python
from nvmediscovery.conf_parser import parse
from nvmediscovery.hostapi import DiscoverRequest

for entry in parse("/etc/discovery-client/discovery.d/my-volume"):
    request = DiscoverRequest(
        transport=entry.transport,
        traddr=entry.traddr,
        trsvcid=entry.trsvcid,
        hostnqn=entry.hostnqn,
    )
    print(request.to_options())
```

Main modules:

- `nvmediscovery.conf_parser` — `parse`, `Entry`, `ParserError`, and
  `Referrals` for the `internal.json` cache format.
- `nvmediscovery.configgen` — `create_entries`, `create_file`,
  `store_entries`, `parse_address`, `should_generate_auto_detected_entries`
  and `detect_entries_by_io_controllers`, which builds entries from the
  NVMe/TCP I/O controllers listed under `/sys/class/nvme`.
- `nvmediscovery.watcher` — `FileWatcher`, reporting `Event`s of one
  directory through a queue.
- `nvmediscovery.cache` — `Cache(user_dir, internal_dir,
  auto_detect_entries=None)`. `run(sync)` starts watching the user
  directory (with `sync=True` it first loads either `internal.json` or the
  user files, whichever is newer); `next_change(timeout)` returns the next
  `ConnectionMap` of changed client/cluster pairs; `handle_referrals`
  adds and removes entries to match a discovery log page; `clear` and
  `stop` end its work. The cached entries are kept in `internal.json`.
- `nvmediscovery.connections` — `Connection`, `ConnectionMap`,
  `ClusterConnections`, `ClientClusterPair`, `TKey`, `ReferralKey`.
- `nvmediscovery.hostapi` — `DiscoverRequest`, `NvmeDiscPageEntry`,
  `AENEvent` and the abstract `HostAPI`.
- `nvmediscovery.metrics` — in-process gauges (`METRICS`).
- `nvmediscovery.logsetup`, `nvmediscovery.printer`,
  `nvmediscovery.ioctl`, `nvmediscovery.collections` — supporting helpers.

## What this package does not do

- It does not talk to NVMe devices or discovery controllers: `HostAPI`
  is an abstract interface with no implementation here, so nothing issues
  discover, connect or disconnect requests.
- There is no long-running service command; the command line has only
  `add-hostnqn` and `remove-hostnqn`.
- Metrics are kept in memory only and are not served over HTTP.