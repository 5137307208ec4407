"""Cache of discovery entries and the connections they require."""

from __future__ import annotations

import dataclasses
import logging
import os
import queue
import tempfile
import threading
from typing import Iterable, Mapping, Optional

from .config import DISCOVERY_CLIENT_RESERVED_PREFIX, AutoDetectEntries
from .conf_parser import INTERNAL_JSON, Entry, ParserError, Referrals, last_update, parse
from .configgen import (
    NVME_CTRL_PATH,
    detect_entries_by_io_controllers,
    should_generate_auto_detected_entries,
    store_entries,
)
from .connections import ClientClusterPair, Connection, ConnectionMap, ReferralKey, TKey
from .hostapi import NvmeDiscPageEntry
from .metrics import METRICS
from .watcher import Event, EventOp, FileWatcher

_log = logging.getLogger("nvmediscovery")

_POLL_INTERVAL = 0.1


def entry_from_referral(ref_key: ReferralKey, referral: NvmeDiscPageEntry) -> Entry:
    """Build the entry a referral log page entry stands for."""
    return Entry(
        transport="tcp",
        trsvcid=int(referral.trsvcid),
        traddr=referral.traddr,
        hostnqn=ref_key.hostnqn,
        subsysnqn=ref_key.dp_sub_nqn,
        persistent=True,
    )


class Cache:
    """Keeps the entries found in a user directory and referrals, with their connections.

    Changes to the set of connections are reported through ``next_change``.
    """

    def __init__(
        self,
        user_dir_path: str | os.PathLike,
        internal_dir_path: str | os.PathLike,
        auto_detect_entries: Optional[AutoDetectEntries] = None,
        *,
        nvme_ctrl_path: str = NVME_CTRL_PATH,
    ) -> None:
        self._user_dir = os.fspath(user_dir_path)
        self._internal_dir = os.fspath(internal_dir_path)
        self._auto_detect = auto_detect_entries
        self._nvme_ctrl_path = nvme_ctrl_path
        self._entries: list[Entry] = []
        self._connections = ConnectionMap()
        self._changes: "queue.Queue[ConnectionMap]" = queue.Queue()
        self._lock = threading.RLock()
        self._stopped = threading.Event()
        self._watcher = FileWatcher()
        self._thread: Optional[threading.Thread] = None

    @property
    def entries(self) -> list[Entry]:
        """A snapshot of the cached entries."""
        with self._lock:
            return list(self._entries)

    @property
    def connections(self) -> ConnectionMap:
        """The live map of connections per client/cluster pair."""
        return self._connections

    # lifecycle

    def run(self, sync: bool = False) -> None:
        """Start watching the user directory; with ``sync`` load existing state first."""
        if self._stopped.is_set():
            raise RuntimeError("cache is stopped")
        self._generate_auto_detected_entries()

        # Files added between the sync and the start of watching may be missed;
        # callers are expected not to change the directory during startup.
        if sync:
            self._sync()

        events = self._watcher.watch(self._user_dir)
        self._thread = threading.Thread(
            target=self._watch_loop, args=(events,), name="discovery-cache", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        """Stop watching for changes and stop every connection."""
        self._stopped.set()
        self._watcher.stop()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=5)
        with self._lock:
            for cluster in self._connections.values():
                for conn in cluster.connections.values():
                    conn.stop()

    def clear(self) -> None:
        """Forget every cached entry."""
        with self._lock:
            self._entries = []

    def next_change(self, timeout: Optional[float] = None) -> ConnectionMap:
        """Return the next set of changed client/cluster pairs; TimeoutError if none came."""
        try:
            return self._changes.get(timeout=timeout)
        except queue.Empty:
            raise TimeoutError("no connection change within the timeout") from None

    def __enter__(self) -> "Cache":
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()

    # startup

    def _generate_auto_detected_entries(self) -> None:
        auto = self._auto_detect
        if auto is None or not auto.enabled:
            return
        if not should_generate_auto_detected_entries(self._user_dir, self._internal_dir):
            return
        try:
            entries = detect_entries_by_io_controllers(
                self._nvme_ctrl_path, auto.discovery_service_port
            )
        except OSError as exc:
            _log.error("failed to detect entries from IO Controllers: %s", exc)
            raise
        try:
            store_entries(os.path.join(self._user_dir, auto.filename), entries)
        except OSError as exc:
            _log.error("failed to store entries: %s", exc)

    def _use_internal_json(self) -> tuple[bool, list[Entry]]:
        """Decide whether the internal json is newer than the user directory."""
        json_path = os.path.join(self._internal_dir, INTERNAL_JSON)
        if not os.path.exists(json_path):
            return False, []
        if os.path.isdir(json_path):
            _log.error("%s is a directory, expected a json file", json_path)
            return False, []
        try:
            with open(json_path, encoding="utf-8") as handle:
                content = handle.read()
        except OSError:
            content = ""
        if not content:
            _log.error("%s is unexpectedly an empty file", json_path)
            return False, []
        try:
            refs = Referrals.from_json(content)
        except (ValueError, TypeError, AttributeError) as exc:
            _log.error("Failed to unpack %s: %s", json_path, exc)
            raise ValueError(f"failed to unpack {json_path}: {exc}") from exc
        if not refs.entries:
            return False, []
        _log.debug("oldEntries = %s, oldTime = %s", refs.entries, refs.creation_time)
        try:
            last_user_update = last_update(self._user_dir)
        except OSError as exc:
            _log.error("Failed to get last update time of directory %s: %s", self._user_dir, exc)
            raise
        if last_user_update > refs.creation_time:
            _log.debug(
                "User directory %s updated after internal directory %s. Ignoring internal json",
                self._user_dir,
                self._internal_dir,
            )
            return False, refs.entries
        return True, refs.entries

    def _sync(self) -> None:
        """Load initial entries from the internal json or, if it is stale, the user files."""
        use_json, json_entries = self._use_internal_json()
        changed: list[ClientClusterPair] = []
        if use_json:
            for entry in json_entries:
                try:
                    entry.verify()
                except ValueError:
                    _log.error("Failed to form entry from json %r", entry)
                    raise
                try:
                    pair = self._add_entry(entry)
                except ValueError:
                    continue
                if not pair.is_empty():
                    changed.append(pair)
        else:
            with os.scandir(self._user_dir) as it:
                names = sorted(item.name for item in it if not item.is_dir())
            for name in names:
                _log.debug("Running sync with file %s", name)
                try:
                    changed.extend(self._file_added(os.path.join(self._user_dir, name)))
                except (OSError, ValueError, ParserError) as exc:
                    _log.error("failed to load %s: %s", name, exc)
            self._write_referrals_file()
        if changed:
            self._notify_change(changed)

    # watching

    def _watch_loop(self, events: "queue.Queue[Event]") -> None:
        while not self._stopped.is_set():
            try:
                event = events.get(timeout=_POLL_INTERVAL)
            except queue.Empty:
                continue
            self._handle_event(event)

    def _handle_event(self, event: Event) -> None:
        if os.path.basename(event.name).startswith(DISCOVERY_CLIENT_RESERVED_PREFIX):
            return
        if event.op in (EventOp.CREATE, EventOp.RENAME):
            try:
                pairs = self._file_added(event.name)
            except (OSError, ValueError, ParserError) as exc:
                _log.error("failed to handle file %s: %s", event.name, exc)
                pairs = []
            self._write_referrals_file()
            if pairs:
                self._notify_change(pairs)
        else:
            _log.warning("unhandled event for file: %r. op: %s", event.name, event.op.value)

    def _notify_change(self, pairs: Iterable[ClientClusterPair]) -> None:
        """Report the connections of the given pairs as changed."""
        changed = ConnectionMap()
        with self._lock:
            for pair in pairs:
                if pair.is_empty():
                    _log.warning("Got an empty client cluster pair with changed connections")
                    continue
                cluster = self._connections.get(pair)
                if cluster is None:
                    _log.warning("No connections found for changed pair %r", pair)
                    continue
                changed[pair] = cluster
        if changed:
            self._changes.put(changed)

    # entries

    def _file_added(self, filename: str) -> list[ClientClusterPair]:
        """Add the entries of a user file; return the pairs that gained connections."""
        _log.debug("Dealing with added file %s", filename)
        new_entries = parse(filename)
        pairs: dict[ClientClusterPair, None] = {}
        for entry in new_entries:
            entry.persistent = True
            pair = self._add_entry(entry)
            if not pair.is_empty():
                pairs[pair] = None
        return list(pairs)

    def _add_entry(self, new_entry: Entry) -> ClientClusterPair:
        """Cache ``new_entry`` and create its connection; empty pair if already known."""
        with self._lock:
            if new_entry in self._entries:
                _log.debug("entry %r already found in cache - no need to add", new_entry)
                return ClientClusterPair()
            self._entries.append(new_entry)
            METRICS.entries_total.labels().inc()

            key = TKey(
                transport=new_entry.transport,
                ip=new_entry.traddr,
                port=new_entry.trsvcid,
                nqn=new_entry.subsysnqn,
                hostnqn=new_entry.hostnqn,
            )
            pair = ClientClusterPair(cluster_nqn=new_entry.subsysnqn, host_nqn=new_entry.hostnqn)
            cluster = self._connections.get(pair)
            conn = cluster.connections.get(key) if cluster is not None else None
            if conn is None:
                conn = Connection(key, hostnqn=new_entry.hostnqn)
                self._connections.add_connection(key, conn)
                METRICS.connections.labels(
                    key.transport, key.ip, str(key.port), key.nqn, conn.hostnqn
                ).inc()
                _log.debug("Added %s to cache connections", conn)
                return pair
        message = f"Entry {new_entry!r} not cached, though {conn} is in cache"
        _log.error("Mismatch between cache entries and cache connections: %s", message)
        raise ValueError(message)

    def _delete_entry(self, entry: Entry) -> ClientClusterPair:
        """Remove exactly ``entry`` (by identity) and its connection."""
        with self._lock:
            for position, cached in enumerate(self._entries):
                if cached is entry:
                    del self._entries[position]
                    METRICS.entries_total.labels().dec()
                    break
            else:
                raise ValueError("Entry to remove was not found in cache")
            pair = ClientClusterPair(cluster_nqn=entry.subsysnqn, host_nqn=entry.hostnqn)
            key = TKey(
                transport=entry.transport,
                ip=entry.traddr,
                port=entry.trsvcid,
                nqn=entry.subsysnqn,
                hostnqn=entry.hostnqn,
            )
            cluster = self._connections.get(pair)
            if cluster is not None and key in cluster.connections:
                _log.debug("Deleting %s from cache connections", cluster.connections[key])
                self._connections.delete_connection(pair, key)
            else:
                _log.warning("Failed to find a cache connection corresponding to deleted entry")
            return pair

    # referrals

    def handle_referrals(self, referrals: Mapping[ReferralKey, NvmeDiscPageEntry]) -> None:
        """Bring the cache in line with a discovery controller's referrals."""
        if not referrals:
            raise ValueError(
                "Handle referrals got empty referrals map. This should never happen"
            )
        _log.debug("Handling %d referrals", len(referrals))
        new_pairs = self._add_connections_from_referrals(referrals)
        error: Optional[ValueError] = None
        try:
            removed_pairs = self._remove_connections_not_in_referrals(referrals)
        except ValueError as exc:
            _log.error("Failed to remove connections following referrals: %s", exc)
            error = exc
            removed_pairs = []
        changed = new_pairs + removed_pairs
        if changed:
            self._write_referrals_file()
            self._notify_change(changed)
        if error is not None:
            raise error

    def _add_connections_from_referrals(
        self, referrals: Mapping[ReferralKey, NvmeDiscPageEntry]
    ) -> list[ClientClusterPair]:
        pairs = []
        for ref_key, referral in referrals.items():
            new_entry = entry_from_referral(ref_key, referral)
            try:
                pair = self._add_entry(new_entry)
            except ValueError as exc:
                _log.error("Failed to add entry %r: %s", new_entry, exc)
                continue
            if not pair.is_empty():
                pairs.append(pair)
        _log.debug("%d new connections added from referrals", len(pairs))
        return pairs

    def _remove_connections_not_in_referrals(
        self, referrals: Mapping[ReferralKey, NvmeDiscPageEntry]
    ) -> list[ClientClusterPair]:
        referral_entries = []
        previous = current = ClientClusterPair()
        for ref_key, referral in referrals.items():
            referral_entries.append(entry_from_referral(ref_key, referral))
            current = ClientClusterPair(cluster_nqn=ref_key.dp_sub_nqn, host_nqn=ref_key.hostnqn)
            # all referrals come from one discovery of one connection
            if not previous.is_empty() and previous != current:
                raise ValueError(
                    f"found different client cluster pair in referrals: {previous!r} and {current!r}"
                )
            previous = current
        with self._lock:
            to_remove = [
                cached
                for cached in self._entries
                if cached not in referral_entries
                and cached.hostnqn == current.host_nqn
                and cached.subsysnqn == current.cluster_nqn
            ]
            if not to_remove:
                _log.debug("No entries removal is required due to referrals")
                return []
            pairs = []
            for cached in to_remove:
                try:
                    pair = self._delete_entry(cached)
                except ValueError as exc:
                    _log.error("Failed to remove entry %r: %s", cached, exc)
                    continue
                if not pair.is_empty():
                    pairs.append(pair)
            return pairs

    # persistence

    def _write_referrals_file(self) -> bool:
        """Atomically record the cached entries in the internal json file."""
        with self._lock:
            entries = [dataclasses.replace(entry) for entry in self._entries]
        content = Referrals(entries=entries).to_json()
        try:
            fd, tmp_name = tempfile.mkstemp(prefix="tmp_internal.json", dir=self._internal_dir)
        except OSError as exc:
            _log.error("Failed to create temp file: %s", exc)
            return False
        target = os.path.join(self._internal_dir, INTERNAL_JSON)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(content)
            os.chmod(tmp_name, 0o644)
            os.replace(tmp_name, target)
        except OSError as exc:
            _log.error("Failed to write referral file %s: %s", target, exc)
            return False
        finally:
            if os.path.exists(tmp_name):
                os.remove(tmp_name)
        return True