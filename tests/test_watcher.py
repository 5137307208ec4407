import os
import queue
import time

import pytest

from nvmediscovery.conf_parser import Entry, parse
from nvmediscovery.watcher import Event, EventOp, FileWatcher

HOSTNQN = "nqn.2014-08.com.example:nvme:nvm-subsystem-sn-d78431"


def _wait_for(events, predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while True:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return None
        try:
            event = events.get(timeout=remaining)
        except queue.Empty:
            return None
        if predicate(event):
            return event


def test_watch_created_file_is_parsed(tmp_path):
    content = (
        f"\n-t tcp -a 192.168.1.1 -s 8009 -q {HOSTNQN} -n subsysnqn1\n"
        f"-t tcp -a 192.168.1.2 -s 8009 -q {HOSTNQN} -n subsysnqn1\n"
        f"-t tcp -a 192.168.1.3 -s 8009 -q {HOSTNQN} -n subsysnqn1"
    )
    expected = [
        Entry(traddr=f"192.168.1.{i}", trsvcid=8009, transport="tcp", hostnqn=HOSTNQN,
              persistent=False, subsysnqn="subsysnqn1")
        for i in (1, 2, 3)
    ]
    target = tmp_path / "vol1.conf"
    with FileWatcher() as watcher:
        events = watcher.watch(str(tmp_path))
        target.write_text(content)
        event = _wait_for(events, lambda e: e.op == EventOp.CREATE)
    assert event == Event(str(target), EventOp.CREATE)
    entries = parse(event.name)
    assert len(entries) == len(expected)
    for wanted in expected:
        assert any(wanted.compare(entry) for entry in entries)


def test_watch_rename_reports_create_for_destination(tmp_path):
    source = tmp_path / "tmp.dc.abc"
    dest = tmp_path / "final"
    source.write_text("x")
    with FileWatcher() as watcher:
        events = watcher.watch(str(tmp_path))
        os.replace(source, dest)
        event = _wait_for(
            events, lambda e: e.name == str(dest) and e.op == EventOp.CREATE
        )
    assert event == Event(str(dest), EventOp.CREATE)


def test_watch_remove(tmp_path):
    target = tmp_path / "gone"
    target.write_text("x")
    with FileWatcher() as watcher:
        events = watcher.watch(str(tmp_path))
        target.unlink()
        event = _wait_for(events, lambda e: e.op == EventOp.REMOVE)
    assert event == Event(str(target), EventOp.REMOVE)


def test_watch_missing_path_raises(tmp_path):
    watcher = FileWatcher()
    with pytest.raises(FileNotFoundError):
        watcher.watch(str(tmp_path / "missing"))


def test_stop_ends_reporting(tmp_path):
    watcher = FileWatcher()
    events = watcher.watch(str(tmp_path))
    watcher.stop()
    (tmp_path / "late").write_text("x")
    assert _wait_for(events, lambda e: e.name.endswith("late"), timeout=1.0) is None