from datetime import datetime, timezone

import pytest

from nvmediscovery.conf_parser import (
    Entry,
    ParserError,
    Referrals,
    last_update,
    parse,
    remove_dup_entries,
)

HOST = "nqn.2014-08.com.example:nvme:nvm-subsystem-sn-d7843"

VALID_CONF = f"""# discovery configuration
-t tcp -a 192.168.1.1 -s 8009 -q {HOST}1 -n subsysnqn1
--transport=tcp --traddr=192.168.1.2 --trsvcid=8009 --hostnqn={HOST}2 --subsysnqn=subsysnqn1
-t tcp -a 192.168.1.3 -s 8009 -q {HOST}3 -n subsysnqn1 -p
-t tcp -a 192.168.1.4 -s 8009 -q {HOST}4 -n subsysnqn1 --persistent   # comment

-t tcp -a 192.168.1.5 -s 8009 -q {HOST}5 -n subsysnqn1
-a 192.168.1.6 -t tcp -s 8009 -q {HOST}6 -n subsysnqn1
-t tcp -a 192.168.1.7 -q {HOST}7 -s 8009 -n subsysnqn1
-p -t tcp -a 192.168.1.8 -s 8009 -q {HOST}8 -n subsysnqn1
-t tcp -a 192.168.1.8 -s 8009 -q {HOST}8 -n subsysnqn1 -p
-t tcp -a 192.168.1.9 -s 8009 -n subsysnqn1
"""


def _expected():
    persistent = {3, 4, 8}
    return [
        Entry(traddr=f"192.168.1.{i}", trsvcid=8009, transport="tcp",
              hostnqn=f"{HOST}{i}", persistent=i in persistent, subsysnqn="subsysnqn1")
        for i in range(1, 9)
    ]


def test_parse_valid(tmp_path):
    path = tmp_path / "discovery.conf"
    path.write_text(VALID_CONF)
    entries = parse(path)
    expected = _expected()
    assert len(entries) == len(expected)
    for exp in expected:
        assert any(exp.compare(e) for e in entries)


@pytest.mark.parametrize(
    "line, message",
    [
        (f"-t tcp -a 192.168.1.1 -s 80a9 -q {HOST}1 -n subsysnqn1", "bad port"),
        (f"-t tcp -a 192.168.1.1:x -s 8009 -q {HOST}1 -n subsysnqn1", "bad address"),
        (f"-t tcp -a -s 8009 -q {HOST}1 -n subsysnqn1", "bad address"),
        (f"-t rdma -a 192.168.1.1 -s 8009 -q {HOST}1 -n subsysnqn1", "bad transport"),
        ("-x foo", "unknown flag"),
    ],
)
def test_parse_errors(tmp_path, line, message):
    path = tmp_path / "bad.conf"
    path.write_text(line + "\n")
    with pytest.raises(ParserError) as info:
        parse(path)
    assert str(info.value) == message


def test_verify_errors():
    with pytest.raises(ValueError, match="Subsysnqn is mandatory"):
        Entry().verify()
    with pytest.raises(ValueError, match="Hostnqn is mandatory"):
        Entry(transport="tcp", trsvcid=1, traddr="a", subsysnqn="n").verify()


def test_compare_none_and_hostaddr():
    entry = Entry(traddr="a", trsvcid=1)
    assert not entry.compare(None)
    assert entry.compare(Entry(traddr="a", trsvcid=1, hostaddr="h"))


def test_remove_dup_entries():
    a = Entry(traddr="a", trsvcid=1)
    result = remove_dup_entries([a, Entry(traddr="a", trsvcid=1), Entry(traddr="b")])
    assert result == [a, Entry(traddr="b")]
    assert result[0] is not a


def test_referrals_round_trip():
    refs = Referrals(
        entries=_expected()[:2],
        creation_time=datetime(2022, 5, 1, 12, 0, tzinfo=timezone.utc),
    )
    back = Referrals.from_json(refs.to_json())
    assert back == refs


def test_referrals_go_time_format():
    refs = Referrals.from_json('{"creation_time": "2022-05-01T12:00:00.123456789Z"}')
    assert refs.entries == []
    assert refs.creation_time.year == 2022


def test_last_update(tmp_path):
    before = datetime.now(timezone.utc).timestamp() - 5
    assert last_update(tmp_path).timestamp() >= before
    with pytest.raises(FileNotFoundError):
        last_update(tmp_path / "missing")