import pytest

from nvmediscovery import collections as col


def test_index_finds_first_occurrence():
    values = ["a", "b", "c", "b"]
    position = col.index(values, "b")
    assert values[position] == "b"
    assert "b" not in values[:position]


def test_index_missing_returns_minus_one():
    assert col.index(["a", "b"], "z") == -1
    assert col.index([], "a") == -1


def test_include():
    assert col.include(["x", "y"], "y") is True
    assert col.include(["x", "y"], "q") is False


def test_any_and_all():
    values = ["apple", "avocado", "banana"]
    assert col.any_of(values, lambda v: v.startswith("b")) is True
    assert col.any_of(values, lambda v: v.startswith("z")) is False
    assert col.all_of(values, lambda v: "a" in v) is True
    assert col.all_of(values, lambda v: v.startswith("a")) is False
    assert col.all_of([], lambda v: False) is True


def test_filter_values():
    values = ["apple", "avocado", "banana"]
    assert col.filter_values(values, lambda v: v.startswith("a")) == ["apple", "avocado"]
    assert col.filter_values(values, lambda v: False) == []


def test_intersection_keeps_order_of_second():
    assert col.intersection(["a", "b", "c"], ["c", "x", "a"]) == ["c", "a"]
    assert col.intersection(["a"], ["b"]) == []


def test_remove_first_occurrence_only():
    values = ["a", "b", "a"]
    result = col.remove(values, "a")
    assert result == ["b", "a"]
    assert values == ["a", "b", "a"]


def test_remove_missing_returns_same_items():
    assert col.remove(["a", "b"], "z") == ["a", "b"]


def test_difference():
    assert col.difference(["a", "b", "c"], ["b"]) == ["a", "c"]
    assert col.difference(["a"], ["a"]) == []


def test_remove_duplications_preserves_order():
    assert col.remove_duplications(["b", "a", "b", "c", "a"]) == ["b", "a", "c"]


@pytest.mark.parametrize(
    "a, b, expected",
    [
        (["a", "b"], ["b", "a"], True),
        (["a", "b"], ["a"], False),
        (["a", "b"], ["a", "c"], False),
        ([], [], True),
    ],
)
def test_equal(a, b, expected):
    assert col.equal(a, b) is expected