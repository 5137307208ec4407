"""Small helpers for working with lists of strings."""

from __future__ import annotations

from typing import Callable, Iterable, Sequence


def index(values: Sequence[str], target: str) -> int:
    """Return the first index of ``target`` in ``values``, or -1 if absent."""
    return next((i for i, value in enumerate(values) if value == target), -1)


def include(values: Sequence[str], target: str) -> bool:
    """Return True if ``target`` is one of ``values``."""
    return index(values, target) >= 0


def any_of(values: Iterable[str], predicate: Callable[[str], bool]) -> bool:
    """Return True if any value satisfies ``predicate``."""
    return any(predicate(value) for value in values)


def all_of(values: Iterable[str], predicate: Callable[[str], bool]) -> bool:
    """Return True if every value satisfies ``predicate``."""
    return all(predicate(value) for value in values)


def filter_values(values: Iterable[str], predicate: Callable[[str], bool]) -> list[str]:
    """Return a new list holding the values that satisfy ``predicate``."""
    return [value for value in values if predicate(value)]


def intersection(a: Iterable[str], b: Iterable[str]) -> list[str]:
    """Return the items of ``b`` that also appear in ``a``, in ``b``'s order."""
    seen = set(a)
    return [item for item in b if item in seen]


def remove(values: Sequence[str], target: str) -> list[str]:
    """Return a copy of ``values`` without the first occurrence of ``target``."""
    result = list(values)
    position = index(result, target)
    if position >= 0:
        del result[position]
    return result


def difference(a: Iterable[str], b: Iterable[str]) -> list[str]:
    """Return the elements of ``a`` that are not in ``b``."""
    excluded = set(b)
    return [item for item in a if item not in excluded]


def remove_duplications(values: Iterable[str]) -> list[str]:
    """Return the distinct values, keeping the order of first appearance."""
    return list(dict.fromkeys(values))


def equal(a: Sequence[str], b: Sequence[str]) -> bool:
    """Return True if both lists have the same length and every item of ``a`` is in ``b``."""
    if len(a) != len(b):
        return False
    return all(include(b, item) for item in a)