"""Encoding of Linux ioctl request numbers and a thin ioctl call."""

from __future__ import annotations

import fcntl

_TYPE_BITS = 8
_NUMBER_BITS = 8
_SIZE_BITS = 14
_DIRECTION_BITS = 2

_TYPE_MASK = (1 << _TYPE_BITS) - 1
_NUMBER_MASK = (1 << _NUMBER_BITS) - 1
_SIZE_MASK = (1 << _SIZE_BITS) - 1
_DIRECTION_MASK = (1 << _DIRECTION_BITS) - 1

_DIRECTION_NONE = 0
_DIRECTION_WRITE = 1
_DIRECTION_READ = 2

_NUMBER_SHIFT = 0
_TYPE_SHIFT = _NUMBER_SHIFT + _NUMBER_BITS
_SIZE_SHIFT = _TYPE_SHIFT + _TYPE_BITS
_DIRECTION_SHIFT = _SIZE_SHIFT + _SIZE_BITS


def _ioc(direction: int, type_: int, nr: int, size: int) -> int:
    return (
        (direction << _DIRECTION_SHIFT)
        | (type_ << _TYPE_SHIFT)
        | (nr << _NUMBER_SHIFT)
        | (size << _SIZE_SHIFT)
    )


def io(type_: int, nr: int) -> int:
    """Request number for an ioctl that transfers no data."""
    return _ioc(_DIRECTION_NONE, type_, nr, 0)


def ior(type_: int, nr: int, size: int) -> int:
    """Request number for an ioctl that reads ``size`` bytes from the driver."""
    return _ioc(_DIRECTION_READ, type_, nr, size)


def iow(type_: int, nr: int, size: int) -> int:
    """Request number for an ioctl that writes ``size`` bytes to the driver."""
    return _ioc(_DIRECTION_WRITE, type_, nr, size)


def iorw(type_: int, nr: int, size: int) -> int:
    """Request number for an ioctl that both writes and reads ``size`` bytes."""
    return _ioc(_DIRECTION_READ | _DIRECTION_WRITE, type_, nr, size)


def ioctl(fd: int, op: int, arg: int | bytes | bytearray = 0):
    """Issue ``op`` on ``fd``; raises OSError when the call fails."""
    return fcntl.ioctl(fd, op, arg)