"""
Exception hierarchy for the rtslam package.

All conditions detected by the estimation core are raised synchronously at the
call that detects them and abort that call before any filter state is touched.
Nothing is retried and nothing is downgraded to a warning.

Unchecked preconditions (for instance computing the state perturbation before
the control Jacobian has been evaluated) are not represented here: they are
programmer errors with undefined results.
"""

from typing import Any, Optional


class RtSlamError(Exception):
    """Base class for all errors raised by rtslam."""


class DimensionMismatch(RtSlamError, ValueError):
    """
    A vector or matrix does not have the size declared for the entity involved.

    Attributes:
        what: Short label of the offending quantity (e.g. ``"control.x"``)
        expected: Expected shape
        actual: Shape that was received
    """

    def __init__(self, what: str, expected: Any, actual: Any, message: Optional[str] = None):
        self.what = what
        self.expected = tuple(expected) if isinstance(expected, (tuple, list)) else expected
        self.actual = tuple(actual) if isinstance(actual, (tuple, list)) else actual
        if message is None:
            message = f"{what}: expected shape {self.expected}, got {self.actual}"
        super().__init__(message)


class NotInitialized(RtSlamError, RuntimeError):
    """An operation needs continuous-time values that were never set."""


class MapFull(RtSlamError):
    """The map has not enough free state-vector slots for an allocation."""

    def __init__(self, requested: int, available: int):
        self.requested = requested
        self.available = available
        super().__init__(f"Cannot allocate {requested} slots, only {available} free")


class UnknownObject(RtSlamError, KeyError):
    """Registry lookup of an id that the map does not hold."""

    def __str__(self) -> str:
        # KeyError would otherwise quote the message
        return str(self.args[0]) if self.args else ""


def check_shape(what: str, array: Any, expected: tuple) -> None:
    """
    Raise DimensionMismatch unless ``array.shape == expected``.

    Args:
        what: Label used in the error message
        array: numpy array (or anything with a ``shape``)
        expected: Required shape
    """
    shape = getattr(array, "shape", None)
    if shape is None or tuple(shape) != tuple(expected):
        raise DimensionMismatch(what, expected, shape)
