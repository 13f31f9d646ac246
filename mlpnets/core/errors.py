"""Exception taxonomy shared by the network engine and training sessions."""

from __future__ import annotations


class MLPNetsError(Exception):
    """Base class for every error raised by mlpnets."""


class InvalidTopology(MLPNetsError, ValueError):
    """A layer was declared with a non-positive size."""


class ShapeMismatch(MLPNetsError, ValueError):
    """A vector length disagrees with the configured layer size."""

    def __init__(self, what: str, expected: int, actual: int) -> None:
        super().__init__(f"{what}: expected length {expected}, got {actual}")
        self.what = what
        self.expected = expected
        self.actual = actual


class NoTrainingData(MLPNetsError, RuntimeError):
    """``finish_fitting`` was called before any example was fitted."""


class NotTrained(MLPNetsError, RuntimeError):
    """``predict`` was called before ``finish_fitting`` completed."""


class AlreadyTrained(MLPNetsError, RuntimeError):
    """The session left the accumulating state and cannot take more examples."""


def check_size(what: str, value) -> int:
    """Return ``value`` as a positive ``int`` or raise :class:`InvalidTopology`."""

    try:
        size = int(value)
    except (TypeError, ValueError):
        raise InvalidTopology(f"{what} must be a positive integer, got {value!r}") from None
    if size != value or size <= 0:
        raise InvalidTopology(f"{what} must be a positive integer, got {value!r}")
    return size


def check_length(what: str, vector, expected: int) -> None:
    """Raise :class:`ShapeMismatch` unless ``vector`` is 1-D with ``expected`` entries."""

    shape = getattr(vector, "shape", None)
    if shape is not None and len(shape) != 1:
        raise ShapeMismatch(what, expected, int(getattr(vector, "size", 0)))
    actual = len(vector)
    if actual != expected:
        raise ShapeMismatch(what, expected, actual)


__all__ = [
    "MLPNetsError",
    "InvalidTopology",
    "ShapeMismatch",
    "NoTrainingData",
    "NotTrained",
    "AlreadyTrained",
    "check_length",
    "check_size",
]
