"""Initial-weight generators.

Every generator is a zero-argument callable returning one float per call. A
layer draws its non-bias weights row by row, so a seeded generator yields
bit-identical networks across runs.
"""

from __future__ import annotations

from typing import Iterable

import numpy as np

from .types import WeightGenerator


def gaussian(seed: int | None = None, scale: float = 1.0, mean: float = 0.0) -> WeightGenerator:
    """Normally distributed weights from ``numpy.random.default_rng(seed)``."""

    rng = np.random.default_rng(seed)

    def _draw() -> float:
        return float(mean + scale * rng.standard_normal())

    return _draw


def uniform(low: float = -1.0, high: float = 1.0, seed: int | None = None) -> WeightGenerator:
    if not high > low:
        raise ValueError(f"uniform() requires low < high, got [{low}, {high})")
    rng = np.random.default_rng(seed)

    def _draw() -> float:
        return float(rng.uniform(low, high))

    return _draw


def constant(value: float = 0.0) -> WeightGenerator:
    value = float(value)
    return lambda: value


def from_values(values: Iterable[float]) -> WeightGenerator:
    """Replay a finite sequence of weights, failing once it runs dry."""

    iterator = iter([float(v) for v in values])

    def _draw() -> float:
        try:
            return next(iterator)
        except StopIteration as exc:
            raise ValueError("initial weight sequence exhausted") from exc

    return _draw


def build(kind: str = "gaussian", **options) -> WeightGenerator:
    """Construct a generator from a configuration block."""

    factories = {
        "gaussian": gaussian,
        "uniform": uniform,
        "constant": constant,
        "values": from_values,
    }
    try:
        factory = factories[kind]
    except KeyError as exc:
        available = ", ".join(sorted(factories))
        raise KeyError(f"Unknown initializer {kind!r}. Available initializers: {available}") from exc
    return factory(**options)


__all__ = ["gaussian", "uniform", "constant", "from_values", "build"]
