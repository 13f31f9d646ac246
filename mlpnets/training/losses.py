"""Loss functions and the registry used by training sessions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable

import numpy as np

from ..core.errors import ShapeMismatch
from ..core.types import Array

LossFn = Callable[[Array, Array], float]
GradFn = Callable[[Array, Array], Array]


def _coerce(expected: Array, actual: Array) -> tuple[Array, Array]:
    expected = np.asarray(expected, dtype=np.float64)
    actual = np.asarray(actual, dtype=np.float64)
    if expected.ndim != 1 or actual.ndim != 1 or expected.shape != actual.shape:
        raise ShapeMismatch("actual values", expected.size, actual.size)
    return expected, actual


@dataclass(frozen=True)
class Loss:
    """Loss wrapper exposing the scalar loss and dL/d(actual)."""

    name: str
    fn: LossFn
    grad: GradFn

    def loss(self, expected: Array, actual: Array) -> float:
        expected, actual = _coerce(expected, actual)
        return float(self.fn(expected, actual))

    def gradient(self, expected: Array, actual: Array) -> Array:
        expected, actual = _coerce(expected, actual)
        return self.grad(expected, actual)

    def derivative(self, expected: Array, actual: Array, index: int) -> float:
        """Partial derivative of the loss w.r.t. ``actual[index]``."""

        gradient = self.gradient(expected, actual)
        if not 0 <= index < len(gradient):
            raise IndexError(f"index {index} out of range for {len(gradient)} outputs")
        return float(gradient[index])

    def __call__(self, expected: Array, actual: Array) -> tuple[float, Array]:
        expected, actual = _coerce(expected, actual)
        return float(self.fn(expected, actual)), self.grad(expected, actual)


def scaled(loss: Loss, factor: float) -> Loss:
    """Return ``loss`` with its value and derivatives multiplied by ``factor``."""

    factor = float(factor)
    return Loss(
        f"{loss.name}*{factor:g}",
        lambda e, a: factor * loss.fn(e, a),
        lambda e, a: factor * loss.grad(e, a),
    )


class LossRegistry:
    """Central registry for loss functions."""

    def __init__(self) -> None:
        self._registry: Dict[str, Loss] = {}

    def register(self, name: str, fn: LossFn, grad: GradFn) -> None:
        self._registry[name] = Loss(name, fn, grad)

    def alias(self, alias: str, name: str) -> None:
        self._registry[alias] = self._registry[name]

    def get(self, name: str) -> Loss:
        return self.resolve(name)

    def names(self) -> Iterable[str]:
        return sorted(self._registry)

    def resolve(self, name: "str | Loss") -> Loss:
        if isinstance(name, Loss):
            return name
        if name == "auto":
            name = "softmax_log"
        if name not in self._registry:
            available = ", ".join(sorted(self._registry))
            raise KeyError(f"Unknown loss {name!r}. Available losses: {available}")
        return self._registry[name]


REGISTRY = LossRegistry()


def _sse(expected: Array, actual: Array) -> float:
    return float(np.sum(np.square(actual - expected)))


def _sse_grad(expected: Array, actual: Array) -> Array:
    return 2.0 * (actual - expected)


def _mse(expected: Array, actual: Array) -> float:
    return float(np.mean(np.square(actual - expected)))


def _mse_grad(expected: Array, actual: Array) -> Array:
    return 2.0 * (actual - expected) / actual.size


def _sae(expected: Array, actual: Array) -> float:
    return float(np.sum(np.abs(actual - expected)))


def _sae_grad(expected: Array, actual: Array) -> Array:
    return np.sign(actual - expected)


def _log(expected: Array, actual: Array) -> float:
    # zero targets contribute nothing, so log(0) is never evaluated for them
    mask = expected != 0.0
    return float(-np.sum(expected[mask] * np.log(actual[mask])))


def _log_grad(expected: Array, actual: Array) -> Array:
    with np.errstate(divide="ignore", invalid="ignore"):
        return np.where(expected != 0.0, -expected / actual, 0.0)


def _softmax(actual: Array) -> Array:
    shifted = actual - np.max(actual)
    exp = np.exp(shifted)
    return exp / np.sum(exp)


def _softmax_log(expected: Array, actual: Array) -> float:
    peak = np.max(actual)
    log_sum_exp = peak + np.log(np.sum(np.exp(actual - peak)))
    return float(-np.dot(expected, actual) + np.sum(expected) * log_sum_exp)


def _softmax_log_grad(expected: Array, actual: Array) -> Array:
    return -expected + np.sum(expected) * _softmax(actual)


REGISTRY.register("sse", _sse, _sse_grad)
REGISTRY.register("mse", _mse, _mse_grad)
REGISTRY.register("sae", _sae, _sae_grad)
REGISTRY.register("log", _log, _log_grad)
REGISTRY.register("softmax_log", _softmax_log, _softmax_log_grad)
REGISTRY.alias("sum_squared_residuals", "sse")
REGISTRY.alias("sum_absolute_residuals", "sae")
REGISTRY.alias("log_loss", "log")
REGISTRY.alias("softmax_log_loss", "softmax_log")

SUM_SQUARED_RESIDUALS = REGISTRY.get("sse")
MEAN_SQUARED_ERROR = REGISTRY.get("mse")
SUM_ABSOLUTE_RESIDUALS = REGISTRY.get("sae")
LOG_LOSS = REGISTRY.get("log")
SOFTMAX_LOG_LOSS = REGISTRY.get("softmax_log")

__all__ = [
    "Loss",
    "LossRegistry",
    "REGISTRY",
    "scaled",
    "SUM_SQUARED_RESIDUALS",
    "MEAN_SQUARED_ERROR",
    "SUM_ABSOLUTE_RESIDUALS",
    "LOG_LOSS",
    "SOFTMAX_LOG_LOSS",
]
