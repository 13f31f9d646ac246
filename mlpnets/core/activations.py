"""Activation functions paired with their derivatives."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Union

import numpy as np

from .types import Array

Scalar = Union[float, Array]
ScalarFn = Callable[[Scalar], Scalar]


@dataclass(frozen=True)
class ActivationFunction:
    """A function over the reals packaged with its derivative.

    Both callables operate element-wise, so they accept python floats as well
    as numpy arrays.
    """

    name: str
    fn: ScalarFn
    deriv: ScalarFn

    @classmethod
    def of(cls, value: ScalarFn, derivative: ScalarFn, name: str = "custom") -> "ActivationFunction":
        if value is None or derivative is None:
            raise TypeError("both value and derivative are required")
        return cls(name, value, derivative)

    def value(self, x: Scalar) -> Scalar:
        return self.fn(x)

    def derivative(self, x: Scalar) -> Scalar:
        return self.deriv(x)

    __call__ = value


def relu(x: Scalar) -> Scalar:
    """Return the ReLU activation."""

    return np.maximum(x, 0.0)


def sigmoid(x: Scalar) -> Scalar:
    # tanh form does not overflow for large negative inputs
    return 0.5 * (1.0 + np.tanh(0.5 * np.asarray(x, dtype=np.float64)))


def softplus(x: Scalar) -> Scalar:
    return np.logaddexp(0.0, x)


def _sigmoid_deriv(x: Scalar) -> Scalar:
    s = sigmoid(x)
    return s * (1.0 - s)


def _swish(x: Scalar) -> Scalar:
    return x * sigmoid(x)


def _swish_deriv(x: Scalar) -> Scalar:
    s = sigmoid(x)
    return x * s * (1.0 - s) + s


def _mish(x: Scalar) -> Scalar:
    return x * np.tanh(softplus(x))


def _mish_deriv(x: Scalar) -> Scalar:
    t = np.tanh(softplus(x))
    return t + x * sigmoid(x) * (1.0 - t * t)


def _tanh_deriv(x: Scalar) -> Scalar:
    t = np.tanh(x)
    return 1.0 - t * t


IDENTITY = ActivationFunction("identity", lambda x: x, lambda x: np.ones_like(x, dtype=np.float64))
SIGMOID = ActivationFunction("sigmoid", sigmoid, _sigmoid_deriv)
TANH = ActivationFunction("tanh", np.tanh, _tanh_deriv)
# Heaviside step, 0 at the origin
RELU = ActivationFunction("relu", relu, lambda x: np.maximum(np.sign(x), 0.0))
HALF_PARABOLA = ActivationFunction(
    "half_parabola",
    lambda x: np.where(np.asarray(x) > 0.0, np.square(x), 0.0),
    lambda x: np.where(np.asarray(x) > 0.0, 2.0 * np.asarray(x), 0.0),
)
SOFTPLUS = ActivationFunction("softplus", softplus, sigmoid)
SWISH = ActivationFunction("swish", _swish, _swish_deriv)
MISH = ActivationFunction("mish", _mish, _mish_deriv)
ATAN = ActivationFunction("atan", np.arctan, lambda x: 1.0 / (np.square(x) + 1.0))


class ActivationRegistry:
    """Name lookup for activation functions used by configuration files."""

    def __init__(self) -> None:
        self._registry: Dict[str, ActivationFunction] = {}

    def register(self, activation: ActivationFunction, *aliases: str) -> None:
        for name in (activation.name, *aliases):
            self._registry[name] = activation

    def get(self, name: str) -> ActivationFunction:
        try:
            return self._registry[name]
        except KeyError as exc:
            available = ", ".join(sorted(self._registry))
            raise KeyError(f"Unknown activation {name!r}. Available activations: {available}") from exc

    def names(self) -> Iterable[str]:
        return sorted(self._registry)

    def resolve(self, spec: "str | ActivationFunction") -> ActivationFunction:
        if isinstance(spec, ActivationFunction):
            return spec
        return self.get(str(spec).lower())


REGISTRY = ActivationRegistry()
REGISTRY.register(IDENTITY, "linear")
REGISTRY.register(SIGMOID, "logistic")
REGISTRY.register(TANH)
REGISTRY.register(RELU, "rectified_linear_unit")
REGISTRY.register(HALF_PARABOLA)
REGISTRY.register(SOFTPLUS)
REGISTRY.register(SWISH, "silu")
REGISTRY.register(MISH)
REGISTRY.register(ATAN)

__all__ = [
    "ActivationFunction",
    "ActivationRegistry",
    "REGISTRY",
    "IDENTITY",
    "SIGMOID",
    "TANH",
    "RELU",
    "HALF_PARABOLA",
    "SOFTPLUS",
    "SWISH",
    "MISH",
    "ATAN",
    "relu",
    "sigmoid",
    "softplus",
]
