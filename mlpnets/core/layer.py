"""Single trainable affine transform with bias column and frozen-weight mask."""

from __future__ import annotations

from typing import Tuple

import numpy as np

from .activations import ActivationFunction
from .errors import ShapeMismatch, check_length, check_size
from .types import Array, WeightGenerator


class Layer:
    """One processing layer of a perceptron.

    ``weights[i][j]`` is the weight from input ``j`` to output ``i``; the last
    column holds the bias weights and is fed by a constant ``1.0`` input that
    callers can never overwrite. ``frozen[i][j]`` pins a weight in place
    during training.

    The scratch buffers (``layer_input``, ``net_input``, ``output``) are
    rewritten by every :meth:`forward` call, so a layer must not be shared
    between threads while it is in use.
    """

    def __init__(
        self,
        input_size: int,
        output_size: int,
        activation: ActivationFunction,
        weight_init: WeightGenerator | None = None,
    ) -> None:
        self.input_size = check_size("input_size", input_size)
        self.output_size = check_size("output_size", output_size)
        if activation is None:
            raise TypeError("activation is required")
        self.activation = activation

        self.weights = np.zeros((self.output_size, self.input_size + 1), dtype=np.float64)
        self.frozen = np.zeros(self.weights.shape, dtype=bool)
        if weight_init is not None:
            for row in range(self.output_size):
                for col in range(self.input_size):
                    self.weights[row, col] = weight_init()
        self._reset_scratch()

    def _reset_scratch(self) -> None:
        self._input = np.zeros(self.input_size + 1, dtype=np.float64)
        self._input[-1] = 1.0
        self.net_input = np.zeros(self.output_size, dtype=np.float64)
        self._output = np.zeros(self.output_size + 1, dtype=np.float64)
        self._output[-1] = 1.0

    @property
    def shape(self) -> Tuple[int, int]:
        return self.weights.shape

    @property
    def layer_input(self) -> Array:
        """Input seen by the last forward pass, bias entry included."""

        return self._input.copy()

    @property
    def output(self) -> Array:
        """Activated output of the last forward pass, without the bias entry."""

        return self._output[:-1].copy()

    # ------------------------------------------------------------------
    # Forward / backward

    def forward(self, inputs: Array) -> Array:
        check_length("layer input", inputs, self.input_size)
        self._input[:-1] = inputs
        self._input[-1] = 1.0
        np.dot(self.weights, self._input, out=self.net_input)
        self._output[:-1] = self.activation.value(self.net_input)
        self._output[-1] = 1.0
        return self._output

    def output_betas(self, expected: Array, loss) -> Array:
        """Betas of this layer when it is the output layer of a network."""

        check_length("expected output", expected, self.output_size)
        actual = self._output[:-1]
        return loss.gradient(expected, actual) * self.activation.derivative(self.net_input)

    def compute_delta(self, beta: Array, learning_rate: float) -> Tuple[Array, float]:
        """Return the weight update for ``beta`` and its largest magnitude."""

        check_length("beta", beta, self.output_size)
        delta = -learning_rate * np.outer(beta, self._input)
        delta[self.frozen] = 0.0
        max_change = float(np.max(np.abs(delta))) if delta.size else 0.0
        return delta, max_change

    def apply_delta(self, delta: Array) -> None:
        delta = np.asarray(delta, dtype=np.float64)
        if delta.shape != self.weights.shape:
            raise ShapeMismatch("delta entries", self.weights.size, delta.size)
        # masked add keeps frozen entries bit-for-bit (-0.0 + 0.0 would not)
        np.add(self.weights, delta, out=self.weights, where=~self.frozen)

    # ------------------------------------------------------------------
    # Weight access

    def get_weights(self) -> Array:
        return self.weights.copy()

    def get_weight(self, output_index: int, input_index: int) -> float:
        return float(self.weights[output_index, input_index])

    def set_weight(self, output_index: int, input_index: int, value: float) -> None:
        self.weights[output_index, input_index] = value

    def is_frozen(self, output_index: int, input_index: int) -> bool:
        return bool(self.frozen[output_index, input_index])

    def set_frozen(self, output_index: int, input_index: int, flag: bool = True) -> None:
        self.frozen[output_index, input_index] = bool(flag)

    def clone(self) -> "Layer":
        """Deep copy of weights and frozen mask with fresh scratch buffers."""

        other = Layer(self.input_size, self.output_size, self.activation)
        other.weights[...] = self.weights
        other.frozen[...] = self.frozen
        return other

    def __repr__(self) -> str:
        return (
            f"Layer(input_size={self.input_size}, output_size={self.output_size}, "
            f"activation={self.activation.name!r})"
        )


__all__ = ["Layer"]
