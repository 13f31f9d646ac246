"""Multi-layer perceptron: forward pass and backpropagation."""

from __future__ import annotations

from typing import Callable, List, Mapping, Sequence, Union

import numpy as np

from .activations import ActivationFunction
from .errors import InvalidTopology, ShapeMismatch, check_length, check_size
from .layer import Layer
from .types import Array, ModelDescription, WeightGenerator

ActivationSelector = Union[
    ActivationFunction,
    Sequence[ActivationFunction],
    Callable[[int], ActivationFunction],
]


def _select_activations(selector: ActivationSelector, num_layers: int) -> List[ActivationFunction]:
    if isinstance(selector, ActivationFunction):
        return [selector] * num_layers
    if callable(selector):
        return [selector(idx) for idx in range(num_layers)]
    activations = list(selector)
    if len(activations) != num_layers:
        raise InvalidTopology(
            f"expected {num_layers} activation functions (one per processing layer), "
            f"got {len(activations)}"
        )
    return activations


class Network:
    """Ordered stack of :class:`Layer` objects trained by online backpropagation.

    Layer ``l`` takes the previous layer's output (or the network input for
    ``l == 0``) and the activation selector is evaluated once per layer at
    construction, the output layer last. With no hidden layers the network is
    a single-layer perceptron.

    Only :meth:`backward` mutates weights. Forward passes write the layers'
    scratch buffers, so concurrent callers must each work on a :meth:`clone`.
    """

    def __init__(
        self,
        input_size: int,
        hidden_sizes: Sequence[int],
        output_size: int,
        activations: ActivationSelector,
        weight_init: WeightGenerator | None = None,
    ) -> None:
        hidden = [
            check_size(f"hidden_sizes[{idx}]", size) for idx, size in enumerate(hidden_sizes or ())
        ]
        dims = [check_size("input_size", input_size), *hidden, check_size("output_size", output_size)]

        self.layer_dims = dims
        selected = _select_activations(activations, len(dims) - 1)
        self.layers: List[Layer] = [
            Layer(in_dim, out_dim, activation, weight_init)
            for in_dim, out_dim, activation in zip(dims[:-1], dims[1:], selected)
        ]
        self._primed = False

    @property
    def input_size(self) -> int:
        return self.layer_dims[0]

    @property
    def output_size(self) -> int:
        return self.layer_dims[-1]

    @property
    def hidden_sizes(self) -> List[int]:
        return list(self.layer_dims[1:-1])

    @property
    def num_hidden_layers(self) -> int:
        return len(self.layer_dims) - 2

    @property
    def num_layers(self) -> int:
        return len(self.layers)

    def activation(self, layer: int) -> ActivationFunction:
        return self.layers[layer].activation

    def describe(self) -> ModelDescription:
        return ModelDescription(layer_dims=list(self.layer_dims))

    # ------------------------------------------------------------------
    # Forward / backward

    def forward(self, inputs: Array) -> Array:
        check_length("network input", inputs, self.input_size)
        x = np.asarray(inputs, dtype=np.float64)
        for layer in self.layers:
            x = layer.forward(x)[:-1]
        self._primed = True
        return x.copy()

    def backward(self, expected: Array, loss, learning_rate: float) -> float:
        """Backpropagate ``expected`` through the last forward pass and update weights.

        Returns the largest absolute weight change applied by this update.
        """

        if loss is None:
            raise TypeError("loss is required")
        check_length("expected output", expected, self.output_size)
        if not self._primed:
            raise RuntimeError("backward() requires a preceding forward() pass")
        expected = np.asarray(expected, dtype=np.float64)

        last = len(self.layers) - 1
        betas: List[Array] = [None] * len(self.layers)  # type: ignore[list-item]
        betas[last] = self.layers[last].output_betas(expected, loss)
        for idx in reversed(range(last)):
            layer = self.layers[idx]
            upstream = self.layers[idx + 1].weights[:, :-1]
            betas[idx] = (upstream.T @ betas[idx + 1]) * layer.activation.derivative(layer.net_input)

        # every beta comes from the same snapshot, so update order is irrelevant
        deltas = [layer.compute_delta(beta, learning_rate) for layer, beta in zip(self.layers, betas)]
        max_change = 0.0
        for layer, (delta, change) in zip(self.layers, deltas):
            layer.apply_delta(delta)
            max_change = max(max_change, change)
        return max_change

    # ------------------------------------------------------------------
    # Weight access

    def get_weights(self, layer: int) -> Array:
        return self.layers[layer].get_weights()

    def get_weight(self, layer: int, node: int, prev_node: int) -> float:
        return self.layers[layer].get_weight(node, prev_node)

    def set_weight(self, layer: int, node: int, prev_node: int, value: float) -> None:
        self.layers[layer].set_weight(node, prev_node, value)

    def is_frozen(self, layer: int, node: int, prev_node: int) -> bool:
        return self.layers[layer].is_frozen(node, prev_node)

    def set_frozen(self, layer: int, node: int, prev_node: int, flag: bool = True) -> None:
        self.layers[layer].set_frozen(node, prev_node, flag)

    def state_dict(self) -> Mapping[str, Array]:
        return {f"W{idx}": layer.get_weights() for idx, layer in enumerate(self.layers)}

    def load_state_dict(self, state: Mapping[str, Array]) -> None:
        staged = []
        for idx, layer in enumerate(self.layers):
            key = f"W{idx}"
            if key not in state:
                raise KeyError(f"Missing weight {key} in state dict")
            weights = np.asarray(state[key], dtype=np.float64)
            if weights.shape != layer.shape:
                raise ShapeMismatch(f"{key} entries", layer.weights.size, weights.size)
            staged.append(weights)
        for layer, weights in zip(self.layers, staged):
            layer.weights[...] = weights

    def parameter_count(self) -> int:
        return int(sum(int(layer.weights.size) for layer in self.layers))

    def clone(self) -> "Network":
        """Structural copy sharing no mutable state with this network."""

        other = Network.__new__(Network)
        other.layer_dims = list(self.layer_dims)
        other.layers = [layer.clone() for layer in self.layers]
        other._primed = False
        return other

    def __repr__(self) -> str:
        return f"Network(layer_dims={self.layer_dims})"


__all__ = ["Network", "ActivationSelector"]
