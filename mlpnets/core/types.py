"""Core typing contracts for mlpnets."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Hashable, List, Tuple

import numpy as np

Array = np.ndarray

WeightGenerator = Callable[[], float]
"""Zero-argument source of initial weights, one float per call."""

Label = Hashable


@dataclass(frozen=True)
class Example:
    """A single (input vector, label) training example."""

    inputs: Array
    label: Label


@dataclass(frozen=True)
class ModelDescription:
    """Description of the feed-forward network architecture."""

    layer_dims: List[int]

    @property
    def weight_shapes(self) -> List[Tuple[int, int]]:
        """Weight matrix shape of every processing layer, bias column included."""

        dims = self.layer_dims
        return [(out_dim, in_dim + 1) for in_dim, out_dim in zip(dims[:-1], dims[1:])]


@dataclass(frozen=True)
class TrainingResult:
    """Summary returned by :meth:`mlpnets.training.session.MLPClassifier.finish_fitting`."""

    epochs: int
    converged: bool
    max_delta: float
    num_classes: int
    num_examples: int
