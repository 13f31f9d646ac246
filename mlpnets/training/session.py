"""Epoch-based training sessions exposing the classifier contract."""

from __future__ import annotations

import logging
import threading
from typing import Dict, Hashable, Iterable, List, Mapping, Sequence, Tuple

import numpy as np

from ..core import initializers
from ..core.activations import REGISTRY as ACTIVATION_REGISTRY
from ..core.activations import SIGMOID, ActivationFunction
from ..core.errors import (
    AlreadyTrained,
    NoTrainingData,
    NotTrained,
    check_length,
    check_size,
)
from ..core.network import Network
from ..core.types import Array, Example, Label, TrainingResult, WeightGenerator
from .clones import CloneCache
from .losses import LOG_LOSS, SOFTMAX_LOG_LOSS, Loss
from .losses import REGISTRY as LOSS_REGISTRY

logger = logging.getLogger(__name__)

DEFAULT_MAX_EPOCHS = 32767


class MLPClassifier:
    """Multi-layer perceptron classifier trained by per-example backpropagation.

    ``fit`` accumulates examples and ``finish_fitting`` trains the network,
    after which the session is read-only and ``predict`` may be called from
    any number of threads. ``fit`` and ``finish_fitting`` must be serialized
    by the caller and ``finish_fitting`` must return before the first
    ``predict``.

    The output layer has one node per distinct label, in first-seen order.
    Every epoch walks the examples in fit order (no shuffling) and training
    stops early once no single update in an epoch moved a weight by more than
    ``max_delta_threshold``.
    """

    def __init__(
        self,
        row_length: int,
        hidden_layer_sizes: Sequence[int] = (100,),
        learning_rate: float = 0.1,
        max_epochs: int = DEFAULT_MAX_EPOCHS,
        max_delta_threshold: float = 0.0,
        hidden_activation: "str | ActivationFunction" = SIGMOID,
        output_activation: "str | ActivationFunction" = SIGMOID,
        loss: "str | Loss" = SOFTMAX_LOG_LOSS,
        weight_init: WeightGenerator | None = None,
        *,
        cache_clones: bool = True,
        listeners: Sequence[object] | None = None,
    ) -> None:
        row_length = check_size("row_length", row_length)
        if hidden_layer_sizes is None:
            raise TypeError("hidden_layer_sizes is required")
        hidden = [
            check_size(f"hidden_layer_sizes[{idx}]", size)
            for idx, size in enumerate(hidden_layer_sizes)
        ]
        if not learning_rate > 0:
            raise ValueError(f"learning_rate must be positive, got {learning_rate}")
        if max_epochs < 0:
            raise ValueError(f"max_epochs must be non-negative, got {max_epochs}")

        self.row_length = int(row_length)
        self.hidden_layer_sizes: Tuple[int, ...] = tuple(hidden)
        self.learning_rate = float(learning_rate)
        self.max_epochs = int(max_epochs)
        self.max_delta_threshold = float(max_delta_threshold)
        self.hidden_activation = ACTIVATION_REGISTRY.resolve(hidden_activation)
        self.output_activation = ACTIVATION_REGISTRY.resolve(output_activation)
        self.loss = LOSS_REGISTRY.resolve(loss)
        self.weight_init = weight_init if weight_init is not None else initializers.gaussian()

        self._examples: List[Example] = []
        self._class_index: Dict[Hashable, int] = {}
        self._classes: List[Label] = []
        self._network: Network | None = None
        self._trained = False
        self._lock = threading.RLock()
        self._clones = CloneCache(self._canonical_network, enabled=cache_clones)
        self.listeners: List[object] = list(listeners or [])
        self._notifier: object | None = None

    # ------------------------------------------------------------------
    # Read-only state

    @property
    def labels(self) -> Tuple[Label, ...]:
        return tuple(self._classes)

    @property
    def num_classes(self) -> int:
        return len(self._classes)

    @property
    def num_examples(self) -> int:
        return len(self._examples)

    @property
    def is_trained(self) -> bool:
        return self._trained

    @property
    def network(self) -> Network | None:
        return self._network

    @property
    def num_processing_layers(self) -> int:
        return len(self.hidden_layer_sizes) + 1

    def layer_activation(self, layer: int) -> ActivationFunction:
        """Activation of processing layer ``layer``, the output layer being last."""

        if layer == len(self.hidden_layer_sizes):
            return self.output_activation
        if 0 <= layer < len(self.hidden_layer_sizes):
            return self.hidden_activation
        raise IndexError(f"layer {layer} out of range for {self.num_processing_layers} layers")

    # ------------------------------------------------------------------
    # Epoch listeners

    def add_epoch_listener(self, listener: object) -> None:
        with self._lock:
            self.listeners.append(listener)

    def set_epoch_loss_notifier(self, notifier: object | None) -> None:
        """Install (or clear with ``None``) a callable receiving ``(epoch, mean_loss)``."""

        with self._lock:
            self._notifier = notifier

    def _active_listeners(self) -> List[object]:
        active = list(self.listeners)
        if self._notifier is not None:
            active.append(self._notifier)
        return active

    @staticmethod
    def _emit_epoch(listeners: Sequence[object], epoch: int, metrics: Mapping[str, float]) -> None:
        for listener in listeners:
            if hasattr(listener, "on_epoch"):
                listener.on_epoch(epoch, metrics)  # type: ignore[attr-defined]
            elif callable(listener):
                listener(epoch, metrics["loss"])

    # ------------------------------------------------------------------
    # Fitting

    def fit(self, inputs: Array, label: Label) -> None:
        if self._trained:
            raise AlreadyTrained("fit() called after finish_fitting()")
        check_length("input row", inputs, self.row_length)
        row = np.array(inputs, dtype=np.float64)
        # unhashable labels raise TypeError here, before anything is stored
        if label not in self._class_index:
            self._class_index[label] = len(self._classes)
            self._classes.append(label)
        self._examples.append(Example(inputs=row, label=label))

    def fit_many(self, pairs: Iterable[Tuple[Array, Label]]) -> None:
        for inputs, label in pairs:
            self.fit(inputs, label)

    def fit_arrays(self, inputs: Iterable[Array], labels: Iterable[Label]) -> None:
        inputs = list(inputs)
        labels = list(labels)
        if len(inputs) != len(labels):
            raise ValueError(f"got {len(inputs)} input rows but {len(labels)} labels")
        for row, label in zip(inputs, labels):
            self.fit(row, label)

    def finish_fitting(self) -> TrainingResult:
        with self._lock:
            if self._trained:
                raise AlreadyTrained("finish_fitting() may only be called once")
            num_classes = len(self._classes)
            if num_classes == 0:
                raise NoTrainingData("finish_fitting() called without any fitted example")

            examples = tuple(self._examples)
            self._examples = list(examples)
            if num_classes == 1:
                logger.info(
                    "Single label %r seen in %d examples; skipping training",
                    self._classes[0],
                    len(examples),
                )
                self._trained = True
                return TrainingResult(
                    epochs=0,
                    converged=True,
                    max_delta=0.0,
                    num_classes=1,
                    num_examples=len(examples),
                )

            network = Network(
                self.row_length,
                self.hidden_layer_sizes,
                num_classes,
                self.layer_activation,
                self.weight_init,
            )
            logger.info(
                "Training network %s on %d examples (%d classes, lr=%g, max_epochs=%d)",
                network.layer_dims,
                len(examples),
                num_classes,
                self.learning_rate,
                self.max_epochs,
            )
            # an exception from the epoch loop leaves the session accumulating
            result = self._run_epochs(network, examples)
            self._network = network
            self._trained = True
        logger.info(
            "Training finished after %d epochs (converged=%s, max_delta=%.3g)",
            result.epochs,
            result.converged,
            result.max_delta,
        )
        return result

    def _run_epochs(self, network: Network, examples: Sequence[Example]) -> TrainingResult:
        listeners = self._active_listeners()
        track_loss = bool(listeners)
        num_classes = network.output_size
        expected = np.zeros(num_classes, dtype=np.float64)

        epochs_run = 0
        converged = False
        epoch_max_delta = 0.0
        for epoch in range(self.max_epochs):
            epoch_max_delta = 0.0
            total_loss = 0.0
            for example in examples:
                cls_index = self._class_index[example.label]
                actual = network.forward(example.inputs)
                expected[cls_index] = 1.0
                if track_loss:
                    # loss before this example's update
                    total_loss += self.loss.loss(expected, actual)
                change = network.backward(expected, self.loss, self.learning_rate)
                expected[cls_index] = 0.0
                epoch_max_delta = max(epoch_max_delta, change)

            epochs_run = epoch + 1
            if track_loss:
                metrics = {"loss": total_loss / len(examples), "max_delta": epoch_max_delta}
                self._emit_epoch(listeners, epochs_run, metrics)
            logger.debug("epoch %d: max weight change %.6g", epochs_run, epoch_max_delta)
            if epoch_max_delta <= self.max_delta_threshold:
                converged = True
                break

        return TrainingResult(
            epochs=epochs_run,
            converged=converged,
            max_delta=epoch_max_delta,
            num_classes=num_classes,
            num_examples=len(examples),
        )

    # ------------------------------------------------------------------
    # Prediction

    def _canonical_network(self) -> Network:
        if not self._trained or self._network is None:
            raise NotTrained("finish_fitting() has not completed")
        return self._network

    def _require_trained(self) -> None:
        if not self._trained:
            raise NotTrained("predict() called before finish_fitting() completed")

    def predict_scores(self, inputs: Array) -> Array:
        """Raw output-layer activations for ``inputs``, one per label."""

        self._require_trained()
        check_length("input row", inputs, self.row_length)
        if self._network is None:
            return np.ones(1, dtype=np.float64)
        return self._clones.get().forward(inputs)

    def predict(self, inputs: Array) -> Label:
        self._require_trained()
        check_length("input row", inputs, self.row_length)
        if len(self._classes) == 1:
            return self._classes[0]
        outputs = self._clones.get().forward(inputs)
        # argmax keeps the first maximum, i.e. the earliest-seen label
        return self._classes[int(np.argmax(outputs))]

    def predict_many(self, rows: Iterable[Array]) -> List[Label]:
        return [self.predict(row) for row in rows]

    def release_clone(self) -> None:
        """Drop the calling thread's cached inference clone."""

        self._clones.drop()

    def __repr__(self) -> str:
        state = "trained" if self._trained else "accumulating"
        return (
            f"{type(self).__name__}(row_length={self.row_length}, "
            f"hidden={list(self.hidden_layer_sizes)}, classes={len(self._classes)}, {state})"
        )


class PerceptronClassifier(MLPClassifier):
    """Single-layer perceptron classifier: one weight matrix, no hidden layers."""

    def __init__(
        self,
        row_length: int,
        learning_rate: float = 0.1,
        max_epochs: int = DEFAULT_MAX_EPOCHS,
        max_delta_threshold: float = 0.0,
        activation: "str | ActivationFunction" = SIGMOID,
        loss: "str | Loss" = LOG_LOSS,
        weight_init: WeightGenerator | None = None,
        **kwargs,
    ) -> None:
        super().__init__(
            row_length,
            (),
            learning_rate=learning_rate,
            max_epochs=max_epochs,
            max_delta_threshold=max_delta_threshold,
            hidden_activation=activation,
            output_activation=activation,
            loss=loss,
            weight_init=weight_init,
            **kwargs,
        )

    @property
    def activation(self) -> ActivationFunction:
        return self.output_activation


TrainingSession = MLPClassifier

__all__ = ["MLPClassifier", "PerceptronClassifier", "TrainingSession", "DEFAULT_MAX_EPOCHS"]
