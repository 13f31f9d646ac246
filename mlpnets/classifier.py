"""Classifier contract shared with the non-neural collaborators."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from .core.types import Array, Label


@runtime_checkable
class Classifier(Protocol):
    """Protocol implemented by every classifier.

    ``fit`` calls are serialized by the caller; ``finish_fitting`` is called
    once after the last ``fit`` and ``predict`` must be safe to call from
    several threads once it has returned.
    """

    def fit(self, inputs: Array, label: Label) -> None:
        """Record one labelled example."""

    def finish_fitting(self) -> Any:
        """Post-process the accumulated examples; may be a no-op."""

    def predict(self, inputs: Array) -> Label:
        """Return the predicted label of ``inputs``."""


__all__ = ["Classifier"]
